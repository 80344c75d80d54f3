"""
Located legacy gallery constructs.

A construct is either an inline ``[gallery]`` shortcode found in the raw text
or a ``core/gallery`` block found in the parsed block tree.  Both variants
expose the same read-only surface (``columns``, ``size_slug``, ``link_target``
and ``raw_content``) so that resolution, import and substitution can be
written once; only locating and substituting differ per ``kind``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Union

from gallery_converter.parsers.block_parser import Block, serialize_block


@dataclass(frozen=True)
class InlineTagConstruct:
    raw_text: str
    start: int
    end: int
    attributes: Dict[str, str] = field(default_factory=dict)
    id_list: List[int] = field(default_factory=list)
    include_list: List[int] = field(default_factory=list)
    exclude_list: List[int] = field(default_factory=list)
    columns: int = 3
    size_slug: str = "thumbnail"
    gallery_scope_id: int = 0
    kind: Literal["inline"] = "inline"

    @property
    def link_target(self) -> str:
        return "_self"

    @property
    def raw_content(self) -> str:
        return self.raw_text


@dataclass(frozen=True)
class TreeNodeConstruct:
    node: Block
    attrs: Dict[str, object] = field(default_factory=dict)
    child_image_nodes: List[Block] = field(default_factory=list)
    kind: Literal["tree"] = "tree"

    @property
    def columns(self) -> int:
        return _as_int(self.attrs.get("columns"), 3)

    @property
    def size_slug(self) -> str:
        return str(self.attrs.get("sizeSlug") or "thumbnail")

    @property
    def link_target(self) -> str:
        return str(self.attrs.get("linkTo") or "")

    @property
    def raw_content(self) -> str:
        return serialize_block(self.node)


LegacyConstruct = Union[InlineTagConstruct, TreeNodeConstruct]


def _as_int(value: object, default: int) -> int:
    try:
        return abs(int(value))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default


def positive_ints(values: Optional[List[object]]) -> List[int]:
    """Coerce ``values`` to non-negative ints, dropping zeros and junk."""
    result: List[int] = []
    for value in values or []:
        number = _as_int(value, 0)
        if number:
            result.append(number)
    return result
