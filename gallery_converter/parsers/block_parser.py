"""
Parser and serializer for the block grammar stored in post content.

Post content is HTML interleaved with block delimiters written as HTML
comments::

    <!-- wp:gallery {"columns":2} -->
    <figure class="wp-block-gallery">
    <!-- wp:image {"id":12} --><figure><img src="a.jpg" alt="A"/></figure><!-- /wp:image -->
    </figure>
    <!-- /wp:gallery -->

:func:`parse_blocks` turns such content into a list of :class:`Block` trees.
Each block keeps its ``inner_content`` as a list of HTML chunks where ``None``
marks the position of the next inner block, which lets
:func:`serialize_blocks` rebuild the original text.  HTML outside any block is
kept as a freeform block whose ``name`` is ``None``.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

_TOKEN = re.compile(
    r"<!--\s+(?P<closer>/)?wp:(?P<namespace>[a-z][a-z0-9_-]*/)?(?P<name>[a-z][a-z0-9_-]*)\s+"
    r"(?P<attrs>\{(?:(?!-->).)*?\}\s+)?(?P<void>/)?-->",
    re.DOTALL,
)


@dataclass
class Block:
    name: Optional[str]
    attrs: Dict[str, Any] = field(default_factory=dict)
    inner_blocks: List["Block"] = field(default_factory=list)
    inner_html: str = ""
    inner_content: List[Optional[str]] = field(default_factory=list)

    def append_html(self, html: str) -> None:
        if html:
            self.inner_html += html
            self.inner_content.append(html)

    def append_block(self, block: "Block") -> None:
        self.inner_blocks.append(block)
        self.inner_content.append(None)


def freeform(html: str) -> Block:
    return Block(name=None, inner_html=html, inner_content=[html])


def _decode_attrs(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        attrs = json.loads(raw.strip())
    except ValueError:
        return {}
    return attrs if isinstance(attrs, dict) else {}


def parse_blocks(document: str) -> List[Block]:
    """Parse ``document`` into a list of top-level blocks."""
    output: List[Block] = []
    stack: List[Block] = []
    offset = 0

    def attach(block: Block) -> None:
        if stack:
            stack[-1].append_block(block)
        else:
            output.append(block)

    for match in _TOKEN.finditer(document or ""):
        start, end = match.span()
        html = document[offset:start]
        if match.group("closer"):
            if not stack:
                # stray closer, keep it as text
                continue
            block = stack.pop()
            block.append_html(html)
            offset = end
            attach(block)
            continue

        if stack:
            stack[-1].append_html(html)
        elif html:
            output.append(freeform(html))
        offset = end

        name = (match.group("namespace") or "core/") + match.group("name")
        block = Block(name=name, attrs=_decode_attrs(match.group("attrs")))
        if match.group("void"):
            attach(block)
        else:
            stack.append(block)

    trailing = (document or "")[offset:]
    if stack:
        # unclosed blocks swallow the rest of the document
        stack[-1].append_html(trailing)
        while stack:
            block = stack.pop()
            attach(block)
    elif trailing:
        output.append(freeform(trailing))
    return output


def _encode_attrs(attrs: Dict[str, Any]) -> str:
    encoded = json.dumps(attrs, ensure_ascii=False, separators=(",", ":"))
    # Keep the JSON from terminating or confusing the surrounding HTML comment.
    encoded = encoded.replace("--", "\\u002d\\u002d")
    encoded = encoded.replace("<", "\\u003c").replace(">", "\\u003e").replace("&", "\\u0026")
    # only quotes escaped by an odd run of backslashes
    return re.sub(r'(?<!\\)((?:\\\\)*)\\"', r"\1\\u0022", encoded)


def serialize_block(block: Block) -> str:
    if block.name is None:
        return block.inner_html

    children = iter(block.inner_blocks)
    content = "".join(
        chunk if chunk is not None else serialize_block(next(children)) for chunk in block.inner_content
    )
    name = block.name[len("core/"):] if block.name.startswith("core/") else block.name
    attrs = f"{_encode_attrs(block.attrs)} " if block.attrs else ""
    if not block.inner_content:
        return f"<!-- wp:{name} {attrs}/-->"
    return f"<!-- wp:{name} {attrs}-->{content}<!-- /wp:{name} -->"


def serialize_blocks(blocks: List[Block]) -> str:
    return "".join(serialize_block(block) for block in blocks)
