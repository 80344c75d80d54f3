from __future__ import annotations

import re
from typing import List

from gallery_converter.models.constructs import TreeNodeConstruct
from gallery_converter.parsers.block_parser import Block
from gallery_converter.parsers.block_schema import LEGACY_GALLERY_BLOCK, LEGACY_IMAGE_BLOCK

_GALLERY_OPENER = re.compile(r"<!--\s+wp:(?:core/)?gallery[\s/]")


def gallery_construct(block: Block) -> TreeNodeConstruct:
    """Wrap a ``core/gallery`` block; only direct ``core/image`` children are members."""
    return TreeNodeConstruct(
        node=block,
        attrs=dict(block.attrs),
        child_image_nodes=[child for child in block.inner_blocks if child.name == LEGACY_IMAGE_BLOCK],
    )


def is_legacy_gallery(block: Block) -> bool:
    return block.name == LEGACY_GALLERY_BLOCK


def locate_tree_nodes(blocks: List[Block]) -> List[TreeNodeConstruct]:
    """
    Depth-first, pre-order search for legacy gallery blocks.

    A gallery is reported before its descendants are examined and the
    descendants of every block, matched or not, are still visited.

    :meth:`DocumentRewriter._rewrite_blocks` performs the same walk while it
    rewrites, using the same :func:`is_legacy_gallery` and
    :func:`gallery_construct`; the two must visit galleries in the same order.
    """
    found: List[TreeNodeConstruct] = []
    for block in blocks:
        if is_legacy_gallery(block):
            found.append(gallery_construct(block))
        found.extend(locate_tree_nodes(block.inner_blocks))
    return found


def has_gallery_blocks(text: str) -> bool:
    return bool(_GALLERY_OPENER.search(text or ""))
