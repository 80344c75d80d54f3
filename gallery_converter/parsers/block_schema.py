from __future__ import annotations

from .block_parser import Block

LEGACY_GALLERY_BLOCK = "core/gallery"
LEGACY_IMAGE_BLOCK = "core/image"
REFERENCE_BLOCK = "imagely/main-block"


# --- Builders for the canonical gallery reference ---

def reference_shortcode(gallery_id: int) -> str:
    return f'[imagely id="{gallery_id}"]'


def reference_block(gallery_id: int) -> Block:
    content = reference_shortcode(gallery_id)
    return Block(
        name=REFERENCE_BLOCK,
        attrs={"content": content},
        inner_blocks=[],
        inner_html=content,
        inner_content=[content],
    )


def replace_with_reference(block: Block, gallery_id: int) -> None:
    """Turn ``block`` in place into a leaf reference block for ``gallery_id``."""
    ref = reference_block(gallery_id)
    block.name = ref.name
    block.attrs = ref.attrs
    block.inner_blocks = ref.inner_blocks
    block.inner_html = ref.inner_html
    block.inner_content = ref.inner_content
