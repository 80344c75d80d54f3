"""
Rewriting of a single document.

:class:`DocumentRewriter` runs the two conversion passes over one document:

1. the inline pass converts ``[gallery]`` shortcodes in the raw text.  The
   first shortcode whose import fails rejects the whole document;
2. the block pass parses the (possibly already updated) text into blocks and
   converts ``core/gallery`` blocks.  A failing block is left as it is and the
   walk carries on with its children and siblings.

The rewriter only works on a copy of the text.  Persisting the result is the
caller's decision, based on the returned :class:`RewriteOutcome`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from gallery_converter.extractors.blocks import gallery_construct, is_legacy_gallery
from gallery_converter.extractors.media import resolve
from gallery_converter.extractors.shortcodes import locate_inline_tags
from gallery_converter.migrators.collaborators import MediaLibrary
from gallery_converter.migrators.gallery_importer import GalleryImporter
from gallery_converter.models.constructs import LegacyConstruct
from gallery_converter.models.conversion import Document, ImportResult, NamingContext
from gallery_converter.parsers.block_parser import Block, parse_blocks, serialize_blocks
from gallery_converter.parsers.block_schema import reference_shortcode, replace_with_reference

logger = logging.getLogger(__name__)

UNCHANGED = "unchanged"
REWRITTEN = "rewritten"
REJECTED = "rejected"


@dataclass
class RewriteOutcome:
    state: str
    text: str
    gallery_ids: List[int] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    message: Optional[str] = None

    @property
    def changed(self) -> bool:
        return self.state == REWRITTEN


class DocumentRewriter:
    def __init__(self, importer: GalleryImporter, library: MediaLibrary) -> None:
        self.importer = importer
        self.library = library

    def rewrite(self, document: Document) -> RewriteOutcome:
        outcome = RewriteOutcome(state=UNCHANGED, text=document.text)

        text, dirty, failure = self._rewrite_inline(document, outcome)
        if failure is not None:
            outcome.state = REJECTED
            outcome.text = text
            outcome.message = failure.message
            outcome.errors.extend(failure.errors)
            return outcome

        blocks = parse_blocks(text)
        if self._rewrite_blocks(blocks, document, outcome, False):
            text = serialize_blocks(blocks)
            dirty = True

        outcome.text = text
        outcome.state = REWRITTEN if dirty else UNCHANGED
        return outcome

    def _convert(self, construct: LegacyConstruct, document: Document) -> Optional[ImportResult]:
        """Resolve and import one construct.  ``None`` means the construct is empty."""
        descriptors = resolve(construct, self.library, document.id)
        if not descriptors:
            return None
        naming = NamingContext(
            document_id=document.id,
            document_title=document.title,
            columns=construct.columns,
            size_slug=construct.size_slug,
            link_target=construct.link_target,
            block_content=construct.raw_content,
        )
        return self.importer.import_gallery(descriptors, naming)

    def _rewrite_inline(self, document: Document, outcome: RewriteOutcome):
        text = document.text
        pieces: List[str] = []
        offset = 0
        dirty = False
        for construct in locate_inline_tags(text):
            result = self._convert(construct, document)
            if result is None:
                continue
            if result.failed:
                logger.warning("Shortcode gallery import failed for document %s: %s", document.id, result.message)
                pieces.append(text[offset:])
                return "".join(pieces), dirty, result
            pieces.append(text[offset:construct.start])
            pieces.append(reference_shortcode(result.gallery_id))
            offset = construct.end
            dirty = True
            outcome.gallery_ids.append(result.gallery_id)
            outcome.errors.extend(result.errors)
        pieces.append(text[offset:])
        return "".join(pieces), dirty, None

    def _rewrite_blocks(self, blocks: List[Block], document: Document, outcome: RewriteOutcome, dirty: bool) -> bool:
        """
        Convert galleries in the pre-order of :func:`~gallery_converter.extractors.blocks.locate_tree_nodes`.

        A converted gallery has no children left, so galleries nested inside
        it are not visited.
        """
        for block in blocks:
            if is_legacy_gallery(block):
                result = self._convert(gallery_construct(block), document)
                if result is not None and not result.failed:
                    replace_with_reference(block, result.gallery_id)
                    outcome.gallery_ids.append(result.gallery_id)
                    outcome.errors.extend(result.errors)
                    dirty = True
                elif result is not None:
                    logger.warning("Gallery block import failed for document %s: %s", document.id, result.message)
                    outcome.errors.extend(result.errors)
            dirty = self._rewrite_blocks(block.inner_blocks, document, outcome, dirty)
        return dirty
