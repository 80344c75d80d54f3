"""
Media extraction for located legacy galleries.

:func:`resolve` turns a located construct into the ordered list of
:class:`MediaDescriptor` objects handed to the import pipeline.  URL, title
and description always come from the media library.  For block galleries the
alt text is taken from the image markup first and from the library second.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from bs4 import BeautifulSoup, Tag

from gallery_converter.extractors.shortcodes import resolve_inline_ids
from gallery_converter.migrators.collaborators import MediaLibrary
from gallery_converter.models.constructs import InlineTagConstruct, LegacyConstruct, TreeNodeConstruct, positive_ints
from gallery_converter.models.conversion import MediaDescriptor
from gallery_converter.parsers.block_parser import Block

logger = logging.getLogger(__name__)


def alt_from_markup(html: str) -> str:
    """Return the ``alt`` of the first ``<img>`` in ``html``, or ``""``.

    Broken markup never raises; it simply yields no alt text.
    """
    if not html or not html.strip():
        return ""
    try:
        soup = BeautifulSoup(html, "html.parser")
        img = soup.find("img")
    except Exception as e:
        logger.debug("Could not parse image markup: %s", e)
        return ""
    if not isinstance(img, Tag):
        return ""
    alt_attr = img.get("alt")
    alt = " ".join(alt_attr) if isinstance(alt_attr, list) else alt_attr or ""
    return alt.strip()


def _inline_descriptors(
    construct: InlineTagConstruct, library: MediaLibrary, document_id: Optional[int]
) -> List[MediaDescriptor]:
    descriptors: List[MediaDescriptor] = []
    for media_id in resolve_inline_ids(construct, document_id, library):
        meta = library.get_media_metadata(media_id)
        # attachments without a URL are not real media
        if meta is None or not meta.url:
            continue
        descriptors.append(
            MediaDescriptor(
                source_id=media_id,
                source_url=meta.url,
                title=meta.title,
                alt_text=meta.alt,
                description=meta.description,
            )
        )
    return descriptors


def _image_block_descriptor(image: Block, library: MediaLibrary) -> Optional[MediaDescriptor]:
    ids = positive_ints([image.attrs.get("id")])
    if not ids:
        return None
    media_id = ids[0]
    meta = library.get_media_metadata(media_id)

    alt = alt_from_markup(image.inner_html)
    if not alt and meta is not None:
        alt = meta.alt

    return MediaDescriptor(
        source_id=media_id,
        source_url=meta.url if meta else None,
        title=meta.title if meta else "",
        alt_text=alt,
        description=meta.description if meta else "",
    )


def _tree_descriptors(construct: TreeNodeConstruct, library: MediaLibrary) -> List[MediaDescriptor]:
    descriptors: List[MediaDescriptor] = []
    for image in construct.child_image_nodes:
        descriptor = _image_block_descriptor(image, library)
        if descriptor is not None:
            descriptors.append(descriptor)
    return descriptors


def resolve(
    construct: LegacyConstruct, library: MediaLibrary, document_id: Optional[int] = None
) -> List[MediaDescriptor]:
    """Produce the media descriptors of ``construct``, in gallery order.

    An empty list means the construct is "empty" and must be left untouched.
    """
    if construct.kind == "inline":
        return _inline_descriptors(construct, library, document_id)
    return _tree_descriptors(construct, library)
