"""
Gallery import pipeline.

:class:`GalleryImporter` creates a gallery in the target catalog and imports
a batch of media descriptors into it.  The gallery is created speculatively:
each media item is imported on its own, so that one failing item never undoes
the others, and the gallery is deleted again when nothing at all could be
imported.  Items are processed strictly in input order because the first
imported item becomes the gallery preview and errors are reported in the
order of the input.

Usage example::

    importer = GalleryImporter(catalog=catalog, source=wp, library=wp)
    result = importer.import_gallery(descriptors, NamingContext(document_id=42, document_title="Trip"))
    if result.failed:
        print(result.message)
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Optional

from gallery_converter.migrators.collaborators import (
    DocumentStore,
    GalleryCatalog,
    MediaLibrary,
    MediaSource,
    MediaTransform,
    identity_transform,
)
from gallery_converter.models.conversion import (
    ImportResult,
    MediaDescriptor,
    MediaHookContext,
    MediaMetadata,
    MediaRecord,
    NamingContext,
)
from gallery_converter.utils.backups import make_backup_key
from gallery_converter.utils.errors import NotFoundError, PerItemImportError

logger = logging.getLogger(__name__)

GALLERY_CREATE_FAILED = "There was a problem creating the gallery. Please try again."
NOTHING_IMPORTED = "No images could be imported. The gallery was not created."
CONVERTED = "Converted successfully. Don't forget to save your changes!"

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def apply_metadata(record: MediaRecord, descriptor: MediaDescriptor, meta: Optional[MediaMetadata]) -> MediaRecord:
    """
    Fill alt text and description of a freshly uploaded record.

    Alt text priority: the descriptor's alt, the attachment caption, the
    attachment alt, and only then the descriptor title.
    """
    if descriptor.alt_text:
        record.alt_text = descriptor.alt_text
    elif meta is not None and meta.caption:
        record.alt_text = meta.caption
    elif meta is not None and meta.alt:
        record.alt_text = meta.alt
    elif descriptor.title:
        record.alt_text = descriptor.title

    if descriptor.description:
        record.description = descriptor.description
    elif meta is not None and meta.description:
        record.description = meta.description
    return record


class GalleryImporter:
    def __init__(
        self,
        *,
        catalog: GalleryCatalog,
        source: MediaSource,
        library: MediaLibrary,
        documents: Optional[DocumentStore] = None,
        transform: MediaTransform = identity_transform,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.catalog = catalog
        self.source = source
        self.library = library
        self.documents = documents
        self.transform = transform
        self.clock = clock

    def import_gallery(self, descriptors: List[MediaDescriptor], naming: NamingContext) -> ImportResult:
        now = self.clock()
        title = naming.gallery_title(now.strftime(TIMESTAMP_FORMAT))
        self._backup(naming, now)

        try:
            gallery = self.catalog.create_gallery(title)
        except Exception as e:
            logger.error("Failed to create gallery '%s': %s", title, e)
            gallery = None
        if gallery is None or not gallery.id:
            return ImportResult(title=title, columns=naming.columns, errors=[GALLERY_CREATE_FAILED], message=GALLERY_CREATE_FAILED)

        logger.info("Created gallery %s '%s' for %d media item(s)", gallery.id, title, len(descriptors))
        imported: List[int] = []
        errors: List[str] = []

        for descriptor in descriptors:
            if not descriptor.source_id:
                continue
            try:
                media_id = self._import_one(gallery.id, descriptor, errors)
            except PerItemImportError as e:
                errors.append(e.message)
                continue
            except Exception:
                logger.exception("Unexpected error importing attachment %s", descriptor.source_id)
                errors.append(f"Unexpected error importing attachment ID {descriptor.source_id}")
                continue
            if media_id is not None:
                imported.append(media_id)

        if not imported:
            logger.warning("Nothing imported into gallery %s, deleting it", gallery.id)
            self.catalog.delete_gallery(gallery.id)
            return ImportResult(title=title, columns=naming.columns, errors=errors, message=NOTHING_IMPORTED)

        gallery.preview_media_id = imported[0]
        self.catalog.save_gallery(gallery)

        return ImportResult(
            gallery_id=gallery.id,
            title=title,
            columns=naming.columns,
            imported_media_ids=imported,
            errors=errors,
            message=CONVERTED,
        )

    def _import_one(self, gallery_id: int, descriptor: MediaDescriptor, errors: List[str]) -> Optional[int]:
        source_id = descriptor.source_id
        try:
            media_file = self.source.read(source_id, descriptor.source_url)
        except NotFoundError:
            errors.append(f"Could not find file for attachment ID {source_id}")
            return None
        if not media_file.data:
            errors.append(f"Could not read file for attachment ID {source_id}")
            return None

        media_id = self.catalog.upload_media(gallery_id, media_file.filename, media_file.data)
        if not media_id:
            errors.append(f"Failed to import image: {media_file.filename}")
            return None

        record = self.catalog.get_media(media_id)
        meta = self.library.get_media_metadata(source_id)
        record = apply_metadata(record, descriptor, meta)
        record = self.transform(record, MediaHookContext(descriptor=descriptor, metadata=meta, gallery_id=gallery_id))
        self.catalog.save_media(record)
        return record.id

    def _backup(self, naming: NamingContext, now: datetime) -> None:
        if not naming.document_id or self.documents is None or not naming.block_content:
            return
        self.documents.store_backup(naming.document_id, make_backup_key(now), naming.block_content)
