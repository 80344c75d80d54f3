"""
Interfaces of the systems the conversion engine talks to.

The engine never reaches for a global API: each collaborator is passed in
explicitly, which keeps the pipeline testable with in-memory fakes.  The
concrete HTTP implementations live in :mod:`.wordpress_client` (source side)
and :mod:`.catalog_client` (target gallery catalog).
"""

from __future__ import annotations

from typing import Callable, List, Optional, Protocol

from gallery_converter.models.conversion import (
    Document,
    GalleryRecord,
    MediaFile,
    MediaHookContext,
    MediaMetadata,
    MediaRecord,
    ScopeInfo,
)


class MediaSource(Protocol):
    def read(self, source_id: int, source_url: Optional[str] = None) -> MediaFile:
        """Return the file behind ``source_id``; raise ``NotFoundError`` when absent."""
        ...


class MediaLibrary(Protocol):
    def query_child_media(
        self, parent_id: int, include: Optional[List[int]] = None, exclude: Optional[List[int]] = None
    ) -> List[int]:
        ...

    def get_media_metadata(self, media_id: int) -> Optional[MediaMetadata]:
        ...


class GalleryCatalog(Protocol):
    def create_gallery(self, title: str) -> GalleryRecord:
        ...

    def delete_gallery(self, gallery_id: int) -> None:
        ...

    def upload_media(self, gallery_id: int, filename: str, data: bytes) -> Optional[int]:
        ...

    def get_media(self, media_id: int) -> MediaRecord:
        ...

    def save_media(self, record: MediaRecord) -> None:
        ...

    def save_gallery(self, record: GalleryRecord) -> None:
        ...


class DocumentStore(Protocol):
    def load(self, document_id: int) -> Document:
        ...

    def save(self, document_id: int, text: str) -> None:
        ...

    def list_documents(self, scope: str) -> List[Document]:
        ...

    def list_scopes(self) -> List[ScopeInfo]:
        ...

    def store_backup(self, document_id: int, key: str, content: str) -> None:
        ...


class CapabilityChecker(Protocol):
    def can_edit(self, document_id: int) -> bool:
        ...

    def can_edit_scope(self, scope: str) -> bool:
        ...

    def can_upload(self) -> bool:
        ...

    def can_manage(self) -> bool:
        ...


MediaTransform = Callable[[MediaRecord, MediaHookContext], MediaRecord]


def identity_transform(record: MediaRecord, context: MediaHookContext) -> MediaRecord:
    return record
