"""In-memory collaborators shared by the tests."""

from __future__ import annotations

from typing import Dict, List, Optional

from gallery_converter.models.conversion import (
    Document,
    GalleryRecord,
    MediaFile,
    MediaMetadata,
    MediaRecord,
    ScopeInfo,
)
from gallery_converter.utils.errors import NotFoundError


class FakeWordPress:
    def __init__(
        self,
        documents: Optional[Dict[int, Document]] = None,
        media: Optional[Dict[int, MediaMetadata]] = None,
        files: Optional[Dict[int, MediaFile]] = None,
        children: Optional[Dict[int, List[int]]] = None,
        scopes: Optional[List[ScopeInfo]] = None,
        editable: Optional[set] = None,
        upload: bool = True,
        manage: bool = True,
    ) -> None:
        self.documents = documents or {}
        self.media = media or {}
        self.files = files or {}
        self.children = children or {}
        self.scopes = scopes if scopes is not None else [ScopeInfo(name="post", label="Posts")]
        self.editable = editable
        self.upload = upload
        self.manage = manage
        self.saved: Dict[int, str] = {}
        self.backups: List[tuple] = []
        self.calls: List[str] = []

    # DocumentStore
    def load(self, document_id: int) -> Document:
        if document_id not in self.documents:
            raise NotFoundError("Post not found.")
        return self.documents[document_id]

    def save(self, document_id: int, text: str) -> None:
        self.saved[document_id] = text

    def list_documents(self, scope: str) -> List[Document]:
        return [d for d in self.documents.values() if d.scope == scope]

    def list_scopes(self) -> List[ScopeInfo]:
        return list(self.scopes)

    def store_backup(self, document_id: int, key: str, content: str) -> None:
        self.backups.append((document_id, key, content))

    # CapabilityChecker
    def can_edit(self, document_id: int) -> bool:
        return self.editable is None or document_id in self.editable

    def can_edit_scope(self, scope: str) -> bool:
        return True

    def can_upload(self) -> bool:
        return self.upload

    def can_manage(self) -> bool:
        return self.manage

    # MediaSource / MediaLibrary
    def read(self, source_id: int, source_url: Optional[str] = None) -> MediaFile:
        self.calls.append(f"read:{source_id}")
        if source_id not in self.files:
            raise NotFoundError(f"missing {source_id}")
        return self.files[source_id]

    def query_child_media(self, parent_id, include=None, exclude=None) -> List[int]:
        self.calls.append(f"query:{parent_id}")
        ids = list(self.children.get(parent_id, []))
        if include:
            ids = [i for i in ids if i in include]
        if exclude:
            ids = [i for i in ids if i not in exclude]
        return ids

    def get_media_metadata(self, media_id: int) -> Optional[MediaMetadata]:
        self.calls.append(f"meta:{media_id}")
        return self.media.get(media_id)


class FakeCatalog:
    def __init__(self, fail_uploads: Optional[set] = None, create_fails: bool = False) -> None:
        self.fail_uploads = fail_uploads or set()
        self.create_fails = create_fails
        self.galleries: Dict[int, GalleryRecord] = {}
        self.records: Dict[int, MediaRecord] = {}
        self.deleted: List[int] = []
        self.calls: List[str] = []
        self._next_gallery = 100
        self._next_media = 500

    def create_gallery(self, title: str) -> GalleryRecord:
        self.calls.append("create_gallery")
        if self.create_fails:
            raise RuntimeError("catalog unavailable")
        self._next_gallery += 1
        gallery = GalleryRecord(id=self._next_gallery, title=title)
        self.galleries[gallery.id] = gallery
        return gallery

    def delete_gallery(self, gallery_id: int) -> None:
        self.calls.append("delete_gallery")
        self.deleted.append(gallery_id)
        self.galleries.pop(gallery_id, None)

    def upload_media(self, gallery_id: int, filename: str, data: bytes) -> Optional[int]:
        self.calls.append(f"upload:{filename}")
        if filename in self.fail_uploads:
            return None
        self._next_media += 1
        self.records[self._next_media] = MediaRecord(id=self._next_media, gallery_id=gallery_id, filename=filename)
        return self._next_media

    def get_media(self, media_id: int) -> MediaRecord:
        return self.records[media_id].model_copy()

    def save_media(self, record: MediaRecord) -> None:
        self.records[record.id] = record

    def save_gallery(self, record: GalleryRecord) -> None:
        self.calls.append("save_gallery")
        self.galleries[record.id] = record


def image(media_id: int, name: Optional[str] = None) -> MediaFile:
    return MediaFile(filename=name or f"img{media_id}.jpg", data=b"\xff\xd8data")


def meta(media_id: int, **kwargs) -> MediaMetadata:
    values = {"url": f"https://example.com/img{media_id}.jpg", "title": f"Image {media_id}"}
    values.update(kwargs)
    return MediaMetadata(**values)
