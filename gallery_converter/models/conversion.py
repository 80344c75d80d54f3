from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


def truncate_title(value: str, length: int = 20) -> str:
    return value if len(value) <= length else value[:length]


class MediaDescriptor(BaseModel):
    """One media item to import, as extracted from a legacy gallery."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, str_strip_whitespace=True)

    source_id: int = Field(0, alias="id")
    source_url: Optional[str] = Field(None, alias="url")
    title: str = ""
    alt_text: str = Field("", alias="alt")
    description: str = ""

    @field_validator("source_id", mode="before")
    @classmethod
    def _absint(cls, v: Any) -> int:
        try:
            return abs(int(v or 0))
        except (TypeError, ValueError):
            return 0

    @field_validator("title", "alt_text", "description", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> str:
        return "" if v is None else str(v)


class NamingContext(BaseModel):
    document_id: Optional[int] = None
    document_title: Optional[str] = None
    columns: int = 3
    size_slug: str = "thumbnail"
    link_target: str = ""
    block_content: str = ""

    def gallery_title(self, timestamp: str) -> str:
        """``<title[:20]>-<id>-Converted-<ts>`` with document context, else ``Converted-<ts>``."""
        if self.document_id and self.document_title:
            return f"{truncate_title(self.document_title)}-{self.document_id}-Converted-{timestamp}"
        return f"Converted-{timestamp}"


class ImportResult(BaseModel):
    gallery_id: Optional[int] = None
    title: str
    columns: int = 3
    imported_media_ids: List[int] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    message: Optional[str] = None

    @computed_field  # type: ignore[misc]
    @property
    def image_count(self) -> int:
        return len(self.imported_media_ids)

    @computed_field  # type: ignore[misc]
    @property
    def failed(self) -> bool:
        return not self.imported_media_ids

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class GalleryRecord(BaseModel):
    id: int
    title: str = ""
    preview_media_id: Optional[int] = None


class MediaRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int
    gallery_id: Optional[int] = None
    filename: str = ""
    alt_text: str = ""
    description: str = ""


class MediaMetadata(BaseModel):
    """Attachment metadata held by the source media library."""

    url: Optional[str] = None
    title: str = ""
    alt: str = ""
    caption: str = ""
    description: str = ""


class MediaFile(BaseModel):
    filename: str
    data: bytes = b""


class MediaHookContext(BaseModel):
    descriptor: MediaDescriptor
    metadata: Optional[MediaMetadata] = None
    gallery_id: int


class Document(BaseModel):
    id: int
    title: str = ""
    text: str = ""
    scope: str = "post"
    edit_url: Optional[str] = None


class ScopeInfo(BaseModel):
    name: str
    label: str = ""


class ScopeOption(BaseModel):
    value: str
    label: str


class ProcessResult(BaseModel):
    rewritten: bool
    message: str
    edit_url: Optional[str] = None
