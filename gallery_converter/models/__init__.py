from .conversion import (
    Document,
    GalleryRecord,
    ImportResult,
    MediaDescriptor,
    MediaFile,
    MediaHookContext,
    MediaMetadata,
    MediaRecord,
    NamingContext,
    ProcessResult,
    ScopeInfo,
    ScopeOption,
)

__all__ = [
    "Document",
    "GalleryRecord",
    "ImportResult",
    "MediaDescriptor",
    "MediaFile",
    "MediaHookContext",
    "MediaMetadata",
    "MediaRecord",
    "NamingContext",
    "ProcessResult",
    "ScopeInfo",
    "ScopeOption",
]
