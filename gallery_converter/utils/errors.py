"""
Error types and structured logging helpers for gallery conversion.

The exception classes defined here form the error taxonomy shared by the
extractors, the import pipeline and the conversion tool.  Every class carries
a human readable ``message`` plus an HTTP-like ``status`` so that a transport
layer can map failures to responses without inspecting the type.

Two reporting functions are provided as well:

``report_error``
    Record an error that occurred for a document.  An optional exception can
    be supplied and will be serialized to the log.

``report_ok``
    Record a successful step for a document.  Additional key/value information
    can be attached to the entry via the ``extra`` parameter.

Entries are appended to JSON Lines files under ``reports/conversion`` so that
a run can be reviewed or parsed afterwards.  The ``EVENTS`` dictionary maps
event codes to messages; codes not present fall back to the code itself.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ConversionError(Exception):
    """Base class for failures surfaced to the caller of a conversion operation."""

    status = 500

    def __init__(self, message: str, *, status: Optional[int] = None, edit_url: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status
        self.edit_url = edit_url

    def to_response(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"message": self.message}
        if self.edit_url:
            body["edit_url"] = self.edit_url
        return body


class ValidationError(ConversionError):
    """Missing or invalid input, rejected before any mutation."""

    status = 400


class PermissionDeniedError(ConversionError):
    """The capability check failed for the current credentials."""

    status = 403


class NotFoundError(ConversionError):
    """A referenced document, scope or media item does not exist."""

    status = 404


class PerItemImportError(ConversionError):
    """A single media item could not be imported.  Recorded, never propagated."""

    status = 400


class BatchFailure(ConversionError):
    """Nothing could be imported for a gallery, or a document was rejected."""

    status = 400


# Mapping of event codes used throughout the conversion to descriptive messages.
EVENTS: Dict[str, str] = {
    "DOCUMENT_REWRITTEN": "Galleries converted and document saved",
    "DOCUMENT_UNCHANGED": "Document has no convertible galleries",
    "DOCUMENT_REJECTED": "Gallery import failed, document left unsaved",
    "DOCUMENT_ERROR": "Unexpected error while converting document",
}

_REPORT_DIR = os.path.join("reports", "conversion")


def _write_jsonl(path: str, data: Dict[str, Any]) -> None:
    """Append ``data`` as a JSON object followed by a newline to ``path``."""
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False)
        f.write("\n")


def _entry(code: str, document: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "code": code,
        "message": EVENTS.get(code, code),
        "document_id": document.get("id"),
        "title": document.get("title"),
    }


def report_error(
    code: str,
    document: Dict[str, Any],
    exc: Optional[BaseException] = None,
    *,
    report_dir: str = _REPORT_DIR,
) -> None:
    """Log an error event for ``document``.

    Parameters
    ----------
    code:
        A key identifying the type of error.  If ``code`` is present in
        :data:`EVENTS` its value will be used as the message.
    document:
        Dictionary describing the document.  Only ``id`` and ``title`` are
        referenced if present.
    exc:
        Optional exception instance that triggered the error.
    """
    entry = _entry(code, document)
    if exc is not None:
        entry["error"] = str(exc)
    logger.error("%s - document %s", entry["message"], document.get("id", ""))
    _write_jsonl(os.path.join(report_dir, "errors.jsonl"), entry)


def report_ok(
    code: str,
    document: Dict[str, Any],
    extra: Optional[Dict[str, Any]] = None,
    *,
    report_dir: str = _REPORT_DIR,
) -> None:
    """Log a successful event for ``document``, merging ``extra`` into the entry."""
    entry = _entry(code, document)
    if extra:
        entry.update(extra)
    logger.info("%s - document %s", entry["message"], document.get("id", ""))
    _write_jsonl(os.path.join(report_dir, "success.jsonl"), entry)
