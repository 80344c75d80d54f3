"""
High-level orchestration of the gallery conversion.

This module defines a :class:`GalleryConversionTool` class that ties together
the extractors, the import pipeline, the document rewriter and the HTTP
collaborators.  It exposes the four operations a transport layer would
publish:

* :meth:`GalleryConversionTool.convert_single` – import one list of images into a new gallery
* :meth:`GalleryConversionTool.discover_candidates` – list the documents of a post type worth converting
* :meth:`GalleryConversionTool.process_one` – convert and save one document
* :meth:`GalleryConversionTool.list_eligible_scopes` – list the post types that may be converted

No state is kept between calls: a batch conversion is a ``discover_candidates``
call followed by one ``process_one`` call per returned id, driven by the
caller (see :meth:`GalleryConversionTool.convert_scope`).

Configuration is supplied via a JSON file path or directly as a dictionary.
The ``wordpress`` section holds ``site_url``, ``username`` and
``app_password``; the ``catalog`` section holds ``base_url`` and ``token``.
Optional settings live under ``conversion``.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError as SchemaValidationError

from gallery_converter.extractors.blocks import has_gallery_blocks
from gallery_converter.extractors.shortcodes import has_inline_tags
from gallery_converter.migrators.catalog_client import CatalogClient
from gallery_converter.migrators.collaborators import (
    CapabilityChecker,
    DocumentStore,
    GalleryCatalog,
    MediaLibrary,
    MediaSource,
    MediaTransform,
    identity_transform,
)
from gallery_converter.migrators.document_rewriter import REJECTED, REWRITTEN, DocumentRewriter
from gallery_converter.migrators.gallery_importer import NOTHING_IMPORTED, GalleryImporter
from gallery_converter.migrators.wordpress_client import WordPressClient
from gallery_converter.models.conversion import ImportResult, MediaDescriptor, NamingContext, ProcessResult, ScopeOption
from gallery_converter.utils.errors import (
    BatchFailure,
    ConversionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
    report_error,
    report_ok,
)
from gallery_converter.utils.reports import generate_conversion_csv
from gallery_converter.utils.scopes import eligible_scopes

logger = logging.getLogger("gallery_converter")

CONVERTED_DOCUMENT = "Galleries converted to NextGEN Galleries."
NOT_COMPATIBLE = "This post contains gallery content that is not compatible with the conversion process."


def has_legacy_constructs(text: str) -> bool:
    return has_inline_tags(text) or has_gallery_blocks(text)


def _absint(value: Any) -> int:
    try:
        return abs(int(value or 0))
    except (TypeError, ValueError):
        return 0


def configure_logging(reports_dir: str, level: str = "INFO") -> None:
    """Send package logs to stderr and to ``<reports_dir>/conversion.log``."""
    os.makedirs(reports_dir, exist_ok=True)
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    file_handler = logging.FileHandler(os.path.join(reports_dir, "conversion.log"), encoding="utf-8")
    file_handler.setFormatter(formatter)
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    logger.handlers = [stream_handler, file_handler]
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))


class GalleryConversionTool:
    """
    Encapsulates the collaborators and configuration required to convert
    legacy WordPress galleries.  Collaborators default to the HTTP clients
    built from configuration; tests pass in-memory replacements instead.
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        *,
        config_file: Optional[str] = None,
        documents: Optional[DocumentStore] = None,
        capabilities: Optional[CapabilityChecker] = None,
        library: Optional[MediaLibrary] = None,
        source: Optional[MediaSource] = None,
        catalog: Optional[GalleryCatalog] = None,
        transform: MediaTransform = identity_transform,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        if config_file and os.path.exists(config_file):
            with open(config_file, "r", encoding="utf-8") as f:
                config = json.load(f)
        elif config is None:
            config = {}

        # Ensure essential keys exist to prevent KeyErrors
        config.setdefault("wordpress", {})
        config["wordpress"].setdefault("site_url", os.getenv("WP_SITE_URL", ""))
        config["wordpress"].setdefault("username", os.getenv("WP_USERNAME", ""))
        config["wordpress"].setdefault("app_password", os.getenv("WP_APP_PASSWORD", ""))
        config["wordpress"].setdefault("timeout", 30)

        config.setdefault("catalog", {})
        config["catalog"].setdefault("base_url", os.getenv("CATALOG_BASE_URL", ""))
        config["catalog"].setdefault("token", os.getenv("CATALOG_TOKEN", ""))
        config["catalog"].setdefault("timeout", 60)

        config.setdefault("conversion", {})
        config["conversion"].setdefault("reports_dir", os.path.join("reports", "conversion"))
        config["conversion"].setdefault("rate_limit_rpm", 180)
        config["conversion"].setdefault("limit", None)

        self.config = config
        self.reports_dir: str = config["conversion"]["reports_dir"]
        shared = {
            "rate_limit_rpm": config["conversion"]["rate_limit_rpm"],
            "reports_dir": self.reports_dir,
        }

        wordpress: Optional[WordPressClient] = None
        if documents is None or capabilities is None or library is None or source is None:
            wordpress = WordPressClient({**config["wordpress"], **shared})
        self.documents: DocumentStore = documents if documents is not None else wordpress  # type: ignore[assignment]
        self.capabilities: CapabilityChecker = capabilities if capabilities is not None else wordpress  # type: ignore[assignment]
        self.library: MediaLibrary = library if library is not None else wordpress  # type: ignore[assignment]
        self.source: MediaSource = source if source is not None else wordpress  # type: ignore[assignment]
        self.catalog: GalleryCatalog = catalog if catalog is not None else CatalogClient({**config["catalog"], **shared})

        self.importer = GalleryImporter(
            catalog=self.catalog,
            source=self.source,
            library=self.library,
            documents=self.documents,
            transform=transform,
            clock=clock,
        )
        self.rewriter = DocumentRewriter(self.importer, self.library)

    def log_message(self, message: str, level: str = "INFO") -> None:
        logger.log(getattr(logging, level.upper(), logging.INFO), message)

    # -- exposed operations -------------------------------------------------

    def convert_single(self, payload: Dict[str, Any]) -> ImportResult:
        """
        Create a gallery from an explicit list of images.

        ``payload`` mirrors the request body: ``images`` (list of ``id``,
        ``url``, ``title``, ``alt``), and optional ``post_id``, ``columns``,
        ``sizeSlug``, ``linkTarget`` and ``blockContent``.

        :raises PermissionDeniedError: without upload rights, or edit rights on ``post_id``.
        :raises ValidationError: when no images, or an image without id, are given.
        :raises BatchFailure: when not a single image could be imported.
        """
        if not self.capabilities.can_upload():
            raise PermissionDeniedError("You do not have permission to create galleries.")
        post_id = _absint(payload.get("post_id"))
        if post_id > 0 and not self.capabilities.can_edit(post_id):
            raise PermissionDeniedError("You do not have permission to edit this post.")

        images = payload.get("images")
        try:
            descriptors = [MediaDescriptor.model_validate(image) for image in images or [] if isinstance(image, dict)]
        except SchemaValidationError as e:
            raise ValidationError(f"Invalid image data: {e.error_count()} error(s).") from e
        if not descriptors:
            raise ValidationError("No images provided. Please add at least one image to continue.")
        if any(not descriptor.source_id for descriptor in descriptors):
            raise ValidationError("Each image must have an ID. Please check your images and try again.")

        title: Optional[str] = None
        if post_id:
            try:
                title = self.documents.load(post_id).title
            except NotFoundError:
                title = None

        naming = NamingContext(
            document_id=post_id or None,
            document_title=title,
            columns=_absint(payload.get("columns", 3)),
            size_slug=str(payload.get("sizeSlug") or "thumbnail"),
            link_target=str(payload.get("linkTarget") or ""),
            block_content=str(payload.get("blockContent") or ""),
        )
        result = self.importer.import_gallery(descriptors, naming)
        if result.failed:
            self.log_message(f"Single gallery conversion failed: {result.errors}", level="ERROR")
            raise BatchFailure(result.message or NOTHING_IMPORTED)
        return result

    def discover_candidates(self, scope: str) -> List[int]:
        """Ids of the editable documents of ``scope`` that contain a legacy gallery."""
        if not self.capabilities.can_manage():
            raise PermissionDeniedError("You do not have permission to access this feature.")
        scope = (scope or "").strip()
        if not scope:
            raise ValidationError("A post type is required for conversion. Please make a selection.")

        scopes = {info.name: info for info in self.documents.list_scopes()}
        if scope not in scopes:
            raise NotFoundError("Post type not recognized. Please check your selection and try again.")
        if not self.capabilities.can_edit_scope(scope):
            raise PermissionDeniedError(f"You do not have permission to edit {scopes[scope].label or scope} item(s).")

        documents = self.documents.list_documents(scope)
        if not documents:
            raise ValidationError("No items found for the selected post type. Please try selecting a different option.")

        found = [document.id for document in documents if has_legacy_constructs(document.text)]
        if not found:
            raise NotFoundError("No WordPress galleries were found in the selected post type.", status=400)

        editable = [document_id for document_id in found if self.capabilities.can_edit(document_id)]
        if not editable:
            raise PermissionDeniedError("You do not have permission to edit any of the found posts.")
        self.log_message(f"Found {len(editable)} document(s) with galleries in '{scope}'")
        return editable

    def process_one(self, document_id: Any) -> ProcessResult:
        """Convert every legacy gallery of one document and save it when something changed."""
        if not self.capabilities.can_upload():
            raise PermissionDeniedError("You do not have permission to create galleries.")
        document_id = _absint(document_id)
        if document_id <= 0:
            raise ValidationError("A valid post ID is required.")
        document = self.documents.load(document_id)
        if not self.capabilities.can_edit(document_id):
            raise PermissionDeniedError("You do not have permission to edit this post.")

        report = {"id": document.id, "title": document.title}
        outcome = self.rewriter.rewrite(document)

        if outcome.state == REJECTED:
            failure = BatchFailure(outcome.message or NOTHING_IMPORTED, edit_url=document.edit_url)
            report_error("DOCUMENT_REJECTED", report, failure, report_dir=self.reports_dir)
            raise failure

        if outcome.state == REWRITTEN:
            self.documents.save(document.id, outcome.text)
            report_ok(
                "DOCUMENT_REWRITTEN",
                report,
                {"gallery_ids": outcome.gallery_ids, "errors": outcome.errors},
                report_dir=self.reports_dir,
            )
            return ProcessResult(rewritten=True, message=CONVERTED_DOCUMENT)

        report_ok("DOCUMENT_UNCHANGED", report, report_dir=self.reports_dir)
        return ProcessResult(rewritten=False, message=NOT_COMPATIBLE, edit_url=document.edit_url)

    def list_eligible_scopes(self) -> List[ScopeOption]:
        if not self.capabilities.can_manage():
            raise PermissionDeniedError("You do not have permission to access this feature.")
        return eligible_scopes(self.documents.list_scopes())

    # -- client-driven batch ------------------------------------------------

    def convert_scope(self, scope: str, *, summary_path: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Run the resumable batch protocol for one post type.

        Each document is converted by its own :meth:`process_one` call, so a
        run can be stopped at any point and started again: converted
        documents no longer contain legacy galleries and are not discovered
        twice.  A summary CSV is written at the end.
        """
        limit: Optional[int] = self.config["conversion"].get("limit")
        document_ids = self.discover_candidates(scope)
        if limit is not None:
            document_ids = document_ids[:limit]

        rows: List[Dict[str, Any]] = []
        for document_id in document_ids:
            self.log_message(f"Converting document {document_id}")
            try:
                result = self.process_one(document_id)
                rows.append({"document_id": document_id, **result.model_dump()})
            except ConversionError as e:
                self.log_message(f"Document {document_id} not converted: {e.message}", level="ERROR")
                rows.append({"document_id": document_id, "rewritten": False, "message": e.message, "edit_url": e.edit_url})
            except Exception as e:
                report_error("DOCUMENT_ERROR", {"id": document_id}, e, report_dir=self.reports_dir)
                self.log_message(f"Unexpected error converting document {document_id}: {e}", level="ERROR")
                rows.append({"document_id": document_id, "rewritten": False, "message": str(e)})

        out_path = summary_path or os.path.join(self.reports_dir, "conversion_summary.csv")
        generate_conversion_csv(rows, out_path=out_path)
        self.log_message(f"Conversion summary written to {out_path}")
        return rows
