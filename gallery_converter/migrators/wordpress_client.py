"""
WordPress REST API client for gallery conversion.

This module implements the source side of the conversion on top of the
WordPress REST API (``/wp-json/wp/v2``): loading and saving posts of any
post type, listing post types, reading attachments and their metadata,
downloading attachment files and checking the capabilities of the
authenticated user.  Requests are authenticated with an application
password.

A simple rate limiter and a generic retry wrapper are included; both are
shared with :mod:`.catalog_client`.  The retry wrapper handles transient
network errors and server-side rate limiting responses (429 or 5xx).

Usage example::

    from gallery_converter.migrators.wordpress_client import WordPressClient

    cfg = {"site_url": "https://example.com", "username": "admin", "app_password": "xxxx xxxx"}
    wp = WordPressClient(cfg)
    doc = wp.load(42)
    print(doc.title, wp.can_edit(42))
"""

from __future__ import annotations

import logging
import os
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Callable, Dict, Iterator, List, Optional
from urllib.parse import urlparse

import requests

from gallery_converter.models.conversion import Document, MediaFile, MediaMetadata, ScopeInfo
from gallery_converter.utils.backups import write_backup
from gallery_converter.utils.errors import NotFoundError, PermissionDeniedError

logger = logging.getLogger(__name__)

###############################################################################
# Rate limiting and retry utilities
###############################################################################

class RateLimiter:
    """
    Simple time-based rate limiter.  Ensures that no more than ``rpm``
    requests are dispatched per minute.
    """

    def __init__(self, rpm: int = 200) -> None:
        self.rpm = max(1, rpm)
        self.interval = 60.0 / float(self.rpm)
        self._last = 0.0

    def wait(self, time_fn: Callable[[], float] = time.time, sleep_fn: Callable[[float], None] = time.sleep) -> None:
        now = time_fn()
        dt = now - self._last
        if dt < self.interval:
            sleep_fn(self.interval - dt)
        self._last = time_fn()


def retry_delay(retry_after: Optional[str], default: float, now: Optional[datetime] = None) -> float:
    """
    Seconds to wait before retrying, from a ``Retry-After`` header.

    The header holds either a number of seconds or an HTTP date.  A missing
    or unreadable value gives ``default``; a date in the past gives ``0``.
    """
    if not retry_after:
        return default
    try:
        return max(0.0, float(retry_after))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(retry_after)
    except (TypeError, ValueError):
        return default
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - (now or datetime.now(timezone.utc))).total_seconds())


def with_retries(fn: Callable[[], requests.Response], *, max_attempts: int = 5, base_delay: float = 0.7) -> requests.Response:
    """
    Execute a function returning a ``requests.Response``, retrying on
    transient HTTP errors.  Retries are attempted on status codes 429
    (too many requests) and 5xx server errors, and on connection errors.
    Backoff is exponential unless the server sends ``Retry-After``.

    :param fn: A zero-argument callable that performs the HTTP request.
    :param max_attempts: Maximum number of attempts before giving up.
    :param base_delay: Base delay in seconds for exponential backoff.
    :return: The successful ``requests.Response``.
    :raises requests.HTTPError: if all attempts fail or the status is not retryable.
    """
    attempt = 0
    while True:
        try:
            resp = fn()
            resp.raise_for_status()
            return resp
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else 0
            if status not in (429, 500, 502, 503, 504) or attempt >= max_attempts - 1:
                raise
            time.sleep(retry_delay(e.response.headers.get("Retry-After"), base_delay * (2 ** attempt)))
            attempt += 1
        except requests.RequestException:
            if attempt >= max_attempts - 1:
                raise
            time.sleep(base_delay * (2 ** attempt))
            attempt += 1


def status_of(exc: requests.HTTPError) -> int:
    return exc.response.status_code if exc.response is not None else 0


# Post statuses a conversion may touch; trashed and auto-draft posts are left alone.
_DOCUMENT_STATUSES = "publish,future,draft,pending,private"


class WordPressClient:
    """
    Source-side collaborator backed by the WordPress REST API.

    Implements the ``DocumentStore``, ``MediaSource``, ``MediaLibrary`` and
    ``CapabilityChecker`` interfaces.  Backups of replaced gallery markup are
    written to the local report directory rather than to the site.
    """

    def __init__(self, cfg: Dict[str, Any], *, limiter: Optional[RateLimiter] = None) -> None:
        self.site_url = (cfg.get("site_url") or "").rstrip("/")
        self.api_url = f"{self.site_url}/wp-json/wp/v2"
        self.auth = (cfg.get("username") or "", cfg.get("app_password") or "")
        self.timeout = float(cfg.get("timeout", 30))
        self.report_dir = cfg.get("reports_dir") or os.path.join("reports", "conversion")
        self._limiter = limiter or RateLimiter(int(cfg.get("rate_limit_rpm", 180)))
        self._rest_bases: Dict[str, str] = {}
        self._document_bases: Dict[int, str] = {}
        self._capabilities: Optional[Dict[str, bool]] = None

    # -- plumbing -------------------------------------------------------------

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        self._limiter.wait()

        def do_request() -> requests.Response:
            return requests.get(f"{self.api_url}{path}", params=params, auth=self.auth, timeout=self.timeout)

        return with_retries(do_request)

    def _post(self, path: str, payload: Dict[str, Any]) -> requests.Response:
        self._limiter.wait()

        def do_request() -> requests.Response:
            return requests.post(f"{self.api_url}{path}", json=payload, auth=self.auth, timeout=self.timeout)

        return with_retries(do_request)

    def _paginate(self, path: str, params: Dict[str, Any]) -> Iterator[Dict[str, Any]]:
        page = 1
        while True:
            resp = self._get(path, {**params, "per_page": 100, "page": page})
            for item in resp.json():
                yield item
            total_pages = int(resp.headers.get("X-WP-TotalPages", "1") or 1)
            if page >= total_pages:
                return
            page += 1

    def edit_url(self, document_id: int) -> str:
        return f"{self.site_url}/wp-admin/post.php?post={document_id}&action=edit"

    def _to_document(self, data: Dict[str, Any], scope: str) -> Document:
        return Document(
            id=int(data["id"]),
            title=(data.get("title") or {}).get("raw") or "",
            text=(data.get("content") or {}).get("raw") or "",
            scope=data.get("type") or scope,
            edit_url=self.edit_url(int(data["id"])),
        )

    def _rest_base(self, scope: str) -> str:
        if not self._rest_bases:
            self.list_scopes()
        return self._rest_bases.get(scope, scope)

    def _locate(self, document_id: int) -> Dict[str, Any]:
        """Find a post of any type by id, remembering which collection it lives in."""
        bases = [self._document_bases[document_id]] if document_id in self._document_bases else []
        if not self._rest_bases:
            self.list_scopes()
        bases += [b for slug, b in self._rest_bases.items() if slug != "attachment" and b not in bases]
        for base in bases:
            try:
                resp = self._get(f"/{base}/{document_id}", {"context": "edit"})
            except requests.HTTPError as e:
                if status_of(e) in (400, 404):
                    continue
                if status_of(e) in (401, 403):
                    raise PermissionDeniedError("You do not have permission to edit this post.") from e
                raise
            self._document_bases[document_id] = base
            return resp.json()
        raise NotFoundError("Post not found.")

    # -- DocumentStore ------------------------------------------------------

    def load(self, document_id: int) -> Document:
        data = self._locate(document_id)
        return self._to_document(data, data.get("type") or "post")

    def save(self, document_id: int, text: str) -> None:
        base = self._document_bases.get(document_id)
        if base is None:
            self._locate(document_id)
            base = self._document_bases[document_id]
        self._post(f"/{base}/{document_id}", {"content": text})
        logger.info("Saved document %s", document_id)

    def list_documents(self, scope: str) -> List[Document]:
        base = self._rest_base(scope)
        documents: List[Document] = []
        for item in self._paginate(f"/{base}", {"context": "edit", "status": _DOCUMENT_STATUSES}):
            self._document_bases[int(item["id"])] = base
            documents.append(self._to_document(item, scope))
        return documents

    def list_scopes(self) -> List[ScopeInfo]:
        resp = self._get("/types", {"context": "edit"})
        scopes: List[ScopeInfo] = []
        for slug, info in (resp.json() or {}).items():
            rest_base = info.get("rest_base")
            if not rest_base:
                continue
            self._rest_bases[slug] = rest_base
            scopes.append(ScopeInfo(name=slug, label=info.get("name") or slug))
        return scopes

    def store_backup(self, document_id: int, key: str, content: str) -> None:
        write_backup(document_id, key, content, report_dir=self.report_dir)

    # -- MediaSource / MediaLibrary -----------------------------------------

    def _media(self, media_id: int) -> Optional[Dict[str, Any]]:
        try:
            return self._get(f"/media/{media_id}", {"context": "edit"}).json()
        except requests.HTTPError as e:
            if status_of(e) == 404:
                return None
            raise

    def read(self, source_id: int, source_url: Optional[str] = None) -> MediaFile:
        media = self._media(source_id)
        if media is None:
            raise NotFoundError(f"Could not find file for attachment ID {source_id}")
        url = media.get("source_url") or source_url
        if not url:
            raise NotFoundError(f"Could not find file for attachment ID {source_id}")
        filename = os.path.basename((media.get("media_details") or {}).get("file") or urlparse(url).path)

        self._limiter.wait()

        def do_request() -> requests.Response:
            return requests.get(url, auth=self.auth, timeout=self.timeout)

        try:
            resp = with_retries(do_request)
        except requests.HTTPError as e:
            if status_of(e) == 404:
                raise NotFoundError(f"Could not find file for attachment ID {source_id}") from e
            raise
        return MediaFile(filename=filename, data=resp.content)

    def query_child_media(
        self, parent_id: int, include: Optional[List[int]] = None, exclude: Optional[List[int]] = None
    ) -> List[int]:
        params: Dict[str, Any] = {"parent": parent_id, "media_type": "image", "_fields": "id"}
        if include:
            params["include"] = ",".join(str(i) for i in include)
        if exclude:
            params["exclude"] = ",".join(str(i) for i in exclude)
        return [int(item["id"]) for item in self._paginate("/media", params)]

    def get_media_metadata(self, media_id: int) -> Optional[MediaMetadata]:
        media = self._media(media_id)
        if media is None:
            return None
        return MediaMetadata(
            url=media.get("source_url"),
            title=(media.get("title") or {}).get("raw") or "",
            alt=media.get("alt_text") or "",
            caption=(media.get("caption") or {}).get("raw") or "",
            description=(media.get("description") or {}).get("raw") or "",
        )

    # -- CapabilityChecker --------------------------------------------------

    def _user_capabilities(self) -> Dict[str, bool]:
        if self._capabilities is None:
            try:
                data = self._get("/users/me", {"context": "edit"}).json()
            except requests.HTTPError as e:
                logger.warning("Could not read capabilities of the current user: %s", e)
                return {}
            self._capabilities = data.get("capabilities") or {}
        return self._capabilities

    def can_edit(self, document_id: int) -> bool:
        try:
            self._locate(document_id)
        except (NotFoundError, PermissionDeniedError):
            return False
        return True

    def can_edit_scope(self, scope: str) -> bool:
        try:
            self._get(f"/{self._rest_base(scope)}", {"context": "edit", "per_page": 1})
        except requests.HTTPError as e:
            if status_of(e) in (400, 401, 403):
                return False
            raise
        return True

    def can_upload(self) -> bool:
        return bool(self._user_capabilities().get("upload_files"))

    def can_manage(self) -> bool:
        return bool(self._user_capabilities().get("manage_options"))
