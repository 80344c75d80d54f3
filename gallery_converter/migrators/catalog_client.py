"""
HTTP client for the target gallery catalog.

The catalog exposes galleries and their images as JSON resources::

    POST   /galleries                  {"title": ...}          -> {"gallery": {...}}
    PUT    /galleries/{id}             {"title", "preview_media_id"}
    DELETE /galleries/{id}
    POST   /galleries/{id}/images      multipart "file"        -> {"image": {...}}
    GET    /images/{id}                                        -> {"image": {...}}
    PUT    /images/{id}                {image fields}

Rate limiting and retries reuse the helpers from :mod:`.wordpress_client`.
"""

from __future__ import annotations

import logging
import mimetypes
from typing import Any, Dict, Optional

import requests

from gallery_converter.models.conversion import GalleryRecord, MediaRecord
from gallery_converter.utils.errors import NotFoundError

from .wordpress_client import RateLimiter, status_of, with_retries

logger = logging.getLogger(__name__)


def catalog_headers(cfg: Dict[str, Any]) -> Dict[str, str]:
    """
    Construct the default headers for catalog requests.

    :param cfg: A configuration dictionary with an optional ``token``.
    :return: A dictionary of headers including Authorization when a token is set.
    """
    token = cfg.get("token")
    return {"Authorization": f"Bearer {token}"} if token else {}


class CatalogClient:
    """Target-side ``GalleryCatalog`` implementation."""

    def __init__(self, cfg: Dict[str, Any], *, limiter: Optional[RateLimiter] = None) -> None:
        self.cfg = cfg
        self.base_url = (cfg.get("base_url") or "").rstrip("/")
        self.timeout = float(cfg.get("timeout", 60))
        self._limiter = limiter or RateLimiter(int(cfg.get("rate_limit_rpm", 180)))

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        self._limiter.wait()

        def do_request() -> requests.Response:
            return requests.request(
                method,
                f"{self.base_url}{path}",
                headers=catalog_headers(self.cfg),
                timeout=self.timeout,
                **kwargs,
            )

        return with_retries(do_request)

    def create_gallery(self, title: str) -> GalleryRecord:
        resp = self._request("POST", "/galleries", json={"title": title})
        return GalleryRecord(**resp.json().get("gallery", {}))

    def delete_gallery(self, gallery_id: int) -> None:
        self._request("DELETE", f"/galleries/{gallery_id}")

    def save_gallery(self, record: GalleryRecord) -> None:
        self._request("PUT", f"/galleries/{record.id}", json=record.model_dump(exclude={"id"}))

    def upload_media(self, gallery_id: int, filename: str, data: bytes) -> Optional[int]:
        """
        Upload one file into a gallery.

        :return: The catalog id of the new image, or ``None`` on error.
        """
        mime = mimetypes.guess_type(filename)[0] or "application/octet-stream"
        try:
            resp = self._request("POST", f"/galleries/{gallery_id}/images", files={"file": (filename, data, mime)})
        except requests.RequestException as e:
            logger.error("Failed to upload %s to gallery %s: %s", filename, gallery_id, e)
            return None
        return (resp.json().get("image") or {}).get("id")

    def get_media(self, media_id: int) -> MediaRecord:
        try:
            resp = self._request("GET", f"/images/{media_id}")
        except requests.HTTPError as e:
            if status_of(e) == 404:
                raise NotFoundError(f"Image {media_id} not found in catalog") from e
            raise
        return MediaRecord(**resp.json().get("image", {}))

    def save_media(self, record: MediaRecord) -> None:
        self._request("PUT", f"/images/{record.id}", json=record.model_dump(exclude={"id"}))
