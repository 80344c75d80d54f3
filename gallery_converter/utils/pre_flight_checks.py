from __future__ import annotations

import logging
from typing import Any, Dict

import requests

logger = logging.getLogger(__name__)


class PreFlightCheckError(Exception):
    """Custom exception for pre-flight check failures."""
    pass


def run_pre_flight_checks(config: Dict[str, Any]) -> None:
    """
    Verifies that both ends of the conversion are reachable with the configured credentials.

    Args:
        config: The application configuration dictionary.

    Raises:
        PreFlightCheckError: If any check fails.
    """
    logger.info("Running pre-flight checks...")

    wp = config.get("wordpress", {})
    site_url = (wp.get("site_url") or "").rstrip("/")
    if not site_url:
        raise PreFlightCheckError("WordPress site URL ('wordpress.site_url') is not configured.")
    if not wp.get("username") or not wp.get("app_password"):
        raise PreFlightCheckError("WordPress username and application password are required.")

    # Check 1: credentials and upload capability
    me_url = f"{site_url}/wp-json/wp/v2/users/me"
    try:
        response = requests.get(
            me_url, params={"context": "edit"}, auth=(wp["username"], wp["app_password"]), timeout=10
        )
        response.raise_for_status()
    except requests.HTTPError as e:
        if e.response is not None and e.response.status_code == 401:
            raise PreFlightCheckError("The WordPress application password is invalid or has been revoked.")
        raise PreFlightCheckError(f"Unexpected error while checking the WordPress users API: {e}")
    except requests.RequestException as e:
        raise PreFlightCheckError(f"Network error while connecting to the WordPress REST API: {e}")

    capabilities = response.json().get("capabilities") or {}
    if not capabilities.get("upload_files"):
        raise PreFlightCheckError("The configured WordPress user cannot upload files.")

    # Check 2: catalog reachability
    catalog = config.get("catalog", {})
    base_url = (catalog.get("base_url") or "").rstrip("/")
    if not base_url:
        raise PreFlightCheckError("Gallery catalog URL ('catalog.base_url') is not configured.")
    headers = {"Authorization": f"Bearer {catalog['token']}"} if catalog.get("token") else {}
    try:
        response = requests.get(f"{base_url}/galleries", headers=headers, timeout=10)
        response.raise_for_status()
    except requests.HTTPError as e:
        if e.response is not None and e.response.status_code in (401, 403):
            raise PreFlightCheckError("The gallery catalog rejected the configured token.")
        raise PreFlightCheckError(f"Unexpected error while checking the gallery catalog: {e}")
    except requests.RequestException as e:
        raise PreFlightCheckError(f"Network error while connecting to the gallery catalog: {e}")

    logger.info("Pre-flight checks passed successfully.")
