"""Fetch the gallery snapshot from the Dreamboard API."""

from __future__ import annotations

import logging

import httpx

from dreamboard.core.errors import DreamboardError, ErrorKind
from dreamboard.core.models import CatalogEntry

logger = logging.getLogger(__name__)


def fetch_catalog(
    base_url: str,
    *,
    client: httpx.Client | None = None,
    timeout: float = 10.0,
) -> list[CatalogEntry]:
    """Load every catalog entry from ``GET /catalog``.

    The server already returns entries newest first, so the order is kept.

    Args:
        base_url: API root, e.g. ``http://localhost:8000``
        client: Existing httpx client (owned by the caller)
        timeout: Request timeout when a client is created here

    Returns:
        Catalog entries in server order

    Raises:
        DreamboardError: REPOSITORY_UNAVAILABLE when the server reports a 5xx,
            UPSTREAM_UNAVAILABLE for transport errors, other error statuses or
            a malformed body
    """
    url = f"{base_url.rstrip('/')}/catalog"
    owns_client = client is None
    http = client or httpx.Client(timeout=timeout)

    try:
        response = http.get(url, headers={"Content-Type": "application/json"})
    except httpx.HTTPError as exc:
        logger.error(f"Error fetching catalog from {url}: {exc}")
        raise DreamboardError(
            ErrorKind.UPSTREAM_UNAVAILABLE,
            "Failed to fetch posts. Please check if the server is running.",
        ) from exc
    finally:
        if owns_client:
            http.close()

    if response.is_error:
        try:
            message = response.json().get("message") or response.reason_phrase
        except (ValueError, AttributeError):
            message = response.reason_phrase
        logger.error(f"Failed to fetch catalog: {response.status_code} {message}")
        kind = (
            ErrorKind.REPOSITORY_UNAVAILABLE
            if response.status_code >= 500
            else ErrorKind.UPSTREAM_UNAVAILABLE
        )
        raise DreamboardError(kind, message, code=str(response.status_code))

    try:
        payload = response.json()
        return [CatalogEntry.from_dict(item) for item in payload.get("data") or []]
    except (ValueError, KeyError, TypeError, AttributeError) as exc:
        raise DreamboardError(
            ErrorKind.UPSTREAM_UNAVAILABLE, f"Malformed catalog response: {exc}"
        ) from exc
