"""Newest-first gallery listing."""

from __future__ import annotations

import logging

from dreamboard.core.catalog_db import CatalogRepository
from dreamboard.core.models import CatalogEntry

logger = logging.getLogger(__name__)


class CatalogQueryService:
    """Serve the full catalog, most recently created entry first.

    The repository returns entries in creation order; presentation order is
    decided here.  No filtering happens server-side, search runs on the client
    against its own snapshot.
    """

    def __init__(self, repository: CatalogRepository):
        self.repository = repository

    def list_all(self) -> list[CatalogEntry]:
        entries = self.repository.list_all()
        logger.debug(f"Serving {len(entries)} catalog entries")
        return list(reversed(entries))
