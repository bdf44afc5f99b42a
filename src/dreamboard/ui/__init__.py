"""Client-side gallery search for Dreamboard.

The browser holds one snapshot of the catalog per page load and filters it
locally as the user types.  These modules model that behaviour:

- catalog_source.py: fetches the snapshot from ``GET /catalog`` with httpx
- debounce.py: cancel-and-reschedule timer with a single owned handle
- search.py: substring filtering and the loading / results / no-results view
"""

from .catalog_source import fetch_catalog
from .debounce import Debouncer
from .search import SearchClient, SearchStatus, SearchView, filter_catalog

__all__ = [
    "Debouncer",
    "SearchClient",
    "SearchStatus",
    "SearchView",
    "fetch_catalog",
    "filter_catalog",
]
