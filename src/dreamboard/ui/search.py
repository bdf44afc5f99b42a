"""Debounced search over a locally cached catalog snapshot."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from dreamboard.core.config import DreamboardConfig
from dreamboard.core.errors import DreamboardError
from dreamboard.core.models import CatalogEntry

from .debounce import Debouncer, Scheduler

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.5


class SearchStatus(str, Enum):
    LOADING = "loading"
    ALL = "all"
    RESULTS = "results"
    NO_RESULTS = "no_results"


@dataclass(frozen=True)
class SearchView:
    """What the gallery area should display."""

    status: SearchStatus
    entries: tuple[CatalogEntry, ...] = ()
    query: str = ""

    @property
    def heading(self) -> str | None:
        if self.query:
            return f"Showing results for {self.query}"
        return None

    @property
    def empty_message(self) -> str | None:
        """Explicit indicator shown instead of an empty grid."""
        if self.status is SearchStatus.NO_RESULTS:
            return "No search results found"
        if self.status is SearchStatus.ALL and not self.entries:
            return "No posts found"
        return None


def filter_catalog(entries: Iterable[CatalogEntry], query: str) -> list[CatalogEntry]:
    """Keep entries whose name or prompt contains ``query`` (case-insensitive).

    An empty query keeps everything.
    """
    needle = query.lower()
    if not needle:
        return list(entries)
    return [
        entry
        for entry in entries
        if needle in entry.name.lower() or needle in entry.prompt.lower()
    ]


class SearchClient:
    """Search field state for the gallery page.

    The snapshot is fetched once with :meth:`load`; keystrokes never trigger a
    fetch.  Each :meth:`on_input` supersedes the previous pending evaluation,
    and only the last one runs after the quiet period.

    Args:
        loader: Returns the catalog snapshot (e.g. ``functools.partial(fetch_catalog, url)``)
        delay: Quiet period in seconds
        scheduler: Delayed-task primitive passed to :class:`Debouncer`
        on_view: Called with every new :class:`SearchView`

    Views are rendered and shown under one lock, both in :meth:`load` and in
    debounced evaluations, which may run on a timer thread.
    """

    def __init__(
        self,
        loader: Callable[[], Sequence[CatalogEntry]],
        *,
        delay: float = DEFAULT_DEBOUNCE_SECONDS,
        scheduler: Scheduler | None = None,
        on_view: Callable[[SearchView], None] | None = None,
    ):
        self.loader = loader
        self.on_view = on_view
        self.snapshot: tuple[CatalogEntry, ...] | None = None
        self.query = ""
        self.evaluations = 0
        self.load_error: DreamboardError | None = None
        self.view = SearchView(SearchStatus.LOADING)
        self._view_lock = threading.RLock()
        self._debouncer: Debouncer[str] = Debouncer(self._evaluate, delay, scheduler)

    @classmethod
    def from_config(
        cls,
        loader: Callable[[], Sequence[CatalogEntry]],
        config: DreamboardConfig,
        **kwargs,
    ) -> SearchClient:
        """Build a client whose quiet period comes from ``search_debounce_ms``."""
        return cls(loader, delay=config.search_debounce_ms / 1000, **kwargs)

    @property
    def loaded(self) -> bool:
        return self.snapshot is not None

    def load(self) -> tuple[CatalogEntry, ...]:
        """Fetch the catalog snapshot (once per page load).

        Raises:
            DreamboardError: If the fetch fails; the snapshot is left empty
        """
        try:
            entries = tuple(self.loader())
        except DreamboardError as exc:
            logger.error(f"Failed to fetch catalog snapshot: {exc.message}")
            with self._view_lock:
                self.load_error = exc
                self.snapshot = ()
                self._show(self._render(self.query))
            raise

        with self._view_lock:
            self.load_error = None
            self.snapshot = entries
            self._show(self._render(self.query))
        logger.info(f"Loaded catalog snapshot with {len(entries)} entries")
        return entries

    def on_input(self, query: str) -> None:
        """Record new search text and (re)schedule the filter evaluation."""
        self.query = query
        self._debouncer.call(query)

    def flush(self) -> bool:
        """Evaluate the pending query immediately instead of waiting."""
        return self._debouncer.flush()

    def cancel(self) -> None:
        self._debouncer.cancel()

    def _evaluate(self, query: str) -> None:
        with self._view_lock:
            self.evaluations += 1
            self._show(self._render(query))

    def _render(self, query: str) -> SearchView:
        if self.snapshot is None:
            return SearchView(SearchStatus.LOADING, (), query)
        if not query:
            return SearchView(SearchStatus.ALL, self.snapshot, query)

        matches = tuple(filter_catalog(self.snapshot, query))
        status = SearchStatus.RESULTS if matches else SearchStatus.NO_RESULTS
        return SearchView(status, matches, query)

    def _show(self, view: SearchView) -> None:
        self.view = view
        if self.on_view is not None:
            self.on_view(view)
