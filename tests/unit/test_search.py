"""Tests for dreamboard.ui.search: client-side gallery search.

Tests cover:
- Case-insensitive substring filtering on name and prompt.
- View status, heading and empty-state messages.
- Debounced evaluation against a snapshot fetched once.
- Loading state before the snapshot arrives, and load failures.
- Evaluations racing with ``load()`` on a timer thread.
"""

from __future__ import annotations

import threading

import pytest

from dreamboard.core.errors import DreamboardError, ErrorKind
from dreamboard.core.models import CatalogEntry
from dreamboard.ui.search import SearchClient, SearchStatus, SearchView, filter_catalog

CAT = CatalogEntry(id="1", name="Cat", prompt="a cat", image_url="https://cdn.example.com/1.png")
DOG = CatalogEntry(id="2", name="Dog", prompt="a dog", image_url="https://cdn.example.com/2.png")


@pytest.fixture
def search(manual_scheduler) -> SearchClient:
    """SearchClient with the Cat/Dog snapshot already loaded."""
    client = SearchClient(lambda: [CAT, DOG], delay=0.5, scheduler=manual_scheduler)
    client.load()
    return client


class TestFilterCatalog:
    """Tests for filter_catalog."""

    @pytest.mark.parametrize("query", ["cat", "CAT", "Cat", "cAt"])
    def test_case_insensitive_match(self, query):
        """Any casing of 'cat' matches only the Cat entry."""
        assert filter_catalog([CAT, DOG], query) == [CAT]

    def test_empty_query_keeps_everything(self):
        """An empty query is not a filter."""
        assert filter_catalog([CAT, DOG], "") == [CAT, DOG]

    def test_no_match(self):
        """A query matching nothing returns an empty list."""
        assert filter_catalog([CAT, DOG], "zzz") == []

    def test_matches_prompt_as_well_as_name(self):
        """The prompt text is searched too."""
        entry = CatalogEntry(id="3", name="Ada", prompt="Neon city at night", image_url="u")
        assert filter_catalog([CAT, entry], "neon") == [entry]

    def test_order_preserved(self):
        """Matches keep the snapshot order."""
        entries = [DOG, CAT]
        assert filter_catalog(entries, "a ") == [DOG, CAT]


class TestSearchView:
    """Tests for SearchView presentation properties."""

    def test_heading_only_with_query(self):
        """The results heading appears only while a query is active."""
        assert SearchView(SearchStatus.ALL).heading is None
        assert SearchView(SearchStatus.RESULTS, (CAT,), "cat").heading == "Showing results for cat"

    def test_no_results_message(self):
        view = SearchView(SearchStatus.NO_RESULTS, (), "zzz")
        assert view.empty_message == "No search results found"

    def test_empty_catalog_message(self):
        assert SearchView(SearchStatus.ALL).empty_message == "No posts found"

    def test_results_have_no_empty_message(self):
        assert SearchView(SearchStatus.RESULTS, (CAT,), "cat").empty_message is None


class TestSearchClient:
    """Tests for SearchClient debounced evaluation."""

    def test_load_shows_everything(self, search):
        """After load the full snapshot is shown."""
        assert search.loaded
        assert search.view.status is SearchStatus.ALL
        assert search.view.entries == (CAT, DOG)

    def test_query_narrows_after_quiet_period(self, search, manual_scheduler):
        """The view only changes once the quiet period has elapsed."""
        search.on_input("cat")
        assert search.view.status is SearchStatus.ALL
        manual_scheduler.advance(0.5)
        assert search.view.status is SearchStatus.RESULTS
        assert search.view.entries == (CAT,)

    def test_clearing_query_restores_everything(self, search, manual_scheduler):
        search.on_input("cat")
        manual_scheduler.advance(0.5)
        search.on_input("")
        manual_scheduler.advance(0.5)
        assert search.view.status is SearchStatus.ALL
        assert search.view.entries == (CAT, DOG)

    def test_no_results_indicator(self, search, manual_scheduler):
        """A query with no matches shows the explicit no-results message."""
        search.on_input("zzz")
        manual_scheduler.advance(0.5)
        assert search.view.status is SearchStatus.NO_RESULTS
        assert search.view.entries == ()
        assert search.view.empty_message == "No search results found"

    def test_typing_burst_evaluates_once(self, search, manual_scheduler):
        """Ten keystrokes inside 500ms produce one evaluation of the last value."""
        for prefix in ("c", "ca", "cat", "ca", "c", "d", "do", "dog", "do", "dog"):
            search.on_input(prefix)
            manual_scheduler.advance(0.04)
        manual_scheduler.advance(0.5)
        assert search.evaluations == 1
        assert search.view.query == "dog"
        assert search.view.entries == (DOG,)

    def test_keystrokes_never_refetch(self, manual_scheduler):
        """Filtering works on the cached snapshot only."""
        fetches: list[int] = []

        def loader():
            fetches.append(1)
            return [CAT, DOG]

        client = SearchClient(loader, scheduler=manual_scheduler)
        client.load()
        for query in ("c", "ca", "cat"):
            client.on_input(query)
        manual_scheduler.advance(1)
        assert len(fetches) == 1

    def test_views_are_reported(self, manual_scheduler):
        views: list[SearchView] = []
        client = SearchClient(lambda: [CAT], scheduler=manual_scheduler, on_view=views.append)
        client.load()
        client.on_input("cat")
        client.flush()
        assert [view.status for view in views] == [SearchStatus.ALL, SearchStatus.RESULTS]

    def test_evaluation_before_load_is_loading(self, manual_scheduler):
        """Evaluating before the fetch completes shows the loading state."""
        client = SearchClient(lambda: [CAT], scheduler=manual_scheduler)
        client.on_input("cat")
        manual_scheduler.advance(0.5)
        assert client.view.status is SearchStatus.LOADING

    def test_query_typed_before_load_applies_on_load(self, manual_scheduler):
        """Text entered while loading is applied as soon as the snapshot arrives."""
        client = SearchClient(lambda: [CAT, DOG], scheduler=manual_scheduler)
        client.on_input("dog")
        client.load()
        assert client.view.entries == (DOG,)

    def test_cancel_keeps_current_view(self, search, manual_scheduler):
        search.on_input("zzz")
        search.cancel()
        manual_scheduler.advance(1)
        assert search.view.status is SearchStatus.ALL
        assert search.evaluations == 0


class TestConcurrentLoad:
    """Tests for evaluations running on a timer thread while load() completes."""

    def test_in_flight_loading_view_cannot_overwrite_loaded_snapshot(self):
        """load() waits for an evaluation that is mid-render, then shows its own view."""
        evaluating = threading.Event()
        release = threading.Event()
        statuses: list[SearchStatus] = []

        def on_view(view: SearchView) -> None:
            statuses.append(view.status)
            if view.status is SearchStatus.LOADING:
                evaluating.set()
                release.wait(timeout=2.0)

        client = SearchClient(lambda: [CAT, DOG], delay=0.01, on_view=on_view)
        client.on_input("cat")
        assert evaluating.wait(timeout=2.0)

        loader_thread = threading.Thread(target=client.load)
        loader_thread.start()
        loader_thread.join(timeout=0.1)
        assert loader_thread.is_alive()

        release.set()
        loader_thread.join(timeout=2.0)

        assert not loader_thread.is_alive()
        assert statuses == [SearchStatus.LOADING, SearchStatus.RESULTS]
        assert client.view.status is SearchStatus.RESULTS
        assert client.view.entries == (CAT,)


class TestLoadFailure:
    """Tests for a failed snapshot fetch."""

    def test_failure_leaves_empty_snapshot(self, manual_scheduler):
        """The error is kept and re-raised, and the page shows the empty message."""
        error = DreamboardError(ErrorKind.UPSTREAM_UNAVAILABLE, "server down")

        def loader():
            raise error

        client = SearchClient(loader, scheduler=manual_scheduler)
        with pytest.raises(DreamboardError):
            client.load()

        assert client.load_error is error
        assert client.snapshot == ()
        assert client.view.status is SearchStatus.ALL
        assert client.view.empty_message == "No posts found"


class TestFromConfig:
    """Tests for SearchClient.from_config."""

    def test_delay_from_settings(self, test_config, manual_scheduler):
        """search_debounce_ms sets the quiet period."""
        config = test_config.model_copy(update={"search_debounce_ms": 250})
        client = SearchClient.from_config(lambda: [CAT, DOG], config, scheduler=manual_scheduler)
        client.load()
        client.on_input("dog")
        manual_scheduler.advance(0.2)
        assert client.evaluations == 0
        manual_scheduler.advance(0.1)
        assert client.view.entries == (DOG,)
