"""Tests for dreamboard.core.catalog_db: SQLAlchemy catalog repository.

Tests cover:
- ``create`` assigns a fresh id and the entry is immediately listable.
- Empty fields are rejected and nothing is written.
- Store failures surface as REPOSITORY_UNAVAILABLE.
- ``list_all`` returns creation order.
- Timestamps read back identically to what ``create`` returned.
- Entries persist across repository instances on a file database.
"""

from __future__ import annotations

from datetime import timezone

import pytest
from sqlalchemy.exc import OperationalError

from dreamboard.core.catalog_db import Base, CatalogRepository
from dreamboard.core.errors import DreamboardError, ErrorKind
from dreamboard.core.models import NewCatalogEntry


def new_entry(**overrides) -> NewCatalogEntry:
    """Build a valid NewCatalogEntry with optional field overrides."""
    fields = {
        "name": "Ada",
        "prompt": "a lighthouse in a storm, oil painting",
        "image_url": "https://cdn.example.com/dreamboard/abc.png",
    }
    fields.update(overrides)
    return NewCatalogEntry(**fields)


class TestCreate:
    """Tests for CatalogRepository.create."""

    def test_create_assigns_id(self, repository: CatalogRepository):
        """The returned entry carries the input fields plus an id and timestamp."""
        entry = repository.create(new_entry())
        assert entry.id
        assert entry.name == "Ada"
        assert entry.prompt == "a lighthouse in a storm, oil painting"
        assert entry.image_url == "https://cdn.example.com/dreamboard/abc.png"
        assert entry.created_at is not None

    def test_created_entry_visible_in_list(self, repository: CatalogRepository):
        """Exactly one listed entry matches the created id."""
        created = repository.create(new_entry())
        listed = repository.list_all()
        matches = [entry for entry in listed if entry.id == created.id]
        assert len(matches) == 1
        assert matches[0].image_url == created.image_url

    def test_ids_are_unique(self, repository: CatalogRepository):
        ids = {repository.create(new_entry()).id for _ in range(5)}
        assert len(ids) == 5

    @pytest.mark.parametrize("field_name", ["name", "prompt", "image_url"])
    @pytest.mark.parametrize("blank", ["", "   "])
    def test_empty_field_rejected(self, repository: CatalogRepository, field_name, blank):
        """Blank fields raise REPOSITORY_VALIDATION_FAILED and write nothing."""
        with pytest.raises(DreamboardError) as exc_info:
            repository.create(new_entry(**{field_name: blank}))
        assert exc_info.value.kind is ErrorKind.REPOSITORY_VALIDATION_FAILED
        assert field_name in exc_info.value.message
        assert repository.list_all() == []

    def test_store_failure_is_unavailable(self, repository: CatalogRepository):
        """A database error is chained under REPOSITORY_UNAVAILABLE."""
        Base.metadata.drop_all(repository.engine)
        with pytest.raises(DreamboardError) as exc_info:
            repository.create(new_entry())
        assert exc_info.value.kind is ErrorKind.REPOSITORY_UNAVAILABLE
        assert isinstance(exc_info.value.__cause__, OperationalError)


class TestListAll:
    """Tests for CatalogRepository.list_all."""

    def test_empty_catalog(self, repository: CatalogRepository):
        assert repository.list_all() == []

    def test_creation_order(self, repository: CatalogRepository):
        """Entries come back in the order they were created."""
        for name in ("A", "B", "C"):
            repository.create(new_entry(name=name))
        assert [entry.name for entry in repository.list_all()] == ["A", "B", "C"]

    def test_missing_table_is_unavailable(self):
        """Listing before init_schema reports the store as unavailable."""
        repo = CatalogRepository.from_url("sqlite://")
        try:
            with pytest.raises(DreamboardError) as exc_info:
                repo.list_all()
            assert exc_info.value.kind is ErrorKind.REPOSITORY_UNAVAILABLE
        finally:
            repo.engine.dispose()


class TestTimestamps:
    """Tests for created_at as written and as read back."""

    def test_listed_entry_matches_created_entry(self, repository: CatalogRepository):
        """The same entry serialises identically from create and from list_all."""
        created = repository.create(new_entry())
        listed = repository.list_all()[0]
        assert listed.created_at == created.created_at
        assert listed.to_dict() == created.to_dict()

    def test_listed_timestamp_is_utc(self, repository: CatalogRepository):
        repository.create(new_entry())
        listed = repository.list_all()[0]
        assert listed.created_at.tzinfo is not None
        assert listed.created_at.utcoffset() == timezone.utc.utcoffset(None)
        assert listed.to_dict()["createdAt"].endswith("+00:00")


class TestPersistence:
    """Tests for durability on a file-backed database."""

    def test_entries_survive_new_repository(self, temp_dir):
        """A second repository on the same file sees earlier entries."""
        url = f"sqlite:///{temp_dir / 'catalog.db'}"
        first = CatalogRepository.from_url(url)
        first.init_schema()
        created = first.create(new_entry())
        first.engine.dispose()

        second = CatalogRepository.from_url(url)
        try:
            assert [entry.id for entry in second.list_all()] == [created.id]
        finally:
            second.engine.dispose()
