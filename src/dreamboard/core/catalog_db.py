"""SQLAlchemy-backed catalog of published images."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String, Text, create_engine, select
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from dreamboard.core.errors import DreamboardError, ErrorKind
from dreamboard.core.models import CatalogEntry, NewCatalogEntry

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class CatalogRecord(Base):
    """One row per published image.

    ``seq`` is an internal insertion counter that keeps creation order
    stable; ``id`` is the opaque identifier exposed to clients.
    """

    __tablename__ = "catalog_entries"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    prompt: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def to_entry(self) -> CatalogEntry:
        created_at = self.created_at
        if created_at is not None and created_at.tzinfo is None:
            # SQLite stores timestamps without an offset; they are written as UTC.
            created_at = created_at.replace(tzinfo=timezone.utc)
        return CatalogEntry(
            id=self.id,
            name=self.name,
            prompt=self.prompt,
            image_url=self.image_url,
            created_at=created_at,
        )


def create_catalog_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine for ``database_url``.

    In-memory SQLite gets a single shared connection so every session sees the
    same database.

    Raises:
        sqlalchemy.exc.ArgumentError: If the connection string cannot be parsed
    """
    url = make_url(database_url)
    kwargs: dict = {"echo": echo}
    if url.get_backend_name() == "sqlite":
        kwargs["connect_args"] = {"check_same_thread": False}
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


class CatalogRepository:
    """Create and list catalog entries.

    Args:
        engine: SQLAlchemy engine bound to the catalog database
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._sessions = sessionmaker(bind=engine, expire_on_commit=False)

    @classmethod
    def from_url(cls, database_url: str, echo: bool = False) -> CatalogRepository:
        return cls(create_catalog_engine(database_url, echo=echo))

    def init_schema(self) -> None:
        """Create the catalog table if it doesn't exist."""
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            logger.error(f"Failed to initialize catalog schema: {exc}")
            raise DreamboardError(
                ErrorKind.REPOSITORY_UNAVAILABLE, f"Catalog store unavailable: {exc}"
            ) from exc
        logger.info(f"Initialized catalog schema at {self.engine.url.render_as_string()}")

    def create(self, new_entry: NewCatalogEntry) -> CatalogEntry:
        """Persist a new entry and return it with its assigned id.

        The transaction is committed before returning, so the entry is visible
        to every subsequent :meth:`list_all`.

        Raises:
            DreamboardError: REPOSITORY_VALIDATION_FAILED if any field is empty
                (nothing is written), REPOSITORY_UNAVAILABLE on store failure
        """
        missing = new_entry.missing_fields()
        if missing:
            raise DreamboardError(
                ErrorKind.REPOSITORY_VALIDATION_FAILED,
                f"Missing required fields: {', '.join(missing)}",
            )

        record = CatalogRecord(
            id=uuid.uuid4().hex,
            name=new_entry.name,
            prompt=new_entry.prompt,
            image_url=new_entry.image_url,
            created_at=datetime.now(timezone.utc),
        )

        try:
            with self._sessions.begin() as session:
                session.add(record)
                session.flush()
                entry = record.to_entry()
        except SQLAlchemyError as exc:
            logger.error(f"Failed to create catalog entry: {exc}")
            raise DreamboardError(
                ErrorKind.REPOSITORY_UNAVAILABLE, f"Failed to create catalog entry: {exc}"
            ) from exc

        logger.info(f"Catalog entry created with ID: {entry.id}")
        return entry

    def list_all(self) -> list[CatalogEntry]:
        """Return every entry in creation order.

        Raises:
            DreamboardError: REPOSITORY_UNAVAILABLE on store failure
        """
        try:
            with self._sessions() as session:
                records = session.scalars(select(CatalogRecord).order_by(CatalogRecord.seq)).all()
                return [record.to_entry() for record in records]
        except SQLAlchemyError as exc:
            logger.error(f"Failed to list catalog entries: {exc}")
            raise DreamboardError(
                ErrorKind.REPOSITORY_UNAVAILABLE, f"Failed to fetch catalog: {exc}"
            ) from exc
