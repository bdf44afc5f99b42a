"""Domain value types for the publishing pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class CatalogEntry:
    """A published gallery entry.

    Entries are created exactly once by the repository and never mutated, so
    the dataclass is frozen.  ``to_dict()`` produces the wire shape used by the
    HTTP API (``imageUrl`` in camel case, as the browser client expects).
    """

    id: str
    name: str
    prompt: str
    image_url: str
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "prompt": self.prompt,
            "imageUrl": self.image_url,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CatalogEntry:
        """Build an entry from its wire representation.

        Raises:
            KeyError: If ``id``, ``name``, ``prompt`` or ``imageUrl`` is missing
        """
        created_at = data.get("createdAt")
        return cls(
            id=str(data["id"]),
            name=data["name"],
            prompt=data["prompt"],
            image_url=data["imageUrl"],
            created_at=datetime.fromisoformat(created_at) if created_at else None,
        )


@dataclass(frozen=True)
class NewCatalogEntry:
    """Fields supplied by the caller when creating a catalog entry."""

    name: str
    prompt: str
    image_url: str

    def missing_fields(self) -> list[str]:
        """Return the names of fields that are empty or whitespace-only."""
        return [
            field_name
            for field_name in ("name", "prompt", "image_url")
            if not (getattr(self, field_name) or "").strip()
        ]


@dataclass
class GeneratedImage:
    """Raw image bytes held in memory between generation and upload.

    Never persisted: once uploaded the bytes are superseded by the artifact
    URL, and if the upload fails they are simply dropped.
    """

    data: bytes
    prompt: str
    model: str = ""
    revised_prompt: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.data:
            raise ValueError("GeneratedImage requires non-empty image bytes")

    @property
    def size_bytes(self) -> int:
        return len(self.data)
