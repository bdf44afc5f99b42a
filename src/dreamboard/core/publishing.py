"""Publishing pipeline: generate → upload → persist.

:class:`PublishingService` is the only component that sequences the three
collaborators.  A publish request moves through an explicit state machine::

    IDLE → GENERATING → UPLOADING → PERSISTING → PUBLISHED
              │             │            │
              ▼             ▼            ▼
    FAILED_GENERATION  FAILED_UPLOAD  FAILED_PERSIST

Each stage runs only after the previous one succeeded, so a catalog entry can
never reference an artifact that was not uploaded.  Failures are reported once,
unchanged, and nothing is retried.

Known gap: when persistence fails after a successful upload, the artifact stays
in object storage with no catalog entry pointing at it.  No compensating delete
is attempted; the orphaned URL is logged at WARNING level instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from dreamboard.core.artifact_store import ArtifactStore, decode_image_payload
from dreamboard.core.catalog_db import CatalogRepository
from dreamboard.core.errors import DreamboardError, ErrorKind
from dreamboard.core.generation import GenerationClient
from dreamboard.core.models import CatalogEntry, GeneratedImage, NewCatalogEntry

logger = logging.getLogger(__name__)


class PublishState(str, Enum):
    IDLE = "idle"
    GENERATING = "generating"
    UPLOADING = "uploading"
    PERSISTING = "persisting"
    PUBLISHED = "published"
    FAILED_GENERATION = "failed_generation"
    FAILED_UPLOAD = "failed_upload"
    FAILED_PERSIST = "failed_persist"


TERMINAL_STATES = frozenset(
    {
        PublishState.PUBLISHED,
        PublishState.FAILED_GENERATION,
        PublishState.FAILED_UPLOAD,
        PublishState.FAILED_PERSIST,
    }
)

# Legal transitions; anything else is a programming error.
TRANSITIONS: dict[PublishState, frozenset[PublishState]] = {
    PublishState.IDLE: frozenset({PublishState.GENERATING, PublishState.UPLOADING}),
    PublishState.GENERATING: frozenset({PublishState.UPLOADING, PublishState.FAILED_GENERATION}),
    PublishState.UPLOADING: frozenset({PublishState.PERSISTING, PublishState.FAILED_UPLOAD}),
    PublishState.PERSISTING: frozenset({PublishState.PUBLISHED, PublishState.FAILED_PERSIST}),
}


@dataclass
class PublishAttempt:
    """Outcome of one publish request, returned as a value by :meth:`PublishingService.run`."""

    name: str
    prompt: str
    state: PublishState = PublishState.IDLE
    history: list[PublishState] = field(default_factory=lambda: [PublishState.IDLE])
    image_url: str | None = None
    entry: CatalogEntry | None = None
    error: DreamboardError | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is PublishState.PUBLISHED

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def advance(self, new_state: PublishState) -> None:
        if new_state not in TRANSITIONS.get(self.state, frozenset()):
            raise RuntimeError(f"Illegal publish transition {self.state.value} -> {new_state.value}")
        logger.info(f"Publish '{self.name}': {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.history.append(new_state)

    def fail(self, new_state: PublishState, error: DreamboardError) -> None:
        self.advance(new_state)
        self.error = error


def _require_fields(**fields: str | None) -> None:
    missing = [name for name, value in fields.items() if not (value or "").strip()]
    if missing:
        raise DreamboardError(
            ErrorKind.VALIDATION_FAILED, f"Please provide {' and '.join(missing)}"
        )


class PublishingService:
    """Orchestrate generation, upload and catalog persistence.

    Args:
        generator: Client for the text-to-image model
        store: Object storage for generated artifacts
        repository: Catalog repository
    """

    def __init__(
        self,
        generator: GenerationClient,
        store: ArtifactStore,
        repository: CatalogRepository,
    ):
        self.generator = generator
        self.store = store
        self.repository = repository

    def generate(self, prompt: str) -> GeneratedImage:
        """Run only the generation stage.

        Raises:
            DreamboardError: VALIDATION_FAILED for an empty prompt, otherwise the
                generation failure unchanged
        """
        _require_fields(prompt=prompt)
        return self.generator.generate(prompt)

    def run(self, name: str, prompt: str) -> PublishAttempt:
        """Run the full pipeline and return the attempt, successful or not.

        Raises:
            DreamboardError: VALIDATION_FAILED if ``name`` or ``prompt`` is empty;
                the state machine is not entered in that case.  Stage failures
                are not raised, they are recorded on the returned attempt.
        """
        _require_fields(name=name, prompt=prompt)
        attempt = PublishAttempt(name=name, prompt=prompt)

        attempt.advance(PublishState.GENERATING)
        try:
            image = self.generator.generate(prompt)
        except DreamboardError as exc:
            logger.error(f"Publish '{name}' failed during generation: {exc.kind.value}")
            attempt.fail(PublishState.FAILED_GENERATION, exc)
            return attempt

        self._upload_and_persist(attempt, image.data)
        return attempt

    def publish(self, name: str, prompt: str) -> CatalogEntry:
        """Generate, upload and persist a new gallery entry.

        Returns:
            The persisted CatalogEntry

        Raises:
            DreamboardError: The validation or stage failure that stopped the pipeline
        """
        attempt = self.run(name, prompt)
        if attempt.error is not None:
            raise attempt.error
        return attempt.entry

    def share(self, name: str, prompt: str, image: str) -> CatalogEntry:
        """Add an already-generated image to the catalog.

        ``image`` is either a URL that is already hosted (persisted as-is) or a
        base64 data URI, which is uploaded first.

        Raises:
            DreamboardError: VALIDATION_FAILED for missing fields, otherwise the
                upload or persistence failure
        """
        _require_fields(name=name, prompt=prompt, image=image)
        attempt = PublishAttempt(name=name, prompt=prompt)

        image = image.strip()
        if image.lower().startswith(("http://", "https://")):
            attempt.advance(PublishState.UPLOADING)
            attempt.image_url = image
            self._persist(attempt)
        else:
            try:
                image_bytes = decode_image_payload(image)
            except DreamboardError as exc:
                attempt.advance(PublishState.UPLOADING)
                attempt.fail(PublishState.FAILED_UPLOAD, exc)
                raise
            self._upload_and_persist(attempt, image_bytes)

        if attempt.error is not None:
            raise attempt.error
        return attempt.entry

    def _upload_and_persist(self, attempt: PublishAttempt, image_bytes: bytes) -> None:
        attempt.advance(PublishState.UPLOADING)
        try:
            attempt.image_url = self.store.upload(image_bytes)
        except DreamboardError as exc:
            logger.error(f"Publish '{attempt.name}' failed during upload: {exc.kind.value}")
            attempt.fail(PublishState.FAILED_UPLOAD, exc)
            return

        self._persist(attempt)

    def _persist(self, attempt: PublishAttempt) -> None:
        attempt.advance(PublishState.PERSISTING)
        try:
            attempt.entry = self.repository.create(
                NewCatalogEntry(
                    name=attempt.name,
                    prompt=attempt.prompt,
                    image_url=attempt.image_url,
                )
            )
        except DreamboardError as exc:
            logger.warning(
                f"Publish '{attempt.name}' failed during persistence ({exc.kind.value}); "
                f"artifact {attempt.image_url} is orphaned"
            )
            attempt.fail(PublishState.FAILED_PERSIST, exc)
            return

        attempt.advance(PublishState.PUBLISHED)
        logger.info(f"Published '{attempt.name}' as {attempt.entry.id}")
