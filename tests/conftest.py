"""Shared pytest fixtures for Dreamboard tests."""

from __future__ import annotations

import shutil
import tempfile
from collections.abc import Callable, Generator
from io import BytesIO
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from dreamboard.api.main import create_app
from dreamboard.core.catalog_db import CatalogRepository
from dreamboard.core.config import DreamboardConfig
from dreamboard.core.errors import DreamboardError
from dreamboard.core.models import GeneratedImage
from dreamboard.core.services import ServiceHandles


def make_png(width: int = 4, height: int = 4, color: str = "purple") -> bytes:
    """Encode a tiny solid-colour PNG."""
    buffer = BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


class FakeGenerationClient:
    """Stand-in for GenerationClient that records prompts."""

    def __init__(self, image_bytes: bytes | None = None, error: DreamboardError | None = None):
        self.image_bytes = image_bytes or make_png()
        self.error = error
        self.prompts: list[str] = []

    def generate(self, prompt: str) -> GeneratedImage:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return GeneratedImage(data=self.image_bytes, prompt=prompt, model="fake")


class FakeArtifactStore:
    """Stand-in for ArtifactStore that records uploads."""

    def __init__(self, error: DreamboardError | None = None):
        self.error = error
        self.uploads: list[bytes] = []

    def upload(self, image_bytes: bytes) -> str:
        self.uploads.append(image_bytes)
        if self.error is not None:
            raise self.error
        return f"https://cdn.example.com/dreamboard/{len(self.uploads)}.png"


class ManualTimer:
    def __init__(self, scheduler: ManualScheduler, due: float, callback: Callable[[], None]):
        self.scheduler = scheduler
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Deterministic delayed-task primitive; time only moves via ``advance``."""

    def __init__(self):
        self.now = 0.0
        self.timers: list[ManualTimer] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(self, self.now + delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def active(self) -> list[ManualTimer]:
        return [timer for timer in self.timers if not timer.cancelled]

    def advance(self, seconds: float) -> None:
        self.now += seconds
        for timer in list(self.timers):
            if not timer.cancelled and timer.due <= self.now:
                timer.cancelled = True
                timer.callback()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(monkeypatch) -> DreamboardConfig:
    """Create a fully populated configuration that ignores the environment.

    Returns:
        DreamboardConfig instance for testing
    """
    for name in (
        "DREAMBOARD_IMAGE_MODEL",
        "DREAMBOARD_STORAGE_FOLDER",
        "DREAMBOARD_SERVER_PORT",
        "DREAMBOARD_SEARCH_DEBOUNCE_MS",
    ):
        monkeypatch.delenv(name, raising=False)

    return DreamboardConfig(
        openai_api_key="sk-test-key",
        storage_bucket="dreamboard-test",
        storage_access_key_id="AKIATEST",
        storage_secret_access_key="secret",
        database_url="sqlite://",
        _env_file=None,
    )


@pytest.fixture
def png_bytes() -> bytes:
    return make_png()


@pytest.fixture
def repository() -> Generator[CatalogRepository, None, None]:
    """In-memory SQLite catalog with the schema created."""
    repo = CatalogRepository.from_url("sqlite://")
    repo.init_schema()
    try:
        yield repo
    finally:
        repo.engine.dispose()


@pytest.fixture
def fake_generator() -> FakeGenerationClient:
    return FakeGenerationClient()


@pytest.fixture
def fake_store() -> FakeArtifactStore:
    return FakeArtifactStore()


@pytest.fixture
def manual_scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def services(fake_generator, fake_store, repository) -> ServiceHandles:
    return ServiceHandles.from_collaborators(fake_generator, fake_store, repository)


@pytest.fixture
def test_client(services) -> Generator[TestClient, None, None]:
    """TestClient over an app wired with fakes and an in-memory catalog."""
    with TestClient(create_app(services)) as client:
        yield client


@pytest.fixture
def generator_factory() -> type[FakeGenerationClient]:
    """Build extra fake generators, e.g. ``generator_factory(error=...)``."""
    return FakeGenerationClient


@pytest.fixture
def store_factory() -> type[FakeArtifactStore]:
    """Build extra fake stores, e.g. ``store_factory(error=...)``."""
    return FakeArtifactStore
