"""Shared pytest fixtures for image generation service tests."""

from __future__ import annotations

import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from imagegen.api.main import create_app
from imagegen.clients.base import ArtifactStore, Completion, ImageGenerator, TextGenerator
from imagegen.clients.storage import LocalArtifactStore
from imagegen.core.config import ImageGenConfig
from imagegen.core.pipeline import Services
from imagegen.core.templates import PromptTemplateSet
from imagegen.errors import StorageError

FAKE_IMAGE_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00fake-jpeg-payload\xff\xd9"
ALLOWED_SIZES = ("1024x1024", "1792x1024", "1024x1792")


# ---------------------------------------------------------------------------
# Collaborator fakes.
# ---------------------------------------------------------------------------


class FakeTextGenerator(TextGenerator):
    """Chat collaborator that records calls and returns a canned result.

    Set ``error`` to make it report a failure, or ``raises`` to make it raise.
    """

    def __init__(self, text: str = "a lighthouse on a rocky cliff at dusk") -> None:
        self.text = text
        self.error: str | None = None
        self.raises: Exception | None = None
        self.calls: list[dict] = []

    def complete(self, system_instruction, user_message, temperature, max_tokens):
        self.calls.append(
            {
                "system_instruction": system_instruction,
                "user_message": user_message,
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
        )
        if self.raises is not None:
            raise self.raises
        if self.error is not None:
            return Completion.failure(self.error)
        return Completion.success(self.text)


class FakeImageGenerator(ImageGenerator):
    """Image collaborator that records prompts and returns fixed bytes."""

    def __init__(self, data: bytes = FAKE_IMAGE_BYTES) -> None:
        self.data = data
        self.raises: Exception | None = None
        self.calls: list[dict] = []

    def generate(self, prompt, size, quality):
        self.calls.append({"prompt": prompt, "size": size, "quality": quality})
        if self.raises is not None:
            raise self.raises
        return self.data


class FailingStore(ArtifactStore):
    """Artifact store whose every operation fails."""

    def create_namespace_if_absent(self, namespace):
        raise StorageError("connection refused by storage account")

    def namespace_exists(self, namespace):
        raise StorageError("connection refused by storage account")

    def write(self, namespace, key, data):
        raise StorageError("connection refused by storage account")

    def exists(self, namespace, key):
        raise StorageError("connection refused by storage account")

    def read(self, namespace, key):
        raise StorageError("connection refused by storage account")


# ---------------------------------------------------------------------------
# Fixtures.
# ---------------------------------------------------------------------------


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
def test_config(temp_dir: Path) -> ImageGenConfig:
    """Create a test configuration using the local storage backend.

    Args:
        temp_dir: Temporary directory from fixture

    Returns:
        ImageGenConfig instance for testing
    """
    return ImageGenConfig(
        _env_file=None,
        openai_api_key="sk-test",
        storage_backend="local",
        storage_dir=str(temp_dir / "storage"),
        allowed_sizes=list(ALLOWED_SIZES),
        default_size="1024x1024",
    )


@pytest.fixture
def text_generator() -> FakeTextGenerator:
    return FakeTextGenerator()


@pytest.fixture
def image_generator() -> FakeImageGenerator:
    return FakeImageGenerator()


@pytest.fixture
def store(temp_dir: Path) -> LocalArtifactStore:
    root = temp_dir / "artifacts"
    root.mkdir()
    return LocalArtifactStore(root)


@pytest.fixture
def templates() -> PromptTemplateSet:
    return PromptTemplateSet.from_overrides()


@pytest.fixture
def services(text_generator, image_generator, store, templates) -> Services:
    """Services bundle wired to fakes and a temporary local store."""
    return Services(
        text_generator=text_generator,
        image_generator=image_generator,
        store=store,
        templates=templates,
        allowed_sizes=ALLOWED_SIZES,
        default_size="1024x1024",
        image_quality="standard",
        enrichment_temperature=0.7,
        enrichment_max_tokens=300,
    )


@pytest.fixture
def test_client(services: Services) -> Generator[TestClient, None, None]:
    """FastAPI TestClient for an app using the fake services."""
    with TestClient(create_app(services)) as client:
        yield client


@pytest.fixture
def failing_store() -> FailingStore:
    return FailingStore()
