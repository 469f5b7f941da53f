"""Interfaces for the external collaborators used by the pipeline.

The pipeline only ever talks to these abstract classes.  Concrete
implementations live next to this module:

- :mod:`imagegen.clients.openai_clients` - chat completion and image
  generation through the OpenAI API.
- :mod:`imagegen.clients.storage` - Azure Blob Storage and a local
  file-backed artifact store.

Tests substitute small in-memory fakes for all three.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Completion:
    """Result of one text-generation call.

    Exactly one of ``text`` and ``error`` is set.  Callers check
    :attr:`ok` instead of catching exceptions; a success whose text is
    blank does not count as ok.
    """

    text: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return bool(self.text and self.text.strip())

    @classmethod
    def success(cls, text: str) -> Completion:
        return cls(text=text)

    @classmethod
    def failure(cls, error: str) -> Completion:
        return cls(error=error)


class TextGenerator(ABC):
    """Turns a system instruction and user message into a short text."""

    @abstractmethod
    def complete(
        self,
        system_instruction: str,
        user_message: str,
        temperature: float,
        max_tokens: int,
    ) -> Completion:
        """Run one completion.

        Implementations report API or response-shape failures as
        :meth:`Completion.failure`.  Raising
        :class:`~imagegen.errors.TextEnrichmentError` is treated the same
        way by the prompt builder.
        """


class ImageGenerator(ABC):
    """Turns a final prompt into raw image bytes."""

    @abstractmethod
    def generate(self, prompt: str, size: str, quality: str) -> bytes:
        """Generate one image.

        Raises:
            UpstreamGenerationError: If the upstream API rejects or fails
                the request.  ``body`` carries the upstream payload.
        """


class ArtifactStore(ABC):
    """Persists image bytes under ``{namespace}/{key}``.

    Every method raises :class:`~imagegen.errors.StorageError` when the
    backend fails.  :meth:`create_namespace_if_absent` must be safe to call
    concurrently for the same namespace.
    """

    @abstractmethod
    def create_namespace_if_absent(self, namespace: str) -> None:
        """Make sure *namespace* can be written to."""

    @abstractmethod
    def namespace_exists(self, namespace: str) -> bool:
        """Return ``True`` if anything has been stored under *namespace*."""

    @abstractmethod
    def write(self, namespace: str, key: str, data: bytes) -> None:
        """Store *data*, replacing any existing artifact with the same key."""

    @abstractmethod
    def exists(self, namespace: str, key: str) -> bool:
        """Return ``True`` if the artifact exists."""

    @abstractmethod
    def read(self, namespace: str, key: str) -> bytes:
        """Return the stored bytes."""
