"""External collaborators: chat completion, image generation and artifact storage."""

from imagegen.clients.base import ArtifactStore, Completion, ImageGenerator, TextGenerator

__all__ = ["ArtifactStore", "Completion", "ImageGenerator", "TextGenerator"]
