"""Generation and retrieval pipelines.

Both pipelines are plain functions that receive every collaborator through
an immutable :class:`Services` bundle.  The bundle is built once at
application startup (see :func:`build_services`) and passed in on each
call; nothing here keeps state between requests.

Generation::

    validated request
        -> build_final_prompt   (chat call, skipped for raw)
        -> image_generator.generate
        -> store.create_namespace_if_absent + store.write
        -> GeneratedArtifact

Retrieval::

    (group, id) -> store.namespace_exists -> store.exists -> store.read
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from imagegen.clients.base import ArtifactStore, ImageGenerator, TextGenerator
from imagegen.core.config import ImageGenConfig
from imagegen.core.models import GeneratedArtifact, GenerationRequest
from imagegen.core.prompt_builder import build_final_prompt
from imagegen.core.templates import PromptTemplateSet
from imagegen.errors import NotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Services:
    """Collaborators and settings used by the pipelines.

    Attributes:
        text_generator: Chat collaborator used for prompt enrichment.
        image_generator: Image collaborator.
        store: Artifact store.
        templates: Resolved prompt templates.
        allowed_sizes: Sizes the image collaborator accepts.
        default_size: Size used when a request omits one.
        image_quality: Quality passed to the image collaborator.
        enrichment_temperature: Sampling temperature for enrichment.
        enrichment_max_tokens: Output cap for enrichment.
    """

    text_generator: TextGenerator
    image_generator: ImageGenerator
    store: ArtifactStore
    templates: PromptTemplateSet
    allowed_sizes: tuple[str, ...]
    default_size: str
    image_quality: str = "standard"
    enrichment_temperature: float = 0.7
    enrichment_max_tokens: int = 300


def build_services(config: ImageGenConfig) -> Services:
    """Construct the production collaborators from configuration.

    Args:
        config: Application configuration.

    Returns:
        A ready-to-use :class:`Services` bundle.

    Raises:
        ValueError: If the configured prompt templates are incomplete.
    """
    from imagegen.clients.openai_clients import (
        OpenAIImageGenerator,
        OpenAITextGenerator,
        create_openai_client,
    )
    from imagegen.clients.storage import AzureBlobArtifactStore, LocalArtifactStore

    client = create_openai_client(config)

    if config.storage_backend == "local":
        store: ArtifactStore = LocalArtifactStore(config.storage_dir)
    else:
        store = AzureBlobArtifactStore.from_connection_string(
            config.storage_connection_string, config.storage_container
        )

    return Services(
        text_generator=OpenAITextGenerator(client, config.chat_model),
        image_generator=OpenAIImageGenerator(client, config.image_model),
        store=store,
        templates=PromptTemplateSet.from_overrides(config.templates),
        allowed_sizes=tuple(config.allowed_sizes),
        default_size=config.default_size,
        image_quality=config.image_quality,
        enrichment_temperature=config.enrichment_temperature,
        enrichment_max_tokens=config.enrichment_max_tokens,
    )


def generate_image(request: GenerationRequest, services: Services) -> GeneratedArtifact:
    """Run the generation pipeline for one validated request.

    Args:
        request: The validated request.
        services: Collaborator bundle.

    Returns:
        The stored artifact.

    Raises:
        UpstreamGenerationError: If the image collaborator fails.
        StorageError: If the artifact could not be stored.
    """
    request_id = str(uuid.uuid4())
    logger.info(
        f"Generating image {request_id} (group={request.group}, "
        f"type={request.image_type.value}, size={request.size})"
    )

    final_prompt = build_final_prompt(
        request,
        services.templates,
        services.text_generator,
        temperature=services.enrichment_temperature,
        max_tokens=services.enrichment_max_tokens,
    )
    logger.info(f"Final prompt for {request_id}: '{final_prompt[:100]}'")

    image_bytes = services.image_generator.generate(
        final_prompt, request.size, services.image_quality
    )

    services.store.create_namespace_if_absent(request.group)
    services.store.write(request.group, request_id, image_bytes)
    logger.info(f"Stored image {request_id} in group '{request.group}'")

    return GeneratedArtifact(
        request_id=request_id,
        group=request.group,
        final_prompt=final_prompt,
        image_bytes=image_bytes,
    )


def fetch_image(group: str, image_id: str, services: Services) -> bytes:
    """Return the stored bytes for ``(group, image_id)``.

    Raises:
        NotFoundError: If the group, or the image within it, does not exist.
        StorageError: On any other storage failure.
    """
    namespace = group.lower()
    store = services.store

    if not store.namespace_exists(namespace):
        raise NotFoundError(f"Group '{group}' not found")

    if not store.exists(namespace, image_id):
        raise NotFoundError(f"Image '{image_id}' not found in group '{group}'")

    return store.read(namespace, image_id)
