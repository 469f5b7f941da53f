"""Final prompt construction for the image generator.

The prompt sent to the image model is built in one of two ways:

Raw Requests
------------
``raw`` requests are passed through untouched: the caller's ``details``
*is* the final prompt and no chat call is made.

Templated Requests
------------------
Every other type is enriched by the chat model using the type's
:class:`~imagegen.core.templates.PromptTemplate`::

    system:  [template.system_instruction]
    user:    [template.user_prefix]Details: [details]. User name: [name].

    final:   [template.final_prefix] [chat model output]

The ``Details`` and ``User name`` clauses are only included when the
request carries a non-blank value for them.

Fallback
--------
If the chat call fails in any way the prompt falls back to::

    A [type] image based on: [details or "abstract art"]

so a failed enrichment never fails the request.

Usage
-----
::

    prompt = build_final_prompt(
        request,
        templates,
        text_generator,
        temperature=0.7,
        max_tokens=300,
    )
"""

from __future__ import annotations

import logging

from imagegen.clients.base import Completion, TextGenerator
from imagegen.core.models import GenerationRequest
from imagegen.core.templates import ImageType, PromptTemplate, PromptTemplateSet
from imagegen.errors import TextEnrichmentError

logger = logging.getLogger(__name__)

FALLBACK_SUBJECT = "abstract art"


def _has_text(value: str | None) -> bool:
    return bool(value and value.strip())


def build_user_message(
    template: PromptTemplate,
    details: str | None = None,
    name: str | None = None,
) -> str:
    """Compose the user message sent to the chat model.

    Args:
        template: Template for the request's image type.
        details: Optional scene details from the request.
        name: Optional user name from the request.

    Returns:
        The user prefix followed by the optional details and name clauses.
    """
    message = template.user_prefix
    if _has_text(details):
        message += f"Details: {details}. "
    if _has_text(name):
        message += f"User name: {name}. "
    return message


def fallback_prompt(image_type: ImageType | str, details: str | None = None) -> str:
    """Deterministic prompt used when enrichment fails."""
    type_name = image_type.value if isinstance(image_type, ImageType) else image_type
    subject = details if _has_text(details) else FALLBACK_SUBJECT
    return f"A {type_name} image based on: {subject}"


def resolve_enrichment(
    completion: Completion,
    template: PromptTemplate,
    image_type: ImageType | str,
    details: str | None = None,
) -> str:
    """Turn a chat completion result into the final prompt.

    This is the only place the fallback rule is applied.
    """
    if completion.ok:
        return f"{template.final_prefix} {completion.text.strip()}"

    reason = completion.error or "empty enrichment output"
    logger.warning(f"Prompt enrichment failed, using fallback prompt: {reason}")
    return fallback_prompt(image_type, details)


def build_final_prompt(
    request: GenerationRequest,
    templates: PromptTemplateSet,
    text_generator: TextGenerator,
    *,
    temperature: float,
    max_tokens: int,
) -> str:
    """Produce the prompt that will be sent to the image model.

    Args:
        request: A validated generation request.
        templates: Resolved prompt templates.
        text_generator: Chat collaborator used for enrichment.  Not called
            for ``raw`` requests.
        temperature: Sampling temperature for the enrichment call.
        max_tokens: Output cap for the enrichment call.

    Returns:
        The final prompt string.
    """
    if request.image_type is ImageType.RAW:
        return request.details

    template = templates.get(request.image_type)
    try:
        completion = text_generator.complete(
            template.system_instruction,
            build_user_message(template, request.details, request.name),
            temperature,
            max_tokens,
        )
    except TextEnrichmentError as exc:
        completion = Completion.failure(str(exc))
    return resolve_enrichment(completion, template, request.image_type, request.details)
