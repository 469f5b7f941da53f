"""OpenAI-backed text and image generation collaborators.

Both classes wrap a single :class:`openai.OpenAI` client created by
:func:`create_openai_client`.  The client is built with ``max_retries=0``:
a failed call fails the request (image generation) or triggers the
fallback prompt (text enrichment), it is never retried here.

Image Format
------------
Images are requested as base64 and always stored as JPEG, which is what the
retrieval endpoint advertises.  Pillow re-encodes PNG (or any other format
the API returns) before the bytes leave this module.
"""

from __future__ import annotations

import base64
import binascii
import io
import logging

from openai import APIStatusError, OpenAI, OpenAIError
from PIL import Image, UnidentifiedImageError

from imagegen.clients.base import Completion, ImageGenerator, TextGenerator
from imagegen.core.config import ImageGenConfig
from imagegen.errors import UpstreamGenerationError

logger = logging.getLogger(__name__)

JPEG_QUALITY = 95


def create_openai_client(config: ImageGenConfig) -> OpenAI:
    """Build the OpenAI client shared by both collaborators.

    Args:
        config: Application configuration (API key, base URL, timeout).

    Returns:
        A configured client with automatic retries disabled.
    """
    return OpenAI(
        api_key=config.openai_api_key,
        base_url=config.openai_base_url,
        timeout=config.request_timeout,
        max_retries=0,
    )


class OpenAITextGenerator(TextGenerator):
    """Prompt enrichment through the chat completions API."""

    def __init__(self, client: OpenAI, model: str) -> None:
        self._client = client
        self._model = model

    def complete(
        self,
        system_instruction: str,
        user_message: str,
        temperature: float,
        max_tokens: int,
    ) -> Completion:
        try:
            response = self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": system_instruction},
                    {"role": "user", "content": user_message},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except OpenAIError as exc:
            logger.warning(f"Chat completion failed: {exc}")
            return Completion.failure(str(exc))
        except Exception as exc:
            # Transport errors the SDK does not wrap (httpx, ssl, ...).
            logger.exception("Chat completion failed unexpectedly")
            return Completion.failure(f"{type(exc).__name__}: {exc}")

        choices = getattr(response, "choices", None) or []
        if not choices:
            return Completion.failure("Chat completion returned no choices")

        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None)
        if not isinstance(content, str) or not content.strip():
            return Completion.failure("Chat completion returned empty content")

        return Completion.success(content.strip())


class OpenAIImageGenerator(ImageGenerator):
    """Image generation through the images API."""

    def __init__(self, client: OpenAI, model: str) -> None:
        self._client = client
        self._model = model

    def generate(self, prompt: str, size: str, quality: str) -> bytes:
        logger.info(
            f"Requesting image generation: model={self._model}, size={size}, "
            f"prompt='{prompt[:100]}...'"
        )

        try:
            result = self._client.images.generate(
                model=self._model,
                prompt=prompt,
                size=size,
                quality=quality,
                n=1,
                response_format="b64_json",
            )
        except APIStatusError as exc:
            # Upstream payload is surfaced verbatim.
            body = exc.response.text if exc.response is not None else str(exc)
            logger.error(f"Image API error {exc.status_code}: {body}")
            raise UpstreamGenerationError(body, status_code=exc.status_code) from exc
        except OpenAIError as exc:
            logger.error(f"Image API call failed: {exc}")
            raise UpstreamGenerationError(str(exc)) from exc

        entries = getattr(result, "data", None) or []
        encoded = getattr(entries[0], "b64_json", None) if entries else None
        if not encoded:
            raise UpstreamGenerationError("No image data returned from the image API")

        try:
            raw = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise UpstreamGenerationError("Image API returned invalid base64 data") from exc

        return to_jpeg(raw)


def to_jpeg(raw: bytes) -> bytes:
    """Return *raw* image bytes encoded as JPEG.

    JPEG input is returned unchanged.

    Raises:
        UpstreamGenerationError: If *raw* is not a readable image.
    """
    try:
        with Image.open(io.BytesIO(raw)) as image:
            if image.format == "JPEG":
                return raw
            buffer = io.BytesIO()
            image.convert("RGB").save(buffer, format="JPEG", quality=JPEG_QUALITY)
    except (UnidentifiedImageError, OSError) as exc:
        raise UpstreamGenerationError("Image API returned data that is not an image") from exc
    return buffer.getvalue()
