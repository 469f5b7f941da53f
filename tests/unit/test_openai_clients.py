"""Tests for imagegen.clients.openai_clients - chat and image collaborators.

All tests use a mocked ``OpenAI`` client so no network access occurs.
Tests cover:

- Successful completions and every failure shape being reported as a
  ``Completion.failure`` instead of raised.
- Image payload decoding and JPEG conversion.
- Upstream error payloads being preserved verbatim.
"""

from __future__ import annotations

import base64
import io
from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import pytest
from openai import APIConnectionError, BadRequestError
from PIL import Image

from imagegen.clients.openai_clients import (
    OpenAIImageGenerator,
    OpenAITextGenerator,
    create_openai_client,
    to_jpeg,
)
from imagegen.core.models import GenerationRequest
from imagegen.core.prompt_builder import build_final_prompt
from imagegen.core.templates import ImageType
from imagegen.errors import UpstreamGenerationError

# ---------------------------------------------------------------------------
# Shared helpers.
# ---------------------------------------------------------------------------

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/images/generations")


def _image_bytes(fmt: str) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color=(200, 30, 30)).save(buffer, format=fmt)
    return buffer.getvalue()


def _chat_response(content) -> SimpleNamespace:
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
    )


def _images_response(b64) -> SimpleNamespace:
    return SimpleNamespace(data=[SimpleNamespace(b64_json=b64)])


# ---------------------------------------------------------------------------
# Text generation.
# ---------------------------------------------------------------------------


class TestOpenAITextGenerator:
    """Test OpenAITextGenerator."""

    def test_success(self):
        client = MagicMock()
        client.chat.completions.create.return_value = _chat_response("  a fox in snow \n")
        generator = OpenAITextGenerator(client, "gpt-4o-mini")

        completion = generator.complete("system", "user", 0.7, 300)

        assert completion.ok
        assert completion.text == "a fox in snow"

    def test_request_shape(self):
        client = MagicMock()
        client.chat.completions.create.return_value = _chat_response("ok")
        generator = OpenAITextGenerator(client, "gpt-4o-mini")

        generator.complete("Be brief.", "Describe a fox.", 0.5, 120)

        client.chat.completions.create.assert_called_once_with(
            model="gpt-4o-mini",
            messages=[
                {"role": "system", "content": "Be brief."},
                {"role": "user", "content": "Describe a fox."},
            ],
            temperature=0.5,
            max_tokens=120,
        )

    def test_api_error_is_reported(self):
        client = MagicMock()
        client.chat.completions.create.side_effect = APIConnectionError(request=_REQUEST)
        generator = OpenAITextGenerator(client, "gpt-4o-mini")

        completion = generator.complete("system", "user", 0.7, 300)

        assert not completion.ok
        assert completion.error

    @pytest.mark.parametrize(
        "error",
        [httpx.ReadError("connection reset", request=_REQUEST), TimeoutError("read timed out")],
    )
    def test_unwrapped_transport_error_is_reported(self, error):
        """Errors raised outside the SDK's own hierarchy still become failures."""
        client = MagicMock()
        client.chat.completions.create.side_effect = error
        generator = OpenAITextGenerator(client, "gpt-4o-mini")

        completion = generator.complete("system", "user", 0.7, 300)

        assert not completion.ok
        assert type(error).__name__ in completion.error

    def test_unwrapped_error_falls_back_to_synthetic_prompt(self, templates):
        client = MagicMock()
        client.chat.completions.create.side_effect = httpx.ReadError(
            "connection reset", request=_REQUEST
        )
        request = GenerationRequest(
            group="demo", image_type=ImageType.COLOR, size="1024x1024", details="a parrot"
        )

        prompt = build_final_prompt(
            request,
            templates,
            OpenAITextGenerator(client, "gpt-4o-mini"),
            temperature=0.7,
            max_tokens=300,
        )

        assert prompt == "A color image based on: a parrot"

    @pytest.mark.parametrize(
        "response",
        [
            SimpleNamespace(choices=[]),
            SimpleNamespace(),
            _chat_response(None),
            _chat_response("   "),
            SimpleNamespace(choices=[SimpleNamespace(message=None)]),
        ],
    )
    def test_malformed_or_empty_response_is_reported(self, response):
        client = MagicMock()
        client.chat.completions.create.return_value = response
        generator = OpenAITextGenerator(client, "gpt-4o-mini")

        completion = generator.complete("system", "user", 0.7, 300)

        assert not completion.ok


# ---------------------------------------------------------------------------
# Image generation.
# ---------------------------------------------------------------------------


class TestOpenAIImageGenerator:
    """Test OpenAIImageGenerator."""

    def test_request_shape(self):
        client = MagicMock()
        client.images.generate.return_value = _images_response(
            base64.b64encode(_image_bytes("JPEG")).decode()
        )
        generator = OpenAIImageGenerator(client, "dall-e-3")

        generator.generate("Line art: a fox", "1024x1792", "hd")

        client.images.generate.assert_called_once_with(
            model="dall-e-3",
            prompt="Line art: a fox",
            size="1024x1792",
            quality="hd",
            n=1,
            response_format="b64_json",
        )

    def test_jpeg_returned_unchanged(self):
        jpeg = _image_bytes("JPEG")
        client = MagicMock()
        client.images.generate.return_value = _images_response(base64.b64encode(jpeg).decode())

        data = OpenAIImageGenerator(client, "dall-e-3").generate("p", "1024x1024", "standard")

        assert data == jpeg

    def test_png_converted_to_jpeg(self):
        client = MagicMock()
        client.images.generate.return_value = _images_response(
            base64.b64encode(_image_bytes("PNG")).decode()
        )

        data = OpenAIImageGenerator(client, "dall-e-3").generate("p", "1024x1024", "standard")

        with Image.open(io.BytesIO(data)) as image:
            assert image.format == "JPEG"

    def test_status_error_body_is_preserved(self):
        body = '{"error": {"code": "content_policy_violation", "message": "blocked"}}'
        response = httpx.Response(400, request=_REQUEST, text=body)
        client = MagicMock()
        client.images.generate.side_effect = BadRequestError(
            "blocked", response=response, body=None
        )

        with pytest.raises(UpstreamGenerationError) as exc_info:
            OpenAIImageGenerator(client, "dall-e-3").generate("p", "1024x1024", "standard")

        assert exc_info.value.body == body
        assert exc_info.value.status_code == 400

    def test_connection_error(self):
        client = MagicMock()
        client.images.generate.side_effect = APIConnectionError(request=_REQUEST)

        with pytest.raises(UpstreamGenerationError) as exc_info:
            OpenAIImageGenerator(client, "dall-e-3").generate("p", "1024x1024", "standard")

        assert exc_info.value.status_code is None

    @pytest.mark.parametrize(
        "response",
        [SimpleNamespace(data=[]), _images_response(None), _images_response("")],
    )
    def test_missing_image_data(self, response):
        client = MagicMock()
        client.images.generate.return_value = response

        with pytest.raises(UpstreamGenerationError):
            OpenAIImageGenerator(client, "dall-e-3").generate("p", "1024x1024", "standard")

    def test_invalid_base64(self):
        client = MagicMock()
        client.images.generate.return_value = _images_response("not base64!!")

        with pytest.raises(UpstreamGenerationError):
            OpenAIImageGenerator(client, "dall-e-3").generate("p", "1024x1024", "standard")


class TestToJpeg:
    """Test to_jpeg."""

    def test_non_image_raises(self):
        with pytest.raises(UpstreamGenerationError):
            to_jpeg(b"definitely not an image")


class TestCreateOpenAIClient:
    """Test create_openai_client."""

    def test_retries_disabled(self, test_config):
        client = create_openai_client(test_config)

        assert client.max_retries == 0
        assert client.timeout == test_config.request_timeout
