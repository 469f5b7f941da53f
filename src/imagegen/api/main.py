"""Image Generation Service - FastAPI Application.

This module defines the application factory, the module-level ``app``
instance, all routes, and the ``main()`` CLI function that launches the
uvicorn server.

Architecture
------------
- **Collaborators** (chat model, image model, artifact store) are bundled
  into an immutable :class:`~imagegen.core.pipeline.Services` object.  It is
  built from configuration in the lifespan hook, or injected through
  :func:`create_app` (tests do this), and read from ``app.state``.
- **Validation and prompt construction** live in :mod:`imagegen.core`; the
  routes only translate between HTTP and the pipeline functions.
- **Errors** are raised as :mod:`imagegen.errors` exceptions and turned into
  plain-text responses by the handlers registered in :func:`create_app`.

Endpoints
---------
========  ============================  ====================================
Method    Path                          Purpose
========  ============================  ====================================
POST      ``/api/generate``             Generate and store an image
GET       ``/api/image/{group}/{id}``   Fetch a stored image (JPEG)
GET       ``/api/config``               Accepted image types and sizes
GET       ``/api/health``               Liveness check
========  ============================  ====================================

Usage
-----
CLI (installed entry point)::

    imagegen

Direct invocation::

    python -m imagegen.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse, Response

from imagegen import __version__
from imagegen.api.models import GenerateResponse, ServiceConfigResponse
from imagegen.core.config import config
from imagegen.core.pipeline import Services, build_services, fetch_image, generate_image
from imagegen.core.templates import ImageType
from imagegen.core.validation import validate_generation_body
from imagegen.errors import (
    NotFoundError,
    StorageError,
    UpstreamGenerationError,
    ValidationError,
)

logger = logging.getLogger(__name__)

IMAGE_MEDIA_TYPE = "image/jpeg"
UPSTREAM_FALLBACK_MESSAGE = "Image generation failed"
STORAGE_ERROR_MESSAGE = "An error occurred while accessing image storage"


# ---------------------------------------------------------------------------
# Exception handlers.
# ---------------------------------------------------------------------------


async def _validation_error_handler(request: Request, exc: ValidationError) -> PlainTextResponse:
    return PlainTextResponse(exc.message, status_code=400)


async def _upstream_error_handler(
    request: Request, exc: UpstreamGenerationError
) -> PlainTextResponse:
    return PlainTextResponse(exc.body or UPSTREAM_FALLBACK_MESSAGE, status_code=500)


async def _storage_error_handler(request: Request, exc: StorageError) -> PlainTextResponse:
    logger.error(f"Storage error on {request.method} {request.url.path}: {exc}")
    return PlainTextResponse(STORAGE_ERROR_MESSAGE, status_code=500)


async def _not_found_handler(request: Request, exc: NotFoundError) -> PlainTextResponse:
    return PlainTextResponse(exc.message, status_code=404)


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


def _services(request: Request) -> Services:
    return request.app.state.services


def create_app(services: Services | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        services: Collaborator bundle to use.  When ``None`` the bundle is
            built from the global configuration on startup.

    Returns:
        The configured application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if getattr(app.state, "services", None) is None:
            app.state.services = build_services(config)
            logger.info(
                f"Services initialised (storage={config.storage_backend}, "
                f"image_model={config.image_model}, chat_model={config.chat_model})."
            )
        yield

    app = FastAPI(
        title="Image Generation Service",
        description="Generates images from typed prompts and stores them by group.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_exception_handler(ValidationError, _validation_error_handler)
    app.add_exception_handler(UpstreamGenerationError, _upstream_error_handler)
    app.add_exception_handler(StorageError, _storage_error_handler)
    app.add_exception_handler(NotFoundError, _not_found_handler)

    # -----------------------------------------------------------------------
    # Routes.
    # -----------------------------------------------------------------------

    @app.post("/api/generate", response_model=GenerateResponse)
    async def generate(request: Request) -> GenerateResponse:
        """Validate the request, generate an image and store it.

        Returns:
            ``requestId``, ``status``, ``message``, ``imageUrl`` and
            ``prompt`` of the stored image.

        Raises:
            ValidationError: 400 for any invalid field (first rule wins).
            UpstreamGenerationError: 500 with the image API's payload.
            StorageError: 500 if the image could not be stored.
        """
        logger.info("Processing image generation request")
        services = _services(request)

        body = await request.body()
        validated = validate_generation_body(
            body, services.allowed_sizes, services.default_size
        )

        artifact = await run_in_threadpool(generate_image, validated, services)
        return GenerateResponse.from_artifact(artifact)

    @app.get("/api/image/{group}/{image_id}")
    async def get_image(group: str, image_id: str, request: Request) -> Response:
        """Return a stored image as JPEG.

        Raises:
            NotFoundError: 404 naming the missing group or image.
            StorageError: 500 on any other storage failure.
        """
        logger.info(f"Retrieving image from group {group} with id {image_id}")
        data = await run_in_threadpool(fetch_image, group, image_id, _services(request))
        return Response(content=data, media_type=IMAGE_MEDIA_TYPE)

    @app.get("/api/config", response_model=ServiceConfigResponse)
    async def get_config(request: Request) -> ServiceConfigResponse:
        """Return the accepted image types and sizes."""
        services = _services(request)
        return ServiceConfigResponse(
            version=__version__,
            image_types=ImageType.names(),
            sizes=list(services.allowed_sizes),
            default_size=services.default_size,
        )

    @app.get("/api/health")
    async def health() -> dict:
        return {"status": "ok", "version": __version__}

    return app


app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host, port and log level from :data:`~imagegen.core.config.config`
    (``IMAGEGEN_SERVER_HOST``, ``IMAGEGEN_SERVER_PORT``,
    ``IMAGEGEN_LOG_LEVEL``).

    This function is registered as the ``imagegen`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    uvicorn.run(
        "imagegen.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
