"""Configuration management for the image generation service.

All configuration is loaded once at startup using Pydantic Settings, from
environment variables with the ``IMAGEGEN_`` prefix.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (IMAGEGEN_* prefix)
2. .env file in the working directory
3. Default values defined in ImageGenConfig

Example .env file:
    IMAGEGEN_OPENAI_API_KEY=sk-...
    IMAGEGEN_STORAGE_CONNECTION_STRING=DefaultEndpointsProtocol=https;...
    IMAGEGEN_STORAGE_CONTAINER=images
    IMAGEGEN_ALLOWED_SIZES=["1024x1024","1792x1024","1024x1792"]

Prompt Template Overrides
-------------------------
Every string of the per-type prompt template can be replaced without a code
change.  Overrides are nested under ``templates`` using ``__`` as the
delimiter, keyed by image type; the ``default`` key overrides the global
fallback template used for unrecognised types::

    IMAGEGEN_TEMPLATES__BW__SYSTEM_INSTRUCTION="You describe line art..."
    IMAGEGEN_TEMPLATES__STICKER__FINAL_PREFIX="Die-cut sticker:"
    IMAGEGEN_TEMPLATES__DEFAULT__USER_PREFIX="Describe an image. "

See :mod:`imagegen.core.templates` for how overrides are resolved.

Global Configuration Instance
------------------------------
A global ``config`` instance is created at module import time and used by
the CLI entry point and the application lifespan.  Tests build their own
:class:`ImageGenConfig` instances instead.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Well-known account and key of the Azurite storage emulator.
AZURITE_CONNECTION_STRING = (
    "DefaultEndpointsProtocol=http;AccountName=devstoreaccount1;"
    "AccountKey=Eby8vdM02xNOcqFlqUwJPLlmEtlCDXJ1OUzFT50uSRZ6IFsuFq2UVErCz4I6tq/K1SZFPTOtr/KBHBeksoGMGw==;"
    "BlobEndpoint=http://127.0.0.1:10000/devstoreaccount1;"
)


class TemplateOverride(BaseModel):
    """Optional replacement strings for one image type's prompt template.

    Any field left as ``None`` keeps the built-in default.
    """

    system_instruction: str | None = None
    user_prefix: str | None = None
    final_prefix: str | None = None


class ImageGenConfig(BaseSettings):
    """Main configuration for the image generation service.

    Attributes
    ----------
    Generation Collaborators:
        openai_api_key : str | None
            Credential used for both the chat-completion and image calls
        openai_base_url : str | None
            Alternate API endpoint (``None`` uses the SDK default)
        chat_model : str
            Model used to enrich template prompts
        image_model : str
            Model used to render the final prompt
        image_quality : str
            Quality setting passed to the image model
        request_timeout : float
            Per-call timeout in seconds for both collaborators

    Prompt Enrichment:
        enrichment_temperature : float
            Sampling temperature for the enrichment call (0.0-2.0)
        enrichment_max_tokens : int
            Cap on the enrichment output length
        templates : dict[str, TemplateOverride]
            Per-type prompt template overrides (``default`` is the global one)

    Image Sizes:
        allowed_sizes : list[str]
            Sizes the configured image model accepts
        default_size : str
            Size used when the request omits one (must be in allowed_sizes)

    Storage:
        storage_backend : Literal["azure", "local"]
            Artifact store implementation
        storage_connection_string : str
            Azure Blob Storage connection string
        storage_container : str
            Container holding every group as a virtual folder
        storage_dir : Path
            Root directory for the local backend

    Server:
        server_host : str
            Bind address for uvicorn
        server_port : int
            Port for uvicorn (1024-65535)
        log_level : str
            Root logger level used by the CLI entry point

    Notes
    -----
    - Configuration is immutable after initialization
    - ``storage_dir`` is created automatically when the local backend is used
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="IMAGEGEN_",
        env_nested_delimiter="__",
        case_sensitive=False,
        frozen=True,
    )

    # Generation collaborators
    openai_api_key: str | None = Field(
        default=None,
        description="API key for the chat-completion and image-generation calls",
    )
    openai_base_url: str | None = Field(
        default=None,
        description="Alternate OpenAI-compatible endpoint",
    )
    chat_model: str = Field(
        default="gpt-4o-mini",
        description="Model used to enrich template prompts",
    )
    image_model: str = Field(
        default="dall-e-3",
        description="Model used to generate images",
    )
    image_quality: str = Field(
        default="standard",
        description="Quality setting passed to the image model",
    )
    request_timeout: float = Field(
        default=60.0,
        description="Timeout in seconds for each collaborator call",
        gt=0,
    )

    # Prompt enrichment
    enrichment_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    enrichment_max_tokens: int = Field(default=300, ge=16, le=4096)
    templates: dict[str, TemplateOverride] = Field(
        default_factory=dict,
        description="Per-type prompt template overrides keyed by image type",
    )

    # Image sizes (tied to image_model)
    allowed_sizes: list[str] = Field(
        default_factory=lambda: ["1024x1024", "1792x1024", "1024x1792"],
        description="Sizes accepted by the configured image model",
    )
    default_size: str = Field(
        default="1024x1024",
        description="Size used when a request omits one",
    )

    # Storage
    storage_backend: Literal["azure", "local"] = Field(
        default="azure",
        description="Artifact store implementation",
    )
    storage_connection_string: str = Field(
        default=AZURITE_CONNECTION_STRING,
        description="Azure Blob Storage connection string (local Azurite emulator by default)",
    )
    storage_container: str = Field(
        default="images",
        description="Container that holds every group as a virtual folder",
    )
    storage_dir: Path = Field(
        default=Path("storage"),
        description="Root directory for the local storage backend",
    )

    # Server
    server_host: str = Field(default="0.0.0.0")
    server_port: int = Field(default=7071, ge=1024, le=65535)
    log_level: str = Field(default="INFO")

    @model_validator(mode="after")
    def _check_default_size(self) -> ImageGenConfig:
        """Reject a default size the image model would not accept."""
        if not self.allowed_sizes:
            raise ValueError("allowed_sizes must not be empty")
        if self.default_size not in self.allowed_sizes:
            raise ValueError(
                f"default_size {self.default_size!r} is not one of {self.allowed_sizes}"
            )
        return self

    def __init__(self, **kwargs):
        """Initialize configuration and create the local storage root if needed.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        if self.storage_backend == "local":
            self.storage_dir.mkdir(parents=True, exist_ok=True)


# Global configuration instance, loaded from IMAGEGEN_* variables and .env.
config = ImageGenConfig()
