"""Image Generation Service - typed prompt enrichment, image generation and storage."""

__version__ = "0.3.0"

from imagegen.core.config import ImageGenConfig, config
from imagegen.core.templates import ImageType, PromptTemplate, PromptTemplateSet

__all__ = [
    "ImageGenConfig",
    "ImageType",
    "PromptTemplate",
    "PromptTemplateSet",
    "config",
]
