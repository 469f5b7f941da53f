"""Per-type prompt templates.

Each image type (other than ``raw``) is rendered from a three-part
template:

``system_instruction``
    Style guidance given to the chat model that writes the scene text.
``user_prefix``
    Opening of the user message sent to the chat model.  Request details
    and the user's name are appended after it.
``final_prefix``
    Text placed in front of the chat model's output to form the prompt
    that is sent to the image model.

The built-in texts below can be replaced per type (and for the global
fallback) through :class:`~imagegen.core.config.ImageGenConfig.templates`.
The resolved :class:`PromptTemplateSet` is built once at startup and never
mutated afterwards.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, fields
from enum import Enum
from types import MappingProxyType

from imagegen.core.config import TemplateOverride

logger = logging.getLogger(__name__)

DEFAULT_OVERRIDE_KEY = "default"


class ImageType(str, Enum):
    """Image style selector accepted in the ``type`` request field."""

    BW = "bw"
    COLOR = "color"
    STICKER = "sticker"
    WHISPERFRAME = "whisperframe"
    RAW = "raw"

    @classmethod
    def parse(cls, value: str | None) -> ImageType | None:
        """Return the member for *value* (case-insensitive), or ``None``."""
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None

    @classmethod
    def names(cls) -> list[str]:
        return [member.value for member in cls]


@dataclass(frozen=True)
class PromptTemplate:
    """The three strings that shape one image type's prompt."""

    system_instruction: str
    user_prefix: str
    final_prefix: str

    def is_complete(self) -> bool:
        return all(getattr(self, f.name).strip() for f in fields(self))

    def with_override(self, override: TemplateOverride | None) -> PromptTemplate:
        """Return a copy with every non-empty override value applied."""
        if override is None:
            return self
        return PromptTemplate(
            system_instruction=override.system_instruction or self.system_instruction,
            user_prefix=override.user_prefix or self.user_prefix,
            final_prefix=override.final_prefix or self.final_prefix,
        )


# ---------------------------------------------------------------------------
# Built-in templates.
# ---------------------------------------------------------------------------

GLOBAL_DEFAULT_TEMPLATE = PromptTemplate(
    system_instruction=(
        "You write short, vivid descriptions of images for an image generation "
        "model. Reply with a single descriptive sentence and nothing else."
    ),
    user_prefix="Describe an image for the following request. ",
    final_prefix="An illustration of",
)

BUILTIN_TEMPLATES: Mapping[ImageType, PromptTemplate] = MappingProxyType(
    {
        ImageType.BW: PromptTemplate(
            system_instruction=(
                "You describe clean black and white line art suitable for printing. "
                "Focus on clear outlines, strong contrast and simple shapes. "
                "Reply with a single descriptive sentence and nothing else."
            ),
            user_prefix="Describe a black and white line drawing. ",
            final_prefix="Black and white line art, no shading, white background:",
        ),
        ImageType.COLOR: PromptTemplate(
            system_instruction=(
                "You describe bright, cheerful full colour illustrations. "
                "Mention the palette, lighting and composition. "
                "Reply with a single descriptive sentence and nothing else."
            ),
            user_prefix="Describe a full colour illustration. ",
            final_prefix="Vibrant full colour digital illustration:",
        ),
        ImageType.STICKER: PromptTemplate(
            system_instruction=(
                "You describe die-cut sticker designs: one bold subject, thick outline, "
                "flat colours and no background detail. "
                "Reply with a single descriptive sentence and nothing else."
            ),
            user_prefix="Describe a sticker design. ",
            final_prefix="Die-cut sticker with a thick white border on a plain background:",
        ),
        ImageType.WHISPERFRAME: PromptTemplate(
            system_instruction=(
                "You describe quiet, dreamlike framed art prints with soft pastel tones, "
                "gentle light and lots of negative space. "
                "Reply with a single descriptive sentence and nothing else."
            ),
            user_prefix="Describe a calm framed art print. ",
            final_prefix="Soft, minimal framed art print in muted pastels:",
        ),
    }
)


class PromptTemplateSet:
    """Read-only lookup from :class:`ImageType` to its resolved template.

    Use :meth:`from_overrides` to build one; the constructor checks that
    every templated type maps to a complete template.
    """

    def __init__(
        self,
        templates: Mapping[ImageType, PromptTemplate],
        fallback: PromptTemplate = GLOBAL_DEFAULT_TEMPLATE,
    ) -> None:
        missing = [
            image_type.value
            for image_type in ImageType
            if image_type is not ImageType.RAW
            and (image_type not in templates or not templates[image_type].is_complete())
        ]
        if missing:
            raise ValueError(f"Incomplete prompt templates for: {', '.join(missing)}")
        if not fallback.is_complete():
            raise ValueError("Incomplete global default prompt template")

        self._templates = MappingProxyType(dict(templates))
        self._fallback = fallback

    @classmethod
    def from_overrides(
        cls, overrides: Mapping[str, TemplateOverride] | None = None
    ) -> PromptTemplateSet:
        """Apply configured overrides on top of the built-in templates.

        Args:
            overrides: Mapping of lower-case image type (or ``"default"``) to
                the override for that type, usually ``config.templates``.

        Returns:
            The resolved template set.
        """
        overrides = {key.lower(): value for key, value in (overrides or {}).items()}
        known = set(ImageType.names()) | {DEFAULT_OVERRIDE_KEY}
        for key in overrides:
            if key not in known:
                logger.warning(f"Ignoring prompt template override for unknown type '{key}'")

        resolved = {
            image_type: template.with_override(overrides.get(image_type.value))
            for image_type, template in BUILTIN_TEMPLATES.items()
        }
        fallback = GLOBAL_DEFAULT_TEMPLATE.with_override(overrides.get(DEFAULT_OVERRIDE_KEY))
        return cls(resolved, fallback)

    @property
    def fallback(self) -> PromptTemplate:
        return self._fallback

    def get(self, image_type: ImageType | str) -> PromptTemplate:
        """Return the template for *image_type*, or the global fallback."""
        if isinstance(image_type, str):
            image_type = ImageType.parse(image_type)
        return self._templates.get(image_type, self._fallback)
