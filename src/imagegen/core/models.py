"""Data models shared by the validator, prompt builder and pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict

from imagegen.core.templates import ImageType


class RequestBody(BaseModel):
    """Shape of the ``POST /api/generate`` JSON body before validation.

    Keys are lower-cased before this model is built, so ``Group``,
    ``GROUP`` and ``group`` are all accepted.  Every field is optional here;
    presence and policy checks happen in :mod:`imagegen.core.validation` so
    that the first violated rule can be reported deterministically.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    group: str | None = None
    type: str | None = None
    details: str | None = None
    name: str | None = None
    size: str | None = None


@dataclass(frozen=True)
class GenerationRequest:
    """A request that passed validation.

    Attributes:
        group: Storage namespace, already matching ``^[a-z][a-z0-9]*$``.
        image_type: Normalised image type.
        size: Image size to request (the configured default when omitted).
        details: Caller-supplied scene details, if any.
        name: Caller-supplied name used as prompt context, if any.
    """

    group: str
    image_type: ImageType
    size: str
    details: str | None = None
    name: str | None = None


@dataclass(frozen=True)
class GeneratedArtifact:
    """Outcome of one successful generation run."""

    request_id: str
    group: str
    final_prompt: str
    image_bytes: bytes = field(repr=False)

    @property
    def image_path(self) -> str:
        return f"api/image/{self.group}/{self.request_id}"
