"""Pydantic response models for the image generation API.

The request body of ``POST /api/generate`` is not declared as a FastAPI
body model: field names are case-insensitive and malformed bodies must be
reported as plain-text 400s, so the route reads the raw body and hands it
to :mod:`imagegen.core.validation`.

Models
------
GenerateResponse
    Success payload of ``POST /api/generate``.
ServiceConfigResponse
    Payload of ``GET /api/config``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from imagegen.core.models import GeneratedArtifact

COMPLETE_STATUS = "Complete"
COMPLETE_MESSAGE = "Image generated successfully"


class GenerateResponse(BaseModel):
    """Response body for a successful ``POST /api/generate``.

    Attributes:
        request_id: Identifier of the stored image.
        status: Always ``"Complete"``.
        message: Human-readable summary.
        image_url: Relative retrieval path, ``api/image/{group}/{requestId}``.
        prompt: The final prompt sent to the image model.
    """

    model_config = ConfigDict(populate_by_name=True)

    request_id: str = Field(..., alias="requestId")
    status: str = Field(default=COMPLETE_STATUS)
    message: str = Field(default=COMPLETE_MESSAGE)
    image_url: str = Field(..., alias="imageUrl")
    prompt: str

    @classmethod
    def from_artifact(cls, artifact: GeneratedArtifact) -> GenerateResponse:
        return cls(
            request_id=artifact.request_id,
            image_url=artifact.image_path,
            prompt=artifact.final_prompt,
        )


class ServiceConfigResponse(BaseModel):
    """Accepted request values, for client discovery."""

    model_config = ConfigDict(populate_by_name=True)

    version: str
    image_types: list[str] = Field(..., alias="imageTypes")
    sizes: list[str]
    default_size: str = Field(..., alias="defaultSize")
