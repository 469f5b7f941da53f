"""Exception hierarchy for the image generation service.

Every failure the service can report is one of the classes below.  The
FastAPI layer (:mod:`imagegen.api.main`) registers one exception handler
per class and turns it into a plain-text HTTP response, so route handlers
and the pipeline only ever *raise*.

================================  ======  ==========================================
Exception                         Status  Surfaced body
================================  ======  ==========================================
:class:`ValidationError`          400     Rule-specific message
:class:`UpstreamGenerationError`  500     Upstream error payload, verbatim
:class:`StorageError`             500     Generic message (no backend detail)
:class:`NotFoundError`            404     Names the missing group or image
:class:`TextEnrichmentError`      -       Never surfaced (fallback prompt used)
================================  ======  ==========================================
"""

from __future__ import annotations

from enum import Enum


class ImageGenError(Exception):
    """Base class for all service errors."""


class ValidationErrorKind(str, Enum):
    """The request rule that was violated, in validation order."""

    MALFORMED_BODY = "MalformedBody"
    MISSING_OR_INVALID_TYPE = "MissingOrInvalidType"
    MISSING_RAW_DETAILS = "MissingRawDetails"
    INVALID_GROUP_NAME = "InvalidGroupName"
    INVALID_SIZE = "InvalidSize"


class ValidationError(ImageGenError):
    """Client input was rejected before any external call was made.

    Attributes:
        kind: Which rule failed.
        message: Human-readable text returned to the caller as-is.
    """

    def __init__(self, kind: ValidationErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


class UpstreamGenerationError(ImageGenError):
    """The image-generation collaborator rejected or failed the call.

    Attributes:
        status_code: Status reported by the upstream API, when known.
        body: The upstream error payload, passed through to the caller.
    """

    def __init__(self, body: str, status_code: int | None = None) -> None:
        super().__init__(body)
        self.body = body
        self.status_code = status_code


class TextEnrichmentError(ImageGenError):
    """The text-generation collaborator failed.  Always absorbed."""


class StorageError(ImageGenError):
    """A namespace or blob operation in the artifact store failed."""


class NotFoundError(ImageGenError):
    """A requested group or image does not exist in the artifact store."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
