"""Validation of incoming generation requests.

Rules are checked in a fixed order and the first failure wins:

1. parse    - body is a JSON object whose known fields are strings
2. type     - ``type`` is one of the supported image types
3. raw      - ``raw`` requests carry non-blank ``details``
4. group    - ``group`` matches ``^[a-z][a-z0-9]*$``
5. size     - ``size``, when given, is one the image model accepts

Nothing here has side effects; no external call is made before a request
passes every rule.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Sequence

import pydantic

from imagegen.core.models import GenerationRequest, RequestBody
from imagegen.core.templates import ImageType
from imagegen.errors import ValidationError, ValidationErrorKind

logger = logging.getLogger(__name__)

GROUP_PATTERN = re.compile(r"[a-z][a-z0-9]*")

INVALID_JSON_MESSAGE = "Invalid JSON format"
INVALID_BODY_MESSAGE = "Invalid request body"
INVALID_TYPE_MESSAGE = f"Invalid image type. Must be one of: {', '.join(ImageType.names())}"
MISSING_RAW_DETAILS_MESSAGE = "Details are required when type is 'raw'"
INVALID_GROUP_MESSAGE = (
    "Invalid group name. Must start with a lowercase letter and contain only "
    "lowercase letters and numbers"
)


def _reject(kind: ValidationErrorKind, message: str) -> ValidationError:
    logger.warning(f"Rejected generation request ({kind.value}): {message}")
    return ValidationError(kind, message)


def parse_request_body(raw: bytes | str) -> RequestBody:
    """Decode a raw HTTP body into a :class:`RequestBody`.

    Field names are matched case-insensitively.

    Args:
        raw: The request body as received.

    Returns:
        The parsed (not yet validated) body.

    Raises:
        ValidationError: ``MalformedBody``.  The message is
            ``Invalid request body`` for a JSON ``null`` body and
            ``Invalid JSON format`` for anything else that does not decode
            into an object of string fields (empty body, bad JSON, an
            array or scalar, a non-string known field).
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise _reject(ValidationErrorKind.MALFORMED_BODY, INVALID_JSON_MESSAGE) from exc

    if not raw.strip():
        raise _reject(ValidationErrorKind.MALFORMED_BODY, INVALID_JSON_MESSAGE)

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise _reject(ValidationErrorKind.MALFORMED_BODY, INVALID_JSON_MESSAGE) from exc

    if data is None:
        raise _reject(ValidationErrorKind.MALFORMED_BODY, INVALID_BODY_MESSAGE)
    if not isinstance(data, dict):
        raise _reject(ValidationErrorKind.MALFORMED_BODY, INVALID_JSON_MESSAGE)

    normalised = {str(key).lower(): value for key, value in data.items()}
    try:
        return RequestBody.model_validate(normalised)
    except pydantic.ValidationError as exc:
        raise _reject(ValidationErrorKind.MALFORMED_BODY, INVALID_JSON_MESSAGE) from exc


def is_valid_group(group: str | None) -> bool:
    """Return ``True`` if *group* is usable as a storage namespace."""
    return bool(group) and GROUP_PATTERN.fullmatch(group) is not None


def validate_request(
    body: RequestBody,
    allowed_sizes: Sequence[str],
    default_size: str,
) -> GenerationRequest:
    """Apply the type, raw-details, group and size rules to a parsed body.

    Args:
        body: Output of :func:`parse_request_body`.
        allowed_sizes: Sizes the configured image model accepts.
        default_size: Size to use when the body does not specify one.

    Returns:
        The validated request.

    Raises:
        ValidationError: For the first rule the body violates.
    """
    image_type = ImageType.parse(body.type)
    if image_type is None:
        raise _reject(ValidationErrorKind.MISSING_OR_INVALID_TYPE, INVALID_TYPE_MESSAGE)

    if image_type is ImageType.RAW and not (body.details and body.details.strip()):
        raise _reject(ValidationErrorKind.MISSING_RAW_DETAILS, MISSING_RAW_DETAILS_MESSAGE)

    if not is_valid_group(body.group):
        raise _reject(ValidationErrorKind.INVALID_GROUP_NAME, INVALID_GROUP_MESSAGE)

    size = body.size.strip() if body.size else ""
    if size and size not in allowed_sizes:
        raise _reject(
            ValidationErrorKind.INVALID_SIZE,
            f"Invalid size. Must be one of: {', '.join(allowed_sizes)}",
        )

    return GenerationRequest(
        group=body.group,
        image_type=image_type,
        size=size or default_size,
        details=body.details,
        name=body.name,
    )


def validate_generation_body(
    raw: bytes | str,
    allowed_sizes: Sequence[str],
    default_size: str,
) -> GenerationRequest:
    """Parse and validate a raw request body in one step."""
    return validate_request(parse_request_body(raw), allowed_sizes, default_size)
