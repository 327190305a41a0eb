"""Structural validation of registration payloads.

This is the first request gate: it runs before rate limiting, so a malformed
payload never consumes a throttle slot. Every failure (missing field, wrong
type, short password, bad email) is one undifferentiated rejection for the
client; the failing field names are only kept in the error details for logs.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import Request
from pydantic import ValidationError

from authgate.core.errors import MalformedRequestAppError, ValidationAppError
from authgate.schemas.accounts import RegistrationPayload

logger = logging.getLogger(__name__)


def validate_registration_payload(payload: Any) -> RegistrationPayload:
    """Validate a decoded request body against the registration shape.

    Args:
        payload: Decoded JSON body (any type; non-objects are rejected).

    Returns:
        RegistrationPayload with the validated fields.

    Raises:
        ValidationAppError: If any field is missing, mistyped or malformed.
    """
    if not isinstance(payload, dict):
        raise ValidationAppError(
            code="invalid_input",
            message="Invalid Input",
            details={"fields": ["__root__"]},
        )

    try:
        return RegistrationPayload.model_validate(payload)
    except ValidationError as exc:
        # Union members add their own loc segment (e.g. ("age", "int")); keep the field name.
        fields = sorted({str(err["loc"][0]) if err["loc"] else "__root__" for err in exc.errors()})
        raise ValidationAppError(
            code="invalid_input",
            message="Invalid Input",
            details={"fields": fields},
        ) from exc


async def validated_registration(request: Request) -> RegistrationPayload:
    """FastAPI dependency decoding and validating the registration body.

    The body is read directly so that validation, not FastAPI's own body
    parsing, decides the response.

    Raises:
        MalformedRequestAppError: If the body is not decodable JSON.
        ValidationAppError: If the decoded body has the wrong shape.
    """
    raw = await request.body()
    try:
        payload = json.loads(raw) if raw else None
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        logger.info(
            "validation.malformed_body",
            extra={"body_length": len(raw)},
        )
        raise MalformedRequestAppError(
            code="malformed_body",
            message="Bad request",
        ) from exc

    try:
        return validate_registration_payload(payload)
    except ValidationAppError as exc:
        logger.info(
            "validation.rejected",
            extra={"fields": (exc.details or {}).get("fields", [])},
        )
        raise
