from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from authgate.core.rate_limit import enforce_registration_rate_limit
from authgate.schemas.accounts import RegistrationPayload
from authgate.services.registration_service import RegistrationService

router = APIRouter(tags=["Accounts"])

ALREADY_EXISTS_MESSAGE = "User already exists. Please login!"


def get_registration_service(request: Request) -> RegistrationService:
    return request.app.state.registration_service


@router.api_route(
    "/sign-up",
    methods=["POST", "GET"],
    response_class=PlainTextResponse,
    responses={
        200: {"description": "Token issued, or the account already exists"},
        400: {"description": "Body is not valid JSON"},
        422: {"description": "Payload failed structural validation"},
        429: {"description": "Too many requests for this userName"},
        503: {"description": "Account store unavailable"},
    },
)
async def sign_up(
    payload: Annotated[RegistrationPayload, Depends(enforce_registration_rate_limit)],
    service: Annotated[RegistrationService, Depends(get_registration_service)],
) -> PlainTextResponse:
    """Register a new account and return a session token.

    The JSON body must carry ``userName``, ``password``, ``email`` and ``age``.
    GET is accepted alongside POST for legacy clients that send the body
    with a GET.

    Returns:
        PlainTextResponse: ``This is your JWT token <token>`` for a new account,
            or ``User already exists. Please login!`` for a known username.
            Both are 200.
    """
    outcome = await service.register(payload)
    if not outcome.created:
        return PlainTextResponse(ALREADY_EXISTS_MESSAGE)
    return PlainTextResponse(f"This is your JWT token {outcome.token}")
