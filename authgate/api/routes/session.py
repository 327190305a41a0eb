from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import PlainTextResponse

from authgate.core.errors import UnauthorizedAppError
from authgate.core.rate_limit import enforce_session_rate_limit
from authgate.services.session_service import SessionVerificationService

router = APIRouter(tags=["Session"])


def get_session_service(request: Request) -> SessionVerificationService:
    return request.app.state.session_service


@router.post(
    "/login",
    response_class=PlainTextResponse,
    dependencies=[Depends(enforce_session_rate_limit)],
    responses={
        401: {"description": "Token missing, malformed, expired or signed with another secret"},
        429: {"description": "Too many requests for this identity"},
    },
)
async def login(
    service: Annotated[SessionVerificationService, Depends(get_session_service)],
    authorization: Annotated[str | None, Header()] = None,
    password: Annotated[str | None, Header()] = None,
) -> PlainTextResponse:
    """Check a previously issued session token.

    Headers:
        Authorization: the token, raw or as ``Bearer <token>``.
        password: secret material; only consulted when tokens are signed with
            the user's password (``AUTH_TOKEN_SECRET_SOURCE=password``).

    Raises:
        UnauthorizedAppError: 401 for every verification failure, whatever
            the cause.
    """
    outcome = service.verify(authorization, password)
    if not outcome.authenticated:
        raise UnauthorizedAppError(code="unauthorized", message="Unauthorized")
    return PlainTextResponse("You're logged-in")
