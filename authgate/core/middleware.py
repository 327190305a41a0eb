"""HTTP middleware for request ID propagation and correlation.

Every request/response pair carries a correlation id so that the gate,
flow and storage log lines of one request can be joined:
- Accepts the incoming request-id header or generates a UUID
- Stores request_id in contextvars for the request lifecycle
- Echoes request_id and the total duration in response headers

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import time
import uuid

from fastapi import Request, Response

from authgate.core.logging import clear_request_id, set_request_id


def _header_name(request: Request) -> str:
    return request.app.state.settings.log.request_id_header


async def request_id_middleware(request: Request, call_next) -> Response:
    """Attach a correlation id to the request and its response.

    The header name comes from the app's own ``LOG_REQUEST_ID_HEADER``
    setting (default ``X-Request-ID``), so apps built from different settings
    do not share it. A client-supplied id is reused, otherwise a UUID4 is
    minted. The context variable never outlives the request.
    """

    header_name = _header_name(request)
    request_id = request.headers.get(header_name) or uuid.uuid4().hex
    set_request_id(request_id)
    started = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault(
        "X-Request-Duration-ms", f"{(time.perf_counter() - started) * 1000:.2f}"
    )
    return response
