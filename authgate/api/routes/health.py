from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Liveness endpoint for load balancers and monitoring.

    Not behind any request gate. Reports the account store backend in use and
    whether the rate-limit window scheduler is running.
    """

    scheduler = getattr(request.app.state, "reset_scheduler", None)
    return {
        "status": "ok",
        "storage": getattr(request.app.state, "storage_backend", "unknown"),
        "rate_limit_scheduler": bool(getattr(scheduler, "running", False)),
    }
