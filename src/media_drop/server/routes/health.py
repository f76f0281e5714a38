"""Health check routes."""

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Liveness: the process is serving requests."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness_check(request: Request) -> dict[str, object]:
    """Readiness of the delivery channel.

    Scheduling works either way; only sending (and listing destinations) needs the channel.
    """
    ready = request.app.state.media.service.query_readiness()
    return {"status": "ready" if ready else "not_ready", "channel": ready}
