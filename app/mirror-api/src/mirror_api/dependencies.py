from typing import Annotated

from fastapi import Depends, HTTPException, Request

from scene_mirror import SyncCoordinator


def get_coordinator(request: Request) -> SyncCoordinator:
    """FastAPI dependency returning the coordinator created by the app lifespan."""
    coordinator = getattr(request.app.state, "coordinator", None)
    if coordinator is None:
        raise HTTPException(
            status_code=503,
            detail={"kind": "not_ready", "message": "Sync engine not initialised"},
        )
    return coordinator


Coordinator = Annotated[SyncCoordinator, Depends(get_coordinator)]


def error_detail(exc: Exception) -> dict[str, str]:
    """Structured ``{"kind", "message"}`` body for a failed operation."""
    return {"kind": getattr(exc, "kind", "internal_error"), "message": str(exc)}
