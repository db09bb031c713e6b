from typing import Any

from fastapi import APIRouter, Body, HTTPException
from pydantic import BaseModel, Field

from scene_mirror import PayloadValidationError, StorageError

from mirror_api.dependencies import Coordinator, error_detail

router = APIRouter(tags=["sync"])


# ── Schemas ───────────────────────────────────────────────────────────────────

class SyncResponse(BaseModel):
    success: bool = True
    files_written: int = Field(serialization_alias="filesWritten")
    timestamp: str


# ── Routes ────────────────────────────────────────────────────────────────────

@router.post("/sync", response_model=SyncResponse)
async def sync_tree(coordinator: Coordinator, body: Any = Body(...)) -> SyncResponse:
    """Replace the mirrored directory tree with the pushed tree."""
    try:
        result = await coordinator.push_tree(body)
    except PayloadValidationError as exc:
        raise HTTPException(status_code=400, detail=error_detail(exc)) from exc
    except StorageError as exc:
        raise HTTPException(status_code=500, detail=error_detail(exc)) from exc

    return SyncResponse(files_written=result.files_written, timestamp=result.timestamp)
