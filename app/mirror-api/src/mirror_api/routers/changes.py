from typing import Any

from fastapi import APIRouter, Body, HTTPException
from pydantic import BaseModel

from scene_mirror import (
    ChangeKind,
    FileChange,
    PayloadValidationError,
    StorageError,
    WatcherUnavailableError,
)

from mirror_api.dependencies import Coordinator, error_detail

router = APIRouter(tags=["changes"])


# ── Schemas ───────────────────────────────────────────────────────────────────

class ChangesResponse(BaseModel):
    changes: list[FileChange]


class EditResponse(BaseModel):
    success: bool = True
    path: str
    type: ChangeKind


# ── Routes ────────────────────────────────────────────────────────────────────

@router.get(
    "/changes",
    response_model=ChangesResponse,
    response_model_exclude_none=True,
)
async def poll_changes(coordinator: Coordinator) -> ChangesResponse:
    """Drain the edits made on disk since the last poll, with file contents."""
    try:
        changes = await coordinator.collect_changes()
    except WatcherUnavailableError as exc:
        raise HTTPException(status_code=503, detail=error_detail(exc)) from exc

    return ChangesResponse(changes=changes)


@router.post("/studio-change", response_model=EditResponse)
async def studio_change(coordinator: Coordinator, body: Any = Body(...)) -> EditResponse:
    """Apply one file create / update / delete made in the editor."""
    try:
        result = await coordinator.apply_edit(body)
    except PayloadValidationError as exc:
        raise HTTPException(status_code=400, detail=error_detail(exc)) from exc
    except StorageError as exc:
        raise HTTPException(status_code=500, detail=error_detail(exc)) from exc

    return EditResponse(path=result.path, type=result.type)
