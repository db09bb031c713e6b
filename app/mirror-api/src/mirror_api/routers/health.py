from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel, Field

from mirror_api import __version__
from mirror_api.dependencies import Coordinator

router = APIRouter(tags=["health"])


class PingResponse(BaseModel):
    status: Literal["ok"] = "ok"
    version: str


class StatusResponse(BaseModel):
    connected: bool
    last_sync: str | None = Field(serialization_alias="lastSync")
    files_count: int = Field(serialization_alias="filesCount")
    version: str


@router.get("/ping", response_model=PingResponse)
async def ping() -> PingResponse:
    """Liveness check for the editor plugin."""
    return PingResponse(version=__version__)


@router.get("/status", response_model=StatusResponse)
async def status(coordinator: Coordinator) -> StatusResponse:
    """Return the last sync time and how many files it wrote."""
    return StatusResponse(
        connected=True,
        last_sync=coordinator.last_sync,
        files_count=coordinator.files_count,
        version=__version__,
    )
