from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field
from pydantic import ValidationError as _PydanticValidationError

from scene_mirror.errors import PayloadValidationError


class ChangeKind(StrEnum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


def utc_timestamp() -> str:
    """ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class FileChange(BaseModel):
    """A change observed under the storage root, relative POSIX path."""

    type: ChangeKind
    path: str
    timestamp: str = Field(default_factory=utc_timestamp)
    content: str | None = None


class FileEdit(BaseModel):
    """A single-path edit pushed by the editor."""

    path: str
    type: ChangeKind
    content: str | None = None


class SyncResult(BaseModel):
    files_written: int
    timestamp: str


class EditResult(BaseModel):
    path: str
    type: ChangeKind


def parse_edit(payload: Any) -> FileEdit:
    """Validate an inbound single-path edit.

    Raises:
        PayloadValidationError: on a missing path, an unknown type or missing
            content for create / update.
    """
    if isinstance(payload, FileEdit):
        edit = payload
    else:
        if not isinstance(payload, dict):
            raise PayloadValidationError("Invalid request body: expected an object")
        if not payload.get("path"):
            raise PayloadValidationError("Missing 'path' in request body")
        if payload.get("type") not in {kind.value for kind in ChangeKind}:
            raise PayloadValidationError(
                "Invalid or missing 'type' (must be create, update, or delete)"
            )
        try:
            edit = FileEdit.model_validate(payload)
        except _PydanticValidationError as exc:
            raise PayloadValidationError(f"Invalid edit request: {exc}") from exc

    if edit.type != ChangeKind.DELETE and edit.content is None:
        raise PayloadValidationError("Missing 'content' for create/update operation")
    return edit
