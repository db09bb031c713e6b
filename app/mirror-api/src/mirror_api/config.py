import json
import logging
from collections.abc import Callable
from pathlib import Path

from platformdirs import user_config_dir
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

APP_NAME = "scene-mirror"
CONFIG_FILENAME = "config.json"
CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME
DEFAULT_STORAGE_DIRNAME = "synced-game"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Storage
    storage_path: Path | None = None

    # Server
    api_host: str = "localhost"
    api_port: int = 8080
    api_reload: bool = False
    log_level: str = "INFO"

    # Sync timing
    sync_settle_seconds: float = 0.5
    edit_resume_delay_seconds: float = 0.1
    watch_quiet_ms: int = 100
    watch_debounce_ms: int = 1600
    watch_latency_ms: int = 400
    watch_force_polling: bool | None = None


settings = Settings()


# ── Last used storage path ────────────────────────────────────────────────────

def load_last_used_path() -> Path | None:
    """Return the persisted storage path, or None when missing or malformed."""
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    value = data.get("lastUsedPath") if isinstance(data, dict) else None
    return Path(value) if isinstance(value, str) and value else None


def save_last_used_path(path: Path) -> None:
    """Persist *path* for the next run. Failures are logged, never raised."""
    try:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_PATH.write_text(
            json.dumps({"lastUsedPath": str(path)}, indent=2), encoding="utf-8"
        )
    except OSError as exc:
        logger.warning("Could not save last used path: %s", exc)


def default_storage_path() -> Path:
    return Path.cwd().parent / DEFAULT_STORAGE_DIRNAME


def resolve_storage_path(
    explicit: str | Path | None = None,
    prompt: bool = False,
    input_fn: Callable[[str], str] = input,
) -> Path:
    """Pick the storage root once at startup and make it absolute.

    Priority: *explicit*, then ``settings.storage_path``, then (with
    *prompt*) the user's answer, defaulting to the last used path or
    ``../synced-game``.
    """
    chosen = explicit or settings.storage_path
    if chosen is None:
        fallback = load_last_used_path() or default_storage_path()
        if prompt:
            answer = input_fn(f"Storage path [{fallback}]: ").strip()
            chosen = answer or fallback
        else:
            chosen = fallback

    return Path(chosen).expanduser().resolve()
