import argparse
import asyncio
import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from scene_mirror import ChangeWatcher, SyncCoordinator

from mirror_api import __version__
from mirror_api.config import resolve_storage_path, save_last_used_path, settings
from mirror_api.routers import changes, health, sync

logger = logging.getLogger(__name__)

_background_tasks: set[asyncio.Task] = set()


def _remember_storage_path(path: Path) -> None:
    """Fire-and-forget persistence of the storage path; never blocks startup."""
    task = asyncio.create_task(asyncio.to_thread(save_last_used_path, path))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)


# ── Lifespan ──────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Own the sync engine: create it and start watching on boot, stop on shutdown."""
    storage_root = resolve_storage_path()
    if not storage_root.exists():
        logger.info("Creating storage directory: %s", storage_root)
    storage_root.mkdir(parents=True, exist_ok=True)
    _remember_storage_path(storage_root)

    watcher = ChangeWatcher(
        storage_root,
        quiet_ms=settings.watch_quiet_ms,
        debounce_ms=settings.watch_debounce_ms,
        latency_ms=settings.watch_latency_ms,
        force_polling=settings.watch_force_polling,
    )
    app.state.coordinator = SyncCoordinator(
        storage_root,
        watcher=watcher,
        settle_seconds=settings.sync_settle_seconds,
        resume_delay_seconds=settings.edit_resume_delay_seconds,
    )
    watcher.start()
    logger.info("Storage path: %s", storage_root)

    try:
        yield
    finally:
        logger.info("Shutting down sync server")
        await watcher.stop()
        app.state.coordinator = None


app = FastAPI(
    title="Scene Mirror API",
    description="Mirrors an editor's scene tree onto the file system and reports edits back.",
    version=__version__,
    lifespan=lifespan,
)

# ── CORS ──────────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info("%s %s", request.method, request.url.path)
    return await call_next(request)


# ── Routers ───────────────────────────────────────────────────────────────────
app.include_router(health.router)
app.include_router(sync.router)
app.include_router(changes.router)


@app.get("/", tags=["root"])
def root() -> dict[str, str]:
    return {"message": "Scene Mirror API", "docs": "/docs"}


# ── Entrypoint ────────────────────────────────────────────────────────────────
def start(argv: list[str] | None = None) -> None:
    """CLI entrypoint used by the `start-mirror` script."""
    parser = argparse.ArgumentParser(description="Run the scene mirror sync server.")
    parser.add_argument("--storage-path", metavar="DIR", help="Directory to mirror the tree into")
    parser.add_argument("--prompt", action="store_true", help="Ask for the storage path interactively")
    parser.add_argument("--host", default=settings.api_host)
    parser.add_argument("--port", type=int, default=settings.api_port)
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings.storage_path = resolve_storage_path(args.storage_path, prompt=args.prompt)
    # reload workers are fresh processes and only see the environment
    os.environ["STORAGE_PATH"] = str(settings.storage_path)
    logger.info("Listening on http://%s:%d", args.host, args.port)

    uvicorn.run(
        "mirror_api.main:app",
        host=args.host,
        port=args.port,
        reload=settings.api_reload,
    )


if __name__ == "__main__":
    start()
