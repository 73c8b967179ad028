from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from dotenv import load_dotenv

from persistence import AsyncStateManager, DiskBackend, InMemoryBackend, StateManager
from settings import Settings, get_settings

logger = logging.getLogger(__name__)


def _log_reload(keys: list[str]) -> None:
    # There is no page to refresh server-side; listeners re-read through the change notifier.
    logger.info("CONFIG IMPORT: reload requested for %d keys: %s", len(keys), keys)


def build_state_manager(settings: Settings) -> StateManager:
    if settings.persist_to_disk:
        backend = DiskBackend(settings.state_data_dir)
        logger.info("STATE: persisting to %s", backend.directory)
    else:
        backend = InMemoryBackend(quota_bytes=settings.storage_quota_bytes)
        logger.info("STATE: using in-memory store (PERSIST_TO_DISK is off)")
    return StateManager(
        backend,
        reload_hook=_log_reload,
        reload_delay=settings.import_reload_delay_seconds,
    )


def create_app(manager: StateManager | None = None) -> FastAPI:
    load_dotenv("local.env")
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)

    from endpoints.state_endpoints import router as state_router

    app = FastAPI(title="KPI dashboard state")
    app.state.store = AsyncStateManager(manager or build_state_manager(settings))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if settings.debug_log_requests:

        @app.middleware("http")
        async def log_requests(request: Request, call_next):
            response = await call_next(request)
            logger.info("REQUEST: %s %s -> %s", request.method, request.url.path, response.status_code)
            return response

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    app.include_router(state_router)

    return app


app = create_app()
