"""FastAPI server for the site-intelligence realtime endpoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, WebSocket
from fastapi.responses import ORJSONResponse

from src.state.runtime import RuntimeDeps
from src.state.settings import AppSettings
from src.config.websocket import WS_ENDPOINT_PATH
from src.runtime.logging import configure_logging
from src.runtime.dependencies import build_runtime_deps
from src.handlers.websocket.manager import handle_websocket_connection

logger = logging.getLogger(__name__)

configure_logging()


def _runtime_deps(app: FastAPI) -> RuntimeDeps:
    runtime_deps = getattr(app.state, "runtime_deps", None)
    if runtime_deps is None:
        raise RuntimeError("Runtime dependencies are not initialized")
    return runtime_deps


def create_app(settings: AppSettings | None = None) -> FastAPI:
    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        runtime_deps = build_runtime_deps(settings)
        runtime_deps.start()
        app.state.runtime_deps = runtime_deps
        logger.info("runtime: ready")
        try:
            yield
        finally:
            deps = getattr(app.state, "runtime_deps", None)
            if deps is not None:
                await deps.shutdown()
                app.state.runtime_deps = None

    app = FastAPI(default_response_class=ORJSONResponse, lifespan=_lifespan)

    @app.get("/")
    async def root() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/stats")
    async def stats(request: Request) -> dict:
        runtime_deps = _runtime_deps(request.app)
        return {
            "connections": runtime_deps.governor.stats(),
            "locks": runtime_deps.locks.stats(),
        }

    @app.websocket(WS_ENDPOINT_PATH)
    async def websocket_endpoint(websocket: WebSocket) -> None:
        await handle_websocket_connection(websocket, _runtime_deps(websocket.app))

    return app


app = create_app()
