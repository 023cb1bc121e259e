"""HTTP transport: MCP streamable HTTP mounted on a FastAPI app."""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict

import uvicorn
from fastapi import FastAPI
from loguru import logger
from mcp.server import Server
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from starlette.types import Receive, Scope, Send

from core.config import Settings


MCP_PATH = "/mcp"
_UVICORN_LEVELS = {"critical", "error", "warning", "info", "debug", "trace"}


class StreamableHTTPEndpoint:
    """Raw ASGI endpoint handing every request to the MCP session manager."""

    def __init__(self, session_manager: StreamableHTTPSessionManager) -> None:
        self.session_manager = session_manager

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self.session_manager.handle_request(scope, receive, send)


def create_app(server: Server, settings: Settings) -> FastAPI:
    # Tool calls carry no session state, so every HTTP request stands alone.
    session_manager = StreamableHTTPSessionManager(app=server, stateless=True)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        async with session_manager.run():
            logger.info(f"Streamable HTTP transport ready at {MCP_PATH}")
            yield

    app = FastAPI(title="alfred-mcp", lifespan=lifespan)

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        return {"status": "ok", "server": server.name, "base_url": settings.base_url}

    app.add_route(MCP_PATH, StreamableHTTPEndpoint(session_manager), include_in_schema=False)
    return app


def run_http(server: Server, settings: Settings) -> None:
    level = settings.log_level.lower()
    uvicorn.run(
        create_app(server, settings),
        host=settings.host,
        port=settings.port,
        log_level=level if level in _UVICORN_LEVELS else "info",
    )
