from __future__ import annotations

import argparse
import asyncio
from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence

import httpx
from dotenv import load_dotenv
from loguru import logger
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from client.alfred_client import AlfredClient
from core.config import TRANSPORTS, ConfigurationError, Settings
from core.logging import configure_logging, mask_secret
from mcp_server.auth import register_auth_tools
from mcp_server.connections import register_connections_tools
from mcp_server.executions import register_executions_tools
from mcp_server.registry import ToolRegistry
from mcp_server.skills import register_skills_tools


SERVER_NAME = "alfred-api"
SERVER_VERSION = "1.0.0"

_CATEGORIES = (
    ("Skills", register_skills_tools),
    ("Connections", register_connections_tools),
    ("Executions", register_executions_tools),
    ("Auth", register_auth_tools),
)


def build_registry(client: AlfredClient) -> ToolRegistry:
    registry = ToolRegistry()
    for label, register in _CATEGORIES:
        before = len(registry)
        register(registry, client)
        logger.info(f"{label} tools registered ({len(registry) - before} tools)")
    logger.info(f"Total tools: {len(registry)}")
    logger.debug(f"Registered tools: {', '.join(registry.names())}")
    return registry


def create_server(
    settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None
) -> Server:
    """Wire one Alfred client into every tool category and expose them over MCP."""
    client = AlfredClient(settings, transport=transport)
    registry = build_registry(client)
    server: Server = Server(SERVER_NAME, version=SERVER_VERSION)

    # mypy struggles with dynamic decorator types exposed by the MCP library.
    @server.list_tools()  # type: ignore[misc,no-untyped-call]
    async def _list_tools() -> List[Tool]:
        return registry.list_tools()

    # Arguments are validated by the registry, which reports failures as payloads.
    @server.call_tool(validate_input=False)  # type: ignore[misc,no-untyped-call]
    async def _call_tool(name: str, arguments: Dict[str, Any]) -> List[TextContent]:
        return await registry.call_tool(name, arguments or {})

    logger.info(f"Server initialized, connected to {client.base_url}")
    return server


async def run_stdio(server: Server) -> None:
    async with stdio_server() as (read_stream, write_stream):
        logger.info("Connected to STDIO transport, listening for requests")
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(),
        )


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Alfred MCP server - exposes the Alfred REST API as MCP tools"
    )
    parser.add_argument("--transport", choices=TRANSPORTS, help="Transport to serve (default: stdio)")
    parser.add_argument("--host", help="Bind address for the HTTP transport")
    parser.add_argument("--port", type=int, help="Port for the HTTP transport")
    return parser.parse_args(argv)


def load_settings(argv: Optional[Sequence[str]] = None) -> Settings:
    args = _parse_args(argv)
    settings = Settings.load_from_env()
    overrides = {
        key: value
        for key, value in (("transport", args.transport), ("host", args.host), ("port", args.port))
        if value is not None
    }
    return replace(settings, **overrides) if overrides else settings


def main(argv: Optional[Sequence[str]] = None) -> None:
    load_dotenv()
    try:
        settings = load_settings(argv)
    except ConfigurationError as e:
        raise SystemExit(f"Configuration error: {e}")

    configure_logging(settings.log_level, settings.audit_log_path)
    logger.info(
        f"Configuration loaded: base_url={settings.base_url} "
        f"api_key={mask_secret(settings.api_key)} timeout={settings.timeout_ms}ms"
    )

    server = create_server(settings)
    if settings.transport == "http":
        from mcp_server.app import run_http

        run_http(server, settings)
    else:
        asyncio.run(run_stdio(server))


if __name__ == "__main__":
    main()
