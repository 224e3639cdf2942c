"""MCP stdio server wiring: registry, loader, dispatcher and protocol handlers."""

import asyncio
import functools
import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from mcp import types
from mcp.server import Server
from mcp.server.stdio import stdio_server

from apple_mcp import __version__
from apple_mcp.backends import BackendId
from apple_mcp.backends import calendar, contacts, mail, maps, messages, notes, reminders, web_search
from apple_mcp.backends.handle import BackendRegistry
from apple_mcp.backends.loader import BackendLoader
from apple_mcp.config import Settings
from apple_mcp.server.dispatcher import ToolDispatcher
from apple_mcp.server.tools import list_tools

logger = logging.getLogger(__name__)

BACKEND_MODULES = {
    BackendId.CONTACTS: contacts,
    BackendId.NOTES: notes,
    BackendId.MESSAGES: messages,
    BackendId.MAIL: mail,
    BackendId.REMINDERS: reminders,
    BackendId.CALENDAR: calendar,
    BackendId.MAPS: maps,
    BackendId.WEB_SEARCH: web_search,
}


# Text content, optionally paired with the structured payload of the result
ToolReply = Union[List[types.TextContent], Tuple[List[types.TextContent], Dict[str, Any]]]


class ToolCallFailed(Exception):
    """Raised inside the call_tool handler so the SDK marks the reply isError."""


def build_registry(settings: Settings) -> BackendRegistry:
    """Register an initializer for every enabled backend."""
    registry = BackendRegistry()
    for name in settings.enabled_backends:
        backend_id = BackendId(name)
        registry.register(backend_id, functools.partial(BACKEND_MODULES[backend_id].create, settings))
    logger.debug(f"Registered backends: {', '.join(settings.enabled_backends)}")
    return registry


def build_loader(settings: Settings, registry: Optional[BackendRegistry] = None) -> BackendLoader:
    return BackendLoader(
        registry if registry is not None else build_registry(settings),
        startup_timeout=settings.startup_timeout,
        eager=settings.eager_loading,
    )


def build_server(dispatcher: ToolDispatcher, settings: Settings) -> Server:
    server = Server(settings.app_name, version=__version__)
    enabled = list(settings.enabled_backends)

    @server.list_tools()
    async def handle_list_tools() -> List[types.Tool]:
        return list_tools(enabled)

    # Arguments are checked by the dispatcher's models, not the SDK's jsonschema pass
    @server.call_tool(validate_input=False)
    async def handle_call_tool(name: str, arguments: Optional[Dict[str, Any]]) -> ToolReply:
        result = await dispatcher.invoke_tool(name, arguments)
        if result.is_error:
            raise ToolCallFailed(result.content)
        content = [types.TextContent(type="text", text=result.content)]
        if result.extra:
            return content, dict(result.extra)
        return content

    return server


async def serve(settings: Settings) -> None:
    """Run the server over stdio until the client disconnects."""
    loader = build_loader(settings)
    dispatcher = ToolDispatcher(loader, settings)
    server = build_server(dispatcher, settings)

    logger.info(f"Starting {settings.app_name} v{__version__}")
    startup = asyncio.create_task(loader.start())
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        if not startup.done():
            startup.cancel()
            await asyncio.gather(startup, return_exceptions=True)
        logger.info("Server stopped")


async def check(settings: Settings) -> Dict[str, Any]:
    """Run the startup protocol once and report the loader status."""
    loader = build_loader(settings)
    await loader.start()
    return loader.status()
