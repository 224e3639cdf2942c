"""MCP tool surface: catalog, argument models, dispatcher and stdio server."""

from .args import InvalidToolArguments, parse_args
from .dispatcher import ToolDispatcher, ToolResult
from .tools import TOOLS, list_tools

__all__ = [
    "InvalidToolArguments",
    "parse_args",
    "ToolDispatcher",
    "ToolResult",
    "TOOLS",
    "list_tools",
]
