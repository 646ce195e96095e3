"""MCP tools registration.

Provides tool definitions, handlers, and registration functions for
the pkgrouter MCP server.
"""

from mcp.server import Server

from pkgrouter.mcp.tools.definitions import (
    ALL_TOOLS,
    LIST_SUPPORTED_MANAGERS_TOOL,
    SMART_PACKAGE_INFO_TOOL,
    SMART_PACKAGE_README_TOOL,
    SMART_PACKAGE_SEARCH_TOOL,
)
from pkgrouter.mcp.tools.dispatch import (
    dispatch_tool,
    inject_timing,
    register_package_tools,
)
from pkgrouter.routing.router import PackageRouter


def register_tools(server: Server, router: PackageRouter) -> None:
    """Register all MCP tools with the server.

    Args:
        server: The MCP server instance.
        router: Router that serves every tool call.
    """
    register_package_tools(server, router)


__all__ = [
    # Registration
    "register_tools",
    "register_package_tools",
    # Dispatch
    "dispatch_tool",
    "inject_timing",
    # Tool definitions
    "ALL_TOOLS",
    "SMART_PACKAGE_SEARCH_TOOL",
    "SMART_PACKAGE_README_TOOL",
    "SMART_PACKAGE_INFO_TOOL",
    "LIST_SUPPORTED_MANAGERS_TOOL",
]
