"""MCP tool registration and dispatch.

Registers the pkgrouter tools with the MCP server and dispatches tool
calls to the appropriate handlers.
"""

import json
from typing import Any

from mcp.server import Server
from mcp.types import TextContent, Tool

from pkgrouter.logging import log_operation
from pkgrouter.mcp.tools.definitions import ALL_TOOLS
from pkgrouter.mcp.tools.handlers import (
    handle_list_supported_managers,
    handle_smart_package_info,
    handle_smart_package_readme,
    handle_smart_package_search,
)
from pkgrouter.routing.router import PackageRouter


def register_package_tools(server: Server, router: PackageRouter) -> None:
    """Register package routing tools with the MCP server.

    Args:
        server: The MCP server instance.
        router: Router that serves every tool call.
    """

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """List available package tools."""
        return ALL_TOOLS

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
        """Handle tool calls."""
        try:
            result = await dispatch_tool(name, arguments, router)
            return [TextContent(type="text", text=result)]
        except Exception as e:
            return [
                TextContent(
                    type="text",
                    text=f"Error: {type(e).__name__}: {e}",
                )
            ]


# Handler dispatch table
_HANDLERS = {
    "smart_package_search": handle_smart_package_search,
    "smart_package_readme": handle_smart_package_readme,
    "smart_package_info": handle_smart_package_info,
    "list_supported_managers": handle_list_supported_managers,
}


async def dispatch_tool(name: str, arguments: dict[str, Any] | None, router: PackageRouter) -> str:
    """Dispatch tool call to appropriate handler.

    All tool responses include a 'timing' field with the handler's wall time.

    Args:
        name: Tool name.
        arguments: Tool arguments.
        router: Router passed through to the handler.

    Returns:
        JSON string with tool response and timing.

    Raises:
        ValueError: If tool name is unknown.
    """
    handler = _HANDLERS.get(name)
    if not handler:
        raise ValueError(f"Unknown tool: {name}")

    arguments = arguments or {}

    log_details: dict[str, Any] = {}
    if "package_name" in arguments:
        log_details["package"] = arguments["package_name"]
    if arguments.get("preferred_managers"):
        log_details["prefer"] = ",".join(map(str, arguments["preferred_managers"]))

    with log_operation(f"tool:{name}", log_details) as timing:
        result_str = await handler(router, arguments)

    return inject_timing(result_str, timing.elapsed_ms)


def inject_timing(result_str: str, elapsed_ms: float) -> str:
    """Inject timing information into a JSON response.

    Args:
        result_str: JSON string from handler.
        elapsed_ms: Elapsed time in milliseconds.

    Returns:
        JSON string with timing field added.
    """
    try:
        result = json.loads(result_str)
        if isinstance(result, dict):
            result["timing"] = {
                "total_ms": round(elapsed_ms, 1),
            }
            return json.dumps(result, indent=2)
    except (json.JSONDecodeError, TypeError):
        pass
    return result_str
