"""MCP tool handlers.

Each handler takes the router and the tool arguments and returns a JSON
response. Handlers are organized by domain:
- packages: smart_package_info, smart_package_readme, smart_package_search
- managers: list_supported_managers
"""

from pkgrouter.mcp.tools.handlers.managers import handle_list_supported_managers
from pkgrouter.mcp.tools.handlers.packages import (
    handle_smart_package_info,
    handle_smart_package_readme,
    handle_smart_package_search,
)

__all__ = [
    "handle_list_supported_managers",
    "handle_smart_package_info",
    "handle_smart_package_readme",
    "handle_smart_package_search",
]
