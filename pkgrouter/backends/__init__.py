"""Backend capability, MCP client pool and manager registry."""

from pkgrouter.backends.base import (
    BACKEND_TOOLS,
    TOOL_PACKAGE_INFO,
    TOOL_PACKAGE_README,
    TOOL_SEARCH_PACKAGES,
    Backend,
    BackendError,
)
from pkgrouter.backends.pool import McpBackendPool
from pkgrouter.backends.registry import ManagerRegistry

__all__ = [
    "BACKEND_TOOLS",
    "TOOL_PACKAGE_INFO",
    "TOOL_PACKAGE_README",
    "TOOL_SEARCH_PACKAGES",
    "Backend",
    "BackendError",
    "ManagerRegistry",
    "McpBackendPool",
]
