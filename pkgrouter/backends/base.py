"""Backend capability used by the router.

A backend knows which ecosystems it can currently reach and how to invoke a
lookup tool for one of them. The router only depends on this protocol, so
tests can substitute an in-memory fake.
"""

from typing import Any, Protocol, runtime_checkable

from pkgrouter.models.package import BackendResult

TOOL_PACKAGE_INFO = "get_package_info"
TOOL_PACKAGE_README = "get_package_readme"
TOOL_SEARCH_PACKAGES = "search_packages"

BACKEND_TOOLS = (TOOL_PACKAGE_INFO, TOOL_PACKAGE_README, TOOL_SEARCH_PACKAGES)


class BackendError(Exception):
    """Raised when a backend call fails for one manager."""

    def __init__(self, manager_id: str, message: str) -> None:
        super().__init__(f"{manager_id}: {message}")
        self.manager_id = manager_id
        self.message = message


@runtime_checkable
class Backend(Protocol):
    """Tool-invocation capability keyed by manager id."""

    def is_available(self, manager_id: str) -> bool:
        """Return True if ``manager_id`` can be queried right now."""
        ...

    def tools_for(self, manager_id: str) -> list[str]:
        """Tool names the backend for ``manager_id`` advertises."""
        ...

    async def invoke(
        self,
        manager_id: str,
        tool_name: str,
        params: dict[str, Any],
        timeout_ms: int,
    ) -> BackendResult:
        """Invoke ``tool_name`` on the backend serving ``manager_id``.

        Implementations either return a BackendResult (successful or not) or
        raise BackendError, TimeoutError or OSError.
        """
        ...
