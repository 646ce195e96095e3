"""Manager listing handler."""

from typing import Any

from pkgrouter.routing.router import PackageRouter


async def handle_list_supported_managers(router: PackageRouter, arguments: dict[str, Any]) -> str:
    """Handle list_supported_managers tool call.

    Takes no arguments. Reports every known ecosystem, whether its backend
    is connected, its detection tables, and an overall health summary.
    """
    response = router.list_managers()
    return response.model_dump_json(exclude_none=True, indent=2)
