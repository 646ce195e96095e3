"""Package lookup handlers.

Handlers for the three routed lookup tools:
- smart_package_info: metadata from the best-matching registry
- smart_package_readme: README from the best-matching registry
- smart_package_search: search across every plausible registry
"""

from typing import Any

from pkgrouter.routing.router import PackageRouter


async def handle_smart_package_info(router: PackageRouter, arguments: dict[str, Any]) -> str:
    """Handle smart_package_info tool call.

    Args:
        router: The package router.
        arguments: Tool arguments with package_name and optional hints.

    Returns:
        JSON string of the router response.
    """
    response = await router.package_info(arguments)
    return response.model_dump_json(exclude_none=True, indent=2)


async def handle_smart_package_readme(router: PackageRouter, arguments: dict[str, Any]) -> str:
    """Handle smart_package_readme tool call."""
    response = await router.package_readme(arguments)
    return response.model_dump_json(exclude_none=True, indent=2)


async def handle_smart_package_search(router: PackageRouter, arguments: dict[str, Any]) -> str:
    """Handle smart_package_search tool call."""
    response = await router.package_search(arguments)
    return response.model_dump_json(exclude_none=True, indent=2)
