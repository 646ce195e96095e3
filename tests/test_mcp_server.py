"""Tests for MCP server initialization, tool definitions and dispatch."""

import json

import pytest

from conftest import FakeBackend
from pkgrouter.config import RouterSettings
from pkgrouter.mcp.server import SERVER_NAME, SERVER_VERSION, build_router, create_server
from pkgrouter.mcp.tools import dispatch_tool, inject_timing
from pkgrouter.mcp.tools.definitions import (
    ALL_TOOLS,
    LIST_SUPPORTED_MANAGERS_TOOL,
    SMART_PACKAGE_INFO_TOOL,
    SMART_PACKAGE_README_TOOL,
    SMART_PACKAGE_SEARCH_TOOL,
)


@pytest.fixture
def router(make_router):
    backend = FakeBackend(
        {"npm": {"name": "@types/node", "description": "Type definitions for Node.js"}}
    )
    return make_router(backend)


class TestMCPServer:
    """Tests for MCP server creation and configuration."""

    def test_create_server_returns_server_instance(self, router) -> None:
        """Server creation returns a valid Server instance."""
        server = create_server(router)
        assert server is not None
        assert server.name == SERVER_NAME

    def test_server_name_is_pkgrouter(self) -> None:
        """Server name is 'pkgrouter'."""
        assert SERVER_NAME == "pkgrouter"

    def test_server_version_matches_package(self) -> None:
        """Server version matches package version."""
        from pkgrouter import __version__

        assert SERVER_VERSION == __version__

    def test_build_router_without_servers(self) -> None:
        """Without a servers file the router starts with no backends."""
        router, pool = build_router(RouterSettings())

        assert pool.configured_managers() == []
        assert router.registry.connected_managers() == []


class TestToolDefinitions:
    """Tests for MCP tool definitions."""

    def test_all_tools_registered(self) -> None:
        """Four tools are exposed."""
        assert [t.name for t in ALL_TOOLS] == [
            "smart_package_search",
            "smart_package_readme",
            "smart_package_info",
            "list_supported_managers",
        ]

    @pytest.mark.parametrize(
        "tool",
        [SMART_PACKAGE_SEARCH_TOOL, SMART_PACKAGE_README_TOOL, SMART_PACKAGE_INFO_TOOL],
    )
    def test_package_tools_require_package_name(self, tool) -> None:
        """Lookup tools take package_name plus the shared detection inputs."""
        assert tool.description is not None
        properties = tool.inputSchema["properties"]
        assert "package_name" in tool.inputSchema["required"]
        for name in ("context_hints", "preferred_managers", "file_paths"):
            assert name in properties

    def test_tool_specific_fields(self) -> None:
        """Each lookup tool exposes its own options."""
        assert "limit" in SMART_PACKAGE_SEARCH_TOOL.inputSchema["properties"]
        assert "version" in SMART_PACKAGE_README_TOOL.inputSchema["properties"]
        assert "include_examples" in SMART_PACKAGE_README_TOOL.inputSchema["properties"]
        assert "include_dependencies" in SMART_PACKAGE_INFO_TOOL.inputSchema["properties"]

    def test_list_managers_takes_no_arguments(self) -> None:
        """list_supported_managers has an empty schema."""
        assert LIST_SUPPORTED_MANAGERS_TOOL.inputSchema["properties"] == {}


class TestDispatch:
    """Tests for dispatch_tool and inject_timing."""

    @pytest.mark.asyncio
    async def test_unknown_tool_raises(self, router) -> None:
        """Unknown tool names are rejected."""
        with pytest.raises(ValueError, match="Unknown tool"):
            await dispatch_tool("does_not_exist", {}, router)

    @pytest.mark.asyncio
    async def test_info_returns_json_with_timing(self, router) -> None:
        """smart_package_info returns the router response as JSON plus timing."""
        result = await dispatch_tool("smart_package_info", {"package_name": "@types/node"}, router)
        data = json.loads(result)

        assert data["success"] is True
        assert data["data"]["manager"] == "npm"
        assert data["data"]["payload"]["package_manager"] == "npm"
        assert "total_ms" in data["timing"]

    @pytest.mark.asyncio
    async def test_failure_omits_empty_fields(self, router) -> None:
        """Failed lookups carry errors but no data key."""
        result = await dispatch_tool("smart_package_readme", {"package_name": "../x"}, router)
        data = json.loads(result)

        assert data["success"] is False
        assert "data" not in data
        assert data["errors"][0]["error_kind"] == "invalid_input"

    @pytest.mark.asyncio
    async def test_search(self, router) -> None:
        """smart_package_search reports detections and per-manager results."""
        result = await dispatch_tool("smart_package_search", {"package_name": "@types/node"}, router)
        data = json.loads(result)

        assert data["data"]["detected_managers"][0]["manager_id"] == "npm"
        assert data["data"]["confidence_score"] == 1.0

    @pytest.mark.asyncio
    async def test_list_managers_without_arguments(self, router) -> None:
        """list_supported_managers accepts missing arguments."""
        result = await dispatch_tool("list_supported_managers", None, router)
        data = json.loads(result)

        assert data["data"]["total_count"] == 15
        assert data["data"]["health"]["status"] == "degraded"

    def test_inject_timing_leaves_non_json_alone(self) -> None:
        """Non-JSON results pass through unchanged."""
        assert inject_timing("plain text", 12.3) == "plain text"
        assert inject_timing("[1, 2]", 12.3) == "[1, 2]"

    def test_inject_timing_rounds(self) -> None:
        """Timing is added in milliseconds with one decimal."""
        data = json.loads(inject_timing('{"success": true}', 12.345))

        assert data["timing"] == {"total_ms": 12.3}
