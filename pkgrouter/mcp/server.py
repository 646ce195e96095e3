"""MCP server implementation for pkgrouter.

Exposes the package routing tools over the Model Context Protocol and owns
the lifecycle of the backend MCP servers it routes to.

Startup
-------
Settings come from ``PKGROUTER_*`` environment variables. Backend servers are
read from the servers JSON file (``--servers`` or ``PKGROUTER_SERVERS_CONFIG``)
and connected before the server starts accepting requests. Backends that fail
to connect are reported as unavailable; requests that need only them return
``no_backend_available``.

Orphan Prevention
-----------------
MCP clients do not always send SIGTERM when closing. The server watches stdin
for hang-up and the parent PID for changes, and shuts itself (and the backend
subprocesses) down when it has been orphaned.
"""

import asyncio
import os
import select
import sys
from pathlib import Path

from mcp.server import Server
from mcp.server.stdio import stdio_server

from pkgrouter import __version__
from pkgrouter.backends.pool import McpBackendPool
from pkgrouter.config import RouterSettings, load_server_configs
from pkgrouter.detection.tables import DetectionTables
from pkgrouter.logging import logger
from pkgrouter.mcp.tools import register_tools
from pkgrouter.routing.router import PackageRouter

# Server configuration
SERVER_NAME = "pkgrouter"
SERVER_VERSION = __version__

# Orphan detection interval (seconds)
_ORPHAN_CHECK_INTERVAL = 2.0

_INIT_PROCESS_NAMES = ("systemd", "init", "launchd")


def create_server(router: PackageRouter) -> Server:
    """Create and configure the MCP server.

    Args:
        router: Router that serves every tool call.

    Returns:
        Configured MCP Server instance with all tools registered.
    """
    server = Server(SERVER_NAME, version=SERVER_VERSION)
    register_tools(server, router)
    return server


def build_router(
    settings: RouterSettings,
) -> tuple[PackageRouter, McpBackendPool]:
    """Load tables and server configs and wire a router to a backend pool.

    Raises:
        ConfigError: If the servers or tables file is unusable.
    """
    tables = (
        DetectionTables.load(settings.tables_config)
        if settings.tables_config
        else DetectionTables.default()
    )
    server_configs = load_server_configs(settings.servers_config)
    pool = McpBackendPool(server_configs, settings)
    router = PackageRouter(pool, tables=tables, settings=settings, server_configs=server_configs)
    return router, pool


def _is_orphan_parent(ppid: int) -> bool:
    """Return True if the parent is PID 1 or an init-like session manager."""
    if ppid == 1:
        return True
    try:
        with open(f"/proc/{ppid}/comm") as f:
            return f.read().strip() in _INIT_PROCESS_NAMES
    except OSError:
        return False


def _stdin_hung_up() -> bool:
    if hasattr(select, "poll"):
        poller = select.poll()
        poller.register(sys.stdin.fileno(), select.POLLHUP | select.POLLERR)
        return any(event & (select.POLLHUP | select.POLLERR) for _, event in poller.poll(0))

    # No poll() on this platform: an exceptional condition on stdin means it closed
    _, _, exceptional = select.select([sys.stdin], [], [sys.stdin], 0)
    return bool(exceptional)


async def _orphan_watchdog(shutdown_event: asyncio.Event) -> None:
    """Set ``shutdown_event`` once stdin hangs up or the parent goes away."""
    original_ppid = os.getppid()

    while not shutdown_event.is_set():
        try:
            if _stdin_hung_up():
                logger.info("Stdin closed, shutting down")
                break

            current_ppid = os.getppid()
            if current_ppid != original_ppid:
                logger.info(
                    "Parent PID changed (%d -> %d), shutting down", original_ppid, current_ppid
                )
                break
            if _is_orphan_parent(current_ppid):
                logger.info("Parent is init (PID %d), shutting down", current_ppid)
                break
        except (OSError, ValueError):
            logger.info("Stdin invalid, shutting down")
            break

        await asyncio.sleep(_ORPHAN_CHECK_INTERVAL)

    shutdown_event.set()


async def _cancel(task: asyncio.Task) -> None:
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


async def run_server_async(
    servers_path: Path | str | None = None,
    tables_path: Path | str | None = None,
) -> None:
    """Run the MCP server with stdio transport and orphan detection.

    Args:
        servers_path: Backend servers JSON, overriding PKGROUTER_SERVERS_CONFIG.
        tables_path: Detection tables JSON, overriding PKGROUTER_TABLES_CONFIG.
    """
    settings = RouterSettings.from_env(
        servers_config=str(servers_path) if servers_path else None,
        tables_config=str(tables_path) if tables_path else None,
    )
    router, pool = build_router(settings)
    await pool.connect_all()

    server = create_server(router)
    shutdown_event = asyncio.Event()
    watchdog_task = asyncio.create_task(_orphan_watchdog(shutdown_event))

    try:
        async with stdio_server() as (read_stream, write_stream):
            server_task = asyncio.create_task(
                server.run(
                    read_stream,
                    write_stream,
                    server.create_initialization_options(),
                )
            )
            shutdown_task = asyncio.create_task(shutdown_event.wait())

            _, pending = await asyncio.wait(
                [server_task, shutdown_task],
                return_when=asyncio.FIRST_COMPLETED,
            )
            for task in pending:
                await _cancel(task)

    finally:
        await _cancel(watchdog_task)
        await pool.close()
        logger.info("MCP server shutdown complete")


def run_server(
    servers_path: Path | str | None = None,
    tables_path: Path | str | None = None,
) -> None:
    """Run the MCP server (blocking)."""
    asyncio.run(run_server_async(servers_path, tables_path))
