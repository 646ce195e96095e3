"""Pool of stdio MCP client sessions, one per ecosystem backend.

Each configured ecosystem gets its own MCP server subprocess. A connection is
owned by a dedicated task that enters the stdio transport and client session
and keeps them open until it is told to stop, so the transport is always
entered and exited from the same task.

Connect and disconnect transitions are serialized per manager with an
``asyncio.Lock``. Optional periodic health checks call ``list_tools`` and mark
a manager disconnected on failure; the next check tries to reconnect.
"""

import asyncio
import json
import time
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from typing import Any

import anyio
from mcp.client.session import ClientSession
from mcp.client.stdio import StdioServerParameters, stdio_client
from mcp.shared.exceptions import McpError

from pkgrouter.backends.base import BackendError
from pkgrouter.config import BackendServerConfig, RouterSettings
from pkgrouter.logging import logger
from pkgrouter.models.package import BackendResult

_CONNECT_TIMEOUT_SECONDS = 30.0

# Errors raised by the client session when the server's pipes go away
_STREAM_ERRORS = (anyio.ClosedResourceError, anyio.BrokenResourceError, anyio.EndOfStream)

_RECONNECT_MARKERS = ("ECONNRESET", "EPIPE", "ENOTFOUND", "Connection closed")


@dataclass
class _Connection:
    task: asyncio.Task[None] | None = None
    stop: asyncio.Event = field(default_factory=asyncio.Event)
    session: ClientSession | None = None
    tools: list[str] = field(default_factory=list)
    connected: bool = False


def should_reconnect(error: BaseException) -> bool:
    """Return True if ``error`` means the server connection is gone."""
    if isinstance(error, (*_STREAM_ERRORS, BrokenPipeError, ConnectionResetError)):
        return True
    message = str(error)
    return any(marker in message for marker in _RECONNECT_MARKERS)


def backoff_delay_ms(attempt: int, base_ms: int = 1000, max_ms: int = 5000) -> int:
    """Exponential backoff before retry ``attempt`` (1-based), capped at ``max_ms``."""
    return min(base_ms * 2 ** (attempt - 1), max_ms)


def parse_tool_content(result: Any) -> dict[str, Any]:
    """Turn a ``CallToolResult`` into a payload dict.

    Structured content wins when present. Otherwise text blocks are joined and
    decoded as JSON; lists are wrapped as ``{"results": [...]}`` and plain text
    as ``{"text": ...}``.
    """
    structured = getattr(result, "structuredContent", None)
    if isinstance(structured, dict):
        return structured

    text = "\n".join(block.text for block in result.content if getattr(block, "type", None) == "text")
    if not text:
        return {}
    try:
        decoded = json.loads(text)
    except json.JSONDecodeError:
        return {"text": text}
    if isinstance(decoded, dict):
        return decoded
    if isinstance(decoded, list):
        return {"results": decoded}
    return {"text": text}


class McpBackendPool:
    """Backend implementation that talks to per-ecosystem MCP servers.

    Args:
        configs: Server definitions keyed by manager id.
        settings: Retry and timeout settings.
    """

    def __init__(
        self,
        configs: dict[str, BackendServerConfig],
        settings: RouterSettings | None = None,
    ) -> None:
        self._configs = dict(configs)
        self._settings = settings or RouterSettings()
        self._connections: dict[str, _Connection] = {}
        self._health_tasks: dict[str, asyncio.Task[None]] = {}
        self._locks: dict[str, asyncio.Lock] = {m: asyncio.Lock() for m in self._configs}

    # ------------------------------------------------------------------
    # Backend protocol
    # ------------------------------------------------------------------

    def is_available(self, manager_id: str) -> bool:
        conn = self._connections.get(manager_id)
        return conn is not None and conn.connected and conn.session is not None

    async def invoke(
        self,
        manager_id: str,
        tool_name: str,
        params: dict[str, Any],
        timeout_ms: int,
    ) -> BackendResult:
        return await self.invoke_with_retry(manager_id, tool_name, params, timeout_ms)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def configured_managers(self) -> list[str]:
        return list(self._configs)

    def connected_managers(self) -> list[str]:
        return [m for m in self._configs if self.is_available(m)]

    def tools_for(self, manager_id: str) -> list[str]:
        """Tool names the connected server advertised (empty if disconnected)."""
        conn = self._connections.get(manager_id)
        return list(conn.tools) if conn is not None and conn.connected else []

    async def connect(self, manager_id: str) -> None:
        """Start the server for ``manager_id`` and open a client session.

        Raises:
            BackendError: If no server is configured or the connection fails.
        """
        config = self._configs.get(manager_id)
        if config is None:
            raise BackendError(manager_id, "no MCP server configured")

        async with self._locks[manager_id]:
            if self.is_available(manager_id):
                return
            await self._teardown(manager_id)

            conn = _Connection()
            ready: asyncio.Future[None] = asyncio.get_running_loop().create_future()
            conn.task = asyncio.create_task(
                self._serve_connection(manager_id, config, conn, ready),
                name=f"pkgrouter-backend-{manager_id}",
            )
            self._connections[manager_id] = conn

            try:
                await asyncio.wait_for(asyncio.shield(ready), timeout=_CONNECT_TIMEOUT_SECONDS)
            except Exception as e:
                self._connections.pop(manager_id, None)
                conn.task.cancel()
                try:
                    await conn.task
                except asyncio.CancelledError:
                    pass
                raise BackendError(manager_id, f"connect failed: {e}") from e

        logger.info("Connected to %s MCP server (%d tools)", manager_id, len(conn.tools))

        interval = config.health_check_interval_ms
        if interval and manager_id not in self._health_tasks:
            self._health_tasks[manager_id] = asyncio.create_task(
                self._health_loop(manager_id, interval),
                name=f"pkgrouter-health-{manager_id}",
            )

    async def disconnect(self, manager_id: str) -> None:
        """Close the session for ``manager_id`` and stop its health checks."""
        health = self._health_tasks.pop(manager_id, None)
        if health is not None:
            health.cancel()
            try:
                await health
            except asyncio.CancelledError:
                pass

        lock = self._locks.get(manager_id)
        if lock is None:
            return
        async with lock:
            await self._teardown(manager_id)
        logger.info("Disconnected from %s MCP server", manager_id)

    async def connect_all(self) -> None:
        """Connect every configured server. Failures are logged, not raised."""

        async def _connect(manager_id: str) -> None:
            try:
                await self.connect(manager_id)
            except BackendError as e:
                logger.warning("Could not connect %s: %s", manager_id, e.message)

        await asyncio.gather(*(_connect(m) for m in self._configs))
        logger.info(
            "%d/%d backend servers connected",
            len(self.connected_managers()),
            len(self._configs),
        )

    async def close(self) -> None:
        """Disconnect every server."""
        await asyncio.gather(*(self.disconnect(m) for m in list(self._configs)))

    async def retry_connection(self, manager_id: str, max_retries: int = 3) -> bool:
        """Try to (re)connect with exponential backoff.

        Returns:
            True once connected, False after ``max_retries`` failed attempts.
        """
        for attempt in range(1, max_retries + 1):
            try:
                await self.connect(manager_id)
                return True
            except BackendError as e:
                logger.warning(
                    "Reconnect %s attempt %d/%d failed: %s", manager_id, attempt, max_retries, e.message
                )
                if attempt < max_retries:
                    await asyncio.sleep(self._backoff_seconds(attempt))
        return False

    # ------------------------------------------------------------------
    # Tool calls
    # ------------------------------------------------------------------

    async def invoke_with_retry(
        self,
        manager_id: str,
        tool_name: str,
        params: dict[str, Any],
        timeout_ms: int,
    ) -> BackendResult:
        """Call a tool, retrying failed attempts with exponential backoff.

        ``RouterSettings.max_retries`` is the total number of attempts.

        Raises:
            BackendError: If the last attempt failed.
            TimeoutError: If the last attempt timed out.
        """
        attempts = self._settings.max_retries
        for attempt in range(1, attempts + 1):
            try:
                return await self._call_once(manager_id, tool_name, params, timeout_ms)
            except (BackendError, TimeoutError) as e:
                if attempt >= attempts:
                    raise
                delay = self._backoff_seconds(attempt)
                logger.debug(
                    "%s.%s attempt %d failed (%s), retrying in %.1fs",
                    manager_id, tool_name, attempt, e, delay,
                )
                await asyncio.sleep(delay)
                if not self.is_available(manager_id):
                    await self.retry_connection(manager_id, max_retries=1)

        raise BackendError(manager_id, "no attempts made")

    async def _call_once(
        self,
        manager_id: str,
        tool_name: str,
        params: dict[str, Any],
        timeout_ms: int,
    ) -> BackendResult:
        conn = self._connections.get(manager_id)
        if conn is None or not conn.connected or conn.session is None:
            raise BackendError(manager_id, f"not connected to {manager_id} MCP server")
        if conn.tools and tool_name not in conn.tools:
            raise BackendError(manager_id, f"server does not provide tool '{tool_name}'")

        start = time.perf_counter()
        try:
            result = await asyncio.wait_for(
                conn.session.call_tool(tool_name, params),
                timeout=timeout_ms / 1000,
            )
        except (McpError, OSError, *_STREAM_ERRORS) as e:
            if should_reconnect(e):
                self._mark_disconnected(manager_id, str(e) or type(e).__name__)
            raise BackendError(manager_id, str(e) or type(e).__name__) from e
        latency_ms = (time.perf_counter() - start) * 1000

        payload = parse_tool_content(result)
        if result.isError:
            return BackendResult(
                manager_id=manager_id,
                success=False,
                error=payload.get("text") or payload.get("error") or "tool returned an error",
                latency_ms=latency_ms,
            )
        return BackendResult(
            manager_id=manager_id,
            success=True,
            payload=payload,
            latency_ms=latency_ms,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _backoff_seconds(self, attempt: int) -> float:
        return (
            backoff_delay_ms(
                attempt,
                self._settings.retry_base_delay_ms,
                self._settings.retry_max_delay_ms,
            )
            / 1000
        )

    def _mark_disconnected(self, manager_id: str, reason: str) -> None:
        conn = self._connections.get(manager_id)
        if conn is not None and conn.connected:
            conn.connected = False
            logger.warning("Marked %s disconnected: %s", manager_id, reason)

    async def _teardown(self, manager_id: str) -> None:
        conn = self._connections.pop(manager_id, None)
        if conn is None:
            return
        conn.connected = False
        conn.stop.set()
        if conn.task is not None:
            await conn.task

    async def _serve_connection(
        self,
        manager_id: str,
        config: BackendServerConfig,
        conn: _Connection,
        ready: asyncio.Future[None],
    ) -> None:
        params = StdioServerParameters(command=config.command, args=config.args, env=config.env)
        try:
            async with AsyncExitStack() as stack:
                read_stream, write_stream = await stack.enter_async_context(stdio_client(params))
                session = await stack.enter_async_context(ClientSession(read_stream, write_stream))
                await session.initialize()
                listed = await session.list_tools()

                conn.session = session
                conn.tools = [t.name for t in listed.tools]
                missing = [t for t in config.tools if t not in conn.tools]
                if missing:
                    logger.warning(
                        "%s MCP server does not advertise: %s", manager_id, ", ".join(missing)
                    )
                conn.connected = True
                if not ready.done():
                    ready.set_result(None)

                await conn.stop.wait()
        except Exception as e:
            if not ready.done():
                ready.set_exception(e)
            else:
                logger.warning("%s MCP connection ended: %s", manager_id, e)
        finally:
            conn.connected = False
            conn.session = None

    async def _health_loop(self, manager_id: str, interval_ms: int) -> None:
        while True:
            await asyncio.sleep(interval_ms / 1000)

            conn = self._connections.get(manager_id)
            if conn is None or not conn.connected or conn.session is None:
                await self.retry_connection(manager_id, max_retries=1)
                continue

            try:
                await asyncio.wait_for(
                    conn.session.list_tools(),
                    timeout=self._settings.single_timeout_ms / 1000,
                )
            except (McpError, OSError, TimeoutError, *_STREAM_ERRORS) as e:
                self._mark_disconnected(manager_id, f"health check failed: {e}")
