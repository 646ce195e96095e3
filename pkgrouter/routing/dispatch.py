"""Fan-out of one backend tool call across an execution plan."""

import asyncio
import time
from typing import Any

from mcp.shared.exceptions import McpError

from pkgrouter.backends.base import Backend, BackendError
from pkgrouter.config import RouterSettings
from pkgrouter.logging import log_dispatch, logger
from pkgrouter.models.package import BackendResult, ExecutionPlan
from pkgrouter.utils.cache import ResponseCache


class ToolDispatcher:
    """Invoke a backend tool for every candidate in a plan.

    Parallel plans run all calls concurrently and wait for every one of them.
    Each call has its own timeout; a timeout or backend error turns into a
    failed result for that manager and never cancels the others.
    """

    def __init__(
        self,
        backend: Backend,
        settings: RouterSettings | None = None,
        cache: ResponseCache | None = None,
    ) -> None:
        self._backend = backend
        self._settings = settings or RouterSettings()
        self._cache = cache

    def timeout_for(self, plan: ExecutionPlan) -> int:
        """Per-call timeout in milliseconds for ``plan``."""
        if plan.parallel:
            return self._settings.parallel_timeout_ms
        return self._settings.single_timeout_ms

    async def dispatch(
        self,
        plan: ExecutionPlan,
        tool_name: str,
        params: dict[str, Any],
    ) -> list[BackendResult]:
        """Run ``tool_name`` for each candidate.

        Returns:
            One result per candidate, in candidate order.
        """
        timeout_ms = self.timeout_for(plan)
        start = time.perf_counter()

        if plan.parallel:
            tasks = [
                asyncio.create_task(self._call(m, tool_name, params, timeout_ms))
                for m in plan.candidates
            ]
            try:
                results = list(await asyncio.gather(*tasks))
            except BaseException:
                # An unexpected error aborts the request; siblings must not outlive it
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise
        else:
            results = [await self._call(m, tool_name, params, timeout_ms) for m in plan.candidates]

        log_dispatch(
            tool_name,
            [r.manager_id for r in results],
            [r.manager_id for r in results if r.success],
            (time.perf_counter() - start) * 1000,
        )
        return results

    async def _call(
        self,
        manager_id: str,
        tool_name: str,
        params: dict[str, Any],
        timeout_ms: int,
    ) -> BackendResult:
        if self._cache is not None:
            cached = self._cache.get(manager_id, tool_name, params)
            if cached is not None:
                logger.debug("  cache hit for %s.%s", manager_id, tool_name)
                return cached

        start = time.perf_counter()
        try:
            result = await asyncio.wait_for(
                self._backend.invoke(manager_id, tool_name, params, timeout_ms),
                timeout=timeout_ms / 1000,
            )
        except TimeoutError:
            return self._failure(
                manager_id, f"{manager_id}.{tool_name} timed out after {timeout_ms}ms", start
            )
        except BackendError as e:
            return self._failure(manager_id, e.message, start)
        except (McpError, OSError) as e:
            return self._failure(manager_id, f"{type(e).__name__}: {e}", start)

        if result.manager_id != manager_id:
            result = result.model_copy(update={"manager_id": manager_id})
        if self._cache is not None:
            self._cache.put(manager_id, tool_name, params, result)
        return result

    @staticmethod
    def _failure(manager_id: str, message: str, start: float) -> BackendResult:
        logger.warning("  %s failed: %s", manager_id, message)
        return BackendResult(
            manager_id=manager_id,
            success=False,
            error=message,
            latency_ms=(time.perf_counter() - start) * 1000,
        )
