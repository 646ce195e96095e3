"""Pytest configuration and shared fixtures."""

import asyncio
import tempfile
from pathlib import Path
from typing import Any

import pytest

from pkgrouter.backends.base import BACKEND_TOOLS, BackendError
from pkgrouter.config import RouterSettings
from pkgrouter.detection.tables import DetectionTables
from pkgrouter.models.package import BackendResult
from pkgrouter.routing.router import PackageRouter


class FakeBackend:
    """In-memory backend with canned payloads, latencies, failures and delays.

    Args:
        responses: Payload returned per manager. Managers without a payload
            return an unsuccessful result.
        available: Managers reported as available (default: every manager
            with a response).
        latencies: Reported latency per manager in ms (default: 50).
        failures: Managers whose calls raise BackendError with this message.
        delays: Seconds to sleep before answering, per manager.
    """

    def __init__(
        self,
        responses: dict[str, dict[str, Any]] | None = None,
        available: set[str] | list[str] | None = None,
        latencies: dict[str, float] | None = None,
        failures: dict[str, str] | None = None,
        delays: dict[str, float] | None = None,
    ) -> None:
        self.responses = responses or {}
        self.available = set(available) if available is not None else set(self.responses)
        self.latencies = latencies or {}
        self.failures = failures or {}
        self.delays = delays or {}
        self.calls: list[tuple[str, str, dict[str, Any]]] = []

    def is_available(self, manager_id: str) -> bool:
        return manager_id in self.available

    def tools_for(self, manager_id: str) -> list[str]:
        return list(BACKEND_TOOLS) if manager_id in self.available else []

    async def invoke(
        self,
        manager_id: str,
        tool_name: str,
        params: dict[str, Any],
        timeout_ms: int,
    ) -> BackendResult:
        self.calls.append((manager_id, tool_name, dict(params)))
        if manager_id in self.delays:
            await asyncio.sleep(self.delays[manager_id])
        if manager_id in self.failures:
            raise BackendError(manager_id, self.failures[manager_id])

        latency = self.latencies.get(manager_id, 50.0)
        payload = self.responses.get(manager_id)
        if payload is None:
            return BackendResult(
                manager_id=manager_id, success=False, error="package not found", latency_ms=latency
            )
        return BackendResult(
            manager_id=manager_id, success=True, payload=dict(payload), latency_ms=latency
        )

    def called_managers(self) -> list[str]:
        return [manager_id for manager_id, _, _ in self.calls]


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def tables() -> DetectionTables:
    """Built-in detection tables."""
    return DetectionTables.default()


@pytest.fixture
def settings() -> RouterSettings:
    """Default settings with the response cache disabled."""
    return RouterSettings(cache_ttl_seconds=0)


@pytest.fixture
def all_managers(tables: DetectionTables) -> list[str]:
    return tables.manager_ids()


@pytest.fixture
def make_router(settings: RouterSettings):
    """Factory building a router over a FakeBackend."""

    def _make(
        backend: FakeBackend,
        tables: DetectionTables | None = None,
        router_settings: RouterSettings | None = None,
        **kwargs: Any,
    ) -> PackageRouter:
        return PackageRouter(
            backend,
            tables=tables,
            settings=router_settings or settings,
            **kwargs,
        )

    return _make


@pytest.fixture
def full_payload() -> dict[str, Any]:
    """A payload with every completeness field filled in."""
    return {
        "name": "react",
        "description": "A JavaScript library for building user interfaces",
        "homepage": "https://react.dev",
        "repository": "https://github.com/facebook/react",
        "license": "MIT",
        "author": "Meta",
        "keywords": ["react", "ui"],
        "latest_version": "18.3.1",
        "downloads": 25_000_000,
    }
