"""Manager registry: ecosystem metadata joined with backend availability."""

import time
from typing import Any

from pkgrouter.backends.base import Backend
from pkgrouter.config import BackendServerConfig
from pkgrouter.detection.tables import DetectionTables


class ManagerRegistry:
    """Known ecosystems, their configured servers and live connection state.

    Args:
        tables: Detection tables (metadata and patterns per ecosystem).
        backend: Backend used for availability checks.
        server_configs: Configured MCP servers keyed by manager id.
    """

    def __init__(
        self,
        tables: DetectionTables,
        backend: Backend,
        server_configs: dict[str, BackendServerConfig] | None = None,
    ) -> None:
        self.tables = tables
        self.backend = backend
        self.server_configs = dict(server_configs or {})
        self._started_at = time.monotonic()

    def manager_ids(self) -> list[str]:
        """Every known ecosystem in priority order."""
        return self.tables.manager_ids()

    def is_known(self, manager_id: str) -> bool:
        return manager_id in self.manager_ids()

    def is_available(self, manager_id: str) -> bool:
        return self.backend.is_available(manager_id)

    def connected_managers(self) -> list[str]:
        return [m for m in self.manager_ids() if self.is_available(m)]

    def supported_tools(self, manager_id: str) -> list[str]:
        """Tools the connected backend for ``manager_id`` advertised."""
        return self.backend.tools_for(manager_id) if self.is_available(manager_id) else []

    def describe(self, manager_id: str) -> dict[str, Any]:
        """Metadata, detection tables and connection state for one ecosystem."""
        info = self.tables.managers.get(manager_id)
        connected = self.is_available(manager_id)
        return {
            "manager": manager_id,
            "name": info.name if info else manager_id,
            "description": info.description if info else "",
            "priority": info.priority if info else None,
            "configured": manager_id in self.server_configs,
            "connected": connected,
            "tools": self.supported_tools(manager_id),
            "detection": {
                "name_patterns": self.tables.name_patterns.get(manager_id, []),
                "file_patterns": self.tables.file_patterns.get(manager_id, []),
                "file_extensions": self.tables.file_extensions.get(manager_id, []),
                "keywords": self.tables.keywords.get(manager_id, []),
            },
        }

    def health_status(self) -> dict[str, Any]:
        """Overall backend health.

        ``unhealthy`` when nothing is connected, ``degraded`` when fewer than
        half of the configured servers are connected, ``healthy`` otherwise.
        Without any configured servers the total is every known ecosystem.
        """
        connected = len(self.connected_managers())
        total = len(self.server_configs) or len(self.manager_ids())

        if connected == 0:
            status = "unhealthy"
        elif connected < total * 0.5:
            status = "degraded"
        else:
            status = "healthy"

        return {
            "status": status,
            "connected_managers": connected,
            "total_managers": total,
            "uptime_seconds": round(time.monotonic() - self._started_at, 1),
        }
