"""CLI interface for pkgrouter.

Provides commands for running the MCP server and for inspecting detection
offline, without any backend servers.
"""

import json
import sys
from typing import Any

import click
from dotenv import load_dotenv

# Load .env before importing other pkgrouter modules
# This ensures env vars are set before module-level code reads them
load_dotenv()

from pkgrouter import __version__  # noqa: E402
from pkgrouter.backends.base import BackendError  # noqa: E402
from pkgrouter.config import ConfigError, RouterSettings  # noqa: E402
from pkgrouter.detection.tables import DetectionTables  # noqa: E402
from pkgrouter.models.package import BackendResult  # noqa: E402


class _OfflineBackend:
    """Reports every manager as available and never answers a call."""

    def is_available(self, manager_id: str) -> bool:
        return True

    def tools_for(self, manager_id: str) -> list[str]:
        return []

    async def invoke(
        self,
        manager_id: str,
        tool_name: str,
        params: dict[str, Any],
        timeout_ms: int,
    ) -> BackendResult:
        raise BackendError(manager_id, "offline: no backend servers are running")


def _load_tables(settings: RouterSettings) -> DetectionTables:
    if settings.tables_config:
        return DetectionTables.load(settings.tables_config)
    return DetectionTables.default()


@click.group()
@click.version_option(version=__version__, prog_name="pkgrouter")
def cli() -> None:
    """pkgrouter - MCP server that routes package lookups to the right ecosystem."""
    pass


@cli.command()
@click.option(
    "--servers",
    "servers_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Backend servers JSON (default: PKGROUTER_SERVERS_CONFIG)",
)
@click.option(
    "--tables",
    "tables_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Detection tables JSON (default: built-in tables)",
)
def serve(servers_path: str | None, tables_path: str | None) -> None:
    """Start the MCP server on stdio.

    Connects to every configured backend MCP server, then serves the
    smart_package_* tools until the client disconnects.
    """
    # Import here to avoid slow startup for the offline commands
    from pkgrouter import run_server

    try:
        run_server(servers_path=servers_path, tables_path=tables_path)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument("package_name")
@click.option("--hint", "hints", multiple=True, help="Context hint (repeatable)")
@click.option("--prefer", "preferred", multiple=True, help="Preferred manager (repeatable)")
@click.option("--file", "files", multiple=True, help="Project file path (repeatable)")
def detect(
    package_name: str,
    hints: tuple[str, ...],
    preferred: tuple[str, ...],
    files: tuple[str, ...],
) -> None:
    """Show detections and the execution plan for a package name.

    PACKAGE_NAME: Name to detect (e.g., '@types/node', 'symfony/console').

    Every manager is assumed to be available, so the plan shows what the
    server would do with all backends connected.
    """
    from pkgrouter.detection import is_valid_package_name
    from pkgrouter.routing import PackageRouter

    if not is_valid_package_name(package_name):
        click.echo(f"Invalid package name: {package_name}", err=True)
        sys.exit(1)

    try:
        settings = RouterSettings.from_env()
        tables = _load_tables(settings)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)

    router = PackageRouter(_OfflineBackend(), tables=tables, settings=settings)
    detections, plan = router.plan(
        router.detect(package_name, list(hints), list(preferred), list(files))
    )

    report = {
        "package_name": package_name,
        "detections": [
            {
                "manager": d.manager_id,
                "confidence": round(d.confidence, 4),
                "level": router.aggregator.confidence_level(d.confidence),
                "reasons": [r.description for r in d.reasons],
            }
            for d in detections
        ],
        "plan": plan.model_dump(mode="json"),
    }
    click.echo(json.dumps(report, indent=2))


@cli.command()
def managers() -> None:
    """List supported package managers and their detection tables."""
    try:
        tables = _load_tables(RouterSettings.from_env())
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)

    rows = []
    for manager_id in tables.manager_ids():
        info = tables.managers.get(manager_id)
        rows.append(
            {
                "manager": manager_id,
                "name": info.name if info else manager_id,
                "description": info.description if info else "",
                "name_patterns": len(tables.name_patterns.get(manager_id, [])),
                "file_patterns": tables.file_patterns.get(manager_id, []),
                "keywords": tables.keywords.get(manager_id, []),
            }
        )
    click.echo(json.dumps({"managers": rows, "total_count": len(rows)}, indent=2))


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
