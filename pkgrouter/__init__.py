"""pkgrouter - MCP server that routes package lookups to the right ecosystem."""

# Load .env so PKGROUTER_SERVERS_CONFIG, PKGROUTER_LOG_LEVEL, etc. are set
# for any entry point (CLI, pytest, scripts) that imports pkgrouter.
from dotenv import load_dotenv

load_dotenv()

# Keep in sync with pyproject.toml [project] version.
__version__ = "0.1.0"


def run_server(servers_path: str | None = None, tables_path: str | None = None) -> None:
    """Run the pkgrouter MCP server (blocking).

    This is the main entry point for starting the MCP server.
    Uses stdio transport for communication with MCP clients.
    """
    from pkgrouter.mcp.server import run_server as _run_server
    _run_server(servers_path=servers_path, tables_path=tables_path)
