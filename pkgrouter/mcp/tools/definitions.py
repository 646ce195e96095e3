"""MCP Tool schema definitions.

Contains all Tool objects that define the MCP interface for pkgrouter.
Each Tool specifies its name, description, and JSON schema for inputs.
"""

from mcp.types import Tool

_PACKAGE_NAME = {
    "type": "string",
    "description": "Name of the package (e.g., 'react', '@types/node', 'symfony/console')",
    "minLength": 1,
    "maxLength": 214,
}

_CONTEXT_HINTS = {
    "type": "array",
    "items": {"type": "string", "maxLength": 100},
    "maxItems": 20,
    "description": (
        "Optional free-text hints that help detect the ecosystem "
        "(e.g., 'python', 'using laravel', 'src/index.ts')"
    ),
}

_PREFERRED_MANAGERS = {
    "type": "array",
    "items": {"type": "string"},
    "description": "Optional package managers to favour (e.g., ['npm', 'pip'])",
}

_FILE_PATHS = {
    "type": "array",
    "items": {"type": "string"},
    "maxItems": 50,
    "description": "Optional project file paths; manifest names like package.json or Cargo.toml are used for detection",
}

# =============================================================================
# PACKAGE TOOLS
# =============================================================================

SMART_PACKAGE_SEARCH_TOOL = Tool(
    name="smart_package_search",
    description=(
        "Detect the package manager for a name and search for packages across the "
        "matching registries. Returns every detected ecosystem, every backend result, "
        "and suggestions when detection is uncertain."
    ),
    inputSchema={
        "type": "object",
        "properties": {
            "package_name": _PACKAGE_NAME,
            "context_hints": _CONTEXT_HINTS,
            "preferred_managers": _PREFERRED_MANAGERS,
            "file_paths": _FILE_PATHS,
            "limit": {
                "type": "integer",
                "description": "Maximum number of results per registry (default: 10)",
                "minimum": 1,
                "maximum": 100,
                "default": 10,
            },
        },
        "required": ["package_name"],
    },
)

SMART_PACKAGE_README_TOOL = Tool(
    name="smart_package_readme",
    description=(
        "Detect the package manager for a name and retrieve the package README from the "
        "best-matching registry. Other successful registries are listed as alternatives."
    ),
    inputSchema={
        "type": "object",
        "properties": {
            "package_name": _PACKAGE_NAME,
            "version": {
                "type": "string",
                "description": "Optional specific version of the package",
                "maxLength": 100,
            },
            "context_hints": _CONTEXT_HINTS,
            "preferred_managers": _PREFERRED_MANAGERS,
            "file_paths": _FILE_PATHS,
            "include_examples": {
                "type": "boolean",
                "description": "Include usage examples in the response",
                "default": True,
            },
        },
        "required": ["package_name"],
    },
)

SMART_PACKAGE_INFO_TOOL = Tool(
    name="smart_package_info",
    description=(
        "Detect the package manager for a name and retrieve detailed package information "
        "(description, versions, license, downloads) from the best-matching registry."
    ),
    inputSchema={
        "type": "object",
        "properties": {
            "package_name": _PACKAGE_NAME,
            "context_hints": _CONTEXT_HINTS,
            "preferred_managers": _PREFERRED_MANAGERS,
            "file_paths": _FILE_PATHS,
            "include_dependencies": {
                "type": "boolean",
                "description": "Include dependency information in the response",
                "default": False,
            },
        },
        "required": ["package_name"],
    },
)

LIST_SUPPORTED_MANAGERS_TOOL = Tool(
    name="list_supported_managers",
    description=(
        "List every supported package manager with its detection patterns, "
        "backend connection status, and overall router health."
    ),
    inputSchema={
        "type": "object",
        "properties": {},
        "required": [],
    },
)

# =============================================================================
# ALL TOOLS
# =============================================================================

ALL_TOOLS = [
    SMART_PACKAGE_SEARCH_TOOL,
    SMART_PACKAGE_README_TOOL,
    SMART_PACKAGE_INFO_TOOL,
    LIST_SUPPORTED_MANAGERS_TOOL,
]
