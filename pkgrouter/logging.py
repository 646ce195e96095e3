"""Logging configuration for the pkgrouter MCP server.

Logs to stderr for visibility in the MCP client's logs (stdout is used for protocol).
"""

import logging
import os
import sys
import time
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

_LEVEL_NAME = os.getenv("PKGROUTER_LOG_LEVEL", "INFO").upper()
_LEVEL = logging.getLevelName(_LEVEL_NAME)
if not isinstance(_LEVEL, int):
    _LEVEL = logging.INFO

# Create logger that outputs to stderr
logger = logging.getLogger("pkgrouter")
logger.setLevel(_LEVEL)

# Only add handler if not already configured
if not logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(_LEVEL)
    formatter = logging.Formatter(
        "[pkgrouter] %(asctime)s %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


class TimingContext:
    """Context object that captures elapsed time from an operation.

    Attributes:
        elapsed: Elapsed time in seconds (set after context exits).
        elapsed_ms: Elapsed time in milliseconds (set after context exits).
    """

    def __init__(self) -> None:
        self.elapsed: float = 0.0
        self.elapsed_ms: float = 0.0
        self._start: float = 0.0

    def start(self) -> None:
        """Start the timer."""
        self._start = time.perf_counter()

    def stop(self) -> None:
        """Stop the timer and record elapsed time."""
        self.elapsed = time.perf_counter() - self._start
        self.elapsed_ms = self.elapsed * 1000


@contextmanager
def log_operation(
    operation: str,
    details: dict[str, Any] | None = None,
) -> Generator[TimingContext, None, None]:
    """Context manager for logging operation start/end with timing.

    Args:
        operation: Name of the operation.
        details: Optional details dict to include in start message.

    Yields:
        TimingContext object with elapsed time after context exits.

    Example:
        with log_operation("tool:smart_package_info", {"package": "react"}) as timing:
            response = await router.package_info(arguments)
        print(f"Took {timing.elapsed_ms:.1f}ms")
    """
    details_str = ""
    if details:
        details_str = " " + " ".join(f"{k}={v}" for k, v in details.items())

    logger.info("▶ Starting %s%s", operation, details_str)

    ctx = TimingContext()
    ctx.start()

    try:
        yield ctx
    except Exception as e:
        ctx.stop()
        logger.error("✗ %s failed after %.2fs: %s", operation, ctx.elapsed, e)
        raise
    else:
        ctx.stop()
        logger.info("✓ Completed %s in %.2fs", operation, ctx.elapsed)


def log_dispatch(
    tool_name: str,
    attempted: list[str],
    succeeded: list[str],
    elapsed_ms: float,
) -> None:
    """Log the outcome of a backend fan-out.

    Args:
        tool_name: Backend tool that was invoked.
        attempted: Managers the call was sent to.
        succeeded: Managers that returned a successful result.
        elapsed_ms: Wall time of the whole fan-out.
    """
    failed = [m for m in attempted if m not in succeeded]
    level = logging.WARNING if attempted and not succeeded else logging.INFO
    logger.log(
        level,
        "  %s: %d/%d managers succeeded in %.1fms (failed: %s)",
        tool_name,
        len(succeeded),
        len(attempted),
        elapsed_ms,
        ", ".join(failed) or "none",
    )
