"""Async wrappers around osascript for AppleScript and JavaScript for Automation."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any, Dict, Optional

from apple_mcp.backends import AutomationError, AutomationTimeout

logger = logging.getLogger(__name__)

OSASCRIPT = "osascript"

# Default timeout for a single script run (seconds)
DEFAULT_SCRIPT_TIMEOUT = 60.0

_default_timeout = DEFAULT_SCRIPT_TIMEOUT


def set_default_timeout(seconds: float) -> None:
    """Process-wide default used when a caller does not pass a timeout."""
    global _default_timeout
    _default_timeout = seconds


def escape_applescript(text: str) -> str:
    """Escape text for use inside an AppleScript string literal."""
    return (text or "").replace("\\", "\\\\").replace('"', '\\"')


async def _run_osascript(args: list[str], timeout: Optional[float]) -> str:
    limit = timeout if timeout is not None else _default_timeout
    t0 = time.perf_counter()
    try:
        proc = await asyncio.create_subprocess_exec(
            OSASCRIPT,
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError:
        raise AutomationError("osascript not found - this server requires macOS") from None

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=limit)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        raise AutomationTimeout(f"Script timed out after {limit:.0f} seconds") from None
    except asyncio.CancelledError:
        if proc.returncode is None:
            proc.kill()
        raise

    elapsed = time.perf_counter() - t0
    out = stdout.decode("utf-8", errors="replace").strip("\r\n")
    err = stderr.decode("utf-8", errors="replace").strip()
    logger.debug("osascript finished in %.2fs (exit %s)", elapsed, proc.returncode)
    if proc.returncode != 0:
        raise AutomationError(err or f"osascript exited with {proc.returncode}", proc.returncode, err)
    return out


async def run_applescript(script: str, timeout: Optional[float] = None) -> str:
    """Run an AppleScript source string and return its stdout."""
    return await _run_osascript(["-e", script], timeout)


async def run_jxa(
    body: str,
    args: Optional[Dict[str, Any]] = None,
    timeout: Optional[float] = None,
) -> Any:
    """Run a JavaScript for Automation function body and JSON-decode its return value.

    ``body`` is the body of ``function (args) { ... }``; ``args`` is passed in
    as a JSON object. The function's return value must be JSON-serializable.
    """
    payload = json.dumps(json.dumps(args or {}))
    script = (
        f"const __args = JSON.parse({payload});\n"
        f"JSON.stringify((function (args) {{\n{body}\n}})(__args));"
    )
    out = await _run_osascript(["-l", "JavaScript", "-e", script], timeout)
    if not out:
        return None
    try:
        return json.loads(out)
    except json.JSONDecodeError as e:
        raise AutomationError(f"Unexpected JXA output: {out[:200]}") from e
