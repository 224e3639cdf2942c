"""Startup loader: eager backend initialization raced against a timeout.

Initializing a backend can block indefinitely on a one-time macOS automation
permission prompt. At startup every backend is resolved concurrently; if all
of them load within the startup timeout the loader stays in EAGER mode. If
any fails, or the timeout fires first, the loader switches to SAFE mode for
the rest of the process. On a failure every backend, including any that had
already loaded, is reset and loads on its first tool call instead; on a
timeout only the ones still loading are left for first use. Either way
"ready" is signalled exactly once and never later than the startup timeout.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, Optional, Union

from apple_mcp.backends import BackendId
from apple_mcp.backends.handle import BackendHandle, BackendRegistry, LoadState

logger = logging.getLogger(__name__)

DEFAULT_STARTUP_TIMEOUT = 5.0

# Extra time wait_ready() allows beyond the startup timeout before forcing SAFE
READY_GRACE_PERIOD = 1.0


class LoaderMode(Enum):
    """Process-wide backend loading mode"""
    EAGER = "eager"
    SAFE = "safe"


class BackendLoader:
    """Owns the loader mode and the ready signal; hands out backends via resolve()."""

    def __init__(
        self,
        registry: BackendRegistry,
        startup_timeout: float = DEFAULT_STARTUP_TIMEOUT,
        eager: bool = True,
    ):
        self._registry = registry
        self._startup_timeout = startup_timeout
        self._eager = eager
        self._mode = LoaderMode.EAGER
        self._ready = asyncio.Event()
        self._started = False
        self._safe_reason: Optional[str] = None

    @property
    def mode(self) -> LoaderMode:
        return self._mode

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    @property
    def startup_timeout(self) -> float:
        return self._startup_timeout

    @property
    def registry(self) -> BackendRegistry:
        return self._registry

    async def start(self) -> LoaderMode:
        """Run the startup protocol once. Later calls return the current mode."""
        if self._started:
            return self._mode
        self._started = True
        try:
            if not self._eager:
                self._enter_safe_mode("eager loading disabled")
            else:
                await self._load_all()
        finally:
            self._signal_ready()
        return self._mode

    async def wait_ready(self, timeout: Optional[float] = None) -> LoaderMode:
        """Wait for the ready signal, bounded by the startup timeout plus a grace period.

        If ready never arrives (start() was not called, or is stuck) the loader
        is forced into SAFE mode and ready is signalled here.
        """
        if self._ready.is_set():
            return self._mode
        limit = timeout if timeout is not None else self._startup_timeout + READY_GRACE_PERIOD
        try:
            await asyncio.wait_for(self._ready.wait(), timeout=limit)
        except asyncio.TimeoutError:
            logger.warning("Backend loader not ready after %.1fs, continuing in safe mode", limit)
            self._started = True
            for handle in self._registry:
                self._abandon(handle)
            self._enter_safe_mode("ready signal timed out")
            self._signal_ready()
        return self._mode

    async def resolve(self, backend_id: Union[BackendId, str]) -> Any:
        """Return the backend instance, loading it on demand if it is not cached."""
        handle = self._registry.get(backend_id)
        if self._mode is LoaderMode.SAFE and not handle.is_loaded:
            logger.debug("Loading %s backend on demand", handle.backend_id)
        return await handle.resolve()

    def status(self) -> Dict[str, Any]:
        return {
            "mode": self._mode.value,
            "ready": self.is_ready,
            "safe_reason": self._safe_reason,
            "backends": self._registry.states(),
        }

    async def _load_all(self) -> None:
        handles = list(self._registry)
        if not handles:
            logger.info("No backends registered, nothing to preload")
            return
        logger.info(
            f"Eager loading {len(handles)} backends (timeout {self._startup_timeout:.1f}s)"
        )
        tasks: Dict["asyncio.Future[Any]", BackendHandle] = {
            asyncio.ensure_future(handle.resolve()): handle for handle in handles
        }
        try:
            done, pending = await asyncio.wait(
                tasks,
                timeout=self._startup_timeout,
                return_when=asyncio.FIRST_EXCEPTION,
            )
        except asyncio.CancelledError:
            for task, handle in tasks.items():
                if not task.done():
                    self._abandon(handle, task)
            raise

        failed = [
            tasks[task].backend_id.value
            for task in done
            if not task.cancelled() and task.exception() is not None
        ]
        for task in pending:
            self._abandon(tasks[task], task)

        if failed:
            # Startup either commits every backend or none of them
            for handle in handles:
                handle.reset()
            self._enter_safe_mode(f"initialization failed for {', '.join(sorted(failed))}")
        elif pending:
            waiting = sorted(tasks[task].backend_id.value for task in pending)
            self._enter_safe_mode(
                f"timed out after {self._startup_timeout:.1f}s waiting for {', '.join(waiting)}"
            )
        else:
            logger.info("All backends loaded eagerly")

    def _abandon(self, handle: BackendHandle, task: Optional["asyncio.Future[Any]"] = None) -> None:
        if handle.state is LoadState.LOADING:
            handle.abandon()
        if task is not None:
            task.add_done_callback(_discard_outcome)

    def _enter_safe_mode(self, reason: str) -> None:
        if self._mode is LoaderMode.SAFE:
            return
        self._mode = LoaderMode.SAFE
        self._safe_reason = reason
        logger.warning(
            f"Switching to safe mode ({reason}); backends will load on first use", extra={"mode": "safe"}
        )

    def _signal_ready(self) -> None:
        if not self._ready.is_set():
            self._ready.set()
            logger.info(f"Backend loader ready in {self._mode.value} mode")


def _discard_outcome(task: "asyncio.Future[Any]") -> None:
    """Consume the result of an abandoned startup load so it is never reported as unhandled."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug("Abandoned startup load finished with error: %s", exc)
