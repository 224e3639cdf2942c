"""Lazily-instantiated backend handles and the per-identifier registry.

A handle owns at most one backend instance for the lifetime of the process.
Loads are single-flight: concurrent ``resolve()`` calls while a load is in
progress all await the same initializer run. A failed load is not cached;
the next ``resolve()`` runs the initializer again.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Generic, Iterator, Optional, TypeVar, Union

from apple_mcp.backends import BackendError, BackendId
from apple_mcp.observability.metrics import get_metrics

logger = logging.getLogger(__name__)

T = TypeVar("T")

Initializer = Callable[[], Awaitable[T]]


class LoadState(Enum):
    """Backend handle load state"""
    NOT_LOADED = "not_loaded"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


class BackendHandle(Generic[T]):
    """One lazily-loaded backend instance, cached once loaded."""

    def __init__(self, backend_id: Union[BackendId, str], initializer: Initializer):
        self.backend_id = BackendId(backend_id)
        self._initializer = initializer
        self._instance: Optional[T] = None
        self._state = LoadState.NOT_LOADED
        self._inflight: Optional["asyncio.Future[T]"] = None
        self._generation = 0
        self._last_error: Optional[BaseException] = None
        self.initializer_calls = 0

    @property
    def state(self) -> LoadState:
        return self._state

    @property
    def is_loaded(self) -> bool:
        return self._state is LoadState.LOADED

    @property
    def last_error(self) -> Optional[BaseException]:
        return self._last_error

    @property
    def display_state(self) -> LoadState:
        """Load state for status reports: a retryable handle whose last attempt failed shows FAILED."""
        if self._state is LoadState.NOT_LOADED and self._last_error is not None:
            return LoadState.FAILED
        return self._state

    async def resolve(self) -> T:
        """Return the cached instance, loading it first if needed.

        Raises whatever the initializer raised; the handle stays retryable.
        """
        if self._state is LoadState.LOADED:
            return self._instance  # type: ignore[return-value]
        # No await between the check and the assignment: the event loop cannot
        # interleave a second caller here, so at most one load is started.
        if self._inflight is None:
            self._state = LoadState.LOADING
            self._inflight = asyncio.ensure_future(self._load(self._generation))
        return await asyncio.shield(self._inflight)

    def abandon(self) -> bool:
        """Detach an in-flight load. Its eventual result is discarded, not cached.

        Returns True if a load was abandoned. A loaded handle is left alone.
        """
        if self._state is not LoadState.LOADING or self._inflight is None:
            return False
        task = self._inflight
        self._generation += 1
        self._inflight = None
        self._state = LoadState.NOT_LOADED
        task.add_done_callback(self._consume_abandoned)
        logger.debug("Abandoned in-flight load of %s backend", self.backend_id)
        return True

    def reset(self) -> bool:
        """Drop a loaded instance so the next ``resolve()`` initializes afresh.

        Returns True if an instance was dropped. In-flight loads are left to
        :meth:`abandon`.
        """
        if self._state is not LoadState.LOADED:
            return False
        self._generation += 1
        self._instance = None
        self._state = LoadState.NOT_LOADED
        logger.debug("Discarded loaded %s backend", self.backend_id)
        return True

    async def _load(self, generation: int) -> T:
        self.initializer_calls += 1
        logger.debug("Initializing %s backend (attempt %d)", self.backend_id, self.initializer_calls)
        t0 = time.perf_counter()
        try:
            instance = await self._initializer()
        except asyncio.CancelledError:
            if generation == self._generation:
                self._inflight = None
                self._state = LoadState.NOT_LOADED
            raise
        except Exception as e:
            elapsed = time.perf_counter() - t0
            get_metrics().record_backend_load(self.backend_id.value, elapsed, error=True)
            if generation == self._generation:
                self._last_error = e
                self._inflight = None
                self._state = LoadState.NOT_LOADED
                logger.warning(
                    f"Failed to initialize {self.backend_id} backend: {e}", extra={"backend": self.backend_id}
                )
            raise
        elapsed = time.perf_counter() - t0
        if generation != self._generation:
            logger.debug(
                "Discarding %s backend instance from abandoned load (%.2fs)",
                self.backend_id,
                elapsed,
            )
            return instance
        self._instance = instance
        self._last_error = None
        self._inflight = None
        self._state = LoadState.LOADED
        get_metrics().record_backend_load(self.backend_id.value, elapsed)
        logger.info(f"{self.backend_id} backend loaded in {elapsed:.2f}s", extra={"backend": self.backend_id})
        return instance

    def _consume_abandoned(self, task: "asyncio.Future[Any]") -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.debug("Abandoned %s load failed late: %s", self.backend_id, exc)

    def __repr__(self) -> str:
        return f"BackendHandle({self.backend_id.value!r}, state={self.display_state.value})"


class BackendRegistry:
    """Index of backend handles by identifier"""

    def __init__(self):
        self._handles: Dict[BackendId, BackendHandle] = {}

    def register(self, backend_id: Union[BackendId, str], initializer: Initializer) -> BackendHandle:
        """Register an initializer for a backend

        Args:
            backend_id: Backend identifier
            initializer: Zero-argument async callable producing the backend

        Returns:
            The new handle
        """
        handle = BackendHandle(backend_id, initializer)
        if handle.backend_id in self._handles:
            logger.warning(f"Backend {handle.backend_id} already registered, replacing")
        self._handles[handle.backend_id] = handle
        return handle

    def get(self, backend_id: Union[BackendId, str]) -> BackendHandle:
        try:
            return self._handles[BackendId(backend_id)]
        except (KeyError, ValueError):
            raise BackendError(f"Backend not available: {backend_id}") from None

    async def resolve(self, backend_id: Union[BackendId, str]) -> Any:
        return await self.get(backend_id).resolve()

    def states(self) -> Dict[str, str]:
        """Snapshot of every handle's state, keyed by backend name."""
        return {h.backend_id.value: h.display_state.value for h in self._handles.values()}

    def __contains__(self, backend_id: object) -> bool:
        try:
            return BackendId(backend_id) in self._handles  # type: ignore[arg-type]
        except ValueError:
            return False

    def __iter__(self) -> Iterator[BackendHandle]:
        return iter(list(self._handles.values()))

    def __len__(self) -> int:
        return len(self._handles)
