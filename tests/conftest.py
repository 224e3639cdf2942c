"""Shared fixtures for apple-mcp tests. No macOS automation is exercised here."""

import asyncio
from typing import Any, Callable, Optional

import pytest

from apple_mcp.observability.metrics import get_metrics


@pytest.fixture(autouse=True)
def reset_metrics():
    get_metrics().reset()
    yield
    get_metrics().reset()


class ControlledInitializer:
    """Initializer whose completion the test decides.

    ``gate`` is awaited before producing ``factory()``; ``error`` is raised
    instead when set.
    """

    def __init__(self, factory: Optional[Callable[[], Any]] = None, error: Optional[BaseException] = None):
        self.factory = factory or object
        self.error = error
        self.gate = asyncio.Event()
        self.calls = 0

    def open(self) -> None:
        self.gate.set()

    async def __call__(self) -> Any:
        self.calls += 1
        await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.factory()


def instant(value: Any = None) -> Callable:
    async def initializer():
        return value if value is not None else object()

    return initializer


def failing(error: BaseException) -> Callable:
    async def initializer():
        raise error

    return initializer


@pytest.fixture
def controlled():
    return ControlledInitializer
