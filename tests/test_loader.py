"""Tests for the startup loader: eager loading, safe-mode fallback and readiness."""

import asyncio
import gc
import logging

import pytest

from apple_mcp.backends import BackendId, BackendInitError
from apple_mcp.backends.handle import BackendRegistry, LoadState
from apple_mcp.backends.loader import BackendLoader, LoaderMode

from conftest import ControlledInitializer, failing, instant


def make_registry(**initializers) -> BackendRegistry:
    registry = BackendRegistry()
    for name, init in initializers.items():
        registry.register(name, init)
    return registry


@pytest.mark.asyncio
async def test_all_backends_load_stays_eager():
    registry = make_registry(contacts=instant(), notes=instant(), mail=instant())
    loader = BackendLoader(registry, startup_timeout=1.0)

    mode = await loader.start()

    assert mode is LoaderMode.EAGER
    assert loader.is_ready
    assert all(h.state is LoadState.LOADED for h in registry)


@pytest.mark.asyncio
async def test_initializer_failure_switches_to_safe_mode():
    registry = make_registry(
        contacts=instant(),
        mail=failing(BackendInitError("mail", "Cannot access Mail app")),
    )
    loader = BackendLoader(registry, startup_timeout=1.0)

    assert await loader.start() is LoaderMode.SAFE
    assert loader.is_ready
    status = loader.status()
    assert status["mode"] == "safe"
    assert "mail" in status["safe_reason"]
    assert status["backends"]["mail"] == "failed"


@pytest.mark.asyncio
async def test_initializer_failure_resets_backends_that_loaded():
    contacts_init = ControlledInitializer(lambda: "contacts")
    contacts_init.open()
    registry = make_registry(
        contacts=contacts_init,
        mail=failing(BackendInitError("mail", "Cannot access Mail app")),
    )
    loader = BackendLoader(registry, startup_timeout=1.0)

    assert await loader.start() is LoaderMode.SAFE

    contacts = registry.get(BackendId.CONTACTS)
    assert contacts.state is LoadState.NOT_LOADED
    assert loader.status()["backends"]["contacts"] == "not_loaded"

    # First use after the failed startup runs the initializer again
    assert await loader.resolve(BackendId.CONTACTS) == "contacts"
    assert contacts_init.calls == 2
    assert contacts.state is LoadState.LOADED


@pytest.mark.asyncio
async def test_abandoned_load_failing_after_timeout_is_consumed(caplog):
    caplog.set_level(logging.DEBUG)
    slow = ControlledInitializer(error=BackendInitError("mail", "Cannot access Mail app"))
    registry = make_registry(mail=slow)
    loader = BackendLoader(registry, startup_timeout=0.05)

    assert await loader.start() is LoaderMode.SAFE

    slow.open()
    await asyncio.sleep(0.01)
    gc.collect()
    await asyncio.sleep(0)

    mail = registry.get(BackendId.MAIL)
    assert mail.state is LoadState.NOT_LOADED
    assert mail.display_state is LoadState.NOT_LOADED
    assert "never retrieved" not in caplog.text


@pytest.mark.asyncio
async def test_timeout_switches_to_safe_and_next_call_loads_fresh():
    slow = ControlledInitializer(lambda: "late-contacts")
    registry = make_registry(contacts=slow, notes=instant("notes"))
    loader = BackendLoader(registry, startup_timeout=0.05)

    assert await loader.start() is LoaderMode.SAFE
    assert loader.is_ready
    assert "timed out" in loader.status()["safe_reason"]

    contacts = registry.get(BackendId.CONTACTS)
    assert contacts.state is LoadState.NOT_LOADED
    assert registry.get(BackendId.NOTES).state is LoadState.LOADED

    # The first tool call starts a fresh initializer run
    slow.open()
    assert await loader.resolve(BackendId.CONTACTS) == "late-contacts"
    assert slow.calls == 2
    assert contacts.state is LoadState.LOADED


@pytest.mark.asyncio
async def test_late_completion_of_abandoned_load_is_not_cached():
    slow = ControlledInitializer()
    registry = make_registry(calendar=slow)
    loader = BackendLoader(registry, startup_timeout=0.05)
    await loader.start()

    slow.open()
    await asyncio.sleep(0.01)

    assert registry.get("calendar").state is LoadState.NOT_LOADED


@pytest.mark.asyncio
async def test_ready_is_signalled_within_the_timeout():
    registry = make_registry(reminders=ControlledInitializer())
    loader = BackendLoader(registry, startup_timeout=0.05)
    loop = asyncio.get_running_loop()

    t0 = loop.time()
    await asyncio.wait_for(loader.start(), timeout=1.0)

    assert loader.is_ready
    assert loop.time() - t0 < 0.5


@pytest.mark.asyncio
async def test_start_runs_once():
    init_calls = []

    async def init():
        init_calls.append(1)
        return object()

    loader = BackendLoader(make_registry(maps=init), startup_timeout=1.0)
    await loader.start()
    await loader.start()
    assert len(init_calls) == 1


@pytest.mark.asyncio
async def test_safe_mode_is_permanent():
    registry = make_registry(mail=failing(BackendInitError("mail", "denied")))
    loader = BackendLoader(registry, startup_timeout=1.0)
    await loader.start()

    registry.register("mail", instant("mail"))
    assert await loader.resolve("mail") == "mail"
    assert loader.mode is LoaderMode.SAFE


@pytest.mark.asyncio
async def test_eager_loading_disabled_enters_safe_without_loading():
    init = ControlledInitializer()
    loader = BackendLoader(make_registry(notes=init), startup_timeout=1.0, eager=False)

    assert await loader.start() is LoaderMode.SAFE
    assert loader.is_ready
    assert init.calls == 0


@pytest.mark.asyncio
async def test_wait_ready_returns_after_start():
    loader = BackendLoader(make_registry(contacts=instant()), startup_timeout=1.0)
    starter = asyncio.ensure_future(loader.start())
    assert await loader.wait_ready() is LoaderMode.EAGER
    await starter


@pytest.mark.asyncio
async def test_wait_ready_forces_safe_mode_when_start_never_runs():
    loader = BackendLoader(make_registry(contacts=instant()), startup_timeout=0.01)

    assert await loader.wait_ready(timeout=0.02) is LoaderMode.SAFE
    assert loader.is_ready
    assert loader.status()["safe_reason"] == "ready signal timed out"

    # start() after a forced ready is a no-op
    assert await loader.start() is LoaderMode.SAFE


@pytest.mark.asyncio
async def test_empty_registry_is_ready_immediately():
    loader = BackendLoader(BackendRegistry(), startup_timeout=1.0)
    assert await loader.start() is LoaderMode.EAGER
    assert loader.is_ready
