"""Tests for bulletlog.core.events — EventBus and Event."""

from __future__ import annotations

import asyncio
from dataclasses import FrozenInstanceError

import pytest

from bulletlog.core.events import MIGRATION_COMPLETE, OLD_TASKS_FOUND, Event, EventBus

pytestmark = pytest.mark.smoke


# ---------------------------------------------------------------------------
# on / off / emit lifecycle
# ---------------------------------------------------------------------------


async def test_on_off_emit_lifecycle():
    bus = EventBus()
    received: list[Event] = []

    def hook(event: Event) -> None:
        received.append(event)

    bus.on(MIGRATION_COMPLETE, hook)
    evt = Event(name=MIGRATION_COMPLETE, payload={"forwarded": 2}, source="test")
    await bus.emit(evt)

    assert received == [evt]

    bus.off(MIGRATION_COMPLETE, hook)
    await bus.emit(evt)

    assert len(received) == 1


async def test_wildcard_hooks_receive_all_events():
    bus = EventBus()
    received: list[str] = []
    bus.on_all(lambda event: received.append(event.name))

    await bus.emit(Event(name="alpha"))
    await bus.emit(Event(name="beta"))

    assert received == ["alpha", "beta"]


async def test_async_hook_is_awaited():
    bus = EventBus()
    received: list[str] = []

    async def hook(event: Event) -> None:
        await asyncio.sleep(0)
        received.append(event.name)

    bus.on(OLD_TASKS_FOUND, hook)
    await bus.emit(Event(name=OLD_TASKS_FOUND))

    assert received == [OLD_TASKS_FOUND]


async def test_failing_hook_does_not_stop_others():
    bus = EventBus()
    received: list[str] = []

    def broken(event: Event) -> None:
        raise RuntimeError("boom")

    bus.on("x", broken)
    bus.on("x", lambda event: received.append("ok"))
    await bus.emit(Event(name="x"))

    assert received == ["ok"]


def test_off_unknown_hook_is_noop():
    bus = EventBus()
    bus.off("never.registered", lambda event: None)


# ---------------------------------------------------------------------------
# emit_sync
# ---------------------------------------------------------------------------


def test_emit_sync_runs_sync_hooks():
    bus = EventBus()
    received: list[dict] = []
    bus.on(OLD_TASKS_FOUND, lambda event: received.append(event.payload))

    bus.emit_sync(Event(name=OLD_TASKS_FOUND, payload={"task_ids": ["a"]}))

    assert received == [{"task_ids": ["a"]}]


def test_emit_sync_skips_async_hooks_without_loop():
    bus = EventBus()
    called: list[bool] = []

    async def hook(event: Event) -> None:
        called.append(True)

    bus.on("x", hook)
    bus.emit_sync(Event(name="x"))

    assert called == []


async def test_emit_sync_schedules_async_hooks_on_running_loop():
    bus = EventBus()
    done = asyncio.Event()

    async def hook(event: Event) -> None:
        done.set()

    bus.on("x", hook)
    bus.emit_sync(Event(name="x"))

    await asyncio.wait_for(done.wait(), timeout=1)


async def test_emit_sync_from_worker_thread_uses_bound_loop():
    bus = EventBus()
    done = asyncio.Event()

    async def hook(event: Event) -> None:
        done.set()

    bus.on(OLD_TASKS_FOUND, hook)
    bus.bind_loop(asyncio.get_running_loop())
    await asyncio.to_thread(bus.emit_sync, Event(name=OLD_TASKS_FOUND))

    await asyncio.wait_for(done.wait(), timeout=1)


async def test_failing_scheduled_hook_is_contained():
    bus = EventBus()

    async def broken(event: Event) -> None:
        raise RuntimeError("boom")

    bus.on("x", broken)
    bus.emit_sync(Event(name="x"))
    await asyncio.sleep(0)
    await asyncio.sleep(0)


def test_emit_sync_swallows_hook_errors():
    bus = EventBus()

    def broken(event: Event) -> None:
        raise ValueError("bad hook")

    bus.on("x", broken)
    bus.emit_sync(Event(name="x"))


# ---------------------------------------------------------------------------
# Event
# ---------------------------------------------------------------------------


def test_event_is_frozen():
    evt = Event(name="x")
    with pytest.raises(FrozenInstanceError):
        evt.name = "y"  # type: ignore[misc]


def test_event_defaults():
    evt = Event(name="x")
    assert evt.payload == {}
    assert evt.source == ""
    assert evt.timestamp > 0
