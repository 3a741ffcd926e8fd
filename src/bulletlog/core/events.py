"""Event bus for migration notifications.

The migration engine runs as a background batch; the only thing an
interactive front end needs back from it is a notification. Engines emit
events here and the front end subscribes. Hooks can be sync or async.

Sync hooks run on the emitting thread. Async hooks run on the front end's
event loop: either the loop running on the emitting thread, or the loop
registered with :meth:`EventBus.bind_loop` when the engine runs in a worker
thread (``bulletlog watch`` does this).

Usage::

    from bulletlog.core.events import OLD_TASKS_FOUND, EventBus

    bus = EventBus()
    bus.on(OLD_TASKS_FOUND, lambda event: print(event.payload["task_ids"]))
"""

from __future__ import annotations

import asyncio
import inspect
from collections import defaultdict
from dataclasses import dataclass, field
from time import time
from typing import Any

from loguru import logger

# ---------------------------------------------------------------------------
# Event names
# ---------------------------------------------------------------------------

MIGRATION_STARTED = "migration.started"
MIGRATION_COMPLETE = "migration.complete"
MIGRATION_FAILED = "migration.failed"
ARCHIVE_COMPLETE = "archive.complete"
OLD_TASKS_FOUND = "old_tasks.found"

Hook = Any  # Callable[[Event], None] | Callable[[Event], Awaitable[None]]


@dataclass(frozen=True)
class Event:
    """An immutable notification.

    Payloads hold plain values (ids, counts, ISO dates), never live
    entries, so hooks on other threads can keep them.
    """

    name: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time)
    source: str = ""


class EventBus:
    """Pub/sub for migration events. A failing hook is logged, never raised."""

    def __init__(self) -> None:
        self._hooks: dict[str, list[Hook]] = defaultdict(list)
        self._wildcard_hooks: list[Hook] = []
        self._loop: asyncio.AbstractEventLoop | None = None
        self._background_tasks: set[asyncio.Task] = set()  # keep scheduled hooks alive until done

    def on(self, event_name: str, hook: Hook) -> None:
        self._hooks[event_name].append(hook)

    def on_all(self, hook: Hook) -> None:
        """Register *hook* for every event."""
        self._wildcard_hooks.append(hook)

    def off(self, event_name: str, hook: Hook) -> None:
        if hook in self._hooks.get(event_name, []):
            self._hooks[event_name].remove(hook)

    def bind_loop(self, loop: asyncio.AbstractEventLoop | None) -> None:
        """Deliver async hooks to *loop* when emitting from a thread without one."""
        self._loop = loop

    def _hooks_for(self, event: Event) -> list[Hook]:
        return [*self._hooks.get(event.name, []), *self._wildcard_hooks]

    async def emit(self, event: Event) -> None:
        """Run every matching hook, awaiting async ones in order."""
        for hook in self._hooks_for(event):
            try:
                outcome = hook(event)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as exc:
                logger.warning(f"Event hook failed for {event.name}: {exc}")

    def emit_sync(self, event: Event) -> None:
        """Emit from synchronous code (the migration engines).

        Async hooks are scheduled, not awaited. With no running loop on this
        thread and no bound loop, they are skipped.
        """
        try:
            running: asyncio.AbstractEventLoop | None = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        for hook in self._hooks_for(event):
            try:
                if not inspect.iscoroutinefunction(hook):
                    hook(event)
                elif running is not None:
                    task = running.create_task(_guarded(hook, event))
                    self._background_tasks.add(task)
                    task.add_done_callback(self._background_tasks.discard)
                elif self._loop is not None and not self._loop.is_closed():
                    asyncio.run_coroutine_threadsafe(_guarded(hook, event), self._loop)
                else:
                    logger.debug(f"No event loop for async hook {hook!r} on {event.name}; skipped")
            except Exception as exc:
                logger.warning(f"Event hook failed for {event.name}: {exc}")


async def _guarded(hook: Hook, event: Event) -> None:
    try:
        await hook(event)
    except Exception as exc:
        logger.warning(f"Event hook failed for {event.name}: {exc}")
