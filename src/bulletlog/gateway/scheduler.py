"""Migration scheduler — config-driven cron trigger via APScheduler.

Wraps APScheduler's ``AsyncIOScheduler`` so a long-running process (the
``bulletlog watch`` command, or an app with an event loop) fires the
migration trigger on a schedule instead of only on "app became active".
The trigger itself is synchronous, so each tick runs it in a worker
thread and the event loop stays free.

APScheduler is imported lazily (only in :meth:`start`) so the module
can be imported without triggering heavy dependencies at import time.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from loguru import logger

from bulletlog.core.exceptions import MigrationError

TriggerFn = Callable[[], Any]
"""Sync callable run on every tick, typically ``service.on_app_active``."""

DEFAULT_CRON: dict[str, Any] = {"hour": 0, "minute": 5}
JOB_ID = "daily_migration"


class MigrationScheduler:
    """Fires the migration trigger on a cron schedule.

    Args:
        trigger_fn: Sync callable invoked on each tick. Dependency-injected
            so the scheduler is decoupled from the service.
        cron: APScheduler ``CronTrigger`` fields.
        timezone: Timezone for the cron trigger.
        run_on_start: Also fire once right after :meth:`start`.
    """

    def __init__(
        self,
        trigger_fn: TriggerFn,
        *,
        cron: dict[str, Any] | None = None,
        timezone: str = "UTC",
        run_on_start: bool = True,
    ):
        self._trigger_fn = trigger_fn
        self._cron = dict(cron or DEFAULT_CRON)
        self._timezone = timezone
        self._run_on_start = run_on_start
        self._scheduler: Any = None  # AsyncIOScheduler, lazily created
        self.last_result: Any = None
        self.last_error: Exception | None = None

    @classmethod
    def from_config(cls, trigger_fn: TriggerFn, config: Any) -> MigrationScheduler:
        """Build from the ``scheduler`` config section.

        Expected config layout::

            scheduler:
              timezone: Europe/Berlin
              cron: { hour: 0, minute: 5 }
        """
        return cls(
            trigger_fn,
            cron=config.get("scheduler.cron") or DEFAULT_CRON,
            timezone=config.get("scheduler.timezone") or "UTC",
        )

    @property
    def cron(self) -> dict[str, Any]:
        return dict(self._cron)

    # ── Lifecycle ──────────────────────────────────────────────────

    def start(self) -> None:
        """Create the APScheduler instance, register the job, and start.

        Must be called from a running asyncio event loop.
        """
        from apscheduler.schedulers.asyncio import AsyncIOScheduler
        from apscheduler.triggers.cron import CronTrigger

        self._scheduler = AsyncIOScheduler(timezone=self._timezone)
        trigger = CronTrigger(timezone=self._timezone, **self._cron)
        self._scheduler.add_job(self.fire, trigger=trigger, id=JOB_ID, replace_existing=True)
        if self._run_on_start:
            self._scheduler.add_job(self.fire, id=f"{JOB_ID}_boot", next_run_time=datetime.now(timezone.utc))

        self._scheduler.start()
        logger.info(f"MigrationScheduler started: cron={self._cron}, tz={self._timezone}")

    def shutdown(self) -> None:
        """Stop the APScheduler instance."""
        if self._scheduler:
            self._scheduler.shutdown()
            logger.info("MigrationScheduler shut down")

    @property
    def apscheduler(self) -> Any:
        """The raw APScheduler instance, or ``None`` before :meth:`start`."""
        return self._scheduler

    # ── Tick ───────────────────────────────────────────────────────

    async def fire(self) -> Any:
        """Run the trigger off the event loop thread.

        Migration failures are logged and kept on ``last_error``; the next
        tick retries the whole run.
        """
        try:
            result = await asyncio.to_thread(self._trigger_fn)
        except MigrationError as e:
            self.last_error = e
            logger.error(f"Scheduled migration failed, will retry on next tick: {e}")
            return None
        self.last_error = None
        self.last_result = result
        return result
