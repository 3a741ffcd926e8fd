"""bulletlog watch — keep running and migrate on a schedule."""

from __future__ import annotations

import asyncio

import click


@click.command()
@click.pass_context
def watch(ctx: click.Context) -> None:
    """Run migration now and then on the configured cron schedule."""
    from bulletlog.core.cli.common import create_service, load_config

    config = load_config(ctx)
    service = create_service(config)

    def _notify_old_tasks(event) -> None:
        click.echo(f"{len(event.payload.get('task_ids', []))} old task(s) to review. Run 'bulletlog old-tasks'.")

    from bulletlog.core.events import OLD_TASKS_FOUND

    service.events.on(OLD_TASKS_FOUND, _notify_old_tasks)

    click.echo("Watching for day changes. Press Ctrl+C to stop.")
    try:
        asyncio.run(_run_scheduler(service, config))
    except KeyboardInterrupt:
        click.echo("Stopped.")


async def _run_scheduler(service, config) -> None:
    from bulletlog.gateway.scheduler import MigrationScheduler

    scheduler = MigrationScheduler.from_config(service.on_app_active, config)
    service.events.bind_loop(asyncio.get_running_loop())
    scheduler.start()
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown()
        service.events.bind_loop(None)
