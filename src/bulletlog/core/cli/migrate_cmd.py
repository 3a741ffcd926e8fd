"""bulletlog migrate / old-tasks / reset-checkpoints."""

from __future__ import annotations

from datetime import datetime

import click

from bulletlog.core.exceptions import MigrationError


@click.command()
@click.option("--now", "now_value", default=None, help="Pretend it is this ISO date/time.")
@click.pass_context
def migrate(ctx: click.Context, now_value: str | None) -> None:
    """Forward stale tasks, promote due future entries, archive last month."""
    from bulletlog.core.cli.common import create_service, format_entry, load_config, parse_when

    config = load_config(ctx)
    service = create_service(config)
    now = parse_when(now_value) or datetime.now()

    try:
        report = service.on_app_active(now)
    except MigrationError as e:
        raise click.ClickException(f"Migration failed: {e}") from e

    if report.in_progress:
        click.echo("A migration is already running.")
        return
    if not report.ran:
        click.echo(f"Already migrated for {now.date().isoformat()}.")
        return

    click.echo(f"Forwarded {len(report.forwarded)} task(s), promoted {len(report.promoted)} future entr(ies).")
    if report.skipped:
        click.echo(f"Skipped {len(report.skipped)} malformed record(s); see the log for details.")
    if report.archive and report.archive.collection:
        click.echo(f"Archived {len(report.archive.archived)} entr(ies) into '{report.archive.collection.name}'.")
    if report.old_tasks:
        click.echo(f"\n{len(report.old_tasks)} task(s) have been carried for a while:")
        for task in report.old_tasks:
            click.echo(f"  {format_entry(task, now)}")
        click.echo("Use 'bulletlog defer' or 'bulletlog reschedule' to deal with them.")


@click.command(name="old-tasks")
@click.option("--now", "now_value", default=None, help="Pretend it is this ISO date/time.")
@click.pass_context
def old_tasks(ctx: click.Context, now_value: str | None) -> None:
    """List pending tasks that keep getting carried over."""
    from bulletlog.core.cli.common import create_service, format_entry, load_config, parse_when

    service = create_service(load_config(ctx))
    now = parse_when(now_value) or datetime.now()
    try:
        tasks = service.list_old_tasks(now)
    except MigrationError as e:
        raise click.ClickException(str(e)) from e

    if not tasks:
        click.echo("No old tasks.")
        return
    for task in tasks:
        click.echo(format_entry(task, now))


@click.command(name="reset-checkpoints")
@click.confirmation_option(prompt="Clear the daily and monthly migration checkpoints?")
@click.pass_context
def reset_checkpoints(ctx: click.Context) -> None:
    """Forget when migration and archival last ran."""
    from bulletlog.core.cli.common import create_service, load_config

    service = create_service(load_config(ctx))
    service.reset_checkpoints()
    click.echo("Checkpoints cleared.")
