"""bulletlog add / defer / reschedule."""

from __future__ import annotations

import click

from bulletlog.core.exceptions import MigrationError
from bulletlog.journal.models import EntryKind, Priority


@click.command()
@click.argument("text")
@click.option("--kind", type=click.Choice([k.value for k in EntryKind]), default=EntryKind.TASK.value)
@click.option("--priority", type=click.Choice([p.value for p in Priority]), default=Priority.NONE.value)
@click.option("--tag", "tags", multiple=True, help="Tag name (repeatable).")
@click.pass_context
def add(ctx: click.Context, text: str, kind: str, priority: str, tags: tuple[str, ...]) -> None:
    """Add an entry. Put '@march-15' (or '@3/15', '@april') in TEXT to schedule it."""
    from bulletlog.core.cli.common import create_service, load_config

    service = create_service(load_config(ctx))
    try:
        entry = service.add_entry(text, kind=EntryKind(kind), priority=Priority(priority), tags=list(tags))
    except MigrationError as e:
        raise click.ClickException(str(e)) from e

    if entry.is_future_entry:
        click.echo(f"{entry.id[:8]}  Future Log, due {entry.scheduled_date.date().isoformat()}: {entry.content}")
    else:
        click.echo(f"{entry.id[:8]}  {entry.date.date().isoformat()}: {entry.content}")


@click.command()
@click.argument("entry_ids", nargs=-1, required=True)
@click.pass_context
def defer(ctx: click.Context, entry_ids: tuple[str, ...]) -> None:
    """Move tasks to the Future Log without a date."""
    from bulletlog.core.cli.common import create_service, load_config, resolve_entry_ids

    service = create_service(load_config(ctx))
    ids = resolve_entry_ids(service, entry_ids)
    try:
        moved = service.move_to_future_log(ids)
    except MigrationError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Moved {len(moved)} task(s) to the Future Log.")


@click.command()
@click.argument("entry_id")
@click.argument("to_date")
@click.pass_context
def reschedule(ctx: click.Context, entry_id: str, to_date: str) -> None:
    """Move a task to TO_DATE (ISO date) and restart its age."""
    from bulletlog.core.cli.common import create_service, load_config, parse_when, resolve_entry_ids

    service = create_service(load_config(ctx))
    when = parse_when(to_date)
    (full_id,) = resolve_entry_ids(service, [entry_id])
    try:
        task = service.reschedule(full_id, when)
    except MigrationError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"{task.id[:8]}  rescheduled to {task.date.date().isoformat()}: {task.content}")
