"""bulletlog CLI — entry point for migrate, add, defer, reschedule and watch commands."""

import click

from bulletlog import __version__


@click.group()
@click.version_option(version=__version__, package_name="bulletlog")
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False),
    envvar="BULLETLOG_CONFIG",
    default=None,
    help="Config file (YAML or JSON). Defaults to ~/.bulletlog/config.yaml.",
)
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory holding journal.yaml and checkpoints.yaml.",
)
@click.pass_context
def main(ctx: click.Context, config_file: str | None, data_dir: str | None) -> None:
    """bulletlog — bullet journal task migration and monthly archives."""
    ctx.obj = {"config_file": config_file, "data_dir": data_dir}


# Register subcommands
from .entries_cmd import add, defer, reschedule
from .migrate_cmd import migrate, old_tasks, reset_checkpoints
from .watch_cmd import watch

main.add_command(migrate)
main.add_command(old_tasks)
main.add_command(reset_checkpoints)
main.add_command(add)
main.add_command(defer)
main.add_command(reschedule)
main.add_command(watch)
