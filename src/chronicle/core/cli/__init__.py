"""Chronicle CLI: entry point for journal and mood queue commands."""

import click

from chronicle import __version__

from .common import DEFAULT_CONFIG_PATH, CliState


@click.group()
@click.version_option(version=__version__, package_name="chronicle")
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False),
    default=str(DEFAULT_CONFIG_PATH),
    show_default=True,
    help="YAML or JSON config file.",
)
@click.option("--user", "uid", default=None, help="User partition to operate on (default: config 'user').")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging.")
@click.pass_context
def main(ctx: click.Context, config_file: str, uid: str | None, verbose: bool) -> None:
    """Chronicle: journal ingestion and mood analysis."""
    ctx.obj = CliState(config_file=config_file, uid=uid, verbose=verbose)


# Register subcommands
from .journal_cmd import add, archive, batches, bulk_delete, delete, import_file, list_entries, months, undo
from .mood_cmd import mood

for _command in (add, list_entries, delete, import_file, batches, undo, bulk_delete, archive, months, mood):
    main.add_command(_command)
