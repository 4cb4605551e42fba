"""Journal commands: add, list, delete, import, undo, bulk delete, archive, months."""

from __future__ import annotations

from pathlib import Path

import click

from chronicle.core.exceptions import EntryValidationError, ImportFormatError
from chronicle.core.utils.async_helpers import run_async_safely
from chronicle.journal import parse_batch_import

from .common import CliState, journal_session

pass_state = click.make_pass_decorator(CliState)


@click.command()
@click.argument("text")
@pass_state
def add(state: CliState, text: str) -> None:
    """Add a journal entry."""

    async def _run() -> str:
        async with journal_session(state) as journal:
            return await journal.add_entry(text)

    try:
        entry_id = run_async_safely(_run())
    except EntryValidationError as e:
        raise click.ClickException(str(e)) from e
    click.echo(entry_id)


@click.command("list")
@click.option("--limit", default=20, show_default=True, help="Entries to show (0 = all).")
@pass_state
def list_entries(state: CliState, limit: int) -> None:
    """List entries, newest first."""

    async def _run():
        async with journal_session(state) as journal:
            return await journal.list_entries()

    entries = run_async_safely(_run())
    for entry in entries[:limit] if limit else entries:
        mood = f" [{entry.mood_analysis.rating} {entry.mood_analysis.emoji}]" if entry.mood_analysis else ""
        click.echo(f"{entry.id}  {entry.day_key}{mood}  {entry.excerpt}")


@click.command()
@click.argument("entry_id")
@pass_state
def delete(state: CliState, entry_id: str) -> None:
    """Delete an entry (a copy is kept in the archive)."""

    async def _run() -> bool:
        async with journal_session(state) as journal:
            return await journal.delete_entry(entry_id)

    if not run_async_safely(_run()):
        raise click.ClickException(f"No entry {entry_id}")
    click.echo(f"Deleted {entry_id}")


@click.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@pass_state
def import_file(state: CliState, path: Path) -> None:
    """Import entries from a text file (records separated by ~`~ lines)."""
    records = parse_batch_import(path.read_text(encoding="utf-8"))
    if not records:
        raise click.ClickException("No valid entries found in file. Check format.")

    async def _run():
        async with journal_session(state) as journal:
            with click.progressbar(length=len(records), label="Importing") as bar:
                return await journal.import_entries(records, on_progress=lambda _i, _total: bar.update(1))

    try:
        result = run_async_safely(_run())
    except ImportFormatError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Imported {result.count} entries as {result.batch_id}")


@click.command()
@pass_state
def batches(state: CliState) -> None:
    """List import batches with their remaining entry counts."""

    async def _run():
        async with journal_session(state) as journal:
            return await journal.list_batches(), await journal.batch_entry_counts()

    registered, counts = run_async_safely(_run())
    if not registered:
        click.echo("No batch imports found")
        return
    for batch in registered:
        remaining = counts.get(batch.batch_id, 0)
        click.echo(f"{batch.batch_id}  {batch.created_at}  {batch.entry_count} imported, {remaining} remaining")


@click.command()
@click.argument("batch_id")
@pass_state
def undo(state: CliState, batch_id: str) -> None:
    """Undo a batch import."""

    async def _run() -> int:
        async with journal_session(state) as journal:
            return await journal.undo_batch(batch_id)

    click.echo(f"Removed {run_async_safely(_run())} entries from {batch_id}")


@click.command("bulk-delete")
@click.option("--batch", "batch_ids", multiple=True, help="Only these batch ids (repeatable). Default: all imports.")
@click.confirmation_option(prompt="Delete imported entries? They are archived first.")
@pass_state
def bulk_delete(state: CliState, batch_ids: tuple[str, ...]) -> None:
    """Delete imported entries in chunked batched writes."""

    async def _run() -> int:
        async with journal_session(state) as journal:
            return await journal.delete_imported(list(batch_ids) or None)

    count = run_async_safely(_run())
    click.echo(f"{count} {'entry' if count == 1 else 'entries'} removed")


@click.command()
@pass_state
def archive(state: CliState) -> None:
    """Show recently deleted entries."""

    async def _run():
        async with journal_session(state) as journal:
            return await journal.list_archived()

    archived = run_async_safely(_run())
    for item in archived:
        click.echo(f"{item.deleted_at}  {item.original_id}  {item.excerpt}")
    click.echo(f"{len(archived)} of {state.config.get('journal.archive_limit', 30)} slots used")


@click.command()
@pass_state
def months(state: CliState) -> None:
    """Show the per-month index."""

    async def _run():
        async with journal_session(state) as journal:
            return await journal.list_months()

    for month in run_async_safely(_run()):
        click.echo(f"{month.month_key}  {month.count} entries  {len(month.samples)} samples")
        for sample in month.samples:
            click.echo(f"    - {sample}")
