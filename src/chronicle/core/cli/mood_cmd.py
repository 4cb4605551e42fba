"""chronicle mood: inspect and run the mood classification queue."""

from __future__ import annotations

import asyncio

import click

from chronicle.core.utils.async_helpers import run_async_safely

from .common import CliState, open_store

pass_state = click.make_pass_decorator(CliState)


def _build_queue(state: CliState, store, classifier=None):
    from chronicle.mood import LLMClassifier, MoodQueue, QueueConfig

    classifier = classifier or LLMClassifier.from_config(state.config)
    return MoodQueue(store, state.user, classifier, QueueConfig.from_config(state.config))


def _echo_status(status) -> None:
    click.echo(
        f"pending={status.pending} processed={status.processed} total={status.total} errors={status.errors}"
    )


@click.group()
def mood() -> None:
    """Mood analysis queue."""


@mood.command()
@pass_state
def status(state: CliState) -> None:
    """Count entries still waiting for analysis."""

    async def _run():
        store = await open_store(state.config)
        try:
            return await _build_queue(state, store).refresh()
        finally:
            await store.close()

    _echo_status(run_async_safely(_run()))


@mood.command()
@pass_state
def run(state: CliState) -> None:
    """Run one pass over all pending entries."""
    from chronicle.mood import LLMClassifier

    classifier = LLMClassifier.from_config(state.config)
    if not classifier.ready:
        raise click.ClickException("No classifier API key. Set classifier.api_key or CHRONICLE_CLASSIFIER__API_KEY.")

    async def _run():
        store = await open_store(state.config)
        try:
            return await _build_queue(state, store, classifier).process_queue()
        finally:
            await store.close()

    _echo_status(run_async_safely(_run()))


@mood.command()
@pass_state
def watch(state: CliState) -> None:
    """Run passes periodically until interrupted."""
    from chronicle.mood import MoodQueueScheduler

    async def _run() -> None:
        store = await open_store(state.config)
        queue = _build_queue(state, store)
        scheduler = MoodQueueScheduler.from_config(queue, state.config)
        scheduler.start()
        click.echo(f"Watching every {scheduler.interval_minutes} min. Press Ctrl+C to stop.")
        try:
            await asyncio.Event().wait()
        finally:
            scheduler.shutdown()
            await store.close()

    try:
        run_async_safely(_run())
    except KeyboardInterrupt:
        click.echo("Stopped.")
