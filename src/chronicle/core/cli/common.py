"""Shared setup logic for CLI commands."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import click

CHRONICLE_DIR = Path.home() / ".chronicle"
DEFAULT_CONFIG_PATH = CHRONICLE_DIR / "config.yaml"


@dataclass
class CliState:
    """Options from the top-level group, resolved lazily."""

    config_file: str
    uid: str | None = None
    verbose: bool = False
    _config: Any = field(default=None, repr=False)

    @property
    def config(self):
        if self._config is None:
            self._config = load_config(self.config_file, self.verbose)
        return self._config

    @property
    def user(self) -> str:
        return self.uid or str(self.config.get("user", "local"))


def load_config(config_file: str, verbose: bool = False):
    """Load config and configure logging from it."""
    from chronicle.core.config import Config
    from chronicle.core.exceptions import ConfigurationError
    from chronicle.core.utils.logging import configure_from

    config = Config(config_file=config_file)
    try:
        config.validated()
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e
    configure_from(config, verbose=verbose)
    return config


async def open_store(config):
    """Open the on-disk document store configured under ``store``."""
    from chronicle.core.storage import LocalDocumentStore

    settings = config.validated()
    path = settings.store.path or (settings.paths.data_dir / "store")
    # The batch-write cap is the provider's; journal.write_batch_limit only sizes chunks below it
    return await LocalDocumentStore.open(str(path), max_transaction_attempts=settings.store.max_transaction_attempts)


@asynccontextmanager
async def journal_session(state: CliState):
    """Yield a JournalService for the selected user."""
    from chronicle.journal import JournalService, PipelineConfig

    store = await open_store(state.config)
    try:
        yield JournalService(store, state.user, PipelineConfig.from_config(state.config))
    finally:
        await store.close()
