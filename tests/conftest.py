"""Shared test fixtures for chronicle."""

import os
import tempfile

import pytest

from chronicle.core.storage import MemoryDocumentStore
from chronicle.journal import JournalService


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as d:
        yield d


@pytest.fixture
def tmp_config_file(tmp_dir):
    """Create a temporary YAML config file pointing at *tmp_dir*."""
    import yaml

    config_data = {
        "paths": {
            "data_dir": os.path.join(tmp_dir, "data"),
        },
        "store": {
            "path": os.path.join(tmp_dir, "store"),
        },
        "user": "tester",
        "journal": {
            "archive_limit": 5,
        },
    }
    config_path = os.path.join(tmp_dir, "config.yaml")
    with open(config_path, "w") as f:
        yaml.dump(config_data, f)
    return config_path


@pytest.fixture
def store():
    """In-memory store with enough transaction attempts for heavy contention."""
    return MemoryDocumentStore(max_transaction_attempts=50, transaction_backoff=0.001)


@pytest.fixture
def journal(store):
    return JournalService(store, "u1")
