"""
Hierarchical configuration management.

Loads configuration from multiple sources with this precedence (highest wins):
    1. Environment variables (PREFIX_SECTION__KEY)
    2. Config file (YAML or JSON)
    3. Built-in defaults

Usage:
    config = Config(config_file="~/.chronicle/config.yaml")

    config.get("mood.batch_size")        # dot-notation access
    config.get("store.path")             # resolved path of the document store
    config.validated().journal           # typed view (pydantic)

Paths left unset (``paths.log_dir``, ``store.path``) are derived from
``paths.data_dir`` after every source has been applied, so moving the data
directory in the config file moves the store with it.
"""

import json
import os
from typing import Any

import yaml

_DEFAULT_ENV_PREFIX = "CHRONICLE_"
_DEFAULT_DATA_DIR_NAME = ".chronicle"

# (key path, subdirectory of paths.data_dir)
_DERIVED_PATHS = (
    ("paths.log_dir", "logs"),
    ("store.path", "store"),
)


def default_config() -> dict[str, Any]:
    """Built-in defaults. Paths are filled in by ``Config`` once data_dir is known."""
    return {
        "paths": {"data_dir": None, "log_dir": None},
        "store": {"path": None, "max_transaction_attempts": 5},
        "user": "local",
        "journal": {
            "sample_size": 10,
            "sampling": "hash-slot",
            "archive_limit": 30,
            "write_batch_limit": 500,
            "excerpt_length": 220,
        },
        "mood": {
            "batch_size": 15,
            "rate_limit_delay": 3.0,
            "rate_limit_backoff": 10.0,
            "interval_minutes": 15,
        },
        "classifier": {
            "model": "gemini/gemini-2.5-flash",
            "api_key": "",
            "timeout": 120,
            "temperature": 0.3,
        },
        "logging": {"level": "WARNING", "file": ""},
    }


def deep_merge(target: dict, source: dict) -> dict:
    """Merge *source* into *target* in place; nested dicts merge key by key."""
    for key, value in source.items():
        if isinstance(target.get(key), dict) and isinstance(value, dict):
            deep_merge(target[key], value)
        else:
            target[key] = value
    return target


def read_config_file(path: str) -> dict[str, Any]:
    """Load a YAML or JSON config file. Unknown extensions yield ``{}``."""
    ext = os.path.splitext(path)[1].lower()
    with open(path) as f:
        if ext in (".yaml", ".yml"):
            return yaml.safe_load(f) or {}
        if ext == ".json":
            return json.load(f)
    return {}


def _parent_of(data: dict, parts: list[str], create: bool) -> dict | None:
    current = data
    for part in parts[:-1]:
        child = current.get(part)
        if not isinstance(child, dict):
            if not create:
                return None
            child = current[part] = {}
        current = child
    return current


class Config:
    """
    Central configuration manager.

    Loads and merges configuration from defaults, a config file, and
    environment variables. Env vars use double-underscore to denote nesting:
    CHRONICLE_MOOD__BATCH_SIZE=10 -> config["mood"]["batch_size"] = "10"

    Env values stay strings here; ``validated()`` coerces them to the
    schema's types.
    """

    def __init__(
        self,
        config_file: str | None = None,
        env_prefix: str = _DEFAULT_ENV_PREFIX,
        data_dir: str | None = None,
        defaults: dict[str, Any] | None = None,
    ):
        """
        Args:
            config_file: Path to YAML or JSON configuration file.
            env_prefix: Prefix for environment variable overrides.
            data_dir: Base directory for data storage. Defaults to ~/.chronicle.
            defaults: Additional default values to merge.
        """
        self.config_file = os.path.expanduser(config_file) if config_file else None
        self.env_prefix = env_prefix or ""
        self._data_dir = data_dir or os.path.join("~", _DEFAULT_DATA_DIR_NAME)
        self.config_data: dict[str, Any] = default_config()

        deep_merge(self.config_data, defaults or {})
        if self.config_file and os.path.exists(self.config_file):
            deep_merge(self.config_data, read_config_file(self.config_file))
        self._apply_env()
        self._fill_derived_paths()

    def _apply_env(self) -> None:
        if not self.env_prefix:
            return
        for env_key, env_value in os.environ.items():
            if env_key.startswith(self.env_prefix):
                self.set(env_key[len(self.env_prefix) :].lower().replace("__", "."), env_value)

    def _fill_derived_paths(self) -> None:
        data_dir = os.path.expanduser(self.get("paths.data_dir") or self._data_dir)
        self.set("paths.data_dir", data_dir)
        for key_path, subdir in _DERIVED_PATHS:
            if not self.get(key_path):
                self.set(key_path, os.path.join(data_dir, subdir))

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get a config value by dot-notation path.

        Args:
            key_path: e.g. "store.path", "mood.batch_size"
            default: Returned when key is not found.
        """
        parts = key_path.split(".")
        parent = _parent_of(self.config_data, parts, create=False)
        if parent is None or parts[-1] not in parent:
            return default
        return parent[parts[-1]]

    def set(self, key_path: str, value: Any) -> None:
        """Set a config value by dot-notation path, creating intermediate dicts."""
        parts = key_path.split(".")
        _parent_of(self.config_data, parts, create=True)[parts[-1]] = value

    def get_data_dir(self) -> str:
        return self.get("paths.data_dir")

    def ensure_directories(self) -> None:
        """Create the data and log directories."""
        for path_value in self.config_data.get("paths", {}).values():
            if isinstance(path_value, str) and path_value:
                os.makedirs(os.path.expanduser(path_value), exist_ok=True)

    def validated(self):
        """Return a typed, validated view of the config data.

        Raises:
            ConfigurationError: If any section fails validation.
        """
        from pydantic import ValidationError

        from .config_schema import ChronicleConfig
        from .exceptions import ConfigurationError

        try:
            return ChronicleConfig.model_validate(self.config_data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e


_config_instance: Config | None = None


def get_config(
    config_file: str | None = None,
    env_prefix: str = _DEFAULT_ENV_PREFIX,
    data_dir: str | None = None,
) -> Config:
    """Get or create the process-wide Config."""
    global _config_instance
    if _config_instance is None:
        _config_instance = Config(config_file=config_file, env_prefix=env_prefix, data_dir=data_dir)
    return _config_instance


def reset_config() -> None:
    global _config_instance
    _config_instance = None
