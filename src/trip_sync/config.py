"""Resolve the effective configuration for the CLI.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    TRIP_SYNC_STORAGE_DIR: Directory holding the dataset file.
    TRIP_SYNC_STORAGE_KEY: Storage key (file name without ``.json``).
    TRIP_SYNC_EXPORT_DIR: Directory for exported backup files.
    TRIP_SYNC_CONFIRM: ``false`` to merge without asking.

The caller is responsible for calling ``load_dotenv()`` first so that
``.env`` values are visible through ``os.getenv()``.
"""

import logging
import os
from pathlib import Path

from trip_sync.config_loader import load_hierarchical_config
from trip_sync.config_schema import UnifiedConfig, build_config

logger = logging.getLogger(__name__)


def get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def resolve_config(
    cli_overrides: dict | None = None,
    config_path: str | None = None,
) -> UnifiedConfig:
    """Load YAML config and layer environment and CLI values on top.

    Args:
        cli_overrides: Values from the command line.  Recognised keys:
            ``storage_dir``, ``storage_key``, ``export_dir``,
            ``log_file``, ``log_format``.  ``None`` values are ignored.
        config_path: Explicit config file (``--config``).

    Returns:
        The effective ``UnifiedConfig``.
    """
    overrides = {
        k: v for k, v in (cli_overrides or {}).items() if v is not None
    }
    base = build_config(load_hierarchical_config(config_path))

    storage_update = {}
    storage_dir = overrides.get("storage_dir") or os.getenv(
        "TRIP_SYNC_STORAGE_DIR"
    )
    if storage_dir:
        storage_update["dir"] = storage_dir
    storage_key = overrides.get("storage_key") or os.getenv(
        "TRIP_SYNC_STORAGE_KEY"
    )
    if storage_key:
        storage_update["key"] = storage_key

    transfer_update: dict = {}
    export_dir = overrides.get("export_dir") or os.getenv(
        "TRIP_SYNC_EXPORT_DIR"
    )
    if export_dir:
        transfer_update["export_dir"] = export_dir
    env_confirm = get_bool_env("TRIP_SYNC_CONFIRM")
    if env_confirm is not None:
        transfer_update["confirm"] = env_confirm

    logging_update = {}
    if "log_file" in overrides:
        logging_update["file"] = overrides["log_file"]
    if "log_format" in overrides:
        logging_update["format"] = overrides["log_format"]

    # Round-trip through validation so overrides get the same checks as YAML.
    return UnifiedConfig(
        storage=base.storage.model_dump() | storage_update,
        transfer=base.transfer.model_dump() | transfer_update,
        logging=base.logging.model_dump() | logging_update,
    )


def storage_path(config: UnifiedConfig) -> Path:
    """Expanded storage directory from *config*."""
    return Path(config.storage.dir).expanduser()
