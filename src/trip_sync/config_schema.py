"""Unified configuration schema for trip_sync.

Defines Pydantic models for the config file with dedicated sections for
storage, transfer and logging.

Usage:
    from trip_sync.config_loader import load_hierarchical_config
    from trip_sync.config_schema import build_config

    unified = build_config(load_hierarchical_config())
"""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class StorageConfig(BaseModel):
    """Where the local dataset lives."""

    dir: str = Field(
        default="~/.local/share/trip_sync",
        description="Directory holding the dataset file",
    )
    key: str = Field(
        default="us_trip_v4_react",
        min_length=1,
        pattern=r"^[A-Za-z0-9_.-]+$",
        description="Storage key; the file is <key>.json",
    )

    model_config = {"frozen": True}


class TransferConfig(BaseModel):
    """Sync code and backup file settings."""

    export_dir: str = Field(
        default=".", description="Directory for exported backup files"
    )
    confirm: bool = Field(
        default=True,
        description="Ask before merging a remote dataset into the store",
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
        format: ``text`` or single-line ``json``.
    """

    level: str = Field(default="WARNING", description="Log level")
    file: str | None = Field(default=None, description="Log file path")
    format: Literal["text", "json"] = Field(
        default="text", description="Log line format"
    )

    model_config = {"frozen": True}

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(
                f"Unknown log level '{value}'. Valid levels: {list(_LOG_LEVELS)}"
            )
        return level


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level configuration.

    Every section has defaults, so ``UnifiedConfig()`` (zero-config) is
    always valid.
    """

    storage: StorageConfig = Field(default_factory=StorageConfig)
    transfer: TransferConfig = Field(default_factory=TransferConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Unknown top-level sections are ignored with a warning.

    Raises:
        pydantic.ValidationError: If a known section has invalid values.
    """
    if not raw_data:
        return UnifiedConfig()

    known = set(UnifiedConfig.model_fields)
    unknown = sorted(set(raw_data) - known)
    if unknown:
        logger.warning("Ignoring unknown config sections: %s", unknown)

    return UnifiedConfig(
        **{k: v for k, v in raw_data.items() if k in known}
    )
