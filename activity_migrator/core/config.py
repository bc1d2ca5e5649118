"""
Configuration module for the activity notification migration tool.

This module provides functions for loading configuration settings from YAML
files and creating a default configuration file.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from activity_migrator.constants import (
    DEFAULT_ACTIVITY_UPDATE_BATCH_SIZE,
    DEFAULT_CHECKPOINT_DIR,
)
from activity_migrator.exceptions import ConfigError
from activity_migrator.utils.logging import log_with_context


@dataclass
class RelatedTableConfig:
    """Where the content behind one related-entity target type lives."""

    table: str
    id_column: str = "id"

    @classmethod
    def from_dict(cls, target_type: str, data: Any) -> RelatedTableConfig:
        if isinstance(data, str):
            return cls(table=data)
        if not isinstance(data, dict) or not data.get("table"):
            raise ConfigError(
                f"related_entity_tables.{target_type} needs a 'table' entry, got {data!r}"
            )
        return cls(table=data["table"], id_column=data.get("id_column", "id"))


def _default_related_tables() -> dict[str, RelatedTableConfig]:
    return {
        "node": RelatedTableConfig(table="node", id_column="nid"),
        "post": RelatedTableConfig(table="post", id_column="id"),
        "comment": RelatedTableConfig(table="comment", id_column="cid"),
        "group": RelatedTableConfig(table="groups", id_column="id"),
    }


@dataclass
class MigrationConfig:
    """Typed configuration for the migration tool."""

    database_url: str = ""
    activity_update_batch_size: int = DEFAULT_ACTIVITY_UPDATE_BATCH_SIZE
    checkpoint_dir: str = DEFAULT_CHECKPOINT_DIR
    related_entity_tables: dict[str, RelatedTableConfig] = field(
        default_factory=_default_related_tables
    )

    def __post_init__(self) -> None:
        if (
            not isinstance(self.activity_update_batch_size, int)
            or isinstance(self.activity_update_batch_size, bool)
            or self.activity_update_batch_size <= 0
        ):
            raise ConfigError(
                "activity_update_batch_size must be a positive integer, "
                f"got {self.activity_update_batch_size!r}"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MigrationConfig:
        """Create a MigrationConfig from a raw config dictionary."""
        raw_tables = data.get("related_entity_tables")
        if raw_tables is None:
            related = _default_related_tables()
        elif isinstance(raw_tables, dict):
            related = {
                target_type: RelatedTableConfig.from_dict(target_type, value)
                for target_type, value in raw_tables.items()
            }
        else:
            raise ConfigError("related_entity_tables must be a mapping")

        return cls(
            database_url=data.get("database_url") or "",
            activity_update_batch_size=data.get(
                "activity_update_batch_size", DEFAULT_ACTIVITY_UPDATE_BATCH_SIZE
            ),
            checkpoint_dir=data.get("checkpoint_dir") or DEFAULT_CHECKPOINT_DIR,
            related_entity_tables=related,
        )


def load_config(config_path: Path) -> MigrationConfig:
    """
    Load configuration from YAML file and apply default values.

    A missing or unreadable file logs a warning and yields the defaults;
    values that are present but invalid raise ConfigError.

    Args:
        config_path: Path to the config YAML file

    Returns:
        MigrationConfig with all necessary defaults applied
    """
    raw: dict[str, Any] = {}

    if config_path.exists():
        try:
            with open(config_path) as f:
                loaded_config = yaml.safe_load(f)
                # Handle None result from empty file
                if loaded_config is not None:
                    raw = loaded_config
            log_with_context(logging.INFO, f"Loaded configuration from {config_path}")
        except (yaml.YAMLError, OSError) as e:
            log_with_context(
                logging.WARNING, f"Failed to load config file {config_path}: {e}"
            )
    else:
        log_with_context(
            logging.WARNING,
            f"Config file {config_path} not found, using default settings",
        )

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")

    return MigrationConfig.from_dict(raw)


def create_default_config(output_path: Path) -> bool:
    """
    Create a default configuration file with recommended settings.

    The function will not overwrite an existing configuration file.

    Args:
        output_path: Path where the default config should be saved

    Returns:
        True if the config file was created successfully, False otherwise
    """
    if output_path.exists():
        log_with_context(
            logging.WARNING,
            f"Config file {output_path} already exists, not overwriting",
        )
        return False

    default_config = {
        "database_url": "sqlite:///cms.sqlite",
        "activity_update_batch_size": DEFAULT_ACTIVITY_UPDATE_BATCH_SIZE,
        "checkpoint_dir": DEFAULT_CHECKPOINT_DIR,
        "related_entity_tables": {
            target_type: {"table": spec.table, "id_column": spec.id_column}
            for target_type, spec in _default_related_tables().items()
        },
    }

    try:
        with open(output_path, "w") as f:
            yaml.safe_dump(default_config, f, default_flow_style=False)
        log_with_context(logging.INFO, f"Created default config file at {output_path}")
        return True
    except OSError as e:
        log_with_context(logging.ERROR, f"Failed to create default config file: {e}")
        return False
