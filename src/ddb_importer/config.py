"""
Importer configuration.

Values come from (lowest to highest precedence) model defaults, environment
variables (a ``.env`` file is loaded first), and an optional
``importer.yaml`` in the data directory or at an explicit path.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from .importers.dndbeyond.schema import DDB_API_BASE_URL, DDB_GAME_DATA_BASE_URL
from .models import ContentCategory

logger = logging.getLogger("ddb-importer")

CONFIG_FILENAME = "importer.yaml"

ENV_DATA_DIR = "DDB_IMPORTER_DATA_DIR"
ENV_LOG_LEVEL = "DDB_IMPORTER_LOG_LEVEL"
ENV_CUSTOM_STORE_ID = "DDB_IMPORTER_CUSTOM_STORE"
ENV_REQUEST_TIMEOUT = "DDB_IMPORTER_REQUEST_TIMEOUT"


def default_reference_stores() -> dict[ContentCategory, list[str]]:
    return {
        ContentCategory.SPELL: ["dnd5e.spells"],
        ContentCategory.ITEM: ["dnd5e.items", "dnd5e.tradegoods"],
        ContentCategory.FEAT: ["dnd5e.classfeatures", "dnd5e.races", "dnd5e.feats"],
        ContentCategory.CLASS: ["dnd5e.classes"],
        ContentCategory.RACE: ["dnd5e.races"],
    }


class ConfigError(Exception):
    """Raised when the configuration file cannot be read or validated."""
    pass


class ImporterConfig(BaseModel):
    """Settings shared by the resolver, cache, fetcher and server."""

    data_dir: Path = Field(default_factory=Path.cwd, description="Root for packs/ and actors/")
    log_level: str = Field(default="INFO")
    custom_store_id: str = Field(default="world.ddb-imported-content")
    custom_store_label: str = Field(default="D&D Beyond Imports")
    reference_stores: dict[ContentCategory, list[str]] = Field(
        default_factory=default_reference_stores,
        description="Ordered reference store ids searched per category after the custom store",
    )
    api_base_url: str = Field(default=DDB_API_BASE_URL)
    game_data_base_url: str = Field(default=DDB_GAME_DATA_BASE_URL)
    request_timeout: float = Field(default=10.0, gt=0)
    flag_scope: str = Field(default="ddb-importer", description="Namespace for entity flags")

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()

    @field_validator("reference_stores")
    @classmethod
    def _fill_categories(cls, value: dict[ContentCategory, list[str]]) -> dict[ContentCategory, list[str]]:
        merged = default_reference_stores()
        merged.update(value)
        return merged

    @property
    def packs_dir(self) -> Path:
        return self.data_dir / "packs"

    @property
    def actors_dir(self) -> Path:
        return self.data_dir / "actors"

    def reference_order(self, category: ContentCategory) -> list[str]:
        return list(self.reference_stores.get(category, []))


def _env_overrides() -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if data_dir := os.getenv(ENV_DATA_DIR):
        overrides["data_dir"] = Path(data_dir).expanduser().resolve()
    if log_level := os.getenv(ENV_LOG_LEVEL):
        overrides["log_level"] = log_level
    if custom_store := os.getenv(ENV_CUSTOM_STORE_ID):
        overrides["custom_store_id"] = custom_store
    if timeout := os.getenv(ENV_REQUEST_TIMEOUT):
        overrides["request_timeout"] = timeout
    return overrides


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Failed to read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse config file {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at the top level")
    return data


def load_config(path: Path | str | None = None) -> ImporterConfig:
    """Build the importer configuration.

    Args:
        path: Explicit YAML file. Defaults to ``<data_dir>/importer.yaml``
            when that file exists.

    Returns:
        Validated ImporterConfig.

    Raises:
        ConfigError: If the YAML file is unreadable or the merged values are invalid.
    """
    if not load_dotenv():
        logger.debug(".env file not found, using process environment only")

    merged: dict[str, Any] = _env_overrides()
    data_dir = Path(merged.get("data_dir", Path.cwd()))

    config_path = Path(path) if path else data_dir / CONFIG_FILENAME
    if path or config_path.exists():
        file_values = _read_yaml(config_path)
        # Environment wins over the file
        merged = {**file_values, **merged}
        logger.debug(f"Loaded config file {config_path}")

    try:
        config = ImporterConfig.model_validate(merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid importer configuration: {e}") from e

    logger.debug(f"Data path: {config.data_dir}")
    return config
