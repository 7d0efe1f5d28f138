"""
Configuration table loader.

Reads the YAML table files from a data directory (the bundled package data by
default), merges their top-level sections and validates them into
:class:`ConfigTables`.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from andragathima.config import get_settings
from andragathima.rules.tables.models import ConfigTables

logger = structlog.get_logger(__name__)


class TableLoadError(Exception):
    """Raised when a table file cannot be read or parsed."""

    def __init__(self, message: str, path: Path) -> None:
        super().__init__(message)
        self.path = path


class TableValidationError(Exception):
    """Raised when table data fails validation."""

    def __init__(self, message: str, path: Path) -> None:
        super().__init__(message)
        self.path = path


# File name -> top-level sections it must provide (optional sections listed separately)
TABLE_FILES: dict[str, tuple[str, ...]] = {
    "abilities.yaml": ("abilities", "saves", "damage_types"),
    "races.yaml": ("races",),
    "sizes.yaml": ("sizes",),
    "encumbrance.yaml": ("carrying_capacity", "encumbrance_tiers", "coin_weights"),
    "equipment.yaml": (
        "armor_proficiency",
        "weapon_proficiency",
        "shields",
        "weapons",
        "skills",
        "skill_bonuses",
        "skill_item_costs",
    ),
    "status_effects.yaml": ("status_effects",),
}

OPTIONAL_SECTIONS: dict[str, tuple[str, ...]] = {
    "equipment.yaml": ("slots", "total_defense"),
}


def load_yaml_file(file_path: Path, sections: tuple[str, ...]) -> dict[str, Any]:
    """
    Load a YAML table file.

    Args:
        file_path: Path to the YAML file
        sections: Top-level keys the file must contain

    Returns:
        Mapping of every top-level key in the file

    Raises:
        TableLoadError: If the file cannot be loaded, parsed, or lacks a section
    """
    try:
        with open(file_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise TableLoadError(f"YAML parsing error in {file_path}: {e}", file_path) from e
    except FileNotFoundError as e:
        raise TableLoadError(f"File not found: {file_path}", file_path) from e
    except OSError as e:
        raise TableLoadError(f"Error loading {file_path}: {e}", file_path) from e

    if not data:
        raise TableLoadError(f"Empty YAML file: {file_path}", file_path)

    if not isinstance(data, dict):
        raise TableLoadError(f"Top level of {file_path} must be a mapping", file_path)

    for section in sections:
        if section not in data:
            raise TableLoadError(f"Missing '{section}' key in {file_path}", file_path)

    return data


def load_config_tables(data_dir: Path | None = None) -> ConfigTables:
    """
    Load and validate every configuration table.

    Args:
        data_dir: Directory containing the table files. Defaults to the
            configured ``tables_dir`` or the bundled package data.

    Returns:
        Validated configuration tables

    Raises:
        TableLoadError: If a file is missing, unreadable or malformed
        TableValidationError: If the combined tables fail validation
    """
    if data_dir is None:
        data_dir = get_settings().data_dir

    merged: dict[str, Any] = {}
    section_sources: dict[str, Path] = {}

    for file_name, sections in TABLE_FILES.items():
        file_path = data_dir / file_name
        data = load_yaml_file(file_path, sections)

        allowed = set(sections) | set(OPTIONAL_SECTIONS.get(file_name, ()))
        for key, value in data.items():
            if key not in allowed:
                raise TableValidationError(
                    f"Unexpected section '{key}' in {file_path}", file_path
                )
            if key in merged:
                raise TableValidationError(
                    f"Section '{key}' in {file_path} already defined in {section_sources[key]}",
                    file_path,
                )
            merged[key] = value
            section_sources[key] = file_path

    try:
        tables = ConfigTables.model_validate(merged)
    except ValidationError as e:
        first = e.errors()[0]
        section = str(first["loc"][0]) if first["loc"] else ""
        path = section_sources.get(section, data_dir)
        logger.error(
            "config_tables_invalid",
            path=str(path),
            error_count=e.error_count(),
            error=str(e),
        )
        raise TableValidationError(f"Invalid configuration tables in {path}: {e}", path) from e

    logger.info(
        "config_tables_loaded",
        data_dir=str(data_dir),
        races=len(tables.races),
        sizes=len(tables.sizes),
        status_effects=len(tables.status_effects),
    )
    return tables


@lru_cache
def get_default_tables() -> ConfigTables:
    """Get cached tables loaded from the configured data directory."""
    return load_config_tables()
