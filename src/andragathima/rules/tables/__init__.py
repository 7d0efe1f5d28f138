"""Configuration tables: YAML data, models and loader."""

from .loader import (
    TableLoadError,
    TableValidationError,
    get_default_tables,
    load_config_tables,
    load_yaml_file,
)
from .models import (
    CarryingCapacity,
    ConfigTables,
    EncumbrancePenalties,
    EncumbranceTier,
    RaceDefinition,
    SizeModifiers,
    StatusEffectDefinition,
)

__all__ = [
    "CarryingCapacity",
    "ConfigTables",
    "EncumbrancePenalties",
    "EncumbranceTier",
    "RaceDefinition",
    "SizeModifiers",
    "StatusEffectDefinition",
    "TableLoadError",
    "TableValidationError",
    "get_default_tables",
    "load_config_tables",
    "load_yaml_file",
]
