"""Shared fixtures for all tests."""

from typing import Any

import pytest

from andragathima.config import PACKAGE_DATA_DIR, get_settings
from andragathima.rules.character.snapshot import ActorSnapshot, parse_actor_snapshot
from andragathima.rules.tables import ConfigTables, get_default_tables, load_config_tables

ABILITY_KEYS = ("dyn", "epi", "kra", "eyf", "sof", "xar")


@pytest.fixture(autouse=True)
def clear_cached_settings():
    """Drop cached settings and default tables so env changes in a test take effect."""
    get_settings.cache_clear()
    get_default_tables.cache_clear()
    yield
    get_settings.cache_clear()
    get_default_tables.cache_clear()


@pytest.fixture(scope="session")
def tables() -> ConfigTables:
    """Bundled configuration tables."""
    return load_config_tables(PACKAGE_DATA_DIR)


@pytest.fixture
def make_actor():
    """Build an ActorSnapshot: a human with every ability at 10 unless overridden.

    ``abilities`` may map keys to plain ints; everything else is passed through.
    """

    def _make(abilities: dict[str, int] | None = None, **overrides: Any) -> ActorSnapshot:
        values = {key: 10 for key in ABILITY_KEYS}
        values.update(abilities or {})
        data: dict[str, Any] = {
            "actor_type": "character",
            "name": "Nikos",
            "race": "anthropos",
            "abilities": {key: {"value": value} for key, value in values.items()},
        }
        data.update(overrides)
        return parse_actor_snapshot(data)

    return _make


@pytest.fixture
def make_npc(make_actor):
    """Build an NPC snapshot (no race)."""

    def _make(abilities: dict[str, int] | None = None, **overrides: Any) -> ActorSnapshot:
        overrides.setdefault("race", None)
        return make_actor(abilities, actor_type="npc", name="Lykos", **overrides)

    return _make


@pytest.fixture
def make_effect():
    """Build an active effect from (key, mode, value) triples."""

    def _make(
        *changes: tuple[str, Any, Any],
        status_id: str | None = None,
        name: str = "",
        disabled: bool = False,
    ) -> dict[str, Any]:
        return {
            "name": name,
            "status_id": status_id,
            "disabled": disabled,
            "changes": [{"key": key, "mode": mode, "value": value} for key, mode, value in changes],
        }

    return _make


@pytest.fixture
def make_weapon():
    """Build a weapon item; keyword arguments go to the weapon profile."""

    def _make(
        item_id: str = "sword",
        *,
        effects: list[dict[str, Any]] | None = None,
        weight: float = 0,
        **profile: Any,
    ) -> dict[str, Any]:
        return {
            "id": item_id,
            "name": item_id.title(),
            "type": "weapon",
            "weight": weight,
            "effects": effects or [],
            "weapon": profile,
        }

    return _make


@pytest.fixture
def make_armor():
    """Build an armor item; keyword arguments go to the armor profile."""

    def _make(
        item_id: str = "cuirass",
        *,
        equipped: bool = False,
        weight: float = 0,
        **profile: Any,
    ) -> dict[str, Any]:
        return {
            "id": item_id,
            "name": item_id.title(),
            "type": "armor",
            "weight": weight,
            "equipped": equipped,
            "armor": profile,
        }

    return _make
