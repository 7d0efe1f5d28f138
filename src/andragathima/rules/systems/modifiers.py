"""
Status modifier resolution.

Collects the changes of every active condition and every item effect that
reaches the actor, and folds them into a :class:`ModifierBundle` with three
channels per stat key:

- additive: numeric changes are summed, boolean changes are assigned
- override: absolute value, last writer wins
- conditional: floor value used only if higher than the calculated stat,
  last writer wins

Processing order is deterministic: actor conditions in list order, then item
effects in equip order (slot items, quick items, remaining items). Later
overrides replace earlier ones.

The "total defense" condition carries no declarative changes. Its bonuses
depend on the actor's shield, skills and held weapons and are computed by
:func:`total_defense_bonus`.
"""

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from enum import StrEnum

import structlog

from andragathima.rules.character.attributes import Number, normalize_number, resolve_value
from andragathima.rules.character.effects import (
    ChangeMode,
    EffectChange,
    ModifierTarget,
    TargetCategory,
)
from andragathima.rules.character.snapshot import ActiveEffect, ActorSnapshot, Item
from andragathima.rules.tables.models import ConfigTables

logger = structlog.get_logger(__name__)

TOTAL_DEFENSE_STATUS = "totaldefense"

ModifierValue = bool | float


class EquipLocation(StrEnum):
    """Where an owned item sits, which decides how much of it applies."""

    EQUIPMENT = "equipment"  # main equipment slot
    EQUIPPED = "equipped"  # host "equipped" flag
    QUICK = "quick"  # quick-access slot
    MISC = "misc"  # carried, not equipped


class EffectScope(StrEnum):
    """How much of an item's effects applies."""

    ALL = "all"
    NON_WEAPON = "non_weapon"
    NONE = "none"


@dataclass
class ModifierChannels:
    """Additive, override and conditional-override channels for one category."""

    additive: dict[str, ModifierValue] = field(default_factory=dict)
    override: dict[str, ModifierValue] = field(default_factory=dict)
    conditional: dict[str, ModifierValue] = field(default_factory=dict)

    def apply(self, key: str, mode: ChangeMode, value: ModifierValue) -> None:
        """Merge one change into the channels."""
        if mode == ChangeMode.ADD:
            if isinstance(value, bool):
                self.additive[key] = value
            elif value != 0:
                current = self.additive.get(key, 0)
                base = 0 if isinstance(current, bool) else current
                self.additive[key] = base + value
        elif mode == ChangeMode.OVERRIDE:
            self.override[key] = value
        elif mode == ChangeMode.CONDITIONAL_OVERRIDE:
            self.conditional[key] = value

    def number(self, key: str) -> Number:
        """Additive total for a key (0 when absent or boolean)."""
        value = self.additive.get(key, 0)
        if isinstance(value, bool):
            return 0
        return normalize_number(value)

    def override_for(self, key: str) -> Number | None:
        value = self.override.get(key)
        if value is None or isinstance(value, bool):
            return None
        return value

    def conditional_for(self, key: str) -> Number | None:
        value = self.conditional.get(key)
        if value is None or isinstance(value, bool):
            return None
        return value

    def resolve(self, key: str, calculated: Number) -> Number:
        """Apply this key's overrides to an already-summed value."""
        return resolve_value(calculated, self.override_for(key), self.conditional_for(key))

    def flag(self, key: str) -> bool:
        """Boolean setting: the override when present, else the additive value."""
        if key in self.override:
            return bool(self.override[key])
        return bool(self.additive.get(key, False))

    def explicit_flag(self, key: str) -> bool | None:
        """Like :meth:`flag` but None when nothing set the key."""
        if key in self.override:
            return bool(self.override[key])
        if key in self.additive:
            return bool(self.additive[key])
        return None

    def multiplier(self, key: str) -> float:
        """Multiplier setting: non-zero override, else non-zero additive, else 1."""
        for value in (self.override.get(key), self.additive.get(key)):
            if value is not None and not isinstance(value, bool) and value != 0:
                return value
        return 1.0

    def as_dict(self) -> dict[str, ModifierValue]:
        """Flatten to host form: ``key``, ``key_override``, ``key_condoverride``."""
        result: dict[str, ModifierValue] = {
            key: normalize_number(value) if not isinstance(value, bool) else value
            for key, value in self.additive.items()
        }
        for key, value in self.override.items():
            result[f"{key}_override"] = value
        for key, value in self.conditional.items():
            result[f"{key}_condoverride"] = value
        return result


@dataclass
class ModifierBundle:
    """Resolved status modifiers for one actor, per stat category."""

    abilities: ModifierChannels = field(default_factory=ModifierChannels)
    saves: ModifierChannels = field(default_factory=ModifierChannels)
    combat: ModifierChannels = field(default_factory=ModifierChannels)
    resistances: ModifierChannels = field(default_factory=ModifierChannels)
    other: ModifierChannels = field(default_factory=ModifierChannels)

    def channels(self, category: TargetCategory) -> ModifierChannels | None:
        """Channels for a category; damage changes are weapon-local and have none."""
        return {
            TargetCategory.ABILITIES: self.abilities,
            TargetCategory.SAVES: self.saves,
            TargetCategory.COMBAT: self.combat,
            TargetCategory.RESISTANCES: self.resistances,
            TargetCategory.OTHER: self.other,
        }.get(category)

    def apply(self, target: ModifierTarget, mode: ChangeMode, value: ModifierValue) -> None:
        channels = self.channels(target.category)
        if channels is not None:
            channels.apply(target.key, mode, value)

    def apply_change(self, change: EffectChange) -> bool:
        """Merge a validated change. Returns False if it was dropped."""
        target, mode, value = change.target, change.mode, change.value
        if target is None or mode is None or value is None:
            return False
        self.apply(target, mode, value)
        return True

    def as_dict(self) -> dict[str, dict[str, ModifierValue]]:
        return {
            "abilities": self.abilities.as_dict(),
            "saves": self.saves.as_dict(),
            "combat": self.combat.as_dict(),
            "resistances": self.resistances.as_dict(),
            "other": self.other.as_dict(),
        }


def equip_locations(actor: ActorSnapshot) -> list[tuple[Item, EquipLocation]]:
    """
    Pair every owned item with its location, in processing order.

    Slot items come first (slot order), then quick items, then everything
    else. Each item appears once; a slot beats the equipped flag, which beats a
    quick slot.

    Args:
        actor: The actor snapshot

    Returns:
        List of (item, location) pairs
    """
    slot_ids = actor.equipment.slot_item_ids
    quick_ids = actor.equipment.quick_item_ids
    slot_set = set(slot_ids)
    quick_set = set(quick_ids)

    for item_id in [*slot_ids, *quick_ids]:
        if actor.get_item(item_id) is None:
            logger.warning("unknown_item_reference", item_id=item_id, actor=actor.name)

    ordered: list[Item] = []
    seen: set[str] = set()
    for item_id in [*slot_ids, *quick_ids]:
        item = actor.get_item(item_id)
        if item is not None and item.id not in seen:
            ordered.append(item)
            seen.add(item.id)
    for item in actor.items:
        if not item.id:
            ordered.append(item)
        elif item.id not in seen:
            ordered.append(item)
            seen.add(item.id)

    result: list[tuple[Item, EquipLocation]] = []
    for item in ordered:
        if item.id in slot_set:
            location = EquipLocation.EQUIPMENT
        elif item.equipped:
            location = EquipLocation.EQUIPPED
        elif item.id in quick_set:
            location = EquipLocation.QUICK
        else:
            location = EquipLocation.MISC
        result.append((item, location))
    return result


def effect_scope(item: Item, location: EquipLocation) -> EffectScope:
    """Decide which of an item's effects reach the actor."""
    if not item.effects_require_equipment:
        return EffectScope.ALL
    if location in (EquipLocation.EQUIPMENT, EquipLocation.EQUIPPED):
        return EffectScope.ALL
    if location == EquipLocation.QUICK:
        return EffectScope.NON_WEAPON
    return EffectScope.NONE


def total_defense_bonus(actor: ActorSnapshot, tables: ConfigTables) -> tuple[int, int]:
    """
    Compute the (melee, ranged) defense bonus of the total-defense condition.

    Melee always gets the bonus. Ranged gets it when the actor holds a shield,
    has both projectile deflection and never-unarmed, or has projectile
    deflection while holding a weapon that is not a fist weapon.

    Args:
        actor: The actor snapshot
        tables: Configuration tables

    Returns:
        Tuple of (melee defense bonus, ranged defense bonus)
    """
    rule = tables.total_defense
    skills = tables.skills

    has_shield = actor.slot_occupied(tables.slots.shield)
    deflection = actor.has_skill(skills.projectile_deflection)
    never_unarmed = actor.has_skill(skills.never_unarmed)

    fist = tables.shields.fist_category
    holding_weapon = has_shield or any(
        item.is_weapon and (item.weapon is None or item.weapon.weapon_category != fist)
        for item in actor.quick_items()
    )

    ranged = 0
    if has_shield or (deflection and never_unarmed) or (deflection and holding_weapon):
        ranged = rule.ranged_bonus

    logger.debug(
        "total_defense_applied",
        melee_bonus=rule.melee_bonus,
        ranged_bonus=ranged,
        has_shield=has_shield,
        projectile_deflection=deflection,
        never_unarmed=never_unarmed,
        holding_weapon=holding_weapon,
    )
    return rule.melee_bonus, ranged


def effect_changes(effect: ActiveEffect, tables: ConfigTables) -> list[EffectChange]:
    """Changes of an effect, falling back to its catalog entry when it declares none."""
    if effect.changes or not effect.status_id:
        return effect.changes
    definition = tables.status_effects.get(effect.status_id)
    if definition is None:
        logger.warning("unknown_status_effect", status_id=effect.status_id)
        return []
    return definition.changes


def merge_effects(
    conditions: Iterable[ActiveEffect],
    item_effects: Iterable[tuple[Item, EquipLocation]],
    tables: ConfigTables,
    total_defense: Callable[[], tuple[int, int]],
) -> ModifierBundle:
    """
    Fold conditions and item effects into a ModifierBundle.

    Args:
        conditions: Active conditions on the actor, in order
        item_effects: Items with their locations, in processing order
        tables: Configuration tables (status catalog)
        total_defense: Computes the total-defense bonus when that condition is met

    Returns:
        The merged bundle
    """
    bundle = ModifierBundle()
    dropped = 0

    def apply_effect(effect: ActiveEffect, scope: EffectScope) -> None:
        nonlocal dropped
        if effect.disabled or scope == EffectScope.NONE:
            return

        if effect.status_id == TOTAL_DEFENSE_STATUS:
            melee, ranged = total_defense()
            bundle.combat.apply("meleeDefense", ChangeMode.ADD, melee)
            bundle.combat.apply("rangedDefense", ChangeMode.ADD, ranged)
            return

        for change in effect_changes(effect, tables):
            if (
                scope == EffectScope.NON_WEAPON
                and change.target is not None
                and change.target.is_weapon_specific
            ):
                continue
            if not bundle.apply_change(change):
                dropped += 1

    for condition in conditions:
        apply_effect(condition, EffectScope.ALL)

    for item, location in item_effects:
        scope = effect_scope(item, location)
        for effect in item.effects:
            apply_effect(effect, scope)

    logger.debug("status_modifiers_resolved", dropped_changes=dropped)
    return bundle


def resolve_modifiers(actor: ActorSnapshot, tables: ConfigTables) -> ModifierBundle:
    """
    Resolve every status modifier reaching an actor.

    Args:
        actor: The actor snapshot
        tables: Configuration tables

    Returns:
        The actor's ModifierBundle
    """
    return merge_effects(
        actor.effects,
        equip_locations(actor),
        tables,
        total_defense=lambda: total_defense_bonus(actor, tables),
    )


class StatusModifierCache:
    """
    Caller-owned memo of the last resolved bundle, keyed by a preparation version.

    The host bumps the version whenever actor data changes; within one version
    the bundle is resolved once. Use one cache per actor.
    """

    def __init__(self) -> None:
        self._version: object | None = None
        self._bundle: ModifierBundle | None = None

    def get(self, version: object) -> ModifierBundle | None:
        if self._bundle is not None and self._version == version:
            return self._bundle
        return None

    def store(self, version: object, bundle: ModifierBundle) -> None:
        self._version = version
        self._bundle = bundle

    def get_or_resolve(
        self, version: object, resolve: Callable[[], ModifierBundle]
    ) -> ModifierBundle:
        """Return the cached bundle for ``version`` or resolve and store a new one."""
        cached = self.get(version)
        if cached is not None:
            logger.debug("status_modifiers_cache_hit", version=version)
            return cached
        bundle = resolve()
        self.store(version, bundle)
        return bundle

    def clear(self) -> None:
        self._version = None
        self._bundle = None


def iter_item_effect_changes(item: Item) -> Iterator[EffectChange]:
    """Enabled changes carried by an item, in declaration order."""
    for effect in item.effects:
        if effect.disabled:
            continue
        yield from effect.changes
