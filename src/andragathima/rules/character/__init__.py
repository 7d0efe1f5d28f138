"""Character-related models and ability-score mechanics."""

from .attributes import (
    AbilityScore,
    get_modifier,
    resolve_ability,
    resolve_value,
    round_half_up,
)
from .effects import ChangeMode, EffectChange, ModifierTarget, TargetCategory, parse_target
from .snapshot import (
    ActiveEffect,
    ActorSnapshot,
    ActorType,
    Item,
    ItemType,
    SnapshotValidationError,
    parse_actor_snapshot,
)

__all__ = [
    "AbilityScore",
    "ActiveEffect",
    "ActorSnapshot",
    "ActorType",
    "ChangeMode",
    "EffectChange",
    "Item",
    "ItemType",
    "ModifierTarget",
    "SnapshotValidationError",
    "TargetCategory",
    "get_modifier",
    "parse_actor_snapshot",
    "parse_target",
    "resolve_ability",
    "resolve_value",
    "round_half_up",
]
