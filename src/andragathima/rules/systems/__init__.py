"""Rules systems: status modifiers, encumbrance, weapons, magic, experience, rolls."""

from .derived import DerivedSnapshot, compute_derived, derive_weapon, weapon_context
from .encumbrance import EncumbranceState, carrying_capacity, compute_encumbrance
from .modifiers import ModifierBundle, StatusModifierCache, resolve_modifiers
from .rolls import RollResult, basic_roll, calculate_stage, resolve_roll
from .weapons import WeaponDerived, compute_weapon_derived

__all__ = [
    "DerivedSnapshot",
    "EncumbranceState",
    "ModifierBundle",
    "RollResult",
    "StatusModifierCache",
    "WeaponDerived",
    "basic_roll",
    "calculate_stage",
    "carrying_capacity",
    "compute_derived",
    "compute_encumbrance",
    "compute_weapon_derived",
    "derive_weapon",
    "resolve_modifiers",
    "resolve_roll",
    "weapon_context",
]
