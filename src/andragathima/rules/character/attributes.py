"""Ability scores and the override resolution shared by every resolvable stat.

Ability scores are resolved in a fixed order:
    1. base value + racial modifier + additive status modifiers
    2. an absolute override, when present, replaces that result outright
    3. otherwise a conditional override replaces it only if it is higher
"""

import math
from dataclasses import dataclass

Number = int | float

# Point-buy limits for player characters
PC_ABILITY_MIN = 6
PC_ABILITY_MAX = 25
DEFAULT_ABILITY_VALUE = 10


@dataclass(frozen=True)
class AbilityScore:
    """Resolved ability score."""

    key: str
    base: int
    racial_mod: int
    total_value: int  # base + racial, clamped for player characters
    display_value: Number
    status_mod: Number  # effective change shown next to the score
    mod: int


def get_modifier(value: Number) -> int:
    """Calculate the ability modifier.

    Args:
        value: The displayed ability value

    Returns:
        The modifier: floor((value - 10) / 2)

    Examples:
        >>> get_modifier(10)
        0
        >>> get_modifier(18)
        4
        >>> get_modifier(7)
        -2
    """
    return math.floor((value - 10) / 2)


def round_half_up(value: Number) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3, -2.5 -> -2)."""
    return math.floor(value + 0.5)


def normalize_number(value: Number) -> Number:
    """Return whole floats as ints so integral stats stay integral."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def resolve_value(
    calculated: Number,
    override: Number | None = None,
    conditional_override: Number | None = None,
) -> Number:
    """Apply absolute and conditional overrides to a calculated value.

    Args:
        calculated: Base plus additive modifiers
        override: Absolute override, wins unconditionally
        conditional_override: Used only when it is higher than ``calculated``

    Returns:
        The resolved value

    Examples:
        >>> resolve_value(12, override=5)
        5
        >>> resolve_value(12, conditional_override=15)
        15
        >>> resolve_value(12, conditional_override=9)
        12
    """
    if override is not None:
        return normalize_number(override)
    if conditional_override is not None and calculated < conditional_override:
        return normalize_number(conditional_override)
    return normalize_number(calculated)


def resolve_ability(
    key: str,
    base: int,
    racial_mod: int,
    additive: Number,
    override: Number | None,
    conditional_override: Number | None,
    *,
    clamp_total: bool,
) -> AbilityScore:
    """Resolve one ability score.

    Args:
        key: Ability key (e.g. "dyn")
        base: Raw value on the actor
        racial_mod: Racial modifier (always 0 for NPCs)
        additive: Sum of additive status modifiers
        override: Absolute override, if any
        conditional_override: Conditional override, if any
        clamp_total: Clamp ``total_value`` to the player-character range

    Returns:
        The resolved AbilityScore
    """
    raw_total = base + racial_mod
    total_value = max(PC_ABILITY_MIN, min(PC_ABILITY_MAX, raw_total)) if clamp_total else raw_total

    display_value = resolve_value(raw_total + additive, override, conditional_override)
    if override is not None or display_value != normalize_number(raw_total + additive):
        status_mod = normalize_number(display_value - raw_total)
    else:
        status_mod = normalize_number(additive)

    return AbilityScore(
        key=key,
        base=base,
        racial_mod=racial_mod,
        total_value=total_value,
        display_value=display_value,
        status_mod=status_mod,
        mod=get_modifier(display_value),
    )
