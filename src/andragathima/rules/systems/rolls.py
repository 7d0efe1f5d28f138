"""Roll resolution.

Every roll is one d20 plus a modifier against a target number (11 by default).
A natural 20 always succeeds and a natural 1 always fails. The stage measures
the margin in bands of 5: +1 for 0..4 over the target, +2 for 5..9 and so on;
-1 for 1..4 under, -2 for 5..9. Stage is never 0.

The modifier helpers read a DerivedSnapshot so callers never rebuild the
formulas behind a displayed stat.
"""

import math
import random
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from andragathima.rules.systems.derived import DerivedSnapshot
    from andragathima.rules.systems.weapons import WeaponDerived

logger = structlog.get_logger(__name__)

DEFAULT_TARGET_NUMBER = 11
STAGE_BAND = 5
CRITICAL_DIE = 20
FUMBLE_DIE = 1
CRITICAL_DAMAGE_BONUS = 5


class StageLabel(StrEnum):
    """Named success stages."""

    CRITICAL_FAILURE = "critical_failure"
    MAJOR_FAILURE = "major_failure"
    FAILURE = "failure"
    SUCCESS = "success"
    MAJOR_SUCCESS = "major_success"
    CRITICAL_SUCCESS = "critical_success"
    LEGENDARY_SUCCESS = "legendary_success"


@dataclass(frozen=True)
class RollResult:
    """Outcome of a single d20 roll."""

    d20: int
    modifier: int
    target: int
    total: int
    success: bool
    stage: int
    critical: bool
    fumble: bool

    @property
    def label(self) -> StageLabel:
        return stage_label(self.stage)


def roll_d20(rng: random.Random | None = None) -> int:
    """Roll a d20."""
    return (rng or random).randint(1, 20)


def calculate_stage(difference: int, critical: bool = False, fumble: bool = False) -> int:
    """
    Convert the margin over the target into a success stage.

    Args:
        difference: total - target
        critical: Natural 20; the stage is at least +1
        fumble: Natural 1; the stage is at most -1

    Returns:
        Non-zero stage

    Examples:
        >>> calculate_stage(4)
        1
        >>> calculate_stage(-1)
        -1
        >>> calculate_stage(10, fumble=True)
        -1
    """
    if critical:
        return max(1, math.floor(difference / STAGE_BAND) + 1)
    if fumble:
        return min(-1, math.floor(difference / STAGE_BAND) - 1)
    if difference >= 0:
        return math.floor(difference / STAGE_BAND) + 1
    return math.ceil(difference / STAGE_BAND) - 1


def stage_label(stage: int) -> StageLabel:
    """Name a stage; stages beyond +/-3 keep the outermost label."""
    if stage <= -3:
        return StageLabel.CRITICAL_FAILURE
    if stage == -2:
        return StageLabel.MAJOR_FAILURE
    if stage <= -1:
        return StageLabel.FAILURE
    if stage == 1:
        return StageLabel.SUCCESS
    if stage == 2:
        return StageLabel.MAJOR_SUCCESS
    if stage == 3:
        return StageLabel.CRITICAL_SUCCESS
    return StageLabel.LEGENDARY_SUCCESS


def resolve_roll(d20: int, modifier: int, target: int = DEFAULT_TARGET_NUMBER) -> RollResult:
    """
    Resolve an already-rolled die.

    Args:
        d20: Die result (1-20)
        modifier: Total modifier
        target: Target number

    Returns:
        RollResult
    """
    if not FUMBLE_DIE <= d20 <= CRITICAL_DIE:
        raise ValueError(f"d20 result must be between 1 and 20, got {d20}")

    total = d20 + modifier
    critical = d20 == CRITICAL_DIE
    fumble = d20 == FUMBLE_DIE

    if critical:
        success = True
    elif fumble:
        success = False
    else:
        success = total >= target

    return RollResult(
        d20=d20,
        modifier=modifier,
        target=target,
        total=total,
        success=success,
        stage=calculate_stage(total - target, critical, fumble),
        critical=critical,
        fumble=fumble,
    )


def basic_roll(
    modifier: int,
    target: int = DEFAULT_TARGET_NUMBER,
    *,
    rng: random.Random | None = None,
) -> RollResult:
    """
    Roll a d20, add the modifier and compare with the target.

    Args:
        modifier: Total modifier
        target: Target number (default 11)
        rng: Random source; the module-level generator when omitted

    Returns:
        RollResult
    """
    result = resolve_roll(roll_d20(rng), modifier, target)
    logger.debug(
        "roll_resolved",
        d20=result.d20,
        modifier=modifier,
        target=target,
        total=result.total,
        success=result.success,
        stage=result.stage,
    )
    return result


# Modifier helpers


def _whole(value: float) -> int:
    return math.floor(value)


def attack_modifier(derived: "DerivedSnapshot", ranged: bool = False, bonus: int = 0) -> int:
    track = derived.combat.ranged if ranged else derived.combat.melee
    return _whole(track.attack) + bonus


def defense_modifier(derived: "DerivedSnapshot", ranged: bool = False) -> int:
    track = derived.combat.ranged if ranged else derived.combat.melee
    return _whole(track.defense)


def damage_modifier(
    derived: "DerivedSnapshot",
    ranged: bool = False,
    critical: bool = False,
    base: int = 0,
    bonus: int = 0,
) -> int:
    """Damage modifier: base + the track's damage, +5 on a critical hit."""
    track = derived.combat.ranged if ranged else derived.combat.melee
    modifier = base + _whole(track.damage) + bonus
    if critical:
        modifier += CRITICAL_DAMAGE_BONUS
    return modifier


def weapon_attack_modifier(weapon: "WeaponDerived", ranged: bool | None = None) -> int:
    """Attack with a weapon; the weapon's own channel unless ``ranged`` is given."""
    if ranged is None:
        return _whole(weapon.attack)
    return _whole(weapon.ranged_attack_with_penalty if ranged else weapon.melee_attack_with_penalty)


def weapon_damage_modifier(weapon: "WeaponDerived", critical: bool = False) -> int:
    modifier = _whole(weapon.weapon_damage)
    if critical:
        modifier += CRITICAL_DAMAGE_BONUS
    return modifier


def resistance_modifier(derived: "DerivedSnapshot", damage_type: str | None = None) -> int:
    """Total resistance for a damage type, or the base resistance."""
    if damage_type is None:
        return _whole(derived.resistances.base)
    resistance = derived.resistances.by_type.get(damage_type)
    if resistance is None:
        logger.warning("unknown_damage_type", damage_type=damage_type)
        return _whole(derived.resistances.base)
    return _whole(resistance.total)


def save_modifier(derived: "DerivedSnapshot", save: str) -> int:
    value = derived.saves.get(save)
    if value is None:
        raise KeyError(f"Unknown save: {save}")
    return _whole(value.value)


def ability_check_modifier(derived: "DerivedSnapshot", ability: str) -> int:
    """Ability checks add the total ability value (base + racial), not the modifier."""
    score = derived.abilities.get(ability)
    if score is None:
        raise KeyError(f"Unknown ability: {ability}")
    return score.total_value


def grapple_modifier(derived: "DerivedSnapshot") -> int:
    return _whole(derived.combat.pali)


def stability_modifier(derived: "DerivedSnapshot") -> int:
    return _whole(derived.combat.eystatheia)
