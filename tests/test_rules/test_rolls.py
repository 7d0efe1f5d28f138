"""Tests for roll resolution and the roll modifier helpers."""

import random

import pytest

from andragathima.rules.systems.derived import compute_derived
from andragathima.rules.systems.rolls import (
    StageLabel,
    ability_check_modifier,
    attack_modifier,
    basic_roll,
    calculate_stage,
    damage_modifier,
    defense_modifier,
    grapple_modifier,
    resistance_modifier,
    resolve_roll,
    roll_d20,
    save_modifier,
    stability_modifier,
    stage_label,
    weapon_attack_modifier,
    weapon_damage_modifier,
)


class FixedDie:
    """Random source that always rolls the same number."""

    def __init__(self, value: int):
        self.value = value

    def randint(self, low: int, high: int) -> int:
        return self.value


class TestCalculateStage:
    """Tests for the stage bands."""

    @pytest.mark.parametrize(
        "difference,expected",
        [(0, 1), (4, 1), (5, 2), (9, 2), (10, 3), (-1, -1), (-4, -1), (-5, -2), (-10, -3)],
    )
    def test_bands(self, difference, expected):
        """Stages step every 5 points away from the target."""
        assert calculate_stage(difference) == expected

    def test_never_zero(self):
        """No margin, critical or fumble produces stage 0."""
        for difference in range(-60, 61):
            assert calculate_stage(difference) != 0
            assert calculate_stage(difference, critical=True) >= 1
            assert calculate_stage(difference, fumble=True) <= -1


class TestResolveRoll:
    """Tests for resolving a rolled die."""

    def test_plain_success(self):
        """15 against 11 succeeds at stage 1."""
        result = resolve_roll(15, 0)
        assert result.total == 15
        assert result.success
        assert result.stage == 1
        assert result.label == StageLabel.SUCCESS
        assert not result.critical
        assert not result.fumble

    def test_plain_failure(self):
        """Falling short fails with a negative stage."""
        result = resolve_roll(8, -2)
        assert not result.success
        assert result.stage == -2
        assert result.label == StageLabel.MAJOR_FAILURE

    def test_fumble_always_fails(self):
        """A natural 1 fails even when the total beats the target."""
        result = resolve_roll(1, 20)
        assert result.total == 21
        assert result.fumble
        assert not result.success
        assert result.stage <= -1

    def test_critical_always_succeeds(self):
        """A natural 20 succeeds even when the total misses the target."""
        result = resolve_roll(20, -15)
        assert result.critical
        assert result.success
        assert result.stage == 1

    def test_critical_keeps_margin(self):
        """A critical with a large margin keeps its higher stage."""
        assert resolve_roll(20, 5).stage == 3

    def test_custom_target(self):
        """The target number can be changed."""
        assert not resolve_roll(15, 0, target=16).success
        assert resolve_roll(15, 1, target=16).success

    @pytest.mark.parametrize("die", [0, 21, -3])
    def test_invalid_die(self, die):
        """Die results outside 1..20 are rejected."""
        with pytest.raises(ValueError, match="between 1 and 20"):
            resolve_roll(die, 0)


class TestBasicRoll:
    """Tests for rolling with a random source."""

    def test_injected_rng(self):
        """A stub random source fixes the die."""
        result = basic_roll(3, rng=FixedDie(12))
        assert result.d20 == 12
        assert result.total == 15
        assert result.success

    def test_seeded_rng_reproducible(self):
        """The same seed gives the same roll."""
        first = basic_roll(0, rng=random.Random(7))
        second = basic_roll(0, rng=random.Random(7))
        assert first == second

    def test_die_range(self):
        """Rolled dice stay within 1..20."""
        rng = random.Random(42)
        rolls = {roll_d20(rng) for _ in range(500)}
        assert rolls <= set(range(1, 21))
        assert len(rolls) == 20


class TestStageLabel:
    """Tests for stage names."""

    def test_labels(self):
        """Outer stages keep the outermost label."""
        assert stage_label(-7) == StageLabel.CRITICAL_FAILURE
        assert stage_label(-3) == StageLabel.CRITICAL_FAILURE
        assert stage_label(-1) == StageLabel.FAILURE
        assert stage_label(2) == StageLabel.MAJOR_SUCCESS
        assert stage_label(3) == StageLabel.CRITICAL_SUCCESS
        assert stage_label(4) == StageLabel.LEGENDARY_SUCCESS
        assert stage_label(9) == StageLabel.LEGENDARY_SUCCESS


class TestModifierHelpers:
    """Tests for modifiers read from derived statistics."""

    @pytest.fixture
    def derived(self, tables, make_actor, make_weapon):
        actor = make_actor(
            abilities={"dyn": 16, "epi": 14, "kra": 12, "sof": 14},
            combat={"melee": {"value": 4}, "ranged": {"value": 2}},
            saves={"mya": {"base": 1}},
            resistances={"fotia": {"base": 3}},
            items=[make_weapon(weapon_type="macheri", damage_coefficient=2, ability="dyn")],
            equipment={"quick_items": ["sword"]},
        )
        return compute_derived(actor, tables)

    def test_attack_and_defense(self, derived):
        """Attack and defense come from the combat tracks."""
        assert attack_modifier(derived) == 4
        assert attack_modifier(derived, ranged=True, bonus=1) == 3
        assert defense_modifier(derived) == 4
        assert defense_modifier(derived, ranged=True) == 2

    def test_damage(self, derived):
        """Damage adds the strength modifier; criticals add 5."""
        assert damage_modifier(derived, base=2) == 5
        assert damage_modifier(derived, critical=True) == 8
        assert damage_modifier(derived, ranged=True) == 0

    def test_weapon(self, derived):
        """Weapon helpers read the derived weapon."""
        sword = derived.weapon("sword")
        assert weapon_attack_modifier(sword) == 4
        assert weapon_attack_modifier(sword, ranged=True) == 2
        assert weapon_damage_modifier(sword) == 2 + 3 + 1
        assert weapon_damage_modifier(sword, critical=True) == 11

    def test_resistance(self, derived):
        """Typed resistance includes the base; unknown types fall back to it."""
        assert resistance_modifier(derived) == 1
        assert resistance_modifier(derived, "fotia") == 4
        assert resistance_modifier(derived, "aether") == 1

    def test_saves(self, derived):
        """Saves use the derived value; unknown saves raise."""
        assert save_modifier(derived, "mya") == 3
        assert save_modifier(derived, "ant") == 2
        with pytest.raises(KeyError):
            save_modifier(derived, "luck")

    def test_ability_check(self, derived):
        """Ability checks add the total score, not the modifier."""
        assert ability_check_modifier(derived, "dyn") == 16
        with pytest.raises(KeyError):
            ability_check_modifier(derived, "luck")

    def test_grapple_and_stability(self, derived):
        """Grapple and stability come from the combat profile."""
        assert grapple_modifier(derived) == 7
        assert stability_modifier(derived) == 7
