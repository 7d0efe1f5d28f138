"""Tests for ability score resolution."""

from andragathima.rules.character.attributes import (
    get_modifier,
    normalize_number,
    resolve_ability,
    resolve_value,
    round_half_up,
)


class TestAbilityModifiers:
    """Tests for modifier calculation."""

    def test_modifier_average_value(self):
        """Test modifier for average ability (10-11)."""
        assert get_modifier(10) == 0
        assert get_modifier(11) == 0

    def test_modifier_high_values(self):
        """Test modifier for high abilities."""
        assert get_modifier(18) == 4
        assert get_modifier(25) == 7

    def test_modifier_low_values_floor(self):
        """Low values floor toward negative infinity."""
        assert get_modifier(6) == -2
        assert get_modifier(7) == -2
        assert get_modifier(9) == -1
        assert get_modifier(-1) == -6


class TestRounding:
    """Tests for numeric helpers."""

    def test_round_half_up(self):
        """Halves round up, including negative halves."""
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(-2.5) == -2
        assert round_half_up(2.49) == 2

    def test_normalize_number(self):
        """Whole floats become ints."""
        assert normalize_number(3.0) == 3
        assert isinstance(normalize_number(3.0), int)
        assert normalize_number(2.5) == 2.5


class TestResolveValue:
    """Tests for override resolution."""

    def test_no_overrides(self):
        """The calculated value stands."""
        assert resolve_value(12) == 12

    def test_override_wins(self):
        """An absolute override wins, even when lower."""
        assert resolve_value(12, override=5) == 5
        assert resolve_value(12, override=5, conditional_override=20) == 5

    def test_conditional_only_when_higher(self):
        """A conditional override only raises the value."""
        assert resolve_value(12, conditional_override=15) == 15
        assert resolve_value(12, conditional_override=9) == 12


class TestResolveAbility:
    """Tests for full ability resolution."""

    def test_plain_value(self):
        """Base plus racial plus additive."""
        score = resolve_ability("epi", 14, 2, 1, None, None, clamp_total=True)
        assert score.total_value == 16
        assert score.display_value == 17
        assert score.status_mod == 1
        assert score.mod == 3

    def test_override_ignores_additive(self):
        """With an override, display equals the override and the status mod shows the change."""
        score = resolve_ability("dyn", 14, 0, 4, 6, None, clamp_total=True)
        assert score.display_value == 6
        assert score.status_mod == -8
        assert score.mod == -2

    def test_conditional_override_raises(self):
        """A higher conditional override replaces the calculated value."""
        score = resolve_ability("dyn", 10, 0, 0, None, 19, clamp_total=True)
        assert score.display_value == 19
        assert score.status_mod == 9
        assert score.mod == 4

    def test_conditional_override_lower_ignored(self):
        """A lower conditional override leaves the additive result."""
        score = resolve_ability("dyn", 16, 0, 2, None, 12, clamp_total=True)
        assert score.display_value == 18
        assert score.status_mod == 2

    def test_pc_total_clamped(self):
        """Player-character totals are clamped to 6..25; display is not."""
        low = resolve_ability("dyn", 4, 0, 0, None, None, clamp_total=True)
        high = resolve_ability("dyn", 24, 4, 0, None, None, clamp_total=True)
        assert low.total_value == 6
        assert low.display_value == 4
        assert high.total_value == 25

    def test_npc_total_unclamped(self):
        """NPC totals are not clamped."""
        score = resolve_ability("dyn", 30, 0, 0, None, None, clamp_total=False)
        assert score.total_value == 30
        assert score.mod == 10
