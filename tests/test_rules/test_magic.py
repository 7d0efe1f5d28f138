"""Tests for magic degree, elements and spell scaling."""

from andragathima.rules.character.snapshot import SpellProfile
from andragathima.rules.systems.magic import (
    Element,
    SpellDuration,
    SpellIssue,
    available_elements,
    compute_magic,
    scaling_degree,
    spell_area,
    spell_duration,
    spell_range,
    spell_requirements,
)
from andragathima.rules.systems.modifiers import resolve_modifiers


def spell_item(item_id: str, **profile) -> dict:
    return {"id": item_id, "name": item_id.title(), "type": "spell", "spell": profile}


def magic_for(actor, tables, intelligence_mod: int = 1):
    return compute_magic(actor, resolve_modifiers(actor, tables), intelligence_mod, tables)


class TestElements:
    """Tests for element availability."""

    def test_chosen_element_only(self):
        """Without mastery only the chosen element is available."""
        assert available_elements(Element.FIRE, 0) == {Element.FIRE}

    def test_mastery_level_one(self):
        """Level 1 mastery adds the two non-opposite elements."""
        assert available_elements(Element.FIRE, 1) == {Element.FIRE, Element.AIR, Element.EARTH}

    def test_mastery_level_two(self):
        """Level 2 mastery opens every element, even without a chosen one."""
        assert available_elements(None, 2) == set(Element)

    def test_no_element(self):
        """No chosen element and no mastery means nothing is available."""
        assert available_elements(None, 0) == frozenset()


class TestSpellRequirements:
    """Tests for casting requirements and the effective degree."""

    def test_matching_element(self):
        """A matching spell is cast at full degree."""
        spell = SpellProfile(level=1, elements=["fire"])
        assert spell_requirements(spell, 3, 1, 1, True) == (3, ())

    def test_off_element(self):
        """Off-element spells lose two degrees."""
        spell = SpellProfile(level=1, elements=["water"])
        assert spell_requirements(spell, 4, 1, 1, False) == (2, ())

    def test_off_element_too_weak(self):
        """An off-element spell at degree 2 or lower cannot be cast."""
        spell = SpellProfile(level=1)
        assert spell_requirements(spell, 2, 1, 1, False) == (0, (SpellIssue.ELEMENTS,))

    def test_no_degree(self):
        """Without a magic degree nothing can be cast."""
        spell = SpellProfile(level=1)
        assert spell_requirements(spell, 0, 3, 3, True) == (0, (SpellIssue.NO_MAGIC_DEGREE,))

    def test_level_and_intelligence(self):
        """Both requirement failures are reported."""
        spell = SpellProfile(level=3)
        effective, issues = spell_requirements(spell, 4, 2, 1, True)
        assert effective == -1
        assert issues == (SpellIssue.MAGIC_LEVEL, SpellIssue.INTELLIGENCE)


class TestSpellScaling:
    """Tests for range, area and duration."""

    def test_scaling_degree(self):
        """Off-element scaling drops two degrees but never below 1."""
        assert scaling_degree(3, True) == 3
        assert scaling_degree(3, False) == 1
        assert scaling_degree(1, False) == 1
        assert scaling_degree(0, True) == 0

    def test_range(self):
        """Ranged spells reach 10 per degree."""
        assert spell_range(SpellProfile(range_type="ranged"), 3) == 30
        assert spell_range(SpellProfile(range_type="touch"), 3) is None
        assert spell_range(SpellProfile(range_type="ranged"), 0) is None

    def test_area(self):
        """Burst templates scale with degree."""
        assert spell_area(SpellProfile(area="burst5"), 2) == 10
        assert spell_area(SpellProfile(area="cone"), 2) is None

    def test_duration(self):
        """Durations multiply their unit amount by the degree."""
        spell = SpellProfile(duration="ten_minutes_per_degree")
        assert spell_duration(spell, 3) == SpellDuration(amount=30, unit="minutes")
        assert spell_duration(SpellProfile(duration="instant"), 3) is None


class TestComputeMagic:
    """Tests for the actor-level magic state."""

    def test_spells_derived(self, tables, make_actor):
        """Known spells are derived against the actor's degree and elements."""
        actor = make_actor(
            magic={"level": 1, "degree": 2, "element": "fire"},
            items=[
                spell_item(
                    "fireball",
                    level=1,
                    elements=["fire"],
                    range_type="ranged",
                    area="burst2",
                    duration="round_per_degree",
                ),
                spell_item("gust", level=1, elements=["air"], range_type="ranged"),
                {"id": "torch", "type": "equipment"},
            ],
        )
        magic = magic_for(actor, tables)

        assert magic.element == Element.FIRE
        assert [spell.item_id for spell in magic.spells] == ["fireball", "gust"]

        fireball, gust = magic.spells
        assert fireball.usable
        assert fireball.effective_degree == 2
        assert fireball.range == 20
        assert fireball.area == 4
        assert fireball.duration == SpellDuration(amount=2, unit="rounds")

        assert not gust.matching_element
        assert gust.issues == (SpellIssue.ELEMENTS,)
        assert gust.scaling_degree == 1
        assert gust.range == 10

    def test_mastery_opens_elements(self, tables, make_actor):
        """Elemental mastery makes neighbouring elements match."""
        actor = make_actor(
            magic={"level": 1, "degree": 2, "element": "fire"},
            skills={"stoixeiaki_kataktisi": {"has_skill": True, "level": 1}},
            items=[spell_item("gust", level=1, elements=["air"])],
        )
        (gust,) = magic_for(actor, tables).spells
        assert gust.matching_element
        assert gust.usable

    def test_status_modifies_degree(self, tables, make_actor, make_effect):
        """Magic degree and level take status changes and overrides."""
        actor = make_actor(
            magic={"level": 1, "degree": 2, "element": "water"},
            effects=[
                make_effect(("system.magic.degree", 2, 1), ("system.magic.level", 5, 4)),
            ],
        )
        magic = magic_for(actor, tables)
        assert magic.degree == 3
        assert magic.level == 4

    def test_unknown_element(self, tables, make_actor):
        """An unknown element is treated as none."""
        actor = make_actor(magic={"level": 1, "degree": 1, "element": "aether"})
        magic = magic_for(actor, tables)
        assert magic.element is None
        assert magic.available_elements == frozenset()
