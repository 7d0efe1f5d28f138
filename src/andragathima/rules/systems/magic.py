"""
Magic: available elements, effective degree and per-spell scaling.

A caster knows their chosen element. Elemental mastery at level 1 adds the two
elements that are not opposite to it (air/earth and fire/water are opposites);
at level 2 or more every element is available. Spells outside the available
elements are cast two degrees lower.
"""

from dataclasses import dataclass
from enum import StrEnum

import structlog

from andragathima.rules.character.attributes import Number, normalize_number
from andragathima.rules.character.snapshot import ActorSnapshot, Item, ItemType, SpellProfile
from andragathima.rules.systems.modifiers import ModifierBundle
from andragathima.rules.tables.models import ConfigTables

logger = structlog.get_logger(__name__)

OFF_ELEMENT_DEGREE_PENALTY = 2
SPELL_RANGE_PER_DEGREE = 10
RANGED_SPELL = "ranged"

# Status keys for magic (routed to the "other" bucket)
DEGREE_KEY = "degree"
LEVEL_KEY = "level"


class Element(StrEnum):
    AIR = "air"
    EARTH = "earth"
    WATER = "water"
    FIRE = "fire"


OPPOSITE_ELEMENTS: dict[Element, Element] = {
    Element.AIR: Element.EARTH,
    Element.EARTH: Element.AIR,
    Element.FIRE: Element.WATER,
    Element.WATER: Element.FIRE,
}

# Area template -> metres per degree
AREA_MULTIPLIERS: dict[str, int] = {"burst2": 2, "burst5": 5}

# Duration type -> (amount per degree, unit)
DURATION_UNITS: dict[str, tuple[int, str]] = {
    "round_per_degree": (1, "rounds"),
    "minute_per_degree": (1, "minutes"),
    "five_minutes_per_degree": (5, "minutes"),
    "ten_minutes_per_degree": (10, "minutes"),
    "hour_per_degree": (1, "hours"),
}


class SpellIssue(StrEnum):
    """Reasons a spell cannot be cast at full strength."""

    NO_MAGIC_DEGREE = "no_magic_degree"
    MAGIC_LEVEL = "insufficient_magic_level"
    INTELLIGENCE = "insufficient_intelligence"
    ELEMENTS = "insufficient_elements"


@dataclass(frozen=True)
class SpellDuration:
    amount: Number
    unit: str


@dataclass(frozen=True)
class SpellDerived:
    """Derived values for one known spell."""

    item_id: str
    name: str
    level: int
    matching_element: bool
    effective_degree: int
    issues: tuple[SpellIssue, ...]
    scaling_degree: int
    range: Number | None
    area: Number | None
    duration: SpellDuration | None

    @property
    def usable(self) -> bool:
        return not self.issues


@dataclass(frozen=True)
class MagicState:
    """Resolved magic values for an actor."""

    degree: Number
    level: Number
    element: Element | None
    available_elements: frozenset[Element]
    spells: tuple[SpellDerived, ...] = ()


def parse_element(value: str | None) -> Element | None:
    if not value:
        return None
    try:
        return Element(value)
    except ValueError:
        logger.warning("unknown_magic_element", element=value)
        return None


def available_elements(element: Element | None, mastery_level: int) -> frozenset[Element]:
    """
    Elements a caster can use.

    Args:
        element: Chosen element
        mastery_level: Elemental mastery level (0 without the skill)

    Returns:
        Set of available elements

    Examples:
        >>> sorted(available_elements(Element.AIR, 1))
        [<Element.AIR: 'air'>, <Element.FIRE: 'fire'>, <Element.WATER: 'water'>]
    """
    if mastery_level >= 2:
        return frozenset(Element)

    available: set[Element] = set()
    if element is not None:
        available.add(element)
        if mastery_level >= 1:
            available.update(e for e in Element if e not in (element, OPPOSITE_ELEMENTS[element]))
    return frozenset(available)


def has_matching_element(spell: SpellProfile, available: frozenset[Element]) -> bool:
    return any(parse_element(name) in available for name in spell.elements)


def scaling_degree(degree: int, matching: bool) -> int:
    """Degree used for range, area and duration; never below 1 unless degree is 0."""
    if degree <= 0:
        return 0
    if matching:
        return degree
    return max(1, degree - OFF_ELEMENT_DEGREE_PENALTY)


def spell_requirements(
    spell: SpellProfile,
    degree: int,
    level: int,
    intelligence_mod: int,
    matching: bool,
) -> tuple[int, tuple[SpellIssue, ...]]:
    """
    Check whether a spell can be cast and at which degree.

    Returns:
        Tuple of (effective degree, issues). Effective degree is 0 without a
        magic degree and -1 when the level or intelligence requirement fails.
    """
    if degree == 0:
        return 0, (SpellIssue.NO_MAGIC_DEGREE,)

    issues: list[SpellIssue] = []
    if level < spell.level:
        issues.append(SpellIssue.MAGIC_LEVEL)
    if intelligence_mod < spell.level:
        issues.append(SpellIssue.INTELLIGENCE)
    if issues:
        return -1, tuple(issues)

    if matching:
        return degree, ()

    effective = degree - OFF_ELEMENT_DEGREE_PENALTY
    if effective <= 0:
        return effective, (SpellIssue.ELEMENTS,)
    return effective, ()


def spell_range(spell: SpellProfile, scaling: int) -> Number | None:
    if spell.range_type != RANGED_SPELL or scaling <= 0:
        return None
    return SPELL_RANGE_PER_DEGREE * scaling


def spell_area(spell: SpellProfile, scaling: int) -> Number | None:
    multiplier = AREA_MULTIPLIERS.get(spell.area or "")
    if multiplier is None or scaling <= 0:
        return None
    return multiplier * scaling


def spell_duration(spell: SpellProfile, scaling: int) -> SpellDuration | None:
    unit = DURATION_UNITS.get(spell.duration or "")
    if unit is None or scaling <= 0:
        return None
    amount, name = unit
    return SpellDuration(amount=amount * scaling, unit=name)


def derive_spell(
    item: Item,
    degree: int,
    level: int,
    intelligence_mod: int,
    available: frozenset[Element],
) -> SpellDerived:
    spell = item.spell or SpellProfile()
    matching = has_matching_element(spell, available)
    effective, issues = spell_requirements(spell, degree, level, intelligence_mod, matching)
    scaling = scaling_degree(degree, matching)
    return SpellDerived(
        item_id=item.id,
        name=item.name,
        level=spell.level,
        matching_element=matching,
        effective_degree=effective,
        issues=issues,
        scaling_degree=scaling,
        range=spell_range(spell, scaling),
        area=spell_area(spell, scaling),
        duration=spell_duration(spell, scaling),
    )


def compute_magic(
    actor: ActorSnapshot,
    modifiers: ModifierBundle,
    intelligence_mod: int,
    tables: ConfigTables,
) -> MagicState:
    """
    Resolve magic degree and level and derive every known spell.

    Args:
        actor: The actor snapshot
        modifiers: Resolved status modifiers
        intelligence_mod: Intelligence (eyf) modifier
        tables: Configuration tables

    Returns:
        MagicState
    """
    other = modifiers.other
    degree = other.resolve(DEGREE_KEY, actor.magic.degree + other.number(DEGREE_KEY))
    level = other.resolve(LEVEL_KEY, actor.magic.level + other.number(LEVEL_KEY))

    element = parse_element(actor.magic.element)
    mastery = actor.skills.get(tables.skills.elemental_mastery)
    mastery_level = mastery.level if mastery and mastery.has_skill else 0
    available = available_elements(element, mastery_level)

    whole_degree = int(degree)
    whole_level = int(level)
    spells = tuple(
        derive_spell(item, whole_degree, whole_level, intelligence_mod, available)
        for item in actor.items
        if item.type == ItemType.SPELL
    )

    return MagicState(
        degree=normalize_number(degree),
        level=normalize_number(level),
        element=element,
        available_elements=available,
        spells=spells,
    )


def default_magic() -> MagicState:
    return MagicState(degree=0, level=0, element=None, available_elements=frozenset())
