"""Experience bookkeeping for player characters.

Spent experience is recomputed from the character's current purchases:

- race cost
- every ability point above 10 (points below 10 refund)
- 2 per point of melee and ranged skill
- 1 per point of trained save
- 1 per skill level
- mage level x magic degree, plus 1 per known spell when both are positive
- skill items by level
"""

from collections.abc import Mapping
from dataclasses import dataclass, field

import structlog

from andragathima.rules.character.attributes import DEFAULT_ABILITY_VALUE, AbilityScore
from andragathima.rules.character.snapshot import ActorSnapshot, ItemType
from andragathima.rules.tables.models import ConfigTables

logger = structlog.get_logger(__name__)

COMBAT_SKILL_COST = 2


@dataclass(frozen=True)
class ExperienceState:
    """Earned, spent and remaining experience, with the spent total broken down."""

    value: int
    spent: int
    remaining: int
    breakdown: dict[str, int] = field(default_factory=dict)


def race_cost(actor: ActorSnapshot, tables: ConfigTables) -> int:
    race = tables.races.get(actor.race or "")
    return race.experience_cost if race else 0


def ability_cost(abilities: Mapping[str, AbilityScore]) -> int:
    return sum(score.total_value - DEFAULT_ABILITY_VALUE for score in abilities.values())


def combat_cost(actor: ActorSnapshot) -> int:
    melee = max(0, actor.combat.melee.value)
    ranged = max(0, actor.combat.ranged.value)
    return COMBAT_SKILL_COST * (melee + ranged)


def save_cost(actor: ActorSnapshot) -> int:
    return sum(max(0, save.base) for save in actor.saves.values())


def skill_cost(actor: ActorSnapshot) -> int:
    return sum(
        skill.level for skill in actor.skills.values() if skill.has_skill and skill.level > 0
    )


def magic_cost(actor: ActorSnapshot) -> int:
    """Mage level x degree, plus one per spell when both are positive."""
    level = actor.magic.level
    degree = actor.magic.degree
    cost = level * degree
    if level > 0 and degree > 0:
        cost += sum(1 for item in actor.items if item.type == ItemType.SPELL)
    return cost


def skill_item_cost(actor: ActorSnapshot, tables: ConfigTables) -> int:
    """Skill items by level; levels past the cost table cost its last entry."""
    costs = tables.skill_item_costs
    if not costs:
        return 0
    total = 0
    for item in actor.items:
        if item.type != ItemType.SKILL:
            continue
        level = item.skill.level if item.skill else 0
        if level >= len(costs):
            logger.warning(
                "skill_item_level_beyond_table",
                item_id=item.id,
                level=level,
                max_level=len(costs) - 1,
            )
            level = len(costs) - 1
        total += costs[level]
    return total


def compute_experience(
    actor: ActorSnapshot,
    abilities: Mapping[str, AbilityScore],
    tables: ConfigTables,
) -> ExperienceState:
    """
    Compute spent and remaining experience for a player character.

    Args:
        actor: The character snapshot
        abilities: Resolved ability scores (their total values are charged)
        tables: Configuration tables

    Returns:
        ExperienceState
    """
    breakdown = {
        "race": race_cost(actor, tables),
        "abilities": ability_cost(abilities),
        "combat": combat_cost(actor),
        "saves": save_cost(actor),
        "skills": skill_cost(actor),
        "magic": magic_cost(actor),
        "skill_items": skill_item_cost(actor, tables),
    }
    spent = sum(breakdown.values())
    remaining = actor.experience - spent

    if remaining < 0:
        logger.debug("experience_overspent", actor=actor.name, spent=spent, earned=actor.experience)

    return ExperienceState(
        value=actor.experience,
        spent=spent,
        remaining=remaining,
        breakdown=breakdown,
    )
