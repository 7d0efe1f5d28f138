"""
Carrying capacity and encumbrance.

Strength indexes a literal capacity table (strength 0..50) whose thresholds are
scaled by the actor's size. Total carried weight (items and coins) against
those thresholds gives the encumbrance tier and its penalty bundle.
"""

from dataclasses import dataclass

from andragathima.rules.character.attributes import Number, round_half_up
from andragathima.rules.character.snapshot import ActorSnapshot, EquipmentInput
from andragathima.rules.tables.models import (
    CARRYING_CAPACITY_MAX_STRENGTH,
    CarryingCapacity,
    ConfigTables,
    EncumbrancePenalties,
    EncumbranceTier,
)


@dataclass(frozen=True)
class CoinWeights:
    """Weight of each coin stack, rounded to grams."""

    gold: float
    silver: float
    copper: float


@dataclass(frozen=True)
class EncumbranceState:
    """Load thresholds, carried weight and the resulting tier."""

    capacity: CarryingCapacity
    total_weight: float  # rounded to one decimal for display
    raw_weight: float
    coins: CoinWeights
    tier: EncumbranceTier
    penalties: EncumbrancePenalties

    @property
    def has_penalty(self) -> bool:
        return self.tier != EncumbranceTier.LIGHT


def carrying_capacity(
    strength: Number, size_multiplier: float, tables: ConfigTables
) -> CarryingCapacity:
    """
    Look up load thresholds for a strength score.

    Args:
        strength: Strength score (base + racial), rounded to the nearest entry
        size_multiplier: Size-based carrying capacity multiplier
        tables: Configuration tables

    Returns:
        Thresholds scaled by the size multiplier

    Examples:
        Strength 18, medium size: light 50, heavy 100, max 150.
    """
    index = max(0, min(CARRYING_CAPACITY_MAX_STRENGTH, round_half_up(strength)))
    return tables.carrying_capacity[index].scaled(size_multiplier)


def coin_weight(equipment: EquipmentInput, tables: ConfigTables) -> tuple[float, CoinWeights]:
    """Total (unrounded) coin weight and the per-coin display weights."""
    weights = tables.coin_weights
    gold = equipment.gold * weights.get("gold", 0)
    silver = equipment.silver * weights.get("silver", 0)
    copper = equipment.copper * weights.get("copper", 0)
    display = CoinWeights(
        gold=round_half_up(gold * 1000) / 1000,
        silver=round_half_up(silver * 1000) / 1000,
        copper=round_half_up(copper * 1000) / 1000,
    )
    return gold + silver + copper, display


def item_weight(actor: ActorSnapshot) -> float:
    """Weight of every owned item, stacks counted per unit."""
    return sum(item.weight * item.unit_count for item in actor.items)


def encumbrance_tier(weight: float, capacity: CarryingCapacity) -> EncumbranceTier:
    """Classify a carried weight against load thresholds (inclusive upper bounds)."""
    if weight <= capacity.light:
        return EncumbranceTier.LIGHT
    if weight <= capacity.heavy:
        return EncumbranceTier.HEAVY
    if weight <= capacity.max:
        return EncumbranceTier.MAXIMUM
    return EncumbranceTier.OVERLOADED


def compute_encumbrance(
    actor: ActorSnapshot,
    tables: ConfigTables,
    strength: Number,
    size_multiplier: float,
) -> EncumbranceState:
    """
    Compute the full encumbrance state of an actor.

    Args:
        actor: The actor snapshot
        tables: Configuration tables
        strength: Strength score used for capacity (base + racial, before status)
        size_multiplier: Size carrying-capacity multiplier

    Returns:
        EncumbranceState
    """
    capacity = carrying_capacity(strength, size_multiplier, tables)
    coins_total, coins = coin_weight(actor.equipment, tables)
    raw_weight = item_weight(actor) + coins_total
    tier = encumbrance_tier(raw_weight, capacity)

    return EncumbranceState(
        capacity=capacity,
        total_weight=round_half_up(raw_weight * 10) / 10,
        raw_weight=raw_weight,
        coins=coins,
        tier=tier,
        penalties=tables.tier_penalties(tier),
    )


def default_encumbrance(tables: ConfigTables) -> EncumbranceState:
    """Unencumbered state, used when the load cannot be computed."""
    capacity = tables.carrying_capacity[0]
    return EncumbranceState(
        capacity=capacity,
        total_weight=0.0,
        raw_weight=0.0,
        coins=CoinWeights(gold=0.0, silver=0.0, copper=0.0),
        tier=EncumbranceTier.LIGHT,
        penalties=tables.tier_penalties(EncumbranceTier.LIGHT),
    )
