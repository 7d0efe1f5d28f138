"""
Actor snapshot models.

The host hands the engine a plain mapping describing one character or NPC: raw
attributes, equipment slots, items with their own effects, and active
conditions. These pydantic models validate that mapping once. Every field has a
default, and null values fall back to it, so partially initialised actors (a
fresh NPC without a size, an item without an id or a weapon profile) parse
cleanly.
"""

from collections.abc import Mapping
from enum import StrEnum
from typing import Any

import structlog
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from andragathima.rules.character.attributes import DEFAULT_ABILITY_VALUE
from andragathima.rules.character.effects import EffectChange

logger = structlog.get_logger(__name__)


class SnapshotValidationError(Exception):
    """Raised when host actor data is structurally invalid."""

    pass


class ActorType(StrEnum):
    """Kinds of actor the engine derives stats for."""

    CHARACTER = "character"
    NPC = "npc"


class ItemType(StrEnum):
    """Item kinds with rules meaning."""

    WEAPON = "weapon"
    ARMOR = "armor"
    EQUIPMENT = "equipment"
    AMMUNITION = "ammunition"
    SPELL = "spell"
    SKILL = "skill"


class DamageAbility(StrEnum):
    """Ability governing a weapon's damage."""

    STRENGTH = "dyn"
    DEXTERITY = "epi"
    BEST_OF_BOTH = "dyn_epi"


class SnapshotModel(BaseModel):
    """Base for snapshot models: unknown host fields are ignored, nulls use the default."""

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, Mapping):
            return {key: value for key, value in data.items() if value is not None}
        return data


class ActiveEffect(SnapshotModel):
    """
    An active condition or item effect.

    Attributes:
        name: Display name
        status_id: Catalog status this effect instantiates, if any
        disabled: Disabled effects contribute nothing
        changes: Stat changes; empty means "use the catalog entry's changes"
    """

    name: str = Field(default="", description="Display name")
    status_id: str | None = Field(default=None, description="Status catalog id")
    disabled: bool = Field(default=False, description="Whether the effect is suppressed")
    changes: list[EffectChange] = Field(default_factory=list, description="Stat changes")


class WeaponProfile(SnapshotModel):
    """Weapon-specific item data."""

    weapon_type: str | None = Field(default=None, description="Proficiency type, e.g. 'spathi'")
    weapon_category: str | None = Field(default=None, description="Category, e.g. 'fist'")
    is_light: bool = Field(default=False, description="Light weapon")
    is_ranged: bool = Field(default=False, description="Ranged weapon")
    strength: int = Field(default=0, description="Strength requirement (0 = none)")
    ability: DamageAbility | None = Field(default=None, description="Damage ability")
    damage_coefficient: int = Field(default=0, description="Damage coefficient")
    damage_type: str | None = Field(default=None, description="Damage type key")
    range_fixed: float = Field(default=0, description="Fixed range")
    range_multiplier: float = Field(default=0, description="Range per point of strength")

    @field_validator("ability", mode="before")
    @classmethod
    def _known_ability(cls, value: Any) -> Any:
        if not value:
            return None
        try:
            return DamageAbility(value)
        except ValueError:
            logger.warning("unknown_damage_ability", ability=value)
            return None


class ArmorProfile(SnapshotModel):
    """Armor and shield item data."""

    armor_type: str | None = Field(default=None, description="light, medium, heavy or shield")
    penalty: int = Field(default=0, description="Attack/defense penalty when unproficient (<= 0)")
    defense_bonus: int = Field(default=0, description="Defense bonus of a shield")
    resistances: dict[str, int] = Field(
        default_factory=dict, description="Damage type -> resistance contribution"
    )


class SpellProfile(SnapshotModel):
    """Spell item data."""

    level: int = Field(default=1, description="Spell level")
    elements: list[str] = Field(default_factory=list, description="Elements the spell uses")
    range_type: str | None = Field(default=None, description="touch, self or ranged")
    area: str | None = Field(default=None, description="Area template, e.g. 'burst2'")
    duration: str | None = Field(default=None, description="Duration unit, e.g. 'round_per_degree'")


class SkillItemProfile(SnapshotModel):
    """Skill item data."""

    level: int = Field(default=0, ge=0, description="Skill level bought")


class Item(SnapshotModel):
    """
    An owned item.

    Attributes:
        id: Unique identifier on the actor
        type: Item kind (weapon, armor, ...)
        weight: Weight of one unit
        quantity: Stack size; zero or less counts as one unit
        equipped: Host "equipped" flag
        effects_require_equipment: When False, effects apply wherever the item is
        effects: Effects carried by the item
    """

    id: str = Field(default="", description="Item identifier")
    name: str = Field(default="", description="Display name")
    type: str = Field(default=ItemType.EQUIPMENT.value, description="Item kind")
    weight: float = Field(default=0, description="Weight per unit")
    quantity: int = Field(default=1, description="Stack size")
    equipped: bool = Field(default=False, description="Equipped flag")
    effects_require_equipment: bool = Field(
        default=True, description="Effects only apply while equipped"
    )
    effects: list[ActiveEffect] = Field(default_factory=list, description="Carried effects")
    weapon: WeaponProfile | None = Field(default=None, description="Weapon data")
    armor: ArmorProfile | None = Field(default=None, description="Armor data")
    spell: SpellProfile | None = Field(default=None, description="Spell data")
    skill: SkillItemProfile | None = Field(default=None, description="Skill data")

    @property
    def is_weapon(self) -> bool:
        return self.type == ItemType.WEAPON

    @property
    def unit_count(self) -> int:
        """Units that count toward carried weight."""
        return self.quantity if self.quantity > 0 else 1


class AbilityInput(SnapshotModel):
    value: int = Field(default=DEFAULT_ABILITY_VALUE, description="Raw ability value")


class CombatSkillInput(SnapshotModel):
    value: int = Field(default=0, description="Raw combat skill (coefficient)")


class CombatInput(SnapshotModel):
    """Raw combat data."""

    melee: CombatSkillInput = Field(default_factory=CombatSkillInput)
    ranged: CombatSkillInput = Field(default_factory=CombatSkillInput)
    initiative_bonus: int = Field(default=0, description="Flat initiative bonus")
    speed_base: float | None = Field(default=None, description="Base speed if not race/size driven")


class SaveInput(SnapshotModel):
    base: int = Field(default=0, description="Trained save bonus")


class ResistanceInput(SnapshotModel):
    base: int = Field(default=0, description="Specialized resistance bought for this type")


class SkillState(SnapshotModel):
    """An innate or trained skill on the actor."""

    has_skill: bool = Field(default=False)
    level: int = Field(default=0)
    category: str | None = Field(default=None, description="Chosen category, e.g. a weapon type")


class MagicInput(SnapshotModel):
    level: int = Field(default=0, description="Mage level")
    degree: int = Field(default=0, description="Magic degree")
    element: str | None = Field(default=None, description="Chosen element")


class EquipmentInput(SnapshotModel):
    """Equipment slots and purse."""

    slots: dict[str, str | None] = Field(
        default_factory=dict, description="Slot name -> item id (None or '' when empty)"
    )
    quick_items: list[str | None] = Field(
        default_factory=list, description="Quick-access slots, item ids"
    )
    gold: int = Field(default=0)
    silver: int = Field(default=0)
    copper: int = Field(default=0)

    def slot_item_id(self, slot: str) -> str | None:
        """Item id in a slot, or None when the slot is empty."""
        item_id = self.slots.get(slot)
        if item_id is None or not item_id.strip():
            return None
        return item_id

    @property
    def slot_item_ids(self) -> list[str]:
        return [item_id for slot in self.slots if (item_id := self.slot_item_id(slot))]

    @property
    def quick_item_ids(self) -> list[str]:
        return [item_id for item_id in self.quick_items if item_id and item_id.strip()]


class ActorSnapshot(SnapshotModel):
    """
    Raw data for one actor, as supplied by the host.

    Attributes:
        actor_type: Character or NPC
        race: Race key (characters)
        size: Size key (NPCs; defaults to medium)
        abilities: Ability key -> raw value
        combat: Melee/ranged skills, initiative bonus, base speed
        saves: Save key -> trained base
        resistances: Damage type -> specialized base
        skills: Skill id -> state
        magic: Mage level, degree and element
        equipment: Slots, quick items and coins
        items: Owned items
        effects: Active conditions on the actor itself
        experience: Experience points earned
    """

    actor_type: ActorType = Field(default=ActorType.CHARACTER)
    name: str = Field(default="")
    race: str | None = Field(default=None)
    size: str | None = Field(default=None)
    abilities: dict[str, AbilityInput] = Field(default_factory=dict)
    combat: CombatInput = Field(default_factory=CombatInput)
    saves: dict[str, SaveInput] = Field(default_factory=dict)
    resistances: dict[str, ResistanceInput] = Field(default_factory=dict)
    skills: dict[str, SkillState] = Field(default_factory=dict)
    magic: MagicInput = Field(default_factory=MagicInput)
    equipment: EquipmentInput = Field(default_factory=EquipmentInput)
    items: list[Item] = Field(default_factory=list)
    effects: list[ActiveEffect] = Field(default_factory=list)
    experience: int = Field(default=0)

    @property
    def is_npc(self) -> bool:
        return self.actor_type == ActorType.NPC

    def get_item(self, item_id: str | None) -> Item | None:
        """Look up an owned item by id."""
        if not item_id:
            return None
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def slot_item(self, slot: str) -> Item | None:
        """Item occupying an equipment slot, if it exists."""
        return self.get_item(self.equipment.slot_item_id(slot))

    def slot_occupied(self, slot: str) -> bool:
        return self.equipment.slot_item_id(slot) is not None

    def quick_items(self) -> list[Item]:
        """Items in quick-access slots, in slot order."""
        return [
            item
            for item_id in self.equipment.quick_item_ids
            if (item := self.get_item(item_id)) is not None
        ]

    def has_skill(self, skill_id: str) -> bool:
        skill = self.skills.get(skill_id)
        return bool(skill and skill.has_skill)

    def skill_level(self, skill_id: str) -> int:
        skill = self.skills.get(skill_id)
        return skill.level if skill else 0

    def ability_value(self, key: str) -> int:
        ability = self.abilities.get(key)
        return ability.value if ability else DEFAULT_ABILITY_VALUE


def parse_actor_snapshot(data: Mapping[str, Any]) -> ActorSnapshot:
    """
    Validate host actor data into an ActorSnapshot.

    Args:
        data: Mapping supplied by the host

    Returns:
        The validated snapshot

    Raises:
        SnapshotValidationError: If the data is structurally invalid
    """
    try:
        snapshot = ActorSnapshot.model_validate(data)
    except ValidationError as e:
        logger.warning("actor_snapshot_invalid", errors=e.error_count())
        raise SnapshotValidationError(f"Invalid actor snapshot: {e}") from e

    logger.debug(
        "actor_snapshot_parsed",
        actor_type=snapshot.actor_type.value,
        items=len(snapshot.items),
        effects=len(snapshot.effects),
    )
    return snapshot
