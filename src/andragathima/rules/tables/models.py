"""
Configuration table models.

Static game data (abilities, races, sizes, carrying capacity, encumbrance tiers,
equipment rules, the status-effect catalog) validated with pydantic. Instances
are read-only inputs to the rules.
"""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from andragathima.rules.character.effects import EffectChange

CARRYING_CAPACITY_MAX_STRENGTH = 50


class EncumbranceTier(StrEnum):
    """Load tiers, lightest first."""

    LIGHT = "light"
    HEAVY = "heavy"
    MAXIMUM = "maximum"
    OVERLOADED = "overloaded"


class TableModel(BaseModel):
    """Base for table models: immutable, unknown keys rejected."""

    model_config = ConfigDict(frozen=True, extra="forbid")


class SaveDefinition(TableModel):
    name: str = Field(..., description="Display name")
    ability: str = Field(..., description="Governing ability key")
    encumbrance_penalty: bool = Field(default=False, description="Takes encumbrance saves penalty")


class RaceDefinition(TableModel):
    """
    A playable race.

    Attributes:
        name: Display name
        abilities: Ability key -> racial modifier
        speed: Base speed
        size: Size key used for size modifiers
        experience_cost: Experience spent on picking the race
        features: Feature keys (display only)
        skills: Racial skill id -> level granted
    """

    name: str = Field(..., description="Display name")
    abilities: dict[str, int] = Field(default_factory=dict, description="Racial modifiers")
    speed: float = Field(default=9, description="Base speed")
    size: str = Field(default="medium", description="Size key")
    experience_cost: int = Field(default=0, ge=0, description="Experience cost")
    features: list[str] = Field(default_factory=list, description="Feature keys")
    skills: dict[str, int] = Field(default_factory=dict, description="Racial skills")


class SizeModifiers(TableModel):
    """Combat modifiers for one size category."""

    antochi: int = Field(default=0, description="Base resistance modifier")
    ranged_attack: int = Field(default=0, description="Ranged attack modifier")
    ranged_defense: int = Field(default=0, description="Ranged defense modifier")
    pali: int = Field(default=0, description="Grapple modifier")
    eystatheia: int = Field(default=0, description="Stability modifier")
    carry_capacity: float = Field(default=1, gt=0, description="Carrying capacity multiplier")
    speed: float = Field(default=9, description="Base speed for NPCs of this size")


class CarryingCapacity(TableModel):
    """Load thresholds in kilograms."""

    light: float = Field(..., ge=0)
    heavy: float = Field(..., ge=0)
    max: float = Field(..., ge=0)

    @model_validator(mode="before")
    @classmethod
    def _from_triple(cls, data: Any) -> Any:
        if isinstance(data, list | tuple):
            if len(data) != 3:
                raise ValueError("carrying capacity rows need [light, heavy, max]")
            return {"light": data[0], "heavy": data[1], "max": data[2]}
        return data

    @model_validator(mode="after")
    def _ordered(self) -> "CarryingCapacity":
        if not self.light <= self.heavy <= self.max:
            raise ValueError("carrying capacity must satisfy light <= heavy <= max")
        return self

    def scaled(self, multiplier: float) -> "CarryingCapacity":
        return CarryingCapacity(
            light=self.light * multiplier,
            heavy=self.heavy * multiplier,
            max=self.max * multiplier,
        )


class EncumbrancePenalties(TableModel):
    """Penalty bundle for one encumbrance tier."""

    attack_penalty: int = Field(default=0, le=0)
    defense_penalty: int = Field(default=0, le=0)
    saves_penalty: int = Field(default=0, le=0)
    speed_multiplier: float = Field(default=1, ge=0, le=1)
    speed_note: str = Field(default="", description="Movement note key")


class WeaponProficiencyTable(TableModel):
    """Weapon type -> requirement for using it without penalty."""

    penalty: int = Field(default=-2, le=0)
    no_penalty: list[str] = Field(default_factory=list)
    always_penalized: list[str] = Field(default_factory=list)
    skill_flag: dict[str, str] = Field(
        default_factory=dict, description="Weapon type -> skill role that removes the penalty"
    )
    skill_level: dict[str, int] = Field(
        default_factory=dict, description="Weapon type -> minimum weapons-skill level"
    )


class ShieldRules(TableModel):
    """Off-hand slot bonuses and penalties."""

    weapon_type: str = Field(default="aspida_varia", description="Weapon type of shields")
    fist_category: str = Field(default="fist", description="Weapon category of fist weapons")
    light_shield_bonus: tuple[int, int] = Field(default=(2, 2), description="[melee, ranged]")
    heavy_shield_bonus: tuple[int, int] = Field(default=(2, 4), description="[melee, ranged]")
    other_weapon_bonus: tuple[int, int] = Field(default=(1, 0), description="[melee, ranged]")
    light_shield_penalty: int = Field(default=-1, le=0)
    heavy_shield_penalty: int = Field(default=-2, le=0)
    off_hand_penalty: int = Field(default=-2, le=0)


class WeaponRules(TableModel):
    strength_penalty: int = Field(default=-2, le=0)
    free_hand_strength_bonus: int = Field(default=10)
    two_handed_damage_bonus: int = Field(default=1)
    ranged_weapon_melee_penalty: int = Field(default=-2, le=0)
    specialization_bonus: int = Field(default=2)


class SkillIds(TableModel):
    """Skill roles used by the rules, mapped to actor skill ids."""

    stability: str
    initiative: str
    fleet_footed: str
    armor: str
    weapons: str
    shields: str
    ambidexterity: str
    never_unarmed: str
    projectile_deflection: str
    weapon_specialization: str
    elemental_mastery: str

    def by_role(self, role: str) -> str:
        """Skill id for a role name, as used by the proficiency table."""
        return getattr(self, role)


class SkillBonuses(TableModel):
    stability: int = Field(default=4)
    initiative: int = Field(default=4)
    fleet_footed: int = Field(default=3)


class SlotNames(TableModel):
    armor: str = Field(default="torso")
    shield: str = Field(default="shield")


class TotalDefenseRule(TableModel):
    melee_bonus: int = Field(default=4)
    ranged_bonus: int = Field(default=4)


class StatusEffectDefinition(TableModel):
    """
    A catalog condition.

    Attributes:
        id: Status id referenced by active effects
        name: Display name
        icon: Icon path relative to the host's asset directory
        changes: Declared stat changes
    """

    id: str = Field(..., description="Status id")
    name: str = Field(..., description="Display name")
    icon: str = Field(default="", description="Icon path")
    changes: list[EffectChange] = Field(default_factory=list, description="Stat changes")

    @field_validator("changes")
    @classmethod
    def _changes_resolvable(cls, changes: list[EffectChange]) -> list[EffectChange]:
        for change in changes:
            if not change.is_applicable:
                raise ValueError(f"unusable change {change.key!r}")
        return changes


class ConfigTables(TableModel):
    """All configuration tables consumed by the rules."""

    abilities: dict[str, str] = Field(..., description="Ability key -> name")
    saves: dict[str, SaveDefinition] = Field(..., description="Save key -> definition")
    damage_types: dict[str, str] = Field(..., description="Damage type key -> name")
    races: dict[str, RaceDefinition] = Field(..., description="Race key -> definition")
    sizes: dict[str, SizeModifiers] = Field(..., description="Size key -> modifiers")
    carrying_capacity: dict[int, CarryingCapacity] = Field(
        ..., description="Strength -> load thresholds"
    )
    encumbrance_tiers: dict[EncumbranceTier, EncumbrancePenalties] = Field(
        ..., description="Tier -> penalties"
    )
    coin_weights: dict[str, float] = Field(..., description="Coin -> weight per coin")
    armor_proficiency: dict[str, int] = Field(..., description="Armor type -> armor-skill level")
    weapon_proficiency: WeaponProficiencyTable
    shields: ShieldRules
    weapons: WeaponRules
    skills: SkillIds
    skill_bonuses: SkillBonuses
    skill_item_costs: list[int] = Field(..., description="Skill item level -> experience cost")
    slots: SlotNames = Field(default_factory=SlotNames)
    total_defense: TotalDefenseRule = Field(default_factory=TotalDefenseRule)
    status_effects: dict[str, StatusEffectDefinition] = Field(
        ..., description="Status id -> definition"
    )

    @field_validator("status_effects", mode="before")
    @classmethod
    def _index_status_effects(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        indexed: dict[str, Any] = {}
        for entry in value:
            status_id = entry.get("id") if isinstance(entry, dict) else None
            if status_id in indexed:
                raise ValueError(f"duplicate status effect id {status_id!r}")
            indexed[status_id] = entry
        return indexed

    @model_validator(mode="after")
    def _cross_references(self) -> "ConfigTables":
        for save_key, save in self.saves.items():
            if save.ability not in self.abilities:
                raise ValueError(f"save {save_key!r} uses unknown ability {save.ability!r}")

        for race_key, race in self.races.items():
            if race.size not in self.sizes:
                raise ValueError(f"race {race_key!r} uses unknown size {race.size!r}")
            unknown = set(race.abilities) - set(self.abilities)
            if unknown:
                raise ValueError(f"race {race_key!r} modifies unknown abilities {sorted(unknown)}")

        if "medium" not in self.sizes:
            raise ValueError("sizes must define 'medium'")

        expected = set(range(CARRYING_CAPACITY_MAX_STRENGTH + 1))
        if set(self.carrying_capacity) != expected:
            raise ValueError(
                f"carrying capacity must cover strength 0..{CARRYING_CAPACITY_MAX_STRENGTH}"
            )

        missing_tiers = set(EncumbranceTier) - set(self.encumbrance_tiers)
        if missing_tiers:
            raise ValueError(f"missing encumbrance tiers {sorted(missing_tiers)}")
        return self

    def size_modifiers(self, size: str | None) -> SizeModifiers:
        """Modifiers for a size, falling back to medium."""
        return self.sizes.get(size or "medium") or self.sizes["medium"]

    def tier_penalties(self, tier: EncumbranceTier) -> EncumbrancePenalties:
        return self.encumbrance_tiers[tier]
