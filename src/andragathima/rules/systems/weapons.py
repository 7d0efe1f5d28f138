"""
Per-weapon derived values.

A weapon's attack and damage start from the actor's combat profile and add the
weapon's own contributions: proficiency and strength penalties, the ranged
weapon penalty (melee channel only), the two-handed damage bonus, weapon
specialization, off-hand and shield penalties when the weapon sits in the
shield slot, and bonuses carried by the weapon's own effects.
"""

from dataclasses import dataclass, field

from andragathima.rules.character.attributes import Number, normalize_number
from andragathima.rules.character.effects import ChangeMode, TargetCategory
from andragathima.rules.character.snapshot import (
    ActorSnapshot,
    DamageAbility,
    Item,
    WeaponProfile,
)
from andragathima.rules.systems.modifiers import iter_item_effect_changes
from andragathima.rules.tables.models import ConfigTables

WEAPON_DAMAGE_BASE_KEY = "base"


@dataclass(frozen=True)
class WeaponContext:
    """Actor-derived values a weapon calculation reads."""

    display_strength: Number
    strength_mod: int
    dexterity_mod: int
    melee_attack: Number
    ranged_attack: Number
    shield_slot_empty: bool
    ignore_dexterity_in_damage: bool = False
    weapon_damage_status: Number = 0
    has_armor_penalty: bool = False
    has_shield_penalty: bool = False
    has_encumbrance_penalty: bool = False


@dataclass(frozen=True)
class WeaponEffectBonuses:
    """Bonuses declared by a weapon's own effects."""

    melee_attack: Number = 0
    ranged_attack: Number = 0
    damage: Number = 0
    extra_damage: tuple[tuple[str, Number], ...] = ()


@dataclass(frozen=True)
class WeaponDerived:
    """Derived values for one wielded weapon."""

    item_id: str
    name: str
    weapon_type: str | None
    is_ranged: bool
    off_hand: bool
    proficiency_penalty: int
    strength_penalty: int
    ranged_weapon_penalty: int
    two_handed_damage_bonus: int
    specialization_bonus: int
    off_hand_penalty: int
    shield_proficiency_penalty: int
    melee_attack_with_penalty: Number
    ranged_attack_with_penalty: Number
    weapon_damage: Number
    damage_type: str | None
    extra_damage: tuple[tuple[str, Number], ...] = field(default_factory=tuple)
    range: Number = 0
    has_range: bool = False
    has_penalty: bool = False

    @property
    def attack(self) -> Number:
        """Attack on the channel the weapon is used with."""
        return self.ranged_attack_with_penalty if self.is_ranged else self.melee_attack_with_penalty

    @property
    def shield_penalty(self) -> int:
        return self.off_hand_penalty + self.shield_proficiency_penalty


def proficiency_penalty(weapon_type: str | None, actor: ActorSnapshot, tables: ConfigTables) -> int:
    """
    Penalty for using a weapon type without the required skill.

    Args:
        weapon_type: Proficiency type of the weapon
        actor: The actor snapshot
        tables: Configuration tables

    Returns:
        0 or the configured proficiency penalty
    """
    if not weapon_type:
        return 0

    table = tables.weapon_proficiency
    if weapon_type in table.no_penalty:
        return 0
    if weapon_type in table.always_penalized:
        return table.penalty

    role = table.skill_flag.get(weapon_type)
    if role is not None:
        return 0 if actor.has_skill(tables.skills.by_role(role)) else table.penalty

    required = table.skill_level.get(weapon_type)
    if required is not None:
        level = actor.skill_level(tables.skills.weapons)
        return 0 if level >= required else table.penalty

    return 0


def strength_penalty(
    requirement: int, display_strength: Number, shield_slot_empty: bool, tables: ConfigTables
) -> int:
    """Penalty when effective strength is below the weapon's requirement."""
    if requirement <= 0:
        return 0
    effective = display_strength
    if shield_slot_empty:
        effective += tables.weapons.free_hand_strength_bonus
    return tables.weapons.strength_penalty if effective < requirement else 0


def ranged_weapon_penalty(is_ranged: bool, tables: ConfigTables) -> int:
    """Melee-only penalty for attacking in melee with a ranged weapon."""
    return tables.weapons.ranged_weapon_melee_penalty if is_ranged else 0


def two_handed_damage_bonus(
    profile: WeaponProfile, shield_slot_empty: bool, tables: ConfigTables
) -> int:
    """Damage bonus for wielding a heavy melee weapon with the off hand free."""
    if profile.is_light or profile.is_ranged or not shield_slot_empty:
        return 0
    return tables.weapons.two_handed_damage_bonus


def specialization_bonus(weapon_type: str | None, actor: ActorSnapshot, tables: ConfigTables) -> int:
    """Bonus to both attack channels for a specialized weapon type."""
    skill = actor.skills.get(tables.skills.weapon_specialization)
    if not weapon_type or skill is None or not skill.has_skill or not skill.category:
        return 0
    return tables.weapons.specialization_bonus if skill.category == weapon_type else 0


def shield_proficiency_penalty(
    profile: WeaponProfile, actor: ActorSnapshot, tables: ConfigTables
) -> int:
    """Penalty for a shield used without the shields skill."""
    shields = tables.shields
    if profile.weapon_type != shields.weapon_type or actor.has_skill(tables.skills.shields):
        return 0
    return shields.light_shield_penalty if profile.is_light else shields.heavy_shield_penalty


def off_hand_penalty(actor: ActorSnapshot, tables: ConfigTables) -> int:
    """Penalty for attacking with the off hand, waived by ambidexterity."""
    if actor.has_skill(tables.skills.ambidexterity):
        return 0
    return tables.shields.off_hand_penalty


def damage_ability_modifier(
    ability: DamageAbility | None,
    strength_mod: int,
    dexterity_mod: int,
    ignore_dexterity: bool = False,
) -> int:
    """Ability modifier added to weapon damage."""
    dexterity = 0 if ignore_dexterity else dexterity_mod
    if ability == DamageAbility.STRENGTH:
        return strength_mod
    if ability == DamageAbility.DEXTERITY:
        return dexterity
    if ability == DamageAbility.BEST_OF_BOTH:
        return max(strength_mod, dexterity)
    return 0


def weapon_effect_bonuses(item: Item) -> WeaponEffectBonuses:
    """
    Collect attack and damage bonuses declared by a weapon's own effects.

    Only additive changes count: ``combat.meleeAttack.value``,
    ``combat.rangedAttack.value`` and ``damage.base`` add to this weapon;
    other positive ``damage.<type>`` changes become extra damage entries.
    """
    melee: Number = 0
    ranged: Number = 0
    damage: Number = 0
    extra: list[tuple[str, Number]] = []

    for change in iter_item_effect_changes(item):
        target = change.target
        value = change.value
        if target is None or change.mode != ChangeMode.ADD:
            continue
        if value is None or isinstance(value, bool):
            continue

        if target.category == TargetCategory.COMBAT and target.field == "value":
            if target.key == "meleeAttack":
                melee += value
            elif target.key == "rangedAttack":
                ranged += value
        elif target.category == TargetCategory.DAMAGE:
            if target.key == WEAPON_DAMAGE_BASE_KEY:
                damage += value
            elif value > 0:
                extra.append((target.key, normalize_number(value)))

    return WeaponEffectBonuses(
        melee_attack=normalize_number(melee),
        ranged_attack=normalize_number(ranged),
        damage=normalize_number(damage),
        extra_damage=tuple(extra),
    )


def weapon_range(profile: WeaponProfile, display_strength: Number) -> Number:
    """Fixed range when set, else strength times the range multiplier, else 0."""
    if profile.range_fixed > 0:
        return normalize_number(profile.range_fixed)
    if profile.range_multiplier > 0:
        return normalize_number(display_strength * profile.range_multiplier)
    return 0


def compute_weapon_derived(
    weapon: Item,
    actor: ActorSnapshot,
    context: WeaponContext,
    tables: ConfigTables,
    *,
    off_hand: bool = False,
) -> WeaponDerived:
    """
    Compute derived values for a weapon.

    Args:
        weapon: The weapon item
        actor: The wielding actor
        context: Actor-derived values (attack totals, ability modifiers, ...)
        tables: Configuration tables
        off_hand: True when the weapon occupies the shield slot

    Returns:
        WeaponDerived for the weapon
    """
    profile = weapon.weapon or WeaponProfile()

    proficiency = proficiency_penalty(profile.weapon_type, actor, tables)
    strength = strength_penalty(
        profile.strength, context.display_strength, context.shield_slot_empty, tables
    )
    ranged_penalty = ranged_weapon_penalty(profile.is_ranged, tables)
    specialization = specialization_bonus(profile.weapon_type, actor, tables)

    if off_hand:
        hand_penalty = off_hand_penalty(actor, tables)
        shield_proficiency = shield_proficiency_penalty(profile, actor, tables)
        two_handed = 0
    else:
        hand_penalty = 0
        shield_proficiency = 0
        two_handed = two_handed_damage_bonus(profile, context.shield_slot_empty, tables)

    bonuses = weapon_effect_bonuses(weapon)
    shared = proficiency + strength + hand_penalty + shield_proficiency + specialization

    melee_attack = context.melee_attack + shared + ranged_penalty + bonuses.melee_attack
    ranged_attack = context.ranged_attack + shared + bonuses.ranged_attack

    ability_mod = damage_ability_modifier(
        profile.ability,
        context.strength_mod,
        context.dexterity_mod,
        context.ignore_dexterity_in_damage,
    )
    damage = (
        profile.damage_coefficient
        + ability_mod
        + two_handed
        + bonuses.damage
        + context.weapon_damage_status
    )

    if off_hand:
        has_penalty = (
            context.has_armor_penalty
            or proficiency < 0
            or strength < 0
            or shield_proficiency < 0
            or context.has_encumbrance_penalty
        )
    else:
        has_penalty = (
            context.has_armor_penalty
            or proficiency < 0
            or strength < 0
            or context.has_shield_penalty
            or context.has_encumbrance_penalty
        )

    return WeaponDerived(
        item_id=weapon.id,
        name=weapon.name,
        weapon_type=profile.weapon_type,
        is_ranged=profile.is_ranged,
        off_hand=off_hand,
        proficiency_penalty=proficiency,
        strength_penalty=strength,
        ranged_weapon_penalty=ranged_penalty,
        two_handed_damage_bonus=two_handed,
        specialization_bonus=specialization,
        off_hand_penalty=hand_penalty,
        shield_proficiency_penalty=shield_proficiency,
        melee_attack_with_penalty=normalize_number(melee_attack),
        ranged_attack_with_penalty=normalize_number(ranged_attack),
        weapon_damage=normalize_number(damage),
        damage_type=profile.damage_type,
        extra_damage=bonuses.extra_damage,
        range=weapon_range(profile, context.display_strength),
        has_range=profile.range_fixed > 0 or profile.range_multiplier > 0,
        has_penalty=has_penalty,
    )
