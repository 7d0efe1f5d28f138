"""
Derived statistics.

:func:`compute_derived` turns one actor snapshot and the configuration tables
into a :class:`DerivedSnapshot`. Characters and NPCs share the engine; NPCs
take no racial modifiers, use their own size instead of their race's, and keep
no experience ledger.

Each stat group is computed on its own. A group that fails logs the error and
falls back to neutral values so the rest of the snapshot is still produced.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TypeVar

import structlog

from andragathima.rules.character.attributes import (
    DEFAULT_ABILITY_VALUE,
    AbilityScore,
    Number,
    get_modifier,
    normalize_number,
    resolve_ability,
    round_half_up,
)
from andragathima.rules.character.snapshot import ActorSnapshot, Item, ItemType, WeaponProfile
from andragathima.rules.systems.encumbrance import (
    EncumbranceState,
    compute_encumbrance,
    default_encumbrance,
)
from andragathima.rules.systems.experience import ExperienceState, compute_experience
from andragathima.rules.systems.magic import MagicState, compute_magic, default_magic
from andragathima.rules.systems.modifiers import (
    ModifierBundle,
    ModifierChannels,
    StatusModifierCache,
    resolve_modifiers,
)
from andragathima.rules.systems.weapons import (
    WeaponContext,
    WeaponDerived,
    compute_weapon_derived,
    shield_proficiency_penalty,
)
from andragathima.rules.tables.loader import get_default_tables
from andragathima.rules.tables.models import ConfigTables, EncumbrancePenalties, SizeModifiers

logger = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_SIZE = "medium"
DEFAULT_SPEED = 9
SHIELD_ARMOR_TYPE = "shield"
CANNOT_RUN_NOTE = "cannot_run"

STRENGTH = "dyn"
DEXTERITY = "epi"
CONSTITUTION = "kra"
INTELLIGENCE = "eyf"


@dataclass(frozen=True)
class ActorTraits:
    """Race- or size-driven inputs: racial modifiers, size row and base speed."""

    racial_mods: dict[str, int]
    size: str
    size_modifiers: SizeModifiers
    base_speed: float


@dataclass(frozen=True)
class ArmorData:
    """Worn armor in the armor slot and the penalty it imposes."""

    armor_type: str | None = None
    penalty: int = 0
    resistances: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class CombatTrack:
    """Melee or ranged values."""

    value: int  # raw skill
    display_value: Number
    status_mod: Number
    attack: Number
    defense: Number
    damage: Number


@dataclass(frozen=True)
class SpeedState:
    value: int
    base: Number
    encumbrance_note: str = ""
    can_run_note: str = ""
    status_mod: Number = 0


@dataclass(frozen=True)
class CombatProfile:
    """Combat values of an actor."""

    melee: CombatTrack
    ranged: CombatTrack
    pali: Number
    eystatheia: Number
    initiative: Number
    initiative_status_mod: Number
    speed: SpeedState
    has_armor_penalty: bool = False
    has_shield_penalty: bool = False
    ignore_dexterity_in_damage: bool = False


@dataclass(frozen=True)
class ResistanceValue:
    """Specialized resistance for one damage type, layered on the base resistance."""

    key: str
    base: int
    armor: int
    status_mod: Number
    specialized: Number
    total: Number


@dataclass(frozen=True)
class Resistances:
    base: Number
    by_type: dict[str, ResistanceValue] = field(default_factory=dict)


@dataclass(frozen=True)
class SaveValue:
    key: str
    base: int
    ability_mod: int
    encumbrance_penalty: int
    status_mod: Number
    value: Number


@dataclass(frozen=True)
class DerivedSnapshot:
    """
    Every derived value of one actor.

    Attributes:
        abilities: Ability key -> resolved score
        modifiers: The resolved status modifiers
        encumbrance: Capacity, carried weight and tier
        combat: Attack, defense, grapple, stability, initiative and speed
        resistances: Base and per-damage-type resistances
        saves: Save key -> value
        weapons: Derived values for quick-slot weapons and the off-hand weapon
        magic: Magic degree, level, elements and spells
        experience: Experience ledger (None for NPCs)
        power_level: Rough power estimate
    """

    abilities: dict[str, AbilityScore]
    modifiers: ModifierBundle
    encumbrance: EncumbranceState
    combat: CombatProfile
    resistances: Resistances
    saves: dict[str, SaveValue]
    weapons: tuple[WeaponDerived, ...]
    magic: MagicState
    experience: ExperienceState | None
    power_level: int

    def weapon(self, item_id: str, off_hand: bool = False) -> WeaponDerived | None:
        for weapon in self.weapons:
            if weapon.item_id == item_id and weapon.off_hand == off_hand:
                return weapon
        return None


def _ability_mod(abilities: Mapping[str, AbilityScore], key: str) -> int:
    score = abilities.get(key)
    return score.mod if score else 0


def _display_value(abilities: Mapping[str, AbilityScore], key: str) -> Number:
    score = abilities.get(key)
    return score.display_value if score else DEFAULT_ABILITY_VALUE


def _resolved_status_mod(
    channels: ModifierChannels, key: str, raw: Number, calculated: Number, resolved: Number
) -> Number:
    """Status change to display: the effective change when an override won, else the additive."""
    if channels.override_for(key) is not None or resolved != calculated:
        return normalize_number(resolved - raw)
    return channels.number(key)


def actor_traits(actor: ActorSnapshot, tables: ConfigTables) -> ActorTraits:
    """
    Resolve racial modifiers, size and base speed.

    Characters take both from their race; NPCs have no racial modifiers and use
    their own size (medium when unset).
    """
    if actor.is_npc:
        size = actor.size or DEFAULT_SIZE
        if size not in tables.sizes:
            logger.warning("unknown_size", size=size, actor=actor.name)
            size = DEFAULT_SIZE
        size_modifiers = tables.size_modifiers(size)
        return ActorTraits(
            racial_mods={},
            size=size,
            size_modifiers=size_modifiers,
            base_speed=size_modifiers.speed or actor.combat.speed_base or DEFAULT_SPEED,
        )

    race = tables.races.get(actor.race) if actor.race else None
    if actor.race and race is None:
        logger.warning("unknown_race", race=actor.race, actor=actor.name)

    if race is None:
        return ActorTraits(
            racial_mods={},
            size=DEFAULT_SIZE,
            size_modifiers=tables.size_modifiers(DEFAULT_SIZE),
            base_speed=actor.combat.speed_base or DEFAULT_SPEED,
        )

    return ActorTraits(
        racial_mods=dict(race.abilities),
        size=race.size,
        size_modifiers=tables.size_modifiers(race.size),
        base_speed=race.speed or actor.combat.speed_base or DEFAULT_SPEED,
    )


def default_traits(tables: ConfigTables) -> ActorTraits:
    return ActorTraits(
        racial_mods={},
        size=DEFAULT_SIZE,
        size_modifiers=tables.size_modifiers(DEFAULT_SIZE),
        base_speed=DEFAULT_SPEED,
    )


def compute_abilities(
    actor: ActorSnapshot,
    traits: ActorTraits,
    modifiers: ModifierBundle,
    tables: ConfigTables,
) -> dict[str, AbilityScore]:
    """Resolve every configured ability score."""
    unknown = set(actor.abilities) - set(tables.abilities)
    if unknown:
        logger.warning("unknown_ability", abilities=sorted(unknown), actor=actor.name)

    channels = modifiers.abilities
    return {
        key: resolve_ability(
            key,
            actor.ability_value(key),
            traits.racial_mods.get(key, 0),
            channels.number(key),
            channels.override_for(key),
            channels.conditional_for(key),
            clamp_total=not actor.is_npc,
        )
        for key in tables.abilities
    }


def default_abilities(tables: ConfigTables) -> dict[str, AbilityScore]:
    return {
        key: AbilityScore(
            key=key,
            base=DEFAULT_ABILITY_VALUE,
            racial_mod=0,
            total_value=DEFAULT_ABILITY_VALUE,
            display_value=DEFAULT_ABILITY_VALUE,
            status_mod=0,
            mod=get_modifier(DEFAULT_ABILITY_VALUE),
        )
        for key in tables.abilities
    }


def armor_data(actor: ActorSnapshot, tables: ConfigTables) -> ArmorData:
    """
    Armor worn in the armor slot.

    The armor's penalty applies to attack and defense unless the armor skill
    level meets the requirement for the armor type.
    """
    item = actor.slot_item(tables.slots.armor)
    if item is None or item.type != ItemType.ARMOR or item.armor is None:
        return ArmorData()

    armor = item.armor
    required = tables.armor_proficiency.get(armor.armor_type or "", 0)
    proficient = actor.skill_level(tables.skills.armor) >= required
    return ArmorData(
        armor_type=armor.armor_type,
        penalty=0 if proficient else armor.penalty,
        resistances=dict(armor.resistances),
    )


def shield_bonus(actor: ActorSnapshot, tables: ConfigTables) -> tuple[int, int]:
    """
    Defense bonus from shields: (melee, ranged).

    Equipped shield armor adds its defense bonus to both; the off-hand slot adds
    a fixed pair depending on whether it holds a light shield, a heavy shield or
    any other weapon.
    """
    melee = 0
    ranged = 0

    for item in actor.items:
        armor = item.armor
        if item.type != ItemType.ARMOR or armor is None or not item.equipped:
            continue
        if armor.armor_type == SHIELD_ARMOR_TYPE:
            melee += armor.defense_bonus
            ranged += armor.defense_bonus

    off_hand = actor.slot_item(tables.slots.shield)
    if off_hand is not None and off_hand.is_weapon:
        rules = tables.shields
        profile = off_hand.weapon or WeaponProfile()
        if profile.weapon_type == rules.weapon_type:
            bonus = rules.light_shield_bonus if profile.is_light else rules.heavy_shield_bonus
        else:
            bonus = rules.other_weapon_bonus
        melee += bonus[0]
        ranged += bonus[1]

    return melee, ranged


def shield_penalty(actor: ActorSnapshot, tables: ConfigTables) -> int:
    """Attack and defense penalty for an off-hand shield used without the shields skill."""
    off_hand = actor.slot_item(tables.slots.shield)
    if off_hand is None or not off_hand.is_weapon:
        return 0
    return shield_proficiency_penalty(off_hand.weapon or WeaponProfile(), actor, tables)


def compute_speed(
    actor: ActorSnapshot,
    traits: ActorTraits,
    modifiers: ModifierBundle,
    penalties: EncumbrancePenalties,
    tables: ConfigTables,
) -> SpeedState:
    """
    Compute movement speed.

    Base speed plus the fleet-footed bonus and status additive, multiplied by the
    encumbrance and status speed multipliers, rounded, never below 1. Speed is 0
    when movement is blocked by a status or by the encumbrance tier.
    """
    other = modifiers.other
    speed_status = other.number("speed")

    base: Number = traits.base_speed
    if actor.has_skill(tables.skills.fleet_footed):
        base += tables.skill_bonuses.fleet_footed
    base = normalize_number(base + speed_status)

    cannot_move = other.flag("cannotMove")
    encumbrance_multiplier = penalties.speed_multiplier

    if cannot_move or encumbrance_multiplier == 0:
        value = 0
        note = "" if cannot_move else penalties.speed_note
        status_mod = normalize_number(-base) if cannot_move else speed_status
    else:
        status_multiplier = other.multiplier("speedMultiplier")
        final = base * encumbrance_multiplier * status_multiplier
        value = max(1, round_half_up(final))
        note = penalties.speed_note
        status_mod = speed_status
        if status_multiplier != 1:
            status_mod += round_half_up(final - base * encumbrance_multiplier)

    can_run = other.explicit_flag("canRun")
    return SpeedState(
        value=value,
        base=base,
        encumbrance_note=note,
        can_run_note=CANNOT_RUN_NOTE if can_run is False else "",
        status_mod=status_mod,
    )


def default_speed(traits: ActorTraits) -> SpeedState:
    return SpeedState(value=round_half_up(traits.base_speed), base=traits.base_speed)


def compute_combat(
    actor: ActorSnapshot,
    abilities: Mapping[str, AbilityScore],
    modifiers: ModifierBundle,
    encumbrance: EncumbranceState,
    traits: ActorTraits,
    speed: SpeedState,
    tables: ConfigTables,
) -> CombatProfile:
    """
    Compute attack, defense, grapple, stability and initiative.

    Args:
        actor: The actor snapshot
        abilities: Resolved ability scores
        modifiers: Resolved status modifiers
        encumbrance: Encumbrance state (its tier penalties apply)
        traits: Size row and racial data
        speed: Already computed speed
        tables: Configuration tables

    Returns:
        CombatProfile
    """
    combat = modifiers.combat
    other = modifiers.other
    size = traits.size_modifiers
    penalties = encumbrance.penalties

    armor = armor_data(actor, tables)
    shield_melee, shield_ranged = shield_bonus(actor, tables)
    shield = shield_penalty(actor, tables)

    strength_mod = _ability_mod(abilities, STRENGTH)
    dexterity_mod = _ability_mod(abilities, DEXTERITY)

    ignore_melee = other.flag("ignoreMeleeCoefficient")
    ignore_ranged = other.flag("ignoreRangedCoefficient")
    ignore_shield = other.flag("ignoreShieldCoefficient")

    shared_attack = armor.penalty + penalties.attack_penalty + shield
    shared_defense = armor.penalty + penalties.defense_penalty + shield

    # Melee
    melee_value = actor.combat.melee.value
    melee_status = combat.number("melee")
    melee_skill = melee_value + melee_status
    melee = CombatTrack(
        value=melee_value,
        display_value=melee_skill,
        status_mod=melee_status,
        attack=normalize_number(melee_skill + combat.number("meleeAttack") + shared_attack),
        defense=normalize_number(
            (0 if ignore_melee else melee_skill)
            + combat.number("meleeDefense")
            + (0 if ignore_shield else shield_melee)
            + shared_defense
        ),
        damage=strength_mod,
    )

    # Ranged; dexterity stands in for the skill on defense
    ranged_value = actor.combat.ranged.value
    ranged_status = combat.number("ranged")
    ranged_skill = ranged_value + ranged_status
    ranged = CombatTrack(
        value=ranged_value,
        display_value=ranged_skill,
        status_mod=ranged_status,
        attack=normalize_number(
            ranged_skill + combat.number("rangedAttack") + size.ranged_attack + shared_attack
        ),
        defense=normalize_number(
            (0 if ignore_ranged else dexterity_mod)
            + combat.number("rangedDefense")
            + size.ranged_defense
            + (0 if ignore_shield else shield_ranged)
            + shared_defense
        ),
        damage=0,
    )

    pali = melee_skill + strength_mod + size.pali + other.number("pali")

    stability_bonus = (
        tables.skill_bonuses.stability if actor.has_skill(tables.skills.stability) else 0
    )
    eystatheia = (
        melee_skill
        + max(strength_mod, dexterity_mod)
        + size.eystatheia
        + stability_bonus
        + other.number("eystatheia")
    )

    initiative_bonus = (
        tables.skill_bonuses.initiative if actor.has_skill(tables.skills.initiative) else 0
    )
    initiative_status = other.number("initiative")
    initiative = dexterity_mod + initiative_bonus + actor.combat.initiative_bonus + initiative_status

    return CombatProfile(
        melee=melee,
        ranged=ranged,
        pali=normalize_number(pali),
        eystatheia=normalize_number(eystatheia),
        initiative=normalize_number(initiative),
        initiative_status_mod=initiative_status,
        speed=speed,
        has_armor_penalty=armor.penalty < 0,
        has_shield_penalty=shield < 0,
        ignore_dexterity_in_damage=other.flag("ignoreDexterityInDamage"),
    )


def default_combat(speed: SpeedState) -> CombatProfile:
    track = CombatTrack(value=0, display_value=0, status_mod=0, attack=0, defense=0, damage=0)
    return CombatProfile(
        melee=track,
        ranged=track,
        pali=0,
        eystatheia=0,
        initiative=0,
        initiative_status_mod=0,
        speed=speed,
    )


def compute_resistances(
    actor: ActorSnapshot,
    abilities: Mapping[str, AbilityScore],
    modifiers: ModifierBundle,
    traits: ActorTraits,
    tables: ConfigTables,
) -> Resistances:
    """
    Compute the shared base resistance and every specialized resistance.

    Base resistance is the constitution modifier plus the size modifier plus
    status; each damage type adds its bought base, armor and status on top.
    Both levels honour overrides.
    """
    channels = modifiers.resistances

    base = channels.resolve(
        "base",
        _ability_mod(abilities, CONSTITUTION)
        + traits.size_modifiers.antochi
        + channels.number("base"),
    )

    unknown = set(actor.resistances) - set(tables.damage_types)
    if unknown:
        logger.warning("unknown_damage_type", damage_types=sorted(unknown), actor=actor.name)

    armor = armor_data(actor, tables)
    by_type: dict[str, ResistanceValue] = {}
    for key in tables.damage_types:
        entry = actor.resistances.get(key)
        bought = entry.base if entry else 0
        armor_value = armor.resistances.get(key, 0)
        calculated = normalize_number(bought + armor_value + channels.number(key))
        specialized = channels.resolve(key, calculated)

        by_type[key] = ResistanceValue(
            key=key,
            base=bought,
            armor=armor_value,
            status_mod=_resolved_status_mod(channels, key, bought, calculated, specialized),
            specialized=specialized,
            total=normalize_number(base + specialized),
        )

    return Resistances(base=base, by_type=by_type)


def compute_saves(
    actor: ActorSnapshot,
    abilities: Mapping[str, AbilityScore],
    modifiers: ModifierBundle,
    penalties: EncumbrancePenalties,
    tables: ConfigTables,
) -> dict[str, SaveValue]:
    """Compute every save: trained base + ability modifier + encumbrance (reflexes) + status."""
    channels = modifiers.saves
    saves: dict[str, SaveValue] = {}

    for key, definition in tables.saves.items():
        entry = actor.saves.get(key)
        bought = entry.base if entry else 0
        ability_mod = _ability_mod(abilities, definition.ability)
        encumbrance = penalties.saves_penalty if definition.encumbrance_penalty else 0

        raw = bought + ability_mod + encumbrance
        calculated = normalize_number(raw + channels.number(key))
        value = channels.resolve(key, calculated)

        saves[key] = SaveValue(
            key=key,
            base=bought,
            ability_mod=ability_mod,
            encumbrance_penalty=encumbrance,
            status_mod=_resolved_status_mod(channels, key, raw, calculated, value),
            value=value,
        )

    return saves


def default_saves(tables: ConfigTables) -> dict[str, SaveValue]:
    return {
        key: SaveValue(
            key=key, base=0, ability_mod=0, encumbrance_penalty=0, status_mod=0, value=0
        )
        for key in tables.saves
    }


def _weapon_context(
    actor: ActorSnapshot,
    abilities: Mapping[str, AbilityScore],
    modifiers: ModifierBundle,
    combat: CombatProfile,
    encumbrance: EncumbranceState,
    tables: ConfigTables,
) -> WeaponContext:
    return WeaponContext(
        display_strength=_display_value(abilities, STRENGTH),
        strength_mod=_ability_mod(abilities, STRENGTH),
        dexterity_mod=_ability_mod(abilities, DEXTERITY),
        melee_attack=combat.melee.attack,
        ranged_attack=combat.ranged.attack,
        shield_slot_empty=not actor.slot_occupied(tables.slots.shield),
        ignore_dexterity_in_damage=combat.ignore_dexterity_in_damage,
        weapon_damage_status=modifiers.other.number("weaponDamage"),
        has_armor_penalty=combat.has_armor_penalty,
        has_shield_penalty=combat.has_shield_penalty,
        has_encumbrance_penalty=encumbrance.has_penalty,
    )


def compute_weapons(
    actor: ActorSnapshot,
    abilities: Mapping[str, AbilityScore],
    modifiers: ModifierBundle,
    combat: CombatProfile,
    encumbrance: EncumbranceState,
    tables: ConfigTables,
) -> tuple[WeaponDerived, ...]:
    """Derive every weapon in a quick slot, then the weapon in the off-hand slot."""
    context = _weapon_context(actor, abilities, modifiers, combat, encumbrance, tables)

    weapons: list[WeaponDerived] = []
    seen: set[str] = set()
    for item in actor.quick_items():
        if item.is_weapon and item.id not in seen:
            weapons.append(compute_weapon_derived(item, actor, context, tables))
            seen.add(item.id)

    off_hand = actor.slot_item(tables.slots.shield)
    if off_hand is not None and off_hand.is_weapon:
        weapons.append(compute_weapon_derived(off_hand, actor, context, tables, off_hand=True))

    return tuple(weapons)


def weapon_context(
    actor: ActorSnapshot, derived: DerivedSnapshot, tables: ConfigTables
) -> WeaponContext:
    """Actor-side inputs for weapon derivation, read from an already derived snapshot."""
    return _weapon_context(
        actor, derived.abilities, derived.modifiers, derived.combat, derived.encumbrance, tables
    )


def derive_weapon(
    item: Item,
    actor: ActorSnapshot,
    derived: DerivedSnapshot,
    tables: ConfigTables,
    *,
    off_hand: bool = False,
) -> WeaponDerived:
    """
    Derive one weapon wherever it is kept.

    :func:`compute_derived` only derives quick-slot and off-hand weapons. This
    gives the same values for any other owned weapon, e.g. one in a pack or a
    main slot, so hosts can display it.

    Args:
        item: The weapon item
        actor: The owning actor
        derived: The actor's derived snapshot
        tables: Configuration tables
        off_hand: Derive it as if it were wielded in the shield slot

    Returns:
        WeaponDerived for the weapon
    """
    context = weapon_context(actor, derived, tables)
    return compute_weapon_derived(item, actor, context, tables, off_hand=off_hand)


def power_level(
    combat: CombatProfile,
    resistances: Resistances,
    weapons: tuple[WeaponDerived, ...],
    magic: MagicState,
) -> int:
    """
    Rough power estimate: the best of defensive average, best quick weapon
    average and magic degree, rounded.
    """
    defense_average = (combat.melee.defense + resistances.base) / 2

    best_weapon: Number = 0
    for weapon in weapons:
        if not weapon.off_hand:
            best_weapon = max(best_weapon, (weapon.attack + weapon.weapon_damage) / 2)

    return round_half_up(max(defense_average, best_weapon, magic.degree))


def _guarded(
    actor: ActorSnapshot, group: str, compute: Callable[[], T], default: Callable[[], T]
) -> T:
    """Run one stat group, falling back to its default if it raises."""
    try:
        return compute()
    except Exception as e:
        logger.error(
            "derived_group_failed",
            group=group,
            actor=actor.name,
            error=str(e),
            exc_info=True,
        )
        return default()


def compute_derived(
    actor: ActorSnapshot,
    tables: ConfigTables | None = None,
    *,
    version: object | None = None,
    cache: StatusModifierCache | None = None,
) -> DerivedSnapshot:
    """
    Compute every derived statistic of an actor.

    The result depends only on the arguments. ``version`` and ``cache`` let a
    caller reuse the resolved status modifiers within one preparation pass.

    Args:
        actor: The actor snapshot
        tables: Configuration tables; the configured defaults when omitted
        version: Preparation version token for the modifier cache
        cache: Caller-owned modifier cache for this actor

    Returns:
        DerivedSnapshot
    """
    if tables is None:
        tables = get_default_tables()

    def resolve() -> ModifierBundle:
        return resolve_modifiers(actor, tables)

    if cache is not None and version is not None:
        modifiers = _guarded(
            actor, "modifiers", lambda: cache.get_or_resolve(version, resolve), ModifierBundle
        )
    else:
        modifiers = _guarded(actor, "modifiers", resolve, ModifierBundle)

    traits = _guarded(
        actor, "traits", lambda: actor_traits(actor, tables), lambda: default_traits(tables)
    )

    abilities = _guarded(
        actor,
        "abilities",
        lambda: compute_abilities(actor, traits, modifiers, tables),
        lambda: default_abilities(tables),
    )

    capacity_strength = actor.ability_value(STRENGTH) + traits.racial_mods.get(STRENGTH, 0)
    encumbrance = _guarded(
        actor,
        "encumbrance",
        lambda: compute_encumbrance(
            actor, tables, capacity_strength, traits.size_modifiers.carry_capacity
        ),
        lambda: default_encumbrance(tables),
    )

    speed = _guarded(
        actor,
        "speed",
        lambda: compute_speed(actor, traits, modifiers, encumbrance.penalties, tables),
        lambda: default_speed(traits),
    )

    combat = _guarded(
        actor,
        "combat",
        lambda: compute_combat(actor, abilities, modifiers, encumbrance, traits, speed, tables),
        lambda: default_combat(speed),
    )

    resistances = _guarded(
        actor,
        "resistances",
        lambda: compute_resistances(actor, abilities, modifiers, traits, tables),
        lambda: Resistances(base=0),
    )

    saves = _guarded(
        actor,
        "saves",
        lambda: compute_saves(actor, abilities, modifiers, encumbrance.penalties, tables),
        lambda: default_saves(tables),
    )

    weapons = _guarded(
        actor,
        "weapons",
        lambda: compute_weapons(actor, abilities, modifiers, combat, encumbrance, tables),
        tuple,
    )

    magic = _guarded(
        actor,
        "magic",
        lambda: compute_magic(actor, modifiers, _ability_mod(abilities, INTELLIGENCE), tables),
        default_magic,
    )

    experience: ExperienceState | None = None
    if not actor.is_npc:
        experience = _guarded(
            actor,
            "experience",
            lambda: compute_experience(actor, abilities, tables),
            lambda: ExperienceState(value=actor.experience, spent=0, remaining=actor.experience),
        )

    level = _guarded(
        actor,
        "power_level",
        lambda: power_level(combat, resistances, weapons, magic),
        lambda: 0,
    )

    logger.debug(
        "derived_stats_computed",
        actor=actor.name,
        actor_type=actor.actor_type.value,
        encumbrance=encumbrance.tier.value,
        weapons=len(weapons),
        power_level=level,
    )

    return DerivedSnapshot(
        abilities=abilities,
        modifiers=modifiers,
        encumbrance=encumbrance,
        combat=combat,
        resistances=resistances,
        saves=saves,
        weapons=weapons,
        magic=magic,
        experience=experience,
        power_level=level,
    )
