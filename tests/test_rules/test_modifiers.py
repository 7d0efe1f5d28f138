"""Tests for status modifier resolution."""

from andragathima.rules.character.effects import ChangeMode
from andragathima.rules.systems.modifiers import (
    EffectScope,
    EquipLocation,
    ModifierChannels,
    StatusModifierCache,
    effect_scope,
    equip_locations,
    resolve_modifiers,
    total_defense_bonus,
)

MELEE_DEFENSE = "system.combat.meleeDefense"
MELEE_ATTACK = "system.combat.meleeAttack.modifier"


class TestModifierChannels:
    """Tests for merging changes into one category."""

    def test_additive_sums(self):
        """Numeric additions accumulate."""
        channels = ModifierChannels()
        channels.apply("meleeDefense", ChangeMode.ADD, -1)
        channels.apply("meleeDefense", ChangeMode.ADD, -2)
        assert channels.number("meleeDefense") == -3

    def test_additive_boolean_assigned(self):
        """Booleans are assigned, not summed."""
        channels = ModifierChannels()
        channels.apply("canRun", ChangeMode.ADD, True)
        channels.apply("canRun", ChangeMode.ADD, False)
        assert channels.explicit_flag("canRun") is False
        assert channels.number("canRun") == 0

    def test_override_last_writer_wins(self):
        """A later override replaces an earlier one."""
        channels = ModifierChannels()
        channels.apply("base", ChangeMode.OVERRIDE, 3)
        channels.apply("base", ChangeMode.OVERRIDE, 7)
        assert channels.override_for("base") == 7

    def test_conditional_last_writer_wins(self):
        """A later conditional override replaces an earlier one, even a higher one."""
        channels = ModifierChannels()
        channels.apply("dyn", ChangeMode.CONDITIONAL_OVERRIDE, 19)
        channels.apply("dyn", ChangeMode.CONDITIONAL_OVERRIDE, 15)
        assert channels.conditional_for("dyn") == 15

    def test_override_supersedes_additive(self):
        """Resolution uses only the override when one is present."""
        channels = ModifierChannels()
        channels.apply("base", ChangeMode.OVERRIDE, -5)
        channels.apply("base", ChangeMode.ADD, 2)
        assert channels.resolve("base", 1 + channels.number("base")) == -5

    def test_flag_prefers_override(self):
        """A boolean override beats the additive flag."""
        channels = ModifierChannels()
        channels.apply("cannotMove", ChangeMode.ADD, True)
        channels.apply("cannotMove", ChangeMode.OVERRIDE, False)
        assert channels.flag("cannotMove") is False
        assert channels.flag("ignoreMeleeCoefficient") is False
        assert channels.explicit_flag("ignoreMeleeCoefficient") is None

    def test_multiplier(self):
        """Non-zero override first, then non-zero additive, else 1."""
        channels = ModifierChannels()
        assert channels.multiplier("speedMultiplier") == 1
        channels.apply("speedMultiplier", ChangeMode.ADD, 0.5)
        assert channels.multiplier("speedMultiplier") == 0.5
        channels.apply("speedMultiplier", ChangeMode.OVERRIDE, 0.67)
        assert channels.multiplier("speedMultiplier") == 0.67

    def test_as_dict(self):
        """Channels flatten to key, key_override and key_condoverride."""
        channels = ModifierChannels()
        channels.apply("ant", ChangeMode.ADD, -1)
        channels.apply("ant", ChangeMode.OVERRIDE, 2)
        channels.apply("mya", ChangeMode.CONDITIONAL_OVERRIDE, 4)
        assert channels.as_dict() == {"ant": -1, "ant_override": 2, "mya_condoverride": 4}


class TestResolveConditions:
    """Tests for resolving conditions on the actor."""

    def test_conditions_in_order(self, tables, make_actor, make_effect):
        """Overrides from later conditions win."""
        actor = make_actor(
            effects=[
                make_effect((MELEE_DEFENSE, "override", 3)),
                make_effect((MELEE_DEFENSE, "override", 8)),
            ]
        )
        bundle = resolve_modifiers(actor, tables)
        assert bundle.combat.override_for("meleeDefense") == 8

    def test_disabled_condition_skipped(self, tables, make_actor, make_effect):
        """Disabled effects contribute nothing."""
        actor = make_actor(effects=[make_effect((MELEE_DEFENSE, 2, -4), disabled=True)])
        bundle = resolve_modifiers(actor, tables)
        assert bundle.combat.number("meleeDefense") == 0

    def test_unknown_and_unsupported_ignored(self, tables, make_actor, make_effect):
        """Unknown keys, unsupported modes and bad values are dropped."""
        actor = make_actor(
            effects=[
                make_effect(
                    ("system.details.race", 2, 1),
                    (MELEE_DEFENSE, 1, 2),
                    (MELEE_DEFENSE, 2, "lots"),
                )
            ]
        )
        bundle = resolve_modifiers(actor, tables)
        assert bundle.as_dict() == {
            "abilities": {},
            "saves": {},
            "combat": {},
            "resistances": {},
            "other": {},
        }

    def test_catalog_fallback(self, tables, make_actor, make_effect):
        """An effect without changes uses its catalog entry."""
        actor = make_actor(
            effects=[make_effect(status_id="wounded"), make_effect(status_id="wounded2")]
        )
        bundle = resolve_modifiers(actor, tables)
        assert bundle.combat.number("meleeDefense") == -2
        assert bundle.resistances.number("base") == -2
        assert bundle.saves.number("som") == -2

    def test_unknown_status_ignored(self, tables, make_actor, make_effect):
        """An unknown catalog id contributes nothing."""
        actor = make_actor(effects=[make_effect(status_id="petrified")])
        bundle = resolve_modifiers(actor, tables)
        assert bundle.combat.additive == {}

    def test_blinded_flags(self, tables, make_actor, make_effect):
        """Catalog boolean overrides land in the other bucket."""
        actor = make_actor(effects=[make_effect(status_id="blinded")])
        bundle = resolve_modifiers(actor, tables)
        assert bundle.other.flag("ignoreShieldCoefficient") is True
        assert bundle.other.explicit_flag("canRun") is False
        assert bundle.other.multiplier("speedMultiplier") == 0.67


class TestItemEffects:
    """Tests for equip-location gating of item effects."""

    def item(self, item_id, make_effect, **fields):
        return {
            "id": item_id,
            "type": "equipment",
            "effects": [make_effect((MELEE_ATTACK, 2, 1), (MELEE_DEFENSE, 2, 1))],
            **fields,
        }

    def test_slot_item_applies_all(self, tables, make_actor, make_effect):
        """Items in an equipment slot apply every change."""
        actor = make_actor(
            items=[self.item("ring", make_effect)],
            equipment={"slots": {"ring": "ring"}},
        )
        bundle = resolve_modifiers(actor, tables)
        assert bundle.combat.number("meleeAttack") == 1
        assert bundle.combat.number("meleeDefense") == 1

    def test_equipped_flag_applies_all(self, tables, make_actor, make_effect):
        """The host equipped flag counts as equipped."""
        actor = make_actor(items=[self.item("ring", make_effect, equipped=True)])
        bundle = resolve_modifiers(actor, tables)
        assert bundle.combat.number("meleeAttack") == 1

    def test_quick_item_skips_attack_keys(self, tables, make_actor, make_effect):
        """Quick-slot items apply everything except attack and damage changes."""
        actor = make_actor(
            items=[self.item("wand", make_effect)],
            equipment={"quick_items": ["wand"]},
        )
        bundle = resolve_modifiers(actor, tables)
        assert bundle.combat.number("meleeAttack") == 0
        assert bundle.combat.number("meleeDefense") == 1

    def test_carried_item_applies_nothing(self, tables, make_actor, make_effect):
        """Unequipped items apply nothing."""
        actor = make_actor(items=[self.item("ring", make_effect)])
        bundle = resolve_modifiers(actor, tables)
        assert bundle.combat.additive == {}

    def test_effects_not_requiring_equipment(self, tables, make_actor, make_effect):
        """Items whose effects do not require equipment always apply."""
        actor = make_actor(
            items=[self.item("amulet", make_effect, effects_require_equipment=False)]
        )
        bundle = resolve_modifiers(actor, tables)
        assert bundle.combat.number("meleeAttack") == 1

    def test_effect_scope(self, make_actor):
        """Scope follows the location."""
        actor = make_actor(items=[{"id": "a"}])
        item = actor.items[0]
        assert effect_scope(item, EquipLocation.EQUIPMENT) == EffectScope.ALL
        assert effect_scope(item, EquipLocation.QUICK) == EffectScope.NON_WEAPON
        assert effect_scope(item, EquipLocation.MISC) == EffectScope.NONE

    def test_equip_locations_order(self, make_actor):
        """Slot items first, then quick items, then the rest; each item once."""
        actor = make_actor(
            items=[{"id": "rope"}, {"id": "dagger"}, {"id": "helm"}],
            equipment={
                "slots": {"head": "helm", "hands": "", "belt": "ghost"},
                "quick_items": ["dagger", "helm", None],
            },
        )
        locations = [(item.id, location) for item, location in equip_locations(actor)]
        assert locations == [
            ("helm", EquipLocation.EQUIPMENT),
            ("dagger", EquipLocation.QUICK),
            ("rope", EquipLocation.MISC),
        ]

    def test_conditions_before_items(self, tables, make_actor, make_effect):
        """Item overrides are applied after actor conditions."""
        actor = make_actor(
            effects=[make_effect((MELEE_DEFENSE, 5, 2))],
            items=[
                {
                    "id": "cloak",
                    "equipped": True,
                    "effects": [make_effect((MELEE_DEFENSE, 5, 9))],
                }
            ],
        )
        bundle = resolve_modifiers(actor, tables)
        assert bundle.combat.override_for("meleeDefense") == 9


class TestTotalDefense:
    """Tests for the procedural total-defense rule."""

    def test_melee_only_by_default(self, tables, make_actor):
        """Without shield or deflection only melee defense improves."""
        assert total_defense_bonus(make_actor(), tables) == (4, 0)

    def test_shield_grants_ranged(self, tables, make_actor, make_weapon):
        """A shield in the off-hand slot adds ranged defense."""
        actor = make_actor(
            items=[make_weapon("buckler", weapon_type="aspida_varia", is_light=True)],
            equipment={"slots": {"shield": "buckler"}},
        )
        assert total_defense_bonus(actor, tables) == (4, 4)

    def test_deflection_and_never_unarmed(self, tables, make_actor):
        """Both skills together add ranged defense with empty hands."""
        actor = make_actor(
            skills={
                "ektropi_vlimaton": {"has_skill": True},
                "pote_aoplos": {"has_skill": True},
            }
        )
        assert total_defense_bonus(actor, tables) == (4, 4)

    def test_deflection_with_weapon(self, tables, make_actor, make_weapon):
        """Deflection plus a non-fist weapon in a quick slot adds ranged defense."""
        actor = make_actor(
            skills={"ektropi_vlimaton": {"has_skill": True}},
            items=[make_weapon("spear", weapon_type="dory")],
            equipment={"quick_items": ["spear"]},
        )
        assert total_defense_bonus(actor, tables) == (4, 4)

    def test_deflection_with_fist_weapon(self, tables, make_actor, make_weapon):
        """Fist weapons do not count as held weapons."""
        actor = make_actor(
            skills={"ektropi_vlimaton": {"has_skill": True}},
            items=[make_weapon("cestus", weapon_type="grothies", weapon_category="fist")],
            equipment={"quick_items": ["cestus"]},
        )
        assert total_defense_bonus(actor, tables) == (4, 0)

    def test_condition_applies_bonus(self, tables, make_actor, make_effect):
        """The totaldefense condition adds the procedural bonus."""
        actor = make_actor(effects=[make_effect(status_id="totaldefense")])
        bundle = resolve_modifiers(actor, tables)
        assert bundle.combat.number("meleeDefense") == 4
        assert bundle.combat.number("rangedDefense") == 0


class TestStatusModifierCache:
    """Tests for the per-version modifier memo."""

    def test_same_version_resolves_once(self, tables, make_actor):
        """Within one version the bundle is resolved once."""
        actor = make_actor()
        cache = StatusModifierCache()
        calls = []

        def resolve():
            calls.append(1)
            return resolve_modifiers(actor, tables)

        first = cache.get_or_resolve(1, resolve)
        second = cache.get_or_resolve(1, resolve)

        assert first is second
        assert len(calls) == 1

    def test_new_version_resolves_again(self, tables, make_actor):
        """A new version triggers a new resolution."""
        actor = make_actor()
        cache = StatusModifierCache()
        first = cache.get_or_resolve(1, lambda: resolve_modifiers(actor, tables))
        second = cache.get_or_resolve(2, lambda: resolve_modifiers(actor, tables))
        assert first is not second
        assert cache.get(1) is None
        assert cache.get(2) is second

    def test_clear(self, tables, make_actor):
        """Clearing forgets the stored bundle."""
        cache = StatusModifierCache()
        cache.store(1, resolve_modifiers(make_actor(), tables))
        cache.clear()
        assert cache.get(1) is None
