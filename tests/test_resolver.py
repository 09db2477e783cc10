"""Tests for resolver module."""
import dataclasses
import math

import pytest

from idlecore.buff import BuffDef
from idlecore.definition import GameDefinition
from idlecore.milestone import MilestoneDef
from idlecore.modifier import ActiveModifier, ModifierDef, ModifierKind, ModifierScope
from idlecore.node import NodeDef, NodeInstanceDef, OutputDef
from idlecore.resolver import ModifierResolver, active_modifiers
from idlecore.resource import ResourceDef
from idlecore.store import InMemoryStateStore
from idlecore.upgrade import UpgradeDef


def _mod(id, target="nodeOutput[gold]", value=2.0, op="multiply", **scope) -> ModifierDef:
    return ModifierDef(
        id,
        scope=ModifierScope(**scope) if scope else ModifierScope(),
        operation=op,
        target=target,
        value=value,
    )


def _make_definition(*modifiers: ModifierDef, **changes) -> GameDefinition:
    defn = GameDefinition(
        resources=[ResourceDef("gold"), ResourceDef("gems")],
        nodes=[
            NodeDef("mine", zone_id="z1", tags=["Rock"], outputs=[OutputDef("gold", amount_per_cycle=1)]),
            NodeDef("farm", zone_id="z2", tags=["crop"], outputs=[OutputDef("gold", amount_per_cycle=1)]),
        ],
        node_instances=[
            NodeInstanceDef("mine_1", "mine", tags=["deep"]),
            NodeInstanceDef("farm_1", "farm"),
            NodeInstanceDef("farm_moved", "farm", zone_id="z1"),
        ],
        modifiers=list(modifiers),
    )
    return dataclasses.replace(defn, **changes) if changes else defn


def _resolver(*modifiers: ModifierDef) -> ModifierResolver:
    return ModifierResolver(_make_definition(*modifiers))


def test_neutral_without_modifiers():
    r = _resolver()
    assert r.node_output_multiplier("mine_1", "gold") == 1.0
    assert r.node_speed_multiplier("mine_1") == 1.0
    assert r.resource_gain_multiplier("gold") == 1.0
    assert not r.is_automation_enabled("mine_1")


class TestComposition:
    def test_multiply_entries_form_a_product(self):
        r = _resolver(_mod("a", value=2.0), _mod("b", value=3.0))
        assert r.node_output_multiplier("mine_1", "gold") == pytest.approx(6.0)

    def test_add_entries_sum_before_multiplying(self):
        r = _resolver(
            _mod("a", op="add", value=0.5),
            _mod("b", op="add", value=0.25),
            _mod("c", value=2.0),
        )
        assert r.node_output_multiplier("mine_1", "gold") == pytest.approx(3.5)

    def test_last_set_wins(self):
        r = _resolver(
            _mod("a", value=4.0),
            _mod("b", op="set", value=5.0),
            _mod("c", op="set", value=7.0),
        )
        assert r.node_output_multiplier("mine_1", "gold") == 7.0

    @pytest.mark.parametrize("value", [0.0, -2.0, math.inf])
    def test_bad_results_collapse_to_neutral(self, value):
        r = _resolver(_mod("a", value=value))
        assert r.node_output_multiplier("mine_1", "gold") == 1.0

    def test_add_of_minus_one_collapses_to_neutral(self):
        r = _resolver(_mod("a", op="add", value=-1.0))
        assert r.node_output_multiplier("mine_1", "gold") == 1.0

    def test_unknown_target_is_inert(self):
        r = _resolver(_mod("a", target="nodeCapacity[gold]", value=10.0))
        for kind in ModifierKind:
            if kind is not ModifierKind.AUTOMATION:
                assert r.resolve(kind, "gold", "mine_1") == 1.0
        assert not r.is_automation_enabled("mine_1")


class TestTargets:
    def test_output_target_is_resource_qualified(self):
        r = _resolver(_mod("a", target="nodeOutput[gold]", value=3.0))
        assert r.node_output_multiplier("mine_1", "gold") == 3.0
        assert r.node_output_multiplier("mine_1", "gems") == 1.0

    def test_bare_output_target_applies_to_every_resource(self):
        r = _resolver(_mod("a", target="nodeOutput", value=3.0))
        assert r.node_output_multiplier("mine_1", "gems") == 3.0

    def test_resource_gain(self):
        r = _resolver(_mod("a", target="resourceGain[gold]", value=1.5))
        assert r.resource_gain_multiplier("gold") == 1.5
        assert r.resource_gain_multiplier("gems") == 1.0
        assert r.node_output_multiplier("mine_1", "gold") == 1.0

    def test_resource_gain_uses_scope_resource(self):
        r = _resolver(_mod("a", target="resourceGain", value=1.5, kind="resource", resource="gems"))
        assert r.resource_gain_multiplier("gems") == 1.5
        assert r.resource_gain_multiplier("gold") == 1.0

    def test_speed(self):
        r = _resolver(_mod("a", target="nodeSpeedMultiplier", value=2.0, kind="node", node_id="mine"))
        assert r.node_speed_multiplier("mine_1") == 2.0
        assert r.node_speed_multiplier("farm_1") == 1.0

    def test_automation(self):
        r = _resolver(
            _mod("a", target="automation.policy", op="set", value=1.0, kind="node", node_id="farm")
        )
        assert r.is_automation_enabled("farm_1")
        assert not r.is_automation_enabled("mine_1")
        assert r.resolve(ModifierKind.AUTOMATION, "", "farm_1") == 1.0


class TestScopes:
    def test_zone_scope_uses_instance_zone_before_node_zone(self):
        r = _resolver(_mod("a", value=2.0, kind="zone", zone_id="z1"))
        assert r.node_output_multiplier("mine_1", "gold") == 2.0
        assert r.node_output_multiplier("farm_moved", "gold") == 2.0
        assert r.node_output_multiplier("farm_1", "gold") == 1.0

    def test_zone_scope_falls_back_to_modifier_zone(self):
        mod = _mod("a", value=2.0, kind="zone")
        mod.zone_id = "z2"
        r = _resolver(mod)
        assert r.node_output_multiplier("farm_1", "gold") == 2.0
        assert r.node_output_multiplier("mine_1", "gold") == 1.0

    def test_node_scoped_modifiers_need_an_instance(self):
        r = _resolver(_mod("a", target="nodeOutput", value=2.0, kind="zone", zone_id="z1"))
        assert r.resolve(ModifierKind.NODE_OUTPUT, "gold") == 1.0

    def test_node_scope_by_id_or_tag(self):
        r = _resolver(
            _mod("a", value=2.0, kind="node", node_id="mine"),
            _mod("b", value=3.0, kind="node", node_tag="crop"),
        )
        assert r.node_output_multiplier("mine_1", "gold") == 2.0
        assert r.node_output_multiplier("farm_1", "gold") == 3.0

    def test_node_tag_scope_is_case_insensitive_and_sees_instance_tags(self):
        r = _resolver(
            _mod("a", value=2.0, kind="nodeTag", node_tag="rock"),
            _mod("b", value=5.0, kind="nodeTag", node_tag="DEEP"),
        )
        assert r.node_output_multiplier("mine_1", "gold") == 10.0
        assert r.node_output_multiplier("farm_1", "gold") == 1.0

    def test_resource_scope(self):
        r = _resolver(_mod("a", target="nodeOutput", value=2.0, kind="resource", resource="gems"))
        assert r.node_output_multiplier("mine_1", "gems") == 2.0
        assert r.node_output_multiplier("mine_1", "gold") == 1.0

    def test_unknown_scope_kind_never_matches(self):
        r = _resolver(_mod("a", value=2.0, kind="galaxy"))
        assert r.node_output_multiplier("mine_1", "gold") == 1.0


class TestDeterminism:
    def test_resolve_is_idempotent(self):
        r = _resolver(_mod("a", value=1.1), _mod("b", op="add", value=0.3))
        first = r.node_output_multiplier("mine_1", "gold")
        assert r.node_output_multiplier("mine_1", "gold") == first

    def test_declaration_order_not_activation_order(self):
        defn = _make_definition(
            _mod("a", op="set", value=5.0), _mod("b", op="set", value=7.0)
        )
        active = [ActiveModifier(m, m.value) for m in reversed(defn.modifiers)]
        assert ModifierResolver(defn, active).node_output_multiplier("mine_1", "gold") == 7.0

    def test_rebuild_drops_cached_results(self):
        defn = _make_definition(_mod("a", value=2.0))
        r = ModifierResolver(defn)
        assert r.node_output_multiplier("mine_1", "gold") == 2.0
        r.rebuild([])
        assert r.node_output_multiplier("mine_1", "gold") == 1.0
        assert r.active == []


class TestActiveModifiers:
    def _definition(self) -> GameDefinition:
        return _make_definition(
            _mod("permanent", value=2.0),
            _mod("upg_mod", value=3.0),
            _mod("ms_mod", value=5.0),
            _mod("buff_mod", target="resourceGain[gold]", value=1.5),
            _mod("off_mod", value=11.0),
            upgrades=[
                UpgradeDef("upg", repeatable=True, effects=["upg_mod"]),
                UpgradeDef("disabled", effects=["off_mod"], enabled=False),
            ],
            milestones=[MilestoneDef("ms", node_id="mine", at_level=10, grant_effects=["ms_mod"])],
            buffs=[BuffDef("buff", duration_seconds=30, effects=["buff_mod"])],
        )

    def test_fresh_state_has_only_permanent_modifiers(self):
        defn = self._definition()
        active = active_modifiers(defn, InMemoryStateStore())
        assert [a.modifier.id for a in active] == ["permanent"]

    def test_progression_activates_granted_modifiers(self):
        defn = self._definition()
        store = InMemoryStateStore()
        store.upgrade_counts = {"upg": 2, "disabled": 1}
        store.fired_milestones = {"ms"}
        store.active_buff_ids = ["buff", "expired_buff"]

        r = ModifierResolver(defn, active_modifiers(defn, store))

        # 2 * 3**2 * 5
        assert r.node_output_multiplier("mine_1", "gold") == pytest.approx(90.0)
        assert r.resource_gain_multiplier("gold") == 1.5
        ids = [a.modifier.id for a in r.active]
        assert ids == ["permanent", "upg_mod", "ms_mod", "buff_mod"]

    def test_default_resolver_uses_every_modifier(self):
        r = ModifierResolver(self._definition())
        assert len(r.active) == 5
