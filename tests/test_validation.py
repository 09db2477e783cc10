"""Tests for validation module."""
import dataclasses
import math

import pytest

from idlecore.buff import BuffDef, BuyModeDef
from idlecore.definition import GameDefinition
from idlecore.milestone import MilestoneDef
from idlecore.modifier import ModifierDef, ModifierScope
from idlecore.node import CycleDef, NodeDef, NodeInstanceDef, OutputDef
from idlecore.prestige import FormulaDef, PrestigeDef
from idlecore.resource import ResourceDef
from idlecore.reward import RewardActionDef, RewardEntryDef, RewardPoolDef
from idlecore.trigger import ActionDef, ConditionDef, TriggerDef
from idlecore.unlock import UnlockGraphEntry, UnlockRequirementDef
from idlecore.upgrade import CostItem, UpgradeDef


def _make_definition() -> GameDefinition:
    return GameDefinition(
        resources=[ResourceDef("gold", kind="softCurrency"), ResourceDef("gems")],
        nodes=[
            NodeDef(
                "mine",
                zone_id="z1",
                tags=["rock"],
                cycle=CycleDef(2.0),
                outputs=[OutputDef("gold", amount_per_cycle=1.0)],
            )
        ],
        node_instances=[NodeInstanceDef("mine_1", "mine", zone_id="z1")],
        modifiers=[ModifierDef("m1", target="nodeOutput[gold]", value=2.0)],
        upgrades=[UpgradeDef("u1", cost=[CostItem("gold", 10)], effects=["m1"])],
        milestones=[MilestoneDef("ms1", node_id="mine", at_level=5)],
        reward_pools=[
            RewardPoolDef(
                "pool1",
                [RewardEntryDef(1.0, RewardActionDef("grantResource", "gems", 1.0))],
            )
        ],
        triggers=[
            TriggerDef(
                "t1",
                "milestone.fired",
                conditions=[ConditionDef("milestoneIdEquals", {"milestoneId": "ms1"})],
                actions=[ActionDef("rollRewardPool", "pool1")],
            )
        ],
    )


def _errors(**changes) -> list[str]:
    return dataclasses.replace(_make_definition(), **changes).validate()


def _one_error(**changes) -> str:
    errors = _errors(**changes)
    assert len(errors) == 1, errors
    return errors[0]


def _modifier(**kw) -> list[ModifierDef]:
    return [ModifierDef("m1", **kw)]


def test_valid_definition():
    assert _make_definition().validate() == []


def test_duplicate_ids_in_strict_tables():
    error = _one_error(resources=[ResourceDef("gold"), ResourceDef("gems"), ResourceDef("gold")])
    assert "Duplicate resources id" in error


def test_duplicate_upgrades_are_not_errors():
    upgrades = [UpgradeDef("u1", cost=[CostItem("gold", 10)]), UpgradeDef("u1")]
    assert _errors(upgrades=upgrades) == []


class TestNodes:
    def test_non_positive_cycle(self):
        nodes = [NodeDef("mine", cycle=CycleDef(0.0), outputs=[OutputDef("gold")])]
        assert "non-positive cycle duration" in _one_error(nodes=nodes)

    def test_unknown_output_resource_and_mode(self):
        nodes = [
            NodeDef("mine", tags=["rock"], outputs=[OutputDef("silver", mode="sometimes")])
        ]
        errors = _errors(nodes=nodes)
        assert any("outputs unknown resource 'silver'" in e for e in errors)
        assert any("unknown mode 'sometimes'" in e for e in errors)

    def test_instance_unknown_node(self):
        instances = [NodeInstanceDef("mine_1", "quarry")]
        assert "unknown node 'quarry'" in _one_error(node_instances=instances)


class TestModifiers:
    @pytest.mark.parametrize(
        "scope, expected",
        [
            (ModifierScope(kind="galaxy"), "unsupported scope kind"),
            (ModifierScope(kind="zone"), "zone scope without a zoneId"),
            (ModifierScope(kind="node"), "without nodeId or nodeTag"),
            (ModifierScope(kind="node", node_id="quarry"), "unknown node 'quarry'"),
            (ModifierScope(kind="nodeTag", node_tag="metal"), "unknown node tag"),
            (ModifierScope(kind="resource", resource="silver"), "unknown resource 'silver'"),
        ],
    )
    def test_scope_errors(self, scope, expected):
        assert expected in _one_error(
            modifiers=_modifier(scope=scope, target="nodeOutput[gold]")
        )

    def test_scope_tag_match_is_case_insensitive(self):
        scope = ModifierScope(kind="nodeTag", node_tag="ROCK")
        assert _errors(modifiers=_modifier(scope=scope, target="nodeOutput")) == []

    def test_unsupported_operation(self):
        error = _one_error(modifiers=_modifier(operation="divide", target="nodeOutput"))
        assert "unsupported operation" in error

    def test_non_finite_value(self):
        error = _one_error(modifiers=_modifier(target="nodeOutput", value=math.nan))
        assert "non-finite value" in error

    def test_resource_gain_needs_known_resource(self):
        assert "needs a resource" in _one_error(modifiers=_modifier(target="resourceGain"))
        assert "unknown resource 'silver'" in _one_error(
            modifiers=_modifier(target="resourceGain[silver]")
        )

    def test_resource_gain_falls_back_to_scope_resource(self):
        scope = ModifierScope(kind="resource", resource="gold")
        assert _errors(modifiers=_modifier(scope=scope, target="resourceGain")) == []

    def test_automation_requires_set(self):
        error = _one_error(modifiers=_modifier(target="automation.policy"))
        assert "only support 'set'" in error

    def test_unknown_target_is_not_an_error(self):
        assert _errors(modifiers=_modifier(target="somethingElse")) == []


class TestUpgrades:
    @pytest.mark.parametrize(
        "amount, expected",
        [("lots", "invalid cost amount"), (-5, "negative cost amount")],
    )
    def test_cost_amount(self, amount, expected):
        upgrades = [UpgradeDef("u1", cost=[CostItem("gold", amount)], effects=["m1"])]
        assert expected in _one_error(upgrades=upgrades)

    def test_unknown_cost_resource_and_effect(self):
        upgrades = [UpgradeDef("u1", cost=[CostItem("silver", 1)], effects=["m9"])]
        errors = _errors(upgrades=upgrades)
        assert any("unknown resource 'silver'" in e for e in errors)
        assert any("unknown modifier 'm9'" in e for e in errors)

    def test_max_rank_below_one(self):
        upgrades = [UpgradeDef("u1", cost=[CostItem("gold", 1)], max_rank=0)]
        assert "maxRank" in _one_error(upgrades=upgrades)


def test_milestone_errors():
    milestones = [MilestoneDef("ms1", node_id="quarry", at_level=5, grant_effects=["m9"])]
    errors = _errors(milestones=milestones)
    assert any("unknown node 'quarry'" in e for e in errors)
    assert any("unknown modifier 'm9'" in e for e in errors)


class TestBuffsAndBuyModes:
    def test_buff_checks(self):
        buffs = [BuffDef("b1", duration_seconds=0, stacking="sometimes")]
        errors = _errors(buffs=buffs)
        assert any("positive durationSeconds" in e for e in errors)
        assert any("unsupported stacking" in e for e in errors)
        assert any("has no effects" in e for e in errors)

    def test_valid_buff(self):
        buffs = [BuffDef("b1", duration_seconds=60, stacking="Refresh", effects=["m1"])]
        assert _errors(buffs=buffs) == []

    def test_buy_modes(self):
        assert "unsupported kind" in _one_error(buy_modes=[BuyModeDef("x", kind="all")])
        assert "fixedCount" in _one_error(buy_modes=[BuyModeDef("x", fixed_count=0)])
        assert _errors(buy_modes=[BuyModeDef("max", kind="maxAffordable")]) == []


class TestRewardPools:
    def _pool(self, *entries) -> list[RewardPoolDef]:
        return [RewardPoolDef("pool1", list(entries))]

    def test_empty_pool(self):
        assert "has no rewards" in _one_error(reward_pools=self._pool())

    def test_zero_weight_entry_is_allowed(self):
        pool = self._pool(
            RewardEntryDef(0.0, RewardActionDef("grantResource", "gold", 5)),
            RewardEntryDef(1.0, RewardActionDef("grantResource", "gems", 1)),
        )
        assert _errors(reward_pools=pool) == []

    def test_all_zero_weights(self):
        pool = self._pool(RewardEntryDef(0.0, RewardActionDef("grantResource", "gold", 5)))
        assert "no positive weight" in _one_error(reward_pools=pool)

    def test_bad_entry(self):
        pool = self._pool(
            RewardEntryDef(-1.0, RewardActionDef("spawnBoss", "silver", 0)),
            RewardEntryDef(1.0, RewardActionDef("grantResource", "gems", 1)),
        )
        errors = _errors(reward_pools=pool)
        assert any("invalid weight" in e for e in errors)
        assert any("unsupported action 'spawnBoss'" in e for e in errors)
        assert any("unknown resource 'silver'" in e for e in errors)
        assert any("positive amount" in e for e in errors)


class TestTriggers:
    def _trigger(self, conditions=None, actions=None, event_type="milestone.fired"):
        return [
            TriggerDef(
                "t1",
                event_type,
                conditions=conditions if conditions is not None else [],
                actions=actions if actions is not None else [ActionDef("rollRewardPool", "pool1")],
            )
        ]

    def test_unsupported_event_type(self):
        assert "unsupported event type" in _one_error(triggers=self._trigger(event_type="tick"))

    def test_condition_errors(self):
        errors = _errors(
            triggers=self._trigger(
                conditions=[
                    ConditionDef("levelAbove"),
                    ConditionDef("milestoneIdEquals"),
                    ConditionDef("milestoneIdEquals", {"milestoneId": "ms9"}),
                ]
            )
        )
        assert len(errors) == 3
        assert any("unsupported condition 'levelAbove'" in e for e in errors)
        assert any("requires args.milestoneId" in e for e in errors)
        assert any("unknown milestone 'ms9'" in e for e in errors)

    def test_action_errors(self):
        assert "has no actions" in _one_error(triggers=self._trigger(actions=[]))
        errors = _errors(
            triggers=self._trigger(
                actions=[ActionDef("explode"), ActionDef("rollRewardPool", "pool9")]
            )
        )
        assert any("unsupported action 'explode'" in e for e in errors)
        assert any("unknown reward pool 'pool9'" in e for e in errors)


class TestUnlockGraph:
    def _entry(self, *reqs, target="mine_1") -> list[UnlockGraphEntry]:
        return [UnlockGraphEntry("un1", target, requirements=list(reqs))]

    def test_valid_entry(self):
        entry = self._entry(
            UnlockRequirementDef("nodeLevelAtLeast", "mine_1", min_level=3),
            UnlockRequirementDef("NodeOwned", "mine_1"),
            UnlockRequirementDef("upgradePurchased", upgrade_id="u1"),
        )
        assert _errors(unlock_graph=entry) == []

    def test_errors(self):
        entry = self._entry(
            UnlockRequirementDef("timePlayed"),
            UnlockRequirementDef("nodeLevelAtLeast", "mine_1", min_level=0),
            UnlockRequirementDef("nodeOwned", "mine_9"),
            UnlockRequirementDef("upgradePurchased", upgrade_id="u9"),
            target="mine_9",
        )
        errors = _errors(unlock_graph=entry)
        assert len(errors) == 5
        assert any("targets unknown node instance 'mine_9'" in e for e in errors)
        assert any("unsupported requirement 'timePlayed'" in e for e in errors)
        assert any("minLevel >= 1" in e for e in errors)
        assert any("references unknown node instance 'mine_9'" in e for e in errors)
        assert any("unknown upgrade 'u9'" in e for e in errors)


class TestPrestige:
    def test_disabled_prestige_is_not_checked(self):
        assert _errors(prestige=PrestigeDef(enabled=False, prestige_resource="nope")) == []

    def test_enabled_prestige(self):
        prestige = PrestigeDef(
            enabled=True,
            prestige_resource="gems",
            formula=FormulaDef("sqrt", "lifetimeEarnings[gold]"),
        )
        assert _errors(prestige=prestige) == []

    def test_enabled_prestige_errors(self):
        errors = _errors(prestige=PrestigeDef(enabled=True, prestige_resource="seeds"))
        assert any("unknown resource 'seeds'" in e for e in errors)
        assert any("has no formula" in e for e in errors)

    def test_formula_errors(self):
        prestige = PrestigeDef(
            enabled=True,
            prestige_resource="gems",
            formula=FormulaDef("cubic", "lifetimeEarnings[silver]"),
        )
        errors = _errors(prestige=prestige)
        assert any("unsupported formula type 'cubic'" in e for e in errors)
        assert any("unknown resource 'silver'" in e for e in errors)
