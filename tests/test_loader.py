"""Tests for loader module."""
import copy
import json

import pytest

from idlecore.errors import (
    ContentValidationError,
    ContentWarning,
    DuplicateId,
    DuplicateTriggerId,
    InvalidEmbeddedJson,
    MissingRequiredRoot,
    UnsupportedEventType,
)
from idlecore.loader import load, load_file
from idlecore.modifier import ModifierKind

_BASE = {
    "resources": [
        {"id": "gold", "displayName": "Gold", "kind": "softCurrency"},
        {"id": "gems", "kind": "hardCurrency"},
    ],
    "nodes": [
        {
            "id": "mine",
            "zoneId": "z1",
            "tags": ["Rock"],
            "cycle": {"baseDurationSeconds": 2},
            "outputs": [{"resource": "gold", "amountPerCycle": 1}],
            "leveling": {
                "levelResource": "gold",
                "priceCurve": {"type": "exponential", "basePrice": 10, "growth": 1.15},
            },
        }
    ],
    "nodeInstances": [
        {"id": "mine_1", "nodeId": "mine", "zoneId": "z1", "initialState": {"level": 1}},
        {"id": "mine_2", "nodeId": "mine", "zoneId": "z1"},
    ],
}


def _make_document(**extra) -> dict:
    doc = copy.deepcopy(_BASE)
    doc.update(extra)
    return doc


def _modifier(id="m1", target="nodeOutput[gold]", **kw) -> dict:
    mod = {
        "id": id,
        "scope": {"kind": "global"},
        "operation": "multiply",
        "target": target,
        "value": 2,
    }
    mod.update(kw)
    return mod


def _trigger(id="t1", **kw) -> dict:
    trig = {
        "id": id,
        "eventType": "milestone.fired",
        "conditions": [{"type": "milestoneIdEquals", "args": {"milestoneId": "ms1"}}],
        "actions": [{"type": "rollRewardPool", "rewardPoolId": "pool1"}],
    }
    trig.update(kw)
    return trig


def _trigger_document(*triggers) -> dict:
    return _make_document(
        milestones=[{"id": "ms1", "nodeId": "mine", "atLevel": 5}],
        rewardPools=[
            {
                "id": "pool1",
                "rewards": [
                    {
                        "weight": 1,
                        "action": {"type": "grantResource", "resourceId": "gems", "amount": 1},
                    }
                ],
            }
        ],
        triggers=list(triggers),
    )


class TestLoad:
    def test_minimal_document(self):
        defn = load(_make_document(name="Mines"))
        assert defn.config.name == "Mines"
        assert [r.id for r in defn.resources] == ["gold", "gems"]
        assert defn.get_node("mine").cycle.base_duration_seconds == 2
        assert defn.get_node_instance("mine_1").initial_state.level == 1
        assert defn.diagnostics == []

    def test_name_from_meta_or_default(self):
        assert load(_make_document(meta={"name": "Meta"})).config.name == "Meta"
        assert load(_make_document()).config.name == "Untitled"

    def test_ids_are_trimmed(self):
        doc = _make_document()
        doc["resources"][0]["id"] = "  gold  "
        defn = load(doc)
        assert defn.get_resource("gold") is not None

    def test_document_must_be_object(self):
        with pytest.raises(ContentValidationError):
            load([])  # type: ignore[arg-type]

    @pytest.mark.parametrize("root", ["resources", "nodes", "nodeInstances"])
    def test_missing_required_root(self, root):
        doc = _make_document()
        del doc[root]
        with pytest.raises(MissingRequiredRoot) as exc:
            load(doc)
        assert exc.value.root == root

    def test_empty_required_root(self):
        with pytest.raises(MissingRequiredRoot):
            load(_make_document(nodes=[]))

    def test_required_root_emptied_by_blank_ids(self):
        with pytest.raises(MissingRequiredRoot):
            load(_make_document(resources=[{"id": "  "}]))

    def test_blank_id_entry_skipped_with_warning(self):
        doc = _make_document()
        doc["resources"].append({"id": ""})
        with pytest.warns(ContentWarning, match="empty id"):
            defn = load(doc)
        assert len(defn.resources) == 2

    def test_validation_errors_are_collected(self):
        doc = _make_document()
        doc["nodes"][0]["outputs"][0]["resource"] = "silver"
        doc["nodeInstances"][1]["nodeId"] = "quarry"
        with pytest.raises(ContentValidationError) as exc:
            load(doc)
        assert len(exc.value.errors) == 2
        assert "silver" in str(exc.value)
        assert "quarry" in str(exc.value)

    def test_non_numeric_field_is_an_error(self):
        doc = _make_document()
        doc["nodes"][0]["cycle"]["baseDurationSeconds"] = "slow"
        with pytest.raises(ContentValidationError, match="must be a number"):
            load(doc)


class TestDuplicates:
    def test_duplicate_resource_fails(self):
        doc = _make_document()
        doc["resources"].append({"id": "gold"})
        with pytest.raises(DuplicateId) as exc:
            load(doc)
        assert exc.value.id == "gold"

    def test_duplicate_node_instance_fails(self):
        doc = _make_document()
        doc["nodeInstances"].append(dict(doc["nodeInstances"][0]))
        with pytest.raises(DuplicateId) as exc:
            load(doc)
        assert exc.value.id == "mine_1"

    def test_duplicate_modifier_fails(self):
        with pytest.raises(DuplicateId):
            load(_make_document(modifiers=[_modifier("m1"), _modifier("m1")]))

    def test_duplicate_upgrade_first_wins(self):
        doc = _make_document(
            upgrades=[
                {"id": "u1", "displayName": "First", "cost": [{"resource": "gold", "amount": 5}]},
                {"id": "u1", "displayName": "Second"},
            ]
        )
        with pytest.warns(ContentWarning, match="first definition wins"):
            defn = load(doc)
        assert len(defn.upgrades) == 1
        assert defn.get_upgrade("u1").display_name == "First"

    def test_duplicate_trigger_id(self):
        with pytest.raises(DuplicateTriggerId) as exc:
            load(_trigger_document(_trigger("t1"), _trigger("t1")))
        assert isinstance(exc.value, DuplicateId)
        assert exc.value.id == "t1"


class TestModifiers:
    def test_bracket_target(self):
        defn = load(_make_document(modifiers=[_modifier()]))
        mod = defn.get_modifier("m1")
        assert mod.target == "nodeOutput[gold]"
        assert mod.parsed_target.kind is ModifierKind.NODE_OUTPUT
        assert mod.parsed_target.resource_id == "gold"

    def test_dotted_target_is_canonicalized(self):
        doc = _make_document(modifiers=[_modifier(target="nodeOutput.gold")])
        with pytest.warns(ContentWarning, match="prefer bracket form"):
            defn = load(doc)
        mod = defn.get_modifier("m1")
        assert mod.target == "nodeOutput[gold]"
        assert mod.parsed_target.kind is ModifierKind.NODE_OUTPUT

    def test_alias_target_is_canonicalized(self):
        doc = _make_document(modifiers=[_modifier(target="node.outputMultiplier[gold]")])
        with pytest.warns(ContentWarning):
            defn = load(doc)
        assert defn.get_modifier("m1").target == "nodeOutput[gold]"

    def test_unknown_target_is_inert(self):
        doc = _make_document(modifiers=[_modifier(target="nodeCapacity[gold]")])
        with pytest.warns(ContentWarning, match="no effect"):
            defn = load(doc)
        assert defn.get_modifier("m1").parsed_target.kind is ModifierKind.UNKNOWN

    def test_speed_and_automation_targets(self):
        doc = _make_document(
            modifiers=[
                _modifier("speed", target="nodeSpeedMultiplier"),
                _modifier(
                    "auto",
                    target="automation.policy",
                    operation="set",
                    scope={"kind": "node", "nodeId": "mine"},
                ),
            ]
        )
        defn = load(doc)
        assert defn.get_modifier("speed").parsed_target.kind is ModifierKind.NODE_SPEED
        auto = defn.get_modifier("auto").parsed_target
        assert auto.kind is ModifierKind.AUTOMATION
        assert auto.field == "policy"


class TestBuffs:
    def _doc(self, **buff) -> dict:
        entry = {"id": "b1", "durationSeconds": 30, "stacking": "refresh"}
        entry.update(buff)
        return _make_document(modifiers=[_modifier()], buffs=[entry])

    def test_effects_list(self):
        defn = load(self._doc(effects=[{"modifierId": "m1"}]))
        assert defn.get_buff("b1").effects == ["m1"]

    @pytest.mark.parametrize(
        "text",
        [
            '[{"modifierId": "m1"}]',
            '{"modifierId": "m1"}',
            '{"items": [{"modifierId": "m1"}]}',
        ],
    )
    def test_effects_json_forms(self, text):
        defn = load(self._doc(effects_json=text))
        assert defn.get_buff("b1").effects == ["m1"]

    @pytest.mark.parametrize(
        "text",
        ["{not json", '"just a string"', '[{"id": "m1"}]', '{"other": 1}'],
    )
    def test_invalid_effects_json(self, text):
        with pytest.raises(InvalidEmbeddedJson) as exc:
            load(self._doc(effects_json=text))
        assert exc.value.buff_id == "b1"


class TestTriggers:
    def test_trigger_loads(self):
        defn = load(_trigger_document(_trigger()))
        trig = defn.triggers[0]
        assert trig.event_type == "milestone.fired"
        assert trig.conditions[0].milestone_id == "ms1"
        assert trig.actions[0].reward_pool_id == "pool1"

    def test_event_alias(self):
        trig = _trigger()
        del trig["eventType"]
        trig["event"] = "milestone.fired"
        defn = load(_trigger_document(trig))
        assert defn.triggers[0].event_type == "milestone.fired"

    def test_unsupported_event_type(self):
        with pytest.raises(UnsupportedEventType) as exc:
            load(_trigger_document(_trigger(eventType="node.levelUp")))
        assert exc.value.trigger_id == "t1"
        assert isinstance(exc.value, ContentValidationError)

    def test_conflicting_event_fields_prefer_event_type(self):
        doc = _trigger_document(_trigger(event="node.levelUp"))
        with pytest.warns(ContentWarning, match="conflicting"):
            defn = load(doc)
        assert defn.triggers[0].event_type == "milestone.fired"
        assert any("using eventType" in d for d in defn.diagnostics)


class TestOtherTables:
    def test_reward_weight_defaults_to_one(self):
        doc = _trigger_document(_trigger())
        del doc["rewardPools"][0]["rewards"][0]["weight"]
        defn = load(doc)
        assert defn.get_reward_pool("pool1").rewards[0].weight == 1.0

    def test_upgrade_cost_string_amount(self):
        doc = _make_document(
            upgrades=[{"id": "u1", "cost": [{"resource": "gold", "amount": " 1,500 "}]}]
        )
        defn = load(doc)
        assert defn.get_upgrade("u1").cost[0].amount == " 1,500 "

    def test_upgrade_bad_cost_amount(self):
        doc = _make_document(
            upgrades=[{"id": "u1", "cost": [{"resource": "gold", "amount": "lots"}]}]
        )
        with pytest.raises(ContentValidationError, match="invalid cost amount"):
            load(doc)

    def test_unlock_entry_fallbacks(self):
        doc = _make_document(
            unlockGraph=[
                {
                    "id": "unlock.mine2",
                    "unlocks": [{"kind": "nodeInstance", "id": "mine_2"}],
                    "requirements": [
                        {
                            "type": "nodeLevelAtLeast",
                            "args": {"nodeInstanceId": "mine_1", "level": 3},
                        }
                    ],
                }
            ]
        )
        entry = load(doc).unlock_graph[0]
        assert entry.target_node_instance_id == "mine_2"
        assert entry.requirements[0].node_instance_id == "mine_1"
        assert entry.requirements[0].min_level == 3

    def test_prestige_formula_path_is_canonicalized(self):
        doc = _make_document(
            prestige={
                "enabled": True,
                "prestigeResource": "gems",
                "formula": {"type": "sqrt", "basedOn": "lifetimeEarnings.gold"},
            }
        )
        with pytest.warns(ContentWarning, match="prefer bracket form"):
            defn = load(doc)
        assert defn.prestige.formula.based_on == "lifetimeEarnings[gold]"

    def test_unrecognized_computed_var_path_warns(self):
        doc = _make_document(computedVars=[{"id": "cv", "dependsOn": ["playTime"]}])
        with pytest.warns(ContentWarning, match="not a recognized form"):
            load(doc)


class TestLoadFile:
    def test_reads_json(self, tmp_path):
        path = tmp_path / "content.json"
        path.write_text(json.dumps(_make_document()), encoding="utf-8")
        assert load_file(path).get_node("mine") is not None

    def test_empty_file(self, tmp_path):
        path = tmp_path / "content.json"
        path.write_text("   ", encoding="utf-8")
        with pytest.raises(ContentValidationError, match="empty"):
            load_file(path)

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "content.json"
        path.write_text("{", encoding="utf-8")
        with pytest.raises(ContentValidationError, match="not valid JSON"):
            load_file(path)
