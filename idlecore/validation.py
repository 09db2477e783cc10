"""Cross-reference checks over a loaded GameDefinition."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from idlecore.buff import BUY_MODE_KINDS, STACKING_POLICIES
from idlecore.errors import InvalidAmountError
from idlecore._types import parse_amount
from idlecore.modifier import ModifierKind, Operation, ScopeKind
from idlecore.node import OUTPUT_MODES
from idlecore.paths import FORMULA_BASES, parse_path
from idlecore.prestige import FORMULA_TYPES, FormulaDef
from idlecore.reward import REWARD_ACTION_TYPES
from idlecore.trigger import (
    ACTION_TYPES,
    CONDITION_TYPES,
    MILESTONE_ID_EQUALS,
    ROLL_REWARD_POOL,
    SUPPORTED_EVENT_TYPES,
)
from idlecore.unlock import REQUIREMENT_TYPES

if TYPE_CHECKING:
    from idlecore.definition import GameDefinition


def _lower_set(values) -> set[str]:
    return {v.lower() for v in values}


_OUTPUT_MODES = _lower_set(OUTPUT_MODES)
_STACKING = _lower_set(STACKING_POLICIES)
_BUY_MODE_KINDS = _lower_set(BUY_MODE_KINDS)
_FORMULA_TYPES = _lower_set(FORMULA_TYPES)
_REQUIREMENT_TYPES = _lower_set(REQUIREMENT_TYPES)


def validate_definition(defn: GameDefinition) -> list[str]:
    """Return every problem found in *defn*; an empty list means valid."""
    errors: list[str] = []
    _check_duplicates(defn, errors)
    _check_nodes(defn, errors)
    _check_modifiers(defn, errors)
    _check_upgrades(defn, errors)
    _check_milestones(defn, errors)
    _check_buffs(defn, errors)
    _check_buy_modes(defn, errors)
    _check_reward_pools(defn, errors)
    _check_triggers(defn, errors)
    _check_unlock_graph(defn, errors)
    _check_formulas(defn, errors)
    return errors


def _check_duplicates(defn: GameDefinition, errors: list[str]) -> None:
    from idlecore.definition import DUPLICATE_POLICY, DuplicatePolicy

    tables = {
        "resources": defn.resources,
        "nodes": defn.nodes,
        "nodeInstances": defn.node_instances,
        "modifiers": defn.modifiers,
        "upgrades": defn.upgrades,
        "milestones": defn.milestones,
        "buffs": defn.buffs,
        "buyModes": defn.buy_modes,
        "triggers": defn.triggers,
        "rewardPools": defn.reward_pools,
        "unlockGraph": defn.unlock_graph,
        "computedVars": defn.computed_vars,
    }
    for table, items in tables.items():
        if DUPLICATE_POLICY[table] is not DuplicatePolicy.FAIL:
            continue
        seen: set[str] = set()
        for item in items:
            if not item.id:
                errors.append(f"{table} entry has an empty id")
                continue
            if item.id in seen:
                errors.append(f"Duplicate {table} id: {item.id!r}")
            seen.add(item.id)


def _check_nodes(defn: GameDefinition, errors: list[str]) -> None:
    for node in defn.nodes:
        duration = node.cycle.base_duration_seconds
        if not math.isfinite(duration) or duration <= 0:
            errors.append(f"Node {node.id!r} has non-positive cycle duration {duration!r}")
        level_res = node.leveling.level_resource
        if level_res and defn.get_resource(level_res) is None:
            errors.append(
                f"Node {node.id!r} levels with unknown resource {level_res!r}"
            )
        for out in node.outputs:
            if defn.get_resource(out.resource) is None:
                errors.append(
                    f"Node {node.id!r} outputs unknown resource {out.resource!r}"
                )
            if out.mode.lower() not in _OUTPUT_MODES:
                errors.append(
                    f"Node {node.id!r} output {out.resource!r} has unknown mode {out.mode!r}"
                )
        for inp in node.inputs:
            if defn.get_resource(inp.resource) is None:
                errors.append(
                    f"Node {node.id!r} consumes unknown resource {inp.resource!r}"
                )

    for inst in defn.node_instances:
        if defn.get_node(inst.node_id) is None:
            errors.append(
                f"Node instance {inst.id!r} references unknown node {inst.node_id!r}"
            )


def _check_modifiers(defn: GameDefinition, errors: list[str]) -> None:
    tags = defn.node_tags()
    for mod in defn.modifiers:
        where = f"Modifier {mod.id!r}"
        scope = mod.scope
        kind = scope.scope_kind
        if kind is None:
            errors.append(f"{where} has unsupported scope kind {scope.kind!r}")
        elif kind is ScopeKind.ZONE and not (scope.zone_id or mod.zone_id):
            errors.append(f"{where} has zone scope without a zoneId")
        elif kind is ScopeKind.NODE:
            if not scope.node_id and not scope.node_tag:
                errors.append(f"{where} has node scope without nodeId or nodeTag")
            if scope.node_id and defn.get_node(scope.node_id) is None:
                errors.append(f"{where} scope references unknown node {scope.node_id!r}")
            if scope.node_tag and scope.node_tag.lower() not in tags:
                errors.append(f"{where} scope references unknown node tag {scope.node_tag!r}")
        elif kind is ScopeKind.NODE_TAG:
            if not scope.node_tag:
                errors.append(f"{where} has nodeTag scope without a nodeTag")
            elif scope.node_tag.lower() not in tags:
                errors.append(f"{where} scope references unknown node tag {scope.node_tag!r}")
        elif kind is ScopeKind.RESOURCE:
            if defn.get_resource(scope.resource) is None:
                errors.append(
                    f"{where} scope references unknown resource {scope.resource!r}"
                )

        op = mod.op
        if op is None:
            errors.append(f"{where} has unsupported operation {mod.operation!r}")
        if not math.isfinite(mod.value):
            errors.append(f"{where} has non-finite value {mod.value!r}")

        target = mod.parsed_target
        if target.kind is ModifierKind.RESOURCE_GAIN:
            res = mod.target_resource
            if not res:
                errors.append(f"{where} resourceGain target needs a resource")
            elif defn.get_resource(res) is None:
                errors.append(f"{where} targets unknown resource {res!r}")
        elif target.kind is ModifierKind.NODE_OUTPUT and target.resource_id:
            if defn.get_resource(target.resource_id) is None:
                errors.append(f"{where} targets unknown resource {target.resource_id!r}")
        elif target.kind is ModifierKind.AUTOMATION and op not in (None, Operation.SET):
            errors.append(f"{where} automation targets only support 'set'")


def _check_cost(where: str, defn: GameDefinition, cost, errors: list[str]) -> None:
    for item in cost:
        if defn.get_resource(item.resource) is None:
            errors.append(f"{where} costs unknown resource {item.resource!r}")
        try:
            amount = parse_amount(item.amount)
        except InvalidAmountError as exc:
            errors.append(f"{where} has invalid cost amount: {exc}")
            continue
        if amount < 0:
            errors.append(f"{where} has negative cost amount {item.amount!r}")


def _check_upgrades(defn: GameDefinition, errors: list[str]) -> None:
    for up in defn.upgrades:
        where = f"Upgrade {up.id!r}"
        _check_cost(where, defn, up.cost, errors)
        for mid in up.effects:
            if defn.get_modifier(mid) is None:
                errors.append(f"{where} references unknown modifier {mid!r}")
        if up.max_rank is not None and up.max_rank < 1:
            errors.append(f"{where} has maxRank below 1")


def _check_milestones(defn: GameDefinition, errors: list[str]) -> None:
    for m in defn.milestones:
        where = f"Milestone {m.id!r}"
        if defn.get_node(m.node_id) is None:
            errors.append(f"{where} references unknown node {m.node_id!r}")
        if m.at_level < 0:
            errors.append(f"{where} has negative atLevel {m.at_level}")
        for mid in m.grant_effects:
            if defn.get_modifier(mid) is None:
                errors.append(f"{where} grants unknown modifier {mid!r}")


def _check_buffs(defn: GameDefinition, errors: list[str]) -> None:
    for b in defn.buffs:
        where = f"Buff {b.id!r}"
        if not math.isfinite(b.duration_seconds) or b.duration_seconds <= 0:
            errors.append(f"{where} needs a positive durationSeconds")
        if b.stacking.lower() not in _STACKING:
            errors.append(f"{where} has unsupported stacking {b.stacking!r}")
        if not b.effects:
            errors.append(f"{where} has no effects")
        for mid in b.effects:
            if defn.get_modifier(mid) is None:
                errors.append(f"{where} references unknown modifier {mid!r}")


def _check_buy_modes(defn: GameDefinition, errors: list[str]) -> None:
    for bm in defn.buy_modes:
        if bm.kind.lower() not in _BUY_MODE_KINDS:
            errors.append(f"Buy mode {bm.id!r} has unsupported kind {bm.kind!r}")
        elif bm.kind.lower() == "fixed" and bm.fixed_count < 1:
            errors.append(f"Buy mode {bm.id!r} needs fixedCount >= 1")


def _check_reward_pools(defn: GameDefinition, errors: list[str]) -> None:
    for pool in defn.reward_pools:
        where = f"Reward pool {pool.id!r}"
        if not pool.rewards:
            errors.append(f"{where} has no rewards")
            continue
        total = 0.0
        for i, entry in enumerate(pool.rewards):
            if not math.isfinite(entry.weight) or entry.weight < 0:
                errors.append(f"{where} rewards[{i}] has invalid weight {entry.weight!r}")
            else:
                total += entry.weight
            action = entry.action
            if action.type not in REWARD_ACTION_TYPES:
                errors.append(
                    f"{where} rewards[{i}] has unsupported action {action.type!r}"
                )
            if defn.get_resource(action.resource_id) is None:
                errors.append(
                    f"{where} rewards[{i}] grants unknown resource {action.resource_id!r}"
                )
            if not math.isfinite(action.amount) or action.amount <= 0:
                errors.append(f"{where} rewards[{i}] needs a positive amount")
        if total <= 0:
            errors.append(f"{where} has no positive weight")


def _check_triggers(defn: GameDefinition, errors: list[str]) -> None:
    for trig in defn.triggers:
        where = f"Trigger {trig.id!r}"
        if trig.event_type not in SUPPORTED_EVENT_TYPES:
            errors.append(f"{where} uses unsupported event type {trig.event_type!r}")
        for cond in trig.conditions:
            if cond.type not in CONDITION_TYPES:
                errors.append(f"{where} uses unsupported condition {cond.type!r}")
            elif cond.type == MILESTONE_ID_EQUALS:
                if not cond.milestone_id:
                    errors.append(f"{where} condition requires args.milestoneId")
                elif defn.get_milestone(cond.milestone_id) is None:
                    errors.append(
                        f"{where} references unknown milestone {cond.milestone_id!r}"
                    )
        if not trig.actions:
            errors.append(f"{where} has no actions")
        for action in trig.actions:
            if action.type not in ACTION_TYPES:
                errors.append(f"{where} uses unsupported action {action.type!r}")
            elif action.type == ROLL_REWARD_POOL:
                if defn.get_reward_pool(action.reward_pool_id) is None:
                    errors.append(
                        f"{where} references unknown reward pool {action.reward_pool_id!r}"
                    )


def _check_unlock_graph(defn: GameDefinition, errors: list[str]) -> None:
    for entry in defn.unlock_graph:
        where = f"Unlock {entry.id!r}"
        if defn.get_node_instance(entry.target_node_instance_id) is None:
            errors.append(
                f"{where} targets unknown node instance {entry.target_node_instance_id!r}"
            )
        for req in entry.requirements:
            kind = req.type.lower()
            if kind not in _REQUIREMENT_TYPES:
                errors.append(f"{where} has unsupported requirement {req.type!r}")
                continue
            if kind == "upgradepurchased":
                if defn.get_upgrade(req.upgrade_id) is None:
                    errors.append(f"{where} references unknown upgrade {req.upgrade_id!r}")
                continue
            if defn.get_node_instance(req.node_instance_id) is None:
                errors.append(
                    f"{where} references unknown node instance {req.node_instance_id!r}"
                )
            if kind == "nodelevelatleast" and req.min_level < 1:
                errors.append(f"{where} needs minLevel >= 1")


def _check_formula(
    where: str, defn: GameDefinition, formula: FormulaDef, errors: list[str]
) -> None:
    if formula.type.lower() not in _FORMULA_TYPES:
        errors.append(f"{where} has unsupported formula type {formula.type!r}")
    _check_formula_path(where, defn, formula.based_on, errors)


def _check_formula_path(
    where: str, defn: GameDefinition, path: str, errors: list[str]
) -> None:
    parsed = parse_path(path, FORMULA_BASES)
    # Unrecognized paths are reported as diagnostics by the loader
    if parsed is not None and defn.get_resource(parsed.param) is None:
        errors.append(f"{where} references unknown resource {parsed.param!r}")


def _check_formulas(defn: GameDefinition, errors: list[str]) -> None:
    for cv in defn.computed_vars:
        for path in cv.depends_on:
            _check_formula_path(f"Computed var {cv.id!r}", defn, path, errors)

    prestige = defn.prestige
    if not prestige.enabled:
        return
    if defn.get_resource(prestige.prestige_resource) is None:
        errors.append(
            f"Prestige references unknown resource {prestige.prestige_resource!r}"
        )
    if prestige.formula is None:
        errors.append("Prestige is enabled but has no formula")
    else:
        _check_formula("Prestige formula", defn, prestige.formula, errors)
    for meta in prestige.meta_upgrades:
        _check_formula(f"Meta upgrade {meta.id!r}", defn, meta.computed, errors)
