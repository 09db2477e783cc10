"""MCP server wrapping a GameSession for interactive economy playtesting."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from mcp.server.fastmcp import FastMCP

from idlecore.definition import GameDefinition
from idlecore.errors import IdleCoreError
from idlecore.session import GameSession, SessionConfig
from idlecore.store import InMemoryStateStore

# Maximum seconds per simulate_offline() call (30 days)
_MAX_OFFLINE = 30 * 86400


@dataclass
class _GameHolder:
    """Holds the active content definition and session."""

    definition: GameDefinition
    session: GameSession
    seed: int | None = None


def _round_map(values: dict[str, float]) -> dict[str, float]:
    return {k: round(v, 4) for k, v in values.items()}


# ── Tool logic functions (testable without MCP protocol) ────────────


def _tool_get_content_info(holder: _GameHolder) -> dict[str, Any]:
    defn = holder.definition
    return {
        "name": defn.config.name,
        "resources": [
            {"id": r.id, "display_name": r.display_name, "kind": r.kind}
            for r in defn.resources
        ],
        "node_instances": [
            {"id": i.id, "node_id": i.node_id, "zone_id": i.zone_id}
            for i in defn.node_instances
        ],
        "upgrades": [
            {"id": u.id, "display_name": u.display_name, "repeatable": u.repeatable}
            for u in defn.upgrades
        ],
        "milestones": [
            {"id": m.id, "node_id": m.node_id, "at_level": m.at_level}
            for m in defn.milestones
        ],
        "triggers": [{"id": t.id, "event_type": t.event_type} for t in defn.triggers],
        "reward_pools": [p.id for p in defn.reward_pools],
        "diagnostics": list(defn.diagnostics),
    }


def _tool_get_state(holder: _GameHolder) -> dict[str, Any]:
    session = holder.session
    store = session.store
    generators = {}
    for state in store.get_generator_states():
        generators[state.id] = {
            "level": state.level,
            "owned": state.owned,
            "automated": state.automated or state.automation_purchased,
            "next_level_price": _round_map(session.level_price(state.id)),
        }
    fired = [m.id for m in holder.definition.milestones if store.is_milestone_fired(m.id)]
    return {
        "balances": _round_map(session.ledger.balances()),
        "lifetime_earnings": {
            r.id: round(store.get_lifetime_earnings(r.id), 4)
            for r in holder.definition.resources
            if r.is_soft_currency
        },
        "generators": generators,
        "upgrades": store.get_upgrade_counts(),
        "milestones_fired": fired,
        "unlocked": sorted(store.get_unlocked_ids()),
        "prestige_reward": session.prestige_reward(),
    }


def _tool_add(
    holder: _GameHolder, resource_id: str, amount: float, raw: bool = False
) -> dict[str, Any]:
    ledger = holder.session.ledger
    try:
        applied = ledger.add_raw(resource_id, amount) if raw else ledger.add(resource_id, amount)
    except IdleCoreError as exc:
        return {"error": str(exc)}
    return {
        "resource_id": resource_id,
        "applied": round(applied, 4),
        "new_balance": round(ledger.get_balance(resource_id), 4),
    }


def _tool_spend(holder: _GameHolder, cost: dict[str, float]) -> dict[str, Any]:
    ledger = holder.session.ledger
    lines = [{"resource": rid, "amount": amount} for rid, amount in cost.items()]
    try:
        success = ledger.try_spend(lines)
    except IdleCoreError as exc:
        return {"error": str(exc)}
    result: dict[str, Any] = {
        "success": success,
        "balances": _round_map(ledger.balances()),
    }
    if not success:
        result["reason"] = "Cannot afford"
    return result


def _tool_level_up(holder: _GameHolder, node_instance_id: str) -> dict[str, Any]:
    session = holder.session
    if holder.definition.get_node_instance(node_instance_id) is None:
        return {"error": f"Unknown node instance: {node_instance_id!r}"}

    fired_before = {
        m.id for m in holder.definition.milestones if session.store.is_milestone_fired(m.id)
    }
    price = session.level_price(node_instance_id)
    if not session.level_up(node_instance_id):
        return {"success": False, "reason": "Cannot afford or at max level"}

    state = session.store.get_generator_state(node_instance_id)
    new_milestones = [
        m.id
        for m in holder.definition.milestones
        if m.id not in fired_before and session.store.is_milestone_fired(m.id)
    ]
    result: dict[str, Any] = {
        "success": True,
        "node_instance_id": node_instance_id,
        "new_level": state.level if state else None,
        "paid": _round_map(price),
    }
    if new_milestones:
        result["new_milestones"] = new_milestones
    return result


def _tool_purchase_upgrade(holder: _GameHolder, upgrade_id: str) -> dict[str, Any]:
    if holder.definition.get_upgrade(upgrade_id) is None:
        return {"error": f"Unknown upgrade: {upgrade_id!r}"}
    if not holder.session.purchase_upgrade(upgrade_id):
        return {"success": False, "reason": "Cannot afford, disabled or at max rank"}
    return {
        "success": True,
        "upgrade_id": upgrade_id,
        "count": holder.session.store.get_upgrade_counts().get(upgrade_id, 0),
    }


def _tool_automate(holder: _GameHolder, node_instance_id: str) -> dict[str, Any]:
    if not holder.session.set_automation(node_instance_id):
        return {"error": f"Unknown node instance: {node_instance_id!r}"}
    return {"success": True, "node_instance_id": node_instance_id}


def _tool_simulate_offline(
    holder: _GameHolder, seconds: float, apply: bool = False
) -> dict[str, Any]:
    if not math.isfinite(seconds):
        return {"error": "Seconds must be a finite number"}
    if seconds < 0:
        return {"error": "Seconds must not be negative"}
    if seconds > _MAX_OFFLINE:
        return {"error": f"Cannot simulate more than {_MAX_OFFLINE} seconds per call"}

    batch = holder.session.simulate_offline(seconds)
    if apply:
        holder.session.ledger.apply_gains(batch)
    return {
        "elapsed_seconds": batch.elapsed_seconds,
        "gains": _round_map(batch.gains),
        "applied": apply,
        "balances": _round_map(holder.session.ledger.balances()),
    }


def _tool_fire_milestone(holder: _GameHolder, milestone_id: str) -> dict[str, Any]:
    if holder.definition.get_milestone(milestone_id) is None:
        return {"error": f"Unknown milestone: {milestone_id!r}"}
    before = holder.session.ledger.balances()
    try:
        fired = holder.session.milestones.fire(milestone_id)
    except IdleCoreError as exc:
        return {"error": str(exc)}
    if not fired:
        return {"success": False, "reason": "Milestone already fired"}
    after = holder.session.ledger.balances()
    changes = {
        rid: round(after[rid] - before.get(rid, 0.0), 4)
        for rid in after
        if after[rid] != before.get(rid, 0.0)
    }
    return {"success": True, "milestone_id": milestone_id, "balance_changes": changes}


def _tool_new_session(holder: _GameHolder) -> dict[str, Any]:
    holder.session = GameSession(
        holder.definition, InMemoryStateStore(), SessionConfig(seed=holder.seed)
    )
    return {"success": True, "message": "Session reset to initial state"}


# ── Server factory ──────────────────────────────────────────────────


def create_server(definition: GameDefinition, seed: int | None = None) -> FastMCP:
    """Create an MCP server wrapping a GameSession for the given content."""
    holder = _GameHolder(
        definition=definition,
        session=GameSession(definition, InMemoryStateStore(), SessionConfig(seed=seed)),
        seed=seed,
    )

    mcp = FastMCP(
        name=f"idlecore: {definition.config.name}",
    )

    @mcp.tool()
    def get_content_info() -> dict[str, Any]:
        """Get static content overview: resources, node instances, upgrades, milestones, triggers."""
        return _tool_get_content_info(holder)

    @mcp.tool()
    def get_state() -> dict[str, Any]:
        """Get current balances, generator levels, upgrades, fired milestones and unlocks."""
        return _tool_get_state(holder)

    @mcp.tool()
    def add(resource_id: str, amount: float, raw: bool = False) -> dict[str, Any]:
        """Add an amount to a resource (gain multiplier applies unless raw=True)."""
        return _tool_add(holder, resource_id, amount, raw)

    @mcp.tool()
    def spend(cost: dict[str, float]) -> dict[str, Any]:
        """Atomically spend a multi-resource cost. Nothing is deducted if any part is unaffordable."""
        return _tool_spend(holder, cost)

    @mcp.tool()
    def level_up(node_instance_id: str) -> dict[str, Any]:
        """Buy one level of a node instance, firing any milestones reached."""
        return _tool_level_up(holder, node_instance_id)

    @mcp.tool()
    def purchase_upgrade(upgrade_id: str) -> dict[str, Any]:
        """Buy one rank of an upgrade."""
        return _tool_purchase_upgrade(holder, upgrade_id)

    @mcp.tool()
    def automate(node_instance_id: str) -> dict[str, Any]:
        """Mark a node instance's automation as purchased so it produces offline."""
        return _tool_automate(holder, node_instance_id)

    @mcp.tool()
    def simulate_offline(seconds: float, apply: bool = False) -> dict[str, Any]:
        """Compute offline gains for the given seconds away; apply=True credits them."""
        return _tool_simulate_offline(holder, seconds, apply)

    @mcp.tool()
    def fire_milestone(milestone_id: str) -> dict[str, Any]:
        """Fire a milestone directly and run its triggers."""
        return _tool_fire_milestone(holder, milestone_id)

    @mcp.tool()
    def new_session() -> dict[str, Any]:
        """Reset the session to a fresh state."""
        return _tool_new_session(holder)

    return mcp
