from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from idlecore._types import sanitize_multiplier
from idlecore.modifier import (
    ActiveModifier,
    ModifierDef,
    ModifierKind,
    Operation,
    ScopeKind,
)

if TYPE_CHECKING:
    from idlecore.definition import GameDefinition
    from idlecore.node import NodeDef, NodeInstanceDef
    from idlecore.store import StateStore

logger = logging.getLogger(__name__)


class ModifierResolver:
    """Combines every applicable modifier into one number per subject.

    Multiplicative kinds resolve to ``(1 + sum(add)) * product(multiply)``;
    a matching ``set`` replaces that result, the last one in declaration
    order winning. NaN, infinite and non-positive results collapse to 1.0.
    AUTOMATION resolves to 1.0 (enabled) or 0.0.
    """

    def __init__(
        self,
        definition: GameDefinition,
        active: list[ActiveModifier] | None = None,
    ) -> None:
        self.definition = definition
        self._order = {m.id: i for i, m in enumerate(definition.modifiers)}
        self._active: list[ActiveModifier] = []
        self._cache: dict[tuple[ModifierKind, str, str], float] = {}
        if active is None:
            active = [ActiveModifier(m, m.value) for m in definition.modifiers]
        self.rebuild(active)

    @property
    def active(self) -> list[ActiveModifier]:
        return list(self._active)

    def rebuild(self, active: list[ActiveModifier]) -> None:
        """Replace the active modifier set and drop memoized results."""
        self._active = sorted(
            active, key=lambda a: self._order.get(a.modifier.id, len(self._order))
        )
        self._cache.clear()
        logger.debug("Modifier set rebuilt with %d active entries", len(self._active))

    # ── Resolution ───────────────────────────────────────────────────

    def resolve(
        self,
        kind: ModifierKind,
        resource_id: str = "",
        node_instance_id: str | None = None,
    ) -> float:
        """Combined value of *kind* for a resource and optional node instance."""
        key = (kind, resource_id, node_instance_id or "")
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        instance = node = None
        if node_instance_id:
            instance = self.definition.get_node_instance(node_instance_id)
            if instance is not None:
                node = self.definition.get_node(instance.node_id)

        add_sum = 0.0
        product = 1.0
        override: float | None = None
        automation = False
        for entry in self._active:
            mod = entry.modifier
            if not _target_matches(mod, kind, resource_id):
                continue
            if not _scope_matches(mod, resource_id, instance, node):
                continue
            op = mod.op
            if kind is ModifierKind.AUTOMATION:
                if op is Operation.SET:
                    automation = mod.parsed_target.field == "policy" or entry.value > 0
                continue
            if op is Operation.MULTIPLY:
                product *= entry.value
            elif op is Operation.ADD:
                add_sum += entry.value
            elif op is Operation.SET:
                override = entry.value

        if kind is ModifierKind.AUTOMATION:
            result = 1.0 if automation else 0.0
        else:
            raw = override if override is not None else (1.0 + add_sum) * product
            result = sanitize_multiplier(raw)
        self._cache[key] = result
        return result

    def node_output_multiplier(self, node_instance_id: str, resource_id: str) -> float:
        return self.resolve(ModifierKind.NODE_OUTPUT, resource_id, node_instance_id)

    def node_speed_multiplier(self, node_instance_id: str) -> float:
        return self.resolve(ModifierKind.NODE_SPEED, "", node_instance_id)

    def resource_gain_multiplier(self, resource_id: str) -> float:
        return self.resolve(ModifierKind.RESOURCE_GAIN, resource_id)

    def is_automation_enabled(self, node_instance_id: str) -> bool:
        return self.resolve(ModifierKind.AUTOMATION, "", node_instance_id) > 0.0


# ── Matching ─────────────────────────────────────────────────────────


def _target_matches(mod: ModifierDef, kind: ModifierKind, resource_id: str) -> bool:
    target = mod.parsed_target
    # Unknown targets are inert
    if target.kind is not kind or kind is ModifierKind.UNKNOWN:
        return False
    if kind is ModifierKind.RESOURCE_GAIN:
        return mod.target_resource == resource_id
    if kind is ModifierKind.NODE_OUTPUT and target.resource_id:
        return target.resource_id == resource_id
    return True


def _scope_matches(
    mod: ModifierDef,
    resource_id: str,
    instance: NodeInstanceDef | None,
    node: NodeDef | None,
) -> bool:
    scope = mod.scope
    kind = scope.scope_kind
    if kind is ScopeKind.GLOBAL:
        return True
    if kind is ScopeKind.RESOURCE:
        return bool(scope.resource) and scope.resource == resource_id
    # Zone and node scopes only apply to a concrete node instance
    if instance is None or node is None:
        return False
    if kind is ScopeKind.ZONE:
        wanted = scope.zone_id or mod.zone_id
        return bool(wanted) and wanted == (instance.zone_id or node.zone_id)
    if kind is ScopeKind.NODE:
        if scope.node_id:
            return scope.node_id == node.id
        return bool(scope.node_tag) and _has_tag(scope.node_tag, instance, node)
    if kind is ScopeKind.NODE_TAG:
        return bool(scope.node_tag) and _has_tag(scope.node_tag, instance, node)
    return False


def _has_tag(tag: str, instance: NodeInstanceDef, node: NodeDef) -> bool:
    wanted = tag.strip().lower()
    return node.has_tag(tag) or any(t.strip().lower() == wanted for t in instance.tags)


# ── Active set ───────────────────────────────────────────────────────


def active_modifiers(definition: GameDefinition, store: StateStore) -> list[ActiveModifier]:
    """Modifiers currently in force for the stored progression.

    Purchased upgrades contribute their effects (a multiply effect bought N
    times contributes value**N), fired milestones their grant effects and
    active buffs their effects. Modifiers that no upgrade, milestone or buff
    refers to are permanent and always active.
    """
    granted: set[str] = set()
    for up in definition.upgrades:
        granted.update(up.effects)
    for m in definition.milestones:
        granted.update(m.grant_effects)
    for b in definition.buffs:
        granted.update(b.effects)

    active: list[ActiveModifier] = [
        ActiveModifier(m, m.value) for m in definition.modifiers if m.id not in granted
    ]

    counts = store.get_upgrade_counts()
    for up in definition.upgrades:
        count = counts.get(up.id, 0)
        if count <= 0 or not up.enabled:
            continue
        for mid in up.effects:
            mod = definition.get_modifier(mid)
            if mod is None:
                continue
            value = mod.value
            if mod.op is Operation.MULTIPLY and count > 1:
                try:
                    value = mod.value ** count
                except OverflowError:
                    value = math.inf
            active.append(ActiveModifier(mod, value))

    for m in definition.milestones:
        if not store.is_milestone_fired(m.id):
            continue
        for mid in m.grant_effects:
            mod = definition.get_modifier(mid)
            if mod is not None:
                active.append(ActiveModifier(mod, mod.value))

    for buff_id in store.get_active_buff_ids():
        buff = definition.get_buff(buff_id)
        if buff is None:
            logger.warning("Ignoring stored active buff %r not present in content", buff_id)
            continue
        for mid in buff.effects:
            mod = definition.get_modifier(mid)
            if mod is not None:
                active.append(ActiveModifier(mod, mod.value))

    return active
