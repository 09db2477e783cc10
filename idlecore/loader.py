"""Build a GameDefinition from a JSON-shaped content document."""

from __future__ import annotations

import json
import math
import warnings
from pathlib import Path
from typing import Any, Callable, Mapping, TypeVar

from idlecore._types import normalize_id
from idlecore.buff import BuffDef, BuyModeDef
from idlecore.definition import (
    DUPLICATE_POLICY,
    ComputedVarDef,
    DuplicatePolicy,
    GameConfig,
    GameDefinition,
)
from idlecore.errors import (
    ContentValidationError,
    ContentWarning,
    DuplicateId,
    DuplicateTriggerId,
    InvalidEmbeddedJson,
    MissingRequiredRoot,
    UnsupportedEventType,
)
from idlecore.milestone import MilestoneDef
from idlecore.modifier import ModifierDef, ModifierKind, ModifierScope
from idlecore.node import (
    AutomationDef,
    CycleDef,
    InitialStateDef,
    LevelingDef,
    NodeDef,
    NodeInputDef,
    NodeInstanceDef,
    OutputDef,
    PriceCurveDef,
)
from idlecore.paths import canonicalize_formula_path, canonicalize_modifier_path
from idlecore.prestige import FormulaDef, MetaUpgradeDef, PrestigeDef
from idlecore.resource import ResourceDef
from idlecore.reward import RewardActionDef, RewardEntryDef, RewardPoolDef
from idlecore.trigger import SUPPORTED_EVENT_TYPES, ActionDef, ConditionDef, TriggerDef
from idlecore.unlock import UnlockGraphEntry, UnlockRequirementDef
from idlecore.upgrade import CostItem, UpgradeDef

T = TypeVar("T")

REQUIRED_ROOTS = ("resources", "nodes", "nodeInstances")


def load_file(path: str | Path) -> GameDefinition:
    """Read a JSON content file and load it."""
    text = Path(path).read_text(encoding="utf-8")
    if not text.strip():
        raise ContentValidationError(f"Content file is empty: {path}")
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ContentValidationError(f"Content file {path} is not valid JSON: {exc}") from exc
    return load(document)


def load(document: Mapping[str, Any]) -> GameDefinition:
    """Parse, normalize and validate a content document.

    Raises a ContentValidationError subclass if anything is wrong; no
    partially valid definition is ever returned. Non-fatal diagnostics are
    issued as ContentWarning and kept on ``GameDefinition.diagnostics``.
    """
    if not isinstance(document, Mapping):
        raise ContentValidationError(
            f"Content document must be an object, got {type(document).__name__}"
        )
    for root in REQUIRED_ROOTS:
        value = document.get(root)
        if not isinstance(value, list) or not value:
            raise MissingRequiredRoot(root)

    parser = _Parser()
    defn = parser.parse(document)
    # Entries with empty ids are dropped, which can empty a required root
    for root, table in zip(REQUIRED_ROOTS, (defn.resources, defn.nodes, defn.node_instances)):
        if not table:
            raise MissingRequiredRoot(root)

    errors = parser.errors + defn.validate()
    if errors:
        raise ContentValidationError.from_errors(errors)

    for message in defn.diagnostics:
        warnings.warn(message, ContentWarning, stacklevel=2)
    return defn


class _Parser:
    """Collects parse errors and diagnostics while building definitions."""

    def __init__(self) -> None:
        self.errors: list[str] = []
        self.diagnostics: list[str] = []

    def parse(self, doc: Mapping[str, Any]) -> GameDefinition:
        meta = doc.get("meta") if isinstance(doc.get("meta"), Mapping) else {}
        name = str(doc.get("name") or meta.get("name") or "Untitled")

        return GameDefinition(
            config=GameConfig(name=name),
            resources=self._table(doc, "resources", self._resource),
            nodes=self._table(doc, "nodes", self._node),
            node_instances=self._table(doc, "nodeInstances", self._node_instance),
            modifiers=self._table(doc, "modifiers", self._modifier),
            upgrades=self._table(doc, "upgrades", self._upgrade),
            milestones=self._table(doc, "milestones", self._milestone),
            buffs=self._table(doc, "buffs", self._buff),
            buy_modes=self._table(doc, "buyModes", self._buy_mode),
            triggers=self._table(doc, "triggers", self._trigger),
            reward_pools=self._table(doc, "rewardPools", self._reward_pool),
            unlock_graph=self._table(doc, "unlockGraph", self._unlock_entry),
            computed_vars=self._table(doc, "computedVars", self._computed_var),
            prestige=self._prestige(doc.get("prestige")),
            diagnostics=self.diagnostics,
        )

    # ── Tables ───────────────────────────────────────────────────────

    def _table(
        self,
        doc: Mapping[str, Any],
        root: str,
        build: Callable[[Mapping[str, Any]], T],
    ) -> list[T]:
        raw = doc.get(root)
        if raw is None:
            return []
        if not isinstance(raw, list):
            self.errors.append(f"Content root {root!r} must be a list")
            return []

        policy = DUPLICATE_POLICY[root]
        items: list[T] = []
        seen: set[str] = set()
        for i, entry in enumerate(raw):
            if not isinstance(entry, Mapping):
                self.errors.append(f"{root}[{i}] must be an object")
                continue
            item = build(entry)
            item_id = item.id  # type: ignore[attr-defined]
            if not item_id:
                self.diagnostics.append(f"{root}[{i}] has an empty id and was skipped")
                continue
            if item_id in seen:
                if policy is DuplicatePolicy.FIRST_WINS:
                    self.diagnostics.append(
                        f"Duplicate {root} id {item_id!r} ignored; first definition wins"
                    )
                    continue
                if root == "triggers":
                    raise DuplicateTriggerId(item_id)
                raise DuplicateId(root, item_id)
            seen.add(item_id)
            items.append(item)
        return items

    # ── Field coercion ───────────────────────────────────────────────

    def _float(self, raw: Any, where: str, default: float = 0.0) -> float:
        if raw is None or raw == "":
            return default
        if isinstance(raw, bool):
            self.errors.append(f"{where} must be a number, got {raw!r}")
            return default
        try:
            return float(raw)
        except (TypeError, ValueError):
            self.errors.append(f"{where} must be a number, got {raw!r}")
            return default

    def _int(self, raw: Any, where: str, default: int = 0) -> int:
        value = self._float(raw, where, float(default))
        if not math.isfinite(value) or value != int(value):
            self.errors.append(f"{where} must be a whole number, got {raw!r}")
            return default
        return int(value)

    @staticmethod
    def _bool(raw: Any, default: bool = False) -> bool:
        if raw is None:
            return default
        if isinstance(raw, str):
            return raw.strip().lower() in ("true", "1", "yes")
        return bool(raw)

    @staticmethod
    def _str(raw: Any) -> str:
        return "" if raw is None else str(raw).strip()

    @staticmethod
    def _obj(raw: Any) -> Mapping[str, Any]:
        return raw if isinstance(raw, Mapping) else {}

    @staticmethod
    def _list(raw: Any) -> list[Any]:
        return list(raw) if isinstance(raw, list) else []

    def _tags(self, raw: Any) -> list[str]:
        return [t for t in (self._str(x) for x in self._list(raw)) if t]

    def _effect_ids(self, raw: Any, where: str) -> list[str]:
        ids: list[str] = []
        for i, item in enumerate(self._list(raw)):
            mid = normalize_id(item.get("modifierId") if isinstance(item, Mapping) else item)
            if not mid:
                self.errors.append(f"{where} effects[{i}] has an empty modifierId")
                continue
            ids.append(mid)
        return ids

    # ── Builders ─────────────────────────────────────────────────────

    def _resource(self, raw: Mapping[str, Any]) -> ResourceDef:
        return ResourceDef(
            id=normalize_id(raw.get("id")),
            display_name=self._str(raw.get("displayName")),
            kind=self._str(raw.get("kind")),
            format=dict(self._obj(raw.get("format"))),
        )

    def _node(self, raw: Mapping[str, Any]) -> NodeDef:
        nid = normalize_id(raw.get("id"))
        where = f"Node {nid!r}"
        cycle = self._obj(raw.get("cycle"))
        leveling = self._obj(raw.get("leveling"))
        curve = self._obj(leveling.get("priceCurve"))
        automation = self._obj(raw.get("automation"))
        max_level = leveling.get("maxLevel")
        return NodeDef(
            id=nid,
            type=self._str(raw.get("type")),
            display_name=self._str(raw.get("displayName")),
            zone_id=normalize_id(raw.get("zoneId")),
            tags=self._tags(raw.get("tags")),
            cycle=CycleDef(
                base_duration_seconds=self._float(
                    cycle.get("baseDurationSeconds"), f"{where} cycle", 1.0
                )
            ),
            outputs=[
                OutputDef(
                    resource=normalize_id(o.get("resource")),
                    mode=self._str(o.get("mode")) or "perCycle",
                    amount_per_cycle=self._float(o.get("amountPerCycle"), f"{where} output"),
                    base_per_second=self._float(o.get("basePerSecond"), f"{where} output"),
                    base_payout=self._float(o.get("basePayout"), f"{where} output"),
                )
                for o in self._list(raw.get("outputs"))
                if isinstance(o, Mapping)
            ],
            inputs=[
                NodeInputDef(
                    resource=normalize_id(i.get("resource")),
                    amount_per_cycle=self._float(i.get("amountPerCycle"), f"{where} input"),
                )
                for i in self._list(raw.get("inputs"))
                if isinstance(i, Mapping)
            ],
            leveling=LevelingDef(
                level_resource=normalize_id(leveling.get("levelResource")),
                base_level=self._int(leveling.get("baseLevel"), f"{where} baseLevel"),
                max_level=(
                    None
                    if max_level is None
                    else self._int(max_level, f"{where} maxLevel")
                ),
                price_curve=PriceCurveDef(
                    type=self._str(curve.get("type")) or "fixed",
                    base_price=self._float(curve.get("basePrice"), f"{where} basePrice"),
                    growth=self._float(curve.get("growth"), f"{where} growth", 1.0),
                    increment=self._float(curve.get("increment"), f"{where} increment"),
                ),
            ),
            automation=AutomationDef(
                policy=self._str(automation.get("policy")),
                auto_collect=self._bool(automation.get("autoCollect")),
                auto_restart=self._bool(automation.get("autoRestart")),
            ),
        )

    def _node_instance(self, raw: Mapping[str, Any]) -> NodeInstanceDef:
        iid = normalize_id(raw.get("id"))
        initial = self._obj(raw.get("initialState"))
        return NodeInstanceDef(
            id=iid,
            node_id=normalize_id(raw.get("nodeId")),
            zone_id=normalize_id(raw.get("zoneId")),
            display_name_override=self._str(raw.get("displayNameOverride")),
            tags=self._tags(raw.get("tags")),
            initial_state=InitialStateDef(
                level=self._int(initial.get("level"), f"Node instance {iid!r} level"),
                enabled=self._bool(initial.get("enabled"), True),
            ),
        )

    def _modifier(self, raw: Mapping[str, Any]) -> ModifierDef:
        mid = normalize_id(raw.get("id"))
        scope = self._obj(raw.get("scope"))
        raw_target = self._str(raw.get("target"))
        target, recognized, legacy = canonicalize_modifier_path(raw_target)
        if legacy:
            self.diagnostics.append(
                f"Modifier {mid!r} target {raw_target!r} normalized to {target!r}; "
                f"prefer bracket form"
            )
        modifier = ModifierDef(
            id=mid,
            source=self._str(raw.get("source")),
            zone_id=normalize_id(raw.get("zoneId")),
            scope=ModifierScope(
                kind=self._str(scope.get("kind")) or "global",
                zone_id=normalize_id(scope.get("zoneId")),
                node_id=normalize_id(scope.get("nodeId")),
                node_tag=self._str(scope.get("nodeTag")),
                resource=normalize_id(scope.get("resource")),
            ),
            operation=self._str(raw.get("operation")) or "multiply",
            target=target,
            value=self._float(raw.get("value"), f"Modifier {mid!r} value", 1.0),
        )
        if modifier.parsed_target.kind is ModifierKind.UNKNOWN:
            state = "unsupported" if recognized else "unrecognized"
            self.diagnostics.append(
                f"Modifier {mid!r} has {state} target {target!r} and will have no effect"
            )
        return modifier

    def _upgrade(self, raw: Mapping[str, Any]) -> UpgradeDef:
        uid = normalize_id(raw.get("id"))
        where = f"Upgrade {uid!r}"
        max_rank = raw.get("maxRank")
        return UpgradeDef(
            id=uid,
            display_name=self._str(raw.get("displayName")),
            category=self._str(raw.get("category")),
            zone_id=normalize_id(raw.get("zoneId")),
            cost=[
                CostItem(resource=normalize_id(c.get("resource")), amount=c.get("amount"))
                for c in self._list(raw.get("cost"))
                if isinstance(c, Mapping)
            ],
            repeatable=self._bool(raw.get("repeatable")),
            max_rank=None if max_rank is None else self._int(max_rank, f"{where} maxRank"),
            effects=self._effect_ids(raw.get("effects"), where),
            tags=self._tags(raw.get("tags")),
            enabled=self._bool(raw.get("enabled"), True),
        )

    def _milestone(self, raw: Mapping[str, Any]) -> MilestoneDef:
        mid = normalize_id(raw.get("id"))
        return MilestoneDef(
            id=mid,
            node_id=normalize_id(raw.get("nodeId")),
            zone_id=normalize_id(raw.get("zoneId")),
            at_level=self._int(raw.get("atLevel"), f"Milestone {mid!r} atLevel"),
            grant_effects=self._effect_ids(raw.get("grantEffects"), f"Milestone {mid!r}"),
        )

    def _buff(self, raw: Mapping[str, Any]) -> BuffDef:
        bid = normalize_id(raw.get("id"))
        where = f"Buff {bid!r}"
        effects = self._effect_ids(raw.get("effects"), where)
        if not effects:
            effects_json = self._str(raw.get("effects_json"))
            if effects_json:
                effects = self._effect_ids(_decode_effects_json(bid, effects_json), where)
        return BuffDef(
            id=bid,
            display_name=self._str(raw.get("displayName")),
            zone_id=normalize_id(raw.get("zoneId")),
            duration_seconds=self._float(raw.get("durationSeconds"), f"{where} duration"),
            stacking=self._str(raw.get("stacking")) or "none",
            effects=effects,
            tags=self._tags(raw.get("tags")),
        )

    def _buy_mode(self, raw: Mapping[str, Any]) -> BuyModeDef:
        bid = normalize_id(raw.get("id"))
        return BuyModeDef(
            id=bid,
            display_name=self._str(raw.get("displayName")),
            kind=self._str(raw.get("kind")) or "fixed",
            fixed_count=self._int(raw.get("fixedCount"), f"Buy mode {bid!r}", 1),
        )

    def _trigger(self, raw: Mapping[str, Any]) -> TriggerDef:
        tid = normalize_id(raw.get("id"))
        explicit = self._str(raw.get("eventType"))
        alias = self._str(raw.get("event"))
        if explicit and alias and explicit != alias:
            self.diagnostics.append(
                f"Trigger {tid!r} has conflicting event {alias!r} and eventType "
                f"{explicit!r}; using eventType"
            )
        event_type = explicit or alias
        if tid and event_type not in SUPPORTED_EVENT_TYPES:
            raise UnsupportedEventType(tid, event_type)
        return TriggerDef(
            id=tid,
            event_type=event_type,
            scope=dict(self._obj(raw.get("scope"))),
            conditions=[
                ConditionDef(type=self._str(c.get("type")), args=dict(self._obj(c.get("args"))))
                for c in self._list(raw.get("conditions"))
                if isinstance(c, Mapping)
            ],
            actions=[
                ActionDef(
                    type=self._str(a.get("type")),
                    reward_pool_id=normalize_id(a.get("rewardPoolId")),
                )
                for a in self._list(raw.get("actions"))
                if isinstance(a, Mapping)
            ],
        )

    def _reward_pool(self, raw: Mapping[str, Any]) -> RewardPoolDef:
        pid = normalize_id(raw.get("id"))
        rewards: list[RewardEntryDef] = []
        for i, entry in enumerate(self._list(raw.get("rewards"))):
            where = f"Reward pool {pid!r} rewards[{i}]"
            if not isinstance(entry, Mapping):
                self.errors.append(f"{where} must be an object")
                continue
            action = self._obj(entry.get("action"))
            rewards.append(
                RewardEntryDef(
                    weight=self._float(entry.get("weight"), f"{where} weight", 1.0),
                    action=RewardActionDef(
                        type=self._str(action.get("type")),
                        resource_id=normalize_id(action.get("resourceId")),
                        amount=self._float(action.get("amount"), f"{where} amount"),
                    ),
                )
            )
        return RewardPoolDef(id=pid, rewards=rewards)

    def _unlock_entry(self, raw: Mapping[str, Any]) -> UnlockGraphEntry:
        target = normalize_id(raw.get("targetNodeInstanceId"))
        if not target:
            for unlock in self._list(raw.get("unlocks")):
                if isinstance(unlock, Mapping) and self._str(unlock.get("kind")).lower() == "nodeinstance":
                    target = normalize_id(unlock.get("id"))
                    if target:
                        break
        uid = normalize_id(raw.get("id"))
        requirements = []
        for r in self._list(raw.get("requirements")):
            if not isinstance(r, Mapping):
                continue
            args = self._obj(r.get("args"))
            where = f"Unlock {uid!r} requirement"
            min_level = self._int(r.get("minLevel"), where)
            if min_level <= 0:
                min_level = self._int(args.get("minLevel"), where) or self._int(
                    args.get("level"), where
                )
            requirements.append(
                UnlockRequirementDef(
                    type=self._str(r.get("type")),
                    node_instance_id=(
                        normalize_id(r.get("nodeInstanceId"))
                        or normalize_id(args.get("nodeInstanceId"))
                        or normalize_id(args.get("id"))
                    ),
                    min_level=min_level,
                    upgrade_id=normalize_id(r.get("upgradeId")) or normalize_id(args.get("upgradeId")),
                )
            )
        return UnlockGraphEntry(
            id=uid,
            target_node_instance_id=target,
            zone_id=normalize_id(raw.get("zoneId")),
            requirements=requirements,
        )

    def _computed_var(self, raw: Mapping[str, Any]) -> ComputedVarDef:
        cid = normalize_id(raw.get("id"))
        depends_on = [
            self._formula_path(self._str(p), f"computedVars {cid!r} dependsOn")
            for p in self._list(raw.get("dependsOn"))
            if self._str(p)
        ]
        return ComputedVarDef(id=cid, depends_on=depends_on)

    def _formula(self, raw: Any, where: str) -> FormulaDef:
        obj = self._obj(raw)
        return FormulaDef(
            type=self._str(obj.get("type")),
            based_on=self._formula_path(self._str(obj.get("basedOn")), where),
            multiplier=self._float(obj.get("multiplier"), f"{where} multiplier", 1.0),
            offset=self._float(obj.get("offset"), f"{where} offset"),
        )

    def _formula_path(self, raw: str, where: str) -> str:
        if not raw:
            return raw
        path, recognized, legacy = canonicalize_formula_path(raw)
        if not recognized:
            self.diagnostics.append(f"{where} path {raw!r} is not a recognized form")
        elif legacy:
            self.diagnostics.append(
                f"{where} {raw!r} normalized to {path!r}; prefer bracket form"
            )
        return path

    def _prestige(self, raw: Any) -> PrestigeDef:
        if not isinstance(raw, Mapping):
            return PrestigeDef()
        formula = raw.get("formula")
        return PrestigeDef(
            enabled=self._bool(raw.get("enabled")),
            zone_id=normalize_id(raw.get("zoneId")),
            prestige_resource=normalize_id(raw.get("prestigeResource")),
            formula=(
                self._formula(formula, "prestige.formula.basedOn")
                if isinstance(formula, Mapping)
                else None
            ),
            reset_scopes={
                str(k): self._bool(v) for k, v in self._obj(raw.get("resetScopes")).items()
            },
            meta_upgrades=[
                MetaUpgradeDef(
                    id=normalize_id(m.get("id")),
                    computed=self._formula(
                        m.get("computed"), f"prestige.metaUpgrades[{i}].computed.basedOn"
                    ),
                    writes_to_state=self._str(m.get("writesToState")),
                )
                for i, m in enumerate(self._list(raw.get("metaUpgrades")))
                if isinstance(m, Mapping)
            ],
        )


def _decode_effects_json(buff_id: str, text: str) -> list[Any]:
    """Decode a buff's embedded effects: one effect object or a list of them."""
    try:
        decoded = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidEmbeddedJson(buff_id, str(exc)) from exc

    if isinstance(decoded, list):
        items = decoded
    elif isinstance(decoded, Mapping) and "modifierId" in decoded:
        items = [decoded]
    elif isinstance(decoded, Mapping) and isinstance(decoded.get("items"), list):
        items = decoded["items"]
    else:
        raise InvalidEmbeddedJson(buff_id, "expected an effect object or a list of effects")

    for i, item in enumerate(items):
        if not isinstance(item, Mapping) or not normalize_id(item.get("modifierId")):
            raise InvalidEmbeddedJson(buff_id, f"effect [{i}] has no modifierId")
    return items
