from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, TypeVar

from idlecore.buff import BuffDef, BuyModeDef
from idlecore.milestone import MilestoneDef
from idlecore.modifier import ModifierDef
from idlecore.node import NodeDef, NodeInstanceDef
from idlecore.prestige import PrestigeDef
from idlecore.resource import ResourceDef
from idlecore.reward import RewardPoolDef
from idlecore.trigger import TriggerDef
from idlecore.unlock import UnlockGraphEntry
from idlecore.upgrade import UpgradeDef

T = TypeVar("T")


class DuplicatePolicy(Enum):
    FAIL = auto()
    FIRST_WINS = auto()


# Per-table handling of repeated ids. Upgrades keep the first definition
# and drop the rest; every other table refuses to load.
DUPLICATE_POLICY: dict[str, DuplicatePolicy] = {
    "resources": DuplicatePolicy.FAIL,
    "nodes": DuplicatePolicy.FAIL,
    "nodeInstances": DuplicatePolicy.FAIL,
    "modifiers": DuplicatePolicy.FAIL,
    "upgrades": DuplicatePolicy.FIRST_WINS,
    "milestones": DuplicatePolicy.FAIL,
    "buffs": DuplicatePolicy.FAIL,
    "buyModes": DuplicatePolicy.FAIL,
    "triggers": DuplicatePolicy.FAIL,
    "rewardPools": DuplicatePolicy.FAIL,
    "unlockGraph": DuplicatePolicy.FAIL,
    "computedVars": DuplicatePolicy.FAIL,
}


@dataclass
class GameConfig:
    """Top-level content metadata."""

    name: str = "Untitled"


@dataclass
class ComputedVarDef:
    """A derived value depending on resource-qualified paths."""

    id: str
    depends_on: list[str] = field(default_factory=list)


def _index(items: list[T], key: Callable[[T], str]) -> dict[str, T]:
    out: dict[str, T] = {}
    for item in items:
        k = key(item)
        if k and k not in out:
            out[k] = item
    return out


@dataclass
class GameDefinition:
    """Complete static content of an idle economy."""

    config: GameConfig = field(default_factory=GameConfig)
    resources: list[ResourceDef] = field(default_factory=list)
    nodes: list[NodeDef] = field(default_factory=list)
    node_instances: list[NodeInstanceDef] = field(default_factory=list)
    modifiers: list[ModifierDef] = field(default_factory=list)
    upgrades: list[UpgradeDef] = field(default_factory=list)
    milestones: list[MilestoneDef] = field(default_factory=list)
    buffs: list[BuffDef] = field(default_factory=list)
    buy_modes: list[BuyModeDef] = field(default_factory=list)
    triggers: list[TriggerDef] = field(default_factory=list)
    reward_pools: list[RewardPoolDef] = field(default_factory=list)
    unlock_graph: list[UnlockGraphEntry] = field(default_factory=list)
    computed_vars: list[ComputedVarDef] = field(default_factory=list)
    prestige: PrestigeDef = field(default_factory=PrestigeDef)
    diagnostics: list[str] = field(default_factory=list)

    # Lookup dicts built in __post_init__
    _resources_by_id: dict[str, ResourceDef] = field(
        default_factory=dict, init=False, repr=False
    )
    _nodes_by_id: dict[str, NodeDef] = field(default_factory=dict, init=False, repr=False)
    _instances_by_id: dict[str, NodeInstanceDef] = field(
        default_factory=dict, init=False, repr=False
    )
    _modifiers_by_id: dict[str, ModifierDef] = field(
        default_factory=dict, init=False, repr=False
    )
    _upgrades_by_id: dict[str, UpgradeDef] = field(
        default_factory=dict, init=False, repr=False
    )
    _milestones_by_id: dict[str, MilestoneDef] = field(
        default_factory=dict, init=False, repr=False
    )
    _buffs_by_id: dict[str, BuffDef] = field(default_factory=dict, init=False, repr=False)
    _pools_by_id: dict[str, RewardPoolDef] = field(
        default_factory=dict, init=False, repr=False
    )

    def __post_init__(self) -> None:
        self._resources_by_id = _index(self.resources, lambda r: r.id)
        self._nodes_by_id = _index(self.nodes, lambda n: n.id)
        self._instances_by_id = _index(self.node_instances, lambda i: i.id)
        self._modifiers_by_id = _index(self.modifiers, lambda m: m.id)
        self._upgrades_by_id = _index(self.upgrades, lambda u: u.id)
        self._milestones_by_id = _index(self.milestones, lambda m: m.id)
        self._buffs_by_id = _index(self.buffs, lambda b: b.id)
        self._pools_by_id = _index(self.reward_pools, lambda p: p.id)

    def get_resource(self, id: str) -> ResourceDef | None:
        return self._resources_by_id.get(id)

    def get_node(self, id: str) -> NodeDef | None:
        return self._nodes_by_id.get(id)

    def get_node_instance(self, id: str) -> NodeInstanceDef | None:
        return self._instances_by_id.get(id)

    def get_modifier(self, id: str) -> ModifierDef | None:
        return self._modifiers_by_id.get(id)

    def get_upgrade(self, id: str) -> UpgradeDef | None:
        return self._upgrades_by_id.get(id)

    def get_milestone(self, id: str) -> MilestoneDef | None:
        return self._milestones_by_id.get(id)

    def get_buff(self, id: str) -> BuffDef | None:
        return self._buffs_by_id.get(id)

    def get_reward_pool(self, id: str) -> RewardPoolDef | None:
        return self._pools_by_id.get(id)

    def node_for_instance(self, instance_id: str) -> NodeDef | None:
        instance = self.get_node_instance(instance_id)
        if instance is None:
            return None
        return self.get_node(instance.node_id)

    def node_tags(self) -> set[str]:
        """Every node tag in the content, lower-cased."""
        return {t.strip().lower() for n in self.nodes for t in n.tags if t.strip()}

    def validate(self) -> list[str]:
        """Check cross-references. Returns list of error messages."""
        from idlecore.validation import validate_definition

        return validate_definition(self)
