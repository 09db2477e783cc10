from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from idlecore._types import compare

if TYPE_CHECKING:
    from idlecore.store import StateStore

logger = logging.getLogger(__name__)


class Requirement(ABC):
    """Base class for unlock requirements: boolean conditions on stored state."""

    @abstractmethod
    def evaluate(self, store: StateStore) -> bool: ...

    def __and__(self, other: Requirement) -> Requirement:
        return _AllRequirement([self, other])

    def __or__(self, other: Requirement) -> Requirement:
        return _AnyRequirement([self, other])


# ── Private implementations ──────────────────────────────────────────


class _NodeOwnedRequirement(Requirement):
    def __init__(self, node_instance_id: str) -> None:
        self.node_instance_id = node_instance_id

    def evaluate(self, store: StateStore) -> bool:
        state = store.get_generator_state(self.node_instance_id)
        return state is not None and state.owned


class _NodeLevelRequirement(Requirement):
    def __init__(self, node_instance_id: str, op: str, level: int) -> None:
        self.node_instance_id = node_instance_id
        self.op = op
        self.level = level

    def evaluate(self, store: StateStore) -> bool:
        state = store.get_generator_state(self.node_instance_id)
        current = state.level if state is not None else 0
        return compare(current, self.op, self.level)


class _UpgradePurchasedRequirement(Requirement):
    def __init__(self, upgrade_id: str) -> None:
        self.upgrade_id = upgrade_id

    def evaluate(self, store: StateStore) -> bool:
        return store.get_upgrade_counts().get(self.upgrade_id, 0) > 0


class _AllRequirement(Requirement):
    def __init__(self, reqs: list[Requirement]) -> None:
        self.reqs = reqs

    def evaluate(self, store: StateStore) -> bool:
        return all(r.evaluate(store) for r in self.reqs)


class _AnyRequirement(Requirement):
    def __init__(self, reqs: list[Requirement]) -> None:
        self.reqs = reqs

    def evaluate(self, store: StateStore) -> bool:
        return any(r.evaluate(store) for r in self.reqs)


# ── Public factory ───────────────────────────────────────────────────


class Req:
    """Factory for unlock requirements."""

    @staticmethod
    def node_owned(node_instance_id: str) -> Requirement:
        return _NodeOwnedRequirement(node_instance_id)

    @staticmethod
    def node_level(node_instance_id: str, op: str, level: int) -> Requirement:
        return _NodeLevelRequirement(node_instance_id, op, level)

    @staticmethod
    def upgrade_purchased(upgrade_id: str) -> Requirement:
        return _UpgradePurchasedRequirement(upgrade_id)

    @staticmethod
    def all(*reqs: Requirement) -> Requirement:
        return _AllRequirement(list(reqs))

    @staticmethod
    def any(*reqs: Requirement) -> Requirement:
        return _AnyRequirement(list(reqs))


# ── Content definitions ──────────────────────────────────────────────

REQUIREMENT_TYPES = ("nodeOwned", "nodeLevelAtLeast", "upgradePurchased")


@dataclass
class UnlockRequirementDef:
    type: str
    node_instance_id: str = ""
    min_level: int = 0
    upgrade_id: str = ""

    def build(self) -> Requirement:
        """Turn the authored requirement into an evaluable Requirement."""
        kind = self.type.strip().lower()
        if kind == "nodeowned":
            return Req.node_owned(self.node_instance_id)
        if kind == "nodelevelatleast":
            return Req.node_level(self.node_instance_id, ">=", self.min_level)
        if kind == "upgradepurchased":
            return Req.upgrade_purchased(self.upgrade_id)
        raise ValueError(f"Unknown unlock requirement type: {self.type!r}")


@dataclass
class UnlockGraphEntry:
    """Unlocks a node instance once every requirement holds."""

    id: str
    target_node_instance_id: str
    zone_id: str = ""
    requirements: list[UnlockRequirementDef] = field(default_factory=list)

    def requirement(self) -> Requirement:
        return Req.all(*(r.build() for r in self.requirements))


class UnlockTracker:
    """Evaluates the unlock graph against stored state."""

    def __init__(self, entries: list[UnlockGraphEntry], store: StateStore) -> None:
        self._store = store
        self._entries = [(e, e.requirement()) for e in entries]

    def is_unlocked(self, node_instance_id: str) -> bool:
        return node_instance_id in self._store.get_unlocked_ids()

    def evaluate(self) -> list[str]:
        """Unlock every target whose requirements now hold. Returns new unlocks."""
        unlocked = self._store.get_unlocked_ids()
        newly: list[str] = []
        for entry, req in self._entries:
            target = entry.target_node_instance_id
            if target in unlocked or target in newly:
                continue
            if req.evaluate(self._store):
                self._store.mark_unlocked(target)
                newly.append(target)
                logger.info("Unlocked %r via %r", target, entry.id)
        if newly:
            self._store.request_save()
        return newly
