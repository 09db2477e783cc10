from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from typing import Any

from idlecore._types import normalize_id
from idlecore.node import GeneratorState

logger = logging.getLogger(__name__)


class StateStore(ABC):
    """Persisted player state, as seen by the economy core.

    Implementations own the save format and cadence. ``request_save`` may be
    debounced, but a save must always capture the latest written values.
    """

    # ── Balances ─────────────────────────────────────────────────────

    @abstractmethod
    def get_resource_balances(self) -> dict[str, float]: ...

    @abstractmethod
    def set_resource_balance(self, resource_id: str, balance: float) -> None: ...

    @abstractmethod
    def get_lifetime_earnings(self, resource_id: str) -> float: ...

    @abstractmethod
    def add_lifetime_earnings(self, resource_id: str, amount: float) -> None: ...

    # ── Generators ───────────────────────────────────────────────────

    @abstractmethod
    def get_generator_states(self) -> list[GeneratorState]: ...

    @abstractmethod
    def set_generator_state(self, state: GeneratorState) -> None: ...

    def get_generator_state(self, node_instance_id: str) -> GeneratorState | None:
        for state in self.get_generator_states():
            if state.id == node_instance_id:
                return state
        return None

    # ── Progression ──────────────────────────────────────────────────

    @abstractmethod
    def get_upgrade_counts(self) -> dict[str, int]: ...

    @abstractmethod
    def set_upgrade_count(self, upgrade_id: str, count: int) -> None: ...

    @abstractmethod
    def get_active_buff_ids(self) -> list[str]: ...

    @abstractmethod
    def is_milestone_fired(self, milestone_id: str) -> bool: ...

    @abstractmethod
    def mark_milestone_fired(self, milestone_id: str) -> None: ...

    @abstractmethod
    def get_unlocked_ids(self) -> set[str]: ...

    @abstractmethod
    def mark_unlocked(self, node_instance_id: str) -> None: ...

    # ── Session ──────────────────────────────────────────────────────

    @abstractmethod
    def get_last_seen(self) -> float | None: ...

    @abstractmethod
    def set_last_seen(self, unix_seconds: float) -> None: ...

    @abstractmethod
    def request_save(self) -> None: ...


class InMemoryStateStore(StateStore):
    """Dictionary-backed store; counts save requests instead of writing files."""

    def __init__(self) -> None:
        self.balances: dict[str, float] = {}
        self.lifetime_earnings: dict[str, float] = {}
        self.generators: dict[str, GeneratorState] = {}
        self.upgrade_counts: dict[str, int] = {}
        self.active_buff_ids: list[str] = []
        self.fired_milestones: set[str] = set()
        self.unlocked_ids: set[str] = set()
        self.last_seen: float | None = None
        self.save_requests = 0

    def get_resource_balances(self) -> dict[str, float]:
        return dict(self.balances)

    def set_resource_balance(self, resource_id: str, balance: float) -> None:
        self.balances[resource_id] = balance

    def get_lifetime_earnings(self, resource_id: str) -> float:
        return self.lifetime_earnings.get(resource_id, 0.0)

    def add_lifetime_earnings(self, resource_id: str, amount: float) -> None:
        self.lifetime_earnings[resource_id] = (
            self.lifetime_earnings.get(resource_id, 0.0) + amount
        )

    def get_generator_states(self) -> list[GeneratorState]:
        return [copy.copy(s) for s in self.generators.values()]

    def get_generator_state(self, node_instance_id: str) -> GeneratorState | None:
        state = self.generators.get(node_instance_id)
        return copy.copy(state) if state else None

    def set_generator_state(self, state: GeneratorState) -> None:
        self.generators[state.id] = copy.copy(state)

    def get_upgrade_counts(self) -> dict[str, int]:
        return dict(self.upgrade_counts)

    def set_upgrade_count(self, upgrade_id: str, count: int) -> None:
        self.upgrade_counts[upgrade_id] = count

    def get_active_buff_ids(self) -> list[str]:
        return list(self.active_buff_ids)

    def is_milestone_fired(self, milestone_id: str) -> bool:
        return milestone_id in self.fired_milestones

    def mark_milestone_fired(self, milestone_id: str) -> None:
        self.fired_milestones.add(milestone_id)

    def get_unlocked_ids(self) -> set[str]:
        return set(self.unlocked_ids)

    def mark_unlocked(self, node_instance_id: str) -> None:
        self.unlocked_ids.add(node_instance_id)

    def get_last_seen(self) -> float | None:
        return self.last_seen

    def set_last_seen(self, unix_seconds: float) -> None:
        self.last_seen = unix_seconds

    def request_save(self) -> None:
        self.save_requests += 1

    # ── Snapshots ────────────────────────────────────────────────────

    def to_snapshot(self) -> dict[str, Any]:
        """Plain-data copy of the store, suitable for JSON."""
        return {
            "resources": dict(self.balances),
            "lifetimeEarnings": dict(self.lifetime_earnings),
            "generators": [
                {
                    "id": s.id,
                    "level": s.level,
                    "owned": s.owned,
                    "automated": s.automated,
                    "automationPurchased": s.automation_purchased,
                    "enabled": s.enabled,
                }
                for s in self.generators.values()
            ],
            "upgrades": dict(self.upgrade_counts),
            "activeBuffIds": list(self.active_buff_ids),
            "firedMilestoneIds": sorted(self.fired_milestones),
            "unlockedNodeInstanceIds": sorted(self.unlocked_ids),
            "lastSeenUnixSeconds": self.last_seen,
        }

    @classmethod
    def from_snapshot(cls, data: dict[str, Any]) -> InMemoryStateStore:
        """Rebuild a store from :meth:`to_snapshot` output.

        Generator records with an empty id are skipped; for repeated ids the
        first record wins.
        """
        store = cls()
        store.balances = {
            normalize_id(k): float(v) for k, v in (data.get("resources") or {}).items()
        }
        store.lifetime_earnings = {
            normalize_id(k): float(v)
            for k, v in (data.get("lifetimeEarnings") or {}).items()
        }
        for raw in data.get("generators") or []:
            gid = normalize_id(raw.get("id"))
            if not gid:
                logger.warning("Skipping generator record with empty id")
                continue
            if gid in store.generators:
                logger.warning("Skipping duplicate generator record %r", gid)
                continue
            store.generators[gid] = GeneratorState(
                id=gid,
                level=int(raw.get("level", 0)),
                owned=bool(raw.get("owned", False)),
                automated=bool(raw.get("automated", False)),
                automation_purchased=bool(raw.get("automationPurchased", False)),
                enabled=bool(raw.get("enabled", True)),
            )
        store.upgrade_counts = {
            normalize_id(k): int(v) for k, v in (data.get("upgrades") or {}).items()
        }
        store.active_buff_ids = [
            normalize_id(b) for b in data.get("activeBuffIds") or [] if normalize_id(b)
        ]
        store.fired_milestones = {
            normalize_id(m) for m in data.get("firedMilestoneIds") or [] if normalize_id(m)
        }
        store.unlocked_ids = {
            normalize_id(n)
            for n in data.get("unlockedNodeInstanceIds") or []
            if normalize_id(n)
        }
        last_seen = data.get("lastSeenUnixSeconds")
        store.last_seen = float(last_seen) if last_seen is not None else None
        return store
