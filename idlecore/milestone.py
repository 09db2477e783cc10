from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from idlecore.events import EventBus, MilestoneFired

if TYPE_CHECKING:
    from idlecore.definition import GameDefinition
    from idlecore.store import StateStore

logger = logging.getLogger(__name__)


@dataclass
class MilestoneDef:
    """A one-time event that fires when a node reaches a level."""

    id: str
    node_id: str = ""
    zone_id: str = ""
    at_level: int = 0
    grant_effects: list[str] = field(default_factory=list)


class MilestoneTracker:
    """Emits MilestoneFired exactly once per milestone.

    Firing state lives in the store, so a milestone that fired in an
    earlier session never fires again.
    """

    def __init__(
        self, definition: GameDefinition, store: StateStore, bus: EventBus
    ) -> None:
        self._definition = definition
        self._store = store
        self._bus = bus
        self._by_node: dict[str, list[MilestoneDef]] = {}
        for m in definition.milestones:
            self._by_node.setdefault(m.node_id, []).append(m)
        for milestones in self._by_node.values():
            milestones.sort(key=lambda m: m.at_level)

    def milestones_for_node(self, node_id: str) -> list[MilestoneDef]:
        return list(self._by_node.get(node_id, ()))

    def evaluate(self, node_instance_id: str, level: int) -> list[str]:
        """Fire every reached, unfired milestone for the instance's node."""
        instance = self._definition.get_node_instance(node_instance_id)
        if instance is None:
            return []

        fired: list[str] = []
        for m in self._by_node.get(instance.node_id, ()):
            if level < m.at_level or self._store.is_milestone_fired(m.id):
                continue
            logger.info(
                "Milestone %r reached by %r at level %d", m.id, node_instance_id, level
            )
            self._fire(m, m.zone_id or instance.zone_id)
            fired.append(m.id)
        return fired

    def fire(self, milestone_id: str) -> bool:
        """Fire one milestone directly. Returns False if it already fired."""
        m = self._definition.get_milestone(milestone_id)
        if m is None:
            raise KeyError(f"Unknown milestone: {milestone_id!r}")
        if self._store.is_milestone_fired(m.id):
            return False
        self._fire(m, m.zone_id)
        return True

    def _fire(self, m: MilestoneDef, zone_id: str) -> None:
        # Marked before publishing so a re-entrant evaluate cannot fire it twice
        self._store.mark_milestone_fired(m.id)
        self._bus.publish(
            MilestoneFired(
                milestone_id=m.id,
                node_id=m.node_id,
                zone_id=zone_id,
                at_level=m.at_level,
            )
        )
        self._store.request_save()
