"""Closed-form production for time spent away from the game."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable

from idlecore._types import require_finite, sanitize_multiplier

if TYPE_CHECKING:
    from idlecore.definition import GameDefinition
    from idlecore.node import GeneratorState
    from idlecore.resolver import ModifierResolver

logger = logging.getLogger(__name__)

PRIMARY_RESOURCE = "currencySoft"
MIN_CYCLE_SECONDS = 0.0001
MEANINGFUL_GAIN = 1e-7


@dataclass
class OfflineConfig:
    """Offline accrual settings."""

    primary_resource: str = PRIMARY_RESOURCE
    min_cycle_seconds: float = MIN_CYCLE_SECONDS
    max_offline_seconds: float | None = None


@dataclass
class ResourceGainBatch:
    """Gains per resource accumulated over one offline period."""

    elapsed_seconds: float = 0.0
    gains: dict[str, float] = field(default_factory=dict)

    def add_gain(self, resource_id: str, amount: float) -> None:
        if not math.isfinite(amount) or amount <= 0.0:
            return
        self.gains[resource_id] = self.gains.get(resource_id, 0.0) + amount

    def amount_for(self, resource_id: str) -> float:
        return self.gains.get(resource_id, 0.0)

    def total(self) -> float:
        return sum(self.gains.values())

    def has_meaningful_gain(self, threshold: float = MEANINGFUL_GAIN) -> bool:
        return any(v > threshold for v in self.gains.values())


class OfflineProgressSimulator:
    """Integrates automated production over an elapsed duration.

    Each qualifying node instance produces whole cycles only:
    ``floor(elapsed / cycle)`` cycles of its per-cycle output, scaled by
    level and every applicable multiplier. No tick loop is replayed.
    """

    def __init__(
        self,
        definition: GameDefinition,
        resolver: ModifierResolver | None = None,
        config: OfflineConfig | None = None,
    ) -> None:
        self.definition = definition
        self.resolver = resolver
        self.config = config or OfflineConfig()

    def simulate(
        self, elapsed_seconds: float, generator_states: Iterable[GeneratorState]
    ) -> ResourceGainBatch:
        elapsed = max(0.0, require_finite(elapsed_seconds, "Elapsed seconds"))
        cap = self.config.max_offline_seconds
        if cap is not None:
            elapsed = min(elapsed, max(0.0, cap))

        batch = ResourceGainBatch(elapsed_seconds=elapsed)
        if elapsed <= 0.0:
            return batch

        states: dict[str, GeneratorState] = {}
        for state in generator_states:
            if state.id and state.id not in states:
                states[state.id] = state

        resource_id = self.config.primary_resource
        for instance in self.definition.node_instances:
            state = states.get(instance.id)
            if state is None or not self._qualifies(state):
                continue
            node = self.definition.get_node(instance.node_id)
            if node is None:
                continue
            output = node.output_for(resource_id)
            if output is None:
                continue

            base_cycle = max(self.config.min_cycle_seconds, node.cycle.base_duration_seconds)
            per_cycle = output.per_cycle(base_cycle)
            if per_cycle <= 0.0:
                continue

            speed = self._multiplier("speed", instance.id, resource_id)
            cycle = max(self.config.min_cycle_seconds, base_cycle / speed)
            cycles = math.floor(elapsed / cycle)
            if cycles <= 0:
                continue

            level = max(1, state.level)
            gain = (
                per_cycle
                * level
                * self._multiplier("output", instance.id, resource_id)
                * cycles
                * self._multiplier("gain", instance.id, resource_id)
            )
            batch.add_gain(resource_id, gain)

        logger.info(
            "Offline progress over %.0fs: %s", elapsed, batch.gains or "no gains"
        )
        return batch

    def _qualifies(self, state: GeneratorState) -> bool:
        purchased = state.automation_purchased or state.automated
        owned = state.owned or purchased
        automated = purchased or (
            self.resolver is not None and self.resolver.is_automation_enabled(state.id)
        )
        return owned and automated

    def _multiplier(self, which: str, instance_id: str, resource_id: str) -> float:
        if self.resolver is None:
            return 1.0
        if which == "speed":
            value = self.resolver.node_speed_multiplier(instance_id)
        elif which == "output":
            value = self.resolver.node_output_multiplier(instance_id, resource_id)
        else:
            value = self.resolver.resource_gain_multiplier(resource_id)
        return sanitize_multiplier(value)
