from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field

from idlecore.definition import GameDefinition
from idlecore.errors import ContentValidationError
from idlecore.events import EventBus, MilestoneFired
from idlecore.ledger import Ledger
from idlecore.milestone import MilestoneTracker
from idlecore.node import GeneratorState
from idlecore.offline import OfflineConfig, OfflineProgressSimulator, ResourceGainBatch
from idlecore.paths import FORMULA_BASES, parse_path
from idlecore.resolver import ModifierResolver, active_modifiers
from idlecore.reward import RewardRoller
from idlecore.store import InMemoryStateStore, StateStore
from idlecore.trigger import TriggerEngine
from idlecore.unlock import UnlockTracker

logger = logging.getLogger(__name__)


@dataclass
class SessionConfig:
    """Settings for one play session."""

    offline: OfflineConfig = field(default_factory=OfflineConfig)
    seed: int | None = None


class GameSession:
    """Wires the economy components together for one player's state."""

    def __init__(
        self,
        definition: GameDefinition,
        store: StateStore | None = None,
        config: SessionConfig | None = None,
    ) -> None:
        errors = definition.validate()
        if errors:
            raise ContentValidationError.from_errors(errors)

        self.definition = definition
        self.store = store if store is not None else InMemoryStateStore()
        self.config = config or SessionConfig()
        self.bus = EventBus()

        self._ensure_generator_states()
        self.resolver = ModifierResolver(
            definition, active_modifiers(definition, self.store)
        )
        self.ledger = Ledger(definition.resources, self.store, self.resolver, self.bus)
        self.ledger.load_from_store()
        self.rewards = RewardRoller(
            definition.reward_pools, self.ledger, random.Random(self.config.seed)
        )
        self.triggers = TriggerEngine(definition.triggers, self.rewards, self.bus)
        self.milestones = MilestoneTracker(definition, self.store, self.bus)
        self.unlocks = UnlockTracker(definition.unlock_graph, self.store)
        self.offline = OfflineProgressSimulator(
            definition, self.resolver, self.config.offline
        )

        # Registered after the trigger engine: rewards roll before grants apply
        self.bus.subscribe(MilestoneFired, self._on_milestone_fired)

    def _ensure_generator_states(self) -> None:
        for inst in self.definition.node_instances:
            if self.store.get_generator_state(inst.id) is not None:
                continue
            level = inst.initial_state.level
            self.store.set_generator_state(
                GeneratorState(
                    id=inst.id,
                    level=level,
                    owned=level > 0,
                    enabled=inst.initial_state.enabled,
                )
            )

    # ── Session lifecycle ────────────────────────────────────────────

    def start(self, now: float | None = None) -> ResourceGainBatch:
        """Credit offline progress since the last stored visit."""
        now = time.time() if now is None else now
        last_seen = self.store.get_last_seen()
        elapsed = now - last_seen if last_seen is not None else 0.0
        batch = self.simulate_offline(elapsed)
        self.ledger.apply_gains(batch)
        self.store.set_last_seen(now)
        self.store.request_save()
        return batch

    def simulate_offline(self, elapsed_seconds: float) -> ResourceGainBatch:
        """Compute, without applying, what *elapsed_seconds* away would earn."""
        return self.offline.simulate(elapsed_seconds, self.store.get_generator_states())

    def refresh_modifiers(self) -> None:
        self.resolver.rebuild(active_modifiers(self.definition, self.store))

    def _on_milestone_fired(self, event: MilestoneFired) -> None:
        self.refresh_modifiers()

    # ── Player actions ───────────────────────────────────────────────

    def level_price(self, node_instance_id: str) -> dict[str, float]:
        """Cost of the next level of a node instance."""
        node = self.definition.node_for_instance(node_instance_id)
        state = self.store.get_generator_state(node_instance_id)
        if node is None or state is None or not node.leveling.level_resource:
            return {}
        return {
            node.leveling.level_resource: node.leveling.price_for_level(state.level)
        }

    def level_up(self, node_instance_id: str) -> bool:
        """Buy one level of a node instance. Returns True on success."""
        node = self.definition.node_for_instance(node_instance_id)
        state = self.store.get_generator_state(node_instance_id)
        if node is None or state is None:
            return False
        if node.leveling.is_maxed(state.level):
            return False

        cost = [
            {"resource": rid, "amount": amount}
            for rid, amount in self.level_price(node_instance_id).items()
        ]
        if not self.ledger.try_spend(cost):
            return False

        state.level += 1
        state.owned = True
        self.store.set_generator_state(state)
        self.store.request_save()
        self.milestones.evaluate(node_instance_id, state.level)
        self.unlocks.evaluate()
        return True

    def purchase_upgrade(self, upgrade_id: str) -> bool:
        """Buy one rank of an upgrade. Returns True on success."""
        up = self.definition.get_upgrade(upgrade_id)
        if up is None or not up.enabled:
            return False
        count = self.store.get_upgrade_counts().get(up.id, 0)
        if not up.repeatable and count >= 1:
            return False
        if up.max_rank is not None and count >= up.max_rank:
            return False
        if not self.ledger.try_spend(up.cost):
            return False

        self.store.set_upgrade_count(up.id, count + 1)
        self.store.request_save()
        self.refresh_modifiers()
        self.unlocks.evaluate()
        return True

    def set_automation(self, node_instance_id: str, purchased: bool = True) -> bool:
        state = self.store.get_generator_state(node_instance_id)
        if state is None:
            return False
        state.automation_purchased = purchased
        if purchased:
            state.owned = True
        self.store.set_generator_state(state)
        self.store.request_save()
        return True

    # ── Prestige ─────────────────────────────────────────────────────

    def prestige_reward(self) -> float:
        """Prestige currency a reset would grant right now."""
        prestige = self.definition.prestige
        if not prestige.enabled or prestige.formula is None:
            return 0.0
        parsed = parse_path(prestige.formula.based_on, FORMULA_BASES)
        if parsed is None:
            return 0.0
        if parsed.base == "lifetimeEarnings":
            value = self.store.get_lifetime_earnings(parsed.param)
        else:
            value = self.ledger.get_balance(parsed.param)
        return prestige.formula.evaluate(value)
