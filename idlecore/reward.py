from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from idlecore.errors import (
    ContentValidationError,
    DuplicateId,
    InvalidRewardPoolError,
    UnsupportedRuleError,
)

if TYPE_CHECKING:
    from idlecore.ledger import Ledger

logger = logging.getLogger(__name__)

GRANT_RESOURCE = "grantResource"
REWARD_ACTION_TYPES = (GRANT_RESOURCE,)


@dataclass
class RewardActionDef:
    type: str = GRANT_RESOURCE
    resource_id: str = ""
    amount: float = 0.0


@dataclass
class RewardEntryDef:
    weight: float = 1.0
    action: RewardActionDef = field(default_factory=RewardActionDef)


@dataclass
class RewardPoolDef:
    """A weighted set of reward actions; one is chosen per roll."""

    id: str
    rewards: list[RewardEntryDef] = field(default_factory=list)

    def total_weight(self) -> float:
        """Sum of weights, raising if any weight is unusable."""
        if not self.rewards:
            raise InvalidRewardPoolError(f"Reward pool {self.id!r} has no rewards")
        total = 0.0
        for i, entry in enumerate(self.rewards):
            if not math.isfinite(entry.weight) or entry.weight < 0.0:
                raise InvalidRewardPoolError(
                    f"Reward pool {self.id!r} rewards[{i}] has invalid weight "
                    f"{entry.weight!r}"
                )
            total += entry.weight
        if total <= 0.0:
            raise InvalidRewardPoolError(
                f"Reward pool {self.id!r} has no positive weight"
            )
        return total


class RewardRoller:
    """Rolls reward pools and applies the chosen action to the ledger."""

    def __init__(
        self,
        pools: list[RewardPoolDef],
        ledger: Ledger,
        rng: random.Random | None = None,
    ) -> None:
        self._ledger = ledger
        self._rng = rng or random.Random()
        self._pools: dict[str, RewardPoolDef] = {}
        for pool in pools:
            if not pool.id:
                raise ContentValidationError("Reward pool with empty id")
            if pool.id in self._pools:
                raise DuplicateId("reward pool", pool.id)
            self._pools[pool.id] = pool

    def has_pool(self, pool_id: str) -> bool:
        return pool_id in self._pools

    def choose(self, pool_id: str) -> RewardEntryDef:
        """Pick one entry with probability proportional to its weight."""
        pool = self._pools.get(pool_id.strip())
        if pool is None:
            raise InvalidRewardPoolError(f"Unknown reward pool: {pool_id!r}")
        total = pool.total_weight()

        roll = self._rng.random() * total
        cumulative = 0.0
        chosen: RewardEntryDef | None = None
        for entry in pool.rewards:
            if entry.weight <= 0.0:
                continue
            chosen = entry
            cumulative += entry.weight
            if roll < cumulative:
                break
        if chosen is None:
            raise InvalidRewardPoolError(f"Reward pool {pool_id!r} has no positive weight")
        # the last positive entry if float rounding left roll == total
        return chosen

    def roll(self, pool_id: str) -> RewardEntryDef:
        """Choose an entry from *pool_id* and apply its action."""
        entry = self.choose(pool_id)
        action = entry.action
        if action.type != GRANT_RESOURCE:
            raise UnsupportedRuleError(
                f"Reward pool {pool_id!r} uses unsupported action type {action.type!r}"
            )
        logger.info(
            "Reward pool %r granted %s x %r", pool_id, action.amount, action.resource_id
        )
        self._ledger.add(action.resource_id, action.amount)
        return entry
