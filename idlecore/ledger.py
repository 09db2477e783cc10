from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping

from idlecore._types import EPSILON, normalize_id, parse_amount, require_finite
from idlecore.errors import (
    ContentValidationError,
    DuplicateId,
    InvalidAmountError,
    UnknownResourceError,
)
from idlecore.events import EventBus, IncrementBalance
from idlecore.resource import ResourceDef

if TYPE_CHECKING:
    from idlecore.offline import ResourceGainBatch
    from idlecore.resolver import ModifierResolver
    from idlecore.store import StateStore
    from idlecore.upgrade import CostItem

logger = logging.getLogger(__name__)

BalanceListener = Callable[[str, float], None]


class Ledger:
    """Authoritative resource balances.

    Balances change only through :meth:`add`, :meth:`add_raw`,
    :meth:`try_spend` and :meth:`apply_gains`. Every change is written to the
    store, followed by a save request, and then announced to listeners.
    """

    def __init__(
        self,
        resources: Iterable[ResourceDef],
        store: StateStore | None = None,
        resolver: ModifierResolver | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self._lock = threading.RLock()
        self._store = store
        self._resolver = resolver
        self._resources: dict[str, ResourceDef] = {}
        self._balances: dict[str, float] = {}
        self._listeners: list[BalanceListener] = []

        for res in resources:
            rid = normalize_id(res.id)
            if not rid:
                raise ContentValidationError("Resource with empty id")
            if rid in self._resources:
                raise DuplicateId("resource", rid)
            self._resources[rid] = res
            self._balances[rid] = 0.0

        if bus is not None:
            bus.subscribe(IncrementBalance, self._on_increment)

    def load_from_store(self) -> None:
        """Restore balances persisted in the store."""
        if self._store is None:
            return
        for rid, balance in self._store.get_resource_balances().items():
            if rid not in self._balances:
                logger.error("Stored balance for unknown resource %r skipped", rid)
                continue
            value = require_finite(balance, f"Stored balance of {rid!r}")
            with self._lock:
                self._balances[rid] = value
            self._notify(rid, value)

    # ── Queries ──────────────────────────────────────────────────────

    def get_balance(self, resource_id: str) -> float:
        rid = normalize_id(resource_id)
        with self._lock:
            if rid not in self._balances:
                raise UnknownResourceError(rid)
            return self._balances[rid]

    def balances(self) -> dict[str, float]:
        with self._lock:
            return dict(self._balances)

    # ── Gains ────────────────────────────────────────────────────────

    def add(self, resource_id: str, amount: float) -> float:
        """Add *amount*, scaling gains by the resource-gain multiplier.

        Returns the amount actually applied.
        """
        return self._apply(resource_id, amount, scaled=True)

    def add_raw(self, resource_id: str, amount: float) -> float:
        """Add *amount* without the gain multiplier (already applied upstream)."""
        return self._apply(resource_id, amount, scaled=False)

    def apply_gains(self, batch: ResourceGainBatch) -> None:
        """Apply a precomputed gain batch through the raw path."""
        for rid, amount in batch.gains.items():
            self.add_raw(rid, amount)

    def _apply(self, resource_id: str, amount: float, scaled: bool) -> float:
        rid = normalize_id(resource_id)
        value = require_finite(amount, f"Amount for {rid!r}")
        with self._lock:
            if rid not in self._balances:
                raise UnknownResourceError(rid)
            if abs(value) < EPSILON:
                return 0.0
            if scaled and value > 0 and self._resolver is not None:
                value *= self._resolver.resource_gain_multiplier(rid)
            balance = self._balances[rid] + value
            self._balances[rid] = balance
            if self._store is not None:
                self._store.set_resource_balance(rid, balance)
                if value > 0 and self._resources[rid].is_soft_currency:
                    self._store.add_lifetime_earnings(rid, value)
                self._store.request_save()
        self._notify(rid, balance)
        return value

    def _on_increment(self, event: IncrementBalance) -> None:
        self.add(event.resource_id, event.amount)

    # ── Spending ─────────────────────────────────────────────────────

    def can_afford(self, cost: Iterable[CostItem | Mapping[str, Any]]) -> bool:
        """Whether every line of *cost* is covered. Raises on malformed lines."""
        with self._lock:
            totals = self._cost_totals(cost)
            return all(self._balances[rid] >= amt for rid, amt in totals.items())

    def try_spend(self, cost: Iterable[CostItem | Mapping[str, Any]]) -> bool:
        """Deduct every line of *cost*, or nothing.

        Returns False, leaving all balances untouched, if any line is not
        covered. Lines naming the same resource are checked against their
        combined amount.
        """
        with self._lock:
            totals = self._cost_totals(cost)
            if not totals:
                return True
            for rid, amt in totals.items():
                if self._balances[rid] < amt:
                    logger.debug(
                        "Cannot spend %s %r (balance %s)", amt, rid, self._balances[rid]
                    )
                    return False

            changed: list[tuple[str, float]] = []
            for rid, amt in totals.items():
                balance = self._balances[rid] - amt
                self._balances[rid] = balance
                changed.append((rid, balance))
            if self._store is not None:
                for rid, balance in changed:
                    self._store.set_resource_balance(rid, balance)
                self._store.request_save()

        for rid, balance in changed:
            self._notify(rid, balance)
        return True

    def _cost_totals(
        self, cost: Iterable[CostItem | Mapping[str, Any]]
    ) -> dict[str, float]:
        totals: dict[str, float] = {}
        for line in cost:
            if isinstance(line, Mapping):
                raw_rid, raw_amount = line.get("resource"), line.get("amount")
            else:
                raw_rid, raw_amount = line.resource, line.amount
            rid = normalize_id(raw_rid)
            if rid not in self._balances:
                raise UnknownResourceError(rid)
            amount = parse_amount(raw_amount)
            if amount < 0:
                raise InvalidAmountError(f"Negative cost amount for {rid!r}: {raw_amount!r}")
            totals[rid] = totals.get(rid, 0.0) + amount
        return totals

    # ── Listeners ────────────────────────────────────────────────────

    def subscribe(self, listener: BalanceListener) -> Callable[[], None]:
        """Call ``listener(resource_id, balance)`` after every change."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, resource_id: str, balance: float) -> None:
        for listener in list(self._listeners):
            listener(resource_id, balance)
