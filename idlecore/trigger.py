"""Declarative event -> condition -> action rules."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from idlecore.errors import (
    ContentValidationError,
    DuplicateTriggerId,
    UnsupportedEventType,
    UnsupportedRuleError,
)
from idlecore.events import EventBus, MilestoneFired

if TYPE_CHECKING:
    from idlecore.reward import RewardRoller

logger = logging.getLogger(__name__)

MILESTONE_FIRED = "milestone.fired"

# New event types need code, not content.
SUPPORTED_EVENT_TYPES = frozenset({MILESTONE_FIRED})

MILESTONE_ID_EQUALS = "milestoneIdEquals"
ROLL_REWARD_POOL = "rollRewardPool"
CONDITION_TYPES = (MILESTONE_ID_EQUALS,)
ACTION_TYPES = (ROLL_REWARD_POOL,)


@dataclass
class ConditionDef:
    type: str
    args: dict[str, Any] = field(default_factory=dict)

    @property
    def milestone_id(self) -> str:
        return str(self.args.get("milestoneId") or "").strip()


@dataclass
class ActionDef:
    type: str
    reward_pool_id: str = ""


@dataclass
class TriggerDef:
    """A rule: when *event_type* happens and all conditions hold, run the actions."""

    id: str
    event_type: str
    scope: dict[str, Any] = field(default_factory=dict)
    conditions: list[ConditionDef] = field(default_factory=list)
    actions: list[ActionDef] = field(default_factory=list)


class TriggerEngine:
    """Indexes triggers by event type and runs them against domain events."""

    def __init__(
        self,
        triggers: list[TriggerDef],
        rewards: RewardRoller,
        bus: EventBus | None = None,
    ) -> None:
        self._rewards = rewards
        self._by_event: dict[str, list[TriggerDef]] = {}
        seen: set[str] = set()
        for trig in triggers:
            if not trig.id:
                raise ContentValidationError("Trigger with empty id")
            if trig.id in seen:
                raise DuplicateTriggerId(trig.id)
            if trig.event_type not in SUPPORTED_EVENT_TYPES:
                raise UnsupportedEventType(trig.id, trig.event_type)
            seen.add(trig.id)
            self._by_event.setdefault(trig.event_type, []).append(trig)

        if bus is not None:
            bus.subscribe(MilestoneFired, self.on_milestone_fired)

    def triggers_for(self, event_type: str) -> list[TriggerDef]:
        return list(self._by_event.get(event_type, ()))

    # ── Event handling ───────────────────────────────────────────────

    def on_milestone_fired(self, event: MilestoneFired) -> list[str]:
        """Run every matching milestone trigger. Returns the executed trigger ids."""
        executed: list[str] = []
        for trig in self._by_event.get(MILESTONE_FIRED, ()):
            if not self._conditions_hold(trig, event):
                continue
            logger.info(
                "Executing trigger %r for milestone %r", trig.id, event.milestone_id
            )
            for action in trig.actions:
                self._execute(trig, action)
            executed.append(trig.id)
        return executed

    def _conditions_hold(self, trig: TriggerDef, event: MilestoneFired) -> bool:
        for cond in trig.conditions:
            if not self._evaluate(trig, cond, event):
                return False
        return True

    def _evaluate(
        self, trig: TriggerDef, cond: ConditionDef, event: MilestoneFired
    ) -> bool:
        if cond.type == MILESTONE_ID_EQUALS:
            wanted = cond.milestone_id
            if not wanted:
                raise ContentValidationError(
                    f"Trigger {trig.id!r} condition {cond.type!r} requires args.milestoneId"
                )
            return event.milestone_id == wanted
        raise UnsupportedRuleError(
            f"Trigger {trig.id!r} uses unsupported condition type {cond.type!r}"
        )

    def _execute(self, trig: TriggerDef, action: ActionDef) -> None:
        if action.type == ROLL_REWARD_POOL:
            self._rewards.roll(action.reward_pool_id)
            return
        raise UnsupportedRuleError(
            f"Trigger {trig.id!r} uses unsupported action type {action.type!r}"
        )
