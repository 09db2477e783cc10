from __future__ import annotations

from dataclasses import dataclass, field

STACKING_POLICIES = ("none", "refresh", "extend", "stack")


@dataclass
class BuffDef:
    """A timed bundle of modifiers."""

    id: str
    display_name: str = ""
    zone_id: str = ""
    duration_seconds: float = 0.0
    stacking: str = "none"
    effects: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.display_name:
            self.display_name = self.id


@dataclass
class BuyModeDef:
    """How many levels a single buy action purchases."""

    id: str
    display_name: str = ""
    kind: str = "fixed"
    fixed_count: int = 1


BUY_MODE_KINDS = ("fixed", "nextMilestone", "maxAffordable")
