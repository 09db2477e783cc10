from __future__ import annotations

from dataclasses import dataclass, field

from idlecore.cost_scaling import CostScaling

OUTPUT_MODES = ("perCycle", "perSecond", "payout")


@dataclass
class OutputDef:
    """One resource a node produces each cycle."""

    resource: str
    mode: str = "perCycle"
    amount_per_cycle: float = 0.0
    base_per_second: float = 0.0
    base_payout: float = 0.0

    def per_cycle(self, cycle_seconds: float) -> float:
        """Output per cycle: payout, then fixed amount, then rate times duration."""
        if self.base_payout > 0.0:
            return self.base_payout
        if self.amount_per_cycle > 0.0:
            return self.amount_per_cycle
        if self.base_per_second > 0.0:
            return self.base_per_second * cycle_seconds
        return 0.0


@dataclass
class NodeInputDef:
    """A resource a node consumes each cycle."""

    resource: str
    amount_per_cycle: float = 0.0


@dataclass
class CycleDef:
    base_duration_seconds: float = 1.0


@dataclass
class PriceCurveDef:
    type: str = "fixed"
    base_price: float = 0.0
    growth: float = 1.0
    increment: float = 0.0


@dataclass
class LevelingDef:
    level_resource: str = ""
    base_level: int = 0
    max_level: int | None = None
    price_curve: PriceCurveDef = field(default_factory=PriceCurveDef)

    def price_for_level(self, level: int) -> float:
        """Price of buying the level after *level*."""
        curve = self.price_curve
        scaling = CostScaling.from_curve(curve.type, curve.growth, curve.increment)
        return scaling.compute(curve.base_price, level - self.base_level)

    def is_maxed(self, level: int) -> bool:
        return self.max_level is not None and level >= self.max_level


@dataclass
class AutomationDef:
    policy: str = ""
    auto_collect: bool = False
    auto_restart: bool = False


@dataclass
class NodeDef:
    """Static definition of a producer archetype."""

    id: str
    type: str = ""
    display_name: str = ""
    zone_id: str = ""
    tags: list[str] = field(default_factory=list)
    cycle: CycleDef = field(default_factory=CycleDef)
    outputs: list[OutputDef] = field(default_factory=list)
    inputs: list[NodeInputDef] = field(default_factory=list)
    leveling: LevelingDef = field(default_factory=LevelingDef)
    automation: AutomationDef = field(default_factory=AutomationDef)

    def __post_init__(self) -> None:
        if not self.display_name:
            self.display_name = self.id

    def output_for(self, resource_id: str) -> OutputDef | None:
        for out in self.outputs:
            if out.resource == resource_id:
                return out
        return None

    def has_tag(self, tag: str) -> bool:
        wanted = tag.strip().lower()
        return any(t.strip().lower() == wanted for t in self.tags)


@dataclass
class InitialStateDef:
    level: int = 0
    enabled: bool = True


@dataclass
class NodeInstanceDef:
    """A placed occurrence of a node within a zone."""

    id: str
    node_id: str
    zone_id: str = ""
    display_name_override: str = ""
    tags: list[str] = field(default_factory=list)
    initial_state: InitialStateDef = field(default_factory=InitialStateDef)


@dataclass
class GeneratorState:
    """Mutable runtime state for one node instance."""

    id: str
    level: int = 0
    owned: bool = False
    automated: bool = False
    automation_purchased: bool = False
    enabled: bool = True
