from __future__ import annotations

import math
from dataclasses import dataclass, field

FORMULA_TYPES = ("sqrt", "linear")


@dataclass
class FormulaDef:
    """A formula computed from one resource-qualified path."""

    type: str = ""
    based_on: str = ""
    multiplier: float = 1.0
    offset: float = 0.0

    def evaluate(self, value: float) -> float:
        """Apply the formula to the value read from ``based_on``."""
        kind = self.type.strip().lower()
        if kind == "sqrt":
            raw = math.sqrt(max(0.0, value)) * self.multiplier + self.offset
            return float(max(0, math.floor(raw)))
        if kind == "linear":
            return value * self.multiplier + self.offset
        raise ValueError(f"Unknown formula type: {self.type!r}")


@dataclass
class MetaUpgradeDef:
    id: str
    computed: FormulaDef = field(default_factory=FormulaDef)
    writes_to_state: str = ""


@dataclass
class PrestigeDef:
    """Definition of the prestige (reset) layer."""

    enabled: bool = False
    zone_id: str = ""
    prestige_resource: str = ""
    formula: FormulaDef | None = None
    reset_scopes: dict[str, bool] = field(default_factory=dict)
    meta_upgrades: list[MetaUpgradeDef] = field(default_factory=list)
