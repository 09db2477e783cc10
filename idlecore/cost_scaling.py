from __future__ import annotations

from typing import Callable


class CostScaling:
    """Determines how a node's level-up price changes with levels bought."""

    def __init__(self, fn: Callable[[float, int], float]) -> None:
        self._fn = fn

    def compute(self, base_price: float, levels_bought: int) -> float:
        return self._fn(base_price, max(0, levels_bought))

    @classmethod
    def fixed(cls) -> CostScaling:
        """Price never changes."""
        return cls(lambda base, _n: base)

    @classmethod
    def exponential(cls, growth: float = 1.15) -> CostScaling:
        """Price = base * growth^n."""
        gr = growth  # capture

        def _compute(base: float, n: int) -> float:
            return base * gr ** n

        return cls(_compute)

    @classmethod
    def linear(cls, increment: float) -> CostScaling:
        """Price = base + increment * n."""
        inc = increment

        def _compute(base: float, n: int) -> float:
            return base + inc * n

        return cls(_compute)

    @classmethod
    def from_curve(cls, curve_type: str, growth: float, increment: float) -> CostScaling:
        """Build the scaling named by a content price curve."""
        kind = curve_type.strip().lower()
        if kind == "exponential":
            return cls.exponential(growth)
        if kind == "linear":
            return cls.linear(increment)
        return cls.fixed()
