from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class CostItem:
    """One line of a cost: an amount of a resource, as authored."""

    resource: str
    amount: Any = "0"


@dataclass
class UpgradeDef:
    """Static definition of a purchasable upgrade."""

    id: str
    display_name: str = ""
    category: str = ""
    zone_id: str = ""
    cost: list[CostItem] = field(default_factory=list)
    repeatable: bool = False
    max_rank: int | None = None
    effects: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    enabled: bool = True

    def __post_init__(self) -> None:
        if not self.display_name:
            self.display_name = self.id
