from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

SOFT_CURRENCY = "softCurrency"


@dataclass
class ResourceDef:
    """Static definition of a resource (a currency or other countable)."""

    id: str
    display_name: str = ""
    kind: str = ""
    format: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.display_name:
            self.display_name = self.id

    @property
    def is_soft_currency(self) -> bool:
        """Soft-currency gains are tracked as lifetime earnings."""
        return self.kind.strip().lower() == SOFT_CURRENCY.lower()
