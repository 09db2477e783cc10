from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto

from idlecore.paths import parse_path, MODIFIER_BASES


class ModifierKind(Enum):
    """The quantity a modifier adjusts."""

    NODE_OUTPUT = auto()
    NODE_SPEED = auto()
    RESOURCE_GAIN = auto()
    AUTOMATION = auto()
    UNKNOWN = auto()


class ScopeKind(Enum):
    GLOBAL = "global"
    ZONE = "zone"
    NODE = "node"
    NODE_TAG = "nodeTag"
    RESOURCE = "resource"


class Operation(Enum):
    MULTIPLY = "multiply"
    ADD = "add"
    SET = "set"


SCOPE_KINDS: dict[str, ScopeKind] = {k.value.lower(): k for k in ScopeKind}
OPERATIONS: dict[str, Operation] = {o.value: o for o in Operation}

_SPEED_TARGETS = {"nodespeedmultiplier", "node.speedmultiplier"}
_BARE_OUTPUT_TARGETS = {"nodeoutput", "node.outputmultiplier"}
_AUTOMATION_TARGETS = {
    "automation.policy": "policy",
    "automation.autocollect": "autoCollect",
    "automation.autorestart": "autoRestart",
}


@dataclass(frozen=True)
class ModifierTarget:
    """A modifier target path parsed into the quantity it adjusts."""

    kind: ModifierKind
    resource_id: str = ""
    field: str = ""

    @classmethod
    def parse(cls, path: str) -> ModifierTarget:
        value = path.strip()
        lowered = value.lower()
        if lowered in _SPEED_TARGETS:
            return cls(ModifierKind.NODE_SPEED)
        if lowered in _BARE_OUTPUT_TARGETS:
            return cls(ModifierKind.NODE_OUTPUT)
        if lowered == "resourcegain":
            return cls(ModifierKind.RESOURCE_GAIN)
        if lowered in _AUTOMATION_TARGETS:
            return cls(ModifierKind.AUTOMATION, field=_AUTOMATION_TARGETS[lowered])

        parsed = parse_path(value, MODIFIER_BASES)
        if parsed is not None and not parsed.suffix:
            if parsed.base == "nodeOutput":
                return cls(ModifierKind.NODE_OUTPUT, parsed.param)
            if parsed.base == "resourceGain":
                return cls(ModifierKind.RESOURCE_GAIN, parsed.param)
        return cls(ModifierKind.UNKNOWN)


@dataclass
class ModifierScope:
    kind: str = "global"
    zone_id: str = ""
    node_id: str = ""
    node_tag: str = ""
    resource: str = ""

    @property
    def scope_kind(self) -> ScopeKind | None:
        return SCOPE_KINDS.get(self.kind.strip().lower())


@dataclass
class ModifierDef:
    """A scoped numeric adjustment applied to a resource-qualified target."""

    id: str
    source: str = ""
    zone_id: str = ""
    scope: ModifierScope = field(default_factory=ModifierScope)
    operation: str = "multiply"
    target: str = ""
    value: float = 1.0

    # Parsed once when the definition is built
    parsed_target: ModifierTarget = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.parsed_target = ModifierTarget.parse(self.target)

    @property
    def op(self) -> Operation | None:
        return OPERATIONS.get(self.operation.strip().lower())

    @property
    def target_resource(self) -> str:
        """Resource the target applies to, falling back to the scope's resource."""
        return self.parsed_target.resource_id or self.scope.resource


@dataclass(frozen=True)
class ActiveModifier:
    """A modifier in the active set with the value it contributes."""

    modifier: ModifierDef
    value: float
