# idlecore — Content-driven economy core for idle games

from idlecore._types import compare, parse_amount, sanitize_multiplier
from idlecore.errors import (
    IdleCoreError,
    ContentValidationError,
    MissingRequiredRoot,
    DuplicateId,
    DuplicateTriggerId,
    InvalidEmbeddedJson,
    UnknownResourceError,
    InvalidAmountError,
    UnsupportedRuleError,
    UnsupportedEventType,
    InvalidRewardPoolError,
    ContentWarning,
)
from idlecore.paths import canonicalize_modifier_path, canonicalize_formula_path
from idlecore.cost_scaling import CostScaling
from idlecore.resource import ResourceDef
from idlecore.node import NodeDef, NodeInstanceDef, OutputDef, GeneratorState
from idlecore.modifier import (
    ModifierKind,
    ScopeKind,
    Operation,
    ModifierDef,
    ModifierScope,
    ModifierTarget,
    ActiveModifier,
)
from idlecore.upgrade import UpgradeDef, CostItem
from idlecore.buff import BuffDef, BuyModeDef
from idlecore.milestone import MilestoneDef, MilestoneTracker
from idlecore.prestige import FormulaDef, PrestigeDef
from idlecore.unlock import Requirement, Req, UnlockGraphEntry, UnlockTracker
from idlecore.events import EventBus, IncrementBalance, MilestoneFired
from idlecore.reward import RewardPoolDef, RewardRoller
from idlecore.trigger import TriggerDef, TriggerEngine
from idlecore.definition import GameDefinition, GameConfig
from idlecore.loader import load, load_file
from idlecore.store import StateStore, InMemoryStateStore
from idlecore.resolver import ModifierResolver, active_modifiers
from idlecore.ledger import Ledger
from idlecore.offline import OfflineConfig, OfflineProgressSimulator, ResourceGainBatch
from idlecore.session import GameSession, SessionConfig

__all__ = [
    # Types
    "compare",
    "parse_amount",
    "sanitize_multiplier",
    # Errors
    "IdleCoreError",
    "ContentValidationError",
    "MissingRequiredRoot",
    "DuplicateId",
    "DuplicateTriggerId",
    "InvalidEmbeddedJson",
    "UnknownResourceError",
    "InvalidAmountError",
    "UnsupportedRuleError",
    "UnsupportedEventType",
    "InvalidRewardPoolError",
    "ContentWarning",
    # Paths
    "canonicalize_modifier_path",
    "canonicalize_formula_path",
    # Data model
    "CostScaling",
    "ResourceDef",
    "NodeDef",
    "NodeInstanceDef",
    "OutputDef",
    "GeneratorState",
    "ModifierKind",
    "ScopeKind",
    "Operation",
    "ModifierDef",
    "ModifierScope",
    "ModifierTarget",
    "ActiveModifier",
    "UpgradeDef",
    "CostItem",
    "BuffDef",
    "BuyModeDef",
    "MilestoneDef",
    "FormulaDef",
    "PrestigeDef",
    "RewardPoolDef",
    "TriggerDef",
    "UnlockGraphEntry",
    "GameDefinition",
    "GameConfig",
    # Loading
    "load",
    "load_file",
    # Runtime
    "StateStore",
    "InMemoryStateStore",
    "EventBus",
    "IncrementBalance",
    "MilestoneFired",
    "ModifierResolver",
    "active_modifiers",
    "Ledger",
    "OfflineConfig",
    "OfflineProgressSimulator",
    "ResourceGainBatch",
    "MilestoneTracker",
    "Requirement",
    "Req",
    "UnlockTracker",
    "RewardRoller",
    "TriggerEngine",
    "GameSession",
    "SessionConfig",
]
