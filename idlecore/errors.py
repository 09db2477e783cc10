"""Exception and warning types raised by idlecore."""

from __future__ import annotations


class IdleCoreError(Exception):
    """Base class for every error raised by idlecore."""


class ContentValidationError(IdleCoreError, ValueError):
    """The content document is missing, duplicated or malformed."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors: list[str] = list(errors) if errors else [message]

    @classmethod
    def from_errors(cls, errors: list[str]) -> ContentValidationError:
        count = len(errors)
        noun = "error" if count == 1 else "errors"
        message = f"Invalid content ({count} {noun}):\n" + "\n".join(
            f"  - {e}" for e in errors
        )
        return cls(message, errors)


class MissingRequiredRoot(ContentValidationError):
    def __init__(self, root: str) -> None:
        self.root = root
        super().__init__(f"Content root {root!r} is missing or empty")


class DuplicateId(ContentValidationError):
    def __init__(self, table: str, id: str) -> None:
        self.table = table
        self.id = id
        super().__init__(f"Duplicate {table} id: {id!r}")


class DuplicateTriggerId(DuplicateId):
    def __init__(self, id: str) -> None:
        super().__init__("trigger", id)


class InvalidEmbeddedJson(ContentValidationError):
    def __init__(self, buff_id: str, detail: str) -> None:
        self.buff_id = buff_id
        super().__init__(
            f"Buff {buff_id or 'unknown'!r} has invalid effects_json: {detail}"
        )


class UnknownResourceError(IdleCoreError, KeyError):
    """A resource id was used that the ledger was never initialized with."""

    def __init__(self, resource_id: str) -> None:
        self.resource_id = resource_id
        super().__init__(resource_id)

    def __str__(self) -> str:
        return f"Unknown resource: {self.resource_id!r}"


class InvalidAmountError(IdleCoreError, ValueError):
    """A numeric input was NaN, infinite, negative or unparsable."""


class UnsupportedRuleError(IdleCoreError):
    """A trigger event, condition or action type this build does not implement."""


class UnsupportedEventType(UnsupportedRuleError, ContentValidationError):
    def __init__(self, trigger_id: str, event_type: str) -> None:
        self.trigger_id = trigger_id
        self.event_type = event_type
        super().__init__(
            f"Trigger {trigger_id!r} uses unsupported event type {event_type!r}"
        )


class InvalidRewardPoolError(IdleCoreError):
    """A reward pool is unknown, empty or carries unusable weights."""


class ContentWarning(UserWarning):
    """Non-fatal authoring diagnostic emitted while loading content."""
