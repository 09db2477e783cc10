"""Resource-qualified property paths.

Content refers to per-resource properties with paths such as
``nodeOutput[currencySoft]`` or ``lifetimeEarnings[currencySoft]``. Older
content used a dotted form (``nodeOutput.currencySoft``), and modifier
targets also accept the ``node.outputMultiplier`` alias for ``nodeOutput``.
Both are rewritten once at load time into the canonical bracket form
``base[param]suffix``.
"""

from __future__ import annotations

from dataclasses import dataclass

MODIFIER_BASES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("nodeOutput", ("node.outputMultiplier",)),
    ("resourceGain", ()),
    ("nodeCapacity", ()),
    ("lifetimeEarnings", ()),
    ("resource", ()),
)

FORMULA_BASES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("lifetimeEarnings", ()),
    ("resource", ()),
)


@dataclass(frozen=True)
class ParsedPath:
    """A path split into its base name, parameter id and trailing suffix."""

    base: str
    matched_base: str
    param: str
    suffix: str = ""
    used_dotted: bool = False

    @property
    def is_canonical(self) -> bool:
        return not self.used_dotted and self.base.lower() == self.matched_base.lower()

    @property
    def canonical(self) -> str:
        return f"{self.base}[{self.param}]{self.suffix}"


def _match_base(value: str, key: str) -> tuple[str, str, bool] | None:
    """Match *value* against one base name; returns (param, suffix, dotted)."""
    lowered = value.lower()
    bracket = key + "["
    if lowered.startswith(bracket.lower()):
        close = value.find("]", len(bracket))
        if close < 0:
            return None
        param = value[len(bracket):close].strip()
        if not param:
            return None
        return param, value[close + 1:], False

    dotted = key + "."
    if lowered.startswith(dotted.lower()):
        remainder = value[len(dotted):]
        split = remainder.find(".")
        param = (remainder[:split] if split >= 0 else remainder).strip()
        if not param:
            return None
        return param, remainder[split:] if split >= 0 else "", True

    return None


def parse_path(
    raw: str | None, bases: tuple[tuple[str, tuple[str, ...]], ...]
) -> ParsedPath | None:
    """Parse *raw* against the given bases, or return None when unrecognized."""
    value = (raw or "").strip()
    if not value:
        return None
    for base, aliases in bases:
        for candidate in (base, *aliases):
            hit = _match_base(value, candidate)
            if hit is not None:
                param, suffix, dotted = hit
                return ParsedPath(base, candidate, param, suffix, dotted)
    return None


def canonicalize(
    raw: str | None, bases: tuple[tuple[str, tuple[str, ...]], ...]
) -> tuple[str, bool, bool]:
    """Canonicalize a path.

    Returns ``(path, recognized, used_legacy)``. Unrecognized input comes
    back trimmed and otherwise untouched.
    """
    parsed = parse_path(raw, bases)
    if parsed is None:
        return (raw or "").strip(), False, False
    return parsed.canonical, True, not parsed.is_canonical


def canonicalize_modifier_path(raw: str | None) -> tuple[str, bool, bool]:
    return canonicalize(raw, MODIFIER_BASES)


def canonicalize_formula_path(raw: str | None) -> tuple[str, bool, bool]:
    return canonicalize(raw, FORMULA_BASES)
