"""
docmerge Modifier Models

A variable may carry a chain of modifiers, applied left to right:

    {$USR_Phone|phone_format:"%2 %4 %4"}
    {$USR_Business|upper}
    {$Comc_date|date_format:"d F Y"}
    {$USR_ABN|replace:" ":""}

Helper constructors (UPPER, PHONE_FORMAT(...), REPLACE(...)) keep tests and
programmatic templates readable.
"""
from __future__ import annotations

from dataclasses import dataclass

from .enums import ModifierKind


@dataclass(frozen=True)
class Modifier:
    """A named transform with its string arguments."""
    kind: ModifierKind
    args: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if len(self.args) != self.kind.arity:
            raise ValueError(
                f"Modifier '{self.kind.value}' takes {self.kind.arity} "
                f"argument(s), got {len(self.args)}"
            )

    def __str__(self) -> str:
        if not self.args:
            return self.kind.value
        quoted = ":".join(f'"{arg}"' for arg in self.args)
        return f"{self.kind.value}:{quoted}"


ModifierChain = tuple[Modifier, ...]


# =============================================================================
# Helper Constructors
# =============================================================================

UPPER = Modifier(ModifierKind.UPPER)
LOWER = Modifier(ModifierKind.LOWER)
UCWORDS = Modifier(ModifierKind.UCWORDS)
UCFIRST = Modifier(ModifierKind.UCFIRST)


def PHONE_FORMAT(pattern: str) -> Modifier:
    """phone_format:"pattern" where %N consumes N digits."""
    return Modifier(ModifierKind.PHONE_FORMAT, (pattern,))


def DATE_FORMAT(pattern: str) -> Modifier:
    """date_format:"pattern" using d/F/Y/m/y/H/i/s style tokens."""
    return Modifier(ModifierKind.DATE_FORMAT, (pattern,))


def REPLACE(search: str, replacement: str) -> Modifier:
    """replace:"search":"replacement" (all occurrences)."""
    return Modifier(ModifierKind.REPLACE, (search, replacement))
