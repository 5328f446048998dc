"""
docmerge Diagnostics

Structured events describing what happened while a document was merged or
validated. Components never log through a process-wide singleton; they emit
Diagnostic records to an injected DiagnosticsSink.

Sinks:
- CollectingSink: keeps events in memory (optionally forwarding them)
- LoggingSink: writes events to a stdlib logger at their severity
- NullSink: discards everything
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Optional, Protocol, runtime_checkable

from ..exceptions import (
    DocMergeError,
    InvalidConditionError,
    ModifierArgumentError,
    NoPartsProcessed,
    PartWriteFailure,
    StructuralError,
    TemplateError,
    TemplatePartMissing,
    UnresolvedVariable,
)
from .enums import DiagnosticKind, Severity

logger = logging.getLogger(__name__)


_LOG_LEVELS = {
    Severity.DEBUG: logging.DEBUG,
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}

_EXCEPTION_TYPES: dict[DiagnosticKind, type[DocMergeError]] = {
    DiagnosticKind.PART_MISSING: TemplatePartMissing,
    DiagnosticKind.TOKEN_REPAIRED: TemplateError,
    DiagnosticKind.UNRECONSTRUCTED_TOKEN: StructuralError,
    DiagnosticKind.UNRESOLVED_VARIABLE: UnresolvedVariable,
    DiagnosticKind.STRUCTURAL_ERROR: StructuralError,
    DiagnosticKind.MODIFIER_ARGUMENT_ERROR: ModifierArgumentError,
    DiagnosticKind.INVALID_CONDITION: InvalidConditionError,
    DiagnosticKind.NO_PARTS_PROCESSED: NoPartsProcessed,
    DiagnosticKind.PART_WRITE_FAILURE: PartWriteFailure,
}


@dataclass(frozen=True)
class Diagnostic:
    """A single structured event."""
    kind: DiagnosticKind
    message: str
    part: Optional[str] = None
    severity: Optional[Severity] = None
    details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.severity is None:
            object.__setattr__(self, "severity", self.kind.default_severity)

    @property
    def is_fatal(self) -> bool:
        return self.kind.is_fatal

    def with_part(self, part: Optional[str]) -> Diagnostic:
        """Copy of this diagnostic attributed to a part (if not already)."""
        if self.part is not None or part is None:
            return self
        return replace(self, part=part)

    def to_exception(self) -> DocMergeError:
        """Exception equivalent, used by strict mode."""
        exc_type = _EXCEPTION_TYPES.get(self.kind, DocMergeError)
        return exc_type(message=self.message, details=dict(self.details), part=self.part)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "kind": self.kind.value,
            "severity": self.severity.value if self.severity else None,
            "message": self.message,
        }
        if self.part:
            result["part"] = self.part
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Sinks
# =============================================================================

@runtime_checkable
class DiagnosticsSink(Protocol):
    """Port that components write diagnostics to."""

    def emit(self, diagnostic: Diagnostic) -> None:
        ...


class NullSink:
    """Discards every diagnostic."""

    def emit(self, diagnostic: Diagnostic) -> None:
        return None


@dataclass
class LoggingSink:
    """Writes diagnostics to a stdlib logger at their severity."""
    target: logging.Logger = field(default_factory=lambda: logger)

    def emit(self, diagnostic: Diagnostic) -> None:
        severity = diagnostic.severity or Severity.WARNING
        prefix = f"[{diagnostic.part}] " if diagnostic.part else ""
        self.target.log(
            _LOG_LEVELS[severity],
            "%s%s: %s",
            prefix,
            diagnostic.kind.value,
            diagnostic.message,
        )


@dataclass
class CollectingSink:
    """
    Collects diagnostics in memory.

    Diagnostics without a part are attributed to `part` when set, and each
    one is forwarded to `forward` (if given) after being recorded.
    """
    part: Optional[str] = None
    forward: Optional[DiagnosticsSink] = None
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def emit(self, diagnostic: Diagnostic) -> None:
        diagnostic = diagnostic.with_part(self.part)
        self.diagnostics.append(diagnostic)
        if self.forward is not None:
            self.forward.emit(diagnostic)

    def of_kind(self, kind: DiagnosticKind) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.kind == kind]

    def count(self, kind: DiagnosticKind) -> int:
        return len(self.of_kind(kind))

    def clear(self) -> None:
        self.diagnostics.clear()


def emit(
    sink: Optional[DiagnosticsSink],
    kind: DiagnosticKind,
    message: str,
    **details: Any,
) -> None:
    """Emit a diagnostic to `sink` when one is attached."""
    if sink is None:
        return
    sink.emit(Diagnostic(kind=kind, message=message, details=details))
