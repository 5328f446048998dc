"""
docmerge Reports and Results

Outcome records for merge and validation:
- PartReport / MergeReport: counts and diagnostics from a merge
- MergeResult: document-level success/failure plus transformed parts
- PartValidation / ValidationReport: structural report for validate-only runs
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from .diagnostics import Diagnostic
from .enums import DiagnosticKind


# =============================================================================
# Merge
# =============================================================================

@dataclass
class PartReport:
    """What happened while merging one part."""
    part: str
    variables_substituted: int = 0
    conditionals_resolved: int = 0
    tokens_repaired: int = 0
    unresolved_identifiers: list[str] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def structural_errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.kind == DiagnosticKind.STRUCTURAL_ERROR]

    def to_dict(self) -> dict[str, Any]:
        return {
            "part": self.part,
            "variables_substituted": self.variables_substituted,
            "conditionals_resolved": self.conditionals_resolved,
            "tokens_repaired": self.tokens_repaired,
            "unresolved_identifiers": list(self.unresolved_identifiers),
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }


@dataclass
class MergeReport:
    """Aggregated counts over every processed part."""
    parts: list[PartReport] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def variables_substituted(self) -> int:
        return sum(p.variables_substituted for p in self.parts)

    @property
    def conditionals_resolved(self) -> int:
        return sum(p.conditionals_resolved for p in self.parts)

    @property
    def unresolved_identifiers(self) -> list[str]:
        seen: list[str] = []
        for report in self.parts:
            for name in report.unresolved_identifiers:
                if name not in seen:
                    seen.append(name)
        return seen

    def all_diagnostics(self) -> list[Diagnostic]:
        collected = list(self.diagnostics)
        for report in self.parts:
            collected.extend(report.diagnostics)
        return collected

    def to_dict(self) -> dict[str, Any]:
        return {
            "variables_substituted": self.variables_substituted,
            "conditionals_resolved": self.conditionals_resolved,
            "unresolved_identifiers": self.unresolved_identifiers,
            "parts": [p.to_dict() for p in self.parts],
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }


@dataclass
class MergeResult:
    """
    Document-level merge outcome.

    On failure `parts` holds whatever was transformed before the failure
    and `error` carries the fatal error's dict form.
    """
    success: bool
    parts: dict[str, str] = field(default_factory=dict)
    report: MergeReport = field(default_factory=MergeReport)
    error: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "success": self.success,
            "parts": sorted(self.parts),
            "report": self.report.to_dict(),
        }
        if self.error:
            result["error"] = self.error
        return result


# =============================================================================
# Validation
# =============================================================================

@dataclass
class PartValidation:
    """Structural counts for one part."""
    part: str
    variables: int = 0
    conditionals: int = 0
    modifiers: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def summary(self) -> str:
        line = (
            f"{self.part}: {self.variables} merge tags, "
            f"{self.conditionals} conditionals, {self.modifiers} modifiers"
        )
        if self.errors:
            line += " - ERRORS: " + ", ".join(self.errors)
        return line


@dataclass
class ValidationReport:
    """Structural report for a whole document."""
    parts: list[PartValidation] = field(default_factory=list)

    @property
    def total_variables(self) -> int:
        return sum(p.variables for p in self.parts)

    @property
    def total_conditionals(self) -> int:
        return sum(p.conditionals for p in self.parts)

    @property
    def total_modifiers(self) -> int:
        return sum(p.modifiers for p in self.parts)

    @property
    def has_errors(self) -> bool:
        return any(p.has_errors for p in self.parts)

    @property
    def structural_errors(self) -> dict[str, list[str]]:
        return {p.part: list(p.errors) for p in self.parts if p.errors}

    def summary(self) -> str:
        lines = [
            "Validation Summary:",
            f"  Merge tags found: {self.total_variables}",
            f"  Conditional blocks: {self.total_conditionals}",
            f"  Modifiers used: {self.total_modifiers}",
            f"  Sections analyzed: {len(self.parts)}",
        ]
        lines.extend(p.summary() for p in self.parts)
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_variables": self.total_variables,
            "total_conditionals": self.total_conditionals,
            "total_modifiers": self.total_modifiers,
            "has_errors": self.has_errors,
            "parts": [
                {
                    "part": p.part,
                    "variables": p.variables,
                    "conditionals": p.conditionals,
                    "modifiers": p.modifiers,
                    "errors": list(p.errors),
                }
                for p in self.parts
            ],
        }
