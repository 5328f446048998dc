"""
docmerge Enumerations

All enumeration types used throughout the merge engine.
Organized by domain area for clarity.

All enums inherit from (str, Enum) for JSON serialization compatibility.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional


# =============================================================================
# Template Parts
# =============================================================================

class PartName(str, Enum):
    """
    Named markup parts of a multi-part document.

    The order of declaration is the canonical processing order:
    body first, then headers, then footers.
    """
    BODY = "body"
    HEADER_1 = "header-1"
    HEADER_2 = "header-2"
    HEADER_3 = "header-3"
    FOOTER_1 = "footer-1"
    FOOTER_2 = "footer-2"
    FOOTER_3 = "footer-3"

    @property
    def container_path(self) -> str:
        """Path of this part inside a WordprocessingML container."""
        if self is PartName.BODY:
            return "word/document.xml"
        kind, _, index = self.value.partition("-")
        return f"word/{kind}{index}.xml"

    @classmethod
    def ordered(cls) -> list[PartName]:
        """All part names in canonical processing order."""
        return list(cls)

    @classmethod
    def parse(cls, name: str) -> Optional[PartName]:
        """
        Look up a part by its name or container path.

        Accepts "body", "header-2", "header2", "word/footer1.xml".
        Returns None for names outside the fixed set.
        """
        candidate = name.strip().lower()
        for part in cls:
            if candidate in (part.value, part.container_path):
                return part
            if candidate == part.value.replace("-", ""):
                return part
        return None


# =============================================================================
# Tokens
# =============================================================================

class BlockKind(str, Enum):
    """Conditional block constructs."""
    IF = "if"
    LISTIF = "listif"

    @property
    def close_marker(self) -> str:
        return "{/" + self.value + "}"


class ModifierKind(str, Enum):
    """Value modifiers usable in a variable's modifier chain."""
    UPPER = "upper"
    LOWER = "lower"
    UCWORDS = "ucwords"
    UCFIRST = "ucfirst"
    PHONE_FORMAT = "phone_format"
    DATE_FORMAT = "date_format"
    REPLACE = "replace"

    @property
    def arity(self) -> int:
        """Number of string arguments the modifier takes."""
        if self in (ModifierKind.PHONE_FORMAT, ModifierKind.DATE_FORMAT):
            return 1
        if self is ModifierKind.REPLACE:
            return 2
        return 0


# =============================================================================
# Resolution
# =============================================================================

class MatchTier(str, Enum):
    """Which resolution tier produced a value."""
    EXACT = "exact"
    CASE_INSENSITIVE = "case_insensitive"
    PARTIAL = "partial"
    NONE = "none"


# =============================================================================
# Diagnostics
# =============================================================================

class Severity(str, Enum):
    """Diagnostic severity, mapped onto logging levels by LoggingSink."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class DiagnosticKind(str, Enum):
    """
    Structured events emitted while merging or validating.

    Only NO_PARTS_PROCESSED and PART_WRITE_FAILURE are fatal; every other
    kind is recovered in place.
    """
    PART_MISSING = "part_missing"                        # informational
    TOKEN_REPAIRED = "token_repaired"                    # informational
    UNRECONSTRUCTED_TOKEN = "unreconstructed_token"
    UNRESOLVED_VARIABLE = "unresolved_variable"
    STRUCTURAL_ERROR = "structural_error"
    MODIFIER_ARGUMENT_ERROR = "modifier_argument_error"
    INVALID_CONDITION = "invalid_condition"
    NO_PARTS_PROCESSED = "no_parts_processed"
    PART_WRITE_FAILURE = "part_write_failure"

    @property
    def default_severity(self) -> Severity:
        if self in (DiagnosticKind.PART_MISSING, DiagnosticKind.TOKEN_REPAIRED):
            return Severity.DEBUG
        if self in (DiagnosticKind.NO_PARTS_PROCESSED, DiagnosticKind.PART_WRITE_FAILURE):
            return Severity.ERROR
        return Severity.WARNING

    @property
    def is_fatal(self) -> bool:
        return self in (DiagnosticKind.NO_PARTS_PROCESSED, DiagnosticKind.PART_WRITE_FAILURE)
