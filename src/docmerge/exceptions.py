"""
docmerge Exception Hierarchy

Domain-specific exceptions for the merge-tag engine.
All exceptions include error codes for tracking and logging.

Exception codes follow the pattern: DM_<CATEGORY>_<SPECIFIC>

Template-level problems (structural errors, unresolved variables, bad
modifier arguments) are normally recovered in place and only surface as
diagnostics; the exception types exist so strict mode can raise them.
Document-level failures (NoPartsProcessed, PartWriteFailure) always fail
the whole merge.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class DocMergeError(Exception):
    """
    Base exception for all docmerge errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (DM_*)
        details: Additional context about the error
        part: Template part name if applicable
    """
    message: str
    code: str = "DM_INTERNAL_ERROR"
    details: dict[str, Any] = field(default_factory=dict)
    part: Optional[str] = None

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        parts = [f"[{self.code}] {self.message}"]
        if self.part:
            parts.append(f"(part: {self.part})")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Serialize exception for logging/CLI output."""
        result: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        if self.part:
            result["part"] = self.part
        return result


# =============================================================================
# Configuration Errors
# =============================================================================

@dataclass
class ConfigLoadError(DocMergeError):
    """Failed to read or parse a configuration file."""
    code: str = "DM_CONFIG_LOAD_ERROR"


@dataclass
class ConfigValidationError(DocMergeError):
    """Configuration file failed schema validation."""
    code: str = "DM_CONFIG_VALIDATION_ERROR"


# =============================================================================
# Template Errors (recoverable)
# =============================================================================

@dataclass
class TemplateError(DocMergeError):
    """Base for problems local to a token or block."""
    code: str = "DM_TEMPLATE_ERROR"


@dataclass
class TemplatePartMissing(TemplateError):
    """Informational: a known part is absent from the document."""
    code: str = "DM_TEMPLATE_PART_MISSING"


@dataclass
class UnresolvedVariable(TemplateError):
    """No context key matched a variable identifier."""
    code: str = "DM_UNRESOLVED_VARIABLE"


@dataclass
class StructuralError(TemplateError):
    """Unbalanced block markers, malformed tokens, or the parse cap was hit."""
    code: str = "DM_STRUCTURAL_ERROR"


@dataclass
class ModifierArgumentError(TemplateError):
    """A modifier's argument list is malformed or the modifier is unknown."""
    code: str = "DM_MODIFIER_ARGUMENT_ERROR"


@dataclass
class InvalidConditionError(TemplateError):
    """A condition sub-expression could not be parsed."""
    code: str = "DM_INVALID_CONDITION"


# =============================================================================
# Document Errors (fatal)
# =============================================================================

@dataclass
class DocumentError(DocMergeError):
    """Base for failures that abort the whole merge."""
    code: str = "DM_DOCUMENT_ERROR"


@dataclass
class NoPartsProcessed(DocumentError):
    """The document contained no processable parts."""
    code: str = "DM_NO_PARTS_PROCESSED"


@dataclass
class PartWriteFailure(DocumentError):
    """The external part writer rejected a transformed part."""
    code: str = "DM_PART_WRITE_FAILURE"


# =============================================================================
# Exception Helpers
# =============================================================================

def get_error_code(exc: Exception) -> str:
    """
    Get the error code for any exception.

    Args:
        exc: Any exception

    Returns:
        Error code string (DM_* for docmerge errors, DM_INTERNAL_ERROR otherwise)
    """
    if isinstance(exc, DocMergeError):
        return exc.code
    return "DM_INTERNAL_ERROR"
