"""
docmerge Models

Data types shared by the engine components:
- Enums: PartName, BlockKind, ModifierKind, MatchTier, Severity, DiagnosticKind
- Context: FieldRecord, MergeContext
- Template: tokens, expressions, modifiers, TemplateDocument
- Diagnostics: Diagnostic and sinks
- Reports: merge and validation outcomes
"""
from __future__ import annotations

from .context import (
    IDENTIFIER_PATTERN,
    FieldRecord,
    MergeContext,
    is_identifier,
)
from .diagnostics import (
    CollectingSink,
    Diagnostic,
    DiagnosticsSink,
    LoggingSink,
    NullSink,
    emit,
)
from .document import TemplateDocument
from .enums import (
    BlockKind,
    DiagnosticKind,
    MatchTier,
    ModifierKind,
    PartName,
    Severity,
)
from .expressions import (
    And,
    Empty,
    Equals,
    Expression,
    Invalid,
    NotEmpty,
    NotEquals,
    Truthy,
    referenced_identifiers,
)
from .modifiers import (
    DATE_FORMAT,
    LOWER,
    PHONE_FORMAT,
    REPLACE,
    UCFIRST,
    UCWORDS,
    UPPER,
    Modifier,
    ModifierChain,
)
from .reports import (
    MergeReport,
    MergeResult,
    PartReport,
    PartValidation,
    ValidationReport,
)
from .tokens import (
    Branch,
    ConditionalToken,
    LiteralToken,
    Token,
    VariableToken,
    iter_tokens,
    render_source,
)

__all__ = [
    # Enums
    "BlockKind",
    "DiagnosticKind",
    "MatchTier",
    "ModifierKind",
    "PartName",
    "Severity",
    # Context
    "IDENTIFIER_PATTERN",
    "FieldRecord",
    "MergeContext",
    "is_identifier",
    # Diagnostics
    "CollectingSink",
    "Diagnostic",
    "DiagnosticsSink",
    "LoggingSink",
    "NullSink",
    "emit",
    # Document
    "TemplateDocument",
    # Expressions
    "And",
    "Empty",
    "Equals",
    "Expression",
    "Invalid",
    "NotEmpty",
    "NotEquals",
    "Truthy",
    "referenced_identifiers",
    # Modifiers
    "DATE_FORMAT",
    "LOWER",
    "PHONE_FORMAT",
    "REPLACE",
    "UCFIRST",
    "UCWORDS",
    "UPPER",
    "Modifier",
    "ModifierChain",
    # Reports
    "MergeReport",
    "MergeResult",
    "PartReport",
    "PartValidation",
    "ValidationReport",
    # Tokens
    "Branch",
    "ConditionalToken",
    "LiteralToken",
    "Token",
    "VariableToken",
    "iter_tokens",
    "render_source",
]
