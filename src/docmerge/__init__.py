"""
docmerge - Merge-Tag Template Engine for Document Part Markup

docmerge fills word-processing templates with submitted form data. It works
directly on the markup of each document part (body, headers, footers) and
only ever rewrites placeholder tokens; every other byte passes through.

Template Language:
    {$USR_Business}                         variable
    {$USR_ABN|phone_format:"%2 %3 %3 %3"}   variable with modifiers
    {if !empty($USR_ABN)} ... {elseif $X} ... {else} ... {/if}
    {listif $Duty_1} ... {/listif}

Key Features:
- Repairs tokens that a word processor split across formatting runs
- Nested conditional blocks with empty/equality/truthy conditions
- Case, phone, date and replace modifiers
- Tiered identifier lookup (exact, case-insensitive, partial)
- Context building from form fields with keyword-scored canonical tags
- Malformed templates degrade to literal text plus diagnostics

Quick Start:
    from docmerge import ContextBuilder, FieldRecord, MergeEngine

    context = ContextBuilder().build(
        fields=[FieldRecord("3", label="Business Name", value="Acme Pty Ltd")],
        direct_mapping={"USR_Business": "3"},
    )
    result = MergeEngine().merge(context, {"body": body_xml})
    if result.success:
        merged_body = result.parts["body"]

Version: 1.0.0
"""
from __future__ import annotations

__version__ = "1.0.0"

# =============================================================================
# Configuration
# =============================================================================
from .config import (
    DocMergeConfig,
    EngineSettings,
    MatchRule,
    load_config,
    load_default_rules,
)

# =============================================================================
# Engine
# =============================================================================
from .engine import (
    ConditionEvaluator,
    ContextBuilder,
    MergeEngine,
    PartWriter,
    ValueResolver,
    apply_chain,
    apply_modifier,
    build_context,
    merge,
    normalize,
    parse_condition,
    parse_template,
    resolve,
    validate_document,
)

# =============================================================================
# Exceptions
# =============================================================================
from .exceptions import (
    ConfigLoadError,
    ConfigValidationError,
    DocMergeError,
    DocumentError,
    InvalidConditionError,
    ModifierArgumentError,
    NoPartsProcessed,
    PartWriteFailure,
    StructuralError,
    TemplateError,
    TemplatePartMissing,
    UnresolvedVariable,
    get_error_code,
)

# =============================================================================
# Models
# =============================================================================
from .models import (
    CollectingSink,
    Diagnostic,
    DiagnosticKind,
    FieldRecord,
    LoggingSink,
    MergeContext,
    MergeReport,
    MergeResult,
    NullSink,
    PartName,
    TemplateDocument,
    ValidationReport,
)

__all__ = [
    "__version__",
    # Configuration
    "DocMergeConfig",
    "EngineSettings",
    "MatchRule",
    "load_config",
    "load_default_rules",
    # Engine
    "ConditionEvaluator",
    "ContextBuilder",
    "MergeEngine",
    "PartWriter",
    "ValueResolver",
    "apply_chain",
    "apply_modifier",
    "build_context",
    "merge",
    "normalize",
    "parse_condition",
    "parse_template",
    "resolve",
    "validate_document",
    # Exceptions
    "ConfigLoadError",
    "ConfigValidationError",
    "DocMergeError",
    "DocumentError",
    "InvalidConditionError",
    "ModifierArgumentError",
    "NoPartsProcessed",
    "PartWriteFailure",
    "StructuralError",
    "TemplateError",
    "TemplatePartMissing",
    "UnresolvedVariable",
    "get_error_code",
    # Models
    "CollectingSink",
    "Diagnostic",
    "DiagnosticKind",
    "FieldRecord",
    "LoggingSink",
    "MergeContext",
    "MergeReport",
    "MergeResult",
    "NullSink",
    "PartName",
    "TemplateDocument",
    "ValidationReport",
]
