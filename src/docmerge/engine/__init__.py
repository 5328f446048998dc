"""
docmerge Engine

The merge pipeline, leaf-first:
- normalizer: repair tokens split across inline markup
- tag_parser / expression_parser: tokens, modifiers and conditions
- condition_evaluator: evaluate conditions against a context
- modifier_pipeline: transform resolved values
- value_resolver: tiered identifier lookup
- context_builder: build the context from field records
- renderer / orchestrator: merge every part of a document
- validator: structural report without merging

Usage:
    from docmerge.engine import ContextBuilder, MergeEngine

    context = ContextBuilder().build(fields, direct_mapping)
    result = MergeEngine().merge(context, {"body": body_xml})
"""
from __future__ import annotations

from .condition_evaluator import ConditionEvaluator, evaluate
from .context_builder import (
    ContextBuilder,
    abbreviate,
    best_match,
    build_context,
    derived_keys,
    score_key,
    slugify,
)
from .expression_parser import parse_condition
from .modifier_pipeline import (
    apply_chain,
    apply_modifier,
    format_date,
    format_phone,
    parse_date,
    render_date,
)
from .normalizer import NormalizeResult, normalize, normalize_text
from .orchestrator import MergeEngine, PartWriter, merge
from .renderer import Renderer, RenderResult, escape_value
from .tag_parser import parse_modifier, parse_template
from .validator import validate_document, validate_part
from .value_resolver import ValueResolver, resolve

__all__ = [
    # Normalizer
    "NormalizeResult",
    "normalize",
    "normalize_text",
    # Parsing
    "parse_condition",
    "parse_modifier",
    "parse_template",
    # Evaluation
    "ConditionEvaluator",
    "evaluate",
    # Modifiers
    "apply_chain",
    "apply_modifier",
    "format_date",
    "format_phone",
    "parse_date",
    "render_date",
    # Resolution
    "ValueResolver",
    "resolve",
    # Context
    "ContextBuilder",
    "abbreviate",
    "best_match",
    "build_context",
    "derived_keys",
    "score_key",
    "slugify",
    # Rendering and orchestration
    "MergeEngine",
    "PartWriter",
    "RenderResult",
    "Renderer",
    "escape_value",
    "merge",
    # Validation
    "validate_document",
    "validate_part",
]
