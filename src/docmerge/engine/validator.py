"""
docmerge Template Validator

Structural report for a template without merging it: how many merge tags,
conditional blocks and modifiers each part uses, and which structural
problems (unbalanced blocks, unterminated or malformed tags) it has.
"""
from __future__ import annotations

import logging
from typing import Mapping, Optional, Union

from ..config.settings import EngineSettings
from ..models import (
    CollectingSink,
    ConditionalToken,
    DiagnosticKind,
    PartValidation,
    TemplateDocument,
    ValidationReport,
    VariableToken,
    iter_tokens,
)
from .normalizer import normalize
from .tag_parser import parse_template

logger = logging.getLogger(__name__)


def validate_part(
    name: str,
    markup: str,
    settings: Optional[EngineSettings] = None,
) -> PartValidation:
    """Validate one part's markup."""
    sink = CollectingSink(part=name)
    normalized = normalize(markup, settings, sink)
    tokens = parse_template(normalized.text, settings, sink)

    result = PartValidation(part=name)
    for token in iter_tokens(tokens):
        if isinstance(token, VariableToken):
            result.variables += 1
            result.modifiers += len(token.modifiers)
        elif isinstance(token, ConditionalToken):
            result.conditionals += 1

    # Unterminated `{$` tokens surface as structural errors from the parser,
    # whether or not the normalizer tried to rebuild them.
    for diagnostic in sink.diagnostics:
        if diagnostic.kind in (
            DiagnosticKind.STRUCTURAL_ERROR,
            DiagnosticKind.MODIFIER_ARGUMENT_ERROR,
        ):
            result.errors.append(diagnostic.message)
    return result


def validate_document(
    document: Union[TemplateDocument, Mapping[str, str]],
    settings: Optional[EngineSettings] = None,
) -> ValidationReport:
    """
    Validate every present part.

    Usage:
        report = validate_document({"body": body_xml})
        if report.has_errors:
            print(report.summary())
    """
    if not isinstance(document, TemplateDocument):
        document = TemplateDocument(document)
    report = ValidationReport()
    for part, markup in document.items():
        report.parts.append(validate_part(part.value, markup, settings))
    logger.info(
        "Validated %d part(s): %d merge tags, %d conditionals, %d modifiers",
        len(report.parts),
        report.total_variables,
        report.total_conditionals,
        report.total_modifiers,
    )
    return report
