"""
docmerge Condition Evaluator

Evaluates parsed condition expressions against a merge context.

Key features:
- Identifiers are looked up with the tiered value resolver
- Conjunctions evaluate left to right and stop at the first false operand
- Total: Invalid sub-expressions are false and reported, never raised
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional, Union

from ..models import (
    And,
    DiagnosticKind,
    DiagnosticsSink,
    Empty,
    Equals,
    Expression,
    Invalid,
    NotEmpty,
    NotEquals,
    Truthy,
    emit,
)
from .expression_parser import parse_condition
from .value_resolver import ValueResolver

logger = logging.getLogger(__name__)


@dataclass
class ConditionEvaluator:
    """
    Evaluates condition expressions.

    Usage:
        evaluator = ConditionEvaluator()
        evaluator.evaluate(parse_condition("!empty($USR_ABN)"), context)

        # Raw condition text is parsed first
        evaluator.evaluate('$State == "NSW"', context)
    """

    resolver: ValueResolver = field(default_factory=ValueResolver)
    sink: Optional[DiagnosticsSink] = None

    def evaluate(
        self,
        expression: Union[Expression, str],
        context: Mapping[str, str],
    ) -> bool:
        """
        Evaluate an expression (or condition text) against a context.

        Returns:
            True or False. Never raises for malformed conditions.
        """
        if isinstance(expression, str):
            expression = parse_condition(expression)

        if isinstance(expression, And):
            for operand in expression.operands:
                if not self._evaluate_atom(operand, context):
                    return False
            return True
        return self._evaluate_atom(expression, context)

    def _value(self, identifier: str, context: Mapping[str, str]) -> str:
        value = self.resolver.resolve(identifier, context)
        return "" if value is None else value

    def _evaluate_atom(self, atom, context: Mapping[str, str]) -> bool:
        if isinstance(atom, Empty):
            return self._value(atom.identifier, context) == ""
        if isinstance(atom, NotEmpty):
            return self._value(atom.identifier, context) != ""
        if isinstance(atom, Equals):
            return self._value(atom.identifier, context) == atom.literal
        if isinstance(atom, NotEquals):
            return self._value(atom.identifier, context) != atom.literal
        if isinstance(atom, Truthy):
            return self._value(atom.identifier, context) != ""
        if isinstance(atom, Invalid):
            logger.debug("Invalid condition treated as false: %r", atom.text)
            emit(
                self.sink,
                DiagnosticKind.INVALID_CONDITION,
                f"Unrecognised condition '{atom.text}' evaluates to false",
                condition=atom.text,
            )
            return False
        return False


# =============================================================================
# Convenience Functions
# =============================================================================

def evaluate(
    expression: Union[Expression, str],
    context: Mapping[str, str],
) -> bool:
    """Evaluate with the default resolver and no diagnostics sink."""
    return ConditionEvaluator().evaluate(expression, context)
