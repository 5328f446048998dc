"""
docmerge Renderer

Evaluates a parsed token stream against a merge context:
- Literal tokens pass through unchanged
- Variables are resolved, run through their modifier chain, and escaped
- Conditionals keep exactly one branch (the first true one, else the
  default branch, else nothing)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence

from ..config.settings import EngineSettings
from ..models import (
    BlockKind,
    ConditionalToken,
    DiagnosticKind,
    DiagnosticsSink,
    LiteralToken,
    Token,
    VariableToken,
    emit,
)
from .condition_evaluator import ConditionEvaluator
from .modifier_pipeline import apply_chain
from .value_resolver import ValueResolver

logger = logging.getLogger(__name__)


_XML_ESCAPES = (("&", "&amp;"), ("<", "&lt;"), (">", "&gt;"))
_BRACE_ESCAPES = (("{", "&#123;"), ("}", "&#125;"))


def escape_value(value: str, escape_braces: bool = True) -> str:
    """
    Escape a substituted value for XML text content.

    With `escape_braces`, { and } become character references so merged
    output never contains new template tokens.
    """
    for char, entity in _XML_ESCAPES:
        value = value.replace(char, entity)
    if escape_braces:
        for char, entity in _BRACE_ESCAPES:
            value = value.replace(char, entity)
    return value


@dataclass
class RenderResult:
    """Rendered text plus substitution counts."""
    text: str
    variables_substituted: int = 0
    conditionals_resolved: int = 0
    unresolved_identifiers: list[str] = field(default_factory=list)


@dataclass
class Renderer:
    """
    Renders tokens for one part.

    Usage:
        renderer = Renderer(settings)
        result = renderer.render(parse_template(text), context)
    """

    settings: EngineSettings = field(default_factory=EngineSettings)
    sink: Optional[DiagnosticsSink] = None

    def __post_init__(self) -> None:
        self.resolver = ValueResolver(allow_partial_match=self.settings.allow_partial_match)
        self.evaluator = ConditionEvaluator(resolver=self.resolver, sink=self.sink)

    def render(self, tokens: Sequence[Token], context: Mapping[str, str]) -> RenderResult:
        result = RenderResult(text="")
        out: list[str] = []
        self._render_into(tokens, context, out, result)
        result.text = "".join(out)
        return result

    def _render_into(
        self,
        tokens: Sequence[Token],
        context: Mapping[str, str],
        out: list[str],
        result: RenderResult,
    ) -> None:
        for token in tokens:
            if isinstance(token, LiteralToken):
                out.append(token.source)
            elif isinstance(token, VariableToken):
                out.append(self._render_variable(token, context, result))
            elif isinstance(token, ConditionalToken):
                branch = self._select_branch(token, context)
                result.conditionals_resolved += 1
                if branch is not None:
                    self._render_into(branch.content, context, out, result)

    def _render_variable(
        self,
        token: VariableToken,
        context: Mapping[str, str],
        result: RenderResult,
    ) -> str:
        value = self.resolver.resolve(token.identifier, context)
        if value is None:
            if token.identifier not in result.unresolved_identifiers:
                result.unresolved_identifiers.append(token.identifier)
            emit(
                self.sink,
                DiagnosticKind.UNRESOLVED_VARIABLE,
                f"No value for {token.source}; substituted empty text",
                identifier=token.identifier,
            )
            return ""
        result.variables_substituted += 1
        if value and token.modifiers:
            value = apply_chain(token.modifiers, value, dayfirst=self.settings.date_dayfirst)
        return escape_value(value, self.settings.escape_braces)

    def _select_branch(self, token: ConditionalToken, context: Mapping[str, str]):
        for branch in token.branches:
            if branch.is_default:
                return branch
            if self.evaluator.evaluate(branch.expression, context):
                return branch
            if token.kind == BlockKind.LISTIF:
                break
        return None
