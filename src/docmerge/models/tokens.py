"""
docmerge Template Tokens

The parser turns normalized markup into a stream of tokens:
- LiteralToken: text passed through untouched (markup included)
- VariableToken: {$Name|modifier...}
- ConditionalToken: an if/elseif/else or listif block whose branches hold
  nested token streams

Every token keeps its exact source text, so joining the sources of a
stream reproduces the parser input byte for byte.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from .enums import BlockKind
from .expressions import Expression
from .modifiers import ModifierChain


@dataclass(frozen=True)
class LiteralToken:
    source: str


@dataclass(frozen=True)
class VariableToken:
    identifier: str
    modifiers: ModifierChain = ()
    source: str = ""


@dataclass(frozen=True)
class Branch:
    """
    One branch of a conditional.

    `expression` is None for the default ({else}) branch. `marker` is the
    opening marker text, e.g. "{elseif $X}".
    """
    expression: Optional[Expression]
    content: tuple[Token, ...] = ()
    marker: str = ""

    @property
    def is_default(self) -> bool:
        return self.expression is None

    @property
    def source(self) -> str:
        return self.marker + render_source(self.content)


@dataclass(frozen=True)
class ConditionalToken:
    kind: BlockKind
    branches: tuple[Branch, ...] = field(default_factory=tuple)
    close_marker: str = ""

    @property
    def source(self) -> str:
        return "".join(branch.source for branch in self.branches) + self.close_marker

    @property
    def has_default(self) -> bool:
        return any(branch.is_default for branch in self.branches)


Token = Union[LiteralToken, VariableToken, ConditionalToken]


def render_source(tokens: "tuple[Token, ...] | list[Token]") -> str:
    """Re-concatenate the source text of a token stream."""
    return "".join(token.source for token in tokens)


def iter_tokens(tokens: "tuple[Token, ...] | list[Token]"):
    """Depth-first walk over a token stream, including branch contents."""
    for token in tokens:
        yield token
        if isinstance(token, ConditionalToken):
            for branch in token.branches:
                yield from iter_tokens(branch.content)
