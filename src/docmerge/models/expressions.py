"""
docmerge Condition Expressions

Parsed form of the condition text in {if ...}, {elseif ...} and
{listif ...} markers.

Forms (matched in this priority order by the expression parser):
- Empty / NotEmpty:       empty($X)   !empty($X)
- Equals / NotEquals:     $X == "lit" $X != "lit"
- Truthy:                 $X
- And:                    left-to-right, short-circuiting conjunction
- Invalid:                anything else; always evaluates to false
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Empty:
    """True when the identifier is absent or resolves to ""."""
    identifier: str


@dataclass(frozen=True)
class NotEmpty:
    """True when the identifier resolves to a non-empty value."""
    identifier: str


@dataclass(frozen=True)
class Equals:
    """String equality; an absent value compares as ""."""
    identifier: str
    literal: str


@dataclass(frozen=True)
class NotEquals:
    """String inequality; an absent value compares as ""."""
    identifier: str
    literal: str


@dataclass(frozen=True)
class Truthy:
    """True when the identifier resolves to a non-empty value."""
    identifier: str


@dataclass(frozen=True)
class Invalid:
    """An unparsable sub-expression. Never true."""
    text: str


Atom = Union[Empty, NotEmpty, Equals, NotEquals, Truthy, Invalid]


@dataclass(frozen=True)
class And:
    """Conjunction of atoms, evaluated left to right."""
    operands: tuple[Atom, ...]


Expression = Union[Atom, And]


def referenced_identifiers(expression: Expression) -> list[str]:
    """Identifiers an expression reads, in order of appearance."""
    if isinstance(expression, And):
        names: list[str] = []
        for operand in expression.operands:
            for name in referenced_identifiers(operand):
                if name not in names:
                    names.append(name)
        return names
    if isinstance(expression, Invalid):
        return []
    return [expression.identifier]
