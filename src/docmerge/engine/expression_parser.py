"""
docmerge Expression Parser

Parses the condition text of {if ...}, {elseif ...} and {listif ...}
markers into Expression values. Parsing is total: anything that matches
none of the recognised forms becomes Invalid, which evaluates to false.
"""
from __future__ import annotations

import re

from ..models import (
    And,
    Empty,
    Equals,
    Expression,
    Invalid,
    NotEmpty,
    NotEquals,
    Truthy,
)

_CONJUNCTION = re.compile(r"\s+(?:and|&&)\s+", re.IGNORECASE)

_EMPTY = re.compile(r"^(!?)\s*empty\(\s*\$([A-Za-z0-9_]+)\s*\)$")
_COMPARISON = re.compile(r"^\$([A-Za-z0-9_]+)\s*(==|!=)\s*[\"'](.*?)[\"']$")
_TRUTHY = re.compile(r"^\$([A-Za-z0-9_]+)$")

# Markup-escaped operators as they appear in part XML.
_DECODE = (
    ("&amp;", "&"),
    ("&quot;", '"'),
    ("&apos;", "'"),
    ("&#39;", "'"),
    ("&#36;", "$"),
)


def _decode(text: str) -> str:
    for entity, replacement in _DECODE:
        text = text.replace(entity, replacement)
    return text


def parse_atom(text: str):
    """Parse one sub-expression (no conjunctions)."""
    text = text.strip()

    match = _EMPTY.match(text)
    if match:
        negated, identifier = match.groups()
        return NotEmpty(identifier) if negated else Empty(identifier)

    match = _COMPARISON.match(text)
    if match:
        identifier, operator, literal = match.groups()
        if operator == "==":
            return Equals(identifier, literal)
        return NotEquals(identifier, literal)

    match = _TRUTHY.match(text)
    if match:
        return Truthy(match.group(1))

    return Invalid(text)


def parse_condition(text: str) -> Expression:
    """
    Parse condition text into an Expression.

    Conjunctions (` and `, ` && `, case-insensitive) produce an And of the
    parts in source order; a single part yields the atom itself.

    Examples:
        parse_condition("!empty($USR_ABN)")               -> NotEmpty("USR_ABN")
        parse_condition('$State == "NSW" and $Show')      -> And((Equals(...), Truthy(...)))
        parse_condition("count($X) > 1")                  -> Invalid("count($X) > 1")
    """
    decoded = _decode(text).strip()
    parts = _CONJUNCTION.split(decoded)
    atoms = tuple(parse_atom(part) for part in parts)
    if len(atoms) == 1:
        return atoms[0]
    return And(atoms)
