"""
docmerge Tag Parser

Turns normalized part markup into a token stream.

Grammar (everything else is literal text, markup included):

    Variable := '{$' Identifier ('|' Modifier (':' Arg)*)* '}'
    If       := '{if' WS Expr '}' Content
                ('{elseif' WS Expr '}' Content)* ('{else}' Content)? '{/if}'
    ListIf   := '{listif' WS Expr '}' Content '{/listif}'

{else} and {elseif} directly inside a listif are plain text.

Parsing runs in three passes:
1. Lex: split the text into literal runs, variables, and block markers
2. Match: pair openers with closers on a stack, collecting branch markers
3. Build: turn matched pairs into nested ConditionalTokens

A closer pairs with the nearest open block of its own kind. Markers that
cannot be paired (stray closers, unclosed openers, a second {else},
anything beyond the nesting or step limits) stay literal and are reported
as STRUCTURAL_ERROR, as does a `{$` that never became a variable. Joining
the sources of the returned tokens always reproduces the input.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from ..config.settings import EngineSettings
from ..models import (
    BlockKind,
    Branch,
    ConditionalToken,
    DiagnosticKind,
    DiagnosticsSink,
    LiteralToken,
    Modifier,
    ModifierKind,
    Token,
    VariableToken,
    emit,
)
from .expression_parser import parse_condition

logger = logging.getLogger(__name__)


# =============================================================================
# Lexing
# =============================================================================

# A markup tag, or a brace pair with no markup or nested braces inside.
_LEXEME = re.compile(r"<[^>]*>|\{([^{}<>]*)\}")

# A variable opener left in plain text, e.g. "{$Name, ref" with no `}`.
_UNTERMINATED = re.compile(r"\{\s*(?:\$|&#36;|&#x24;)[A-Za-z0-9_]*")

_IDENTIFIER = re.compile(r"[A-Za-z0-9_]+")
_OPEN_IF = re.compile(r"^if\s+(.+)$", re.DOTALL)
_ELSEIF = re.compile(r"^elseif\s+(.+)$", re.DOTALL)
_OPEN_LISTIF = re.compile(r"^listif\s+(.+)$", re.DOTALL)

# Marker roles
OPEN = "open"
BRANCH = "branch"
DEFAULT = "default"
CLOSE = "close"


@dataclass
class _Piece:
    """One lexeme. `role` is None for text and variables."""
    source: str
    role: Optional[str] = None
    kind: Optional[BlockKind] = None
    condition: str = ""
    variable: Optional[VariableToken] = None


def _classify(source: str, content: str) -> _Piece:
    body = content.strip()
    match = _OPEN_IF.match(body)
    if match:
        return _Piece(source, OPEN, BlockKind.IF, match.group(1).strip())
    match = _OPEN_LISTIF.match(body)
    if match:
        return _Piece(source, OPEN, BlockKind.LISTIF, match.group(1).strip())
    match = _ELSEIF.match(body)
    if match:
        return _Piece(source, BRANCH, BlockKind.IF, match.group(1).strip())
    if body == "else":
        return _Piece(source, DEFAULT, BlockKind.IF)
    if body == "/if":
        return _Piece(source, CLOSE, BlockKind.IF)
    if body == "/listif":
        return _Piece(source, CLOSE, BlockKind.LISTIF)
    return _Piece(source)


# =============================================================================
# Variables and Modifier Arguments
# =============================================================================

def _split_unquoted(text: str, separator: str) -> list[str]:
    """Split on `separator` outside single- or double-quoted spans."""
    parts: list[str] = []
    current: list[str] = []
    quote: Optional[str] = None
    for char in text:
        if quote:
            current.append(char)
            if char == quote:
                quote = None
        elif char in "\"'":
            quote = char
            current.append(char)
        elif char == separator:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    parts.append("".join(current))
    return parts


def _take_argument(text: str, stop_at_colon: bool) -> Optional[tuple[str, str]]:
    """
    Read one argument from the front of `text`.

    Quoted arguments run to the matching quote. Bare arguments run to the
    first colon when `stop_at_colon`, otherwise to the end.

    Returns:
        (argument, remainder) or None if a quote is unterminated
    """
    if text[:1] in ("\"", "'"):
        end = text.find(text[0], 1)
        if end < 0:
            return None
        return text[1:end], text[end + 1:]
    if stop_at_colon:
        head, colon, tail = text.partition(":")
        return head, colon + tail
    return text, ""


def parse_modifier(text: str) -> Modifier:
    """
    Parse one modifier segment such as `phone_format:"%2 %3 %3"`.

    Raises:
        ValueError: Unknown modifier name or malformed arguments
    """
    name, colon, arg_text = text.partition(":")
    name = name.strip().lower()
    try:
        kind = ModifierKind(name)
    except ValueError:
        raise ValueError(f"unknown modifier '{name}'") from None

    if kind.arity == 0:
        if colon:
            raise ValueError(f"'{name}' takes no arguments")
        return Modifier(kind)

    if not colon:
        raise ValueError(f"'{name}' needs {kind.arity} argument(s)")

    if kind.arity == 1:
        taken = _take_argument(arg_text, stop_at_colon=False)
        if taken is None or taken[1].strip():
            raise ValueError(f"malformed argument for '{name}'")
        if not taken[0]:
            raise ValueError(f"empty argument for '{name}'")
        return Modifier(kind, (taken[0],))

    first = _take_argument(arg_text, stop_at_colon=True)
    if first is None or not first[1].startswith(":"):
        raise ValueError(f"'{name}' needs two colon-separated arguments")
    search, rest = first[0], first[1][1:]
    second = _take_argument(rest, stop_at_colon=False)
    if second is None or second[1].strip():
        raise ValueError(f"malformed second argument for '{name}'")
    if not search:
        raise ValueError(f"empty search argument for '{name}'")
    return Modifier(kind, (search, second[0]))


def parse_variable(
    source: str,
    content: str,
    sink: Optional[DiagnosticsSink] = None,
) -> Optional[VariableToken]:
    """
    Parse the inside of a `{$...}` token.

    Returns None (the caller keeps the text literal) when the identifier is
    malformed. Bad modifiers are reported and dropped from the chain.
    """
    body = content.strip()[1:]
    match = _IDENTIFIER.match(body)
    rest = body[match.end():] if match else body
    if match is None or (rest and not rest.startswith("|")):
        emit(
            sink,
            DiagnosticKind.STRUCTURAL_ERROR,
            f"Malformed merge tag {source} left as text",
            token=source,
        )
        return None

    modifiers: list[Modifier] = []
    if rest:
        for segment in _split_unquoted(rest[1:], "|"):
            try:
                modifiers.append(parse_modifier(segment))
            except ValueError as e:
                emit(
                    sink,
                    DiagnosticKind.MODIFIER_ARGUMENT_ERROR,
                    f"Skipped modifier '{segment}' in {source}: {e}",
                    token=source,
                    modifier=segment,
                )
    return VariableToken(match.group(0), tuple(modifiers), source)


def _report_unterminated(
    stretch: str,
    offset: int,
    sink: Optional[DiagnosticsSink],
) -> None:
    """Report each variable opener in plain text that never reached its `}`."""
    if "{" not in stretch:
        return
    for match in _UNTERMINATED.finditer(stretch):
        emit(
            sink,
            DiagnosticKind.STRUCTURAL_ERROR,
            f"Unterminated merge tag {match.group(0)} left as text",
            token=match.group(0),
            offset=offset + match.start(),
        )


def _lex(text: str, sink: Optional[DiagnosticsSink]) -> list[_Piece]:
    pieces: list[_Piece] = []
    literal: list[str] = []
    position = 0

    def flush() -> None:
        if literal:
            pieces.append(_Piece("".join(literal)))
            literal.clear()

    for match in _LEXEME.finditer(text):
        _report_unterminated(text[position:match.start()], position, sink)
        literal.append(text[position:match.start()])
        position = match.end()
        source = match.group(0)
        content = match.group(1)
        if content is None:
            literal.append(source)
            continue
        if content.strip().startswith("$"):
            variable = parse_variable(source, content, sink)
            if variable is None:
                literal.append(source)
                continue
            flush()
            pieces.append(_Piece(source, variable=variable))
            continue
        piece = _classify(source, content)
        if piece.role is None:
            literal.append(source)
            continue
        flush()
        pieces.append(piece)

    _report_unterminated(text[position:], position, sink)
    literal.append(text[position:])
    flush()
    return pieces


# =============================================================================
# Matching
# =============================================================================

@dataclass
class _OpenBlock:
    index: int
    kind: BlockKind
    branches: list[int] = field(default_factory=list)
    has_default: bool = False
    # Past the nesting limit: tracked for pairing only, emitted as text.
    literal: bool = False


@dataclass
class _Block:
    kind: BlockKind
    markers: list[int]
    close: int


def _structural(sink: Optional[DiagnosticsSink], message: str, marker: str) -> None:
    logger.debug("Structural error: %s", message)
    emit(sink, DiagnosticKind.STRUCTURAL_ERROR, message, marker=marker)


def _match_blocks(
    pieces: list[_Piece],
    max_depth: int,
    max_steps: int,
    sink: Optional[DiagnosticsSink],
) -> dict[int, _Block]:
    """Pair block markers; returns opener index -> matched block."""
    blocks: dict[int, _Block] = {}
    stack: list[_OpenBlock] = []
    steps = 0

    for index, piece in enumerate(pieces):
        if piece.role is None:
            continue
        steps += 1
        if steps > max_steps:
            _structural(
                sink,
                f"Parse step limit ({max_steps}) reached; remaining block markers left as text",
                piece.source,
            )
            break

        if piece.role == OPEN:
            too_deep = len(stack) >= max_depth
            if too_deep and not stack[-1].literal:
                _structural(
                    sink,
                    f"Nesting deeper than {max_depth} at {piece.source}; left as text",
                    piece.source,
                )
            stack.append(_OpenBlock(index, piece.kind, literal=too_deep))

        elif piece.role in (BRANCH, DEFAULT):
            top = stack[-1] if stack else None
            if top is not None and (top.kind == BlockKind.LISTIF or top.literal):
                # listif has no else/elseif; they are ordinary text there.
                continue
            if top is None:
                _structural(sink, f"Stray {piece.source} outside any if block", piece.source)
            elif top.has_default:
                _structural(sink, f"{piece.source} after {{else}} left as text", piece.source)
            else:
                top.branches.append(index)
                top.has_default = piece.role == DEFAULT

        elif piece.role == CLOSE:
            depth = next(
                (d for d in range(len(stack) - 1, -1, -1) if stack[d].kind == piece.kind),
                None,
            )
            if depth is None:
                _structural(sink, f"Unmatched {piece.source} left as text", piece.source)
                continue
            # Blocks of the other kind still open inside this one stay text.
            for orphan in stack[depth + 1:]:
                if not orphan.literal:
                    source = pieces[orphan.index].source
                    _structural(
                        sink,
                        f"Unclosed {source} inside {piece.source} left as text",
                        source,
                    )
            del stack[depth + 1:]
            block = stack.pop()
            if not block.literal:
                blocks[block.index] = _Block(
                    block.kind, [block.index] + block.branches, index
                )

    for block in stack:
        if block.literal:
            continue
        _structural(
            sink,
            f"Unclosed {pieces[block.index].source} left as text",
            pieces[block.index].source,
        )
    return blocks


# =============================================================================
# Building
# =============================================================================

def _append_literal(tokens: list[Token], source: str) -> None:
    if not source:
        return
    if tokens and isinstance(tokens[-1], LiteralToken):
        tokens[-1] = LiteralToken(tokens[-1].source + source)
    else:
        tokens.append(LiteralToken(source))


def _build(
    pieces: list[_Piece],
    blocks: dict[int, _Block],
    start: int,
    end: int,
) -> list[Token]:
    tokens: list[Token] = []
    index = start
    while index < end:
        piece = pieces[index]
        block = blocks.get(index)
        if block is not None:
            bounds = block.markers + [block.close]
            branches = []
            for marker, next_marker in zip(bounds, bounds[1:]):
                marker_piece = pieces[marker]
                expression = (
                    None if marker_piece.role == DEFAULT
                    else parse_condition(marker_piece.condition)
                )
                content = _build(pieces, blocks, marker + 1, next_marker)
                branches.append(Branch(expression, tuple(content), marker_piece.source))
            tokens.append(ConditionalToken(
                kind=block.kind,
                branches=tuple(branches),
                close_marker=pieces[block.close].source,
            ))
            index = block.close + 1
            continue
        if piece.variable is not None:
            tokens.append(piece.variable)
        else:
            _append_literal(tokens, piece.source)
        index += 1
    return tokens


# =============================================================================
# Entry Point
# =============================================================================

def parse_template(
    text: str,
    settings: Optional[EngineSettings] = None,
    sink: Optional[DiagnosticsSink] = None,
    max_steps: Optional[int] = None,
) -> list[Token]:
    """
    Parse normalized markup into tokens.

    Args:
        text: Output of the run normalizer
        settings: Supplies max_nesting_depth
        sink: Diagnostics sink (optional)
        max_steps: Marker budget; defaults to a bound proportional to the
            input length

    Returns:
        Token list whose sources concatenate back to `text`
    """
    settings = settings or EngineSettings()
    if "{" not in text:
        return [LiteralToken(text)] if text else []

    pieces = _lex(text, sink)
    if max_steps is None:
        max_steps = len(text) + 1
    blocks = _match_blocks(pieces, settings.max_nesting_depth, max_steps, sink)
    return _build(pieces, blocks, 0, len(pieces))
