"""
docmerge Run Normalizer

Repairs placeholder tokens that a word processor has split across inline
markup, e.g.

    {$USR_Na</w:t></w:r><w:r><w:t>me}   ->   {$USR_Name}

Key features:
- Markup outside delimiters is copied byte for byte
- A `{` inside a tag's attributes is never a delimiter
- Reconstruction stops at paragraph-level (hard boundary) elements
- Stripped inline markup must be balanced, so unrelated runs are never fused
- Idempotent: normalizing normalized text is a no-op
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional

from ..config.settings import EngineSettings
from ..models import DiagnosticKind, DiagnosticsSink, emit

logger = logging.getLogger(__name__)


# Entity and typographic forms seen inside tokens typed in a word processor.
_TOKEN_REPLACEMENTS = (
    ("&#36;", "$"),
    ("&#x24;", "$"),
    ("&quot;", '"'),
    ("&#34;", '"'),
    ("&apos;", "'"),
    ("&#39;", "'"),
    ("“", '"'),
    ("”", '"'),
    ("‘", "'"),
    ("’", "'"),
)

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class NormalizeResult:
    """Normalized text plus counts of repaired and abandoned tokens."""
    text: str
    repaired: int = 0
    abandoned: int = 0


# =============================================================================
# Markup Helpers
# =============================================================================

def _tag_end(markup: str, start: int) -> int:
    """Index just past the tag starting at `start`, or -1 if unterminated."""
    end = markup.find(">", start + 1)
    return -1 if end < 0 else end + 1


def _local_name(tag: str) -> str:
    """Local element name of a tag ("<w:p w:rsidR=..>" -> "p")."""
    body = tag[1:-1].strip()
    if body.startswith("/"):
        body = body[1:]
    name = re.split(r"[\s/>]", body, maxsplit=1)[0] if body else ""
    return name.rsplit(":", 1)[-1]


def _tag_role(tag: str) -> str:
    """"open", "close", "empty", or "other" (comments, PIs, declarations)."""
    if tag.startswith(("<?", "<!")):
        return "other"
    if tag.startswith("</"):
        return "close"
    if tag.endswith("/>"):
        return "empty"
    return "open"


def _tags_balanced(tags: list[str]) -> bool:
    """
    True if the stripped tags form a balanced splice.

    Closes that precede any open (the run being split) must be reopened in
    mirror order, and nothing may be left open or closed beyond that.
    """
    stack: list[str] = []
    closed_early: list[str] = []
    opened = False
    for tag in tags:
        role = _tag_role(tag)
        name = _local_name(tag)
        if role == "open":
            stack.append(name)
            opened = True
        elif role == "close":
            if stack:
                if stack[-1] != name:
                    return False
                stack.pop()
            elif opened:
                return False
            else:
                closed_early.append(name)
    # Whatever remains open must reopen what was closed, innermost last.
    return stack == list(reversed(closed_early))


# =============================================================================
# Normalizer
# =============================================================================

def _collapse_splices(content: str, splices: list[int]) -> str:
    """Collapse each whitespace run touching a point where markup was removed."""
    pieces: list[str] = []
    last = 0
    for match in _WHITESPACE.finditer(content):
        start, end = match.span()
        if any(start <= splice <= end for splice in splices):
            pieces.append(content[last:start])
            pieces.append(" ")
            last = end
    pieces.append(content[last:])
    return "".join(pieces)


def _clean_token(content: str, splices: list[int]) -> str:
    if splices:
        content = _collapse_splices(content, splices).strip()
    for entity, replacement in _TOKEN_REPLACEMENTS:
        if entity in content:
            content = content.replace(entity, replacement)
    return content


def normalize(
    markup: str,
    settings: Optional[EngineSettings] = None,
    sink: Optional[DiagnosticsSink] = None,
) -> NormalizeResult:
    """
    Rebuild `{...}` spans interrupted by inline markup.

    Never raises. A `{` that cannot be reconstructed (hard boundary, end of
    input, or unbalanced markup before its `}`) is emitted literally and
    reported as UNRECONSTRUCTED_TOKEN.

    Args:
        markup: Raw part markup
        settings: Supplies the hard boundary element names
        sink: Diagnostics sink (optional)

    Returns:
        NormalizeResult with the new text and repair counts
    """
    settings = settings or EngineSettings()
    boundaries = settings.hard_boundary_elements

    if "{" not in markup:
        return NormalizeResult(text=markup)

    out: list[str] = []
    repaired = 0
    abandoned = 0
    # Once a scan reaches end of input without a `}`, every later `{` fails too.
    exhausted = False
    length = len(markup)
    i = 0

    while i < length:
        char = markup[i]

        if char == "<":
            end = _tag_end(markup, i)
            if end < 0:
                out.append(markup[i:])
                break
            out.append(markup[i:end])
            i = end
            continue

        if char != "{":
            nxt = min(
                (pos for pos in (markup.find("<", i), markup.find("{", i)) if pos >= 0),
                default=length,
            )
            out.append(markup[i:nxt])
            i = nxt
            continue

        # Opening delimiter in text position.
        reason = None
        content: list[str] = []
        stripped_tags: list[str] = []
        # Offsets into `content` where a tag was removed.
        splices: list[int] = []
        j = i + 1
        if exhausted:
            reason = "no closing brace"
        while reason is None:
            if j >= length:
                reason = "no closing brace"
                exhausted = True
                break
            c = markup[j]
            if c == "}":
                break
            if c == "<":
                end = _tag_end(markup, j)
                if end < 0:
                    reason = "unterminated markup"
                    exhausted = True
                    break
                tag = markup[j:end]
                if _tag_role(tag) != "other" and _local_name(tag) in boundaries:
                    reason = f"hard boundary <{_local_name(tag)}>"
                    break
                stripped_tags.append(tag)
                splices.append(len(content))
                j = end
                continue
            content.append(c)
            j += 1

        if reason is None and stripped_tags and not _tags_balanced(stripped_tags):
            reason = "unbalanced inline markup"

        if reason is not None:
            abandoned += 1
            emit(
                sink,
                DiagnosticKind.UNRECONSTRUCTED_TOKEN,
                f"Left '{{' literal at offset {i}: {reason}",
                offset=i,
                reason=reason,
            )
            out.append("{")
            i += 1
            continue

        token = "{" + _clean_token("".join(content), splices) + "}"
        if stripped_tags:
            repaired += 1
            emit(
                sink,
                DiagnosticKind.TOKEN_REPAIRED,
                f"Rebuilt {token} from {len(stripped_tags)} markup node(s)",
                offset=i,
                token=token,
            )
        out.append(token)
        i = j + 1

    if repaired or abandoned:
        logger.debug("Normalized markup: %d repaired, %d abandoned", repaired, abandoned)
    return NormalizeResult(text="".join(out), repaired=repaired, abandoned=abandoned)


def normalize_text(markup: str, settings: Optional[EngineSettings] = None) -> str:
    """Normalized text only."""
    return normalize(markup, settings).text
