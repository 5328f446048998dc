"""
docmerge Runtime Settings

Frozen dataclasses the engine components read. They are produced by the
config loader from validated YAML, or constructed directly with defaults.
"""
from __future__ import annotations

from dataclasses import dataclass, field


DEFAULT_HARD_BOUNDARY_ELEMENTS = frozenset({
    "p",
    "tc",
    "tr",
    "tbl",
    "body",
    "hdr",
    "ftr",
    "txbxContent",
    "sectPr",
    "document",
})


@dataclass(frozen=True)
class EngineSettings:
    """
    Tunables shared by every component.

    Attributes:
        hard_boundary_elements: Markup element local names the normalizer
            will not reconstruct a token across (paragraph-level breaks)
        max_nesting_depth: Deepest conditional nesting the parser accepts
        allow_partial_match: Enable the substring tier of value resolution
        escape_braces: Write { and } in substituted values as character
            references so merged output never re-parses as tags
        date_dayfirst: Read ambiguous dates like 03/04/2024 as 3 April
        parallel_parts: Merge parts on a thread pool
        strict: Raise the first recoverable problem instead of degrading
        abbreviation_max_length: Cap for derived business abbreviations
    """
    hard_boundary_elements: frozenset[str] = DEFAULT_HARD_BOUNDARY_ELEMENTS
    max_nesting_depth: int = 64
    allow_partial_match: bool = True
    escape_braces: bool = True
    date_dayfirst: bool = True
    parallel_parts: bool = False
    strict: bool = False
    abbreviation_max_length: int = 6


@dataclass(frozen=True)
class MatchRule:
    """
    Heuristic rule for filling one canonical merge tag.

    A context key scores +10 per keyword it contains, +20 more if it equals
    the keyword, +5 more if it starts with it, and -15 per exclude keyword
    it contains. The total is multiplied by `priority`.
    """
    tag: str
    keywords: tuple[str, ...] = ()
    exclude_keywords: tuple[str, ...] = ()
    priority: float = 1.0


@dataclass(frozen=True)
class DocMergeConfig:
    """A loaded configuration: settings plus the canonical-tag catalogue."""
    settings: EngineSettings = field(default_factory=EngineSettings)
    rules: tuple[MatchRule, ...] = ()
    schema_version: str = "1.0.0"

    def rule_for(self, tag: str) -> MatchRule | None:
        for rule in self.rules:
            if rule.tag == tag:
                return rule
        return None
