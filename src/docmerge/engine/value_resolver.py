"""
docmerge Value Resolver

Resolves a template identifier to a context value using tiered matching.

Tiers, first match wins:
1. Exact key equality
2. Case-insensitive key equality
3. Case-insensitive substring in either direction (identifier contains the
   key, or the key contains the identifier), in context insertion order

A matched key returns its value even when that value is "". No match at
any tier returns None; the caller substitutes "" and reports it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from ..models import MatchTier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValueResolver:
    """
    Tiered identifier lookup.

    Attributes:
        allow_partial_match: Enable the substring tier
    """
    allow_partial_match: bool = True

    def resolve_with_tier(
        self,
        identifier: str,
        context: Mapping[str, str],
    ) -> tuple[Optional[str], MatchTier]:
        """Resolve and report which tier matched."""
        if not identifier:
            return (None, MatchTier.NONE)

        if identifier in context:
            return (context[identifier], MatchTier.EXACT)

        wanted = identifier.lower()
        for key, value in context.items():
            if key.lower() == wanted:
                return (value, MatchTier.CASE_INSENSITIVE)

        if self.allow_partial_match:
            for key, value in context.items():
                if not key:
                    continue
                lowered = key.lower()
                if wanted in lowered or lowered in wanted:
                    logger.debug(
                        "Partial match for '%s' on key '%s'", identifier, key
                    )
                    return (value, MatchTier.PARTIAL)

        return (None, MatchTier.NONE)

    def resolve(self, identifier: str, context: Mapping[str, str]) -> Optional[str]:
        """Resolved value, or None when no tier matches."""
        value, _ = self.resolve_with_tier(identifier, context)
        return value


_DEFAULT_RESOLVER = ValueResolver()


def resolve(identifier: str, context: Mapping[str, str]) -> Optional[str]:
    """Resolve with every tier enabled."""
    return _DEFAULT_RESOLVER.resolve(identifier, context)
