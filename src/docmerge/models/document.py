"""
docmerge Template Document

A document is the set of present template parts, keyed by PartName.
Absent parts are simply not in the mapping; that is never an error.
"""
from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from typing import Union

from .enums import PartName

logger = logging.getLogger(__name__)


class TemplateDocument(Mapping[PartName, str]):
    """
    Read-only mapping of present parts to their raw markup.

    Iteration always follows the canonical part order (body, headers,
    footers) regardless of insertion order.
    """

    __slots__ = ("_parts",)

    def __init__(self, parts: Mapping[Union[PartName, str], str] | None = None) -> None:
        resolved: dict[PartName, str] = {}
        for name, markup in (parts or {}).items():
            part = name if isinstance(name, PartName) else PartName.parse(str(name))
            if part is None:
                logger.warning("Ignoring unknown template part %r", name)
                continue
            if markup is None:
                continue
            resolved[part] = markup
        self._parts = {part: resolved[part] for part in PartName.ordered() if part in resolved}

    @classmethod
    def from_mapping(cls, parts: Mapping[str, str]) -> TemplateDocument:
        """Build from part names or container paths (word/header1.xml)."""
        return cls(parts)

    @classmethod
    def body_only(cls, markup: str) -> TemplateDocument:
        return cls({PartName.BODY: markup})

    def __getitem__(self, key: PartName) -> str:
        return self._parts[key]

    def __iter__(self) -> Iterator[PartName]:
        return iter(self._parts)

    def __len__(self) -> int:
        return len(self._parts)

    def __repr__(self) -> str:
        names = ", ".join(part.value for part in self._parts)
        return f"TemplateDocument({names})"

    def missing_parts(self) -> list[PartName]:
        """Known parts not present in this document."""
        return [part for part in PartName.ordered() if part not in self._parts]
