"""
docmerge Merge Context Models

The data available to a merge:
- FieldRecord: one flattened form-submission field, as supplied by the
  external field-extraction collaborator
- MergeContext: the read-only, ordered identifier -> value mapping that
  templates are merged against
"""
from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any, Optional, Union


IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")

FieldValue = Union[str, list[str], tuple[str, ...]]


def is_identifier(name: str) -> bool:
    """True if `name` is a valid merge-tag identifier."""
    return bool(IDENTIFIER_PATTERN.match(name))


# =============================================================================
# Field Records
# =============================================================================

@dataclass(frozen=True)
class FieldRecord:
    """
    A single submitted form field.

    Multi-part fields (names, addresses, checkboxes) may arrive as a list;
    flat_value() joins them the way the submission projection expects.
    """
    field_id: str
    label: str = ""
    admin_label: str = ""
    type: str = "text"
    value: FieldValue = ""

    def flat_value(self) -> str:
        """
        The field value as a single string.

        Lists are joined with a single space, or with ", " for checkbox
        fields. Empty items are dropped.
        """
        value = self.value
        if isinstance(value, (list, tuple)):
            items = [str(item) for item in value if item not in (None, "")]
            separator = ", " if self.type == "checkbox" else " "
            return separator.join(items)
        if value is None:
            return ""
        return str(value)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FieldRecord:
        """
        Build a record from a loosely-shaped dict.

        Accepts both snake_case (field_id, admin_label) and the camelCase
        keys used by form plugins (id, adminLabel).
        """
        field_id = data.get("field_id", data.get("fieldId", data.get("id", "")))
        admin_label = data.get("admin_label", data.get("adminLabel", "")) or ""
        raw_value = data.get("value", "")
        if isinstance(raw_value, (list, tuple)):
            value: FieldValue = tuple(str(v) for v in raw_value if v is not None)
        elif raw_value is None:
            value = ""
        else:
            value = str(raw_value)
        return cls(
            field_id=str(field_id),
            label=str(data.get("label", "") or ""),
            admin_label=str(admin_label),
            type=str(data.get("type", "text") or "text"),
            value=value,
        )


# =============================================================================
# Merge Context
# =============================================================================

class MergeContext(Mapping[str, str]):
    """
    Ordered, read-only mapping from identifier to string value.

    Built once per document and shared (read-only) by every part. Keys are
    case-sensitive; the tiered lookup used by templates lives in
    docmerge.engine.value_resolver.

    Usage:
        context = MergeContext({"USR_Business": "Acme Pty Ltd"})
        context["USR_Business"]           # "Acme Pty Ltd"
        list(context)                     # insertion order
    """

    __slots__ = ("_data",)

    def __init__(
        self,
        data: Optional[Union[Mapping[str, Any], Iterable[tuple[str, Any]]]] = None,
    ) -> None:
        items: Iterable[tuple[str, Any]]
        if data is None:
            items = ()
        elif isinstance(data, Mapping):
            items = data.items()
        else:
            items = data
        self._data: dict[str, str] = {
            str(key): "" if value is None else str(value) for key, value in items
        }

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, Any]]) -> MergeContext:
        return cls(pairs)

    def __getitem__(self, key: str) -> str:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"MergeContext({self._data!r})"

    def non_empty(self) -> dict[str, str]:
        """Keys that hold a non-empty value, in insertion order."""
        return {key: value for key, value in self._data.items() if value != ""}

    def to_dict(self) -> dict[str, str]:
        return dict(self._data)
