"""
docmerge Context Builder

Builds the MergeContext for one document from submitted field records.

Construction order (later steps only fill gaps; a non-empty value set by
an earlier step is never overwritten):
1. Direct mapping: merge tag -> field id, configured by the user
2. Derived keys for every field (labels, field_<id>, input_<id>, slugs)
3. System values (form title, entry id, dates, site name)
4. User details read from name and email fields
5. Scored keyword matching for the canonical tag catalogue
6. Business abbreviations (USR_ABV, PT2_ABV) from the business names

The builder never fails: tags it cannot fill are simply absent.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from ..config.loader import load_default_rules
from ..config.settings import EngineSettings, MatchRule
from ..models import FieldRecord, MergeContext

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

SYSTEM_ALIASES: dict[str, tuple[str, ...]] = {
    "form_title": ("FormTitle", "FORMTITLE", "Form_Title"),
    "entry_id": ("EntryId", "ENTRYID", "Entry_ID"),
    "entry_date": ("Entry_Date",),
    "user_ip": ("User_IP",),
    "source_url": ("Source_URL",),
    "site_name": ("SiteName", "SITENAME"),
}

# Canonical tag -> the business-name tag its abbreviation is derived from.
ABBREVIATION_SOURCES = {
    "USR_ABV": "USR_Business",
    "PT2_ABV": "PT2_Business",
}

_COMPANY_SUFFIX = re.compile(r"\s+(Pty\s+Ltd|Ltd|Inc|Corp|LLC|Co\.?)$", re.IGNORECASE)
_SLUG = re.compile(r"[^a-z0-9]+")

_FIRST_NAME_HINTS = ("first name", "firstname", "given name")
_LAST_NAME_HINTS = ("last name", "lastname", "surname", "family name")

FieldInput = Union[FieldRecord, Mapping[str, Any]]


# =============================================================================
# Helpers
# =============================================================================

def slugify(label: str) -> str:
    """Lowercase slug with runs of non-alphanumerics collapsed to '-'."""
    return _SLUG.sub("-", label.lower()).strip("-")


def derived_keys(record: FieldRecord) -> list[str]:
    """Every key a field's value is registered under, in priority order."""
    keys: list[str] = []
    if record.admin_label:
        keys += [record.admin_label, record.admin_label.upper()]
    if record.label:
        keys += [record.label, record.label.upper()]
    keys += [
        f"field_{record.field_id}",
        f"FIELD_{record.field_id}",
        f"input_{record.field_id}",
        f"INPUT_{record.field_id}",
    ]
    if record.label:
        slug = slugify(record.label)
        if slug:
            keys += [
                slug,
                slug.upper(),
                slug.replace("-", "_"),
                slug.replace("_", "-"),
                slug.replace("-", "_").upper(),
            ]
    unique: list[str] = []
    for key in keys:
        if key and key not in unique:
            unique.append(key)
    return unique


def score_key(key: str, rule: MatchRule) -> float:
    """
    Score a context key against a canonical-tag rule.

    +10 per keyword contained in the key, with +20 more when the key equals
    the keyword and +5 more when it starts with it; -15 per exclude keyword
    contained in the key. The sum is multiplied by the rule's priority.
    """
    lowered = key.lower()
    score = 0.0
    for keyword in rule.keywords:
        if keyword in lowered:
            score += 10
            if lowered == keyword:
                score += 20
            if lowered.startswith(keyword):
                score += 5
    for keyword in rule.exclude_keywords:
        if keyword in lowered:
            score -= 15
    return score * rule.priority


def best_match(
    candidates: Mapping[str, str],
    rule: MatchRule,
) -> Optional[tuple[str, str, float]]:
    """
    Highest-scoring key holding a non-empty value.

    Only strictly positive scores qualify; ties keep the first key seen.

    Returns:
        (key, value, score) or None
    """
    best: Optional[tuple[str, str, float]] = None
    for key, value in candidates.items():
        if not value:
            continue
        score = score_key(key, rule)
        if score > 0 and (best is None or score > best[2]):
            best = (key, value, score)
    return best


def abbreviate(business_name: str, max_length: int = 6) -> str:
    """
    Initials of a business name without its company suffix.

    Example:
        abbreviate("Acme Widget Supplies Pty Ltd") -> "AWS"
    """
    name = _COMPANY_SUFFIX.sub("", business_name.strip())
    initials = "".join(word[0].upper() for word in name.split() if word)
    return initials[:max_length]


# =============================================================================
# Context Builder
# =============================================================================

@dataclass
class ContextBuilder:
    """
    Builds merge contexts from field records.

    Usage:
        builder = ContextBuilder()
        context = builder.build(
            fields=[FieldRecord("3", label="Business Name", value="Acme Pty Ltd")],
            direct_mapping={"USR_Business": "3"},
            system_values={"form_title": "Services Agreement"},
        )
    """

    rules: Optional[tuple[MatchRule, ...]] = None
    settings: EngineSettings = field(default_factory=EngineSettings)
    clock: Callable[[], datetime] = datetime.now

    def __post_init__(self) -> None:
        if self.rules is None:
            self.rules = load_default_rules()

    def build(
        self,
        fields: Iterable[FieldInput],
        direct_mapping: Optional[Mapping[str, str]] = None,
        system_values: Optional[Mapping[str, Any]] = None,
    ) -> MergeContext:
        """
        Build a context.

        Args:
            fields: Field records (or dicts accepted by FieldRecord.from_dict)
            direct_mapping: Merge tag -> field id
            system_values: form_title, entry_id, entry_date, user_ip,
                source_url, site_name (other keys are added verbatim)

        Returns:
            MergeContext in construction order
        """
        records = [f if isinstance(f, FieldRecord) else FieldRecord.from_dict(f) for f in fields]
        data: dict[str, str] = {}

        self._apply_direct_mapping(data, records, direct_mapping or {})
        for record in records:
            value = record.flat_value()
            for key in derived_keys(record):
                _fill(data, key, value)
        self._apply_system_values(data, system_values or {})
        self._apply_user_info(data, records)
        matched = self._apply_rules(data)
        self._apply_abbreviations(data)

        logger.info(
            "Built merge context: %d keys from %d fields, %d canonical tags matched",
            len(data), len(records), matched,
        )
        return MergeContext(data)

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def _apply_direct_mapping(
        self,
        data: dict[str, str],
        records: list[FieldRecord],
        mapping: Mapping[str, str],
    ) -> None:
        by_id = {record.field_id: record for record in records}
        for tag, field_id in mapping.items():
            record = by_id.get(str(field_id))
            if record is None:
                logger.debug("Direct mapping %s -> field %s: no such field", tag, field_id)
                continue
            value = record.flat_value()
            if value:
                data[tag] = value
            else:
                logger.debug("Direct mapping %s -> field %s: value empty", tag, field_id)

    def _apply_system_values(self, data: dict[str, str], values: Mapping[str, Any]) -> None:
        for name, value in values.items():
            text = "" if value is None else str(value)
            for alias in SYSTEM_ALIASES.get(name, (name,)):
                _fill(data, alias, text)

        now = self.clock()
        for key in ("CurrentDate", "CURRENTDATE"):
            _fill(data, key, now.strftime("%Y-%m-%d"))
        for key in ("CurrentTime", "CURRENTTIME"):
            _fill(data, key, now.strftime("%H:%M:%S"))

    def _apply_user_info(self, data: dict[str, str], records: list[FieldRecord]) -> None:
        first = last = email = full = ""
        for record in records:
            value = record.flat_value()
            labels = (record.label.lower(), record.admin_label.lower())
            if not first and _mentions(labels, _FIRST_NAME_HINTS):
                first = value
            if not last and _mentions(labels, _LAST_NAME_HINTS):
                last = value
            if not email and (_mentions(labels, ("email",)) or record.type == "email"):
                email = value
            if not full and record.type == "name" and _mentions(labels, ("name",)):
                full = value

        if full and not first and not last:
            parts = full.split()
            if len(parts) >= 2:
                first, last = parts[0], " ".join(parts[1:])
            else:
                first = full.strip()

        if first:
            _fill(data, "UserFirstName", first)
            _fill(data, "USERFIRSTNAME", first)
        if last:
            _fill(data, "UserLastName", last)
            _fill(data, "USERLASTNAME", last)
        if email:
            _fill(data, "UserEmail", email)
            _fill(data, "USEREMAIL", email)
        if first or last:
            display = f"{first} {last}".strip()
            _fill(data, "UserName", display)
            _fill(data, "USERNAME", display)

    def _apply_rules(self, data: dict[str, str]) -> int:
        matched = 0
        for rule in self.rules or ():
            if data.get(rule.tag):
                continue
            found = best_match(data, rule)
            if found is None:
                continue
            key, value, score = found
            data[rule.tag] = value
            matched += 1
            logger.debug("Matched %s from key %r (score %.1f)", rule.tag, key, score)
        return matched

    def _apply_abbreviations(self, data: dict[str, str]) -> None:
        for tag, source in ABBREVIATION_SOURCES.items():
            if data.get(tag) or not data.get(source):
                continue
            abbreviation = abbreviate(data[source], self.settings.abbreviation_max_length)
            if abbreviation:
                data[tag] = abbreviation


def _fill(data: dict[str, str], key: str, value: str) -> None:
    """Set key unless it already holds a non-empty value."""
    if key and not data.get(key):
        data[key] = value


def _mentions(labels: tuple[str, ...], hints: tuple[str, ...]) -> bool:
    return any(hint in label for label in labels for hint in hints)


# =============================================================================
# Convenience Functions
# =============================================================================

def build_context(
    fields: Iterable[FieldInput],
    direct_mapping: Optional[Mapping[str, str]] = None,
    system_values: Optional[Mapping[str, Any]] = None,
    rules: Optional[tuple[MatchRule, ...]] = None,
    clock: Callable[[], datetime] = datetime.now,
) -> MergeContext:
    """Build a context with default settings."""
    return ContextBuilder(rules=rules, clock=clock).build(fields, direct_mapping, system_values)
