"""
docmerge Modifier Pipeline

Pure string transforms applied to a resolved value, left to right:

    upper, lower, ucwords, ucfirst
    phone_format:"%2 %4 %4"     %N takes the next N digits of the value
    date_format:"d F Y"         value read as an epoch or a date string
    replace:"search":"repl"     literal, all occurrences

Every function here is total: an unparsable date or a short digit stream
degrades, it never raises.
"""
from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Iterable, Optional

from ..models import Modifier, ModifierKind


# =============================================================================
# Case Transforms
# =============================================================================

_WORD_START = re.compile(r"(^|\s)(\S)")


def ucwords(value: str) -> str:
    """Uppercase the first character of each whitespace-delimited word."""
    return _WORD_START.sub(lambda m: m.group(1) + m.group(2).upper(), value)


def ucfirst(value: str) -> str:
    """Uppercase the first character only."""
    return value[:1].upper() + value[1:]


# =============================================================================
# Phone Format
# =============================================================================

def format_phone(value: str, pattern: str) -> str:
    """
    Lay the digits of `value` into `pattern`.

    Each %N (N = 1-9) consumes the next N digits, or as many as remain.
    Every other pattern character is copied verbatim.

    Example:
        format_phone("0212345678", "%2 %3 %3") -> "02 123 456"
    """
    digits = re.sub(r"[^0-9]", "", value)
    position = 0
    out: list[str] = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "%" and i + 1 < len(pattern) and pattern[i + 1] in "123456789":
            count = int(pattern[i + 1])
            out.append(digits[position:position + count])
            position += count
            i += 2
            continue
        out.append(char)
        i += 1
    return "".join(out)


# =============================================================================
# Date Format
# =============================================================================

_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
_WEEKDAYS = (
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
)

_EPOCH = re.compile(r"^-?\d+(\.\d+)?$")
_ORDINAL = re.compile(r"\b(\d{1,2})(st|nd|rd|th)\b", re.IGNORECASE)

_ISO_FORMATS = (
    "%Y-%m-%d",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%dT%H:%M:%S",
    "%Y/%m/%d",
)
_DAYFIRST_FORMATS = (
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%d/%m/%y",
    "%d/%m/%Y %H:%M",
    "%d/%m/%Y %H:%M:%S",
    "%d-%m-%Y %H:%M",
)
_MONTHFIRST_FORMATS = (
    "%m/%d/%Y",
    "%m-%d-%Y",
    "%m.%d.%Y",
    "%m/%d/%y",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%m-%d-%Y %H:%M",
)
_NAMED_FORMATS = (
    "%d %B %Y",
    "%d %b %Y",
    "%d %B, %Y",
    "%B %d %Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%b %d %Y",
    "%A %d %B %Y",
    "%A, %d %B %Y",
    "%A, %B %d, %Y",
    "%B %Y",
)


def parse_date(value: str, dayfirst: bool = True) -> Optional[datetime]:
    """
    Read a date from an epoch number or a date string.

    Epoch values are interpreted in UTC. Strings are tried as ISO 8601,
    then numeric day/month forms (day first unless `dayfirst` is False,
    then the other order), then forms with month names.

    Returns:
        A datetime, or None if nothing matched
    """
    text = value.strip()
    if not text:
        return None

    if _EPOCH.match(text):
        try:
            return datetime.fromtimestamp(float(text), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass

    numeric = (
        _DAYFIRST_FORMATS + _MONTHFIRST_FORMATS
        if dayfirst
        else _MONTHFIRST_FORMATS + _DAYFIRST_FORMATS
    )
    cleaned = _ORDINAL.sub(r"\1", text)
    for fmt in _ISO_FORMATS + numeric + _NAMED_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt)
        except ValueError:
            continue
    return None


def _ordinal_suffix(day: int) -> str:
    if 11 <= day % 100 <= 13:
        return "th"
    return {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")


def _render_date_token(token: str, moment: datetime) -> str:
    hour12 = moment.hour % 12 or 12
    if token == "d":
        return f"{moment.day:02d}"
    if token == "j":
        return str(moment.day)
    if token == "D":
        return _WEEKDAYS[moment.weekday()][:3]
    if token == "l":
        return _WEEKDAYS[moment.weekday()]
    if token == "N":
        return str(moment.isoweekday())
    if token == "S":
        return _ordinal_suffix(moment.day)
    if token == "F":
        return _MONTHS[moment.month - 1]
    if token == "M":
        return _MONTHS[moment.month - 1][:3]
    if token == "m":
        return f"{moment.month:02d}"
    if token == "n":
        return str(moment.month)
    if token == "Y":
        return f"{moment.year:04d}"
    if token == "y":
        return f"{moment.year % 100:02d}"
    if token == "H":
        return f"{moment.hour:02d}"
    if token == "G":
        return str(moment.hour)
    if token == "h":
        return f"{hour12:02d}"
    if token == "g":
        return str(hour12)
    if token == "i":
        return f"{moment.minute:02d}"
    if token == "s":
        return f"{moment.second:02d}"
    if token == "A":
        return "AM" if moment.hour < 12 else "PM"
    if token == "a":
        return "am" if moment.hour < 12 else "pm"
    return token


def render_date(moment: datetime, pattern: str) -> str:
    """Render with d/j/D/l/N/S/F/M/m/n/Y/y/H/G/h/g/i/s/A/a tokens; \\ escapes."""
    out: list[str] = []
    escaped = False
    for char in pattern:
        if escaped:
            out.append(char)
            escaped = False
        elif char == "\\":
            escaped = True
        else:
            out.append(_render_date_token(char, moment))
    return "".join(out)


def format_date(value: str, pattern: str, dayfirst: bool = True) -> str:
    """Reformat a date value; unparsable values come back unchanged."""
    moment = parse_date(value, dayfirst=dayfirst)
    if moment is None:
        return value
    return render_date(moment, pattern)


# =============================================================================
# Pipeline
# =============================================================================

def apply_modifier(modifier: Modifier, value: str, dayfirst: bool = True) -> str:
    """Apply one modifier to a value."""
    kind = modifier.kind
    if kind == ModifierKind.UPPER:
        return value.upper()
    if kind == ModifierKind.LOWER:
        return value.lower()
    if kind == ModifierKind.UCWORDS:
        return ucwords(value)
    if kind == ModifierKind.UCFIRST:
        return ucfirst(value)
    if kind == ModifierKind.PHONE_FORMAT:
        return format_phone(value, modifier.args[0])
    if kind == ModifierKind.DATE_FORMAT:
        return format_date(value, modifier.args[0], dayfirst=dayfirst)
    if kind == ModifierKind.REPLACE:
        search, replacement = modifier.args
        if not search:
            return value
        return value.replace(search, replacement)
    return value


def apply_chain(
    modifiers: Iterable[Modifier],
    value: str,
    dayfirst: bool = True,
) -> str:
    """Apply modifiers left to right."""
    for modifier in modifiers:
        value = apply_modifier(modifier, value, dayfirst=dayfirst)
    return value
