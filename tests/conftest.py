"""
Pytest configuration and fixtures for docmerge tests.

Provides helper factories for fields, contexts and documents, plus common
fixtures shared by the component test modules.
"""
from datetime import datetime

import pytest

from docmerge.config import EngineSettings, MatchRule
from docmerge.models import (
    CollectingSink,
    FieldRecord,
    MergeContext,
    PartName,
    TemplateDocument,
)


# =============================================================================
# Factory Helpers
# =============================================================================

def make_field(
    field_id,
    value="",
    label: str = "",
    admin_label: str = "",
    type: str = "text",
) -> FieldRecord:
    """Create a FieldRecord; lists are kept as tuples."""
    if isinstance(value, list):
        value = tuple(value)
    return FieldRecord(
        field_id=str(field_id),
        label=label,
        admin_label=admin_label,
        type=type,
        value=value,
    )


def make_context(**values) -> MergeContext:
    """Create a MergeContext from keyword arguments (insertion order kept)."""
    return MergeContext(values)


def make_document(body: str = None, **parts) -> TemplateDocument:
    """
    Create a TemplateDocument.

    Keyword names use underscores for the part dash: header_1="...".
    """
    mapping = {}
    if body is not None:
        mapping[PartName.BODY] = body
    for name, markup in parts.items():
        mapping[name.replace("_", "-")] = markup
    return TemplateDocument(mapping)


def make_rule(
    tag: str,
    keywords,
    exclude=(),
    priority: float = 1.0,
) -> MatchRule:
    """Create a MatchRule from plain sequences."""
    return MatchRule(
        tag=tag,
        keywords=tuple(keywords),
        exclude_keywords=tuple(exclude),
        priority=priority,
    )


def run(text: str) -> str:
    """Wrap text in a minimal WordprocessingML paragraph run."""
    return f"<w:p><w:r><w:t>{text}</w:t></w:r></w:p>"


FIXED_NOW = datetime(2024, 3, 15, 9, 30, 5)


def fixed_clock() -> datetime:
    return FIXED_NOW


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def settings():
    """Default engine settings."""
    return EngineSettings()


@pytest.fixture
def sink():
    """Collecting diagnostics sink."""
    return CollectingSink()


@pytest.fixture
def business_context():
    """Context for a typical two-party agreement."""
    return make_context(
        USR_Business="Acme Pty Ltd",
        USR_ABN="51824753556",
        USR_State="NSW",
        PT2_Business="Globex Corporation",
        PT2_ABN="",
        Comc_date="2024-03-15",
    )


@pytest.fixture
def sample_fields():
    """Form fields as they arrive from a submission."""
    return [
        make_field(1, "Acme Pty Ltd", label="Business Name"),
        make_field(2, "51 824 753 556", label="Business ABN"),
        make_field(3, "Globex Corporation", label="Counterparty Legal Name"),
        make_field(4, ["Jane", "Citizen"], label="Contact Name", type="name"),
        make_field(5, "jane@acme.example", label="Email Address", type="email"),
        make_field(6, ["Design", "Build"], label="Services", type="checkbox"),
    ]
