"""
Tests for docmerge models and exceptions
"""
import logging

import pytest

from docmerge.exceptions import (
    DocMergeError,
    NoPartsProcessed,
    PartWriteFailure,
    StructuralError,
    UnresolvedVariable,
    get_error_code,
)
from docmerge.models import (
    And,
    CollectingSink,
    Diagnostic,
    DiagnosticKind,
    Empty,
    Equals,
    Invalid,
    LoggingSink,
    MergeContext,
    Modifier,
    ModifierKind,
    NullSink,
    PartName,
    Severity,
    TemplateDocument,
    Truthy,
    referenced_identifiers,
)
from tests.conftest import make_field


# =============================================================================
# Parts and Documents
# =============================================================================

class TestPartName:
    """Tests for PartName."""

    def test_canonical_order(self) -> None:
        assert [p.value for p in PartName.ordered()] == [
            "body", "header-1", "header-2", "header-3",
            "footer-1", "footer-2", "footer-3",
        ]

    def test_container_paths(self) -> None:
        assert PartName.BODY.container_path == "word/document.xml"
        assert PartName.HEADER_3.container_path == "word/header3.xml"
        assert PartName.FOOTER_1.container_path == "word/footer1.xml"

    @pytest.mark.parametrize("name,expected", [
        ("body", PartName.BODY),
        ("Header-2", PartName.HEADER_2),
        ("footer3", PartName.FOOTER_3),
        ("word/footer1.xml", PartName.FOOTER_1),
        ("sidebar", None),
    ])
    def test_parse(self, name, expected) -> None:
        assert PartName.parse(name) == expected


class TestTemplateDocument:
    """Tests for TemplateDocument."""

    def test_canonical_iteration(self) -> None:
        document = TemplateDocument({"footer-2": "f", "word/header1.xml": "h", "body": "b"})
        assert list(document) == [PartName.BODY, PartName.HEADER_1, PartName.FOOTER_2]
        assert document[PartName.HEADER_1] == "h"

    def test_unknown_and_none_ignored(self, caplog) -> None:
        with caplog.at_level(logging.WARNING):
            document = TemplateDocument({"sidebar": "x", "body": None})
        assert len(document) == 0
        assert "sidebar" in caplog.text

    def test_missing_parts(self) -> None:
        document = TemplateDocument.body_only("x")
        assert PartName.BODY not in document.missing_parts()
        assert len(document.missing_parts()) == 6


# =============================================================================
# Context
# =============================================================================

class TestMergeContext:
    """Tests for MergeContext and FieldRecord."""

    def test_values_are_strings(self) -> None:
        context = MergeContext({"A": 1, "B": None})
        assert context["A"] == "1"
        assert context["B"] == ""

    def test_order_and_helpers(self) -> None:
        context = MergeContext.from_pairs([("Z", "1"), ("A", ""), ("M", "2")])
        assert list(context) == ["Z", "A", "M"]
        assert context.non_empty() == {"Z": "1", "M": "2"}
        assert context.to_dict() == {"Z": "1", "A": "", "M": "2"}

    def test_read_only(self) -> None:
        context = MergeContext({"A": "1"})
        with pytest.raises(TypeError):
            context["A"] = "2"

    def test_checkbox_values_joined_with_commas(self) -> None:
        assert make_field(1, ["a", "", "b"], type="checkbox").flat_value() == "a, b"

    def test_name_values_joined_with_spaces(self) -> None:
        assert make_field(1, ["Jane", "Citizen"], type="name").flat_value() == "Jane Citizen"


# =============================================================================
# Modifiers and Expressions
# =============================================================================

class TestModifier:
    """Tests for Modifier."""

    def test_arity_enforced(self) -> None:
        with pytest.raises(ValueError):
            Modifier(ModifierKind.REPLACE, ("only one",))
        with pytest.raises(ValueError):
            Modifier(ModifierKind.UPPER, ("x",))

    def test_str(self) -> None:
        assert str(Modifier(ModifierKind.UPPER)) == "upper"
        assert str(Modifier(ModifierKind.REPLACE, ("-", "_"))) == 'replace:"-":"_"'


def test_referenced_identifiers():
    expression = And((Empty("A"), Equals("B", "x"), Invalid("?"), Truthy("A")))
    assert referenced_identifiers(expression) == ["A", "B"]


# =============================================================================
# Diagnostics
# =============================================================================

class TestDiagnostics:
    """Tests for Diagnostic and sinks."""

    def test_default_severity(self) -> None:
        assert Diagnostic(DiagnosticKind.PART_MISSING, "m").severity == Severity.DEBUG
        assert Diagnostic(DiagnosticKind.STRUCTURAL_ERROR, "m").severity == Severity.WARNING
        assert Diagnostic(DiagnosticKind.PART_WRITE_FAILURE, "m").severity == Severity.ERROR

    def test_fatal_kinds(self) -> None:
        fatal = [kind for kind in DiagnosticKind if kind.is_fatal]
        assert fatal == [DiagnosticKind.NO_PARTS_PROCESSED, DiagnosticKind.PART_WRITE_FAILURE]

    def test_to_exception(self) -> None:
        diagnostic = Diagnostic(
            DiagnosticKind.UNRESOLVED_VARIABLE, "No value", part="body",
            details={"identifier": "X"},
        )
        exc = diagnostic.to_exception()
        assert isinstance(exc, UnresolvedVariable)
        assert exc.part == "body"
        assert exc.details == {"identifier": "X"}

    def test_collecting_sink_attributes_part(self) -> None:
        forward = CollectingSink()
        sink = CollectingSink(part="header-1", forward=forward)
        sink.emit(Diagnostic(DiagnosticKind.STRUCTURAL_ERROR, "m"))
        sink.emit(Diagnostic(DiagnosticKind.STRUCTURAL_ERROR, "m", part="body"))
        assert [d.part for d in sink.diagnostics] == ["header-1", "body"]
        assert len(forward.diagnostics) == 2
        sink.clear()
        assert sink.count(DiagnosticKind.STRUCTURAL_ERROR) == 0

    def test_logging_sink(self, caplog) -> None:
        sink = LoggingSink()
        with caplog.at_level(logging.WARNING, logger="docmerge"):
            sink.emit(Diagnostic(DiagnosticKind.UNRESOLVED_VARIABLE, "No value", part="body"))
            sink.emit(Diagnostic(DiagnosticKind.TOKEN_REPAIRED, "quiet"))
        assert "[body] unresolved_variable: No value" in caplog.text
        assert "quiet" not in caplog.text

    def test_null_sink(self) -> None:
        assert NullSink().emit(Diagnostic(DiagnosticKind.STRUCTURAL_ERROR, "m")) is None

    def test_to_dict(self) -> None:
        data = Diagnostic(DiagnosticKind.STRUCTURAL_ERROR, "m", part="body", details={"k": 1}).to_dict()
        assert data == {
            "kind": "structural_error",
            "severity": "warning",
            "message": "m",
            "part": "body",
            "details": {"k": 1},
        }


# =============================================================================
# Exceptions
# =============================================================================

class TestExceptions:
    """Tests for the exception hierarchy."""

    def test_codes(self) -> None:
        assert NoPartsProcessed(message="x").code == "DM_NO_PARTS_PROCESSED"
        assert PartWriteFailure(message="x").code == "DM_PART_WRITE_FAILURE"
        assert get_error_code(StructuralError(message="x")) == "DM_STRUCTURAL_ERROR"
        assert get_error_code(ValueError("x")) == "DM_INTERNAL_ERROR"

    def test_str_and_dict(self) -> None:
        exc = PartWriteFailure(message="Writer rejected", details={"error_type": "OSError"}, part="body")
        assert str(exc) == "[DM_PART_WRITE_FAILURE] Writer rejected (part: body)"
        assert exc.to_dict() == {
            "code": "DM_PART_WRITE_FAILURE",
            "message": "Writer rejected",
            "details": {"error_type": "OSError"},
            "part": "body",
        }

    def test_hierarchy(self) -> None:
        with pytest.raises(DocMergeError):
            raise UnresolvedVariable(message="x")
