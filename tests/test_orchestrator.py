"""
Tests for the docmerge Part Orchestrator

Tests cover:
- Merging every present part in canonical order
- Substitution, conditionals, modifiers and escaping end to end
- Reports, unresolved identifiers and missing-part diagnostics
- Document-level failures (no parts, writer errors)
- Parallel and strict modes
"""
import pytest

from docmerge.config import EngineSettings
from docmerge.engine.orchestrator import MergeEngine, PartWriter, merge
from docmerge.exceptions import StructuralError, UnresolvedVariable
from docmerge.models import CollectingSink, DiagnosticKind, PartName
from tests.conftest import make_context, make_document, run


class RecordingWriter:
    """PartWriter that keeps what it was given."""

    def __init__(self, fail_on=None):
        self.written = []
        self.fail_on = fail_on

    def write(self, part_name, markup):
        if part_name == self.fail_on:
            raise OSError("disk full")
        self.written.append((part_name, markup))


# =============================================================================
# Merging
# =============================================================================

class TestMerge:
    """End-to-end merges of single and multiple parts."""

    def test_variable_and_empty_condition(self) -> None:
        context = make_context(USR_Business="Acme Pty Ltd", USR_ABN="")
        body = "{$USR_Business}{if !empty($USR_ABN)}, ABN {$USR_ABN}{/if}."
        result = MergeEngine().merge(context, {"body": body})
        assert result.success
        assert result.parts["body"] == "Acme Pty Ltd."

    def test_condition_true(self, business_context) -> None:
        body = "{$USR_Business}{if !empty($USR_ABN)}, ABN {$USR_ABN|phone_format:\"%2 %3 %3 %3\"}{/if}."
        result = merge(business_context, {"body": body})
        assert result.parts["body"] == "Acme Pty Ltd, ABN 51 824 753 556."

    def test_split_token_repaired_and_substituted(self) -> None:
        body = run("{$USR_Na</w:t></w:r><w:r><w:rPr><w:b/></w:rPr><w:t>me}")
        result = merge(make_context(USR_Name="Jane Citizen"), {"body": body})
        assert result.parts["body"] == "<w:p><w:r><w:t>Jane Citizen</w:t></w:r></w:p>"
        assert result.report.parts[0].tokens_repaired == 1

    def test_all_parts_in_canonical_order(self, business_context) -> None:
        document = {
            "footer-1": run("{$USR_ABN}"),
            "body": run("{$USR_Business}"),
            "header-1": run("{$PT2_Business}"),
        }
        result = merge(business_context, document)
        assert list(result.parts) == ["body", "header-1", "footer-1"]
        assert result.parts["header-1"] == run("Globex Corporation")
        assert [p.part for p in result.report.parts] == ["body", "header-1", "footer-1"]

    def test_unknown_parts_ignored(self) -> None:
        result = merge(make_context(A="1"), {"body": "{$A}", "sidebar": "{$A}"})
        assert list(result.parts) == ["body"]

    def test_markup_preserved(self, business_context) -> None:
        body = '<w:p w14:paraId="1A2B"><w:pPr><w:jc w:val="both"/></w:pPr><w:r><w:t xml:space="preserve">{$USR_State} </w:t></w:r></w:p>'
        expected = '<w:p w14:paraId="1A2B"><w:pPr><w:jc w:val="both"/></w:pPr><w:r><w:t xml:space="preserve">NSW </w:t></w:r></w:p>'
        assert merge(business_context, {"body": body}).parts["body"] == expected

    def test_plain_dict_context(self) -> None:
        result = merge({"Name": "Jane"}, make_document(body="Hi {$name|upper}"))
        assert result.parts["body"] == "Hi JANE"


# =============================================================================
# Rendering Details
# =============================================================================

class TestRendering:
    """Branch selection, modifiers and escaping through the engine."""

    @pytest.mark.parametrize("state,expected", [
        ("NSW", "A"),
        ("VIC", "B"),
        ("QLD", "C"),
    ])
    def test_exactly_one_branch(self, state, expected) -> None:
        body = "{if $S == 'NSW'}A{elseif $S == 'VIC'}B{else}C{/if}"
        assert merge(make_context(S=state), {"body": body}).parts["body"] == expected

    def test_no_branch_without_else(self) -> None:
        body = "[{if $S == 'NSW'}A{elseif $S == 'VIC'}B{/if}]"
        assert merge(make_context(S="WA"), {"body": body}).parts["body"] == "[]"

    def test_listif(self) -> None:
        body = "{listif $Duty_1}<w:p>{$Duty_1}</w:p>{/listif}{listif $Duty_2}<w:p>{$Duty_2}</w:p>{/listif}"
        context = make_context(Duty_1="Deliver the software", Duty_2="")
        result = merge(context, {"body": body})
        assert result.parts["body"] == "<w:p>Deliver the software</w:p>"

    def test_nested_conditionals(self) -> None:
        body = "{if $A}a{if $B}b{else}!b{/if}{/if}"
        assert merge(make_context(A="1", B=""), {"body": body}).parts["body"] == "a!b"

    def test_modifiers_skipped_for_empty_value(self) -> None:
        body = "[{$PT2_ABN|phone_format:'%2 %3'|upper}]"
        result = merge(make_context(PT2_ABN=""), {"body": body})
        assert result.parts["body"] == "[]"

    def test_value_is_escaped(self) -> None:
        context = make_context(USR_Business="Smith & Sons <Holdings>")
        result = merge(context, {"body": "<w:t>{$USR_Business}</w:t>"})
        assert result.parts["body"] == "<w:t>Smith &amp; Sons &lt;Holdings&gt;</w:t>"

    def test_escaped_after_modifiers(self) -> None:
        result = merge(make_context(X="a&b"), {"body": "{$X|upper}"})
        assert result.parts["body"] == "A&amp;B"

    def test_braces_in_values_do_not_become_tags(self) -> None:
        context = make_context(Note="{$Secret}", Secret="hidden")
        first = merge(context, {"body": "{$Note}"}).parts["body"]
        assert first == "&#123;$Secret&#125;"
        assert merge(context, {"body": first}).parts["body"] == first

    def test_brace_escaping_can_be_disabled(self) -> None:
        settings = EngineSettings(escape_braces=False)
        result = merge(make_context(Note="{x}"), {"body": "{$Note}"}, settings)
        assert result.parts["body"] == "{x}"

    def test_malformed_template_degrades(self) -> None:
        body = "{if $A}open {$A} {/listif}"
        result = merge(make_context(A="v"), {"body": body})
        assert result.success
        assert result.parts["body"] == "{if $A}open v {/listif}"

    @pytest.mark.parametrize("show,expected", [
        ("", "AZ"),
        ("1", "A{listif $B}xZ"),
    ])
    def test_unclosed_listif_inside_if(self, show, expected) -> None:
        body = "A{if $Show}{listif $B}x{/if}Z"
        result = merge(make_context(Show=show, B="1"), {"body": body})
        assert result.parts["body"] == expected

    def test_unterminated_variable_reported(self) -> None:
        body = run("Dear {$Name, ref {$Ref}")
        result = merge(make_context(Name="Jane", Ref="R1"), {"body": body})
        assert result.parts["body"] == run("Dear {$Name, ref R1")
        errors = [
            d for d in result.report.all_diagnostics()
            if d.kind == DiagnosticKind.STRUCTURAL_ERROR
        ]
        assert [d.details["token"] for d in errors] == ["{$Name"]
        assert errors[0].part == "body"


# =============================================================================
# Reports and Diagnostics
# =============================================================================

class TestReports:
    """Counts and diagnostics."""

    def test_counts(self, business_context) -> None:
        document = make_document(
            body="{$USR_Business}{if $USR_ABN}{$USR_ABN}{/if}",
            footer_1="{$PT2_Business}{listif $PT2_ABN}x{/listif}",
        )
        report = merge(business_context, document).report
        assert report.variables_substituted == 3
        assert report.conditionals_resolved == 2
        assert report.parts[0].variables_substituted == 2

    def test_unresolved(self) -> None:
        result = merge(make_context(Name="x"), {"body": "[{$Nope}] [{$Nope}] [{$Other}]"})
        assert result.success
        assert result.parts["body"] == "[] [] []"
        assert result.report.unresolved_identifiers == ["Nope", "Other"]
        assert result.report.variables_substituted == 0
        unresolved = [
            d for d in result.report.all_diagnostics()
            if d.kind == DiagnosticKind.UNRESOLVED_VARIABLE
        ]
        assert len(unresolved) == 3
        assert all(d.part == "body" for d in unresolved)

    def test_missing_parts_reported(self) -> None:
        result = merge(make_context(), {"body": "x"})
        missing = [
            d.part for d in result.report.diagnostics
            if d.kind == DiagnosticKind.PART_MISSING
        ]
        assert missing == [p.value for p in PartName.ordered() if p is not PartName.BODY]

    def test_diagnostics_forwarded_to_sink(self) -> None:
        sink = CollectingSink()
        MergeEngine(sink=sink).merge(make_context(), {"header-2": "{$Nope}"})
        forwarded = sink.of_kind(DiagnosticKind.UNRESOLVED_VARIABLE)
        assert len(forwarded) == 1
        assert forwarded[0].part == "header-2"

    def test_merge_part(self) -> None:
        text, report = MergeEngine().merge_part(PartName.FOOTER_2, "{$A}", make_context(A="1"))
        assert text == "1"
        assert report.part == "footer-2"

    def test_result_dict(self, business_context) -> None:
        data = merge(business_context, {"body": "{$USR_State}"}).to_dict()
        assert data["success"] is True
        assert data["parts"] == ["body"]
        assert data["report"]["variables_substituted"] == 1


# =============================================================================
# Failures
# =============================================================================

class TestFailures:
    """Document-level failures."""

    def test_no_parts(self) -> None:
        result = merge(make_context(A="1"), {})
        assert not result.success
        assert result.parts == {}
        assert result.error["code"] == "DM_NO_PARTS_PROCESSED"
        kinds = [d.kind for d in result.report.diagnostics]
        assert DiagnosticKind.NO_PARTS_PROCESSED in kinds

    def test_only_unknown_parts(self) -> None:
        assert not merge(make_context(), {"sidebar": "x"}).success

    def test_writer_receives_parts(self, business_context) -> None:
        writer = RecordingWriter()
        assert isinstance(writer, PartWriter)
        document = make_document(body="{$USR_State}", header_1="{$USR_ABN}")
        result = merge(business_context, document, writer=writer)
        assert result.success
        assert writer.written == [("body", "NSW"), ("header-1", "51824753556")]

    def test_writer_failure(self, business_context) -> None:
        writer = RecordingWriter(fail_on="header-1")
        document = make_document(body="{$USR_State}", header_1="{$USR_ABN}")
        result = merge(business_context, document, writer=writer)
        assert not result.success
        assert result.error["code"] == "DM_PART_WRITE_FAILURE"
        assert result.error["part"] == "header-1"
        assert result.error["details"]["error_type"] == "OSError"
        # Parts written before the failure stay written; outputs are kept.
        assert writer.written == [("body", "NSW")]
        assert result.parts == {"body": "NSW", "header-1": "51824753556"}


# =============================================================================
# Modes
# =============================================================================

class TestModes:
    """Parallel and strict modes."""

    def test_parallel_matches_sequential(self, business_context) -> None:
        document = make_document(
            body="{$USR_Business}{if $USR_ABN}!{/if}",
            header_1="{$PT2_Business|upper}",
            header_2="{$Nope}",
            footer_1="{$USR_State}",
        )
        sequential = merge(business_context, document)
        parallel = merge(business_context, document, EngineSettings(parallel_parts=True))
        assert parallel.parts == sequential.parts
        assert [p.part for p in parallel.report.parts] == [p.part for p in sequential.report.parts]
        assert parallel.report.unresolved_identifiers == ["Nope"]

    def test_strict_raises_unresolved(self) -> None:
        settings = EngineSettings(strict=True)
        with pytest.raises(UnresolvedVariable) as exc_info:
            merge(make_context(Name="x"), {"body": "{$Nope}"}, settings)
        assert exc_info.value.part == "body"

    def test_strict_raises_structural(self) -> None:
        with pytest.raises(StructuralError):
            merge(make_context(), {"body": "{/if}"}, EngineSettings(strict=True))

    def test_strict_clean_template(self) -> None:
        body = run("{$USR_Na</w:t></w:r><w:r><w:t>me}")
        result = merge(make_context(USR_Name="Jane"), {"body": body}, EngineSettings(strict=True))
        assert result.success
