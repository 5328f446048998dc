"""
Tests for the docmerge Context Builder

Tests cover:
- Direct mappings and derived field keys
- Never overwriting a non-empty value
- System values, current date/time and user details
- Keyword scoring of canonical tags
- Business abbreviations
"""
import pytest

from docmerge.engine.context_builder import (
    ContextBuilder,
    abbreviate,
    best_match,
    build_context,
    derived_keys,
    score_key,
    slugify,
)
from docmerge.models import FieldRecord, MergeContext
from tests.conftest import fixed_clock, make_field, make_rule


def builder(rules=()):
    """A builder with a fixed clock and (by default) no scoring rules."""
    return ContextBuilder(rules=tuple(rules), clock=fixed_clock)


# =============================================================================
# Field Keys
# =============================================================================

class TestDerivedKeys:
    """Tests for slugify and derived_keys."""

    def test_slugify(self) -> None:
        assert slugify("Business  ABN (if any)") == "business-abn-if-any"
        assert slugify("  --  ") == ""

    def test_label_keys(self) -> None:
        record = make_field(2, "x", label="Business ABN")
        assert derived_keys(record) == [
            "Business ABN",
            "BUSINESS ABN",
            "field_2",
            "FIELD_2",
            "input_2",
            "INPUT_2",
            "business-abn",
            "BUSINESS-ABN",
            "business_abn",
            "BUSINESS_ABN",
        ]

    def test_admin_label_first(self) -> None:
        record = make_field(9, "x", label="Your ABN", admin_label="usr_abn")
        assert derived_keys(record)[:2] == ["usr_abn", "USR_ABN"]

    def test_unlabelled_field(self) -> None:
        assert derived_keys(make_field(4)) == ["field_4", "FIELD_4", "input_4", "INPUT_4"]


# =============================================================================
# Build Steps
# =============================================================================

class TestBuild:
    """Tests for ContextBuilder.build."""

    def test_returns_merge_context(self, sample_fields) -> None:
        assert isinstance(builder().build(sample_fields), MergeContext)

    def test_direct_mapping(self, sample_fields) -> None:
        context = builder().build(sample_fields, {"USR_Business": "1", "PT2_Business": 3})
        assert context["USR_Business"] == "Acme Pty Ltd"
        assert context["PT2_Business"] == "Globex Corporation"

    def test_direct_mapping_skips_empty_and_unknown(self) -> None:
        fields = [make_field(7, "", label="Notes")]
        context = builder().build(fields, {"USR_Notes": "7", "USR_Other": "99"})
        assert "USR_Notes" not in context
        assert "USR_Other" not in context

    def test_derived_keys_registered(self, sample_fields) -> None:
        context = builder().build(sample_fields)
        assert context["Business Name"] == "Acme Pty Ltd"
        assert context["field_2"] == "51 824 753 556"
        assert context["business_abn"] == "51 824 753 556"
        assert context["INPUT_3"] == "Globex Corporation"

    def test_list_values_flattened(self, sample_fields) -> None:
        context = builder().build(sample_fields)
        assert context["Contact Name"] == "Jane Citizen"
        assert context["Services"] == "Design, Build"

    def test_first_non_empty_value_kept(self) -> None:
        fields = [
            make_field(1, "", label="Name"),
            make_field(2, "First", label="Name"),
            make_field(3, "Second", label="Name"),
        ]
        assert builder().build(fields)["Name"] == "First"

    def test_direct_mapping_not_overwritten(self, sample_fields) -> None:
        context = builder().build(sample_fields, {"Business Name": "3"})
        assert context["Business Name"] == "Globex Corporation"

    def test_accepts_dict_fields(self) -> None:
        fields = [{"id": 5, "label": "Trading Name", "value": "Acme"}]
        assert builder().build(fields)["field_5"] == "Acme"

    def test_module_function(self) -> None:
        context = build_context([make_field(1, "v", label="Thing")], rules=(), clock=fixed_clock)
        assert context["Thing"] == "v"


class TestSystemValues:
    """System values and the clock."""

    def test_aliases(self) -> None:
        context = builder().build([], system_values={
            "form_title": "Services Agreement",
            "entry_id": 42,
            "user_ip": "203.0.113.9",
            "site_name": "Acme Legal",
        })
        assert context["FormTitle"] == "Services Agreement"
        assert context["FORMTITLE"] == "Services Agreement"
        assert context["Form_Title"] == "Services Agreement"
        assert context["Entry_ID"] == "42"
        assert context["User_IP"] == "203.0.113.9"
        assert context["SITENAME"] == "Acme Legal"

    def test_unknown_system_value_kept_verbatim(self) -> None:
        context = builder().build([], system_values={"Campaign": "spring"})
        assert context["Campaign"] == "spring"

    def test_current_date_and_time(self) -> None:
        context = builder().build([])
        assert context["CurrentDate"] == "2024-03-15"
        assert context["CURRENTDATE"] == "2024-03-15"
        assert context["CurrentTime"] == "09:30:05"

    def test_field_value_wins_over_system(self) -> None:
        fields = [make_field(1, "From form", label="FormTitle")]
        context = builder().build(fields, system_values={"form_title": "System"})
        assert context["FormTitle"] == "From form"
        assert context["Form_Title"] == "System"


class TestUserInfo:
    """User details read from name and email fields."""

    def test_full_name_is_split(self, sample_fields) -> None:
        context = builder().build(sample_fields)
        assert context["UserFirstName"] == "Jane"
        assert context["UserLastName"] == "Citizen"
        assert context["UserName"] == "Jane Citizen"
        assert context["USERNAME"] == "Jane Citizen"
        assert context["UserEmail"] == "jane@acme.example"

    def test_separate_name_fields(self) -> None:
        fields = [
            make_field(1, "Mary", label="First Name"),
            make_field(2, "Van Der Berg", label="Surname"),
        ]
        context = builder().build(fields)
        assert context["UserFirstName"] == "Mary"
        assert context["UserLastName"] == "Van Der Berg"
        assert context["UserName"] == "Mary Van Der Berg"

    def test_single_word_full_name(self) -> None:
        fields = [make_field(1, "Cher", label="Your Name", type="name")]
        context = builder().build(fields)
        assert context["UserFirstName"] == "Cher"
        assert "UserLastName" not in context

    def test_email_by_type(self) -> None:
        fields = [make_field(1, "a@b.example", label="Reach me at", type="email")]
        assert builder().build(fields)["UserEmail"] == "a@b.example"

    def test_no_user_fields(self) -> None:
        context = builder().build([make_field(1, "x", label="Colour")])
        assert "UserName" not in context


# =============================================================================
# Scoring
# =============================================================================

class TestScoring:
    """Keyword scoring of canonical tags."""

    ABN_RULE = make_rule("USR_ABN", ["abn", "business"], exclude=["client"], priority=1.2)

    def test_business_key_beats_client_key(self) -> None:
        assert score_key("business_abn_number", self.ABN_RULE) > 0
        assert score_key("client_abn", self.ABN_RULE) < score_key("business_abn_number", self.ABN_RULE)
        found = best_match({"client_abn": "1", "business_abn_number": "2"}, self.ABN_RULE)
        assert found[0] == "business_abn_number"

    def test_score_components(self) -> None:
        rule = make_rule("T", ["abn"])
        assert score_key("abn", rule) == 35
        assert score_key("abn_number", rule) == 15
        assert score_key("usr_abn", rule) == 10
        assert score_key("client", make_rule("T", ["x"], exclude=["client"])) == -15

    def test_priority_multiplies(self) -> None:
        assert score_key("business_abn_number", self.ABN_RULE) == pytest.approx(25 * 1.2)

    def test_case_insensitive_keys(self) -> None:
        assert score_key("BUSINESS_ABN", self.ABN_RULE) == score_key("business_abn", self.ABN_RULE)

    def test_empty_values_not_candidates(self) -> None:
        found = best_match({"business_abn": "", "abn_lookup": "51"}, self.ABN_RULE)
        assert found[:2] == ("abn_lookup", "51")

    def test_non_positive_never_selected(self) -> None:
        assert best_match({"client_abn": "1", "colour": "red"}, self.ABN_RULE) is None

    def test_tie_keeps_first(self) -> None:
        rule = make_rule("T", ["abn"])
        found = best_match({"x_abn": "first", "y_abn": "second"}, rule)
        assert found[1] == "first"

    def test_rule_fills_tag(self) -> None:
        fields = [
            make_field(1, "123", label="Client ABN"),
            make_field(2, "51 824 753 556", label="Business ABN Number"),
        ]
        context = builder([self.ABN_RULE]).build(fields)
        assert context["USR_ABN"] == "51 824 753 556"

    def test_rule_skips_filled_tag(self, sample_fields) -> None:
        context = builder([self.ABN_RULE]).build(sample_fields, {"USR_ABN": "1"})
        assert context["USR_ABN"] == "Acme Pty Ltd"

    def test_later_rules_see_earlier_assignments(self) -> None:
        rules = [make_rule("Primary", ["alpha"]), make_rule("Secondary", ["primary"])]
        context = builder(rules).build([make_field(1, "v", label="Alpha Code")])
        assert context["Primary"] == "v"
        assert context["Secondary"] == "v"

    def test_default_catalogue(self, sample_fields) -> None:
        context = ContextBuilder(clock=fixed_clock).build(sample_fields)
        assert context["USR_Business"] == "Acme Pty Ltd"
        assert context["USR_ABN"] == "51 824 753 556"


# =============================================================================
# Abbreviations
# =============================================================================

class TestAbbreviation:
    """Tests for abbreviate and the abbreviation step."""

    @pytest.mark.parametrize("name,expected", [
        ("Acme Widget Supplies Pty Ltd", "AWS"),
        ("Globex Corporation", "GC"),
        ("Initech Inc", "I"),
        ("smith & jones llc", "S&J"),
        ("", ""),
    ])
    def test_abbreviate(self, name, expected) -> None:
        assert abbreviate(name) == expected

    def test_max_length(self) -> None:
        assert abbreviate("A B C D E F G H") == "ABCDEF"
        assert abbreviate("A B C D", max_length=2) == "AB"

    def test_derived_from_business(self) -> None:
        fields = [
            make_field(1, "Acme Widget Supplies Pty Ltd"),
            make_field(2, "Globex Corporation"),
        ]
        context = builder().build(fields, {"USR_Business": "1", "PT2_Business": "2"})
        assert context["USR_ABV"] == "AWS"
        assert context["PT2_ABV"] == "GC"

    def test_existing_abbreviation_kept(self) -> None:
        fields = [make_field(1, "Acme Widget Supplies"), make_field(2, "ACME")]
        context = builder().build(fields, {"USR_Business": "1", "USR_ABV": "2"})
        assert context["USR_ABV"] == "ACME"

    def test_no_business_no_abbreviation(self) -> None:
        assert "USR_ABV" not in builder().build([make_field(1, "x")])


def test_field_record_from_dict():
    record = FieldRecord.from_dict(
        {"id": 3, "adminLabel": "biz", "label": "Business", "type": "name", "value": ["A", None, "B"]}
    )
    assert record.field_id == "3"
    assert record.admin_label == "biz"
    assert record.flat_value() == "A B"
