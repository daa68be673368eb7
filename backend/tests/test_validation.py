"""
Tests for runtime value validation.
"""

from datetime import date

import pytest

from formdesign.schemas.form_schema import Field, Form, Page, Section, ValidationRule
from formdesign.services.submission import ValueValidator, validate_values

TODAY = date(2026, 3, 15)


def _form_with(field: Field) -> Form:
    page = Page(id="p", title="P", sections=[Section(id="s", fields=[field])])
    return Form(id="form", pages=[page])


def _errors(field: Field, value) -> list[str]:
    result = ValueValidator().validate(_form_with(field), {field.name: value}, today=TODAY)
    return [e.code for e in result.errors]


class TestRequired:
    """Tests for required field checks."""

    def test_missing_required(self, sample_form):
        result = validate_values(sample_form, {}, page_id="page-2")
        assert not result.valid
        assert [(e.field, e.code) for e in result.errors] == [("email", "required")]

    def test_hidden_required_field_skipped(self, sample_form):
        form = sample_form.model_copy(deep=True)
        form.find_field("claimsHistory").required = True
        assert validate_values(form, {"hasClaims": "No"}, page_id="page-1").valid
        assert not validate_values(form, {"hasClaims": "Yes"}, page_id="page-1").valid

    def test_required_combination_sub_field(self, sample_form):
        values = {
            "hasClaims": "Yes",
            "claimsHistory": [{"year": "2022"}, {"claimsValue": "50"}],
        }
        result = validate_values(sample_form, values, page_id="page-1")
        assert [e.field for e in result.errors] == ["claimsHistory[1].year"]


class TestTextRules:
    @pytest.mark.parametrize(
        "rule,value,codes",
        [
            (ValidationRule(type="minLength", value=3), "ab", ["min_length"]),
            (ValidationRule(type="maxLength", value=3), "abcd", ["max_length"]),
            (ValidationRule(type="pattern", value=r"^[A-Z]{3}$"), "AED", []),
            (ValidationRule(type="pattern", value=r"^[A-Z]{3}$"), "aed", ["pattern"]),
            (ValidationRule(type="email"), "ops@example.com", []),
            (ValidationRule(type="email"), "ops@example", ["email"]),
            (ValidationRule(type="url"), "https://example.com/a", []),
            (ValidationRule(type="url"), "example.com", ["url"]),
            (ValidationRule(type="phone"), "+971 4 123 4567", []),
            (ValidationRule(type="phone"), "call me", ["phone"]),
        ],
    )
    def test_rule(self, rule, value, codes):
        field = Field(id="f", type="text", label="Value", name="value", validations=[rule])
        assert _errors(field, value) == codes

    def test_custom_message(self):
        field = Field(
            id="f",
            type="text",
            label="Code",
            name="code",
            validations=[ValidationRule(type="minLength", value=5, message="Too short")],
        )
        result = ValueValidator().validate(_form_with(field), {"code": "ab"})
        assert result.errors[0].message == "Too short"


class TestNumberRules:
    @pytest.mark.parametrize(
        "rule,value,codes",
        [
            (ValidationRule(type="min", value=18), "17", ["min"]),
            (ValidationRule(type="min", value=18), 18, []),
            (ValidationRule(type="max", value=100), 100.5, ["max"]),
            (ValidationRule(type="integer"), "4.5", ["integer"]),
            (ValidationRule(type="integer"), "4", []),
            (ValidationRule(type="decimalPlaces", value=2), "1.234", ["decimal_places"]),
            (ValidationRule(type="decimalPlaces", value=2), "1.23", []),
        ],
    )
    def test_rule(self, rule, value, codes):
        field = Field(id="f", type="number", label="Amount", name="amount", validations=[rule])
        assert _errors(field, value) == codes

    def test_not_a_number(self):
        field = Field(id="f", type="number", label="Amount", name="amount")
        assert _errors(field, "abc") == ["number"]


class TestDateRules:
    @pytest.mark.parametrize(
        "rule,value,codes",
        [
            (ValidationRule(type="minDate", value="2026-01-01"), "2025-12-31", ["min_date"]),
            (ValidationRule(type="maxDate", value="2026-01-01"), "2026-01-01", []),
            (ValidationRule(type="minDateToday"), "2026-03-14", ["min_date_today"]),
            (ValidationRule(type="maxDateToday"), "2026-03-16", ["max_date_today"]),
            (ValidationRule(type="minDaysFromToday", value=7), "2026-03-20", ["min_days"]),
            (ValidationRule(type="maxDaysFromToday", value=7), "2026-03-22", []),
            (ValidationRule(type="maxDaysFromToday", value=7), "2026-03-23", ["max_days"]),
        ],
    )
    def test_rule(self, rule, value, codes):
        field = Field(id="f", type="date", label="Start", name="start", validations=[rule])
        assert _errors(field, value) == codes

    def test_invalid_date(self):
        field = Field(id="f", type="date", label="Start", name="start")
        assert _errors(field, "15/03/2026") == ["date"]


class TestFileAndSelectionRules:
    def test_file_rules(self):
        field = Field(
            id="f",
            type="file",
            label="Documents",
            name="documents",
            validations=[
                ValidationRule(type="maxFiles", value=2),
                ValidationRule(type="maxFileSize", value=1),
                ValidationRule(type="allowedTypes", value=".pdf, .png"),
            ],
        )
        ok = [{"name": "license.pdf", "size": 1000}]
        assert _errors(field, ok) == []

        too_many = [{"name": f"doc{i}.pdf", "size": 10} for i in range(3)]
        assert _errors(field, too_many) == ["max_files"]

        too_big = [{"name": "scan.png", "size": 2 * 1024 * 1024}]
        assert _errors(field, too_big) == ["max_file_size"]

        wrong_type = [{"name": "macro.xlsm", "size": 10}]
        assert _errors(field, wrong_type) == ["allowed_types"]

    def test_selection_rules(self):
        field = Field(
            id="f",
            type="multiselect",
            label="Lines",
            name="lines",
            validations=[
                ValidationRule(type="minSelections", value=2),
                ValidationRule(type="maxSelections", value=3),
            ],
        )
        assert _errors(field, ["Motor"]) == ["min_selections"]
        assert _errors(field, ["Motor", "Marine"]) == []
        assert _errors(field, ["a", "b", "c", "d"]) == ["max_selections"]


class TestUnusableRuleValues:
    """Imported designs can carry limits that are not numbers."""

    @pytest.mark.parametrize(
        "kind,rule,value",
        [
            ("text", ValidationRule(type="minLength", value="five"), "abc"),
            ("text", ValidationRule(type="maxLength", value="ten"), "abcdefghijklmnop"),
            ("number", ValidationRule(type="min", value="inf"), 5),
            ("number", ValidationRule(type="decimalPlaces", value="two"), "1.234"),
            ("date", ValidationRule(type="minDaysFromToday", value="nan"), "2026-03-16"),
            ("file", ValidationRule(type="maxFiles", value="two"), [{"name": "a.pdf"}] * 3),
            ("file", ValidationRule(type="maxFileSize", value="big"), [{"name": "a.pdf", "size": 10**9}]),
            ("multiselect", ValidationRule(type="minSelections", value="some"), ["Motor"]),
            ("multiselect", ValidationRule(type="maxSelections", value=""), ["a", "b", "c"]),
        ],
    )
    def test_rule_is_skipped(self, kind, rule, value):
        field = Field(id="f", type=kind, label="Answer", name="answer", validations=[rule])
        assert _errors(field, value) == []

    def test_numeric_string_limit_applies(self):
        field = Field(
            id="f",
            type="text",
            label="Code",
            name="code",
            validations=[ValidationRule(type="minLength", value="5")],
        )
        assert _errors(field, "abc") == ["min_length"]
