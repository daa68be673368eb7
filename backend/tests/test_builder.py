"""
Tests for the Builder Mutation Service and field draft helpers.
"""

import pytest
from pydantic import ValidationError

from formdesign.exceptions import (
    BuilderValidationError,
    ElementNotFoundError,
    ReorderRejectedError,
)
from formdesign.schemas.draft import FieldDraft, SubFieldDraft
from formdesign.schemas.form_schema import ConditionalRule, ValidationRule
from formdesign.services.builder import (
    BuilderService,
    change_type,
    draft_from_field,
    relabel,
    with_dependency,
    with_dependent_options_text,
    with_options_text,
    with_validation,
    without_validation,
)
from formdesign.services.integrity import check_integrity


@pytest.fixture
def builder() -> BuilderService:
    return BuilderService()


class TestForms:
    """Tests for form and page level intents."""

    def test_new_form_has_one_page(self, builder):
        form = builder.new_form("Claims")
        assert len(form.pages) == 1
        assert form.pages[0].title == "Page 1"
        assert form.id.startswith("form-")

    def test_onboarding_form_titled_after_design_type(self, builder):
        form = builder.new_form(
            "Insurer", design_type="insurerOnboardingDesign", single_page=True
        )
        assert form.singlePage
        assert form.pages[0].title == "Onboard Insurer"

    def test_new_form_requires_name(self, builder):
        with pytest.raises(BuilderValidationError):
            builder.new_form("  ")

    def test_single_page_form_rejects_add_page(self, builder):
        form = builder.new_form("Insurer", single_page=True)
        with pytest.raises(BuilderValidationError):
            builder.add_page(form, "Second")

    def test_add_page_returns_new_form(self, builder, sample_form):
        updated = builder.add_page(sample_form, "  Documents  ", "Upload files")
        assert len(updated.pages) == 4
        assert updated.pages[-1].title == "Documents"
        assert updated.pages[-1].sections == []
        assert len(sample_form.pages) == 3

    def test_add_page_requires_title(self, builder, sample_form):
        with pytest.raises(BuilderValidationError):
            builder.add_page(sample_form, "")

    def test_update_page(self, builder, sample_form):
        updated = builder.update_page(sample_form, "page-2", title="Contact Details")
        assert updated.find_page("page-2").title == "Contact Details"
        assert sample_form.find_page("page-2").title == "Contact"

    def test_delete_last_page_rejected(self, builder):
        form = builder.new_form("Claims")
        with pytest.raises(BuilderValidationError):
            builder.delete_page(form, form.pages[0].id)

    def test_delete_unknown_page(self, builder, sample_form):
        with pytest.raises(ElementNotFoundError):
            builder.delete_page(sample_form, "page-9")

    def test_delete_page(self, builder, sample_form):
        updated = builder.delete_page(sample_form, "page-2")
        assert [p.id for p in updated.pages] == ["page-1", "page-3"]


class TestSections:
    def test_add_update_delete_section(self, builder, sample_form):
        updated = builder.add_section(sample_form, "page-3", "Attachments")
        section = updated.find_page("page-3").sections[-1]
        assert section.title == "Attachments"

        updated = builder.update_section(updated, "page-3", section.id, title="Files")
        assert updated.find_section("page-3", section.id).title == "Files"

        updated = builder.delete_section(updated, "page-3", section.id)
        assert [s.id for s in updated.find_page("page-3").sections] == ["section-3"]

    def test_delete_unknown_section(self, builder, sample_form):
        with pytest.raises(ElementNotFoundError):
            builder.delete_section(sample_form, "page-1", "section-9")


class TestUpsertField:
    """Tests for committing field drafts."""

    def test_name_derived_from_label(self, builder, sample_form):
        draft = FieldDraft(type="text", label="Company Name")
        updated = builder.upsert_field(sample_form, "page-3", "section-3", draft)
        field = updated.find_field("companyName")
        assert field is not None
        assert field.id.startswith("field-")
        assert sample_form.find_field("companyName") is None

    def test_label_required(self, builder, sample_form):
        with pytest.raises(BuilderValidationError):
            builder.upsert_field(sample_form, "page-3", "section-3", FieldDraft(type="text"))

    def test_duplicate_name_rejected(self, builder, sample_form):
        with pytest.raises(BuilderValidationError, match="already used"):
            builder.upsert_field(
                sample_form, "page-3", "section-3", FieldDraft(type="text", label="Country")
            )

    def test_duplicate_of_navigation_action_rejected(self, builder, sample_form):
        draft = FieldDraft(type="text", label="Notes", name="submit3")
        with pytest.raises(BuilderValidationError):
            builder.upsert_field(sample_form, "page-3", "section-3", draft)

    def test_update_keeps_own_name(self, builder, sample_form):
        draft = relabel(draft_from_field(sample_form.find_field("notes")), "Notes")
        draft = draft.evolve(placeholder="Anything else?")
        updated = builder.upsert_field(sample_form, "page-3", "section-3", draft, "f-notes")
        field = updated.find_field("notes")
        assert field.id == "f-notes"
        assert field.placeholder == "Anything else?"
        assert len(updated.find_section("page-3", "section-3").fields) == 1

    def test_update_unknown_field(self, builder, sample_form):
        with pytest.raises(ElementNotFoundError):
            builder.upsert_field(
                sample_form, "page-3", "section-3", FieldDraft(type="text", label="X"), "f-nope"
            )

    def test_combination_requires_sub_fields(self, builder, sample_form):
        draft = FieldDraft(type="combination", label="Premiums")
        with pytest.raises(BuilderValidationError, match="sub-field"):
            builder.upsert_field(sample_form, "page-3", "section-3", draft)

    def test_combination_sub_fields_need_labels(self, builder, sample_form):
        draft = FieldDraft(
            type="combination",
            label="Premiums",
            subFields=(SubFieldDraft(label="Year"), SubFieldDraft(label=" ")),
        )
        with pytest.raises(BuilderValidationError):
            builder.upsert_field(sample_form, "page-3", "section-3", draft)

    def test_combination_rows_must_be_positive(self, builder, sample_form):
        draft = FieldDraft(
            type="combination",
            label="Premiums",
            subFields=(SubFieldDraft(label="Year"),),
            combinationRows=0,
        )
        with pytest.raises(BuilderValidationError):
            builder.upsert_field(sample_form, "page-3", "section-3", draft)

    def test_combination_sub_field_names(self, builder, sample_form):
        draft = FieldDraft(
            type="combination",
            label="Premiums",
            combinationRows=2,
            combinationRowLabels=("2023", "2024"),
            subFields=(
                SubFieldDraft(label="Year", type="number"),
                SubFieldDraft(label="Gross Premium", type="number"),
            ),
        )
        updated = builder.upsert_field(sample_form, "page-3", "section-3", draft)
        field = updated.find_field("premiums")
        assert [sf.name for sf in field.subFields] == ["year", "grossPremium"]
        assert field.combinationRows == 2
        assert field.combinationRowLabels == ["2023", "2024"]

    def test_combination_duplicate_sub_field_names(self, builder, sample_form):
        draft = FieldDraft(
            type="combination",
            label="Premiums",
            subFields=(SubFieldDraft(label="Year"), SubFieldDraft(label="year")),
        )
        with pytest.raises(BuilderValidationError):
            builder.upsert_field(sample_form, "page-3", "section-3", draft)

    def test_next_button_requires_api_url(self, builder, sample_form):
        draft = change_type(FieldDraft(label="Continue"), "nextButton")
        with pytest.raises(BuilderValidationError, match="API URL"):
            builder.upsert_field(sample_form, "page-3", "section-3", draft)

    def test_custom_button_without_api_url(self, builder, sample_form):
        draft = FieldDraft(type="button", label="Check Status", buttonText="Check")
        updated = builder.upsert_field(sample_form, "page-3", "section-3", draft)
        assert updated.find_field("checkStatus").buttonText == "Check"

    def test_dependency_marks_parent_required(self, builder, sample_form):
        draft = with_dependent_options_text(
            with_dependency(FieldDraft(type="dropdown", label="District"), "city"),
            "Dubai = Marina, Deira",
        )
        updated = builder.upsert_field(sample_form, "page-1", "section-1", draft)

        assert updated.find_field("city").required
        assert updated.find_field("district").dependentOptions == {"Dubai": ["Marina", "Deira"]}
        assert not sample_form.find_field("city").required

    def test_unknown_parent_rejected(self, builder, sample_form):
        draft = with_dependency(FieldDraft(type="dropdown", label="District"), "region")
        with pytest.raises(BuilderValidationError):
            builder.upsert_field(sample_form, "page-1", "section-1", draft)

    def test_self_dependency_rejected(self, builder, sample_form):
        draft = with_dependency(draft_from_field(sample_form.find_field("country")), "country")
        with pytest.raises(BuilderValidationError):
            builder.upsert_field(sample_form, "page-1", "section-1", draft, "f-country")

    def test_conflicting_option_sources_rejected(self, builder, sample_form):
        draft = FieldDraft(
            type="dropdown",
            label="Bank",
            options=("ADCB",),
            optionsUrl="https://api.example.com/banks",
        )
        with pytest.raises(BuilderValidationError, match="option source"):
            builder.upsert_field(sample_form, "page-3", "section-3", draft)

    def test_dependent_options_without_parent_rejected(self, builder, sample_form):
        draft = FieldDraft(type="dropdown", label="Bank", dependentOptions={"a": ["b"]})
        with pytest.raises(BuilderValidationError):
            builder.upsert_field(sample_form, "page-3", "section-3", draft)

    def test_inapplicable_validation_rejected(self, builder, sample_form):
        draft = FieldDraft(type="number", label="Age", validations=(ValidationRule(type="email"),))
        with pytest.raises(BuilderValidationError):
            builder.upsert_field(sample_form, "page-3", "section-3", draft)

    @pytest.mark.parametrize(
        "kind,rule",
        [
            ("text", ValidationRule(type="maxLength", value="ten")),
            ("text", ValidationRule(type="minLength")),
            ("text", ValidationRule(type="pattern", value="([A-Z")),
            ("number", ValidationRule(type="min", value="inf")),
            ("date", ValidationRule(type="minDate", value="01/01/2026")),
            ("date", ValidationRule(type="maxDaysFromToday", value="a week")),
            ("file", ValidationRule(type="maxFileSize", value="5MB")),
            ("multiselect", ValidationRule(type="maxSelections", value=" ")),
        ],
    )
    def test_unusable_rule_value_rejected(self, builder, sample_form, kind, rule):
        draft = FieldDraft(type=kind, label="Answer", validations=(rule,))
        with pytest.raises(BuilderValidationError, match=rule.type):
            builder.upsert_field(sample_form, "page-3", "section-3", draft)

    def test_rule_values_accepted(self, builder, sample_form):
        draft = FieldDraft(
            type="date",
            label="Start Date",
            validations=(
                ValidationRule(type="minDate", value="2026-01-01"),
                ValidationRule(type="maxDaysFromToday", value="30"),
            ),
        )
        form = builder.upsert_field(sample_form, "page-3", "section-3", draft)
        assert form.find_field("startDate").rule("maxDaysFromToday").value == "30"

    def test_conditional_logic_must_reference_field(self, builder, sample_form):
        draft = FieldDraft(
            type="text",
            label="Reason",
            conditionalLogic=ConditionalRule(field="missing", value="Yes"),
        )
        with pytest.raises(BuilderValidationError):
            builder.upsert_field(sample_form, "page-3", "section-3", draft)

    def test_blank_conditional_logic_is_dropped(self, builder, sample_form):
        draft = FieldDraft(type="text", label="Reason", conditionalLogic=ConditionalRule(field=""))
        updated = builder.upsert_field(sample_form, "page-3", "section-3", draft)
        assert updated.find_field("reason").conditionalLogic is None

    def test_master_data_table_default(self, builder, sample_form):
        draft = FieldDraft(type="dropdown", label="Line Of Business", isMasterData=True)
        updated = builder.upsert_field(sample_form, "page-3", "section-3", draft)
        assert updated.find_field("lineOfBusiness").masterDataTable == "lineOfBusiness_master"

    def test_rating_flag_dropped_for_file(self, builder, sample_form):
        draft = FieldDraft(type="file", label="License", isRatingParameter=True)
        updated = builder.upsert_field(sample_form, "page-3", "section-3", draft)
        assert not updated.find_field("license").isRatingParameter

    def test_target_page_must_exist(self, builder, sample_form):
        draft = FieldDraft(type="backButton", label="Start Over", buttonTargetPage="page-9")
        with pytest.raises(BuilderValidationError):
            builder.upsert_field(sample_form, "page-3", "section-3", draft)

    def test_unknown_section(self, builder, sample_form):
        with pytest.raises(ElementNotFoundError):
            builder.upsert_field(
                sample_form, "page-3", "section-9", FieldDraft(type="text", label="X")
            )


class TestDeleteAndReorder:
    def test_delete_field_leaves_references(self, builder, sample_form):
        updated = builder.delete_field(sample_form, "page-1", "section-1", "f-country")
        assert updated.find_field("country") is None
        assert updated.find_field("city").dependentOn == "country"

        report = check_integrity(updated)
        assert not report.valid
        assert [e.code for e in report.errors] == ["dangling_dependent_on"]

    def test_reorder_parent_below_dependent_rejected(self, builder, sample_form):
        with pytest.raises(ReorderRejectedError):
            builder.reorder_field(sample_form, "page-1", "section-1", "f-country", "f-city")
        fields = sample_form.find_section("page-1", "section-1").fields
        assert [f.id for f in fields][:2] == ["f-country", "f-city"]

    def test_reorder_moves_field(self, builder, sample_form):
        updated = builder.reorder_field(
            sample_form, "page-1", "section-1", "f-claims", "f-country"
        )
        ids = [f.id for f in updated.find_section("page-1", "section-1").fields]
        assert ids == ["f-claims", "f-country", "f-city", "f-has-claims"]

    def test_reorder_down(self, builder, sample_form):
        updated = builder.reorder_field(
            sample_form, "page-1", "section-1", "f-city", "f-claims"
        )
        ids = [f.id for f in updated.find_section("page-1", "section-1").fields]
        assert ids == ["f-country", "f-has-claims", "f-claims", "f-city"]

    def test_move_to_same_position(self, builder, sample_form):
        updated = builder.move_field(sample_form, "page-1", "section-1", "f-city", 1)
        assert updated.to_json_dict()["pages"] == sample_form.to_json_dict()["pages"]


class TestNavigationActions:
    def test_add_and_remove_action(self, builder, sample_form):
        draft = FieldDraft(type="backButton", label="Previous", buttonTargetPage="page-1")
        updated = builder.upsert_navigation_action(sample_form, "page-3", draft)
        actions = updated.find_page("page-3").navigationActions
        assert [a.type for a in actions] == ["submitButton", "backButton"]
        assert actions[-1].buttonTargetPage == "page-1"

        updated = builder.delete_navigation_action(updated, "page-3", actions[-1].id)
        assert len(updated.find_page("page-3").navigationActions) == 1

    def test_replace_action(self, builder, sample_form):
        draft = draft_from_field(sample_form.find_field("back2")).evolve(buttonText="Go back")
        updated = builder.upsert_navigation_action(sample_form, "page-2", draft, "nav-back-2")
        assert updated.find_field("back2").buttonText == "Go back"

    def test_non_button_rejected(self, builder, sample_form):
        with pytest.raises(BuilderValidationError):
            builder.upsert_navigation_action(
                sample_form, "page-3", FieldDraft(type="text", label="Oops")
            )

    def test_delete_unknown_action(self, builder, sample_form):
        with pytest.raises(ElementNotFoundError):
            builder.delete_navigation_action(sample_form, "page-3", "nav-nope")


class TestDraftHelpers:
    """Tests for the immutable draft editing helpers."""

    def test_draft_is_frozen(self):
        draft = FieldDraft(label="Name")
        with pytest.raises(ValidationError):
            draft.label = "Other"

    def test_helpers_return_new_drafts(self):
        draft = FieldDraft(label="Name")
        renamed = relabel(draft, "Full Name")
        assert renamed.name == "fullName"
        assert draft.name is None

    def test_relabel_updates_master_data_table(self):
        draft = FieldDraft(type="dropdown", label="Lob", isMasterData=True)
        assert relabel(draft, "Line Of Business").masterDataTable == "lineOfBusiness_master"

    def test_change_type_clears_options(self):
        draft = with_options_text(FieldDraft(type="dropdown", label="Bank"), "ADCB, ENBD")
        assert draft.options == ("ADCB", "ENBD")
        assert change_type(draft, "text").options is None

    def test_change_type_clears_rating_flag(self):
        draft = FieldDraft(type="text", label="Doc", isRatingParameter=True)
        assert not change_type(draft, "file").isRatingParameter
        assert change_type(draft, "number").isRatingParameter

    def test_change_type_clears_master_data_for_combination(self):
        draft = FieldDraft(type="dropdown", label="Lob", isMasterData=True, masterDataTable="t")
        changed = change_type(draft, "combination")
        assert not changed.isMasterData
        assert changed.masterDataTable is None

    def test_leaving_combination_clears_rows(self):
        draft = FieldDraft(
            type="combination",
            label="Claims",
            subFields=(SubFieldDraft(label="Year"),),
            combinationRows=3,
        )
        changed = change_type(draft, "text")
        assert changed.subFields == ()
        assert changed.combinationRows == 1

    def test_button_defaults_seeded(self):
        assert change_type(FieldDraft(label="Go"), "nextButton").buttonText == "Next"
        back = change_type(FieldDraft(label="Go"), "backButton")
        assert (back.buttonText, back.buttonVariant) == ("Back", "outline")
        assert change_type(back, "text").buttonText is None

    def test_change_type_drops_inapplicable_rules(self):
        draft = FieldDraft(
            type="text",
            label="Name",
            validations=(ValidationRule(type="minLength", value=2),),
        )
        assert change_type(draft, "number").validations == ()

    def test_with_validation_replaces_same_type(self):
        draft = with_validation(FieldDraft(label="Name"), ValidationRule(type="minLength", value=2))
        draft = with_validation(draft, ValidationRule(type="minLength", value=5))
        assert [(r.type, r.value) for r in draft.validations] == [("minLength", 5)]
        assert without_validation(draft, "minLength").validations == ()

    def test_with_validation_rejects_inapplicable_rule(self):
        with pytest.raises(BuilderValidationError):
            with_validation(FieldDraft(type="checkbox", label="Agree"), ValidationRule(type="min"))

    def test_with_validation_rejects_non_numeric_limit(self):
        with pytest.raises(BuilderValidationError, match="needs a number"):
            with_validation(FieldDraft(label="Name"), ValidationRule(type="maxLength", value="ten"))

    def test_with_dependency_clears_static_options(self):
        draft = with_options_text(FieldDraft(type="dropdown", label="City"), "Dubai")
        draft = with_dependency(draft, "country")
        assert draft.options is None
        assert draft.dependentOn == "country"
        assert with_dependency(draft, None).dependentOn is None

    def test_draft_from_field_round_trip(self, sample_form):
        claims = sample_form.find_field("claimsHistory")
        draft = draft_from_field(claims)
        assert draft.type == "combination"
        assert [sf.name for sf in draft.subFields] == ["year", "claimsValue"]
        assert draft.conditionalLogic.field == "hasClaims"

    def test_dependent_options_cannot_change_in_place(self, sample_form):
        draft = draft_from_field(sample_form.find_field("city"))
        assert draft.dependentOptions == (("UAE", ("Dubai", "Abu Dhabi")), ("KSA", ("Riyadh",)))

        mapping = draft.dependent_options_map()
        mapping["UAE"].append("Sharjah")
        assert draft.dependent_options_map()["UAE"] == ["Dubai", "Abu Dhabi"]

    def test_helpers_keep_draft_collections_immutable(self):
        draft = with_dependent_options_text(
            FieldDraft(type="dropdown", label="City", dependentOn="country"),
            "UAE = Dubai, Sharjah",
        )
        assert draft.dependentOptions == (("UAE", ("Dubai", "Sharjah")),)

        draft = draft.evolve(options=["Dubai"], combinationRowLabels=["First"])
        assert draft.options == ("Dubai",)
        assert draft.combinationRowLabels == ("First",)
