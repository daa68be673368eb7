"""
Builder Mutation Service.

Structural edit operations for form designs. Every operation takes the
current Form and returns a new Form; the input is never modified, so an
edit that is rejected halfway leaves no trace.

Field edits go through an immutable FieldDraft. The helpers at the bottom
of this module produce new drafts (relabel, change type, set rules...);
``BuilderService.upsert_field`` validates a draft and commits it in one
step.
"""

import logging
import re
from datetime import date, datetime, timezone
from typing import Any

from formdesign.exceptions import BuilderValidationError, ElementNotFoundError
from formdesign.schemas.draft import FieldDraft, SubFieldDraft
from formdesign.schemas.form_schema import (
    ConditionalRule,
    Field,
    Form,
    Page,
    Section,
    SubField,
    ValidationRule,
)
from formdesign.services.resolver import DependencyResolver, as_number
from formdesign.utils.field_kinds import (
    BUTTON_DEFAULTS,
    BUTTON_KINDS,
    DATE_RULE_TYPES,
    NON_RATING_KINDS,
    NUMERIC_RULE_TYPES,
    OPTION_KINDS,
    PERSISTING_BUTTON_KINDS,
    allowed_validation_rules,
    design_type_label,
)
from formdesign.utils.naming import (
    generate_field_name,
    new_id,
    parse_dependent_options_text,
    parse_options_text,
)

logger = logging.getLogger(__name__)


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def _clean(value: str | None) -> str | None:
    """Normalize empty strings to None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


class BuilderService:
    """
    Service applying builder intents to form designs.

    Rejected intents raise BuilderValidationError (or ElementNotFoundError
    for unknown ids) and return nothing.
    """

    def __init__(self, resolver: DependencyResolver | None = None):
        self.resolver = resolver or DependencyResolver()

    def _working_copy(self, form: Form) -> Form:
        return form.model_copy(deep=True)

    def _touch(self, form: Form) -> Form:
        form.updatedAt = datetime.now(timezone.utc)
        return form

    # Forms and pages

    def new_form(
        self,
        name: str,
        design_type: str | None = None,
        single_page: bool = False,
        form_id: str | None = None,
    ) -> Form:
        """
        Create a form with one empty page.

        Onboarding designs are titled after their design type.
        """
        if _blank(name):
            raise BuilderValidationError("Please enter a form name.")
        title = design_type_label(design_type) if design_type else "Page 1"
        return Form(
            id=form_id or new_id("form"),
            name=name.strip(),
            designType=design_type,
            singlePage=single_page,
            pages=[Page(id=new_id("page"), title=title)],
        )

    def add_page(self, form: Form, title: str, subtitle: str | None = None) -> Form:
        """Append a page with no sections."""
        if form.singlePage:
            raise BuilderValidationError("This form only supports a single page.")
        if _blank(title):
            raise BuilderValidationError("Please enter a page title.")

        updated = self._working_copy(form)
        page = Page(id=new_id("page"), title=title.strip(), subtitle=_clean(subtitle))
        updated.pages.append(page)
        logger.info(f"Added page '{page.title}' ({page.id}) to form {form.id}")
        return self._touch(updated)

    def update_page(
        self,
        form: Form,
        page_id: str,
        title: str | None = None,
        subtitle: str | None = None,
    ) -> Form:
        """Rename a page; None leaves an attribute unchanged."""
        updated = self._working_copy(form)
        page = updated.find_page(page_id)
        if title is not None:
            if _blank(title):
                raise BuilderValidationError("Please enter a page title.")
            page.title = title.strip()
        if subtitle is not None:
            page.subtitle = _clean(subtitle)
        return self._touch(updated)

    def delete_page(self, form: Form, page_id: str) -> Form:
        """Remove a page with its sections and fields."""
        form.find_page(page_id)
        if len(form.pages) <= 1:
            raise BuilderValidationError("A form must have at least one page.")

        updated = self._working_copy(form)
        updated.pages = [p for p in updated.pages if p.id != page_id]
        logger.info(f"Deleted page {page_id} from form {form.id}")
        return self._touch(updated)

    # Sections

    def add_section(
        self,
        form: Form,
        page_id: str,
        title: str | None = "New Section",
        subtitle: str | None = None,
    ) -> Form:
        updated = self._working_copy(form)
        page = updated.find_page(page_id)
        section = Section(id=new_id("section"), title=_clean(title), subtitle=_clean(subtitle))
        page.sections.append(section)
        return self._touch(updated)

    def update_section(
        self,
        form: Form,
        page_id: str,
        section_id: str,
        title: str | None = None,
        subtitle: str | None = None,
    ) -> Form:
        updated = self._working_copy(form)
        section = updated.find_section(page_id, section_id)
        if title is not None:
            section.title = _clean(title)
        if subtitle is not None:
            section.subtitle = _clean(subtitle)
        return self._touch(updated)

    def delete_section(self, form: Form, page_id: str, section_id: str) -> Form:
        """Remove a section and every field in it."""
        updated = self._working_copy(form)
        page = updated.find_page(page_id)
        page.find_section(section_id)
        page.sections = [s for s in page.sections if s.id != section_id]
        return self._touch(updated)

    # Fields

    def upsert_field(
        self,
        form: Form,
        page_id: str,
        section_id: str,
        draft: FieldDraft,
        field_id: str | None = None,
    ) -> Form:
        """
        Add a field to a section, or replace an existing one.

        The draft is validated against the whole form, then committed.
        Committing a dependent field marks its parent as required.

        Raises:
            BuilderValidationError: If the draft would produce an invalid form
            ElementNotFoundError: If the page, section or field does not exist
        """
        updated = self._working_copy(form)
        section = updated.find_section(page_id, section_id)
        index = section.field_index(field_id) if field_id else None

        field = self._build_field(updated, draft, field_id or new_id("field"))
        if index is None:
            section.fields.append(field)
            logger.info(f"Added field '{field.name}' to section {section_id}")
        else:
            section.fields[index] = field
            logger.info(f"Updated field '{field.name}' ({field.id})")

        self.resolver.mark_parent_required(updated, field)
        return self._touch(updated)

    def delete_field(self, form: Form, page_id: str, section_id: str, field_id: str) -> Form:
        """
        Remove a field.

        References to it from other fields are left as they are; run the
        integrity check to find them.
        """
        updated = self._working_copy(form)
        section = updated.find_section(page_id, section_id)
        index = section.field_index(field_id)
        removed = section.fields.pop(index)
        logger.info(f"Deleted field '{removed.name}' ({field_id})")
        return self._touch(updated)

    def move_field(
        self, form: Form, page_id: str, section_id: str, field_id: str, to_index: int
    ) -> Form:
        """Move a field to a new position within its section."""
        updated = self._working_copy(form)
        section = updated.find_section(page_id, section_id)
        from_index = section.field_index(field_id)
        if from_index == to_index:
            return updated

        self.resolver.check_reorder(section, from_index, to_index)
        moved = section.fields.pop(from_index)
        section.fields.insert(to_index, moved)
        return self._touch(updated)

    def reorder_field(
        self, form: Form, page_id: str, section_id: str, from_id: str, to_id: str
    ) -> Form:
        """
        Drop field ``from_id`` onto the position held by ``to_id``.

        Raises:
            ReorderRejectedError: If a parent would end up below a dependent
        """
        section = form.find_section(page_id, section_id)
        to_index = section.field_index(to_id)
        return self.move_field(form, page_id, section_id, from_id, to_index)

    # Navigation actions

    def upsert_navigation_action(
        self,
        form: Form,
        page_id: str,
        draft: FieldDraft,
        field_id: str | None = None,
    ) -> Form:
        """Add or replace a button in a page's navigation bar."""
        if draft.type not in BUTTON_KINDS:
            raise BuilderValidationError("Navigation actions must be Next, Back, Submit or custom buttons.")

        updated = self._working_copy(form)
        page = updated.find_page(page_id)
        action = self._build_field(updated, draft, field_id or new_id("nav"))

        if field_id is None:
            page.navigationActions.append(action)
        else:
            for idx, existing in enumerate(page.navigationActions):
                if existing.id == field_id:
                    page.navigationActions[idx] = action
                    break
            else:
                raise ElementNotFoundError("Navigation action", field_id)
        return self._touch(updated)

    def delete_navigation_action(self, form: Form, page_id: str, field_id: str) -> Form:
        updated = self._working_copy(form)
        page = updated.find_page(page_id)
        remaining = [a for a in page.navigationActions if a.id != field_id]
        if len(remaining) == len(page.navigationActions):
            raise ElementNotFoundError("Navigation action", field_id)
        page.navigationActions = remaining
        return self._touch(updated)

    # Draft validation

    def _build_field(self, form: Form, draft: FieldDraft, field_id: str) -> Field:
        """
        Validate a draft and turn it into a Field.

        Configuration that does not apply to the draft's kind is dropped.
        """
        if _blank(draft.label):
            raise BuilderValidationError("Please fill in Field Label.")

        kind = draft.type
        if kind == "combination":
            if not draft.subFields:
                raise BuilderValidationError("Combination field must have at least one sub-field.")
            if draft.combinationRows < 1:
                raise BuilderValidationError("Combination field must have at least one row.")
            if any(_blank(sf.label) for sf in draft.subFields):
                raise BuilderValidationError("All sub-fields must have a label.")

        if kind in PERSISTING_BUTTON_KINDS and _blank(draft.buttonApiUrl):
            raise BuilderValidationError(
                "API URL is required for Next and Submit buttons to save form data."
            )

        name = _clean(draft.name) or generate_field_name(draft.label)
        if not name:
            raise BuilderValidationError(
                "Could not generate field name. Please enter a valid label."
            )
        clash = next(
            (
                f
                for f in form.all_fields(include_navigation=True)
                if f.name == name and f.id != field_id
            ),
            None,
        )
        if clash is not None:
            raise BuilderValidationError(
                f"Field name '{name}' is already used by '{clash.label}'."
            )

        self._check_validations(draft)
        option_config = self._option_config(form, draft, name, field_id)
        conditional = self._conditional_logic(form, draft, name, field_id)

        target_page = _clean(draft.buttonTargetPage) if kind in BUTTON_KINDS else None
        if target_page is not None and not form.has_page(target_page):
            raise BuilderValidationError(f"Target page '{target_page}' does not exist.")

        is_master_data = draft.isMasterData and kind != "combination"
        attrs: dict[str, Any] = {
            "id": field_id,
            "type": kind,
            "label": draft.label.strip(),
            "name": name,
            "placeholder": _clean(draft.placeholder),
            "defaultValue": draft.defaultValue,
            "required": draft.required,
            "isRatingParameter": draft.isRatingParameter and kind not in NON_RATING_KINDS,
            "isMasterData": is_master_data,
            "masterDataTable": (
                (_clean(draft.masterDataTable) or f"{name}_master") if is_master_data else None
            ),
            "validations": list(draft.validations),
            "conditionalLogic": conditional,
            **option_config,
        }

        if kind == "combination":
            attrs["subFields"] = self._build_sub_fields(draft.subFields)
            attrs["combinationRows"] = draft.combinationRows
            attrs["combinationRowLabels"] = list(draft.combinationRowLabels) or None

        if kind in BUTTON_KINDS:
            attrs["buttonText"] = _clean(draft.buttonText)
            attrs["buttonAction"] = draft.buttonAction
            attrs["buttonApiUrl"] = _clean(draft.buttonApiUrl)
            attrs["buttonVariant"] = draft.buttonVariant
            attrs["buttonTargetPage"] = target_page

        if kind == "location":
            attrs["mapProvider"] = _clean(draft.mapProvider)
            attrs["mapApiUrl"] = _clean(draft.mapApiUrl)

        return Field(**attrs)

    def _check_validations(self, draft: FieldDraft) -> None:
        allowed = allowed_validation_rules(draft.type)
        seen: set[str] = set()
        for rule in draft.validations:
            if rule.type not in allowed:
                raise BuilderValidationError(
                    f"Validation rule '{rule.type}' does not apply to {draft.type} fields."
                )
            if rule.type in seen:
                raise BuilderValidationError(f"Validation rule '{rule.type}' is set more than once.")
            seen.add(rule.type)
            _check_rule_value(rule)

    def _option_config(
        self, form: Form, draft: FieldDraft, name: str, field_id: str
    ) -> dict[str, Any]:
        """Check that at most one option source is active and resolve the parent."""
        if draft.type not in OPTION_KINDS:
            return {}

        options = list(draft.options) if draft.options else None
        options_url = _clean(draft.optionsUrl)
        dependent_on = _clean(draft.dependentOn)
        dependent_url = _clean(draft.dependentOptionsUrl)
        dependent_options = draft.dependent_options_map()

        if dependent_on is None and (dependent_options or dependent_url):
            raise BuilderValidationError("Dependent options require a parent field.")
        if dependent_options and dependent_url:
            raise BuilderValidationError(
                "Use either a dependent options mapping or a dependent options URL, not both."
            )
        active = [s for s in (options, options_url, dependent_on) if s]
        if len(active) > 1:
            raise BuilderValidationError(
                "Only one option source (static options, options URL or parent field) can be active."
            )

        if dependent_on is not None:
            parent = form.find_field(dependent_on)
            if parent is None or parent.id == field_id or dependent_on == name:
                raise BuilderValidationError(
                    f"Parent field '{dependent_on}' does not exist in this form."
                )

        return {
            "options": options,
            "optionsUrl": options_url,
            "dependentOn": dependent_on,
            "dependentOptions": dependent_options,
            "dependentOptionsUrl": dependent_url,
        }

    def _conditional_logic(
        self, form: Form, draft: FieldDraft, name: str, field_id: str
    ) -> ConditionalRule | None:
        rule = draft.conditionalLogic
        if rule is None or _blank(rule.field):
            return None
        referenced = form.find_field(rule.field)
        if referenced is None or referenced.id == field_id or rule.field == name:
            raise BuilderValidationError(
                f"Conditional logic refers to unknown field '{rule.field}'."
            )
        return rule

    def _build_sub_fields(self, drafts: tuple[SubFieldDraft, ...]) -> list[SubField]:
        sub_fields: list[SubField] = []
        names: set[str] = set()
        for sf in drafts:
            sub_name = _clean(sf.name) or generate_field_name(sf.label)
            if not sub_name:
                raise BuilderValidationError(
                    f"Could not generate a name for sub-field '{sf.label}'."
                )
            if sub_name in names:
                raise BuilderValidationError(f"Sub-field name '{sub_name}' is used twice.")
            names.add(sub_name)
            sub_fields.append(
                SubField(
                    id=sf.id or new_id("subfield"),
                    label=sf.label.strip(),
                    name=sub_name,
                    type=sf.type,
                    placeholder=_clean(sf.placeholder),
                    required=sf.required,
                    options=list(sf.options) if sf.type == "dropdown" and sf.options else None,
                    optionsUrl=_clean(sf.optionsUrl) if sf.type == "dropdown" else None,
                )
            )
        return sub_fields


# Draft helpers


def draft_from_field(field: Field) -> FieldDraft:
    """Open an existing field for editing."""
    data = field.model_dump(
        exclude={"id", "subFields", "validations", "combinationRowLabels"}
    )
    return FieldDraft(
        **{k: v for k, v in data.items() if v is not None},
        validations=tuple(field.validations),
        subFields=tuple(SubFieldDraft.from_sub_field(sf) for sf in field.subFields or []),
        combinationRowLabels=tuple(field.combinationRowLabels or ()),
    )


def relabel(draft: FieldDraft, label: str) -> FieldDraft:
    """Set the label and recompute the derived name (and master data table)."""
    name = generate_field_name(label)
    changes: dict[str, Any] = {"label": label, "name": name}
    if draft.isMasterData and name:
        changes["masterDataTable"] = f"{name}_master"
    return draft.evolve(**changes)


def rename(draft: FieldDraft, name: str | None) -> FieldDraft:
    """Override the derived field name."""
    return draft.evolve(name=_clean(name))


def change_type(draft: FieldDraft, new_type: str) -> FieldDraft:
    """
    Switch a draft to another field kind, clearing incompatible settings.

    - leaving combination drops sub-fields and row configuration
    - file, location and button kinds cannot be rating parameters
    - combination fields cannot be master data
    - non-option kinds drop every option source
    - non-button kinds drop button settings; Next/Back/Submit get defaults
    - validation rules that do not apply to the new kind are dropped
    """
    changes: dict[str, Any] = {"type": new_type}

    if new_type in NON_RATING_KINDS and draft.isRatingParameter:
        changes["isRatingParameter"] = False
    if new_type == "combination" and draft.isMasterData:
        changes["isMasterData"] = False
        changes["masterDataTable"] = None
    if new_type != "combination":
        changes.update(subFields=(), combinationRows=1, combinationRowLabels=())
    if new_type not in OPTION_KINDS:
        changes.update(
            options=None,
            optionsUrl=None,
            dependentOn=None,
            dependentOptions=None,
            dependentOptionsUrl=None,
        )
    if new_type in BUTTON_KINDS:
        changes.update(BUTTON_DEFAULTS.get(new_type, {}))
    else:
        changes.update(
            buttonText=None,
            buttonAction=None,
            buttonApiUrl=None,
            buttonVariant=None,
            buttonTargetPage=None,
        )

    allowed = allowed_validation_rules(new_type)
    changes["validations"] = tuple(r for r in draft.validations if r.type in allowed)
    return draft.evolve(**changes)


def _check_rule_value(rule: ValidationRule) -> None:
    """Reject rule values the runtime validator could not apply."""
    if rule.type not in NUMERIC_RULE_TYPES | DATE_RULE_TYPES and rule.type != "pattern":
        return
    if rule.value is None or str(rule.value).strip() == "":
        raise BuilderValidationError(f"Validation rule '{rule.type}' needs a value.")
    if rule.type in NUMERIC_RULE_TYPES and as_number(rule.value) is None:
        raise BuilderValidationError(
            f"Validation rule '{rule.type}' needs a number, got '{rule.value}'."
        )
    if rule.type in DATE_RULE_TYPES:
        try:
            date.fromisoformat(str(rule.value).strip())
        except ValueError:
            raise BuilderValidationError(
                f"Validation rule '{rule.type}' needs a date (YYYY-MM-DD), got '{rule.value}'."
            )
    if rule.type == "pattern":
        try:
            re.compile(str(rule.value))
        except re.error as e:
            raise BuilderValidationError(f"Invalid pattern '{rule.value}': {e}")


def with_validation(draft: FieldDraft, rule: ValidationRule) -> FieldDraft:
    """Set a validation rule, replacing any rule of the same type."""
    if rule.type not in allowed_validation_rules(draft.type):
        raise BuilderValidationError(
            f"Validation rule '{rule.type}' does not apply to {draft.type} fields."
        )
    _check_rule_value(rule)
    rules = [r for r in draft.validations if r.type != rule.type]
    rules.append(rule)
    return draft.evolve(validations=tuple(rules))


def without_validation(draft: FieldDraft, rule_type: str) -> FieldDraft:
    return draft.evolve(validations=tuple(r for r in draft.validations if r.type != rule_type))


def with_options_text(draft: FieldDraft, text: str) -> FieldDraft:
    """Use a comma-separated static option list."""
    options = parse_options_text(text)
    return draft.evolve(options=tuple(options) if options else None, optionsUrl=None)


def with_options_url(draft: FieldDraft, url: str) -> FieldDraft:
    return draft.evolve(optionsUrl=url, options=None)


def with_dependency(draft: FieldDraft, parent_name: str | None) -> FieldDraft:
    """
    Make the draft depend on a parent field, or clear the dependency.

    Setting a parent drops static options and the options URL.
    """
    if not parent_name:
        return draft.evolve(dependentOn=None, dependentOptions=None, dependentOptionsUrl=None)
    return draft.evolve(dependentOn=parent_name, options=None, optionsUrl=None)


def with_dependent_options_text(draft: FieldDraft, text: str) -> FieldDraft:
    """Use a ``Parent = a, b`` per line mapping as the dependent option source."""
    return draft.evolve(
        dependentOptions=parse_dependent_options_text(text), dependentOptionsUrl=None
    )


def with_dependent_options_url(draft: FieldDraft, url: str) -> FieldDraft:
    return draft.evolve(dependentOptionsUrl=url, dependentOptions=None)
