"""
Pydantic models for the form design tree.

A Form exclusively owns its Pages, which own Sections, which own Fields
(and their SubFields and ValidationRules). Cross references between fields
and pages are plain name/id strings resolved against the live tree.
"""

from collections.abc import Iterator
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, Field as PydanticField, field_validator, model_validator

from formdesign.exceptions import ElementNotFoundError
from formdesign.utils.field_kinds import BUTTON_KINDS

FieldType = Literal[
    "text",
    "number",
    "dropdown",
    "date",
    "checkbox",
    "file",
    "multiselect",
    "location",
    "combination",
    "chooseButton",
    "nextButton",
    "backButton",
    "submitButton",
    "button",
]

SubFieldType = Literal["text", "number", "date", "dropdown"]

ValidationRuleType = Literal[
    "minLength",
    "maxLength",
    "pattern",
    "email",
    "url",
    "phone",
    "min",
    "max",
    "integer",
    "decimalPlaces",
    "minDate",
    "maxDate",
    "minDateToday",
    "maxDateToday",
    "minDaysFromToday",
    "maxDaysFromToday",
    "maxFileSize",
    "allowedTypes",
    "maxFiles",
    "minSelections",
    "maxSelections",
]

Condition = Literal["equals", "not_equals", "contains", "greater_than", "less_than"]

ButtonVariant = Literal["default", "outline", "destructive", "secondary", "ghost", "link"]

ButtonAction = Literal["submit", "next", "back", "custom", "api"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ValidationRule(BaseModel):
    """A single validation constraint on a field value."""

    type: ValidationRuleType
    value: str | int | float | None = None
    message: str | None = None


class ConditionalRule(BaseModel):
    """Visibility predicate referencing another field by name."""

    field: str
    condition: Condition = "equals"
    value: str = ""


class SubField(BaseModel):
    """A column of a combination field's row schema."""

    id: str
    label: str
    name: str = ""
    type: SubFieldType = "text"
    placeholder: str | None = None
    required: bool = False
    options: list[str] | None = None
    optionsUrl: str | None = None


class Field(BaseModel):
    """
    Schema for a form field.

    One model covers every field kind; kind-specific attributes are
    optional and only meaningful for the kinds noted beside them.
    """

    id: str
    type: FieldType
    label: str
    name: str = ""
    placeholder: str | None = None
    defaultValue: str | int | float | bool | list[str] | None = None
    required: bool = False
    isRatingParameter: bool = False
    isMasterData: bool = False
    masterDataTable: str | None = None
    validations: list[ValidationRule] = PydanticField(default_factory=list)
    conditionalLogic: ConditionalRule | None = None

    # Option-bearing fields (dropdown, multiselect, chooseButton)
    options: list[str] | None = None
    optionsUrl: str | None = None
    dependentOn: str | None = None
    dependentOptions: dict[str, list[str]] | None = None
    dependentOptionsUrl: str | None = None

    # Combination fields
    subFields: list[SubField] | None = None
    combinationRows: int | None = PydanticField(default=None, ge=1)
    combinationRowLabels: list[str] | None = None

    # Button fields
    buttonText: str | None = None
    buttonAction: ButtonAction | None = None
    buttonApiUrl: str | None = None
    buttonVariant: ButtonVariant | None = None
    buttonTargetPage: str | None = None

    # Location fields
    mapProvider: str | None = None
    mapApiUrl: str | None = None

    @field_validator("validations", mode="before")
    @classmethod
    def ensure_validations_list(cls, v):
        if v is None:
            return []
        return v

    @model_validator(mode="after")
    def validate_unique_rule_types(self):
        """Ensure at most one rule instance per rule type."""
        types = [rule.type for rule in self.validations]
        if len(types) != len(set(types)):
            raise ValueError(f"Field '{self.label}' has duplicate validation rule types")
        return self

    @property
    def is_button(self) -> bool:
        return self.type in BUTTON_KINDS

    def rule(self, rule_type: str) -> ValidationRule | None:
        """Get the validation rule of a given type, if any."""
        return next((r for r in self.validations if r.type == rule_type), None)


class Section(BaseModel):
    """An ordered group of fields rendered top-to-bottom on a page."""

    id: str
    title: str | None = None
    subtitle: str | None = None
    fields: list[Field] = PydanticField(default_factory=list)

    def field_index(self, field_id: str) -> int:
        for idx, field in enumerate(self.fields):
            if field.id == field_id:
                return idx
        raise ElementNotFoundError("Field", field_id)


class Page(BaseModel):
    """A wizard page. Pages are identified by id, never by position."""

    id: str
    title: str
    subtitle: str | None = None
    pageType: Literal["form"] = "form"
    sections: list[Section] = PydanticField(default_factory=list)
    navigationActions: list[Field] = PydanticField(
        default_factory=list,
        validation_alias=AliasChoices("navigationActions", "navigationFields"),
    )

    model_config = {"populate_by_name": True}

    @field_validator("sections", "navigationActions", mode="before")
    @classmethod
    def ensure_list(cls, v):
        if v is None:
            return []
        return v

    @field_validator("navigationActions")
    @classmethod
    def validate_button_kinds(cls, v: list[Field]) -> list[Field]:
        for action in v:
            if not action.is_button:
                raise ValueError(
                    f"Navigation action '{action.label}' must be a button, got '{action.type}'"
                )
        return v

    def find_section(self, section_id: str) -> Section:
        for section in self.sections:
            if section.id == section_id:
                return section
        raise ElementNotFoundError("Section", section_id)


class Form(BaseModel):
    """
    Complete form design.

    This is the root of the persisted JSON tree consumed by the renderer.
    """

    id: str
    name: str = "Untitled form"
    designType: str | None = None
    singlePage: bool = False
    version: int = 1
    pages: list[Page]
    createdAt: datetime = PydanticField(default_factory=_utcnow)
    updatedAt: datetime = PydanticField(default_factory=_utcnow)

    @model_validator(mode="after")
    def validate_page_count(self):
        if not self.pages:
            raise ValueError("A form must have at least one page")
        if self.singlePage and len(self.pages) > 1:
            raise ValueError("A single-page form cannot have more than one page")
        return self

    def iter_fields(
        self, page_id: str | None = None, include_navigation: bool = False
    ) -> Iterator[tuple[Page, Section | None, Field]]:
        """
        Walk fields in document order.

        Yields (page, section, field) tuples; navigation actions are
        yielded last per page with section None when requested.
        """
        for page in self.pages:
            if page_id is not None and page.id != page_id:
                continue
            for section in page.sections:
                for field in section.fields:
                    yield page, section, field
            if include_navigation:
                for action in page.navigationActions:
                    yield page, None, action

    def all_fields(self, include_navigation: bool = False) -> list[Field]:
        return [f for _, _, f in self.iter_fields(include_navigation=include_navigation)]

    def find_field(self, name: str | None) -> Field | None:
        """Find a field by name; None when the name does not resolve."""
        if not name:
            return None
        for _, _, field in self.iter_fields(include_navigation=True):
            if field.name == name:
                return field
        return None

    def find_field_by_id(self, field_id: str) -> Field | None:
        for _, _, field in self.iter_fields(include_navigation=True):
            if field.id == field_id:
                return field
        return None

    def has_page(self, page_id: str | None) -> bool:
        return page_id is not None and any(p.id == page_id for p in self.pages)

    def find_page(self, page_id: str) -> Page:
        for page in self.pages:
            if page.id == page_id:
                return page
        raise ElementNotFoundError("Page", page_id)

    def page_index(self, page_id: str) -> int:
        for idx, page in enumerate(self.pages):
            if page.id == page_id:
                return idx
        raise ElementNotFoundError("Page", page_id)

    def find_section(self, page_id: str, section_id: str) -> Section:
        return self.find_page(page_id).find_section(section_id)

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize to the persisted JSON representation."""
        return self.model_dump(mode="json", exclude_none=True)


class FormVersion(BaseModel):
    """Snapshot of a design saved at a point in time."""

    designId: str
    version: int
    pages: list[Page]
    createdAt: datetime = PydanticField(default_factory=_utcnow)
