"""
Immutable field draft.

The field editor works on a FieldDraft instead of mutating the live
tree. Each edit returns a new draft; nothing reaches the Form until the
builder commits the draft in one step.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field as PydanticField, field_validator

from formdesign.schemas.form_schema import (
    ButtonAction,
    ButtonVariant,
    ConditionalRule,
    FieldType,
    SubField,
    SubFieldType,
    ValidationRule,
)


class SubFieldDraft(BaseModel):
    """Sub-field as entered in the editor; id and name may be derived."""

    id: str | None = None
    label: str = ""
    name: str | None = None
    type: SubFieldType = "text"
    placeholder: str | None = None
    required: bool = False
    options: tuple[str, ...] | None = None
    optionsUrl: str | None = None

    model_config = {"frozen": True}

    @classmethod
    def from_sub_field(cls, sub_field: SubField) -> "SubFieldDraft":
        return cls(**sub_field.model_dump())


class FieldDraft(BaseModel):
    """Pending configuration for one field."""

    type: FieldType = "text"
    label: str = ""
    name: str | None = None
    placeholder: str | None = None
    defaultValue: str | int | float | bool | list[str] | None = None
    required: bool = False
    isRatingParameter: bool = False
    isMasterData: bool = False
    masterDataTable: str | None = None
    validations: tuple[ValidationRule, ...] = ()
    conditionalLogic: ConditionalRule | None = None

    options: tuple[str, ...] | None = None
    optionsUrl: str | None = None
    dependentOn: str | None = None
    # (parent value, children) pairs; a {parent: [children]} mapping is accepted
    dependentOptions: tuple[tuple[str, tuple[str, ...]], ...] | None = None
    dependentOptionsUrl: str | None = None

    subFields: tuple[SubFieldDraft, ...] = ()
    combinationRows: int = 1
    combinationRowLabels: tuple[str, ...] = ()

    buttonText: str | None = None
    buttonAction: ButtonAction | None = None
    buttonApiUrl: str | None = None
    buttonVariant: ButtonVariant | None = None
    buttonTargetPage: str | None = None

    mapProvider: str | None = None
    mapApiUrl: str | None = None

    model_config = {"frozen": True}

    @field_validator("dependentOptions", mode="before")
    @classmethod
    def mapping_to_pairs(cls, v):
        if isinstance(v, Mapping):
            return tuple((parent, tuple(children)) for parent, children in v.items())
        return v

    def dependent_options_map(self) -> dict[str, list[str]] | None:
        """Get the dependent options as a fresh mapping."""
        if not self.dependentOptions:
            return None
        return {parent: list(children) for parent, children in self.dependentOptions}

    def evolve(self, **changes: Any) -> "FieldDraft":
        """Return a validated copy with the given attributes replaced."""
        return self.model_validate({**self.model_dump(), **changes})


class DraftCommit(BaseModel):
    """Body of an upsert request: the draft plus the field it replaces."""

    draft: FieldDraft
    fieldId: str | None = PydanticField(
        default=None, description="Existing field id; omit to add a new field"
    )
