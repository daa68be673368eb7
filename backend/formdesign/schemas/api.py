"""
Pydantic models for API requests and responses.

These models wrap the design tree for the HTTP surface: builder
intents, preview queries, and the reports produced by validation.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from formdesign.schemas.form_schema import Form


class CreateDesignRequest(BaseModel):
    """Request for creating a new form design."""

    name: str = Field(..., min_length=1, max_length=200)
    designType: str | None = None
    singlePage: bool = False


class DesignSummary(BaseModel):
    """Information about a stored design."""

    id: str
    name: str
    designType: str | None = None
    singlePage: bool = False
    version: int
    pageCount: int
    updatedAt: datetime

    @classmethod
    def from_form(cls, form: Form) -> "DesignSummary":
        return cls(
            id=form.id,
            name=form.name,
            designType=form.designType,
            singlePage=form.singlePage,
            version=form.version,
            pageCount=len(form.pages),
            updatedAt=form.updatedAt,
        )


class DesignListResponse(BaseModel):
    """Response for design listing endpoint."""

    designs: list[DesignSummary]
    total: int


class PageRequest(BaseModel):
    title: str
    subtitle: str | None = None


class PageUpdateRequest(BaseModel):
    title: str | None = None
    subtitle: str | None = None


class SectionRequest(BaseModel):
    title: str | None = "New Section"
    subtitle: str | None = None


class SectionUpdateRequest(BaseModel):
    title: str | None = None
    subtitle: str | None = None


class ReorderRequest(BaseModel):
    """Drop field ``fromId`` onto the position of ``toId``."""

    fromId: str
    toId: str


class ValuesRequest(BaseModel):
    """Runtime field values keyed by field name."""

    values: dict[str, Any] = Field(default_factory=dict)
    pageId: str | None = None

    @field_validator("values", mode="before")
    @classmethod
    def ensure_values_dict(cls, v):
        if v is None:
            return {}
        return v


class OptionsRequest(ValuesRequest):
    fieldName: str


class OptionsResponse(BaseModel):
    fieldName: str
    options: list[str]
    dependentOn: str | None = None


class VisibilityResponse(BaseModel):
    pageId: str | None = None
    visible: list[str]
    required: list[str]


class NavigateRequest(ValuesRequest):
    """Activate a button while the runtime is parked on ``pageId``."""

    buttonId: str


class NavigationOutcome(BaseModel):
    """Result of activating a navigation button."""

    fromPageId: str
    toPageId: str
    transitioned: bool
    persisted: bool
    buttonType: str


class PayloadResponse(BaseModel):
    pageId: str | None = None
    payload: dict[str, Any]


class PlacementSchema(BaseModel):
    pageId: str
    sectionId: str
    fieldId: str
    fieldName: str
    height: int
    fullWidth: bool


class ScreenSchema(BaseModel):
    index: int
    height: int
    placements: list[PlacementSchema]


class LayoutResponse(BaseModel):
    maxHeight: int
    total: int
    screens: list[ScreenSchema]


class IntegrityIssue(BaseModel):
    """A problem found by the reference integrity pass."""

    code: Literal[
        "dangling_dependent_on",
        "dangling_condition",
        "dangling_target_page",
        "duplicate_name",
        "dependent_before_parent",
        "missing_api_url",
        "empty_combination",
    ]
    message: str
    fieldId: str | None = None
    pageId: str | None = None
    reference: str | None = None


class IntegrityReport(BaseModel):
    """Result of checking a design's cross references."""

    valid: bool
    errors: list[IntegrityIssue] = Field(default_factory=list)
    warnings: list[IntegrityIssue] = Field(default_factory=list)


class ValidationError(BaseModel):
    """Validation error detail."""

    field: str
    message: str
    code: str | None = None


class ValidationResult(BaseModel):
    """Result of validating runtime values."""

    valid: bool
    errors: list[ValidationError] = Field(default_factory=list)


class UploadResponse(BaseModel):
    """Response after importing a design file."""

    success: bool
    design: DesignSummary | None = None
    error: str | None = None
    filename: str | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["healthy", "unhealthy"]
    version: str
    details: dict[str, Any] | None = None
