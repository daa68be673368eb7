"""
Pydantic schemas for the form design tree and API request/response models.
"""

from formdesign.schemas.api import (
    IntegrityReport,
    NavigationOutcome,
    ValidationResult,
)
from formdesign.schemas.draft import FieldDraft, SubFieldDraft
from formdesign.schemas.form_schema import (
    ConditionalRule,
    Field,
    Form,
    FormVersion,
    Page,
    Section,
    SubField,
    ValidationRule,
)

__all__ = [
    "Form",
    "FormVersion",
    "Page",
    "Section",
    "Field",
    "SubField",
    "ValidationRule",
    "ConditionalRule",
    "FieldDraft",
    "SubFieldDraft",
    "IntegrityReport",
    "NavigationOutcome",
    "ValidationResult",
]
