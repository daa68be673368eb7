"""
Shared fixtures for the form design engine tests.
"""

import pytest

from formdesign.schemas.form_schema import (
    ConditionalRule,
    Field,
    Form,
    Page,
    Section,
    SubField,
    ValidationRule,
)

SAVE_URL = "https://api.example.com/save"
SUBMIT_URL = "https://api.example.com/submit"


@pytest.fixture
def claims_field() -> Field:
    """Combination field collecting yearly claim values."""
    return Field(
        id="f-claims",
        type="combination",
        label="Claims History",
        name="claimsHistory",
        subFields=[
            SubField(id="sf-year", label="Year", name="year", type="number", required=True),
            SubField(id="sf-value", label="Claims Value", name="claimsValue", type="number"),
        ],
        combinationRows=3,
        conditionalLogic=ConditionalRule(field="hasClaims", condition="equals", value="Yes"),
    )


@pytest.fixture
def sample_form(claims_field: Field) -> Form:
    """
    Three-page onboarding form.

    Page 1: country -> city cascade, a Yes/No question gating a
    combination field, and a Next button that saves.
    Page 2: a required email field with Back and a non-saving Next.
    Page 3: notes and a Submit button.
    """
    return Form(
        id="form-sample",
        name="Broker Onboarding",
        pages=[
            Page(
                id="page-1",
                title="Company",
                sections=[
                    Section(
                        id="section-1",
                        title="Location",
                        fields=[
                            Field(
                                id="f-country",
                                type="dropdown",
                                label="Country",
                                name="country",
                                options=["UAE", "KSA"],
                            ),
                            Field(
                                id="f-city",
                                type="dropdown",
                                label="City",
                                name="city",
                                dependentOn="country",
                                dependentOptions={
                                    "UAE": ["Dubai", "Abu Dhabi"],
                                    "KSA": ["Riyadh"],
                                },
                            ),
                            Field(
                                id="f-has-claims",
                                type="dropdown",
                                label="Has Claims",
                                name="hasClaims",
                                options=["Yes", "No"],
                            ),
                            claims_field,
                        ],
                    )
                ],
                navigationActions=[
                    Field(
                        id="nav-next-1",
                        type="nextButton",
                        label="Next",
                        name="next1",
                        buttonText="Next",
                        buttonApiUrl=SAVE_URL,
                    )
                ],
            ),
            Page(
                id="page-2",
                title="Contact",
                sections=[
                    Section(
                        id="section-2",
                        fields=[
                            Field(
                                id="f-email",
                                type="text",
                                label="Email",
                                name="email",
                                required=True,
                                validations=[ValidationRule(type="email")],
                            )
                        ],
                    )
                ],
                navigationActions=[
                    Field(id="nav-back-2", type="backButton", label="Back", name="back2"),
                    Field(id="nav-next-2", type="nextButton", label="Continue", name="next2"),
                ],
            ),
            Page(
                id="page-3",
                title="Review",
                sections=[
                    Section(
                        id="section-3",
                        title="Notes",
                        fields=[Field(id="f-notes", type="text", label="Notes", name="notes")],
                    )
                ],
                navigationActions=[
                    Field(
                        id="nav-submit-3",
                        type="submitButton",
                        label="Submit",
                        name="submit3",
                        buttonApiUrl=SUBMIT_URL,
                    )
                ],
            ),
        ],
    )
