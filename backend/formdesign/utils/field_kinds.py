"""
Field kind tables.

Groups the 14 field kinds by capability and maps each kind to the
constants used by the builder and the layout engine.
"""

FIELD_KINDS: tuple[str, ...] = (
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
)

# Kinds that carry an option source (static, URL, or dependency pair)
OPTION_KINDS: frozenset[str] = frozenset({"dropdown", "multiselect", "chooseButton"})

# Kinds that drive navigation / persistence
BUTTON_KINDS: frozenset[str] = frozenset(
    {"nextButton", "backButton", "submitButton", "button"}
)

# Button kinds whose activation must persist data
PERSISTING_BUTTON_KINDS: frozenset[str] = frozenset({"nextButton", "submitButton"})

# Kinds that may never be rating parameters
NON_RATING_KINDS: frozenset[str] = frozenset(
    {"file", "location", "chooseButton"} | BUTTON_KINDS
)

# Kinds eligible as the parent of a dependent dropdown
PARENT_CANDIDATE_KINDS: frozenset[str] = frozenset({"dropdown", "multiselect", "text"})

# Default label/variant seeded when switching into a button kind
BUTTON_DEFAULTS: dict[str, dict[str, str]] = {
    "nextButton": {"buttonText": "Next", "buttonVariant": "default"},
    "backButton": {"buttonText": "Back", "buttonVariant": "outline"},
    "submitButton": {"buttonText": "Submit", "buttonVariant": "default"},
}

# Validation rule types applicable per field kind
VALIDATION_RULES_BY_KIND: dict[str, frozenset[str]] = {
    "text": frozenset({"minLength", "maxLength", "pattern", "email", "url", "phone"}),
    "number": frozenset({"min", "max", "integer", "decimalPlaces"}),
    "date": frozenset(
        {
            "minDate",
            "maxDate",
            "minDateToday",
            "maxDateToday",
            "minDaysFromToday",
            "maxDaysFromToday",
        }
    ),
    "file": frozenset({"maxFileSize", "allowedTypes", "maxFiles"}),
    "multiselect": frozenset({"minSelections", "maxSelections"}),
}

# Rule types whose value is a numeric limit, or an ISO date
NUMERIC_RULE_TYPES = frozenset(
    {
        "minLength",
        "maxLength",
        "min",
        "max",
        "decimalPlaces",
        "minDaysFromToday",
        "maxDaysFromToday",
        "maxFileSize",
        "maxFiles",
        "minSelections",
        "maxSelections",
    }
)
DATE_RULE_TYPES = frozenset({"minDate", "maxDate"})

# Layout height estimates (px)
BASE_FIELD_HEIGHT = 60
FIELD_SPACING = 16
PAGE_HEADER_HEIGHT = 100
SECTION_HEADER_HEIGHT = 60
COMBINATION_ROW_HEIGHT = 60
COMBINATION_SUB_FIELD_HEADER_HEIGHT = 20
COMBINATION_OVERHEAD = 100

FIELD_HEIGHTS: dict[str, int] = {
    "text": BASE_FIELD_HEIGHT,
    "number": BASE_FIELD_HEIGHT,
    "date": BASE_FIELD_HEIGHT,
    "dropdown": BASE_FIELD_HEIGHT,
    "location": BASE_FIELD_HEIGHT,
    "multiselect": BASE_FIELD_HEIGHT,
    "checkbox": 40,
    "file": 80,
    "chooseButton": 50,
    "nextButton": 50,
    "backButton": 50,
    "submitButton": 50,
    "button": 50,
}

# Kinds rendered across both preview columns
FULL_WIDTH_KINDS: frozenset[str] = frozenset(
    {"file", "location", "combination", "chooseButton"} | BUTTON_KINDS
)

DESIGN_TYPE_LABELS: dict[str, str] = {
    "reInsurerOnboardingDesign": "Onboard Re-Insurer",
    "insurerOnboardingDesign": "Onboard Insurer",
    "brokerOnboardingDesign": "Onboard Broker",
    "userOnboardingDesign": "Onboard User",
}


def allowed_validation_rules(kind: str | None) -> frozenset[str]:
    """
    Get the validation rule types a field kind accepts.

    Args:
        kind: Field kind (e.g., "text")

    Returns:
        Set of rule type names; empty for kinds without rules
    """
    if kind is None:
        return frozenset()
    return VALIDATION_RULES_BY_KIND.get(kind, frozenset())


def design_type_label(design_type: str | None) -> str:
    """Get the page title used for a new single-page onboarding design."""
    if design_type is None:
        return "Onboard"
    return DESIGN_TYPE_LABELS.get(design_type, "Onboard")
