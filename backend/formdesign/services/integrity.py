"""
Reference integrity checks.

Deleting a field or page never rewrites the references other fields hold
to it. This pass finds those orphaned references (and a few other design
problems) and reports them; it never changes the design.
"""

import logging
from collections import Counter

from formdesign.schemas.api import IntegrityIssue, IntegrityReport
from formdesign.schemas.form_schema import Form
from formdesign.utils.field_kinds import PERSISTING_BUTTON_KINDS

logger = logging.getLogger(__name__)


def check_integrity(form: Form) -> IntegrityReport:
    """
    Check a design's cross references.

    Errors:
    - dependentOn naming a field that does not exist
    - conditionalLogic.field naming a field that does not exist
    - buttonTargetPage naming a page that does not exist
    - two fields sharing a name (submission keys would collide)

    Warnings:
    - a dependent field placed before its parent
    - Next/Submit buttons without an API URL
    - combination fields without sub-fields
    """
    errors: list[IntegrityIssue] = []
    warnings: list[IntegrityIssue] = []

    located = list(form.iter_fields(include_navigation=True))
    positions = {field.name: idx for idx, (_, _, field) in enumerate(located) if field.name}

    name_counts = Counter(field.name for _, _, field in located if field.name)
    for name, count in name_counts.items():
        if count > 1:
            errors.append(
                IntegrityIssue(
                    code="duplicate_name",
                    message=f"Field name '{name}' is used by {count} fields",
                    reference=name,
                )
            )

    for idx, (page, _, field) in enumerate(located):
        if field.dependentOn:
            if field.dependentOn not in positions:
                errors.append(
                    IntegrityIssue(
                        code="dangling_dependent_on",
                        message=f"'{field.label}' depends on missing field '{field.dependentOn}'",
                        fieldId=field.id,
                        pageId=page.id,
                        reference=field.dependentOn,
                    )
                )
            elif positions[field.dependentOn] > idx:
                warnings.append(
                    IntegrityIssue(
                        code="dependent_before_parent",
                        message=f"'{field.label}' appears before its parent '{field.dependentOn}'",
                        fieldId=field.id,
                        pageId=page.id,
                        reference=field.dependentOn,
                    )
                )

        rule = field.conditionalLogic
        if rule is not None and rule.field and rule.field not in positions:
            errors.append(
                IntegrityIssue(
                    code="dangling_condition",
                    message=f"'{field.label}' is shown based on missing field '{rule.field}'",
                    fieldId=field.id,
                    pageId=page.id,
                    reference=rule.field,
                )
            )

        if field.buttonTargetPage and not form.has_page(field.buttonTargetPage):
            errors.append(
                IntegrityIssue(
                    code="dangling_target_page",
                    message=f"'{field.label}' navigates to missing page '{field.buttonTargetPage}'",
                    fieldId=field.id,
                    pageId=page.id,
                    reference=field.buttonTargetPage,
                )
            )

        if field.type in PERSISTING_BUTTON_KINDS and not field.buttonApiUrl:
            warnings.append(
                IntegrityIssue(
                    code="missing_api_url",
                    message=f"'{field.label}' has no API URL to save form data",
                    fieldId=field.id,
                    pageId=page.id,
                )
            )

        if field.type == "combination" and not field.subFields:
            warnings.append(
                IntegrityIssue(
                    code="empty_combination",
                    message=f"Combination field '{field.label}' has no sub-fields",
                    fieldId=field.id,
                    pageId=page.id,
                )
            )

    if errors:
        logger.info(f"Form {form.id} has {len(errors)} integrity error(s)")
    return IntegrityReport(valid=not errors, errors=errors, warnings=warnings)
