"""
Dependency Resolver.

Answers the three questions the rest of the engine asks about
cross-field dependencies:
- which options a dependent (cascading) field offers for a parent value
- whether a field is rendered under its conditional-visibility rule
- whether moving a field within its section keeps parents above dependents

All references are name lookups against the live Form; a reference that
no longer resolves degrades to "no match" instead of raising.
"""

import logging
import math
from typing import Any

from formdesign.exceptions import BuilderValidationError, ReorderRejectedError
from formdesign.schemas.form_schema import Field, Form, Section
from formdesign.services.options import OptionsFetcher
from formdesign.utils.field_kinds import PARENT_CANDIDATE_KINDS

logger = logging.getLogger(__name__)


def is_bound(value: Any) -> bool:
    """Check whether a runtime value counts as answered."""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) > 0
    return True


def as_text(value: Any) -> str:
    """Render a runtime value the way the browser would stringify it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join(as_text(v) for v in value)
    return str(value)


def as_number(value: Any) -> float | None:
    """Coerce a runtime value to a number; None when it is not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str) and value.strip():
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


class DependencyResolver:
    """
    Service evaluating field dependencies against runtime values.

    ``values`` arguments are always keyed by field name.
    """

    def __init__(self, options_fetcher: OptionsFetcher | None = None):
        self.options_fetcher = options_fetcher

    # Cascading options

    def cascading_options(self, field: Field, parent_value: Any) -> list[str]:
        """
        Look up a dependent field's options in its static mapping.

        Returns an empty list while the parent is unanswered or when the
        parent value has no mapping.
        """
        if not is_bound(parent_value) or not field.dependentOptions:
            return []
        return list(field.dependentOptions.get(as_text(parent_value), []))

    async def resolve_options(
        self, form: Form, field: Field, values: dict[str, Any]
    ) -> list[str]:
        """
        Resolve the selectable options for a field.

        Dispatches on the active option source: dependency pair, remote
        ``optionsUrl``, or static ``options``.
        """
        if field.dependentOn:
            parent = form.find_field(field.dependentOn)
            if parent is None:
                logger.debug(
                    "Field %s depends on unknown field %s", field.name, field.dependentOn
                )
                return []
            parent_value = values.get(parent.name)
            if not is_bound(parent_value):
                return []
            if field.dependentOptionsUrl:
                return await self._fetcher().fetch_dependent_options(
                    field.id, field.dependentOptionsUrl, as_text(parent_value)
                )
            return self.cascading_options(field, parent_value)

        if field.optionsUrl:
            return await self._fetcher().fetch_options(field.id, field.optionsUrl)

        return list(field.options or [])

    def _fetcher(self) -> OptionsFetcher:
        if self.options_fetcher is None:
            raise RuntimeError("Remote options requested but no OptionsFetcher is configured")
        return self.options_fetcher

    def mark_parent_required(self, form: Form, field: Field) -> Field | None:
        """
        Mark the parent of a dependent field as required.

        Mutates ``form`` in place; callers pass a working copy.

        Returns:
            The parent field, or None when ``dependentOn`` does not resolve
        """
        if not field.dependentOn:
            return None
        parent = form.find_field(field.dependentOn)
        if parent is None:
            return None
        if not parent.required:
            logger.info(f"Marking parent field '{parent.name}' as required")
            parent.required = True
        return parent

    def parent_candidates(self, form: Form, exclude_field_id: str | None = None) -> list[Field]:
        """List the fields a dependent dropdown may depend on."""
        return [
            f
            for f in form.all_fields()
            if f.type in PARENT_CANDIDATE_KINDS and f.id != exclude_field_id and f.name
        ]

    def dependents_of(self, form: Form, name: str) -> list[Field]:
        """List every field whose ``dependentOn`` names the given field."""
        return [f for f in form.all_fields() if f.dependentOn == name]

    # Conditional visibility

    def evaluate_condition(self, condition: str, actual: Any, expected: str) -> bool:
        """
        Apply a comparator to a runtime value.

        equals/not_equals compare as strings, contains is a substring
        (or, for multi-value answers, membership) test, and the ordering
        comparators are numeric; non-numeric operands make them false.
        """
        if condition == "equals":
            return as_text(actual) == expected
        if condition == "not_equals":
            return as_text(actual) != expected
        if condition == "contains":
            if isinstance(actual, (list, tuple)):
                return expected in [as_text(v) for v in actual]
            return expected in as_text(actual)
        if condition in ("greater_than", "less_than"):
            left = as_number(actual)
            right = as_number(expected)
            if left is None or right is None:
                return False
            return left > right if condition == "greater_than" else left < right
        logger.warning(f"Unknown condition '{condition}'")
        return False

    def is_visible(self, form: Form, field: Field, values: dict[str, Any]) -> bool:
        """Check whether a field is rendered for the current values."""
        rule = field.conditionalLogic
        if rule is None or not rule.field:
            return True
        if form.find_field(rule.field) is None:
            return False
        return self.evaluate_condition(rule.condition, values.get(rule.field), rule.value)

    def is_required(self, form: Form, field: Field, values: dict[str, Any]) -> bool:
        """A field is only required while it is visible."""
        return field.required and self.is_visible(form, field, values)

    def visible_fields(
        self, form: Form, page_id: str | None, values: dict[str, Any]
    ) -> list[Field]:
        """List the section fields rendered on a page (or the whole form)."""
        if page_id is not None:
            form.find_page(page_id)
        return [
            field
            for _, _, field in form.iter_fields(page_id=page_id)
            if self.is_visible(form, field, values)
        ]

    # Reorder safety

    def check_reorder(self, section: Section, from_index: int, to_index: int) -> None:
        """
        Reject a move that would place a parent below its dependents.

        Moving a field down from ``from_index`` to ``to_index`` fails when
        any field in (from_index, to_index] depends on it. Moving up is
        always allowed.

        Raises:
            ReorderRejectedError: If the move breaks parent-before-dependent order
        """
        count = len(section.fields)
        if not (0 <= from_index < count and 0 <= to_index < count):
            raise BuilderValidationError(
                f"Cannot move field from position {from_index} to {to_index} "
                f"in a section of {count} field(s)"
            )
        if to_index <= from_index:
            return

        moved = section.fields[from_index]
        for field in section.fields[from_index + 1 : to_index + 1]:
            if moved.name and field.dependentOn == moved.name:
                raise ReorderRejectedError(
                    f"A parent field cannot be moved below its dependent child fields "
                    f"('{field.label}' depends on '{moved.label}')"
                )
