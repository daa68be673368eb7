"""
Submission payloads and runtime value validation.

Turns the values bound during a runtime session into the payload sent to
persistence endpoints, and checks those values against each field's
validation rules.
"""

import logging
import re
from datetime import date, timedelta
from typing import Any
from urllib.parse import urlparse

from formdesign.schemas.api import ValidationError, ValidationResult
from formdesign.schemas.form_schema import Field, Form, SubField, ValidationRule
from formdesign.services.resolver import DependencyResolver, as_number, is_bound
from formdesign.utils.field_kinds import BUTTON_KINDS

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^\+?[0-9\s\-()]{7,20}$")


def _coerce_number(value: Any) -> Any:
    """Turn numeric strings into int/float; leave anything else alone."""
    if not isinstance(value, str):
        return value
    text = value.strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return value


def _row_values(row: Any) -> dict[str, Any]:
    # Rows arrive either flat or wrapped as {"id": ..., "values": {...}}
    if isinstance(row, dict) and isinstance(row.get("values"), dict):
        return row["values"]
    if isinstance(row, dict):
        return row
    return {}


def shape_combination(field: Field, raw: Any) -> list[dict[str, Any]]:
    """
    Shape combination rows into an array of objects.

    Each row becomes one object keyed by sub-field names, in sub-field
    order. Rows with no answered sub-field are dropped; row order is kept.
    """
    if not isinstance(raw, list):
        return []
    sub_fields: list[SubField] = field.subFields or []
    rows: list[dict[str, Any]] = []
    for row in raw:
        data = _row_values(row)
        if not any(is_bound(data.get(sf.name)) for sf in sub_fields):
            continue
        shaped = {}
        for sf in sub_fields:
            value = data.get(sf.name)
            shaped[sf.name] = _coerce_number(value) if sf.type == "number" else value
        rows.append(shaped)
    return rows


def build_payload(
    form: Form,
    values: dict[str, Any],
    page_id: str | None = None,
    resolver: DependencyResolver | None = None,
) -> dict[str, Any]:
    """
    Collect the values to submit for one page, or the whole form.

    Only visible, value-bearing fields are included; buttons never are.
    """
    resolver = resolver or DependencyResolver()
    if page_id is not None:
        form.find_page(page_id)

    payload: dict[str, Any] = {}
    for _, _, field in form.iter_fields(page_id=page_id):
        if field.type in BUTTON_KINDS or not field.name:
            continue
        if field.name not in values or not resolver.is_visible(form, field, values):
            continue
        value = values[field.name]
        if field.type == "combination":
            payload[field.name] = shape_combination(field, value)
        else:
            payload[field.name] = value
    return payload


class ValueValidator:
    """
    Validates runtime values against field rules.

    Required checks only apply to visible fields.
    """

    def __init__(self, resolver: DependencyResolver | None = None):
        self.resolver = resolver or DependencyResolver()

    def validate(
        self,
        form: Form,
        values: dict[str, Any],
        page_id: str | None = None,
        today: date | None = None,
    ) -> ValidationResult:
        today = today or date.today()
        if page_id is not None:
            form.find_page(page_id)

        errors: list[ValidationError] = []
        for _, _, field in form.iter_fields(page_id=page_id):
            if field.type in BUTTON_KINDS or not field.name:
                continue
            if not self.resolver.is_visible(form, field, values):
                continue

            value = values.get(field.name)
            if not is_bound(value):
                if field.required:
                    errors.append(
                        ValidationError(
                            field=field.name,
                            message=f"{field.label} is required",
                            code="required",
                        )
                    )
                continue

            errors.extend(self._validate_field(field, value, today))

        return ValidationResult(valid=len(errors) == 0, errors=errors)

    def _validate_field(self, field: Field, value: Any, today: date) -> list[ValidationError]:
        if field.type == "text":
            return self._text_errors(field, str(value))
        if field.type == "number":
            return self._number_errors(field, value)
        if field.type == "date":
            return self._date_errors(field, value, today)
        if field.type == "file":
            return self._file_errors(field, value)
        if field.type == "multiselect":
            return self._selection_errors(field, value)
        if field.type == "combination":
            return self._combination_errors(field, value)
        return []

    def _error(
        self, field: Field, rule: ValidationRule | None, default: str, code: str
    ) -> ValidationError:
        message = rule.message if rule is not None and rule.message else default
        return ValidationError(field=field.name, message=message, code=code)

    def _text_errors(self, field: Field, text: str) -> list[ValidationError]:
        errors = []
        for rule in field.validations:
            limit = as_number(rule.value)
            if rule.type == "minLength" and limit is not None:
                if len(text) < limit:
                    errors.append(self._error(field, rule, f"Must be at least {rule.value} characters", "min_length"))
            elif rule.type == "maxLength" and limit is not None:
                if len(text) > limit:
                    errors.append(self._error(field, rule, f"Must be at most {rule.value} characters", "max_length"))
            elif rule.type == "pattern" and rule.value:
                try:
                    matched = re.search(str(rule.value), text) is not None
                except re.error:
                    logger.warning(f"Invalid pattern on field '{field.name}': {rule.value}")
                    continue
                if not matched:
                    errors.append(self._error(field, rule, "Invalid format", "pattern"))
            elif rule.type == "email" and not EMAIL_PATTERN.match(text):
                errors.append(self._error(field, rule, "Must be a valid email address", "email"))
            elif rule.type == "url":
                parsed = urlparse(text)
                if parsed.scheme not in ("http", "https") or not parsed.netloc:
                    errors.append(self._error(field, rule, "Must be a valid URL", "url"))
            elif rule.type == "phone" and not PHONE_PATTERN.match(text):
                errors.append(self._error(field, rule, "Must be a valid phone number", "phone"))
        return errors

    def _number_errors(self, field: Field, value: Any) -> list[ValidationError]:
        number = as_number(value)
        if number is None:
            return [ValidationError(field=field.name, message="Must be a number", code="number")]

        errors = []
        for rule in field.validations:
            limit = as_number(rule.value)
            if rule.type == "min" and limit is not None and number < limit:
                errors.append(self._error(field, rule, f"Must be at least {rule.value}", "min"))
            elif rule.type == "max" and limit is not None and number > limit:
                errors.append(self._error(field, rule, f"Must be at most {rule.value}", "max"))
            elif rule.type == "integer" and not number.is_integer():
                errors.append(self._error(field, rule, "Must be a whole number", "integer"))
            elif rule.type == "decimalPlaces" and limit is not None:
                text = str(value).strip()
                places = len(text.split(".", 1)[1]) if "." in text else 0
                if places > int(limit):
                    errors.append(
                        self._error(field, rule, f"At most {int(limit)} decimal places allowed", "decimal_places")
                    )
        return errors

    def _date_errors(self, field: Field, value: Any, today: date) -> list[ValidationError]:
        try:
            chosen = date.fromisoformat(str(value)[:10])
        except ValueError:
            return [ValidationError(field=field.name, message="Must be a valid date", code="date")]

        errors = []
        for rule in field.validations:
            if rule.type in ("minDate", "maxDate"):
                if not rule.value:
                    continue
                try:
                    bound = date.fromisoformat(str(rule.value)[:10])
                except ValueError:
                    logger.warning(f"Invalid {rule.type} on field '{field.name}': {rule.value}")
                    continue
                if rule.type == "minDate" and chosen < bound:
                    errors.append(self._error(field, rule, f"Must be on or after {bound}", "min_date"))
                elif rule.type == "maxDate" and chosen > bound:
                    errors.append(self._error(field, rule, f"Must be on or before {bound}", "max_date"))
            elif rule.type == "minDateToday" and chosen < today:
                errors.append(self._error(field, rule, "Date cannot be in the past", "min_date_today"))
            elif rule.type == "maxDateToday" and chosen > today:
                errors.append(self._error(field, rule, "Date cannot be in the future", "max_date_today"))
            elif rule.type in ("minDaysFromToday", "maxDaysFromToday"):
                days = as_number(rule.value)
                if days is None:
                    continue
                bound = today + timedelta(days=int(days))
                if rule.type == "minDaysFromToday" and chosen < bound:
                    errors.append(
                        self._error(field, rule, f"Must be at least {int(days)} days from today", "min_days")
                    )
                elif rule.type == "maxDaysFromToday" and chosen > bound:
                    errors.append(
                        self._error(field, rule, f"Must be within {int(days)} days from today", "max_days")
                    )
        return errors

    def _file_errors(self, field: Field, value: Any) -> list[ValidationError]:
        files = value if isinstance(value, list) else [value]
        errors = []
        for rule in field.validations:
            limit = as_number(rule.value)
            if rule.type == "maxFiles" and limit is not None:
                if len(files) > limit:
                    errors.append(self._error(field, rule, f"At most {rule.value} file(s) allowed", "max_files"))
            elif rule.type == "maxFileSize" and limit is not None:
                max_bytes = limit * 1024 * 1024
                if any(isinstance(f, dict) and (f.get("size") or 0) > max_bytes for f in files):
                    errors.append(self._error(field, rule, f"Files must be smaller than {rule.value}MB", "max_file_size"))
            elif rule.type == "allowedTypes" and rule.value:
                allowed = {t.strip().lower().lstrip(".") for t in str(rule.value).split(",") if t.strip()}
                for f in files:
                    name = f.get("name") if isinstance(f, dict) else str(f)
                    extension = (name or "").rsplit(".", 1)[-1].lower() if "." in (name or "") else ""
                    if extension not in allowed:
                        errors.append(
                            self._error(field, rule, f"File type not allowed: {name}", "allowed_types")
                        )
                        break
        return errors

    def _selection_errors(self, field: Field, value: Any) -> list[ValidationError]:
        count = len(value) if isinstance(value, (list, tuple)) else 1
        errors = []
        for rule in field.validations:
            limit = as_number(rule.value)
            if rule.type == "minSelections" and limit is not None and count < limit:
                errors.append(self._error(field, rule, f"Select at least {rule.value} option(s)", "min_selections"))
            elif rule.type == "maxSelections" and limit is not None and count > limit:
                errors.append(self._error(field, rule, f"Select at most {rule.value} option(s)", "max_selections"))
        return errors

    def _combination_errors(self, field: Field, value: Any) -> list[ValidationError]:
        errors = []
        for idx, row in enumerate(shape_combination(field, value)):
            for sf in field.subFields or []:
                if sf.required and not is_bound(row.get(sf.name)):
                    errors.append(
                        ValidationError(
                            field=f"{field.name}[{idx}].{sf.name}",
                            message=f"{sf.label} is required",
                            code="required",
                        )
                    )
        return errors


def validate_values(
    form: Form,
    values: dict[str, Any],
    page_id: str | None = None,
    today: date | None = None,
) -> ValidationResult:
    """Validate runtime values with a default resolver."""
    return ValueValidator().validate(form, values, page_id=page_id, today=today)
