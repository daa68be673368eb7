"""
Naming helpers.

Derives identifier-safe field names from labels, generates element ids,
and parses the option text formats accepted by the field editor.
"""

import re
from uuid import uuid4

_SEPARATOR_RUN = re.compile(r"[^a-z0-9]+(.)")
_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


def generate_field_name(label: str | None) -> str:
    """
    Convert a label into a camelCase field name.

    Examples:
        "Company Name" -> "companyName"
        "Project Value (AED)" -> "projectValueAed"
        "2024 Claims" -> "field2024Claims"

    Returns:
        The derived name, or "" when the label has no alphanumerics
    """
    if not label:
        return ""
    slug = _SEPARATOR_RUN.sub(lambda m: m.group(1).upper(), label.strip().lower())
    slug = _NON_ALNUM.sub("", slug)
    if slug and slug[0].isdigit():
        slug = f"field{slug}"
    return slug


def new_id(prefix: str) -> str:
    """Generate a fresh opaque element id, e.g. ``field-1a2b3c4d5e6f``."""
    return f"{prefix}-{uuid4().hex[:12]}"


def parse_options_text(text: str | None) -> list[str] | None:
    """
    Parse a comma-separated option list.

    Returns None when no option survives trimming.
    """
    if not text:
        return None
    options = [option.strip() for option in text.split(",") if option.strip()]
    return options or None


def parse_dependent_options_text(text: str | None) -> dict[str, list[str]] | None:
    """
    Parse a dependent options mapping, one ``Parent = a, b, c`` per line.

    Lines without a parent or without children are ignored. All values
    are kept as strings.
    """
    if not text:
        return None
    mapping: dict[str, list[str]] = {}
    for line in text.splitlines():
        if not line.strip() or "=" not in line:
            continue
        parent, children = (part.strip() for part in line.split("=", 1))
        if parent and children:
            mapping[parent] = [c.strip() for c in children.split(",") if c.strip()]
    return mapping or None


def format_dependent_options(mapping: dict[str, list[str]] | None) -> str:
    """Render a dependent options mapping back into editor text."""
    if not mapping:
        return ""
    return "\n".join(f"{parent} = {', '.join(children)}" for parent, children in mapping.items())
