"""
Layout Pagination Engine.

Repacks the whole field tree into bounded-height "screens" for the
fullscreen preview with one greedy pass in document order. The Form is
only read, never modified.
"""

import logging
from dataclasses import dataclass, field as dataclass_field

from formdesign.schemas.form_schema import Field, Form, Page, Section
from formdesign.utils.field_kinds import (
    BASE_FIELD_HEIGHT,
    COMBINATION_OVERHEAD,
    COMBINATION_ROW_HEIGHT,
    COMBINATION_SUB_FIELD_HEADER_HEIGHT,
    FIELD_HEIGHTS,
    FIELD_SPACING,
    FULL_WIDTH_KINDS,
    PAGE_HEADER_HEIGHT,
    SECTION_HEADER_HEIGHT,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Placement:
    """A field placed on a screen, with the page and section it belongs to."""

    page: Page
    section: Section
    field: Field
    height: int
    full_width: bool


@dataclass
class Screen:
    index: int
    placements: list[Placement] = dataclass_field(default_factory=list)
    height: int = 0

    @property
    def field_ids(self) -> list[str]:
        return [p.field.id for p in self.placements]


def estimate_field_height(field: Field) -> int:
    """
    Estimate the rendered height of a field in pixels.

    Combination fields grow with their row count and sub-field count.
    """
    if field.type == "combination":
        rows = field.combinationRows or 1
        sub_field_count = len(field.subFields or []) or 1
        return (
            rows * COMBINATION_ROW_HEIGHT
            + sub_field_count * COMBINATION_SUB_FIELD_HEADER_HEIGHT
            + COMBINATION_OVERHEAD
            + FIELD_SPACING
        )
    return FIELD_HEIGHTS.get(field.type, BASE_FIELD_HEIGHT) + FIELD_SPACING


def section_header_height(section: Section) -> int:
    return SECTION_HEADER_HEIGHT if section.title else 0


def is_full_width(field: Field) -> bool:
    """Check whether a field spans both preview columns."""
    return field.type in FULL_WIDTH_KINDS


class LayoutService:
    """Greedy bin-packing of the field tree into fixed-height screens."""

    def __init__(self, max_height: int = 800):
        if max_height <= 0:
            raise ValueError("max_height must be positive")
        self.max_height = max_height

    def paginate(self, form: Form) -> list[Screen]:
        """
        Partition every field of the form into screens.

        Walks pages, then sections, then fields, accumulating height. When
        the next header or field would exceed the height limit and the current
        screen already holds fields, the screen is closed and a new one is
        seeded with the element that overflowed. Screens without fields
        are never emitted.
        """
        screens: list[Screen] = []
        current = Screen(index=0)

        def close() -> Screen:
            screens.append(current)
            return Screen(index=len(screens))

        for page in form.pages:
            if current.height + PAGE_HEADER_HEIGHT > self.max_height and current.placements:
                current = close()
            current.height += PAGE_HEADER_HEIGHT

            for section in page.sections:
                header = section_header_height(section)
                if current.height + header > self.max_height and current.placements:
                    current = close()
                current.height += header

                for field in section.fields:
                    height = estimate_field_height(field)
                    if current.height + height > self.max_height and current.placements:
                        current = close()
                    current.height += height
                    current.placements.append(
                        Placement(
                            page=page,
                            section=section,
                            field=field,
                            height=height,
                            full_width=is_full_width(field),
                        )
                    )

        if current.placements:
            screens.append(current)

        logger.debug(f"Paginated form {form.id} into {len(screens)} screen(s)")
        return screens
