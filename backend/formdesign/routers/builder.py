"""
Builder endpoints.

Each endpoint loads the stored design, applies one builder intent and
saves the result as a new version. A rejected intent leaves the stored
design untouched.
"""

import logging
from collections.abc import Callable
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query

from formdesign.dependencies import get_builder, get_repository
from formdesign.schemas.api import (
    PageRequest,
    PageUpdateRequest,
    ReorderRequest,
    SectionRequest,
    SectionUpdateRequest,
)
from formdesign.schemas.draft import DraftCommit
from formdesign.schemas.form_schema import Field, Form
from formdesign.services.builder import BuilderService
from formdesign.services.repository import DesignRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/designs/{design_id}/builder", tags=["builder"])

Builder = Annotated[BuilderService, Depends(get_builder)]
Repository = Annotated[DesignRepository, Depends(get_repository)]


def _apply(
    design_id: str,
    repository: DesignRepository,
    edit: Callable[[Form], Form],
    action: str,
) -> Form:
    try:
        form = repository.get(design_id)
        return repository.save(edit(form))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception(f"Failed to {action} in design {design_id}")
        raise HTTPException(status_code=500, detail=str(e))


# Pages


@router.post("/pages", response_model=Form)
async def add_page(
    design_id: str, request: PageRequest, builder: Builder, repository: Repository
) -> Form:
    return _apply(
        design_id,
        repository,
        lambda form: builder.add_page(form, request.title, request.subtitle),
        "add page",
    )


@router.patch("/pages/{page_id}", response_model=Form)
async def update_page(
    design_id: str,
    page_id: str,
    request: PageUpdateRequest,
    builder: Builder,
    repository: Repository,
) -> Form:
    return _apply(
        design_id,
        repository,
        lambda form: builder.update_page(form, page_id, request.title, request.subtitle),
        "update page",
    )


@router.delete("/pages/{page_id}", response_model=Form)
async def delete_page(
    design_id: str, page_id: str, builder: Builder, repository: Repository
) -> Form:
    """
    Delete a page with everything on it.

    The last remaining page cannot be deleted.
    """
    return _apply(
        design_id,
        repository,
        lambda form: builder.delete_page(form, page_id),
        "delete page",
    )


# Sections


@router.post("/pages/{page_id}/sections", response_model=Form)
async def add_section(
    design_id: str,
    page_id: str,
    request: SectionRequest,
    builder: Builder,
    repository: Repository,
) -> Form:
    return _apply(
        design_id,
        repository,
        lambda form: builder.add_section(form, page_id, request.title, request.subtitle),
        "add section",
    )


@router.patch("/pages/{page_id}/sections/{section_id}", response_model=Form)
async def update_section(
    design_id: str,
    page_id: str,
    section_id: str,
    request: SectionUpdateRequest,
    builder: Builder,
    repository: Repository,
) -> Form:
    return _apply(
        design_id,
        repository,
        lambda form: builder.update_section(
            form, page_id, section_id, request.title, request.subtitle
        ),
        "update section",
    )


@router.delete("/pages/{page_id}/sections/{section_id}", response_model=Form)
async def delete_section(
    design_id: str,
    page_id: str,
    section_id: str,
    builder: Builder,
    repository: Repository,
) -> Form:
    return _apply(
        design_id,
        repository,
        lambda form: builder.delete_section(form, page_id, section_id),
        "delete section",
    )


# Fields


@router.put("/pages/{page_id}/sections/{section_id}/fields", response_model=Form)
async def upsert_field(
    design_id: str,
    page_id: str,
    section_id: str,
    commit: DraftCommit,
    builder: Builder,
    repository: Repository,
) -> Form:
    """
    Commit a field draft.

    Without ``fieldId`` the field is appended to the section; with it
    the existing field is replaced in place.
    """
    return _apply(
        design_id,
        repository,
        lambda form: builder.upsert_field(
            form, page_id, section_id, commit.draft, commit.fieldId
        ),
        "save field",
    )


@router.delete(
    "/pages/{page_id}/sections/{section_id}/fields/{field_id}", response_model=Form
)
async def delete_field(
    design_id: str,
    page_id: str,
    section_id: str,
    field_id: str,
    builder: Builder,
    repository: Repository,
) -> Form:
    return _apply(
        design_id,
        repository,
        lambda form: builder.delete_field(form, page_id, section_id, field_id),
        "delete field",
    )


@router.post("/pages/{page_id}/sections/{section_id}/reorder", response_model=Form)
async def reorder_field(
    design_id: str,
    page_id: str,
    section_id: str,
    request: ReorderRequest,
    builder: Builder,
    repository: Repository,
) -> Form:
    """
    Drop one field onto another's position within a section.

    Moves that would put a parent field below its dependents are rejected
    with 400.
    """
    return _apply(
        design_id,
        repository,
        lambda form: builder.reorder_field(
            form, page_id, section_id, request.fromId, request.toId
        ),
        "reorder fields",
    )


@router.get("/parent-candidates", response_model=list[Field])
async def get_parent_candidates(
    design_id: str,
    builder: Builder,
    repository: Repository,
    exclude_field_id: Annotated[
        str | None, Query(alias="excludeFieldId", description="Field being edited")
    ] = None,
) -> list[Field]:
    """
    List the fields a dependent dropdown can depend on.
    """
    try:
        form = repository.get(design_id)
        return builder.resolver.parent_candidates(form, exclude_field_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))


# Navigation actions


@router.put("/pages/{page_id}/navigation", response_model=Form)
async def upsert_navigation_action(
    design_id: str,
    page_id: str,
    commit: DraftCommit,
    builder: Builder,
    repository: Repository,
) -> Form:
    return _apply(
        design_id,
        repository,
        lambda form: builder.upsert_navigation_action(
            form, page_id, commit.draft, commit.fieldId
        ),
        "save navigation action",
    )


@router.delete("/pages/{page_id}/navigation/{field_id}", response_model=Form)
async def delete_navigation_action(
    design_id: str,
    page_id: str,
    field_id: str,
    builder: Builder,
    repository: Repository,
) -> Form:
    return _apply(
        design_id,
        repository,
        lambda form: builder.delete_navigation_action(form, page_id, field_id),
        "delete navigation action",
    )
