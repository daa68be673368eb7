"""
Preview endpoints.

Serve the runtime side of a stored design: paginated preview screens,
resolved option lists, conditional visibility, page navigation, and
submission payloads. The runtime is stateless over HTTP; the client
sends the current page and every bound value with each request.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from formdesign.clients.http_client import PersistenceClient
from formdesign.dependencies import (
    get_layout_service,
    get_persistence,
    get_repository,
    get_resolver,
    get_value_validator,
)
from formdesign.exceptions import ElementNotFoundError, RemoteFetchError, StaleOptionsError
from formdesign.schemas.api import (
    LayoutResponse,
    NavigateRequest,
    NavigationOutcome,
    OptionsRequest,
    OptionsResponse,
    PayloadResponse,
    PlacementSchema,
    ScreenSchema,
    ValidationResult,
    ValuesRequest,
    VisibilityResponse,
)
from formdesign.services.layout import LayoutService
from formdesign.services.navigation import NavigationRuntime
from formdesign.services.repository import DesignRepository
from formdesign.services.resolver import DependencyResolver
from formdesign.services.submission import ValueValidator, build_payload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/designs/{design_id}/preview", tags=["preview"])

Repository = Annotated[DesignRepository, Depends(get_repository)]
Resolver = Annotated[DependencyResolver, Depends(get_resolver)]


@router.get("/screens", response_model=LayoutResponse)
async def get_screens(
    design_id: str,
    repository: Repository,
    layout: Annotated[LayoutService, Depends(get_layout_service)],
) -> LayoutResponse:
    """
    Paginate the whole design into fixed-height fullscreen screens.
    """
    try:
        screens = layout.paginate(repository.get(design_id))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return LayoutResponse(
        maxHeight=layout.max_height,
        total=len(screens),
        screens=[
            ScreenSchema(
                index=screen.index,
                height=screen.height,
                placements=[
                    PlacementSchema(
                        pageId=p.page.id,
                        sectionId=p.section.id,
                        fieldId=p.field.id,
                        fieldName=p.field.name,
                        height=p.height,
                        fullWidth=p.full_width,
                    )
                    for p in screen.placements
                ],
            )
            for screen in screens
        ],
    )


@router.post("/options", response_model=OptionsResponse)
async def resolve_options(
    design_id: str,
    request: OptionsRequest,
    repository: Repository,
    resolver: Resolver,
) -> OptionsResponse:
    """
    Resolve the selectable options of one field for the current values.

    Dependent fields return no options until their parent is answered.
    A response overtaken by a newer request for another parent value
    answers 409.
    """
    try:
        form = repository.get(design_id)
        field = form.find_field(request.fieldName)
        if field is None:
            raise ElementNotFoundError("Field", request.fieldName)
        options = await resolver.resolve_options(form, field, request.values)
        return OptionsResponse(
            fieldName=field.name, options=options, dependentOn=field.dependentOn
        )
    except StaleOptionsError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except RemoteFetchError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.exception(f"Failed to resolve options for {request.fieldName}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/visibility", response_model=VisibilityResponse)
async def get_visibility(
    design_id: str,
    request: ValuesRequest,
    repository: Repository,
    resolver: Resolver,
) -> VisibilityResponse:
    """
    List the fields rendered (and required) for the current values.
    """
    try:
        form = repository.get(design_id)
        visible = resolver.visible_fields(form, request.pageId, request.values)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return VisibilityResponse(
        pageId=request.pageId,
        visible=[f.name for f in visible],
        required=[f.name for f in visible if f.required],
    )


@router.post("/navigate", response_model=NavigationOutcome)
async def navigate(
    design_id: str,
    request: NavigateRequest,
    repository: Repository,
    resolver: Resolver,
    persistence: Annotated[PersistenceClient, Depends(get_persistence)],
) -> NavigationOutcome:
    """
    Activate a button on the current page.

    Buttons with an API URL save the bound values first; when saving
    fails the response is 502 and the client stays on its page.
    """
    try:
        form = repository.get(design_id)
        runtime = NavigationRuntime(
            form,
            persistence=persistence,
            resolver=resolver,
            values=request.values,
            current_page_id=request.pageId,
        )
        return await runtime.activate(request.buttonId)
    except RemoteFetchError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception(f"Failed to activate button {request.buttonId}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/payload", response_model=PayloadResponse)
async def get_payload(
    design_id: str,
    request: ValuesRequest,
    repository: Repository,
    resolver: Resolver,
) -> PayloadResponse:
    """
    Build the submission payload for a page, or the whole form when no
    page is given.
    """
    try:
        form = repository.get(design_id)
        payload = build_payload(form, request.values, request.pageId, resolver)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return PayloadResponse(pageId=request.pageId, payload=payload)


@router.post("/validate", response_model=ValidationResult)
async def validate_values(
    design_id: str,
    request: ValuesRequest,
    repository: Repository,
    validator: Annotated[ValueValidator, Depends(get_value_validator)],
) -> ValidationResult:
    """
    Check runtime values against each visible field's rules.
    """
    try:
        form = repository.get(design_id)
        return validator.validate(form, request.values, request.pageId)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.exception(f"Failed to validate values for {design_id}")
        raise HTTPException(status_code=500, detail=str(e))
