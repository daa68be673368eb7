"""
Design storage endpoints.

Create, list, load, save, export and import form designs, and check a
stored design's cross references.
"""

import json
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import Response

from formdesign.config import get_settings
from formdesign.dependencies import get_builder, get_options_fetcher, get_repository
from formdesign.schemas.api import (
    CreateDesignRequest,
    DesignListResponse,
    DesignSummary,
    IntegrityReport,
    UploadResponse,
)
from formdesign.schemas.form_schema import Form, FormVersion
from formdesign.services.builder import BuilderService
from formdesign.services.integrity import check_integrity
from formdesign.services.options import OptionsFetcher
from formdesign.services.repository import DesignRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/designs", tags=["designs"])


@router.post("", response_model=Form, status_code=201)
async def create_design(
    request: CreateDesignRequest,
    builder: Annotated[BuilderService, Depends(get_builder)],
    repository: Annotated[DesignRepository, Depends(get_repository)],
) -> Form:
    """
    Create a new design with a single empty page.
    """
    try:
        form = builder.new_form(
            request.name,
            design_type=request.designType,
            single_page=request.singlePage,
        )
        return repository.save(form)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Failed to create design")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("", response_model=DesignListResponse)
async def list_designs(
    repository: Annotated[DesignRepository, Depends(get_repository)],
) -> DesignListResponse:
    """
    List stored designs, most recently updated first.
    """
    try:
        designs = [DesignSummary.from_form(f) for f in repository.list_designs()]
        return DesignListResponse(designs=designs, total=len(designs))
    except Exception as e:
        logger.exception("Failed to list designs")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/options-cache/refresh")
async def refresh_options_cache(
    fetcher: Annotated[OptionsFetcher, Depends(get_options_fetcher)],
) -> dict[str, int]:
    """
    Drop every cached remote option list.

    Returns the number of option lists that were cleared.
    """
    count = fetcher.clear()
    return {"cleared": count}


@router.post("/upload", response_model=UploadResponse)
async def upload_design(
    file: Annotated[UploadFile, File(...)],
    repository: Annotated[DesignRepository, Depends(get_repository)],
) -> UploadResponse:
    """
    Import a design from an exported JSON file.

    A design whose id is already stored is saved as a new version of it.
    """
    settings = get_settings()

    if not file.filename or not file.filename.endswith(".json"):
        return UploadResponse(
            success=False,
            error="Only JSON design files are accepted",
            filename=file.filename,
        )

    try:
        contents = await file.read()
        max_size = settings.max_upload_size_mb * 1024 * 1024

        if len(contents) > max_size:
            return UploadResponse(
                success=False,
                error=f"File too large. Maximum size is {settings.max_upload_size_mb}MB",
                filename=file.filename,
            )

        form = Form.model_validate_json(contents)
        saved = repository.save(form)

        return UploadResponse(
            success=True,
            design=DesignSummary.from_form(saved),
            filename=file.filename,
        )
    except (ValueError, LookupError) as e:
        return UploadResponse(
            success=False,
            error=str(e),
            filename=file.filename,
        )
    except Exception:
        logger.exception("Failed to import uploaded design")
        return UploadResponse(
            success=False,
            error="Failed to import design file",
            filename=file.filename,
        )


@router.get("/{design_id}", response_model=Form)
async def get_design(
    design_id: str,
    repository: Annotated[DesignRepository, Depends(get_repository)],
) -> Form:
    try:
        return repository.get(design_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.exception(f"Failed to load design {design_id}")
        raise HTTPException(status_code=500, detail=str(e))


@router.put("/{design_id}", response_model=Form)
async def save_design(
    design_id: str,
    form: Form,
    repository: Annotated[DesignRepository, Depends(get_repository)],
) -> Form:
    """
    Save a complete design tree as a new version.
    """
    if form.id != design_id:
        raise HTTPException(status_code=400, detail="Design id does not match the URL")
    try:
        return repository.save(form)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception(f"Failed to save design {design_id}")
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/{design_id}")
async def delete_design(
    design_id: str,
    repository: Annotated[DesignRepository, Depends(get_repository)],
) -> dict[str, bool]:
    """
    Delete a design and its version history.
    """
    try:
        deleted = repository.delete(design_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail="Design not found")
    return {"deleted": True}


@router.get("/{design_id}/versions", response_model=list[FormVersion])
async def get_design_versions(
    design_id: str,
    repository: Annotated[DesignRepository, Depends(get_repository)],
) -> list[FormVersion]:
    """
    Get the saved snapshots of a design, oldest first.
    """
    try:
        repository.get(design_id)
        return repository.versions(design_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.exception(f"Failed to get versions for {design_id}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{design_id}/validate", response_model=IntegrityReport)
async def validate_design(
    design_id: str,
    repository: Annotated[DesignRepository, Depends(get_repository)],
) -> IntegrityReport:
    """
    Check a stored design for dangling references and other problems.

    The design is reported on, never changed.
    """
    try:
        return check_integrity(repository.get(design_id))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.exception(f"Failed to validate design {design_id}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{design_id}/export")
async def export_design(
    design_id: str,
    repository: Annotated[DesignRepository, Depends(get_repository)],
) -> Response:
    """
    Download a design as the JSON document the renderer consumes.
    """
    try:
        form = repository.get(design_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return Response(
        content=json.dumps(form.to_json_dict(), indent=2),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{form.id}.json"'},
    )
