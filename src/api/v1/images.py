"""
Images Endpoints

POST /api/v1/images          - Upload an original image
POST /api/v1/images/process  - Apply an action pipeline to a stored image
GET  /api/v1/images/{name}   - Registry metadata for a stored image
"""

import json
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile
from pydantic import BaseModel, Field

from src.api.dependencies import get_image_repository, get_image_service
from src.core.exceptions import ValidationError
from src.core.logging import get_logger
from src.core.storage import IStorage, get_storage
from src.modules.images.repositories import ImageRepository
from src.modules.images.services import ImageProcessingService
from src.pipeline.schemas import ProcessRequest
from src.pipeline.validation import validate_request

logger = get_logger(__name__)
router = APIRouter()


# =============================================================================
# Response Schemas
# =============================================================================

class AppliedAction(BaseModel):
    """One action as applied by the pipeline."""
    index: int
    action: str
    duration_ms: int
    width: int
    height: int
    extension: str


class ProcessResponse(BaseModel):
    """Response from the process endpoint."""
    status: str = "ok"
    image_name: str = Field(..., description="Generated name of the result")
    image_url: str = Field(..., description="Public URL of the result")
    width: int
    height: int
    extension: str
    actions: List[AppliedAction] = Field(default_factory=list)


class UploadResponse(BaseModel):
    """Response from the upload endpoint."""
    status: str = "ok"
    image_name: str
    image_url: str
    width: int
    height: int
    extension: str


class ImageInfoResponse(BaseModel):
    """Registry metadata for one image."""
    name: str
    image_url: str
    extension: str
    width: int
    height: int
    origin: str
    source_name: Optional[str] = None
    derived: List[str] = Field(default_factory=list)
    created_at: Optional[str] = None


# =============================================================================
# Endpoints
# =============================================================================

@router.post(
    "/process",
    response_model=ProcessResponse,
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": ProcessRequest.model_json_schema()}}
        }
    }
)
async def process_image(
    request: Request,
    service: ImageProcessingService = Depends(get_image_service)
):
    """
    Apply an ordered list of actions to a stored image.

    Example body:
        {"image_name": "img_ab12.jpg",
         "actions": [{"action": "crop", "params": {"x": 0, "y": 0, "width": 50, "height": 50}},
                     {"action": "convert", "params": {"format": "png"}}]}

    The body is decoded here rather than by FastAPI so that schema errors
    surface as 400 validation errors naming the offending field.
    """
    body = await request.body()
    if not body.strip():
        raise ValidationError("empty request")

    try:
        payload = json.loads(body)
    except ValueError as e:
        raise ValidationError("failed to decode request", details={"reason": str(e)}) from e

    process_request = validate_request(payload)

    logger.info(
        "request_body_decoded",
        image_name=process_request.image_name,
        actions=[action.kind for action in process_request.actions]
    )

    stored = await service.process(process_request)

    steps = stored.result.steps if stored.result else []
    return ProcessResponse(
        image_name=stored.name,
        image_url=stored.url,
        width=stored.record.width,
        height=stored.record.height,
        extension=stored.record.extension,
        actions=[
            AppliedAction(
                index=step.index,
                action=step.action,
                duration_ms=step.duration_ms,
                width=step.size[0],
                height=step.size[1],
                extension=step.extension
            )
            for step in steps
        ]
    )


@router.post("", response_model=UploadResponse, status_code=201)
async def upload_image(
    file: UploadFile = File(...),
    service: ImageProcessingService = Depends(get_image_service)
):
    """Upload an original image and register it under a generated name."""
    file_content = await file.read()
    stored = await service.upload(file_content, filename=file.filename)

    return UploadResponse(
        image_name=stored.name,
        image_url=stored.url,
        width=stored.record.width,
        height=stored.record.height,
        extension=stored.record.extension
    )


@router.get("/{image_name}", response_model=ImageInfoResponse)
async def get_image(
    image_name: str,
    repository: ImageRepository = Depends(get_image_repository),
    storage: IStorage = Depends(get_storage)
):
    """Get registry metadata, URL and derived images for ``image_name``."""
    record = await repository.get_by_name(image_name)
    derived = await repository.get_derived(record.name)
    info = record.to_response_dict()

    return ImageInfoResponse(
        image_url=await storage.get_url(record.storage_key),
        derived=[image.name for image in derived],
        **info
    )
