from pydantic import BaseModel, ConfigDict, Field
from typing import Any, List, Optional
from enum import Enum


class ActionKind(str, Enum):
    CROP = "crop"
    RESIZE = "resize"
    CONVERT = "convert"


class ImageAction(BaseModel):
    """One requested transform step."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: str = Field(..., alias="action", description="Action kind: crop, resize or convert")
    params: Any = Field(..., description="Kind-specific parameters")


class ProcessRequest(BaseModel):
    """Request for the image-action pipeline."""
    model_config = ConfigDict(frozen=True)

    actions: List[ImageAction] = Field(..., description="Actions applied in order")
    image_name: str = Field(..., description="Name of a stored image")


# =============================================================================
# Per-kind Parameters
# =============================================================================
# Decoded in strict JSON mode: "10" or 10.5 for an integer field is a decode
# failure, not a coercion.

class CropParams(BaseModel):
    """Crop rectangle, origin at the top-left corner."""
    model_config = ConfigDict(strict=True, frozen=True)

    x: int = Field(..., description="Left edge in pixels")
    y: int = Field(..., description="Top edge in pixels")
    width: int = Field(..., description="Rectangle width in pixels")
    height: int = Field(..., description="Rectangle height in pixels")


class ResizeParams(BaseModel):
    """Resize target: explicit dimensions or a scale factor."""
    model_config = ConfigDict(strict=True, frozen=True)

    width: Optional[int] = Field(None, description="Target width in pixels")
    height: Optional[int] = Field(None, description="Target height in pixels")
    scale: Optional[float] = Field(None, description="Uniform scale factor")


class ConvertParams(BaseModel):
    """Target encoding for the persisted image."""
    model_config = ConfigDict(strict=True, frozen=True)

    format: str = Field(..., description="Target format tag, e.g. png or jpeg")
