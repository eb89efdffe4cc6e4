"""
Transform Operations

Each operation pairs a params model with a validate step and a pure apply
step. Validation runs against the current pipeline state, before any pixel
access, and raises TransformError tagged with the operation kind.
"""

from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional, Tuple, Type

from PIL import Image
from pydantic import BaseModel

from src.core.config import settings
from src.core.exceptions import TransformError
from src.pipeline.codec import decode_params
from src.pipeline.schemas import ActionKind, ConvertParams, CropParams, ResizeParams
from src.pipeline.state import PipelineState

# Formats whose conventional extension differs from the tag
FORMAT_EXTENSIONS = {
    "jpeg": ".jpg",
    "jpg": ".jpg",
    "tif": ".tiff",
    "tiff": ".tiff",
}


# =============================================================================
# Pure image functions
# =============================================================================

def crop_image(image: Image.Image, params: CropParams) -> Image.Image:
    """Return the sub-region of ``image`` described by ``params``."""
    box = (params.x, params.y, params.x + params.width, params.y + params.height)
    return image.crop(box)


def resize_image(image: Image.Image, size: Tuple[int, int]) -> Image.Image:
    """Resample ``image`` to exactly ``size`` with bilinear filtering."""
    return image.resize(size, Image.Resampling.BILINEAR)


def extension_for_format(image_format: str) -> str:
    """Map a format tag to the file extension it is stored under."""
    image_format = image_format.strip().lower()
    return FORMAT_EXTENSIONS.get(image_format, f".{image_format}")


def resolve_resize_target(params: ResizeParams, size: Tuple[int, int]) -> Tuple[int, int]:
    """
    Compute the target dimensions for a resize.

    A lone width or height keeps the current aspect ratio.

    Raises:
        ValueError: If the combination of fields is not usable
        OverflowError: If the target does not fit in a float
    """
    width, height = size

    if params.scale is not None:
        if params.width is not None or params.height is not None:
            raise ValueError("scale cannot be combined with width or height")
        if params.scale <= 0:
            raise ValueError("scale must be greater than 0")
        return max(1, round(width * params.scale)), max(1, round(height * params.scale))

    if params.width is None and params.height is None:
        raise ValueError("width, height or scale is required")
    if params.width is not None and params.width <= 0:
        raise ValueError("width must be greater than 0")
    if params.height is not None and params.height <= 0:
        raise ValueError("height must be greater than 0")

    target_width = params.width
    target_height = params.height
    if target_width is None:
        target_width = max(1, round(width * target_height / height))
    if target_height is None:
        target_height = max(1, round(height * target_width / width))
    return target_width, target_height


# =============================================================================
# Operations
# =============================================================================

class TransformOperation(ABC):
    """Decode, validate and apply one kind of action."""

    kind: ActionKind
    params_model: Type[BaseModel]

    def decode(self, params: Any, index: Optional[int] = None) -> BaseModel:
        return decode_params(params, self.params_model, self.kind.value, index)

    @abstractmethod
    def validate(self, params: BaseModel, state: PipelineState, index: Optional[int] = None) -> None:
        """Raise TransformError if ``params`` cannot be applied to ``state``."""

    @abstractmethod
    def apply(self, state: PipelineState, params: BaseModel) -> PipelineState:
        """Return the state produced by applying validated ``params``."""

    def _reject(self, reason: str, index: Optional[int], **details) -> TransformError:
        return TransformError(reason, action=self.kind.value, index=index, details=details)


class CropOperation(TransformOperation):
    kind = ActionKind.CROP
    params_model = CropParams

    def validate(self, params: CropParams, state: PipelineState, index: Optional[int] = None) -> None:
        width, height = state.size
        if params.x < 0 or params.y < 0:
            raise self._reject("crop origin must not be negative", index, x=params.x, y=params.y)
        if params.width <= 0 or params.height <= 0:
            raise self._reject(
                "crop width and height must be greater than 0",
                index, width=params.width, height=params.height
            )
        if params.x + params.width > width or params.y + params.height > height:
            raise self._reject(
                f"crop rectangle exceeds image bounds {width}x{height}",
                index,
                rectangle=[params.x, params.y, params.width, params.height],
                image_size=[width, height]
            )

    def apply(self, state: PipelineState, params: CropParams) -> PipelineState:
        return state.with_image(crop_image(state.image, params))


class ResizeOperation(TransformOperation):
    kind = ActionKind.RESIZE
    params_model = ResizeParams

    def __init__(self, max_pixels: Optional[int] = None):
        self.max_pixels = max_pixels if max_pixels is not None else settings.MAX_OUTPUT_PIXELS

    def validate(self, params: ResizeParams, state: PipelineState, index: Optional[int] = None) -> None:
        try:
            width, height = resolve_resize_target(params, state.size)
        except OverflowError as e:
            raise self._reject("target size is out of range", index) from e
        except ValueError as e:
            raise self._reject(str(e), index) from e

        if width * height > self.max_pixels:
            raise self._reject(
                f"target size {width}x{height} exceeds {self.max_pixels} pixels",
                index, width=width, height=height
            )

    def apply(self, state: PipelineState, params: ResizeParams) -> PipelineState:
        size = resolve_resize_target(params, state.size)
        return state.with_image(resize_image(state.image, size))


class ConvertOperation(TransformOperation):
    kind = ActionKind.CONVERT
    params_model = ConvertParams

    def __init__(self, supported_formats: Optional[Iterable[str]] = None):
        if supported_formats is None:
            supported_formats = settings.supported_formats
        self.supported_formats = frozenset(fmt.lower() for fmt in supported_formats)

    def validate(self, params: ConvertParams, state: PipelineState, index: Optional[int] = None) -> None:
        if params.format.strip().lower() not in self.supported_formats:
            raise self._reject(
                f"unsupported format {params.format}",
                index, supported=sorted(self.supported_formats)
            )

    def apply(self, state: PipelineState, params: ConvertParams) -> PipelineState:
        return state.with_extension(extension_for_format(params.format))
