"""
Image-Action Pipeline

Linear pipeline of image actions:
1. crop - cut a rectangle out of the current image
2. resize - resample to new dimensions
3. convert - choose the encoding the result is saved with
"""

from src.pipeline.dispatcher import ActionDispatcher
from src.pipeline.runner import PipelineRunner
from src.pipeline.schemas import ActionKind, ImageAction, ProcessRequest
from src.pipeline.state import PipelineResult, PipelineState
from src.pipeline.validation import validate_request

__all__ = [
    "ActionDispatcher",
    "ActionKind",
    "ImageAction",
    "PipelineResult",
    "PipelineRunner",
    "PipelineState",
    "ProcessRequest",
    "validate_request",
]
