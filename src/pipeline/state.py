"""
Pipeline State

The (image, extension) pair threaded through a pipeline run. States are
immutable; every step returns a new one.
"""

from dataclasses import dataclass, field, replace
from typing import List, Tuple

from PIL import Image


@dataclass(frozen=True)
class PipelineState:
    image: Image.Image
    extension: str

    @property
    def size(self) -> Tuple[int, int]:
        return self.image.size

    def with_image(self, image: Image.Image) -> "PipelineState":
        return replace(self, image=image)

    def with_extension(self, extension: str) -> "PipelineState":
        return replace(self, extension=extension)


@dataclass(frozen=True)
class StepRecord:
    """Summary of one successfully applied action."""
    index: int
    action: str
    duration_ms: int
    size: Tuple[int, int]
    extension: str


@dataclass(frozen=True)
class PipelineResult:
    state: PipelineState
    steps: List[StepRecord] = field(default_factory=list)
