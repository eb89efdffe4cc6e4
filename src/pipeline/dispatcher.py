"""
Action Dispatcher

Maps an action kind to its TransformOperation and drives one pipeline step:
generic check, decode, validate, apply.
"""

from typing import Dict, Iterable, List, Optional

from src.core.exceptions import PhotoEditorError, TransformError, UnknownActionError
from src.core.logging import get_logger
from src.pipeline.schemas import ImageAction
from src.pipeline.state import PipelineState
from src.pipeline.transforms import (
    ConvertOperation,
    CropOperation,
    ResizeOperation,
    TransformOperation,
)
from src.pipeline.validation import validate_action

logger = get_logger(__name__)


def default_operations() -> List[TransformOperation]:
    """Operations available to every pipeline."""
    return [CropOperation(), ResizeOperation(), ConvertOperation()]


class ActionDispatcher:
    """Stateless lookup from action kind to operation."""

    def __init__(self, operations: Optional[Iterable[TransformOperation]] = None):
        if operations is None:
            operations = default_operations()
        self._operations: Dict[str, TransformOperation] = {
            operation.kind.value: operation for operation in operations
        }

    @property
    def kinds(self) -> List[str]:
        return sorted(self._operations)

    def get_operation(self, kind: str, index: Optional[int] = None) -> TransformOperation:
        operation = self._operations.get(kind)
        if operation is None:
            raise UnknownActionError(kind, index=index)
        return operation

    def dispatch(self, state: PipelineState, action: ImageAction, index: int) -> PipelineState:
        """
        Apply one action to ``state``.

        Args:
            state: State produced by the previous step
            action: Action to apply
            index: Position of the action in the pipeline

        Returns:
            The next pipeline state; ``state`` itself is left untouched

        Raises:
            ValidationError: Action fails the generic per-action check
            UnknownActionError: Kind is not registered
            DecodeError: Params do not match the kind's shape
            TransformError: Params rejected for this image, or the transform failed
        """
        validate_action(action, index)
        operation = self.get_operation(action.kind, index)

        params = operation.decode(action.params, index)
        operation.validate(params, state, index)

        try:
            return operation.apply(state, params)
        except PhotoEditorError:
            raise
        except (OSError, ValueError, MemoryError) as e:
            logger.error(
                "transform_failed",
                index=index,
                error=str(e),
                error_type=type(e).__name__
            )
            raise TransformError(
                str(e) or type(e).__name__,
                action=action.kind,
                index=index
            ) from e
