"""
Pipeline Runner

Applies an ordered list of actions to a pipeline state, one at a time,
stopping at the first error. Nothing here performs I/O.
"""

import time
from typing import Optional, Sequence

from src.core.exceptions import PhotoEditorError, ValidationError
from src.core.logging import get_logger, LogContext
from src.core.metrics import record_pipeline_run, track_action_latency
from src.pipeline.dispatcher import ActionDispatcher
from src.pipeline.schemas import ImageAction
from src.pipeline.state import PipelineResult, PipelineState, StepRecord

logger = get_logger(__name__)


class PipelineRunner:
    """Thread a PipelineState through an action list."""

    def __init__(self, dispatcher: Optional[ActionDispatcher] = None):
        self.dispatcher = dispatcher or ActionDispatcher()

    def _metric_label(self, kind: str) -> str:
        # Unknown kinds come straight from the request body
        return kind if kind in self.dispatcher.kinds else "unknown"

    def run(self, actions: Sequence[ImageAction], state: PipelineState) -> PipelineResult:
        """
        Run every action in order.

        Args:
            actions: Actions to apply, left to right
            state: Initial state built from the source image

        Returns:
            PipelineResult with the final state and one StepRecord per action

        Raises:
            PhotoEditorError: The first error raised by any step
        """
        if not actions:
            raise ValidationError("field actions is required", field="actions")

        start_time = time.time()
        steps = []

        logger.info(
            "pipeline_started",
            action_count=len(actions),
            size=list(state.size),
            extension=state.extension
        )

        for index, action in enumerate(actions):
            label = self._metric_label(action.kind)
            step_start = time.time()

            with LogContext(action=label):
                try:
                    with track_action_latency(label):
                        state = self.dispatcher.dispatch(state, action, index)
                except PhotoEditorError as e:
                    logger.warning(
                        "pipeline_failed",
                        index=index,
                        requested_action=action.kind,
                        error=e.message,
                        error_type=type(e).__name__
                    )
                    record_pipeline_run("failed", failure_action=label, action_count=len(actions))
                    raise

                duration_ms = int((time.time() - step_start) * 1000)
                steps.append(StepRecord(
                    index=index,
                    action=action.kind,
                    duration_ms=duration_ms,
                    size=state.size,
                    extension=state.extension
                ))
                logger.info(
                    "action_completed",
                    index=index,
                    duration_ms=duration_ms,
                    size=list(state.size),
                    extension=state.extension
                )

        record_pipeline_run("completed", action_count=len(actions))
        logger.info(
            "pipeline_completed",
            action_count=len(actions),
            duration_ms=int((time.time() - start_time) * 1000),
            size=list(state.size),
            extension=state.extension
        )

        return PipelineResult(state=state, steps=steps)
