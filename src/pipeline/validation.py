"""
Request Validation

Schema-level checks on an inbound pipeline request. Runs before any image is
located or transformed.
"""

from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from src.core.config import settings
from src.core.exceptions import ValidationError
from src.pipeline.codec import format_location
from src.pipeline.schemas import ImageAction, ProcessRequest

# Wire names differ from attribute names for the action kind
_WIRE_FIELDS = {"kind": "action"}


def _wire_location(loc) -> str:
    return format_location(_WIRE_FIELDS.get(part, part) for part in loc)


def validate_action(
    action: ImageAction,
    index: int,
    max_kind_length: Optional[int] = None
) -> None:
    """
    Generic per-action check: kind present and short, params present.

    Raises:
        ValidationError: Naming the offending field
    """
    max_kind_length = max_kind_length or settings.MAX_ACTION_KIND_LENGTH

    if not action.kind:
        raise ValidationError(
            f"field actions.{index}.action is required",
            field=f"actions.{index}.action",
            index=index
        )
    if len(action.kind) > max_kind_length:
        raise ValidationError(
            f"field actions.{index}.action must be at most {max_kind_length} characters",
            field=f"actions.{index}.action",
            action=action.kind,
            index=index
        )
    if action.params is None:
        raise ValidationError(
            f"field actions.{index}.params is required",
            field=f"actions.{index}.params",
            action=action.kind,
            index=index
        )


def validate_request(payload: Any) -> ProcessRequest:
    """
    Parse and check a decoded JSON request body.

    Args:
        payload: Body as decoded from JSON

    Returns:
        The validated ProcessRequest

    Raises:
        ValidationError: On the first rule violated
    """
    if not isinstance(payload, dict):
        raise ValidationError("request body must be a JSON object")

    try:
        request = ProcessRequest.model_validate(payload)
    except PydanticValidationError as e:
        error = e.errors(include_url=False)[0]
        field = _wire_location(error["loc"])
        if error["type"] == "missing" or error.get("input", ...) is None:
            message = f"field {field} is required"
        else:
            message = f"field {field} is not valid: {error['msg']}"
        raise ValidationError(message, field=field) from e

    if not request.actions:
        raise ValidationError("field actions is required", field="actions")
    if len(request.actions) > settings.MAX_ACTIONS:
        raise ValidationError(
            f"field actions must contain at most {settings.MAX_ACTIONS} actions",
            field="actions",
            details={"count": len(request.actions)}
        )

    if not request.image_name:
        raise ValidationError("field image_name is required", field="image_name")
    if len(request.image_name) > settings.MAX_IMAGE_NAME_LENGTH:
        raise ValidationError(
            f"field image_name must be at most {settings.MAX_IMAGE_NAME_LENGTH} characters",
            field="image_name"
        )

    for index, action in enumerate(request.actions):
        validate_action(action, index)

    return request
