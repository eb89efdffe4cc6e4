"""
Parameter Codec

Turns an untyped action params payload into the typed model for its kind by
re-encoding it to JSON and decoding it in strict mode.
"""

import json
from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from src.core.exceptions import DecodeError

T = TypeVar("T", bound=BaseModel)


def format_location(loc: Sequence[Union[str, int]]) -> str:
    """Render a pydantic error location as a dotted field path."""
    return ".".join(str(part) for part in loc)


def summarize_errors(exc: PydanticValidationError) -> List[Dict[str, str]]:
    """Reduce pydantic errors to JSON-safe {field, message} pairs."""
    return [
        {"field": format_location(err["loc"]), "message": err["msg"]}
        for err in exc.errors(include_url=False)
    ]


def decode_params(
    params: Any,
    shape: Type[T],
    action: str,
    index: Optional[int] = None
) -> T:
    """
    Decode an opaque params payload into a typed parameter model.

    Args:
        params: Params value as received on the wire
        shape: Pydantic model for the action kind
        action: Action kind, used for error attribution
        index: Position of the action in the pipeline

    Returns:
        Instance of ``shape``

    Raises:
        DecodeError: If the payload cannot be serialized or does not match ``shape``
    """
    try:
        raw = json.dumps(params)
    except (TypeError, ValueError) as e:
        raise DecodeError(
            f"invalid {action} params",
            action=action,
            index=index,
            details={"reason": str(e)}
        ) from e

    try:
        return shape.model_validate_json(raw)
    except PydanticValidationError as e:
        raise DecodeError(
            f"invalid {action} params",
            action=action,
            index=index,
            details={"errors": summarize_errors(e)}
        ) from e
