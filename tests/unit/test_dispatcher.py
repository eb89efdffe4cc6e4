import pytest
from unittest.mock import MagicMock

from src.core.exceptions import (
    DecodeError,
    TransformError,
    UnknownActionError,
    ValidationError,
)
from src.pipeline.dispatcher import ActionDispatcher
from src.pipeline.schemas import ActionKind, ImageAction
from src.pipeline.transforms import ConvertOperation, CropOperation, ResizeOperation


def action(kind, params):
    return ImageAction(action=kind, params=params)


def test_dispatcher_registers_default_kinds():
    assert ActionDispatcher().kinds == ["convert", "crop", "resize"]


def test_crop_replaces_image_keeps_extension(state):
    result = ActionDispatcher().dispatch(
        state, action("crop", {"x": 10, "y": 10, "width": 20, "height": 30}), 0
    )

    assert result.size == (20, 30)
    assert result.extension == state.extension


def test_convert_replaces_extension_keeps_image(state):
    result = ActionDispatcher().dispatch(state, action("convert", {"format": "png"}), 0)

    assert result.extension == ".png"
    assert result.image is state.image


def test_unknown_kind_names_the_kind(state):
    with pytest.raises(UnknownActionError) as exc_info:
        ActionDispatcher().dispatch(state, action("blur", {"radius": 2}), 4)

    error = exc_info.value
    assert error.action == "blur"
    assert error.index == 4
    assert "blur" in error.message


def test_kind_match_is_exact(state):
    with pytest.raises(UnknownActionError):
        ActionDispatcher().dispatch(state, action("Crop", {"x": 0, "y": 0, "width": 1, "height": 1}), 0)


def test_generic_check_runs_before_lookup(state):
    with pytest.raises(ValidationError) as exc_info:
        ActionDispatcher().dispatch(state, action("crop", None), 1)

    assert exc_info.value.details["field"] == "actions.1.params"


def test_decode_error_for_malformed_params(state):
    with pytest.raises(DecodeError) as exc_info:
        ActionDispatcher().dispatch(state, action("resize", {"width": "wide"}), 2)

    assert exc_info.value.action == "resize"
    assert exc_info.value.index == 2


def test_validate_runs_before_apply(state):
    operation = CropOperation()
    operation.apply = MagicMock()
    dispatcher = ActionDispatcher([operation])

    with pytest.raises(TransformError):
        dispatcher.dispatch(state, action("crop", {"x": 90, "y": 0, "width": 20, "height": 10}), 0)

    operation.apply.assert_not_called()


def test_imaging_errors_become_transform_errors(state):
    operation = ResizeOperation()
    operation.apply = MagicMock(side_effect=OSError("image file is truncated"))
    dispatcher = ActionDispatcher([operation])

    with pytest.raises(TransformError) as exc_info:
        dispatcher.dispatch(state, action("resize", {"width": 10, "height": 10}), 3)

    error = exc_info.value
    assert error.action == "resize"
    assert error.index == 3
    assert error.message == "failed to perform action resize: image file is truncated"


def test_custom_operation_set_limits_kinds(state):
    dispatcher = ActionDispatcher([ConvertOperation(supported_formats=["png"])])

    assert dispatcher.kinds == [ActionKind.CONVERT.value]
    with pytest.raises(UnknownActionError):
        dispatcher.dispatch(state, action("crop", {"x": 0, "y": 0, "width": 1, "height": 1}), 0)
