import pytest

from src.core.exceptions import ValidationError
from src.pipeline.schemas import ImageAction
from src.pipeline.validation import validate_action, validate_request

CROP = {"action": "crop", "params": {"x": 0, "y": 0, "width": 10, "height": 10}}


def body(actions=None, image_name="img_1.jpg"):
    return {"actions": [CROP] if actions is None else actions, "image_name": image_name}


def field_of(exc_info):
    return exc_info.value.details.get("field")


def test_valid_request_is_parsed():
    request = validate_request(body(actions=[CROP, {"action": "convert", "params": {"format": "png"}}]))

    assert request.image_name == "img_1.jpg"
    assert [action.kind for action in request.actions] == ["crop", "convert"]


def test_five_actions_are_accepted():
    assert len(validate_request(body(actions=[CROP] * 5)).actions) == 5


def test_six_actions_are_rejected():
    with pytest.raises(ValidationError) as exc_info:
        validate_request(body(actions=[CROP] * 6))

    assert field_of(exc_info) == "actions"
    assert exc_info.value.code == 400


def test_empty_action_list_is_rejected():
    with pytest.raises(ValidationError) as exc_info:
        validate_request(body(actions=[]))

    assert exc_info.value.message == "field actions is required"


@pytest.mark.parametrize("payload,field", [
    ({"image_name": "a.jpg"}, "actions"),
    ({"actions": None, "image_name": "a.jpg"}, "actions"),
    ({"actions": [CROP]}, "image_name"),
    ({"actions": [CROP], "image_name": None}, "image_name"),
    ({"actions": [CROP], "image_name": ""}, "image_name"),
    ({"actions": [CROP], "image_name": "x" * 101}, "image_name"),
    ({"actions": "crop", "image_name": "a.jpg"}, "actions"),
])
def test_top_level_fields(payload, field):
    with pytest.raises(ValidationError) as exc_info:
        validate_request(payload)

    assert field_of(exc_info) == field


def test_image_name_at_limit_is_accepted():
    assert validate_request(body(image_name="x" * 100)).image_name == "x" * 100


@pytest.mark.parametrize("bad_action,field", [
    ({"params": {}}, "actions.1.action"),
    ({"action": "crop"}, "actions.1.params"),
    ({"action": "crop", "params": None}, "actions.1.params"),
    ({"action": "", "params": {}}, "actions.1.action"),
    ({"action": "x" * 11, "params": {}}, "actions.1.action"),
])
def test_every_action_is_checked(bad_action, field):
    with pytest.raises(ValidationError) as exc_info:
        validate_request(body(actions=[CROP, bad_action]))

    assert field_of(exc_info) == field


def test_unknown_kind_passes_schema_checks():
    # Kind membership is decided at dispatch
    request = validate_request(body(actions=[{"action": "blur", "params": {}}]))

    assert request.actions[0].kind == "blur"


def test_non_object_body_is_rejected():
    with pytest.raises(ValidationError):
        validate_request([CROP])


def test_validate_action_honours_custom_limit():
    with pytest.raises(ValidationError):
        validate_action(ImageAction(action="resize", params={}), 0, max_kind_length=4)
