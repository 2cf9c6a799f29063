import pytest

from studio.workflow.errors import InvalidPayload
from studio_api.validate import MAX_IMAGES, approx_base64_bytes, validate_generate_payload

from conftest import PNG_1x1


def test_prompt_required():
    for body in ({}, {"prompt": ""}, {"prompt": "   "}, {"prompt": 12}):
        with pytest.raises(InvalidPayload) as e:
            validate_generate_payload(body)
        assert str(e.value) == "INVALID_PAYLOAD: prompt is required"


def test_body_must_be_object():
    for body in (None, [], "prompt"):
        with pytest.raises(InvalidPayload) as e:
            validate_generate_payload(body)
        assert "body must be JSON object" in str(e.value)


def test_prompt_size_limit():
    assert validate_generate_payload({"prompt": "a" * 20000}).prompt == "a" * 20000
    with pytest.raises(InvalidPayload) as e:
        validate_generate_payload({"prompt": "a" * 20001})
    assert str(e.value) == "INVALID_PAYLOAD: prompt too large"


def test_prompt_is_trimmed():
    assert validate_generate_payload({"prompt": "  hi \n"}).prompt == "hi"


def test_image_size_limit():
    # ~8.5M base64 chars decode to well over 6MB
    with pytest.raises(InvalidPayload) as e:
        validate_generate_payload({"prompt": "p", "images": ["A" * 8_500_000]})
    assert str(e.value) == "INVALID_PAYLOAD: image too large"

    ok = validate_generate_payload({"prompt": "p", "images": ["data:image/png;base64," + "A" * 5_333_332]})
    assert len(ok.images) == 1


def test_approx_bytes_rounds_up():
    assert approx_base64_bytes("") == 0
    assert approx_base64_bytes("AAAA") == 3
    assert approx_base64_bytes("AAAAA") == 4
    assert approx_base64_bytes("A" * 8_000_000) == 6_000_000


def test_images_filtered_and_truncated():
    images = [PNG_1x1, 5, None, {"x": 1}] + [PNG_1x1] * 10
    payload = validate_generate_payload({"prompt": "p", "images": images})
    assert len(payload.images) == MAX_IMAGES
    assert all(isinstance(i, str) for i in payload.images)

    assert validate_generate_payload({"prompt": "p", "images": "nope"}).images == []


def test_optional_fields_pass_through():
    payload = validate_generate_payload({"prompt": "p", "module": "AD_COVER", "selectors": {"angle": "REAR"}})
    assert payload.module == "AD_COVER"
    assert payload.selectors == {"angle": "REAR"}
    assert validate_generate_payload({"prompt": "p"}).selectors == {}
