import pytest

from intelligroup.utils.ai_parser import extract_json, parse_extraction_response


def test_plain_json():
    assert extract_json('{"a": 1}') == {"a": 1}


def test_fenced_json():
    text = '```json\n{"isStartPage": true, "data": {}}\n```'
    assert extract_json(text) == {"isStartPage": True, "data": {}}


def test_json_inside_prose():
    text = 'Here is the result: {"data": {"lastName": "Иванов {младший}"}} Hope it helps!'
    assert extract_json(text) == {"data": {"lastName": "Иванов {младший}"}}


def test_unparseable_raises():
    with pytest.raises(ValueError):
        extract_json("no json here")
    with pytest.raises(ValueError):
        extract_json("")


def test_bare_fields_are_wrapped():
    assert parse_extraction_response('{"lastName": "Иванов"}') == {
        "isStartPage": False,
        "data": {"lastName": "Иванов"},
    }


def test_single_element_list_is_unwrapped():
    assert parse_extraction_response('[{"isStartPage": true, "data": {}}]') == {"isStartPage": True, "data": {}}


def test_non_object_raises():
    with pytest.raises(ValueError):
        parse_extraction_response("[1, 2]")
