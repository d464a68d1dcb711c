"""Variable extraction tests."""

from apichain.constants import MAX_JSON_PATH_LENGTH
from apichain.contracts import VariableExtraction
from apichain.variables import extract_variables, preview_extraction, validate_json_path


def _rule(name, path):
    return VariableExtraction(name=name, json_path=path)


def test_extracts_values_and_reports_missing():
    body = {"data": {"token": "abc", "user": {"id": 42}}, "empty": None}
    extracted, errors = extract_variables(
        body,
        [
            _rule("token", "$.data.token"),
            _rule("user_id", "$.data.user.id"),
            _rule("missing", "$.data.nope"),
            _rule("empty", "$.empty"),
        ],
    )

    assert extracted == {"token": "abc", "user_id": 42}
    assert len(errors) == 2
    assert 'No value found for "missing" at path: $.data.nope' in errors
    assert 'No value found for "empty" at path: $.empty' in errors


def test_falsy_values_are_extracted():
    body = {"zero": 0, "off": False, "blank": "", "items": []}
    extracted, errors = extract_variables(
        body,
        [_rule("zero", "$.zero"), _rule("off", "$.off"), _rule("blank", "$.blank"), _rule("items", "$.items")],
    )
    assert extracted == {"zero": 0, "off": False, "blank": "", "items": []}
    assert errors == []


def test_non_json_body_reports_every_extraction():
    extracted, errors = extract_variables("<html>", [_rule("a", "$.a"), _rule("b", "$.b")])
    assert extracted == {}
    assert len(errors) == 2
    assert all("not a JSON object" in e for e in errors)


def test_invalid_expression_is_reported_not_raised():
    extracted, errors = extract_variables({"a": 1}, [_rule("a", "$.a"), _rule("bad", "$[?(@.x)]")])
    assert extracted == {"a": 1}
    assert len(errors) == 1
    assert errors[0].startswith('Failed to extract "bad"')


def test_no_extractions_is_empty():
    assert extract_variables(None, []) == ({}, [])


def test_validate_json_path():
    assert validate_json_path("$.data.token") == (True, None)

    valid, error = validate_json_path("  ")
    assert not valid
    assert error == "JSONPath expression cannot be empty"

    valid, error = validate_json_path("$." + "a" * MAX_JSON_PATH_LENGTH)
    assert not valid
    assert str(MAX_JSON_PATH_LENGTH) in error

    valid, error = validate_json_path("$.a.[0]")
    assert not valid
    assert error


def test_preview_extraction():
    body = {"items": [{"id": 1}, {"id": 2}]}
    assert preview_extraction(body, "$.items[*].id") == ([1, 2], None)
    assert preview_extraction(body, "$.nope") == (None, "No value found at path: $.nope")

    value, error = preview_extraction(body, "")
    assert value is None
    assert error == "JSONPath expression cannot be empty"
