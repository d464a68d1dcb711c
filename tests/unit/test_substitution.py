"""Template substitution tests."""

from apichain.variables import (
    extract_variable_references,
    substitute,
    validate_variable_references,
)
from apichain.variables.substitution import stringify


def test_substitutes_known_and_keeps_unknown():
    result = substitute("Bearer {{token}} for {{missing}}", {"token": "abc"})
    assert result == "Bearer abc for {{missing}}"


def test_non_string_values_are_json_encoded():
    variables = {"count": 3, "flag": True, "obj": {"a": [1, 2]}, "nothing": None}
    assert substitute("{{count}}|{{flag}}|{{obj}}|{{nothing}}", variables) == (
        '3|true|{"a":[1,2]}|null'
    )


def test_url_context_percent_encodes():
    assert substitute("/users/{{id}}", {"id": "a b/c"}, "url") == "/users/a%20b%2Fc"


def test_header_context_strips_line_breaks():
    value = substitute("{{token}}", {"token": "abc\r\nX-Injected: 1"}, "header")
    assert value == "abcX-Injected: 1"


def test_body_and_query_contexts_are_raw():
    assert substitute('{"q": "{{q}}"}', {"q": "a&b"}, "body") == '{"q": "a&b"}'
    assert substitute("{{q}}", {"q": "a b"}, "query") == "a b"


def test_placeholder_syntax_is_word_characters_only():
    variables = {"a-b": "x", "a b": "y"}
    assert substitute("{{a-b}} {{ a b }} {{}}", variables) == "{{a-b}} {{ a b }} {{}}"


def test_empty_template():
    assert substitute("", {"a": 1}) == ""


def test_stringify_keeps_unicode():
    assert stringify({"name": "Zoë"}) == '{"name":"Zoë"}'


def test_extract_references_unique_in_order():
    refs = extract_variable_references("{{b}}/{{a}}?x={{b}}&y={{c}}")
    assert refs == ["b", "a", "c"]


def test_validate_references_reports_out_of_scope():
    missing = validate_variable_references("{{token}} {{user_id}}", ["token"])
    assert missing == ["user_id"]
    assert validate_variable_references("no placeholders", []) == []
