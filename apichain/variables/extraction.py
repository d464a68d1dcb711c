"""Extract variables from response bodies using JSONPath expressions."""

from __future__ import annotations

from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple

from ..constants import MAX_JSON_PATH_LENGTH
from ..contracts import VariableExtraction
from ..errors import JsonPathError
from .jsonpath import MISSING, parse, query


class ExtractionResult(NamedTuple):
    extracted: Dict[str, Any]
    errors: List[str]


def extract_variables(
    response_body: Any, extractions: Sequence[VariableExtraction]
) -> ExtractionResult:
    """Evaluate each extraction against ``response_body``.

    Failures never raise: an extraction that cannot be resolved is left out of
    ``extracted`` and described in ``errors``.
    """
    extracted: Dict[str, Any] = {}
    errors: List[str] = []

    if not extractions:
        return ExtractionResult(extracted, errors)

    if not isinstance(response_body, (dict, list)):
        for extraction in extractions:
            errors.append(
                f'Cannot extract "{extraction.name}": response body is not a JSON object'
            )
        return ExtractionResult(extracted, errors)

    for extraction in extractions:
        try:
            value = query(extraction.json_path, response_body)
        except JsonPathError as e:
            errors.append(f'Failed to extract "{extraction.name}": {e}')
            continue

        if value is MISSING or value is None:
            errors.append(
                f'No value found for "{extraction.name}" at path: {extraction.json_path}'
            )
        else:
            extracted[extraction.name] = value

    return ExtractionResult(extracted, errors)


def validate_json_path(expression: str) -> Tuple[bool, Optional[str]]:
    """Check an expression for emptiness, length and syntax."""
    if not expression or not expression.strip():
        return False, "JSONPath expression cannot be empty"

    if len(expression) > MAX_JSON_PATH_LENGTH:
        return False, f"JSONPath expression cannot exceed {MAX_JSON_PATH_LENGTH} characters"

    try:
        parse(expression)
    except JsonPathError as e:
        return False, str(e)
    return True, None


def preview_extraction(response_body: Any, expression: str) -> Tuple[Any, Optional[str]]:
    """Evaluate ``expression`` for interactive testing.

    Returns ``(value, None)`` on success and ``(None, error)`` otherwise.
    """
    valid, error = validate_json_path(expression)
    if not valid:
        return None, error

    value = query(expression, response_body)
    if value is MISSING or value is None:
        return None, f"No value found at path: {expression}"
    return value, None
