"""``{{variable}}`` substitution for request templates.

Values are encoded according to where they are inserted:

- ``url``: percent-encoded, for the request path
- ``header``: CR/LF stripped to prevent header injection
- ``query``, ``body``, ``raw``: inserted as-is (query values are encoded once
  by the HTTP client)

Unknown names are left in place verbatim.
"""

from __future__ import annotations

import json
import re
from typing import Any, Iterable, List, Literal, Mapping
from urllib.parse import quote

from ..constants import VARIABLE_PATTERN

SubstitutionContext = Literal["raw", "url", "query", "header", "body"]


def stringify(value: Any) -> str:
    """Render a variable value the way it appears inside a template."""
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _encode(value: str, context: SubstitutionContext) -> str:
    if context == "url":
        return quote(value, safe="")
    if context == "header":
        return value.replace("\r", "").replace("\n", "")
    return value


def substitute(
    template: str,
    variables: Mapping[str, Any],
    context: SubstitutionContext = "raw",
) -> str:
    """Replace ``{{name}}`` placeholders in ``template`` with ``variables``."""
    if not template:
        return template

    def _replace(match: re.Match) -> str:
        name = match.group(1)
        if name not in variables:
            return match.group(0)
        return _encode(stringify(variables[name]), context)

    return VARIABLE_PATTERN.sub(_replace, template)


def extract_variable_references(template: str) -> List[str]:
    """Return unique variable names referenced in ``template``, in order."""
    seen: dict[str, None] = {}
    for match in VARIABLE_PATTERN.finditer(template or ""):
        seen.setdefault(match.group(1), None)
    return list(seen)


def validate_variable_references(template: str, scope: Iterable[str]) -> List[str]:
    """Return referenced names that are not in ``scope``."""
    available = set(scope)
    return [name for name in extract_variable_references(template) if name not in available]
