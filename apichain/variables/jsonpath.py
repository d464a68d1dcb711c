"""Minimal JSONPath evaluator over decoded JSON values.

Supported syntax::

    $                root (optional; ``a.b`` is read as ``$.a.b``)
    .name ['name']   child member
    [0] [-1]         array index
    .* [*]           all children
    ..name ..*       recursive descent
    [1:3] [::2]      array slice
    [0,2] ['a','b']  unions

Filter and script expressions are not supported.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Iterator, List, NamedTuple, Tuple, Union

from ..errors import JsonPathError

JSONValue = Union[None, bool, int, float, str, List[Any], dict]


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


class Selector(NamedTuple):
    kind: str  # "wildcard", "names", "indices", "slice"
    args: Tuple[Any, ...] = ()
    recursive: bool = False


def _find_closing_bracket(expr: str, start: int) -> int:
    quote_char = None
    for pos in range(start, len(expr)):
        char = expr[pos]
        if quote_char:
            if char == quote_char:
                quote_char = None
        elif char in "'\"":
            quote_char = char
        elif char == "]":
            return pos
    raise JsonPathError(f"Unclosed bracket in JSONPath: {expr}")


def _split_union(content: str) -> List[str]:
    parts: List[str] = []
    current = ""
    quote_char = None
    for char in content:
        if quote_char:
            current += char
            if char == quote_char:
                quote_char = None
        elif char in "'\"":
            quote_char = char
            current += char
        elif char == ",":
            parts.append(current.strip())
            current = ""
        else:
            current += char
    parts.append(current.strip())
    return parts


def _parse_int(text: str, expr: str) -> int:
    try:
        return int(text)
    except ValueError:
        raise JsonPathError(f"Invalid array index '{text}' in JSONPath: {expr}") from None


def _parse_bracket(content: str, recursive: bool, expr: str) -> Selector:
    content = content.strip()
    if not content:
        raise JsonPathError(f"Empty brackets in JSONPath: {expr}")
    if content.startswith("?") or content.startswith("("):
        raise JsonPathError(f"Filter and script expressions are not supported: {expr}")
    if content == "*":
        return Selector("wildcard", recursive=recursive)

    parts = _split_union(content)
    if all(len(p) >= 2 and p[0] == p[-1] and p[0] in "'\"" for p in parts):
        return Selector("names", tuple(p[1:-1] for p in parts), recursive)

    if len(parts) == 1 and ":" in content:
        bounds = content.split(":")
        if len(bounds) > 3:
            raise JsonPathError(f"Invalid slice in JSONPath: {expr}")
        values = [_parse_int(b, expr) if b.strip() else None for b in bounds]
        values += [None] * (3 - len(values))
        if values[2] == 0:
            raise JsonPathError(f"Slice step cannot be zero: {expr}")
        return Selector("slice", tuple(values), recursive)

    return Selector("indices", tuple(_parse_int(p, expr) for p in parts), recursive)


def _read_name(expr: str, pos: int) -> Tuple[str, int]:
    end = pos
    while end < len(expr) and expr[end] not in ".[":
        end += 1
    name = expr[pos:end].strip()
    if not name:
        raise JsonPathError(f"Missing member name at position {pos} in JSONPath: {expr}")
    return name, end


@lru_cache(maxsize=256)
def parse(expression: str) -> Tuple[Selector, ...]:
    """Compile ``expression`` into a tuple of selectors."""
    expr = (expression or "").strip()
    if not expr:
        raise JsonPathError("JSONPath expression cannot be empty")

    if expr.startswith("$"):
        pos = 1
    elif expr[0] in ".[":
        pos = 0
    else:
        expr = "$." + expr
        pos = 1

    selectors: List[Selector] = []
    while pos < len(expr):
        recursive = False
        if expr.startswith("..", pos):
            recursive = True
            pos += 2
        elif expr[pos] == ".":
            pos += 1
        elif expr[pos] != "[":
            raise JsonPathError(f"Unexpected character '{expr[pos]}' in JSONPath: {expr}")

        if pos >= len(expr):
            raise JsonPathError(f"JSONPath cannot end with '.': {expr}")

        if expr[pos] == "[":
            if not recursive and pos > 0 and expr[pos - 1] == ".":
                raise JsonPathError(f"Unexpected '.[' in JSONPath: {expr}")
            end = _find_closing_bracket(expr, pos + 1)
            selectors.append(_parse_bracket(expr[pos + 1 : end], recursive, expr))
            pos = end + 1
        elif expr[pos] == "*":
            selectors.append(Selector("wildcard", recursive=recursive))
            pos += 1
        else:
            name, pos = _read_name(expr, pos)
            selectors.append(Selector("names", (name,), recursive))

    return tuple(selectors)


def _children(node: Any) -> List[Any]:
    if isinstance(node, dict):
        return list(node.values())
    if isinstance(node, list):
        return list(node)
    return []


def _descendants(node: Any) -> Iterator[Any]:
    yield node
    for child in _children(node):
        yield from _descendants(child)


def _select(selector: Selector, node: Any) -> Iterator[Any]:
    if selector.kind == "wildcard":
        yield from _children(node)
    elif selector.kind == "names":
        for name in selector.args:
            if isinstance(node, dict):
                if name in node:
                    yield node[name]
            elif isinstance(node, list) and name.lstrip("-").isdigit():
                index = int(name)
                if -len(node) <= index < len(node):
                    yield node[index]
    elif selector.kind == "indices":
        if isinstance(node, list):
            for index in selector.args:
                if -len(node) <= index < len(node):
                    yield node[index]
    elif selector.kind == "slice":
        if isinstance(node, list):
            yield from node[slice(*selector.args)]


def find(expression: str, data: JSONValue) -> List[Any]:
    """Return every value matched by ``expression``, in document order."""
    nodes: List[Any] = [data]
    for selector in parse(expression):
        matched: List[Any] = []
        for node in nodes:
            candidates = _descendants(node) if selector.recursive else (node,)
            for candidate in candidates:
                matched.extend(_select(selector, candidate))
        nodes = matched
    return nodes


def query(expression: str, data: JSONValue) -> Any:
    """Evaluate ``expression`` and unwrap the result.

    Returns ``MISSING`` when nothing matches, the value itself for a single
    match and a list of values for several.
    """
    matches = find(expression, data)
    if not matches:
        return MISSING
    if len(matches) == 1:
        return matches[0]
    return matches
