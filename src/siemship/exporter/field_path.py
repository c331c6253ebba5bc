# src/siemship/exporter/field_path.py
"""Field-path expressions that pull a string out of a log record.

Grammar (a strict subset of Python expression syntax)::

    path  := root accessor*
    root  := body | attributes | severity_text
           | resource.attributes
           | instrumentation_scope.attributes
           | instrumentation_scope.name
           | instrumentation_scope.version
    accessor := '[' string-literal ']' | '[' non-negative-int-literal ']'

Expressions are parsed with Python's ast module, checked against the
grammar and compiled into a small tagged tree (``Identifier`` /
``BracketIndex``). Parsing is cached, so evaluating the same configured
expression for every record costs one dictionary lookup.

Resolution rules:
- missing keys and out-of-range indexes resolve to ``""``
- string results pass through, map results become canonical JSON
- any other result kind is an evaluation error

The four well-known keys (``body`` and the three reserved routing
attributes) skip the parser entirely.
"""

from __future__ import annotations

import ast
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from siemship.contracts.records import RecordContext
from siemship.core.canonical import canonical_json

LOG_TYPE_FIELD = 'attributes["log_type"]'
CHRONICLE_LOG_TYPE_FIELD = 'attributes["chronicle_log_type"]'
CHRONICLE_NAMESPACE_FIELD = 'attributes["chronicle_namespace"]'

# Attribute keys read by the well-known field fast paths.
_FAST_ATTRIBUTE_KEYS: dict[str, str] = {
    LOG_TYPE_FIELD: "log_type",
    CHRONICLE_LOG_TYPE_FIELD: "chronicle_log_type",
    CHRONICLE_NAMESPACE_FIELD: "chronicle_namespace",
}


class FieldPathSyntaxError(Exception):
    """Raised when a field-path expression is malformed or names an unknown root."""


class FieldPathEvaluationError(Exception):
    """Raised when a well-formed expression cannot be evaluated against a record.

    Covers indexing into a value of the wrong kind and results that are
    neither strings, maps nor empty.
    """


class UnsupportedBodyError(FieldPathEvaluationError):
    """Raised when the ``body`` fast path meets a body that is not a string or map."""


_ROOTS: dict[str, Callable[[RecordContext], Any]] = {
    "body": lambda ctx: ctx.record.body,
    "attributes": lambda ctx: ctx.record.attributes,
    "severity_text": lambda ctx: ctx.record.severity_text,
    "resource.attributes": lambda ctx: ctx.resource.attributes,
    "instrumentation_scope.attributes": lambda ctx: ctx.scope.attributes,
    "instrumentation_scope.name": lambda ctx: ctx.scope.name,
    "instrumentation_scope.version": lambda ctx: ctx.scope.version,
}


@dataclass(frozen=True, slots=True)
class Identifier:
    """Root of a path, e.g. ``resource.attributes``."""

    name: str


@dataclass(frozen=True, slots=True)
class BracketIndex:
    """``target[key]`` where key is a string (map) or integer (list)."""

    target: PathNode
    key: str | int


PathNode = Identifier | BracketIndex


def _dotted_name(node: ast.expr) -> str | None:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        parent = _dotted_name(node.value)
        if parent is None:
            return None
        return f"{parent}.{node.attr}"
    return None


def _compile(node: ast.expr, expression: str) -> PathNode:
    if isinstance(node, ast.Subscript):
        index = node.slice
        if not isinstance(index, ast.Constant) or isinstance(index.value, bool) or not isinstance(index.value, str | int):
            raise FieldPathSyntaxError(f"Index in {expression!r} must be a string or integer literal")
        if isinstance(index.value, int) and index.value < 0:
            raise FieldPathSyntaxError(f"Index in {expression!r} must not be negative")
        return BracketIndex(target=_compile(node.value, expression), key=index.value)

    name = _dotted_name(node)
    if name is None:
        raise FieldPathSyntaxError(f"Unsupported construct in {expression!r}: {type(node).__name__}")
    if name not in _ROOTS:
        raise FieldPathSyntaxError(f"Unknown field {name!r} in {expression!r}; expected one of {sorted(_ROOTS)}")
    return Identifier(name=name)


@lru_cache(maxsize=256)
def parse_field_path(expression: str) -> PathNode:
    """Parse an expression into a path tree.

    Raises:
        FieldPathSyntaxError: If the expression is not valid syntax or uses
            anything besides a known root and literal index accessors
    """
    try:
        tree = ast.parse(expression.strip(), mode="eval")
    except SyntaxError as e:
        raise FieldPathSyntaxError(f"Invalid field path {expression!r}: {e.msg}") from e
    return _compile(tree.body, expression)


def evaluate(node: PathNode, context: RecordContext) -> Any:
    """Evaluate a path tree against a record.

    Returns the raw value, or ``None`` when a key or index is missing.

    Raises:
        FieldPathEvaluationError: If an accessor is applied to a value that
            cannot be indexed by it
    """
    if isinstance(node, Identifier):
        return _ROOTS[node.name](context)

    target = evaluate(node.target, context)
    if target is None:
        return None
    if isinstance(node.key, str):
        if not isinstance(target, Mapping):
            raise FieldPathEvaluationError(f"Cannot index {type(target).__name__} value with key {node.key!r}")
        return target.get(node.key)
    if not isinstance(target, list | tuple):
        raise FieldPathEvaluationError(f"Cannot index {type(target).__name__} value with position {node.key}")
    if node.key >= len(target):
        return None
    return target[node.key]


def _result_to_string(value: Any, expression: str) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping):
        return canonical_json(value)
    raise FieldPathEvaluationError(f"Unsupported {expression!r} result type: {type(value).__name__}")


def resolve_field(expression: str, context: RecordContext) -> str:
    """Resolve an expression against a record to a string.

    Args:
        expression: Field-path expression
        context: Record with its enclosing scope and resource

    Returns:
        Resolved string; ``""`` when the value is missing

    Raises:
        FieldPathSyntaxError: If the expression is malformed
        FieldPathEvaluationError: If evaluation fails or yields an
            unsupported result kind
        UnsupportedBodyError: If the expression is ``body`` and the body is
            neither a string nor a map
        ValueError: If a map result cannot be canonicalized
    """
    if expression == "body":
        body = context.record.body
        if body is None:
            return ""
        if isinstance(body, str):
            return body
        if isinstance(body, Mapping):
            return canonical_json(body)
        raise UnsupportedBodyError(f"Unsupported body type: {type(body).__name__}")

    attribute_key = _FAST_ATTRIBUTE_KEYS.get(expression)
    if attribute_key is not None:
        value = context.record.attributes.get(attribute_key)
        return value if isinstance(value, str) else ""

    return _result_to_string(evaluate(parse_field_path(expression), context), expression)
