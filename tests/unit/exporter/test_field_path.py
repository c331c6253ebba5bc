# tests/unit/exporter/test_field_path.py
"""Tests for field-path parsing and resolution.

Tests cover:
- Fast paths for body and the reserved routing attributes
- Parsing: accepted roots, literal accessors, rejected constructs
- Evaluation: missing keys, lists, type mismatches
- Result conversion: strings, maps (canonical JSON), unsupported kinds
"""

import pytest

from siemship.exporter.field_path import (
    BracketIndex,
    FieldPathEvaluationError,
    FieldPathSyntaxError,
    Identifier,
    UnsupportedBodyError,
    evaluate,
    parse_field_path,
    resolve_field,
)
from tests.fixtures.factories import make_context, make_record

# =============================================================================
# Fast Paths
# =============================================================================


class TestBodyFastPath:
    """Tests for the exact ``body`` expression."""

    def test_string_body_returned_verbatim(self) -> None:
        context = make_context(make_record(body="  raw line with spaces  "))
        assert resolve_field("body", context) == "  raw line with spaces  "

    def test_map_body_is_canonical_json(self) -> None:
        context = make_context(make_record(body={"b": 2, "a": {"z": "1", "y": True}}))
        assert resolve_field("body", context) == '{"a":{"y":true,"z":"1"},"b":2}'

    def test_empty_body_resolves_to_empty_string(self) -> None:
        context = make_context(make_record(body=None))
        assert resolve_field("body", context) == ""

    @pytest.mark.parametrize("body", [42, 1.5, True, [1, 2], b"bytes"])
    def test_other_body_kinds_raise_unsupported(self, body: object) -> None:
        context = make_context(make_record(body=body))
        with pytest.raises(UnsupportedBodyError, match="Unsupported body type"):
            resolve_field("body", context)

    def test_unsupported_body_is_an_evaluation_error(self) -> None:
        assert issubclass(UnsupportedBodyError, FieldPathEvaluationError)


class TestReservedAttributeFastPaths:
    """Tests for the three reserved routing attribute expressions."""

    @pytest.mark.parametrize(
        ("expression", "key"),
        [
            ('attributes["log_type"]', "log_type"),
            ('attributes["chronicle_log_type"]', "chronicle_log_type"),
            ('attributes["chronicle_namespace"]', "chronicle_namespace"),
        ],
    )
    def test_string_value_returned(self, expression: str, key: str) -> None:
        context = make_context(make_record(attributes={key: "value-1"}))
        assert resolve_field(expression, context) == "value-1"

    def test_missing_attribute_is_empty(self) -> None:
        context = make_context(make_record(attributes={}))
        assert resolve_field('attributes["chronicle_log_type"]', context) == ""

    def test_non_string_value_is_empty(self) -> None:
        """A reserved attribute holding a number is treated as unset."""
        context = make_context(make_record(attributes={"chronicle_namespace": 7}))
        assert resolve_field('attributes["chronicle_namespace"]', context) == ""


# =============================================================================
# Parsing
# =============================================================================


class TestParseFieldPath:
    """Tests for expression parsing."""

    @pytest.mark.parametrize(
        "root",
        [
            "body",
            "attributes",
            "severity_text",
            "resource.attributes",
            "instrumentation_scope.attributes",
            "instrumentation_scope.name",
            "instrumentation_scope.version",
        ],
    )
    def test_known_roots(self, root: str) -> None:
        assert parse_field_path(root) == Identifier(name=root)

    def test_nested_accessors(self) -> None:
        node = parse_field_path('resource.attributes["host"]["name"]')
        assert node == BracketIndex(
            target=BracketIndex(target=Identifier(name="resource.attributes"), key="host"),
            key="name",
        )

    def test_integer_accessor(self) -> None:
        node = parse_field_path('body["items"][0]')
        assert node == BracketIndex(target=BracketIndex(target=Identifier(name="body"), key="items"), key=0)

    def test_single_quotes_accepted(self) -> None:
        assert parse_field_path("attributes['k']") == parse_field_path('attributes["k"]')

    def test_surrounding_whitespace_ignored(self) -> None:
        assert parse_field_path('  attributes["k"]  ') == BracketIndex(target=Identifier(name="attributes"), key="k")

    @pytest.mark.parametrize(
        "expression",
        [
            "unknown",
            'resource["x"]',
            "resource.name",
            'span.attributes["x"]',
        ],
    )
    def test_unknown_root_rejected(self, expression: str) -> None:
        with pytest.raises(FieldPathSyntaxError, match="Unknown field"):
            parse_field_path(expression)

    @pytest.mark.parametrize(
        "expression",
        [
            'attributes["unterminated',
            "attributes[",
            "",
        ],
    )
    def test_malformed_syntax_rejected(self, expression: str) -> None:
        with pytest.raises(FieldPathSyntaxError, match="Invalid field path"):
            parse_field_path(expression)

    @pytest.mark.parametrize(
        "expression",
        [
            "attributes[key]",
            "attributes[1:2]",
            "attributes[True]",
            "attributes[1.5]",
        ],
    )
    def test_non_literal_accessor_rejected(self, expression: str) -> None:
        with pytest.raises(FieldPathSyntaxError, match="string or integer literal"):
            parse_field_path(expression)

    def test_negative_index_rejected(self) -> None:
        with pytest.raises(FieldPathSyntaxError):
            parse_field_path("body[-1]")

    @pytest.mark.parametrize("expression", ['body + "x"', "len(body)", 'attributes.get("k")'])
    def test_other_constructs_rejected(self, expression: str) -> None:
        with pytest.raises(FieldPathSyntaxError):
            parse_field_path(expression)


# =============================================================================
# Evaluation
# =============================================================================


class TestEvaluate:
    """Tests for evaluating path trees against records."""

    def test_missing_key_is_none(self) -> None:
        context = make_context(make_record(attributes={"a": "1"}))
        assert evaluate(parse_field_path('attributes["b"]'), context) is None

    def test_missing_intermediate_key_is_none(self) -> None:
        context = make_context(make_record(attributes={}))
        assert evaluate(parse_field_path('attributes["a"]["b"]'), context) is None

    def test_list_index_in_range(self) -> None:
        context = make_context(make_record(body={"items": ["x", "y"]}))
        assert evaluate(parse_field_path('body["items"][1]'), context) == "y"

    def test_list_index_out_of_range_is_none(self) -> None:
        context = make_context(make_record(body={"items": ["x"]}))
        assert evaluate(parse_field_path('body["items"][5]'), context) is None

    def test_key_on_string_raises(self) -> None:
        context = make_context(make_record(body="plain"))
        with pytest.raises(FieldPathEvaluationError, match="Cannot index str"):
            evaluate(parse_field_path('body["k"]'), context)

    def test_index_on_map_raises(self) -> None:
        context = make_context(make_record(attributes={"k": "v"}))
        with pytest.raises(FieldPathEvaluationError, match="position 0"):
            evaluate(parse_field_path("attributes[0]"), context)

    def test_scope_and_resource_roots(self) -> None:
        context = make_context(
            make_record(severity_text="ERROR"),
            resource_attributes={"host.name": "web-1"},
            scope_name="my.scope",
            scope_version="1.2.3",
            scope_attributes={"team": "core"},
        )
        assert evaluate(parse_field_path('resource.attributes["host.name"]'), context) == "web-1"
        assert evaluate(parse_field_path("instrumentation_scope.name"), context) == "my.scope"
        assert evaluate(parse_field_path("instrumentation_scope.version"), context) == "1.2.3"
        assert evaluate(parse_field_path('instrumentation_scope.attributes["team"]'), context) == "core"
        assert evaluate(parse_field_path("severity_text"), context) == "ERROR"


class TestResolveField:
    """Tests for resolving general expressions to strings."""

    def test_string_result(self) -> None:
        context = make_context(make_record(attributes={"message": "hello"}))
        assert resolve_field('attributes["message"]', context) == "hello"

    def test_map_result_is_canonical_json(self) -> None:
        context = make_context(make_record(attributes={"k1": "v1", "k2": "v2"}))
        assert resolve_field("attributes", context) == '{"k1":"v1","k2":"v2"}'

    def test_missing_result_is_empty(self) -> None:
        context = make_context(make_record(attributes={}))
        assert resolve_field('attributes["absent"]', context) == ""

    @pytest.mark.parametrize("value", [12, 3.5, False, ["a"]])
    def test_unsupported_result_kind_raises(self, value: object) -> None:
        context = make_context(make_record(attributes={"value": value}))
        with pytest.raises(FieldPathEvaluationError, match="result type"):
            resolve_field('attributes["value"]', context)

    def test_non_fast_path_body_expression_uses_evaluator(self) -> None:
        context = make_context(make_record(body={"message": "inner"}))
        assert resolve_field('body["message"]', context) == "inner"

    def test_resource_attribute_map_result(self) -> None:
        context = make_context(make_record(), resource_attributes={"service": {"name": "api"}})
        assert resolve_field('resource.attributes["service"]', context) == '{"name":"api"}'
