"""Tests for direct and guided parameter collection."""

import pytest

from mcprobe.core.errors import (
    ErrorCategory,
    InputClosedError,
    ParameterCoercionError,
    ParameterError,
    RequiredParameterMissingError,
    classify_error,
)
from mcprobe.core.params import ParameterCollector, coerce_value, parse_direct_params
from mcprobe.core.schema import PropertySchema, parse_input_schema
from mcprobe.mcp.schema import ToolDescriptor

from conftest import ECHO_TOOL, make_console, output_of, scripted_session


# ---------------------------------------------------------------------------
# Direct path
# ---------------------------------------------------------------------------


class TestParseDirectParams:
    @pytest.mark.parametrize("raw", ["", "{}", "  {}  ", None])
    def test_empty_means_no_parameters(self, raw):
        assert parse_direct_params(raw) == {}

    def test_calculate_example_keeps_numeric_types(self):
        params = parse_direct_params('{"operation":"add","x":5,"y":3}')
        assert set(params) == {"operation", "x", "y"}
        assert params["operation"] == "add"
        assert isinstance(params["x"], int) and params["x"] == 5
        assert isinstance(params["y"], int) and params["y"] == 3

    def test_malformed_json(self):
        with pytest.raises(ParameterError) as exc_info:
            parse_direct_params('{"operation": add}')
        assert "failed to parse parameters JSON" in str(exc_info.value)
        assert classify_error(exc_info.value).category is ErrorCategory.PARAMETER_VALIDATION

    def test_non_object_json(self):
        with pytest.raises(ParameterError):
            parse_direct_params("[1, 2]")


# ---------------------------------------------------------------------------
# Coercion
# ---------------------------------------------------------------------------


class TestCoerceValue:
    def test_integer(self):
        value = coerce_value("n", PropertySchema(type="integer"), "7")
        assert value == 7
        assert isinstance(value, int)
        assert str(value) == "7"

    def test_integer_truncates(self):
        assert coerce_value("n", PropertySchema(type="integer"), "7.9") == 7

    def test_number_keeps_fraction(self):
        value = coerce_value("x", PropertySchema(type="number"), "7.5")
        assert value == 7.5
        assert isinstance(value, float)

    @pytest.mark.parametrize("raw", ["abc", "nan", "inf", "1,5"])
    def test_bad_number(self, raw):
        with pytest.raises(ParameterCoercionError) as exc_info:
            coerce_value("x", PropertySchema(type="number"), raw)
        assert classify_error(exc_info.value).category is ErrorCategory.PARAMETER_VALIDATION

    @pytest.mark.parametrize("raw", ["true", "TRUE", "Yes", "y", "1"])
    def test_truthy_booleans(self, raw):
        assert coerce_value("b", PropertySchema(type="boolean"), raw) is True

    @pytest.mark.parametrize("raw", ["false", "no", "0", "maybe", "tru"])
    def test_everything_else_is_false(self, raw):
        assert coerce_value("b", PropertySchema(type="boolean"), raw) is False

    def test_array_json(self):
        assert coerce_value("a", PropertySchema(type="array"), '["a","b"]') == ["a", "b"]

    def test_array_comma_fallback(self):
        assert coerce_value("a", PropertySchema(type="array"), "a,b,c") == ["a", "b", "c"]

    def test_array_non_list_json_falls_back(self):
        assert coerce_value("a", PropertySchema(type="array"), "5") == ["5"]

    def test_object(self):
        assert coerce_value("o", PropertySchema(type="object"), '{"k": 1}') == {"k": 1}

    @pytest.mark.parametrize("raw", ["k=1", "[1]", "{bad"])
    def test_object_rejects_non_objects(self, raw):
        with pytest.raises(ParameterCoercionError):
            coerce_value("o", PropertySchema(type="object"), raw)

    def test_string_verbatim(self):
        assert coerce_value("s", PropertySchema(), "  spaced [text] ") == "  spaced [text] "

    def test_enum_member(self):
        prop = PropertySchema(type="string", enum=("add", "sub"))
        assert coerce_value("op", prop, "sub") == "sub"

    def test_enum_violation(self):
        prop = PropertySchema(type="string", enum=("add", "sub"))
        with pytest.raises(ParameterCoercionError) as exc_info:
            coerce_value("op", prop, "mul")
        assert "add, sub" in str(exc_info.value)

    def test_untyped_enum_matches_printed_member(self):
        prop = parse_input_schema({"properties": {"level": {"enum": [1, 2, 3]}}}).properties["level"]
        assert prop.type == "string"
        assert coerce_value("level", prop, "1") == "1"
        with pytest.raises(ParameterCoercionError):
            coerce_value("level", prop, "4")

    def test_typed_enum_keeps_coerced_value(self):
        prop = PropertySchema(type="integer", enum=(1, 2, 3))
        assert coerce_value("level", prop, "2") == 2


# ---------------------------------------------------------------------------
# Guided path
# ---------------------------------------------------------------------------


def _tool(properties, required=()):
    return ToolDescriptor(
        name="t",
        input_schema={"type": "object", "properties": properties, "required": list(required)},
    )


class TestParameterCollector:
    def test_echo_scenario(self):
        console = make_console()
        collector = ParameterCollector(scripted_session("Hello\n", console))

        params = collector.collect(ECHO_TOOL)

        assert params == {"message": "Hello"}
        assert "message (text) [required] (type: string):" in output_of(console)

    def test_required_reprompts_once(self):
        console = make_console()
        collector = ParameterCollector(scripted_session("\nHi\n", console))

        assert collector.collect(ECHO_TOOL) == {"message": "Hi"}
        assert "This parameter is required" in output_of(console)
        assert output_of(console).count("message (text) [required] (type: string):") == 2

    def test_required_empty_twice_aborts(self):
        collector = ParameterCollector(scripted_session("\n\nnever read\n"))

        with pytest.raises(RequiredParameterMissingError) as exc_info:
            collector.collect(ECHO_TOOL)

        classified = classify_error(exc_info.value)
        assert classified.category is ErrorCategory.PARAMETER_VALIDATION_REQUIRED_MISSING

    def test_only_supplied_keys_present(self):
        tool = _tool(
            {
                "a": {"type": "string"},
                "b": {"type": "integer"},
                "c": {"type": "boolean"},
                "d": {"type": "string"},
            },
            required=["a", "c"],
        )
        collector = ParameterCollector(scripted_session("x\n\nyes\n\n"))

        params = collector.collect(tool)

        assert params == {"a": "x", "c": True}

    def test_declared_order(self):
        tool = _tool({"second": {"type": "integer"}, "first": {"type": "integer"}})
        params = ParameterCollector(scripted_session("2\n1\n")).collect(tool)
        assert list(params) == ["second", "first"]
        assert params == {"second": 2, "first": 1}

    def test_coercion_error_aborts(self):
        tool = _tool({"n": {"type": "number"}, "later": {"type": "string"}})
        with pytest.raises(ParameterCoercionError):
            ParameterCollector(scripted_session("abc\nunused\n")).collect(tool)

    def test_enum_without_type_is_callable(self):
        tool = _tool({"level": {"enum": [1, 2, 3]}}, required=["level"])
        console = make_console()

        params = ParameterCollector(scripted_session("1\n", console)).collect(tool)

        assert params == {"level": "1"}
        assert "choices: 1, 2, 3" in output_of(console)

    def test_enum_violation_aborts(self):
        tool = _tool({"op": {"type": "string", "enum": ["add", "sub"]}, "later": {"type": "string"}})
        with pytest.raises(ParameterCoercionError):
            ParameterCollector(scripted_session("mul\nunused\n")).collect(tool)

    @pytest.mark.parametrize("raw_schema", [None, {}, {"type": "object"}, "junk"])
    def test_free_form_empty_input(self, raw_schema):
        tool = ToolDescriptor(name="bare", input_schema=raw_schema)
        assert ParameterCollector(scripted_session("\n")).collect(tool) == {}

    def test_free_form_json(self):
        tool = ToolDescriptor(name="bare")
        params = ParameterCollector(scripted_session('{"a": 1}\n')).collect(tool)
        assert params == {"a": 1}

    def test_free_form_rejects_bad_json(self):
        tool = ToolDescriptor(name="bare")
        with pytest.raises(ParameterError):
            ParameterCollector(scripted_session("not json\n")).collect(tool)

    def test_end_of_input_is_not_partial_success(self):
        tool = _tool({"a": {"type": "string"}, "b": {"type": "string"}})
        with pytest.raises(InputClosedError):
            ParameterCollector(scripted_session("only-a\n")).collect(tool)

    def test_accepts_schema_node(self):
        schema = parse_input_schema({"properties": {"flag": {"type": "boolean"}}})
        assert ParameterCollector(scripted_session("n\n")).collect(schema) == {"flag": False}

    def test_prompt_format(self):
        prompt = ParameterCollector.prompt_for("limit", PropertySchema(type="integer"), False)
        assert prompt == "  limit [optional] (type: integer): "
