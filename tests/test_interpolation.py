"""
Test cases for template interpolation
"""

import pytest

from bloatjack.errors import InterpolationError
from bloatjack.rules.interpolation import (
    ExpressionCompileError,
    SafeExpressionEvaluator,
    Span,
    SpanKind,
    format_value,
    interpolate,
    interpolate_map,
    tokenize,
)


class TestTokenize:
    """Test splitting templates into spans"""

    def test_plain_literal(self):
        assert tokenize("1024m") == [Span(SpanKind.LITERAL, "1024m")]

    def test_expression_with_suffix(self):
        assert tokenize("{peak_mem_mb * 2}m") == [
            Span(SpanKind.EXPRESSION, "peak_mem_mb * 2"),
            Span(SpanKind.LITERAL, "m"),
        ]

    def test_multiple_expressions(self):
        assert tokenize("-Xms{a}m -Xmx{b}m") == [
            Span(SpanKind.LITERAL, "-Xms"),
            Span(SpanKind.EXPRESSION, "a"),
            Span(SpanKind.LITERAL, "m -Xmx"),
            Span(SpanKind.EXPRESSION, "b"),
            Span(SpanKind.LITERAL, "m"),
        ]

    def test_empty_braces_stay_literal(self):
        assert tokenize("{}") == [Span(SpanKind.LITERAL, "{}")]

    def test_unclosed_brace_stays_literal(self):
        assert tokenize("value {x") == [Span(SpanKind.LITERAL, "value {x")]

    def test_empty_template(self):
        assert tokenize("") == []


class TestInterpolate:
    """Test expression substitution"""

    def test_no_expressions(self):
        assert interpolate("0.5", {}) == "0.5"

    def test_arithmetic_with_int_coercion(self):
        assert interpolate("{int(peak_mem_mb * 1.2)}m", {"peak_mem_mb": 1000}) == "1200m"

    def test_float_coercion(self):
        assert interpolate("{float(cores) / 4}", {"cores": 2}) == "0.5"

    def test_integral_float_renders_without_fraction(self):
        assert interpolate("{mem / 2}", {"mem": 1024}) == "512"

    def test_string_fact(self):
        assert interpolate("name={service_name}", {"service_name": "db"}) == "name=db"

    def test_conditional_expression(self):
        template = "{512 if peak_mem_mb < 256 else 1024}m"
        assert interpolate(template, {"peak_mem_mb": 100}) == "512m"
        assert interpolate(template, {"peak_mem_mb": 300}) == "1024m"

    def test_builtin_functions(self):
        facts = {"peak": 0.04}
        assert interpolate("{max(0.1, round(peak, 2))}", facts) == "0.1"
        assert interpolate("{ceil(1300 / 64) * 64}", facts) == "1344"

    def test_missing_fact_is_run_error(self):
        with pytest.raises(InterpolationError, match="run error"):
            interpolate("{missing + 1}", {})

    def test_syntax_error_is_compile_error(self):
        with pytest.raises(InterpolationError, match="compile error"):
            interpolate("{peak_mem_mb *}", {"peak_mem_mb": 1})

    def test_disallowed_syntax(self):
        """Attribute access and unknown calls never run"""
        with pytest.raises(InterpolationError):
            interpolate("{peak.__class__}", {"peak": 1})
        with pytest.raises(InterpolationError):
            interpolate("{open('x')}", {})

    def test_division_by_zero(self):
        with pytest.raises(InterpolationError):
            interpolate("{a / b}", {"a": 1, "b": 0})

    def test_first_failure_aborts_whole_template(self):
        """No partial substitution when a later span fails"""
        with pytest.raises(InterpolationError) as exc_info:
            interpolate("{a}-{nope}-{a}", {"a": 1})
        assert exc_info.value.expression == "nope"

    def test_deeply_nested_expression(self):
        """Nesting beyond the parser limits is an InterpolationError"""
        with pytest.raises(InterpolationError):
            interpolate("{" + "-" * 5000 + "1}", {})
        with pytest.raises(InterpolationError):
            interpolate("{" + "(" * 1000 + "1" + ")" * 1000 + "}", {})

    def test_huge_exponent_rejected(self):
        with pytest.raises(InterpolationError):
            interpolate("{10 ** 100000}", {})


class TestInterpolateMap:
    """Test Set/SetEnv map interpolation"""

    def test_all_keys(self):
        result = interpolate_map({"a": "{x}", "b": "static"}, {"x": 3})
        assert result == {"a": "3", "b": "static"}

    def test_any_failure_fails_map(self):
        with pytest.raises(InterpolationError):
            interpolate_map({"a": "{x}", "b": "{y}"}, {"x": 3})


class TestSafeExpressionEvaluator:
    """Test the default expression language"""

    def setup_method(self):
        self.evaluator = SafeExpressionEvaluator()

    def test_returns_native_values(self):
        assert self.evaluator.evaluate("a + 1", {"a": 1}) == 2
        assert self.evaluator.evaluate("a > 1 and b", {"a": 2, "b": "yes"}) == "yes"

    def test_compile_rejects_lambda(self):
        with pytest.raises(ExpressionCompileError):
            self.evaluator.compile("(lambda: 1)()")

    def test_custom_function_table(self):
        evaluator = SafeExpressionEvaluator(functions={"double": lambda v: v * 2})
        assert evaluator.evaluate("double(a)", {"a": 4}) == 8
        with pytest.raises(ExpressionCompileError):
            evaluator.compile("int(a)")


class TestFormatValue:
    """Test rendering of evaluated values"""

    def test_values(self):
        assert format_value(True) == "true"
        assert format_value(1024.0) == "1024"
        assert format_value(0.25) == "0.25"
        assert format_value(7) == "7"
        assert format_value("x") == "x"

    def test_large_floats_render_as_integers(self):
        assert format_value(1.5e17) == "150000000000000000"
        assert format_value(1e20) == "100000000000000000000"
        assert format_value(1e21) == "1e+21"
