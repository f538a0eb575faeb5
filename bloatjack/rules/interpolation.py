"""
Template interpolation for rule outputs

Templates carry expressions in single braces, e.g. ``"{int(peak_mem_mb * 1.2)}m"``.
A template is split into literal and expression spans; each expression is
handed to an ExpressionEvaluator together with the fact bag.
"""

import ast
import logging
import math
import operator
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Protocol

from ..errors import InterpolationError

logger = logging.getLogger(__name__)


class SpanKind(str, Enum):
    """Types of template spans"""
    LITERAL = "literal"
    EXPRESSION = "expression"


class Span(NamedTuple):
    kind: SpanKind
    text: str


def tokenize(template: str) -> List[Span]:
    """Split a template into literal and expression spans.

    An expression is the non-empty text between a ``{`` and the next ``}``.
    Braces are not nested; ``{}`` and an unclosed ``{`` stay literal.
    """
    spans: List[Span] = []
    literal: List[str] = []
    pos = 0

    while pos < len(template):
        start = template.find("{", pos)
        if start == -1:
            literal.append(template[pos:])
            break

        end = template.find("}", start + 1)
        if end == -1:
            literal.append(template[pos:])
            break

        if end == start + 1:
            # "{}" has no expression, keep the opening brace and move on
            literal.append(template[pos:start + 1])
            pos = start + 1
            continue

        literal.append(template[pos:start])
        text = "".join(literal)
        if text:
            spans.append(Span(SpanKind.LITERAL, text))
        literal = []
        spans.append(Span(SpanKind.EXPRESSION, template[start + 1:end]))
        pos = end + 1

    text = "".join(literal)
    if text:
        spans.append(Span(SpanKind.LITERAL, text))
    return spans


class ExpressionEvaluator(Protocol):
    """Evaluates one embedded expression against a fact bag"""

    def evaluate(self, expression: str, facts: Mapping[str, Any]) -> Any:
        ...


class ExpressionCompileError(Exception):
    """Expression is not valid in the supported language"""


class ExpressionRuntimeError(Exception):
    """Expression compiled but failed while running"""


MAX_EXPONENT = 64


def _bounded_pow(base: Any, exponent: Any) -> Any:
    if isinstance(exponent, (int, float)) and abs(exponent) > MAX_EXPONENT:
        raise ExpressionRuntimeError(f"exponent {exponent} exceeds {MAX_EXPONENT}")
    return operator.pow(base, exponent)


_BINARY_OPS: Dict[type, Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: _bounded_pow,
}

_UNARY_OPS: Dict[type, Callable[[Any], Any]] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
    ast.Not: operator.not_,
}

_COMPARE_OPS: Dict[type, Callable[[Any, Any], bool]] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
}

DEFAULT_FUNCTIONS: Dict[str, Callable[..., Any]] = {
    "int": int,
    "float": float,
    "str": str,
    "abs": abs,
    "min": min,
    "max": max,
    "round": round,
    "ceil": math.ceil,
    "floor": math.floor,
}


class SafeExpressionEvaluator:
    """Arithmetic expression language over the fact bag.

    Supports numeric and string literals, fact names, arithmetic, unary
    operators, comparisons, ``and``/``or``, conditional expressions and
    calls to a fixed set of functions (``int`` and ``float`` coercions
    included). Anything else is a compile error.
    """

    def __init__(self, functions: Optional[Mapping[str, Callable[..., Any]]] = None):
        self.functions = dict(DEFAULT_FUNCTIONS if functions is None else functions)
        self._cache: Dict[str, ast.expr] = {}

    def compile(self, expression: str) -> ast.expr:
        """Parse an expression and reject unsupported syntax"""
        cached = self._cache.get(expression)
        if cached is not None:
            return cached

        try:
            tree = ast.parse(expression.strip(), mode="eval")
        except SyntaxError as e:
            raise ExpressionCompileError(f"syntax error: {e.msg}")
        except (RecursionError, MemoryError):
            raise ExpressionCompileError("expression is too deeply nested")

        for node in ast.walk(tree.body):
            self._check_node(node)

        self._cache[expression] = tree.body
        return tree.body

    def evaluate(self, expression: str, facts: Mapping[str, Any]) -> Any:
        node = self.compile(expression)
        try:
            return self._eval(node, facts)
        except ExpressionRuntimeError:
            raise
        except (ArithmeticError, TypeError, ValueError) as e:
            raise ExpressionRuntimeError(str(e))
        except (RecursionError, MemoryError):
            raise ExpressionRuntimeError("expression is too deeply nested")

    def _check_node(self, node: ast.AST) -> None:
        allowed = (
            ast.Constant, ast.Name, ast.Load, ast.BinOp, ast.UnaryOp,
            ast.BoolOp, ast.And, ast.Or, ast.Compare, ast.IfExp, ast.Call,
        )
        if isinstance(node, allowed):
            if isinstance(node, ast.Call):
                if not isinstance(node.func, ast.Name) or node.func.id not in self.functions:
                    raise ExpressionCompileError(f"unknown function in {ast.dump(node.func)}")
                if node.keywords:
                    raise ExpressionCompileError("keyword arguments are not supported")
            return
        if type(node) in _BINARY_OPS or type(node) in _UNARY_OPS or type(node) in _COMPARE_OPS:
            return
        raise ExpressionCompileError(f"unsupported syntax: {type(node).__name__}")

    def _eval(self, node: ast.expr, facts: Mapping[str, Any]) -> Any:
        if isinstance(node, ast.Constant):
            return node.value

        if isinstance(node, ast.Name):
            if node.id not in facts:
                raise ExpressionRuntimeError(f"unknown name {node.id}")
            return facts[node.id]

        if isinstance(node, ast.BinOp):
            left = self._eval(node.left, facts)
            right = self._eval(node.right, facts)
            return _BINARY_OPS[type(node.op)](left, right)

        if isinstance(node, ast.UnaryOp):
            return _UNARY_OPS[type(node.op)](self._eval(node.operand, facts))

        if isinstance(node, ast.BoolOp):
            result = None
            for value in node.values:
                result = self._eval(value, facts)
                if isinstance(node.op, ast.And) and not result:
                    return result
                if isinstance(node.op, ast.Or) and result:
                    return result
            return result

        if isinstance(node, ast.Compare):
            left = self._eval(node.left, facts)
            for op, comparator in zip(node.ops, node.comparators):
                right = self._eval(comparator, facts)
                if not _COMPARE_OPS[type(op)](left, right):
                    return False
                left = right
            return True

        if isinstance(node, ast.IfExp):
            if self._eval(node.test, facts):
                return self._eval(node.body, facts)
            return self._eval(node.orelse, facts)

        if isinstance(node, ast.Call):
            func = self.functions[node.func.id]
            args = [self._eval(arg, facts) for arg in node.args]
            return func(*args)

        raise ExpressionRuntimeError(f"cannot evaluate {type(node).__name__}")


def format_value(value: Any) -> str:
    """Render an evaluated expression for substitution into a template"""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    if value is None:
        return ""
    return str(value)


_default_evaluator = SafeExpressionEvaluator()


def interpolate(template: str, facts: Mapping[str, Any],
                evaluator: Optional[ExpressionEvaluator] = None) -> str:
    """Substitute every {expression} in a template.

    The first failing expression aborts the whole template with an
    InterpolationError; nothing is partially substituted.
    """
    evaluator = evaluator or _default_evaluator
    parts = []

    for span in tokenize(template):
        if span.kind == SpanKind.LITERAL:
            parts.append(span.text)
            continue

        try:
            value = evaluator.evaluate(span.text, facts)
        except ExpressionCompileError as e:
            raise InterpolationError(template, span.text, f"compile error: {e}")
        except ExpressionRuntimeError as e:
            raise InterpolationError(template, span.text, f"run error: {e}")
        except (ArithmeticError, TypeError, ValueError, KeyError, RecursionError) as e:
            # third-party evaluators may raise plain exceptions
            raise InterpolationError(template, span.text, str(e))

        logger.debug("Evaluated %r in %r to %r", span.text, template, value)
        parts.append(format_value(value))

    return "".join(parts)


def interpolate_map(templates: Mapping[str, str], facts: Mapping[str, Any],
                    evaluator: Optional[ExpressionEvaluator] = None) -> Dict[str, str]:
    """Interpolate every value of a Set/SetEnv map; any failure fails the map"""
    return {
        key: interpolate(template, facts, evaluator)
        for key, template in templates.items()
    }
