"""Arithmetic calculator tool.

Expressions are parsed with ``ast`` and only numeric literals, arithmetic
operators and parentheses are evaluated; nothing is ``eval``-ed.
"""

from __future__ import annotations

import ast
import operator
from typing import Any, Callable

from pydantic import BaseModel, Field

from ollama_harness.tools.base import Tool

_BINARY_OPS: dict[type, Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPS: dict[type, Callable[[Any], Any]] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

# Integer results are capped at about 3900 decimal digits, below the
# interpreter's int-to-str conversion limit
_MAX_RESULT_BITS = 13_000


class CalcError(ValueError):
    """Expression is not plain arithmetic."""


def evaluate(expression: str) -> float | int:
    """Evaluate an arithmetic expression safely."""
    try:
        tree = ast.parse(expression.strip(), mode="eval")
    except SyntaxError as e:
        raise CalcError(f"invalid syntax: {e.msg}") from e
    return _eval_node(tree.body)


def _eval_node(node: ast.AST) -> float | int:
    if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)) \
            and not isinstance(node.value, bool):
        return node.value
    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPS:
        left = _eval_node(node.left)
        right = _eval_node(node.right)
        if isinstance(node.op, ast.Pow):
            _check_power(left, right)
        return _check_size(_BINARY_OPS[type(node.op)](left, right))
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        return _UNARY_OPS[type(node.op)](_eval_node(node.operand))
    raise CalcError(f"unsupported expression element: {type(node).__name__}")


def _check_power(base: float | int, exponent: float | int) -> None:
    """Reject integer powers whose result would exceed the size cap."""
    if not (isinstance(base, int) and isinstance(exponent, int)):
        return
    if exponent > 0 and abs(base) > 1 \
            and exponent * (abs(base).bit_length() - 1) > _MAX_RESULT_BITS:
        raise CalcError("result too large")


def _check_size(value: float | int) -> float | int:
    if isinstance(value, int) and value.bit_length() > _MAX_RESULT_BITS:
        raise CalcError("result too large")
    return value


class CalculatorParams(BaseModel):
    expression: str = Field(
        description=(
            "The mathematical expression to evaluate. Use `*` for "
            "multiplication, `**` for exponents, and parentheses for "
            "more complicated expressions."
        ),
    )


class Calculator(Tool):
    name = "calculator"
    description = (
        "Evaluates an arbitrary mathematical expression. "
        "Can only evaluate one expression at a time."
    )
    parameters = CalculatorParams

    async def call(self, params: CalculatorParams) -> str:
        try:
            return str(evaluate(params.expression))
        except (ValueError, ArithmeticError) as e:
            # Returned as text so the model can fix the expression
            return f"Calc evaluation error: {e}"
