"""
credit_engines.expression -- Sandboxed arithmetic over named fact keys.

Responsibility:
    Evaluate data-driven metric formulas such as
    ``"cash + accountsReceivable + inventory"`` against a fact map, without
    any dynamic code execution.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Consumed by the metric
    graph and the credit snapshot builder.

Invariants enforced:
    - Closed grammar: whitespace-separated tokens, each a number, a fact
      key, or one of ``+ - * /``.  Nothing else is ever interpreted.
    - Standard precedence: a first left-to-right pass collapses ``*`` and
      ``/``, a second collapses ``+`` and ``-``.
    - Null propagation: an absent, null or non-finite fact yields a None
      operand and poisons every operation it touches.
    - Division by zero yields None, never an exception.
    - Arithmetic that leaves the Decimal range yields None with
      ``overflow=True``.

Failure modes:
    - Never raises.  Malformed expressions return ``value=None`` with
      ``error="INVALID_OP"``; empty expressions with
      ``error="EMPTY_EXPRESSION"``.
"""

from __future__ import annotations

import operator
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from credit_kernel.domain.values import to_decimal

_ARITHMETIC = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
}
OPERATORS = frozenset(_ARITHMETIC)

INVALID_OP = "INVALID_OP"
EMPTY_EXPRESSION = "EMPTY_EXPRESSION"


@dataclass(frozen=True)
class EvaluationResult:
    value: Decimal | None
    missing_inputs: tuple[str, ...] = ()
    divide_by_zero: bool = False
    overflow: bool = False
    error: str | None = None


def _parse_number(token: str) -> Decimal | None:
    if not token or not (token[0].isdigit() or token[0] in "-+."):
        return None
    try:
        number = Decimal(token)
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def tokenize(expr: str) -> list[str]:
    return expr.split()


def referenced_keys(expr: str) -> tuple[str, ...]:
    """Fact keys referenced by an expression, in first-seen order."""
    seen: list[str] = []
    for token in tokenize(expr or ""):
        if token in OPERATORS or _parse_number(token) is not None:
            continue
        if token not in seen:
            seen.append(token)
    return tuple(seen)


class _Evaluation:
    """Mutable scratch state for one evaluate() call."""

    def __init__(self) -> None:
        self.divide_by_zero = False
        self.overflow = False

    def apply(self, op: str, left: Decimal | None, right: Decimal | None) -> Decimal | None:
        if left is None or right is None:
            return None
        if op == "/" and right == 0:
            self.divide_by_zero = True
            return None
        try:
            return _ARITHMETIC[op](left, right)
        except ArithmeticError:
            self.overflow = True
            return None


def evaluate(expr: str, facts: Mapping[str, Any]) -> EvaluationResult:
    """
    Evaluate ``expr`` against ``facts``.

    Returns the value (None when undeterminable) and the fact keys that
    were missing.  Never raises and never returns NaN or Infinity.
    """
    tokens = tokenize(expr or "")
    if not tokens:
        return EvaluationResult(value=None, error=EMPTY_EXPRESSION)

    missing: list[str] = []
    operands: list[Decimal | None] = []
    operators: list[str] = []
    well_formed = len(tokens) % 2 == 1

    for position, token in enumerate(tokens):
        expects_operand = position % 2 == 0
        if token in OPERATORS:
            if expects_operand:
                well_formed = False
            operators.append(token)
            continue
        if not expects_operand:
            well_formed = False
        number = _parse_number(token)
        if number is None:
            number = to_decimal(facts.get(token))
            if number is None and token not in missing:
                missing.append(token)
        operands.append(number)

    if not well_formed or len(operands) != len(operators) + 1:
        return EvaluationResult(
            value=None, missing_inputs=tuple(missing), error=INVALID_OP
        )

    state = _Evaluation()

    # Pass 1: multiplicative operators, left to right
    values: list[Decimal | None] = [operands[0]]
    additive: list[str] = []
    for op, rhs in zip(operators, operands[1:]):
        if op in ("*", "/"):
            values[-1] = state.apply(op, values[-1], rhs)
        else:
            additive.append(op)
            values.append(rhs)

    # Pass 2: additive operators, left to right
    result = values[0]
    for op, rhs in zip(additive, values[1:]):
        result = state.apply(op, result, rhs)

    if result is not None and not result.is_finite():
        result = None

    return EvaluationResult(
        value=result,
        missing_inputs=tuple(missing),
        divide_by_zero=state.divide_by_zero,
        overflow=state.overflow,
    )


def evaluate_ratio(
    numerator_expr: str,
    denominator_expr: str,
    facts: Mapping[str, Any],
) -> EvaluationResult:
    """
    Evaluate ``numerator / denominator`` where each side is an expression.

    The grammar has no parentheses, so ratios over sums, such as
    ``(shortTermDebt + longTermDebt) / ebitda``, are evaluated as two
    expressions.  Missing inputs of both sides are reported.
    """
    numerator = evaluate(numerator_expr, facts)
    denominator = evaluate(denominator_expr, facts)
    missing = tuple(dict.fromkeys(numerator.missing_inputs + denominator.missing_inputs))
    error = numerator.error or denominator.error
    if numerator.value is None or denominator.value is None:
        return EvaluationResult(
            value=None,
            missing_inputs=missing,
            divide_by_zero=numerator.divide_by_zero or denominator.divide_by_zero,
            overflow=numerator.overflow or denominator.overflow,
            error=error,
        )
    if denominator.value == 0:
        return EvaluationResult(value=None, missing_inputs=missing, divide_by_zero=True)
    try:
        ratio = numerator.value / denominator.value
    except ArithmeticError:
        return EvaluationResult(value=None, missing_inputs=missing, overflow=True)
    return EvaluationResult(value=ratio, missing_inputs=missing)
