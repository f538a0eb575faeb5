"""
Single-comparison condition evaluator for rule `if` clauses
"""

import operator
from typing import Any, Mapping

from ..errors import ConditionError

# Two-character operators come first so ">=" is never read as ">"
OPERATORS = (
    (">=", operator.ge),
    ("<=", operator.le),
    (">", operator.gt),
    ("<", operator.lt),
    ("==", operator.eq),
    ("!=", operator.ne),
)


def to_number(value: Any) -> float:
    """Coerce a fact value to float.

    Integers and floats pass through, strings are parsed, anything else
    (including booleans) is rejected.
    """
    if isinstance(value, bool):
        raise TypeError(f"unsupported fact type {type(value).__name__}")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        if "_" in value:
            raise ValueError(f"could not convert string to float: {value!r}")
        return float(value.strip())
    raise TypeError(f"unsupported fact type {type(value).__name__}")


def evaluate(condition: str, facts: Mapping[str, Any]) -> bool:
    """Evaluate `<fact> <op> <number>` against a fact bag.

    Raises ConditionError when the operator is missing, the fact is absent
    or not numeric, or the literal does not parse.
    """
    text = condition.strip()

    for symbol, compare in OPERATORS:
        if symbol in text:
            break
    else:
        raise ConditionError(condition, "unsupported condition format")

    parts = text.split(symbol)
    if len(parts) != 2:
        raise ConditionError(condition, "invalid condition format")

    key = parts[0].strip()
    literal = parts[1].strip()

    if key not in facts:
        raise ConditionError(condition, f"metric not found: {key}")

    # float() also takes digit separators, which are not part of the grammar
    if "_" in literal:
        raise ConditionError(condition, f"invalid comparison value: {literal}")
    try:
        right = float(literal)
    except ValueError:
        raise ConditionError(condition, f"invalid comparison value: {literal}")

    try:
        left = to_number(facts[key])
    except (TypeError, ValueError) as e:
        raise ConditionError(condition, f"cannot convert {key} to number ({e})")

    return compare(left, right)
