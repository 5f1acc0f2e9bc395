"""
Condition evaluation for step gating.

A condition is either a single variable/literal (true when it resolves to a
non-empty string) or ``left OP right`` with OP one of ``>= <= != == > <``.
Numeric operands compare as floats; otherwise only ``==`` and ``!=`` are
defined and compare case-insensitively.
"""

import operator

from .variables import VariableStore

# Longer tokens first so ">=" is never split as ">" followed by "="
OPERATORS = (">=", "<=", "!=", "==", ">", "<")

_NUMERIC_OPS = {
    ">=": operator.ge,
    "<=": operator.le,
    "!=": operator.ne,
    "==": operator.eq,
    ">": operator.gt,
    "<": operator.lt,
}


def find_operator(condition: str) -> tuple[str, int] | None:
    """
    Find the comparison operator of a condition.

    Returns:
        Tuple of (operator, index of its first occurrence), or None
    """
    for op in OPERATORS:
        index = condition.find(op)
        if index >= 0:
            return op, index
    return None


def _to_float(value: str) -> float | None:
    try:
        return float(value)
    except ValueError:
        return None


def evaluate_condition(condition: str, variables: VariableStore) -> bool:
    """
    Decide whether a step should run.

    Args:
        condition: Raw condition text from the manifest
        variables: Variables used to resolve both operands

    Returns:
        True if the step should run
    """
    found = find_operator(condition)
    if found is None:
        return bool(variables.resolve(condition))

    op, index = found
    left = variables.resolve(condition[:index].strip())
    right = variables.resolve(condition[index + len(op) :].strip())

    left_num = _to_float(left)
    right_num = _to_float(right)
    if left_num is not None and right_num is not None:
        return _NUMERIC_OPS[op](left_num, right_num)

    if op == "==":
        return left.casefold() == right.casefold()
    if op == "!=":
        return left.casefold() != right.casefold()
    return False
