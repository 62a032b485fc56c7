"""foldcc.folding

Operator table and signed 32-bit evaluation used for constant folding.
"""

from __future__ import annotations

from typing import Dict

from foldcc.errors import ConstantFoldError


INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1

# Binary operator precedence, higher binds tighter. All are left associative.
PRECEDENCE: Dict[str, int] = {
    "*": 10, "/": 10, "%": 10,
    "+": 9, "-": 9,
    "<<": 8, ">>": 8,
    "<": 7, "<=": 7, ">": 7, ">=": 7,
    "==": 6, "!=": 6,
    "&": 5,
    "^": 4,
    "|": 3,
    "&&": 2,
    "||": 1,
}

# Compound assignment operator -> underlying binary operator.
COMPOUND_OPERATORS: Dict[str, str] = {
    "+=": "+",
    "-=": "-",
    "*=": "*",
    "/=": "/",
    "%=": "%",
    "<<=": "<<",
    ">>=": ">>",
}


def wrap_int32(value: int) -> int:
    """Reduce an arbitrary Python int to two's-complement 32-bit."""
    value &= 0xFFFFFFFF
    if value > INT32_MAX:
        value -= 2**32
    return value


def _c_div(left: int, right: int) -> int:
    # C truncates toward zero; Python floors.
    q = abs(left) // abs(right)
    return -q if (left < 0) != (right < 0) else q


def apply_operator(op: str, left: int, right: int, line: int = 0, column: int = 0) -> int:
    """Evaluate ``left op right`` with C int semantics.

    Division and modulo by zero raise ConstantFoldError at the operator's
    position. Shift counts use their low five bits, as x86 does.
    """
    if op == "+":
        return wrap_int32(left + right)
    if op == "-":
        return wrap_int32(left - right)
    if op == "*":
        return wrap_int32(left * right)
    if op in ("/", "%"):
        if right == 0:
            what = "Division" if op == "/" else "Modulo"
            raise ConstantFoldError(f"{what} by zero", line, column)
        q = _c_div(left, right)
        if op == "/":
            return wrap_int32(q)
        return wrap_int32(left - right * q)
    if op == "<<":
        return wrap_int32(left << (right & 31))
    if op == ">>":
        return wrap_int32(left >> (right & 31))
    if op == "&":
        return wrap_int32(left & right)
    if op == "|":
        return wrap_int32(left | right)
    if op == "^":
        return wrap_int32(left ^ right)
    if op == "==":
        return int(left == right)
    if op == "!=":
        return int(left != right)
    if op == "<":
        return int(left < right)
    if op == "<=":
        return int(left <= right)
    if op == ">":
        return int(left > right)
    if op == ">=":
        return int(left >= right)
    if op == "&&":
        return int(left != 0 and right != 0)
    if op == "||":
        return int(left != 0 or right != 0)
    raise ConstantFoldError(f"Unknown operator '{op}'", line, column)
