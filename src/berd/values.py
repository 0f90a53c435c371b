"""Runtime values produced by the evaluator."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum, auto
from typing import ClassVar, Union


class ValueKind(Enum):
    NULL = auto()
    UNDEFINED = auto()
    BOOLEAN = auto()
    NUMBER = auto()
    STRING = auto()


@dataclass(frozen=True)
class NullValue:
    kind: ClassVar[ValueKind] = ValueKind.NULL
    value: None = None


@dataclass(frozen=True)
class UndefinedValue:
    kind: ClassVar[ValueKind] = ValueKind.UNDEFINED
    value: None = None


@dataclass(frozen=True)
class BooleanValue:
    value: bool
    kind: ClassVar[ValueKind] = ValueKind.BOOLEAN


@dataclass(frozen=True)
class NumberValue:
    value: float
    kind: ClassVar[ValueKind] = ValueKind.NUMBER


@dataclass(frozen=True)
class StringValue:
    value: str
    kind: ClassVar[ValueKind] = ValueKind.STRING


RuntimeValue = Union[NullValue, UndefinedValue, BooleanValue, NumberValue, StringValue]

NULL = NullValue()
UNDEFINED = UndefinedValue()
TRUE = BooleanValue(True)
FALSE = BooleanValue(False)


def format_number(n: float) -> str:
    """Format a number the way JavaScript's ``String()`` does.

    Python's ``repr`` already yields the shortest round-tripping digits;
    only the placement of the decimal point and the exponent style differ.
    Plain notation is used for magnitudes in ``[1e-6, 1e21)``.
    """
    n = float(n)
    if math.isnan(n):
        return "NaN"
    if math.isinf(n):
        return "Infinity" if n > 0 else "-Infinity"
    if n == 0:
        return "0"

    sign = "-" if n < 0 else ""
    mantissa, _, exp = repr(abs(n)).partition("e")
    whole, _, frac = mantissa.partition(".")
    raw = whole + frac
    digits = raw.lstrip("0")
    # position of the decimal point relative to the first significant digit
    point = len(whole) + (int(exp) if exp else 0) - (len(raw) - len(digits))
    digits = digits.rstrip("0")
    k = len(digits)

    if k <= point <= 21:
        text = digits + "0" * (point - k)
    elif 0 < point <= 21:
        text = f"{digits[:point]}.{digits[point:]}"
    elif -6 < point <= 0:
        text = "0." + "0" * -point + digits
    else:
        e = point - 1
        head = digits[0] + (f".{digits[1:]}" if k > 1 else "")
        text = f"{head}e{'+' if e >= 0 else '-'}{abs(e)}"
    return sign + text


def display(value: RuntimeValue) -> str:
    match value:
        case NullValue():
            return "null"
        case UndefinedValue():
            return "undefined"
        case BooleanValue(value=b):
            return "true" if b else "false"
        case NumberValue(value=n):
            return format_number(n)
        case StringValue(value=s):
            return s
    raise TypeError(f"not a runtime value: {value!r}")
