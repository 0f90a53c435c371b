"""Tree-walking evaluator for Berd programs.

``Interpreter.evaluate`` dispatches on the node's ``NodeKind`` through a
table built per instance. Constructs that parse but are not executable yet
are registered too: they leave a ``W300`` warning and evaluate to null,
whereas a node kind with no entry at all stops the run with ``E300``.

Operators follow JavaScript: loose and strict equality, ``+`` concatenating
when either side is a string, and 32-bit integer bitwise operations.
"""

from __future__ import annotations

import math
import re
from typing import Any, Callable

from berd.ast_nodes import (
    AssignmentExpression,
    BinaryExpression,
    BlockStatement,
    ExpressionStatement,
    IfStatement,
    Node,
    NodeKind,
    NumberExpression,
    PrefixExpression,
    StringExpression,
    SymbolExpression,
    VariableDeclarationStatement,
)
from berd.environment import Environment, ScopeError
from berd.errors import Diagnostic, DiagnosticLabel, FatalError, Severity
from berd.source import Span
from berd.tokens import (
    ARITHMETIC_KINDS,
    BITWISE_KINDS,
    EQUALITY_KINDS,
    RELATIONAL_KINDS,
    TokenKind,
)
from berd.values import (
    NULL,
    BooleanValue,
    NullValue,
    NumberValue,
    RuntimeValue,
    StringValue,
    UndefinedValue,
    display,
)

Number = float

# ── Coercions ────────────────────────────────────────────────────

_NUMERIC = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")
_INFINITIES = {"Infinity": math.inf, "+Infinity": math.inf, "-Infinity": -math.inf}


def _parse_number(text: str) -> Number:
    text = text.strip()
    if not text:
        return 0.0
    if text in _INFINITIES:
        return _INFINITIES[text]
    if not _NUMERIC.fullmatch(text):
        return math.nan
    # float() saturates to +-inf instead of raising on huge inputs
    return float(text)


def to_number(value: RuntimeValue) -> Number:
    match value:
        case NullValue():
            return 0.0
        case UndefinedValue():
            return math.nan
        case BooleanValue(value=b):
            return float(b)
        case NumberValue(value=n):
            return float(n)
        case StringValue(value=s):
            return _parse_number(s)
    raise TypeError(f"not a runtime value: {value!r}")


def _wrap_int32(n: int) -> int:
    n &= 0xFFFFFFFF
    return n - 0x100000000 if n & 0x80000000 else n


def to_int32(value: RuntimeValue) -> int:
    n = to_number(value)
    if math.isnan(n) or math.isinf(n):
        return 0
    return _wrap_int32(int(n))


def is_truthy(value: RuntimeValue) -> bool:
    match value:
        case NullValue() | UndefinedValue():
            return False
        case BooleanValue(value=b):
            return b
        case NumberValue(value=n):
            return n != 0 and not math.isnan(n)
        case StringValue(value=s):
            return s != ""
    return True


# ── Operators ────────────────────────────────────────────────────


def _is_nullish(value: RuntimeValue) -> bool:
    return isinstance(value, (NullValue, UndefinedValue))


def loose_equals(a: RuntimeValue, b: RuntimeValue) -> bool:
    if _is_nullish(a) or _is_nullish(b):
        return _is_nullish(a) and _is_nullish(b)
    if type(a) is type(b):
        return a.value == b.value
    if isinstance(a, BooleanValue):
        return loose_equals(NumberValue(int(a.value)), b)
    if isinstance(b, BooleanValue):
        return loose_equals(a, NumberValue(int(b.value)))
    return to_number(a) == to_number(b)


def strict_equals(a: RuntimeValue, b: RuntimeValue) -> bool:
    return type(a) is type(b) and a.value == b.value


def _relational(kind: TokenKind, a: RuntimeValue, b: RuntimeValue) -> bool:
    if isinstance(a, StringValue) and isinstance(b, StringValue):
        x, y = a.value, b.value
    else:
        x, y = to_number(a), to_number(b)
    match kind:
        case TokenKind.SMALLER:
            return x < y
        case TokenKind.GREATER:
            return x > y
        case TokenKind.SMALLER_EQ:
            return x <= y
        case TokenKind.GREATER_EQ:
            return x >= y
    raise ValueError(f"not a relational operator: {kind.name}")


def _divide(x: Number, y: Number) -> Number:
    if y == 0:
        if x == 0 or math.isnan(x):
            return math.nan
        return math.copysign(math.inf, x) * math.copysign(1, y)
    return x / y


def _modulo(x: Number, y: Number) -> Number:
    if y == 0 or math.isnan(x) or math.isinf(x) or math.isnan(y):
        return math.nan
    return math.fmod(x, y)


def _is_odd_integer(n: Number) -> bool:
    return n.is_integer() and n % 2 == 1


def _power(x: Number, y: Number) -> Number:
    if math.isnan(y) or (abs(x) == 1 and math.isinf(y)):
        return math.nan
    try:
        r = x ** y
    except ZeroDivisionError:
        # zero to a negative power
        return math.copysign(math.inf, x) if _is_odd_integer(y) else math.inf
    except OverflowError:
        return -math.inf if x < 0 and _is_odd_integer(y) else math.inf
    if isinstance(r, complex):
        return math.nan
    return r


def _arithmetic(kind: TokenKind, a: RuntimeValue, b: RuntimeValue) -> RuntimeValue:
    if kind is TokenKind.ADD and (isinstance(a, StringValue) or isinstance(b, StringValue)):
        return StringValue(display(a) + display(b))
    x, y = to_number(a), to_number(b)
    match kind:
        case TokenKind.ADD:
            return NumberValue(x + y)
        case TokenKind.SUBTRACT:
            return NumberValue(x - y)
        case TokenKind.MULTIPLY:
            return NumberValue(x * y)
        case TokenKind.DIVIDE:
            return NumberValue(_divide(x, y))
        case TokenKind.MODULO:
            return NumberValue(_modulo(x, y))
        case TokenKind.EXPONENT:
            return NumberValue(_power(x, y))
    raise ValueError(f"not an arithmetic operator: {kind.name}")


def _bitwise(kind: TokenKind, a: RuntimeValue, b: RuntimeValue) -> NumberValue:
    x, y = to_int32(a), to_int32(b)
    shift = y & 0x1F
    match kind:
        case TokenKind.BITWISE_AND:
            r = _wrap_int32(x & y)
        case TokenKind.BITWISE_OR:
            r = _wrap_int32(x | y)
        case TokenKind.BITWISE_XOR:
            r = _wrap_int32(x ^ y)
        case TokenKind.BIT_SHIFT_LEFT | TokenKind.BIT_SHIFT_UNSIGNED_LEFT:
            r = _wrap_int32(x << shift)
        case TokenKind.BIT_SHIFT_RIGHT:
            r = x >> shift
        case TokenKind.BIT_SHIFT_UNSIGNED_RIGHT:
            r = (x & 0xFFFFFFFF) >> shift
        case _:
            raise ValueError(f"not a bitwise operator: {kind.name}")
    return NumberValue(float(r))


# ── Evaluator ────────────────────────────────────────────────────


class Interpreter:
    """Evaluates an AST against a scope chain."""

    def __init__(self) -> None:
        self.diagnostics: list[Diagnostic] = []
        self._eval_lu: dict[NodeKind, Callable[[Any, Environment], RuntimeValue]] = {
            NodeKind.EXPRESSION_STATEMENT: self._eval_expression_statement,
            NodeKind.BLOCK_STATEMENT: self._eval_block,
            NodeKind.VARIABLE_DECLARATION_STATEMENT: self._eval_variable_declaration,
            NodeKind.IF_STATEMENT: self._eval_if,
            NodeKind.ASSIGNMENT_EXPRESSION: self._eval_assignment,
            NodeKind.PREFIX_EXPRESSION: self._eval_prefix,
            NodeKind.BINARY_EXPRESSION: self._eval_binary,
            NodeKind.NUMBER_EXPRESSION: self._eval_number,
            NodeKind.STRING_EXPRESSION: self._eval_string,
            NodeKind.SYMBOL_EXPRESSION: self._eval_symbol,
            # Parsed, but not executable yet.
            NodeKind.FUNCTION_DECLARATION_STATEMENT: self._under_construction,
            NodeKind.RETURN_STATEMENT: self._under_construction,
            NodeKind.WHEN_STATEMENT: self._under_construction,
            NodeKind.STATE_EXPRESSION: self._under_construction,
            NodeKind.CALL_EXPRESSION: self._under_construction,
            NodeKind.END_OF_INPUT_STATEMENT: self._under_construction,
            NodeKind.END_OF_BLOCK_STATEMENT: self._under_construction,
        }

    def evaluate(self, node: Node, env: Environment) -> RuntimeValue:
        handler = self._eval_lu.get(node.kind)
        if handler is None:
            raise self._error(
                "E300",
                f"this AST node type ({node.kind_name}) has not been set up for interpretation",
                node.span,
            )
        return handler(node, env)

    # ── Diagnostics ──────────────────────────────────────────────

    def _error(self, code: str, message: str, span: Span) -> FatalError:
        self.diagnostics.append(
            Diagnostic(
                severity=Severity.ERROR,
                code=code,
                message=message,
                labels=[DiagnosticLabel(span)],
            )
        )
        return FatalError(self.diagnostics)

    def _warn_unsupported(self, message: str, span: Span) -> RuntimeValue:
        self.diagnostics.append(
            Diagnostic(
                severity=Severity.WARNING,
                code="W300",
                message=message,
                labels=[DiagnosticLabel(span)],
            )
        )
        return NULL

    def _under_construction(self, node: Node, env: Environment) -> RuntimeValue:
        return self._warn_unsupported(
            f"This AST node type ({node.kind_name}) is under construction.", node.span
        )

    # ── Statements ───────────────────────────────────────────────

    def _eval_expression_statement(self, node: ExpressionStatement, env: Environment) -> RuntimeValue:
        return self.evaluate(node.expression, env)

    def _eval_block(self, node: BlockStatement, env: Environment) -> RuntimeValue:
        result: RuntimeValue = NULL
        for stmt in node.body:
            result = self.evaluate(stmt, env)
        return result

    def _eval_variable_declaration(self, node: VariableDeclarationStatement,
                                   env: Environment) -> RuntimeValue:
        value = self.evaluate(node.value, env) if node.value is not None else None
        try:
            return env.declare(node.identifier, node.modifiers, value, node.lifetime)
        except ScopeError as e:
            raise self._error("E302", str(e), node.span) from e

    def _eval_if(self, node: IfStatement, env: Environment) -> RuntimeValue:
        if is_truthy(self.evaluate(node.test, env)):
            return self.evaluate(node.consequent, env)
        if node.alternate is not None:
            return self.evaluate(node.alternate, env)
        return NULL

    # ── Expressions ──────────────────────────────────────────────

    def _eval_number(self, node: NumberExpression, env: Environment) -> RuntimeValue:
        return NumberValue(float(node.value))

    def _eval_string(self, node: StringExpression, env: Environment) -> RuntimeValue:
        return StringValue(node.value)

    def _eval_symbol(self, node: SymbolExpression, env: Environment) -> RuntimeValue:
        try:
            return env.lookup(node.symbol)
        except ScopeError as e:
            raise self._error("E301", str(e), node.span) from e

    def _eval_assignment(self, node: AssignmentExpression, env: Environment) -> RuntimeValue:
        value = self.evaluate(node.value, env)
        if isinstance(node.assignee, SymbolExpression):
            try:
                return env.assign(node.assignee.symbol, value)
            except ScopeError as e:
                raise self._error("E301", str(e), node.assignee.span) from e
        return self._warn_unsupported("assignment to members is under construction.", node.span)

    def _eval_prefix(self, node: PrefixExpression, env: Environment) -> RuntimeValue:
        operand = self.evaluate(node.right, env)
        if _is_nullish(operand):
            return NULL
        match node.prefix.kind:
            case TokenKind.SUBTRACT:
                return NumberValue(-to_number(operand))
            case TokenKind.LOGICAL_NOT:
                return BooleanValue(not is_truthy(operand))
            case TokenKind.BITWISE_NOT:
                return NumberValue(float(~to_int32(operand)))
        return self._warn_unsupported(
            f"prefix operator '{node.prefix.value}' is under construction.", node.span
        )

    def _eval_binary(self, node: BinaryExpression, env: Environment) -> RuntimeValue:
        # Both sides are always evaluated; && and || do not short-circuit.
        left = self.evaluate(node.left, env)
        right = self.evaluate(node.right, env)
        kind = node.operator.kind

        if kind in RELATIONAL_KINDS:
            return BooleanValue(_relational(kind, left, right))
        if kind in EQUALITY_KINDS:
            match kind:
                case TokenKind.EQUALS:
                    return BooleanValue(loose_equals(left, right))
                case TokenKind.NOT_EQ:
                    return BooleanValue(not loose_equals(left, right))
                case TokenKind.STRONG_EQ:
                    return BooleanValue(strict_equals(left, right))
                case TokenKind.STRONG_NOT_EQ:
                    return BooleanValue(not strict_equals(left, right))
        elif kind in ARITHMETIC_KINDS:
            return _arithmetic(kind, left, right)
        elif kind is TokenKind.LOGICAL_AND:
            return BooleanValue(is_truthy(left) and is_truthy(right))
        elif kind is TokenKind.LOGICAL_OR:
            return BooleanValue(is_truthy(left) or is_truthy(right))
        elif kind in BITWISE_KINDS:
            return _bitwise(kind, left, right)

        return self._warn_unsupported(
            f"operator '{node.operator.value}' is under construction.", node.operator.span
        )
