"""Token kinds and token representation for the Berd lexer.

The lexer never classifies keywords: ``const``, ``if`` and friends come out
as plain ``IDENTIFIER`` tokens and are told apart by the grammar tables.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from berd.source import Span


class TokenKind(Enum):
    EOF = auto()

    # Literals
    NUMBER = auto()
    STRING = auto()
    IDENTIFIER = auto()

    # Grouping
    OPEN_BRACKET = auto()
    CLOSE_BRACKET = auto()
    OPEN_CURLY = auto()
    CLOSE_CURLY = auto()
    OPEN_PAREN = auto()
    CLOSE_PAREN = auto()

    ARROW = auto()

    # State
    PLUS_PLUS = auto()
    MINUS_MINUS = auto()

    # Assignment
    EQUAL_SIGN = auto()
    COMBINED_ASSIGNMENT = auto()

    # Comparison
    SMALLER = auto()
    GREATER = auto()
    SMALLER_EQ = auto()
    GREATER_EQ = auto()
    EQUALS = auto()
    NOT_EQ = auto()
    STRONG_EQ = auto()
    STRONG_NOT_EQ = auto()
    STRONGEST_EQ = auto()
    STRONGEST_NOT_EQ = auto()

    # Arithmetic
    ADD = auto()
    SUBTRACT = auto()
    MULTIPLY = auto()
    DIVIDE = auto()
    MODULO = auto()
    EXPONENT = auto()

    # Logical
    LOGICAL_AND = auto()
    LOGICAL_OR = auto()
    LOGICAL_NOT = auto()

    # Bitwise
    BITWISE_NOT = auto()
    BITWISE_AND = auto()
    BITWISE_OR = auto()
    BITWISE_XOR = auto()
    BIT_SHIFT_LEFT = auto()
    BIT_SHIFT_RIGHT = auto()
    BIT_SHIFT_UNSIGNED_LEFT = auto()
    BIT_SHIFT_UNSIGNED_RIGHT = auto()

    # Structure
    DOT = auto()
    COLON = auto()
    COMMA = auto()
    WHITESPACE = auto()
    LINE_BREAK = auto()

    # Terminators
    EXCLAMATION = auto()
    INVERTED_EXCLAMATION = auto()
    QUESTION = auto()


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: str
    span: Span

    def __str__(self) -> str:
        return f"{self.kind.name}({self.value})"


@dataclass(frozen=True)
class CombinedAssignmentToken(Token):
    """An operator fused with ``=``, e.g. ``+=``; ``operation`` is the operator."""

    operation: TokenKind

    def __str__(self) -> str:
        return f"{self.kind.name}<{self.operation.name}>({self.value})"


GROUPING: dict[str, TokenKind] = {
    "[": TokenKind.OPEN_BRACKET,
    "]": TokenKind.CLOSE_BRACKET,
    "{": TokenKind.OPEN_CURLY,
    "}": TokenKind.CLOSE_CURLY,
    "(": TokenKind.OPEN_PAREN,
    ")": TokenKind.CLOSE_PAREN,
}

TERMINATOR_SYMBOLS: dict[str, TokenKind] = {
    "!": TokenKind.EXCLAMATION,
    "¡": TokenKind.INVERTED_EXCLAMATION,
    "?": TokenKind.QUESTION,
}

STATE_SYMBOLS: dict[str, TokenKind] = {
    "++": TokenKind.PLUS_PLUS,
    # Decrement shares the increment kind; the token value tells them apart.
    "--": TokenKind.PLUS_PLUS,
}

STRUCTURE_SYMBOLS: dict[str, TokenKind] = {
    ":": TokenKind.COLON,
    ",": TokenKind.COMMA,
    ".": TokenKind.DOT,
}

# ── Operator families ────────────────────────────────────────────
# Each family maps spelling to kind. Only the arithmetic, logical and
# bitwise families fuse with a trailing ``=`` into combined assignment.

ARITHMETIC_OPERATORS: dict[str, TokenKind] = {
    "+": TokenKind.ADD,
    "-": TokenKind.SUBTRACT,
    "*": TokenKind.MULTIPLY,
    "/": TokenKind.DIVIDE,
    "%": TokenKind.MODULO,
    "^": TokenKind.EXPONENT,
}

LOGICAL_OPERATORS: dict[str, TokenKind] = {
    "&&": TokenKind.LOGICAL_AND,
    "||": TokenKind.LOGICAL_OR,
}

BITWISE_OPERATORS: dict[str, TokenKind] = {
    "&": TokenKind.BITWISE_AND,
    "|": TokenKind.BITWISE_OR,
    "**": TokenKind.BITWISE_XOR,
    "<<": TokenKind.BIT_SHIFT_LEFT,
    ">>": TokenKind.BIT_SHIFT_RIGHT,
    "<<<": TokenKind.BIT_SHIFT_UNSIGNED_LEFT,
    ">>>": TokenKind.BIT_SHIFT_UNSIGNED_RIGHT,
}

COMPARISON_OPERATORS: dict[str, TokenKind] = {
    "=": TokenKind.EQUAL_SIGN,
    "<": TokenKind.SMALLER,
    ">": TokenKind.GREATER,
    "<=": TokenKind.SMALLER_EQ,
    ">=": TokenKind.GREATER_EQ,
    "==": TokenKind.EQUALS,
    ";=": TokenKind.NOT_EQ,
    "===": TokenKind.STRONG_EQ,
    ";==": TokenKind.STRONG_NOT_EQ,
    "====": TokenKind.STRONGEST_EQ,
    ";===": TokenKind.STRONGEST_NOT_EQ,
}

UNARY_OPERATORS: dict[str, TokenKind] = {
    ";": TokenKind.LOGICAL_NOT,
    "~": TokenKind.BITWISE_NOT,
}

COMBINABLE_OPERATORS: dict[str, TokenKind] = {
    **ARITHMETIC_OPERATORS,
    **LOGICAL_OPERATORS,
    **BITWISE_OPERATORS,
}

OPERATORS: dict[str, TokenKind] = {
    **COMBINABLE_OPERATORS,
    **COMPARISON_OPERATORS,
    **UNARY_OPERATORS,
}

MAX_OPERATOR_LENGTH = max(len(op) for op in OPERATORS)

# ── Classification sets ──────────────────────────────────────────

TERMINATORS = frozenset(TERMINATOR_SYMBOLS.values())

IGNORABLE = frozenset({TokenKind.WHITESPACE, TokenKind.LINE_BREAK})

RELATIONAL_KINDS = frozenset({
    TokenKind.SMALLER,
    TokenKind.GREATER,
    TokenKind.SMALLER_EQ,
    TokenKind.GREATER_EQ,
})

EQUALITY_KINDS = frozenset({
    TokenKind.EQUAL_SIGN,
    TokenKind.EQUALS,
    TokenKind.NOT_EQ,
    TokenKind.STRONG_EQ,
    TokenKind.STRONG_NOT_EQ,
    TokenKind.STRONGEST_EQ,
    TokenKind.STRONGEST_NOT_EQ,
})

ARITHMETIC_KINDS = frozenset(ARITHMETIC_OPERATORS.values())
LOGICAL_KINDS = frozenset(LOGICAL_OPERATORS.values())
BITWISE_KINDS = frozenset(BITWISE_OPERATORS.values())
