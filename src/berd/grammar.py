"""Binding powers and the per-token grammar tables.

Grammar rules are registered per token kind, and for identifiers also per
keyword text, into three registries:

- ``stmt``: rules that start a statement (``const``, ``if``, ``{`` ...)
- ``nud``:  rules that start an expression (literals, prefix operators)
- ``led``:  rules that extend an expression to their left (binary operators,
  member access, calls, assignment)

``const``, ``if`` and the rest are ordinary identifier tokens; they only
become keywords because a handler is registered under their text here.
"""

from __future__ import annotations

from enum import IntEnum
from typing import TYPE_CHECKING, Any, Callable, NamedTuple

from berd.tokens import Token, TokenKind

if TYPE_CHECKING:
    from berd.ast_nodes import Expr, Stmt
    from berd.parser import Parser


class BindingPower(IntEnum):
    DEFAULT = 0
    COMMA = 1
    ASSIGNMENT = 2
    LOGICAL_OR = 3
    LOGICAL_AND = 4
    BITWISE_OR = 5
    BITWISE_XOR = 6
    BITWISE_AND = 7
    EQUALITY = 8
    RELATIONAL = 9
    BITWISE_SHIFT = 10
    ADDITIVE = 11
    MULTIPLICATIVE = 12
    EXPONENTIATION = 13
    PREFIX = 14
    POSTFIX = 15
    NEW = 16
    MEMBER_CALL = 17
    GROUPING = 18
    PRIMARY = 19


StmtHandler = Callable[["Parser"], "Stmt"]
NudHandler = Callable[["Parser"], "Expr"]
LedHandler = Callable[["Parser", "Expr", BindingPower], "Expr"]


class StmtEntry(NamedTuple):
    handler: StmtHandler
    keyword: str


class ExprEntry(NamedTuple):
    handler: Callable[..., Any]
    bp: BindingPower
    keyword: str


class Lookup(NamedTuple):
    """Result of a nud/led lookup. ``found`` is False on a miss."""

    found: bool
    handler: Callable[..., Any]
    bp: BindingPower


def _not_found(parser: Parser, left: Expr | None = None,
               bp: BindingPower = BindingPower.DEFAULT) -> Expr | None:
    return left


_MISS = Lookup(False, _not_found, BindingPower.DEFAULT)


def _select(entries: list, token: Token) -> list:
    """Pick the entries that apply to ``token``.

    Identifier tokens first match on exact keyword text and fall back to the
    generic (empty keyword) entries. Other kinds ignore the keyword field.
    """
    if token.kind is not TokenKind.IDENTIFIER:
        return entries
    exact = [e for e in entries if e.keyword == token.value]
    if exact:
        return exact
    return [e for e in entries if e.keyword == ""]


class Lookups:
    """The three grammar registries.

    Each Parser owns its own instance, so registering extra rules on one
    parser never leaks into another.
    """

    def __init__(self, *, defaults: bool = True) -> None:
        self.stmt_lu: dict[TokenKind, list[StmtEntry]] = {}
        self.nud_lu: dict[TokenKind, list[ExprEntry]] = {}
        self.led_lu: dict[TokenKind, list[ExprEntry]] = {}
        if defaults:
            from berd.handlers import register_defaults
            register_defaults(self)

    # ── Registration ─────────────────────────────────────────────
    # Insertion prepends, so the latest registration for a kind wins.

    @staticmethod
    def _check_keyword(kind: TokenKind, keyword: str) -> None:
        if keyword and kind is not TokenKind.IDENTIFIER:
            raise ValueError(f"keyword {keyword!r} given for non-identifier kind {kind.name}")

    def stmt(self, kind: TokenKind, handler: StmtHandler, keyword: str = "") -> None:
        self._check_keyword(kind, keyword)
        self.stmt_lu.setdefault(kind, []).insert(0, StmtEntry(handler, keyword))

    def nud(self, kind: TokenKind, bp: BindingPower, handler: NudHandler,
            keyword: str = "") -> None:
        self._check_keyword(kind, keyword)
        self.nud_lu.setdefault(kind, []).insert(0, ExprEntry(handler, bp, keyword))

    def led(self, kind: TokenKind, bp: BindingPower, handler: LedHandler,
            keyword: str = "") -> None:
        self._check_keyword(kind, keyword)
        self.led_lu.setdefault(kind, []).insert(0, ExprEntry(handler, bp, keyword))

    # ── Lookup ───────────────────────────────────────────────────

    def get_stmt(self, token: Token) -> list[StmtHandler]:
        """Return every statement handler that applies, most recent first."""
        entries = _select(self.stmt_lu.get(token.kind, []), token)
        return [e.handler for e in entries]

    def get_nud(self, token: Token) -> Lookup:
        return self._first(self.nud_lu, token)

    def get_led(self, token: Token) -> Lookup:
        return self._first(self.led_lu, token)

    @staticmethod
    def _first(table: dict[TokenKind, list[ExprEntry]], token: Token) -> Lookup:
        entries = _select(table.get(token.kind, []), token)
        if not entries:
            return _MISS
        entry = entries[0]
        return Lookup(True, entry.handler, entry.bp)

    def keywords(self) -> frozenset[str]:
        """Every identifier text that has a rule of its own."""
        found: set[str] = set()
        for table in (self.stmt_lu, self.nud_lu, self.led_lu):
            for entry in table.get(TokenKind.IDENTIFIER, []):
                if entry.keyword:
                    found.add(entry.keyword)
        return frozenset(found)
