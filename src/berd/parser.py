"""Parser for the Berd scripting language.

A Pratt parser driven entirely by the grammar tables in ``berd.grammar``:
the engine here only knows how to move through the token stream, dispatch
statements, and climb binding powers. Every construct lives in
``berd.handlers``.
"""

from __future__ import annotations

from typing import Iterable

from berd.ast_nodes import (
    BlockStatement,
    EndOfBlockStatement,
    EndOfInputStatement,
    Expr,
    ExpressionStatement,
    Stmt,
)
from berd.errors import Diagnostic, DiagnosticLabel, FatalError, Severity
from berd.grammar import BindingPower, Lookups
from berd.source import Span
from berd.tokens import IGNORABLE, TERMINATORS, Token, TokenKind


def _describe(options: Iterable[str]) -> str:
    options = sorted(options)
    if len(options) == 1:
        return options[0]
    return "one of " + ", ".join(options)


class Parser:
    """Parses a list of tokens into a Berd AST."""

    def __init__(self, tokens: list[Token], filename: str = "<stdin>",
                 lookups: Lookups | None = None) -> None:
        self.tokens = tokens
        self.pos = 0
        self.filename = filename
        self.lookups = lookups if lookups is not None else Lookups()
        self.diagnostics: list[Diagnostic] = []

    # ── Token access ─────────────────────────────────────────────

    def current(self) -> Token:
        return self.peek(0)

    def peek(self, offset: int = 0) -> Token:
        idx = self.pos + offset
        if 0 <= idx < len(self.tokens):
            return self.tokens[idx]
        return self.tokens[-1]  # EOF

    def advance(self, count: int = 1) -> Token:
        """Move the cursor by ``count`` (negative rewinds) and return the token left behind."""
        tok = self.current()
        self.pos = max(0, self.pos + count)
        return tok

    def remaining(self) -> int:
        return max(0, len(self.tokens) - self.pos)

    def has_token(self) -> bool:
        return self.pos < len(self.tokens) and self.current().kind is not TokenKind.EOF

    def skip_ignorable(self) -> None:
        while self.current().kind in IGNORABLE:
            self.pos += 1

    def _scan_past(self, ignored: frozenset[TokenKind] | None) -> int:
        ignored = IGNORABLE if ignored is None else ignored
        offset = 0
        while self.pos + offset < len(self.tokens) - 1 and self.peek(offset).kind in ignored:
            offset += 1
        return offset

    def expect(self, *kinds: TokenKind, ignored: frozenset[TokenKind] | None = None,
               advance: bool = True, fatal: bool = True) -> tuple[bool, Token]:
        """Check the next significant token against ``kinds``.

        With ``fatal=False`` a mismatch only leaves a note, which lets
        handlers look ahead for optional clauses. With ``advance=True`` the cursor
        moves past the checked token whether or not it matched.
        """
        offset = self._scan_past(ignored)
        tok = self.peek(offset)
        found = tok.kind in kinds
        if not found:
            self._mismatch(_describe(k.name for k in kinds), tok, fatal)
        if advance:
            self.pos += offset + 1
        return found, tok

    def expect_identifier(self, *words: str, ignored: frozenset[TokenKind] | None = None,
                          advance: bool = True, fatal: bool = True) -> tuple[bool, Token]:
        """Like ``expect`` but matches identifier tokens by their text."""
        offset = self._scan_past(ignored)
        tok = self.peek(offset)
        found = tok.kind is TokenKind.IDENTIFIER and tok.value in words
        if not found:
            self._mismatch(_describe(repr(w) for w in words), tok, fatal)
        if advance:
            self.pos += offset + 1
        return found, tok

    # ── Diagnostics ──────────────────────────────────────────────

    def _mismatch(self, expected: str, tok: Token, fatal: bool) -> None:
        message = f"expected {expected}, found {tok}"
        if fatal:
            self.fatal("E200", message, tok.span)
        self.diagnostics.append(
            Diagnostic(
                severity=Severity.NOTE,
                code="N200",
                message=message,
                labels=[DiagnosticLabel(tok.span)],
            )
        )

    def fatal(self, code: str, message: str, span: Span,
              notes: list[str] | None = None) -> None:
        self.diagnostics.append(
            Diagnostic(
                severity=Severity.ERROR,
                code=code,
                message=message,
                labels=[DiagnosticLabel(span)],
                notes=notes or [],
            )
        )
        raise FatalError(self.diagnostics)

    # ── Entry points ─────────────────────────────────────────────

    def parse(self) -> BlockStatement:
        """Parse every statement up to end of input into one block."""
        start = self.current().span
        body: list[Stmt] = []
        while self.has_token():
            stmt = self.parse_statement()
            if isinstance(stmt, EndOfInputStatement):
                break
            if isinstance(stmt, EndOfBlockStatement):
                self.fatal("E202", "unexpected '}' outside of a block", stmt.span)
            body.append(stmt)
        return BlockStatement(body, start.to(self.current().span))

    def parse_statement(self) -> Stmt:
        self.skip_ignorable()
        tok = self.current()
        handlers = self.lookups.get_stmt(tok)
        if handlers:
            return handlers[0](self)
        if tok.kind is TokenKind.CLOSE_CURLY:
            return EndOfBlockStatement(tok.span)

        expression = self.parse_expression()
        _, end = self.expect(*TERMINATORS)
        return ExpressionStatement(expression, expression.span.to(end.span))

    def parse_expression(self, bp: BindingPower = BindingPower.DEFAULT) -> Expr:
        self.skip_ignorable()
        tok = self.current()
        nud = self.lookups.get_nud(tok)
        if not nud.found:
            self.fatal("E201",
                       f"expected an expression, found {tok} at token {self.pos}",
                       tok.span)
        left = nud.handler(self)

        while True:
            self.skip_ignorable()
            led = self.lookups.get_led(self.current())
            if not led.found or led.bp <= bp:
                break
            left = led.handler(self, left, led.bp)
        return left

