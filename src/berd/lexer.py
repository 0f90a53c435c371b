"""Lexer for the Berd scripting language.

A single context-free pass over the source. Multi-character operators are
matched longest-first, and an arithmetic, logical or bitwise operator
immediately followed by ``=`` becomes one combined-assignment token.
"""

from __future__ import annotations

from berd.errors import Diagnostic, DiagnosticLabel, FatalError, Severity
from berd.source import Span
from berd.tokens import (
    COMBINABLE_OPERATORS,
    GROUPING,
    MAX_OPERATOR_LENGTH,
    OPERATORS,
    STATE_SYMBOLS,
    STRUCTURE_SYMBOLS,
    TERMINATOR_SYMBOLS,
    CombinedAssignmentToken,
    Token,
    TokenKind,
)

# Control characters skipped without producing a token.
_SKIPPED = frozenset({"\t"})


def _is_identifier_char(ch: str) -> bool:
    """Letters with a case distinction, or any code point >= 128 except ``¡``."""
    if ch in TERMINATOR_SYMBOLS:
        return False
    return ord(ch) >= 128 or ch.lower() != ch.upper()


class Lexer:
    """Tokenizes Berd source code."""

    def __init__(self, source: str, filename: str = "<stdin>") -> None:
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.col = 1
        self.tokens: list[Token] = []
        self.diagnostics: list[Diagnostic] = []

    def lex(self) -> list[Token]:
        """Tokenize the entire source and return the token list.

        The list always ends with an EOF token. Raises ``FatalError`` on
        the first unrecognized character.
        """
        while self.pos < len(self.source):
            self._scan()
        self._emit(TokenKind.EOF, "", self.line, self.col)
        return self.tokens

    def _scan(self) -> None:
        ch = self._peek()
        nxt = self._peek(1)

        if ch == "/" and nxt == "/":
            self._skip_line_comment()
        elif ch == "/" and nxt == "*":
            self._skip_block_comment()
        elif ch in GROUPING:
            self._single(GROUPING[ch])
        elif ch == "=" and nxt == ">":
            self._fixed(TokenKind.ARROW, 2)
        elif ch in TERMINATOR_SYMBOLS:
            self._single(TERMINATOR_SYMBOLS[ch])
        elif "0" <= ch <= "9":
            self._lex_number()
        elif ch in ("'", '"'):
            self._lex_string()
        elif ch + nxt in STATE_SYMBOLS:
            self._fixed(STATE_SYMBOLS[ch + nxt], 2)
        elif ch in OPERATORS:
            self._lex_operator()
        elif ch in STRUCTURE_SYMBOLS:
            self._single(STRUCTURE_SYMBOLS[ch])
        elif ch == " ":
            self._lex_whitespace()
        elif ch in ("\r", "\n"):
            self._lex_line_break()
        elif _is_identifier_char(ch):
            self._lex_identifier()
        elif ch in _SKIPPED:
            self._advance()
        else:
            self._fatal(
                f"unrecognized character {ch!r} (code {ord(ch)}) at offset {self.pos}",
                self.line, self.col,
            )

    # ── Helpers ───────────────────────────────────────────────────

    def _peek(self, offset: int = 0) -> str:
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return "\0"

    def _advance(self) -> str:
        ch = self.source[self.pos]
        self.pos += 1
        if ch == "\n" or (ch == "\r" and self._peek() != "\n"):
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        return ch

    def _span(self, start_line: int, start_col: int) -> Span:
        end_col = self.col - 1 if self.col > 1 else 1
        return Span(self.filename, start_line, start_col, self.line, end_col)

    def _emit(self, kind: TokenKind, value: str, start_line: int, start_col: int) -> Token:
        tok = Token(kind, value, self._span(start_line, start_col))
        self.tokens.append(tok)
        return tok

    def _single(self, kind: TokenKind) -> None:
        self._fixed(kind, 1)

    def _fixed(self, kind: TokenKind, length: int) -> None:
        start_line, start_col = self.line, self.col
        text = "".join(self._advance() for _ in range(length))
        self._emit(kind, text, start_line, start_col)

    def _warn(self, message: str, line: int, col: int) -> None:
        span = Span(self.filename, line, col, line, col)
        self.diagnostics.append(
            Diagnostic(
                severity=Severity.WARNING,
                code="W101",
                message=message,
                labels=[DiagnosticLabel(span)],
            )
        )

    def _fatal(self, message: str, line: int, col: int) -> None:
        span = Span(self.filename, line, col, line, col)
        self.diagnostics.append(
            Diagnostic(
                severity=Severity.ERROR,
                code="E100",
                message=message,
                labels=[DiagnosticLabel(span)],
            )
        )
        raise FatalError(self.diagnostics)

    # ── Comments ─────────────────────────────────────────────────

    def _skip_line_comment(self) -> None:
        while self.pos < len(self.source) and self.source[self.pos] not in "\r\n":
            self._advance()

    def _skip_block_comment(self) -> None:
        self._advance()
        self._advance()
        while self.pos < len(self.source):
            if self._peek() == "*" and self._peek(1) == "/":
                self._advance()
                self._advance()
                return
            self._advance()

    # ── Literals ─────────────────────────────────────────────────

    def _lex_number(self) -> None:
        start_line, start_col = self.line, self.col
        start = self.pos
        while self.pos < len(self.source) and "0" <= self.source[self.pos] <= "9":
            self._advance()
        self._emit(TokenKind.NUMBER, self.source[start:self.pos], start_line, start_col)

    def _lex_string(self) -> None:
        start_line, start_col = self.line, self.col
        quote = self._advance()
        start = self.pos
        while self.pos < len(self.source) and self.source[self.pos] != quote:
            self._advance()
        text = self.source[start:self.pos]
        if self.pos < len(self.source):
            self._advance()  # closing quote
        self._emit(TokenKind.STRING, text, start_line, start_col)

    def _lex_identifier(self) -> None:
        start_line, start_col = self.line, self.col
        start = self.pos
        while self.pos < len(self.source) and _is_identifier_char(self.source[self.pos]):
            self._advance()
        text = self.source[start:self.pos]
        unusual = sorted({ch for ch in text if ord(ch) >= 128})
        if unusual:
            listed = ", ".join(f"{ch!r} (code {ord(ch)})" for ch in unusual)
            self._warn(f"non-standard identifier character(s): {listed}",
                       start_line, start_col)
        self._emit(TokenKind.IDENTIFIER, text, start_line, start_col)

    # ── Operators ────────────────────────────────────────────────

    def _lex_operator(self) -> None:
        start_line, start_col = self.line, self.col
        for length in range(MAX_OPERATOR_LENGTH, 0, -1):
            text = self.source[self.pos:self.pos + length]
            if len(text) == length and text in OPERATORS:
                break
        for _ in range(len(text)):
            self._advance()

        if text in COMBINABLE_OPERATORS and self._peek() == "=":
            self._advance()
            tok = CombinedAssignmentToken(
                TokenKind.COMBINED_ASSIGNMENT,
                text + "=",
                self._span(start_line, start_col),
                COMBINABLE_OPERATORS[text],
            )
            self.tokens.append(tok)
            return
        self._emit(OPERATORS[text], text, start_line, start_col)

    # ── Layout ───────────────────────────────────────────────────

    def _lex_whitespace(self) -> None:
        start_line, start_col = self.line, self.col
        count = 0
        while self._peek() == " ":
            self._advance()
            count += 1
        self._emit(TokenKind.WHITESPACE, str(count), start_line, start_col)

    def _lex_line_break(self) -> None:
        start_line, start_col = self.line, self.col
        if self._advance() == "\r" and self._peek() == "\n":
            self._advance()
        self._emit(TokenKind.LINE_BREAK, "\n", start_line, start_col)
