"""Berd Language Server, a pygls-based LSP for .db files.

Provides diagnostics, hover, keyword completion, go-to-definition and
document symbols via stdio transport.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from lsprotocol import types as lsp
from pygls.lsp.server import LanguageServer

from berd import __version__
from berd.ast_nodes import (
    BlockStatement,
    FunctionDeclarationStatement,
    IfStatement,
    Stmt,
    VariableDeclarationStatement,
    WhenStatement,
)
from berd.errors import Diagnostic, FatalError, Severity
from berd.grammar import Lookups
from berd.lexer import Lexer
from berd.parser import Parser
from berd.tokens import Token

# ── Conversion helpers ────────────────────────────────────────────

_SEVERITY_MAP = {
    Severity.ERROR: lsp.DiagnosticSeverity.Error,
    Severity.WARNING: lsp.DiagnosticSeverity.Warning,
    Severity.NOTE: lsp.DiagnosticSeverity.Information,
}

KEYWORD_DOCS: dict[str, str] = {
    "const": "`const const name = value!` declares a binding. The first word "
             "controls reassignment, the second mutation.",
    "var": "`var var name = value!` declares a binding that can be reassigned "
           "and mutated.",
    "function": "`function name(a, b) => { ... }` declares a function.",
    "async": "`async function name() => ...` declares an asynchronous function.",
    "return": "`return value!` returns from the enclosing function.",
    "if": "`if (test) { ... } else { ... }` runs a block when the test is truthy.",
    "else": "The alternative branch of an `if`.",
    "when": "`when (test) { ... }` runs a block whenever the test becomes true.",
    "previous": "`previous name` reads the value a variable held before its last change.",
    "next": "`next name` reads the value a variable will hold after its next change.",
    "current": "`current name` reads the value a variable holds now.",
}

# "else" has no rule of its own; the if handler consumes it.
COMPLETION_KEYWORDS = sorted(Lookups().keywords() | {"else"})


def span_to_range(span: object) -> lsp.Range:
    """Convert a 1-indexed Span to a 0-indexed LSP Range."""
    sl = getattr(span, "start_line", 1)
    sc = getattr(span, "start_col", 1)
    el = getattr(span, "end_line", sl)
    ec = getattr(span, "end_col", sc)
    return lsp.Range(
        start=lsp.Position(line=sl - 1, character=sc - 1),
        end=lsp.Position(line=el - 1, character=ec),
    )


def _to_lsp_diag(d: Diagnostic) -> lsp.Diagnostic:
    span_range = lsp.Range(start=lsp.Position(0, 0), end=lsp.Position(0, 0))
    if d.labels:
        span_range = span_to_range(d.labels[0].span)
    return lsp.Diagnostic(
        range=span_range,
        severity=_SEVERITY_MAP[d.severity],
        source="berd",
        code=d.code,
        message=f"[{d.code}] {d.message}",
    )


# ── Per-document state ────────────────────────────────────────────


@dataclass
class DocumentState:
    """Cached analysis results for a single open document."""

    source: str = ""
    tokens: list[Token] = field(default_factory=list)
    program: BlockStatement | None = None
    declarations: dict[str, Stmt] = field(default_factory=dict)
    diagnostics: list[lsp.Diagnostic] = field(default_factory=list)


def collect_declarations(body: list[Stmt]) -> dict[str, Stmt]:
    """Map every declared name to its first declaration, searching nested blocks."""
    found: dict[str, Stmt] = {}

    def visit(stmt: Stmt | None) -> None:
        match stmt:
            case VariableDeclarationStatement():
                found.setdefault(stmt.identifier, stmt)
            case FunctionDeclarationStatement():
                found.setdefault(stmt.identifier.value, stmt)
                visit(stmt.body)
            case BlockStatement():
                for inner in stmt.body:
                    visit(inner)
            case IfStatement():
                visit(stmt.consequent)
                visit(stmt.alternate)
            case WhenStatement():
                visit(stmt.consequent)

    for stmt in body:
        visit(stmt)
    return found


# ── Server ────────────────────────────────────────────────────────

server = LanguageServer(
    "berd-lsp", __version__,
    text_document_sync_kind=lsp.TextDocumentSyncKind.Full,
)
_state: dict[str, DocumentState] = {}


def _analyze(uri: str, source: str) -> DocumentState:
    """Run Lexer then Parser, cache results, return state."""
    ds = DocumentState(source=source)
    lexer = Lexer(source, uri)
    parser: Parser | None = None
    try:
        ds.tokens = lexer.lex()
        parser = Parser(ds.tokens, uri)
        ds.program = parser.parse()
        ds.declarations = collect_declarations(ds.program.body)
    except FatalError:
        pass  # the diagnostics below already carry the error
    except Exception as e:
        ds.diagnostics.append(lsp.Diagnostic(
            range=lsp.Range(start=lsp.Position(0, 0), end=lsp.Position(0, 0)),
            severity=lsp.DiagnosticSeverity.Error, source="berd",
            message=f"[internal] {type(e).__name__}: {e}",
        ))

    found = lexer.diagnostics + (parser.diagnostics if parser else [])
    ds.diagnostics.extend(
        _to_lsp_diag(d) for d in found if d.severity is not Severity.NOTE
    )
    _state[uri] = ds
    return ds


def _get_word_at(source: str, line: int, character: int) -> str:
    """Extract the word at the given 0-indexed position."""
    lines = source.splitlines()
    if line < 0 or line >= len(lines):
        return ""
    text = lines[line]
    if character < 0 or character >= len(text):
        # Cursor may sit right after the word
        if 0 < character <= len(text):
            character -= 1
        else:
            return ""

    start = character
    while start > 0 and (text[start - 1].isalnum() or text[start - 1] == "_"):
        start -= 1
    end = character
    while end < len(text) and (text[end].isalnum() or text[end] == "_"):
        end += 1
    return text[start:end]


def hover_text(ds: DocumentState, word: str) -> str | None:
    decl = ds.declarations.get(word)
    if isinstance(decl, VariableDeclarationStatement):
        words = " ".join("var" if m else "const" for m in decl.modifiers)
        return f"**variable** `{words} {decl.identifier}`"
    if isinstance(decl, FunctionDeclarationStatement):
        params = ", ".join(p.identifier.value for p in decl.parameters)
        prefix = "async " if decl.is_async else ""
        return f"**function** `{prefix}function {word}({params})`"
    return KEYWORD_DOCS.get(word)


def _decl_to_symbol(name: str, decl: Stmt) -> lsp.DocumentSymbol | None:
    if isinstance(decl, VariableDeclarationStatement):
        kind = lsp.SymbolKind.Variable if decl.modifiers[0] else lsp.SymbolKind.Constant
        detail = " ".join("var" if m else "const" for m in decl.modifiers)
    elif isinstance(decl, FunctionDeclarationStatement):
        kind = lsp.SymbolKind.Function
        detail = "(" + ", ".join(p.identifier.value for p in decl.parameters) + ")"
    else:
        return None
    return lsp.DocumentSymbol(
        name=name,
        kind=kind,
        detail=detail,
        range=span_to_range(decl.span),
        selection_range=span_to_range(decl.span),
    )


@server.feature(lsp.TEXT_DOCUMENT_DID_OPEN)
def did_open(params: lsp.DidOpenTextDocumentParams) -> None:
    uri = params.text_document.uri
    ds = _analyze(uri, params.text_document.text)
    server.text_document_publish_diagnostics(lsp.PublishDiagnosticsParams(
        uri=uri,
        diagnostics=ds.diagnostics,
    ))


@server.feature(lsp.TEXT_DOCUMENT_DID_CHANGE)
def did_change(params: lsp.DidChangeTextDocumentParams) -> None:
    uri = params.text_document.uri
    # Full sync: the last change holds the whole text
    source = params.content_changes[-1].text if params.content_changes else ""
    ds = _analyze(uri, source)
    server.text_document_publish_diagnostics(lsp.PublishDiagnosticsParams(
        uri=uri,
        diagnostics=ds.diagnostics,
    ))


@server.feature(lsp.TEXT_DOCUMENT_DID_CLOSE)
def did_close(params: lsp.DidCloseTextDocumentParams) -> None:
    _state.pop(params.text_document.uri, None)


@server.feature(lsp.TEXT_DOCUMENT_HOVER)
def hover(params: lsp.HoverParams) -> lsp.Hover | None:
    ds = _state.get(params.text_document.uri)
    if ds is None:
        return None
    word = _get_word_at(ds.source, params.position.line, params.position.character)
    text = hover_text(ds, word) if word else None
    if text is None:
        return None
    return lsp.Hover(contents=lsp.MarkupContent(kind=lsp.MarkupKind.Markdown, value=text))


@server.feature(lsp.TEXT_DOCUMENT_COMPLETION)
def completion(params: lsp.CompletionParams) -> lsp.CompletionList:
    ds = _state.get(params.text_document.uri)
    items = [
        lsp.CompletionItem(label=kw, kind=lsp.CompletionItemKind.Keyword)
        for kw in COMPLETION_KEYWORDS
    ]
    if ds is not None:
        for name, decl in sorted(ds.declarations.items()):
            kind = (lsp.CompletionItemKind.Function
                    if isinstance(decl, FunctionDeclarationStatement)
                    else lsp.CompletionItemKind.Variable)
            items.append(lsp.CompletionItem(label=name, kind=kind))
    return lsp.CompletionList(is_incomplete=False, items=items)


@server.feature(lsp.TEXT_DOCUMENT_DEFINITION)
def definition(params: lsp.DefinitionParams) -> lsp.Location | None:
    uri = params.text_document.uri
    ds = _state.get(uri)
    if ds is None:
        return None
    word = _get_word_at(ds.source, params.position.line, params.position.character)
    decl = ds.declarations.get(word)
    if decl is None:
        return None
    return lsp.Location(uri=uri, range=span_to_range(decl.span))


@server.feature(lsp.TEXT_DOCUMENT_DOCUMENT_SYMBOL)
def document_symbol(params: lsp.DocumentSymbolParams) -> list[lsp.DocumentSymbol]:
    ds = _state.get(params.text_document.uri)
    if ds is None or ds.program is None:
        return []
    symbols = []
    for name, decl in collect_declarations(ds.program.body).items():
        sym = _decl_to_symbol(name, decl)
        if sym is not None:
            symbols.append(sym)
    return symbols


# ── Entry point ──────────────────────────────────────────────────


def main() -> None:
    """Start the Berd language server on stdio."""
    server.start_io()
