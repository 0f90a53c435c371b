"""Berd command-line driver."""

from __future__ import annotations

from pathlib import Path

import click

from berd import __version__
from berd.ast_nodes import BlockStatement, ast_to_json
from berd.config import BerdConfig, find_config, load_config
from berd.errors import Diagnostic, DiagnosticRenderer, FatalError, Severity
from berd.lexer import Lexer
from berd.parser import Parser
from berd.tokens import Token


def _load_config(file: str) -> BerdConfig:
    return load_config(find_config(Path(file)))


def _report(diagnostics: list[Diagnostic], renderer: DiagnosticRenderer,
            verbose: bool) -> None:
    for diag in diagnostics:
        if diag.severity is Severity.NOTE and not verbose:
            continue
        click.echo(renderer.render(diag), err=True)


def _parse_file(file: str, renderer: DiagnosticRenderer, verbose: bool) -> BlockStatement:
    """Lex and parse ``file``; exits with status 1 on a fatal diagnostic."""
    source = Path(file).read_text(encoding="utf-8")
    filename = str(file)
    renderer.add_source(filename, source)

    lexer = Lexer(source, filename)
    parser: Parser | None = None
    try:
        parser = Parser(lexer.lex(), filename)
        program = parser.parse()
    except FatalError:
        found = lexer.diagnostics + (parser.diagnostics if parser else [])
        _report(found, renderer, verbose)
        raise SystemExit(1)

    _report(lexer.diagnostics + parser.diagnostics, renderer, verbose)
    return program


@click.group()
@click.version_option(__version__, prog_name="berd")
def main() -> None:
    """The Berd scripting language."""


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--ast", "ast_path", type=click.Path(dir_okay=False), default=None,
              help="Also write the AST as JSON to this file.")
@click.option("--verbose", "-v", is_flag=True, help="Show notes as well as warnings.")
@click.option("--color/--no-color", default=None, help="Colorize diagnostics.")
def run(file: str, ast_path: str | None, verbose: bool, color: bool | None) -> None:
    """Parse and evaluate a Berd source file."""
    from berd.environment import create_global_scope
    from berd.interpreter import Interpreter
    from berd.values import display

    config = _load_config(file)
    verbose = verbose or config.diagnostics.verbose
    renderer = DiagnosticRenderer(
        color=config.diagnostics.color if color is None else color
    )

    program = _parse_file(file, renderer, verbose)

    ast_path = ast_path or config.run.ast_file
    if ast_path:
        Path(ast_path).write_text(ast_to_json(program) + "\n", encoding="utf-8")

    interpreter = Interpreter()
    try:
        result = interpreter.evaluate(program, create_global_scope())
    except FatalError:
        _report(interpreter.diagnostics, renderer, verbose)
        raise SystemExit(1)

    _report(interpreter.diagnostics, renderer, verbose)
    if config.run.print_result:
        click.echo(display(result))


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Print the AST as JSON.")
def view(file: str, as_json: bool) -> None:
    """View the AST of a Berd source file."""
    config = _load_config(file)
    renderer = DiagnosticRenderer(color=config.diagnostics.color)
    program = _parse_file(file, renderer, config.diagnostics.verbose)
    if as_json:
        click.echo(ast_to_json(program))
    else:
        _dump_ast(program, 0)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def tokens(file: str) -> None:
    """List the tokens of a Berd source file."""
    source = Path(file).read_text(encoding="utf-8")
    renderer = DiagnosticRenderer(color=_load_config(file).diagnostics.color)
    renderer.add_source(str(file), source)
    lexer = Lexer(source, str(file))
    try:
        found = lexer.lex()
    except FatalError as e:
        _report(e.diagnostics, renderer, verbose=False)
        raise SystemExit(1)

    _report(lexer.diagnostics, renderer, verbose=False)
    for tok in found:
        click.echo(f"{tok.span.start_line}:{tok.span.start_col}\t{tok}")


@main.command()
def lsp() -> None:
    """Start the Berd language server."""
    from berd.lsp import main as lsp_main

    lsp_main()


def _dump_ast(node: object, depth: int) -> None:
    """Print a readable AST dump."""
    indent = "  " * depth

    if isinstance(node, Token):
        click.echo(f"{indent}{node}")
        return
    if not hasattr(node, "__dataclass_fields__"):
        click.echo(f"{indent}{node!r}")
        return

    click.echo(f"{indent}{type(node).__name__}")
    for field_name in node.__dataclass_fields__:  # type: ignore[attr-defined]
        if field_name == "span":
            continue
        value = getattr(node, field_name)
        if isinstance(value, list):
            if value:
                click.echo(f"{indent}  {field_name}:")
                for item in value:
                    _dump_ast(item, depth + 2)
            else:
                click.echo(f"{indent}  {field_name}: []")
        elif isinstance(value, Token) or hasattr(value, "__dataclass_fields__"):
            click.echo(f"{indent}  {field_name}:")
            _dump_ast(value, depth + 2)
        elif value is not None:
            click.echo(f"{indent}  {field_name}: {value!r}")
