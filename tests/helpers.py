"""Shared test helpers for the Berd test suite."""

from __future__ import annotations

from berd.ast_nodes import BlockStatement, Expr
from berd.environment import Environment, create_global_scope
from berd.interpreter import Interpreter
from berd.lexer import Lexer
from berd.parser import Parser
from berd.source import Span
from berd.values import RuntimeValue

SPAN = Span("<test>", 1, 1, 1, 1)


def parse(source: str) -> BlockStatement:
    """Lex and parse source into the program block."""
    tokens = Lexer(source, "<test>").lex()
    return Parser(tokens, "<test>").parse()


def parse_expr(source: str) -> Expr:
    """Parse a single expression statement and return its expression."""
    program = parse(source + "!")
    assert len(program.body) == 1, program.body
    return program.body[0].expression


def run(source: str) -> tuple[RuntimeValue, Environment, Interpreter]:
    """Parse and evaluate source against a fresh global scope."""
    program = parse(source)
    env = create_global_scope()
    interpreter = Interpreter()
    value = interpreter.evaluate(program, env)
    return value, env, interpreter


def evaluate(source: str) -> RuntimeValue:
    return run(source)[0]
