"""Tests for the Berd parser."""

from __future__ import annotations

import pytest

from berd.ast_nodes import (
    AssignmentExpression,
    BinaryExpression,
    BlockStatement,
    CallExpression,
    ExpressionStatement,
    FunctionDeclarationStatement,
    IfStatement,
    MemberExpression,
    NumberExpression,
    PrefixExpression,
    ReturnStatement,
    StateExpression,
    StringExpression,
    SymbolExpression,
    VariableDeclarationStatement,
    WhenStatement,
)
from berd.errors import FatalError, Severity
from berd.grammar import BindingPower, Lookups
from berd.lexer import Lexer
from berd.parser import Parser
from berd.tokens import TokenKind
from tests.helpers import parse, parse_expr


def fatal_code(source: str) -> str:
    with pytest.raises(FatalError) as exc:
        parse(source)
    return exc.value.diagnostics[-1].code


def make_parser(source: str) -> Parser:
    return Parser(Lexer(source, "<test>").lex(), "<test>")


class TestPrecedence:
    def test_multiplication_binds_tighter(self):
        expr = parse_expr("1 + 2 * 3")
        assert isinstance(expr, BinaryExpression)
        assert expr.operator.kind == TokenKind.ADD
        assert isinstance(expr.right, BinaryExpression)
        assert expr.right.operator.kind == TokenKind.MULTIPLY

    def test_multiplication_on_the_left(self):
        expr = parse_expr("1 * 2 + 3")
        assert expr.operator.kind == TokenKind.ADD
        assert isinstance(expr.left, BinaryExpression)
        assert expr.left.operator.kind == TokenKind.MULTIPLY

    def test_subtraction_is_left_associative(self):
        expr = parse_expr("1 - 2 - 3")
        assert expr.operator.kind == TokenKind.SUBTRACT
        assert isinstance(expr.left, BinaryExpression)
        assert expr.left.left.value == 1
        assert expr.left.right.value == 2
        assert expr.right.value == 3

    def test_exponent_is_left_associative(self):
        expr = parse_expr("2 ^ 3 ^ 2")
        assert isinstance(expr.left, BinaryExpression)
        assert expr.right.value == 2

    def test_grouping_overrides_precedence(self):
        expr = parse_expr("(1 + 2) * 3")
        assert expr.operator.kind == TokenKind.MULTIPLY
        assert expr.left.operator.kind == TokenKind.ADD

    def test_relational_below_additive(self):
        expr = parse_expr("1 + 2 < 4")
        assert expr.operator.kind == TokenKind.SMALLER

    def test_and_binds_tighter_than_or(self):
        expr = parse_expr("a || b && c")
        assert expr.operator.kind == TokenKind.LOGICAL_OR
        assert expr.right.operator.kind == TokenKind.LOGICAL_AND

    def test_no_whitespace_needed(self):
        expr = parse_expr("1+2*3")
        assert expr.operator.kind == TokenKind.ADD

    def test_expression_across_lines(self):
        expr = parse_expr("1 +\r\n 2")
        assert expr.operator.kind == TokenKind.ADD


class TestPrefixAndState:
    @pytest.mark.parametrize("source, kind", [
        ("-x", TokenKind.SUBTRACT),
        (";x", TokenKind.LOGICAL_NOT),
        ("~x", TokenKind.BITWISE_NOT),
    ])
    def test_prefix(self, source, kind):
        expr = parse_expr(source)
        assert isinstance(expr, PrefixExpression)
        assert expr.prefix.kind == kind
        assert expr.right == SymbolExpression("x", expr.right.span)

    def test_prefix_binds_tighter_than_binary(self):
        expr = parse_expr("-1 + 2")
        assert expr.operator.kind == TokenKind.ADD
        assert isinstance(expr.left, PrefixExpression)

    def test_increment(self):
        expr = parse_expr("++x")
        assert isinstance(expr, StateExpression)
        assert expr.operator.value == "++"
        assert isinstance(expr.argument, SymbolExpression)

    def test_decrement(self):
        expr = parse_expr("--x")
        assert isinstance(expr, StateExpression)
        assert expr.operator.value == "--"

    @pytest.mark.parametrize("word", ["previous", "next", "current"])
    def test_state_keywords(self, word):
        expr = parse_expr(f"{word} x")
        assert isinstance(expr, StateExpression)
        assert expr.operator.value == word
        assert expr.argument.symbol == "x"

    def test_state_on_member(self):
        expr = parse_expr("previous a.b")
        assert isinstance(expr.argument, MemberExpression)

    def test_state_on_number_is_fatal(self):
        assert fatal_code("++5!") == "E205"

    def test_state_violation_dumps_node(self):
        with pytest.raises(FatalError) as exc:
            parse("previous 1!")
        assert "NumberExpression" in exc.value.diagnostics[-1].notes[0]


class TestAssignment:
    def test_assign_symbol(self):
        expr = parse_expr("x = 5")
        assert isinstance(expr, AssignmentExpression)
        assert expr.assignee.symbol == "x"
        assert expr.value.value == 5

    def test_assign_member(self):
        expr = parse_expr("a.b = 1")
        assert isinstance(expr.assignee, MemberExpression)

    def test_combined_assignment_desugars(self):
        expr = parse_expr("x += 2")
        assert isinstance(expr, AssignmentExpression)
        value = expr.value
        assert isinstance(value, BinaryExpression)
        assert value.operator.kind == TokenKind.ADD
        assert value.operator.value == "+"
        assert value.left.symbol == "x"
        assert value.right.value == 2

    def test_combined_shift_assignment(self):
        expr = parse_expr("x <<= 1")
        assert expr.value.operator.kind == TokenKind.BIT_SHIFT_LEFT

    def test_assignment_value_takes_whole_expression(self):
        expr = parse_expr("x = 1 + 2")
        assert isinstance(expr.value, BinaryExpression)

    def test_number_target_is_fatal(self):
        assert fatal_code("1 = 2!") == "E203"

    def test_invalid_target_dumps_node(self):
        with pytest.raises(FatalError) as exc:
            parse("1 = 2!")
        diag = exc.value.diagnostics[-1]
        assert "NumberExpression" in diag.notes[0]

    def test_chained_assignment_is_fatal(self):
        assert fatal_code("a = b = c!") == "E203"


class TestMemberAndCall:
    def test_dot_member(self):
        expr = parse_expr("a.b")
        assert isinstance(expr, MemberExpression)
        assert expr.obj.symbol == "a"
        assert expr.property.symbol == "b"
        assert expr.computed is False

    def test_dot_number(self):
        expr = parse_expr("a.0")
        assert isinstance(expr.property, NumberExpression)

    def test_member_chain_is_left_associative(self):
        expr = parse_expr("a.b.c")
        assert expr.property.symbol == "c"
        assert isinstance(expr.obj, MemberExpression)

    def test_computed_member(self):
        expr = parse_expr('a["key"]')
        assert expr.computed is True
        assert isinstance(expr.property, StringExpression)

    def test_dot_requires_name_or_number(self):
        assert fatal_code("a.(1 + 2)!") == "E204"

    def test_call(self):
        expr = parse_expr("f(1, 2)")
        assert isinstance(expr, CallExpression)
        assert expr.callee.symbol == "f"
        assert [a.value for a in expr.arguments] == [1, 2]

    def test_call_without_arguments(self):
        assert parse_expr("f()").arguments == []
        assert parse_expr("f( )").arguments == []

    def test_call_with_expression_arguments(self):
        expr = parse_expr("f(1 + 2, g(3))")
        assert isinstance(expr.arguments[0], BinaryExpression)
        assert isinstance(expr.arguments[1], CallExpression)

    def test_trailing_comma_is_fatal(self):
        assert fatal_code("f(1,)!") == "E201"

    def test_missing_comma_is_fatal(self):
        assert fatal_code("f(1 2)!") == "E200"

    def test_method_call(self):
        expr = parse_expr("a.b(1)")
        assert isinstance(expr, CallExpression)
        assert isinstance(expr.callee, MemberExpression)


class TestStatements:
    def test_keyword_at_statement_position(self):
        program = parse("const const x = 5!")
        assert len(program.body) == 1
        decl = program.body[0]
        assert isinstance(decl, VariableDeclarationStatement)
        assert decl.modifiers == (False, False)
        assert decl.identifier == "x"
        assert decl.value == NumberExpression(5, decl.value.span)

    def test_plain_identifier_at_statement_position(self):
        program = parse("x!")
        stmt = program.body[0]
        assert isinstance(stmt, ExpressionStatement)
        assert stmt.expression.symbol == "x"

    @pytest.mark.parametrize("words, modifiers", [
        ("const const", (False, False)),
        ("const var", (False, True)),
        ("var const", (True, False)),
        ("var var", (True, True)),
    ])
    def test_modifiers(self, words, modifiers):
        decl = parse(f"{words} x = 1!").body[0]
        assert decl.modifiers == modifiers

    def test_declaration_without_initializer(self):
        decl = parse("var var x!").body[0]
        assert decl.value is None
        assert decl.lifetime is None

    def test_declaration_needs_two_modifiers(self):
        assert fatal_code("const x = 1!") == "E200"

    @pytest.mark.parametrize("terminator", ["!", "?", "¡"])
    def test_terminators_are_interchangeable(self, terminator):
        program = parse(f"x{terminator}")
        assert isinstance(program.body[0], ExpressionStatement)

    def test_missing_terminator_is_fatal(self):
        assert fatal_code("1 + 2") == "E200"

    def test_several_statements(self):
        program = parse("const const a = 1!\r\nvar var b = 2!\r\na + b!")
        assert [type(s) for s in program.body] == [
            VariableDeclarationStatement,
            VariableDeclarationStatement,
            ExpressionStatement,
        ]

    def test_empty_source(self):
        assert parse("").body == []
        assert parse("   \r\n  ").body == []

    def test_block_statement(self):
        program = parse("{ 1! 2! }")
        block = program.body[0]
        assert isinstance(block, BlockStatement)
        assert len(block.body) == 2

    def test_empty_block(self):
        assert parse("{}").body[0].body == []

    def test_unclosed_block_is_fatal(self):
        assert fatal_code("{ 1!") == "E200"

    def test_stray_close_brace_is_fatal(self):
        assert fatal_code("}") == "E202"

    def test_missing_expression_is_fatal(self):
        assert fatal_code("!") == "E201"


class TestControlFlow:
    def test_if_else(self):
        stmt = parse("if (1 < 2) { 3! } else { 4! }").body[0]
        assert isinstance(stmt, IfStatement)
        assert stmt.test.operator.kind == TokenKind.SMALLER
        assert isinstance(stmt.consequent, BlockStatement)
        assert isinstance(stmt.alternate, BlockStatement)

    def test_if_without_else(self):
        stmt = parse("if (a) { 1! }").body[0]
        assert stmt.alternate is None

    def test_else_if_chain(self):
        stmt = parse("if (a) { 1! } else if (b) { 2! } else { 3! }").body[0]
        assert isinstance(stmt.alternate, IfStatement)
        assert isinstance(stmt.alternate.alternate, BlockStatement)

    def test_if_then_more_statements(self):
        program = parse("if (a) { 1! }\r\nx!")
        assert isinstance(program.body[1], ExpressionStatement)

    def test_when(self):
        stmt = parse("when (x == 5) { y! }").body[0]
        assert isinstance(stmt, WhenStatement)
        assert stmt.test.operator.kind == TokenKind.EQUALS

    def test_if_requires_parentheses(self):
        assert fatal_code("if a { 1! }") == "E200"


class TestFunctions:
    def test_block_body(self):
        stmt = parse("function add(a, b) => { return a + b! }").body[0]
        assert isinstance(stmt, FunctionDeclarationStatement)
        assert stmt.identifier.value == "add"
        assert [p.identifier.value for p in stmt.parameters] == ["a", "b"]
        assert stmt.is_async is False
        assert isinstance(stmt.body, BlockStatement)
        assert isinstance(stmt.body.body[0], ReturnStatement)

    def test_expression_body(self):
        stmt = parse("async function one() => 1!").body[0]
        assert stmt.is_async is True
        assert stmt.parameters == []
        assert isinstance(stmt.body, ExpressionStatement)

    def test_missing_arrow_is_fatal(self):
        assert fatal_code("function f() { 1! }") == "E200"

    def test_parameters_are_bare_identifiers(self):
        assert fatal_code("function f(1) => 1!") == "E200"

    def test_trailing_comma_in_parameters_is_fatal(self):
        assert fatal_code("function f(a,) => 1!") == "E200"


class TestCursor:
    def test_advance_and_rewind(self):
        p = make_parser("a b")
        assert p.advance().value == "a"
        assert p.current().kind == TokenKind.WHITESPACE
        p.advance(-1)
        assert p.current().value == "a"

    def test_remaining_and_has_token(self):
        p = make_parser("a")
        assert p.remaining() == 2
        assert p.has_token()
        p.advance()
        assert not p.has_token()

    def test_peek_past_end_returns_eof(self):
        p = make_parser("a")
        assert p.peek(10).kind == TokenKind.EOF

    def test_expect_skips_ignorable(self):
        p = make_parser("   \r\n  x")
        found, tok = p.expect(TokenKind.IDENTIFIER)
        assert found
        assert tok.value == "x"
        assert p.current().kind == TokenKind.EOF

    def test_expect_without_advance(self):
        p = make_parser("  x")
        found, _ = p.expect(TokenKind.IDENTIFIER, advance=False)
        assert found
        assert p.pos == 0

    def test_soft_mismatch_leaves_note(self):
        p = make_parser("x")
        found, tok = p.expect(TokenKind.NUMBER, advance=False, fatal=False)
        assert not found
        assert tok.value == "x"
        assert [d.code for d in p.diagnostics] == ["N200"]
        assert p.diagnostics[0].severity == Severity.NOTE

    def test_fatal_expect_raises(self):
        p = make_parser("x")
        with pytest.raises(FatalError):
            p.expect(TokenKind.NUMBER)

    def test_expect_identifier_matches_text(self):
        p = make_parser("else")
        found, _ = p.expect_identifier("if", fatal=False, advance=False)
        assert not found
        found, _ = p.expect_identifier("else")
        assert found

    def test_custom_ignore_set(self):
        p = make_parser(" x")
        found, tok = p.expect(TokenKind.IDENTIFIER, ignored=frozenset(), fatal=False)
        assert not found
        assert tok.kind == TokenKind.WHITESPACE

    def test_missing_optional_initializer_is_noted(self):
        p = make_parser("const const x!")
        p.parse()
        assert any(d.code == "N200" for d in p.diagnostics)


class TestCustomGrammar:
    def test_parser_owns_its_lookups(self):
        lu = Lookups()
        lu.nud(TokenKind.COLON, BindingPower.PRIMARY,
               lambda parser: StringExpression(":", parser.advance().span))
        tokens = Lexer(":!", "<test>").lex()
        program = Parser(tokens, "<test>", lookups=lu).parse()
        assert program.body[0].expression.value == ":"

        with pytest.raises(FatalError):
            parse(":!")
