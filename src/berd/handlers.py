"""Grammar rules for every Berd construct.

Each function owns one production and is registered into a ``Lookups``
table by ``register_defaults``. Statement and prefix (nud) handlers are
called with the cursor on their first token; infix (led) handlers are called
with the already parsed left operand and the cursor on the operator.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from berd.ast_nodes import (
    AssignmentExpression,
    BinaryExpression,
    BlockStatement,
    CallExpression,
    EndOfBlockStatement,
    EndOfInputStatement,
    Expr,
    ExpressionStatement,
    FunctionDeclarationStatement,
    FunctionParameter,
    IfStatement,
    MemberExpression,
    NumberExpression,
    PrefixExpression,
    ReturnStatement,
    StateExpression,
    Stmt,
    StringExpression,
    SymbolExpression,
    VariableDeclarationStatement,
    WhenStatement,
    ast_to_json,
)
from berd.grammar import BindingPower as BP
from berd.tokens import TERMINATORS, CombinedAssignmentToken, Token, TokenKind

if TYPE_CHECKING:
    from berd.grammar import Lookups
    from berd.parser import Parser

_ASSIGNABLE = (SymbolExpression, MemberExpression)

STATE_KEYWORDS = ("previous", "next", "current")


def _shape_error(parser: Parser, code: str, message: str, node: Expr) -> None:
    parser.fatal(code, message, node.span, notes=[ast_to_json(node)])


# ── Statements ───────────────────────────────────────────────────


def parse_block_statement(parser: Parser) -> BlockStatement:
    _, open_ = parser.expect(TokenKind.OPEN_CURLY)
    body: list[Stmt] = []
    while parser.has_token():
        stmt = parser.parse_statement()
        if isinstance(stmt, (EndOfBlockStatement, EndOfInputStatement)):
            break
        body.append(stmt)
    _, close = parser.expect(TokenKind.CLOSE_CURLY)
    return BlockStatement(body, open_.span.to(close.span))


def parse_end_of_input(parser: Parser) -> EndOfInputStatement:
    return EndOfInputStatement(parser.current().span)


def parse_variable_declaration(parser: Parser) -> VariableDeclarationStatement:
    """``const|var const|var name [= value]!``

    The first word decides whether the name can be reassigned, the second
    whether the value can be mutated.
    """
    _, first = parser.expect_identifier("const", "var")
    _, second = parser.expect_identifier("const", "var")
    _, name = parser.expect(TokenKind.IDENTIFIER)

    value = None
    has_value, _ = parser.expect(TokenKind.EQUAL_SIGN, advance=False, fatal=False)
    if has_value:
        parser.expect(TokenKind.EQUAL_SIGN)
        value = parser.parse_expression()

    _, end = parser.expect(*TERMINATORS)
    return VariableDeclarationStatement(
        identifier=name.value,
        modifiers=(first.value == "var", second.value == "var"),
        value=value,
        lifetime=None,
        span=first.span.to(end.span),
    )


def _parse_parameters(parser: Parser) -> list[FunctionParameter]:
    parser.expect(TokenKind.OPEN_PAREN)
    params: list[FunctionParameter] = []
    parser.skip_ignorable()
    while parser.has_token() and parser.current().kind is not TokenKind.CLOSE_PAREN:
        if params:
            parser.expect(TokenKind.COMMA)
        _, name = parser.expect(TokenKind.IDENTIFIER)
        params.append(FunctionParameter(name))
        parser.skip_ignorable()
    parser.expect(TokenKind.CLOSE_PAREN)
    return params


def parse_function_declaration(parser: Parser) -> FunctionDeclarationStatement:
    start = parser.current()
    is_async, _ = parser.expect_identifier("async", advance=False, fatal=False)
    if is_async:
        parser.expect_identifier("async")
    parser.expect_identifier("function")
    _, name = parser.expect(TokenKind.IDENTIFIER)
    params = _parse_parameters(parser)
    parser.expect(TokenKind.ARROW)

    has_block, _ = parser.expect(TokenKind.OPEN_CURLY, advance=False, fatal=False)
    if has_block:
        body = parse_block_statement(parser)
    else:
        expression = parser.parse_expression()
        _, end = parser.expect(*TERMINATORS)
        body = ExpressionStatement(expression, expression.span.to(end.span))

    return FunctionDeclarationStatement(
        identifier=name,
        parameters=params,
        is_async=is_async,
        body=body,
        span=start.span.to(body.span),
    )


def parse_return_statement(parser: Parser) -> ReturnStatement:
    _, keyword = parser.expect_identifier("return")
    argument = parser.parse_expression()
    _, end = parser.expect(*TERMINATORS)
    return ReturnStatement(argument, keyword.span.to(end.span))


def _parse_condition(parser: Parser) -> Expr:
    parser.expect(TokenKind.OPEN_PAREN)
    test = parser.parse_expression()
    parser.expect(TokenKind.CLOSE_PAREN)
    return test


def parse_if_statement(parser: Parser) -> IfStatement:
    _, keyword = parser.expect_identifier("if")
    test = _parse_condition(parser)
    consequent = parse_block_statement(parser)

    alternate: IfStatement | BlockStatement | None = None
    has_else, _ = parser.expect_identifier("else", advance=False, fatal=False)
    if has_else:
        parser.expect_identifier("else")
        chained, _ = parser.expect_identifier("if", advance=False, fatal=False)
        alternate = parse_if_statement(parser) if chained else parse_block_statement(parser)

    end = alternate.span if alternate is not None else consequent.span
    return IfStatement(test, consequent, alternate, keyword.span.to(end))


def parse_when_statement(parser: Parser) -> WhenStatement:
    _, keyword = parser.expect_identifier("when")
    test = _parse_condition(parser)
    consequent = parse_block_statement(parser)
    return WhenStatement(test, consequent, keyword.span.to(consequent.span))


# ── Prefix expressions ───────────────────────────────────────────


def parse_primary_expression(parser: Parser) -> Expr:
    tok = parser.advance()
    match tok.kind:
        case TokenKind.NUMBER:
            return NumberExpression(float(tok.value), tok.span)
        case TokenKind.STRING:
            return StringExpression(tok.value, tok.span)
        case TokenKind.IDENTIFIER:
            return SymbolExpression(tok.value, tok.span)
    parser.fatal("E201", f"cannot create a primary expression from {tok}", tok.span)


def parse_grouping_expression(parser: Parser) -> Expr:
    parser.expect(TokenKind.OPEN_PAREN)
    expression = parser.parse_expression()
    parser.expect(TokenKind.CLOSE_PAREN)
    return expression


def parse_prefix_expression(parser: Parser) -> PrefixExpression:
    _, prefix = parser.expect(TokenKind.SUBTRACT, TokenKind.LOGICAL_NOT, TokenKind.BITWISE_NOT)
    right = parser.parse_expression(BP.PREFIX)
    return PrefixExpression(prefix, right, prefix.span.to(right.span))


def parse_state_expression(parser: Parser) -> StateExpression:
    is_keyword, _ = parser.expect_identifier(*STATE_KEYWORDS, advance=False, fatal=False)
    if is_keyword:
        _, operator = parser.expect_identifier(*STATE_KEYWORDS)
    else:
        _, operator = parser.expect(TokenKind.PLUS_PLUS, TokenKind.MINUS_MINUS)

    argument = parser.parse_expression(BP.PREFIX)
    if not isinstance(argument, _ASSIGNABLE):
        _shape_error(parser, "E205",
                     f"'{operator.value}' needs a variable or member, found {argument.kind_name}",
                     argument)
    return StateExpression(operator, argument, operator.span.to(argument.span))


# ── Infix expressions ────────────────────────────────────────────


def parse_binary_expression(parser: Parser, left: Expr, bp: BP) -> BinaryExpression:
    operator = parser.advance()
    right = parser.parse_expression(bp)
    return BinaryExpression(left, operator, right, left.span.to(right.span))


def parse_assignment_expression(parser: Parser, left: Expr, bp: BP) -> AssignmentExpression:
    if not isinstance(left, _ASSIGNABLE):
        _shape_error(parser, "E203",
                     f"cannot assign to {left.kind_name}; expected a variable or member",
                     left)
    _, assignment = parser.expect(TokenKind.COMBINED_ASSIGNMENT, TokenKind.EQUAL_SIGN)
    value = parser.parse_expression(BP.ASSIGNMENT)

    if isinstance(assignment, CombinedAssignmentToken):
        # x += 1 becomes x = x + 1
        operator = Token(assignment.operation, assignment.value[:-1], assignment.span)
        value = BinaryExpression(left, operator, value, left.span.to(value.span))
    return AssignmentExpression(left, value, left.span.to(value.span))


def parse_member_expression(parser: Parser, left: Expr, bp: BP) -> MemberExpression:
    tok = parser.advance()
    if tok.kind is TokenKind.DOT:
        prop = parser.parse_expression(bp)
        if not isinstance(prop, (SymbolExpression, NumberExpression)):
            _shape_error(parser, "E204",
                         f"property after '.' must be a name or number, found {prop.kind_name}",
                         prop)
        return MemberExpression(left, prop, False, left.span.to(prop.span))
    if tok.kind is TokenKind.OPEN_BRACKET:
        prop = parser.parse_expression()
        _, close = parser.expect(TokenKind.CLOSE_BRACKET)
        return MemberExpression(left, prop, True, left.span.to(close.span))
    parser.fatal("E204", f"cannot create a member expression from {tok}", tok.span)


def parse_call_expression(parser: Parser, left: Expr, bp: BP) -> CallExpression:
    parser.expect(TokenKind.OPEN_PAREN)
    arguments: list[Expr] = []
    parser.skip_ignorable()
    while parser.has_token() and parser.current().kind is not TokenKind.CLOSE_PAREN:
        if arguments:
            parser.expect(TokenKind.COMMA)
        arguments.append(parser.parse_expression())
    _, close = parser.expect(TokenKind.CLOSE_PAREN)
    return CallExpression(left, arguments, left.span.to(close.span))


# ── Registration ─────────────────────────────────────────────────

_BINARY_OPERATORS: dict[TokenKind, BP] = {
    TokenKind.LOGICAL_AND: BP.LOGICAL_AND,
    TokenKind.LOGICAL_OR: BP.LOGICAL_OR,
    TokenKind.BITWISE_OR: BP.BITWISE_OR,
    TokenKind.BITWISE_XOR: BP.BITWISE_XOR,
    TokenKind.BITWISE_AND: BP.BITWISE_AND,
    TokenKind.EQUALS: BP.EQUALITY,
    TokenKind.NOT_EQ: BP.EQUALITY,
    TokenKind.STRONG_EQ: BP.EQUALITY,
    TokenKind.STRONG_NOT_EQ: BP.EQUALITY,
    TokenKind.STRONGEST_EQ: BP.EQUALITY,
    TokenKind.STRONGEST_NOT_EQ: BP.EQUALITY,
    TokenKind.SMALLER: BP.RELATIONAL,
    TokenKind.GREATER: BP.RELATIONAL,
    TokenKind.SMALLER_EQ: BP.RELATIONAL,
    TokenKind.GREATER_EQ: BP.RELATIONAL,
    TokenKind.BIT_SHIFT_LEFT: BP.BITWISE_SHIFT,
    TokenKind.BIT_SHIFT_RIGHT: BP.BITWISE_SHIFT,
    TokenKind.BIT_SHIFT_UNSIGNED_LEFT: BP.BITWISE_SHIFT,
    TokenKind.BIT_SHIFT_UNSIGNED_RIGHT: BP.BITWISE_SHIFT,
    TokenKind.ADD: BP.ADDITIVE,
    TokenKind.SUBTRACT: BP.ADDITIVE,
    TokenKind.MULTIPLY: BP.MULTIPLICATIVE,
    TokenKind.DIVIDE: BP.MULTIPLICATIVE,
    TokenKind.MODULO: BP.MULTIPLICATIVE,
    TokenKind.EXPONENT: BP.EXPONENTIATION,
}


def register_defaults(lu: Lookups) -> None:
    """Install the built-in grammar into ``lu``."""
    for kind in (TokenKind.SUBTRACT, TokenKind.LOGICAL_NOT, TokenKind.BITWISE_NOT):
        lu.nud(kind, BP.PREFIX, parse_prefix_expression)
    for kind in (TokenKind.PLUS_PLUS, TokenKind.MINUS_MINUS):
        lu.nud(kind, BP.PREFIX, parse_state_expression)
    for word in STATE_KEYWORDS:
        lu.nud(TokenKind.IDENTIFIER, BP.PREFIX, parse_state_expression, word)

    for kind, bp in _BINARY_OPERATORS.items():
        lu.led(kind, bp, parse_binary_expression)

    for kind in (TokenKind.NUMBER, TokenKind.STRING, TokenKind.IDENTIFIER):
        lu.nud(kind, BP.PRIMARY, parse_primary_expression)
    lu.nud(TokenKind.OPEN_PAREN, BP.GROUPING, parse_grouping_expression)

    lu.led(TokenKind.DOT, BP.MEMBER_CALL, parse_member_expression)
    lu.led(TokenKind.OPEN_BRACKET, BP.MEMBER_CALL, parse_member_expression)
    lu.led(TokenKind.OPEN_PAREN, BP.MEMBER_CALL, parse_call_expression)

    lu.led(TokenKind.EQUAL_SIGN, BP.ASSIGNMENT, parse_assignment_expression)
    lu.led(TokenKind.COMBINED_ASSIGNMENT, BP.ASSIGNMENT, parse_assignment_expression)

    for word in ("const", "var"):
        lu.stmt(TokenKind.IDENTIFIER, parse_variable_declaration, word)
    for word in ("function", "async"):
        lu.stmt(TokenKind.IDENTIFIER, parse_function_declaration, word)
    lu.stmt(TokenKind.IDENTIFIER, parse_return_statement, "return")
    lu.stmt(TokenKind.IDENTIFIER, parse_if_statement, "if")
    lu.stmt(TokenKind.IDENTIFIER, parse_when_statement, "when")
    lu.stmt(TokenKind.OPEN_CURLY, parse_block_statement)
    lu.stmt(TokenKind.EOF, parse_end_of_input)
