"""AST node definitions for the Berd language.

Every node is a frozen dataclass tagged with a ``NodeKind``. The tag is
stamped on the class by ``_variant`` and collected in ``NODE_TYPES`` so the
evaluator's dispatch table can be checked for coverage.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, fields, is_dataclass
from enum import Enum, auto
from typing import Any, ClassVar, Union

from berd.source import Span
from berd.tokens import CombinedAssignmentToken, Token


class NodeKind(Enum):
    EXPRESSION_STATEMENT = auto()
    BLOCK_STATEMENT = auto()
    VARIABLE_DECLARATION_STATEMENT = auto()
    FUNCTION_DECLARATION_STATEMENT = auto()
    RETURN_STATEMENT = auto()
    IF_STATEMENT = auto()
    WHEN_STATEMENT = auto()
    CLASS_DECLARATION_STATEMENT = auto()
    DELETE_STATEMENT = auto()
    REVERSE_STATEMENT = auto()
    IMPORT_STATEMENT = auto()
    EXPORT_STATEMENT = auto()
    ASSIGNMENT_EXPRESSION = auto()
    PREFIX_EXPRESSION = auto()
    STATE_EXPRESSION = auto()
    BINARY_EXPRESSION = auto()
    NUMBER_EXPRESSION = auto()
    STRING_EXPRESSION = auto()
    SYMBOL_EXPRESSION = auto()
    OBJECT_DECLARATION_EXPRESSION = auto()
    ARRAY_DECLARATION_EXPRESSION = auto()
    MEMBER_EXPRESSION = auto()
    CALL_EXPRESSION = auto()
    END_OF_INPUT_STATEMENT = auto()
    END_OF_BLOCK_STATEMENT = auto()
    BRANCHING_STATEMENT = auto()
    BRANCHING_EXPRESSION = auto()


NODE_TYPES: dict[NodeKind, type[Node]] = {}


def _variant(kind: NodeKind):
    def register(cls):
        cls.kind = kind
        NODE_TYPES[kind] = cls
        return cls
    return register


@dataclass(frozen=True)
class Node:
    kind: ClassVar[NodeKind]

    @property
    def kind_name(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class Lifetime:
    duration: int
    unit: str  # "s" or "lines"


@dataclass(frozen=True)
class FunctionParameter:
    identifier: Token
    lifetime: Lifetime | None = None


@dataclass(frozen=True)
class Property:
    key: str
    value: Expr | None
    shorthand: bool = False
    computed: bool = False


# ── Expressions ──────────────────────────────────────────────────


@_variant(NodeKind.ASSIGNMENT_EXPRESSION)
@dataclass(frozen=True)
class AssignmentExpression(Node):
    assignee: Expr
    value: Expr
    span: Span


@_variant(NodeKind.PREFIX_EXPRESSION)
@dataclass(frozen=True)
class PrefixExpression(Node):
    prefix: Token
    right: Expr
    span: Span


@_variant(NodeKind.STATE_EXPRESSION)
@dataclass(frozen=True)
class StateExpression(Node):
    """``++x``, ``--x`` or ``previous``/``next``/``current`` applied to a target."""

    operator: Token
    argument: Expr
    span: Span


@_variant(NodeKind.BINARY_EXPRESSION)
@dataclass(frozen=True)
class BinaryExpression(Node):
    left: Expr
    operator: Token
    right: Expr
    span: Span


@_variant(NodeKind.NUMBER_EXPRESSION)
@dataclass(frozen=True)
class NumberExpression(Node):
    value: float
    span: Span


@_variant(NodeKind.STRING_EXPRESSION)
@dataclass(frozen=True)
class StringExpression(Node):
    value: str
    span: Span


@_variant(NodeKind.SYMBOL_EXPRESSION)
@dataclass(frozen=True)
class SymbolExpression(Node):
    symbol: str
    span: Span


@_variant(NodeKind.OBJECT_DECLARATION_EXPRESSION)
@dataclass(frozen=True)
class ObjectDeclarationExpression(Node):
    properties: list[Property]
    span: Span


@_variant(NodeKind.ARRAY_DECLARATION_EXPRESSION)
@dataclass(frozen=True)
class ArrayDeclarationExpression(Node):
    elements: list[Expr]
    span: Span


@_variant(NodeKind.MEMBER_EXPRESSION)
@dataclass(frozen=True)
class MemberExpression(Node):
    obj: Expr
    property: Expr
    computed: bool
    span: Span


@_variant(NodeKind.CALL_EXPRESSION)
@dataclass(frozen=True)
class CallExpression(Node):
    callee: Expr
    arguments: list[Expr]
    span: Span


@_variant(NodeKind.BRANCHING_EXPRESSION)
@dataclass(frozen=True)
class BranchingExpression(Node):
    """Candidate parses of an ambiguous expression. Never resolved."""

    branches: list[Expr]
    span: Span


Expr = Union[
    AssignmentExpression, PrefixExpression, StateExpression, BinaryExpression,
    NumberExpression, StringExpression, SymbolExpression,
    ObjectDeclarationExpression, ArrayDeclarationExpression,
    MemberExpression, CallExpression, BranchingExpression,
]


# ── Statements ───────────────────────────────────────────────────


@_variant(NodeKind.EXPRESSION_STATEMENT)
@dataclass(frozen=True)
class ExpressionStatement(Node):
    expression: Expr
    span: Span


@_variant(NodeKind.BLOCK_STATEMENT)
@dataclass(frozen=True)
class BlockStatement(Node):
    body: list[Stmt]
    span: Span


@_variant(NodeKind.VARIABLE_DECLARATION_STATEMENT)
@dataclass(frozen=True)
class VariableDeclarationStatement(Node):
    identifier: str
    modifiers: tuple[bool, bool]  # (can reassign, can mutate)
    value: Expr | None
    lifetime: Lifetime | None
    span: Span


@_variant(NodeKind.FUNCTION_DECLARATION_STATEMENT)
@dataclass(frozen=True)
class FunctionDeclarationStatement(Node):
    identifier: Token
    parameters: list[FunctionParameter]
    is_async: bool
    body: BlockStatement | ExpressionStatement
    span: Span


@_variant(NodeKind.RETURN_STATEMENT)
@dataclass(frozen=True)
class ReturnStatement(Node):
    argument: Expr
    span: Span


@_variant(NodeKind.IF_STATEMENT)
@dataclass(frozen=True)
class IfStatement(Node):
    test: Expr
    consequent: BlockStatement
    alternate: IfStatement | BlockStatement | None
    span: Span


@_variant(NodeKind.WHEN_STATEMENT)
@dataclass(frozen=True)
class WhenStatement(Node):
    test: Expr
    consequent: BlockStatement
    span: Span


# Reserved statement forms; no grammar produces them yet.


@_variant(NodeKind.CLASS_DECLARATION_STATEMENT)
@dataclass(frozen=True)
class ClassDeclarationStatement(Node):
    span: Span


@_variant(NodeKind.DELETE_STATEMENT)
@dataclass(frozen=True)
class DeleteStatement(Node):
    span: Span


@_variant(NodeKind.REVERSE_STATEMENT)
@dataclass(frozen=True)
class ReverseStatement(Node):
    span: Span


@_variant(NodeKind.IMPORT_STATEMENT)
@dataclass(frozen=True)
class ImportStatement(Node):
    span: Span


@_variant(NodeKind.EXPORT_STATEMENT)
@dataclass(frozen=True)
class ExportStatement(Node):
    span: Span


@_variant(NodeKind.END_OF_INPUT_STATEMENT)
@dataclass(frozen=True)
class EndOfInputStatement(Node):
    span: Span


@_variant(NodeKind.END_OF_BLOCK_STATEMENT)
@dataclass(frozen=True)
class EndOfBlockStatement(Node):
    span: Span


@_variant(NodeKind.BRANCHING_STATEMENT)
@dataclass(frozen=True)
class BranchingStatement(Node):
    """Candidate parses of an ambiguous statement. Never resolved."""

    branches: list[Stmt | list[Stmt]]
    span: Span


Stmt = Union[
    ExpressionStatement, BlockStatement, VariableDeclarationStatement,
    FunctionDeclarationStatement, ReturnStatement, IfStatement, WhenStatement,
    ClassDeclarationStatement, DeleteStatement, ReverseStatement,
    ImportStatement, ExportStatement, EndOfInputStatement, EndOfBlockStatement,
    BranchingStatement,
]


# ── Serialization ────────────────────────────────────────────────


def _plain(value: Any) -> Any:
    if isinstance(value, Node):
        return node_to_dict(value)
    if isinstance(value, CombinedAssignmentToken):
        return {"kind": value.kind.name, "value": value.value,
                "operation": value.operation.name}
    if isinstance(value, Token):
        return {"kind": value.kind.name, "value": value.value}
    if is_dataclass(value):
        return {f.name: _plain(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value


def node_to_dict(node: Node) -> dict[str, Any]:
    """Convert a node to plain data, leaving out its tag and span."""
    out: dict[str, Any] = {"kind_name": node.kind_name}
    for f in fields(node):
        if f.name == "span":
            continue
        out[f.name] = _plain(getattr(node, f.name))
    return out


def ast_to_json(node: Node, indent: int | None = 2) -> str:
    return json.dumps(node_to_dict(node), indent=indent, ensure_ascii=False)
