#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional, Union

if TYPE_CHECKING:
    from olive_symbols import Entity, FunctionVariable, Variable
    from olive_types import Type


# ==========================
# AST definitions
# ==========================


@dataclass
class Span:
    start_line: int
    start_column: int
    end_line: int
    end_column: int


@dataclass
class Node:
    span: Optional[Span] = field(default=None, repr=False, compare=False, kw_only=True)


# --- type annotations ---

@dataclass
class TypeRef(Node):
    name: str  # "number", "matrix", "_" (wildcard), ...
    args: List["TypeRef"] = field(default_factory=list)


@dataclass
class FunctionAnnotation(Node):
    """
    `number, string -> bool`

    A single `_` parameter type declares a function without parameters.
    A `_` return type declares a function that returns no value; a missing
    return type leaves returns unchecked.
    """
    param_types: List[TypeRef]
    return_type: Optional[TypeRef] = None


# --- expressions ---

@dataclass
class Expr(Node):
    # Set by the analyzer.
    type: Optional[Type] = field(default=None, repr=False, compare=False, kw_only=True)


@dataclass
class NumberLiteral(Expr):
    value: Union[int, float]


@dataclass
class BooleanLiteral(Expr):
    value: bool


@dataclass
class StringLiteral(Expr):
    value: str  # escape sequences preserved, no surrounding quotes


@dataclass
class NoneLiteral(Expr):
    pass


@dataclass
class IdExpression(Expr):
    id: str
    referent: Optional[Entity] = field(default=None, repr=False, compare=False, kw_only=True)


@dataclass
class SubscriptExpression(Expr):
    iterable: Expr
    subscript: Expr
    # Entity of the innermost identifier base, if any.
    referent: Optional[Entity] = field(default=None, repr=False, compare=False, kw_only=True)


@dataclass
class BinaryExpression(Expr):
    op: str
    left: Expr
    right: Expr


@dataclass
class UnaryExpression(Expr):
    op: str  # "not" or "-"
    operand: Expr


@dataclass
class MatrixExpression(Expr):
    values: List[Expr]


@dataclass
class TupleExpression(Expr):
    values: List[Expr]


@dataclass
class SetExpression(Expr):
    values: List[Expr]


@dataclass
class KeyValuePair(Node):
    key: Expr
    value: Expr


@dataclass
class DictionaryExpression(Expr):
    entries: List[KeyValuePair]


@dataclass
class RangeExpression(Expr):
    start: Expr
    step: Expr
    end: Expr
    inclusive_start: bool = True
    inclusive_end: bool = False


@dataclass
class Interpolation(Expr):
    """An embedded `{expr}` inside a string interpolation."""
    value: Expr


@dataclass
class StringInterpolation(Expr):
    # StringLiteral segments and Interpolation parts, in source order
    parts: List[Expr]


@dataclass
class FunctionCallExpression(Expr):
    callee: IdExpression
    args: List[Expr]


# --- statements ---

@dataclass
class Stmt(Node):
    pass


@dataclass
class Block(Stmt):
    statements: List[Stmt]


@dataclass
class ExpressionStatement(Stmt):
    expression: Expr


@dataclass
class MutableBinding(Stmt):
    targets: List[Expr]  # IdExpression | SubscriptExpression
    sources: List[Expr]
    # Parallel to `targets`; set by the analyzer for identifiers introduced here.
    fresh: List[bool] = field(default_factory=list, repr=False, compare=False, kw_only=True)

    @property
    def is_declaration(self) -> bool:
        return bool(self.fresh) and all(self.fresh)


@dataclass
class ImmutableBinding(Stmt):
    targets: List[IdExpression]
    sources: List[Expr]


@dataclass
class WhileStatement(Stmt):
    condition: Expr
    body: Block


@dataclass
class ForStatement(Stmt):
    id: str
    iterable: Expr
    body: Block
    variable: Optional[Variable] = field(default=None, repr=False, compare=False, kw_only=True)


@dataclass
class Case(Node):
    test: Expr
    body: Block


@dataclass
class IfStatement(Stmt):
    cases: List[Case]
    alternate: Optional[Block] = None


@dataclass
class BreakStatement(Stmt):
    pass


@dataclass
class PassStatement(Stmt):
    """Skip to the next loop iteration."""
    pass


@dataclass
class ReturnStatement(Stmt):
    value: Optional[Expr] = None


@dataclass
class Parameter(Node):
    id: str
    variable: Optional[Variable] = field(default=None, repr=False, compare=False, kw_only=True)


@dataclass
class FunctionDeclaration(Stmt):
    id: str
    annotation: FunctionAnnotation
    params: List[Parameter]
    body: Block
    function: Optional[FunctionVariable] = field(default=None, repr=False, compare=False, kw_only=True)


@dataclass
class Program(Node):
    block: Block
    filename: Optional[str] = field(default=None, repr=False, compare=False, kw_only=True)
