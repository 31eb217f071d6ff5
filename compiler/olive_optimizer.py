#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

"""
Tree optimizer for analyzed Olive programs.

The optimizer is a pure function of its input: every rewrite builds new
nodes with `dataclasses.replace`, so the analyzed tree handed in stays
untouched. Each statement rewrite returns the (possibly new) node or None,
meaning the statement is deleted from its enclosing block.

Rewrites:
  - literal arithmetic, comparison, equality and logical expressions fold
  - `not` and `-` applied to literals fold
  - `x + 0`, `0 + x`, `x - 0`, `x * 1`, `1 * x`, `x / 1` reduce to `x`
  - `x * 0` and `0 * x` reduce to `0` when `x` contains no call
  - `false and x`, `true or x` short-circuit to the literal
  - `while false` is deleted
  - `if` cases testing `false` are dropped; a case testing `true` cuts the
    remaining cases and the `else`

Folded literals keep the type of the expression they replace. Nothing here
adds declarations or changes the shape of a binding.
"""

import math
from dataclasses import fields, replace
from typing import Iterator, List, Optional, Union

from olive_ast import (
    Node, Program, Stmt, Block, ExpressionStatement, MutableBinding, ImmutableBinding, WhileStatement, ForStatement,
    IfStatement, BreakStatement, PassStatement, ReturnStatement, FunctionDeclaration,
    Expr, NumberLiteral, BooleanLiteral, StringLiteral, NoneLiteral, IdExpression, SubscriptExpression,
    BinaryExpression, UnaryExpression, MatrixExpression, TupleExpression, SetExpression, DictionaryExpression,
    RangeExpression, StringInterpolation, Interpolation, FunctionCallExpression,
)
from olive_context import CompilationContext
from olive_internal_error import InternalCompilerError
from olive_logger import log_debug
from olive_string_escape import decode_olive_string

Number = Union[int, float]

# Largest integer a JavaScript number holds exactly.
_MAX_SAFE_INTEGER = 2 ** 53 - 1


def _normalize_number(value: Number) -> Number:
    if isinstance(value, float) and value.is_integer() and abs(value) <= _MAX_SAFE_INTEGER:
        return int(value)
    return value


def _fold_arithmetic(op: str, a: Number, b: Number) -> Optional[Number]:
    if op == "+":
        result = a + b
    elif op == "-":
        result = a - b
    elif op == "*":
        result = a * b
    elif op == "/":
        if b == 0:
            return None
        result = a / b
    elif op == "%":
        if b == 0:
            return None
        # JavaScript `%` keeps the sign of the dividend.
        result = math.fmod(a, b)
    else:
        return None

    if isinstance(result, float) and not math.isfinite(result):
        return None
    if isinstance(result, int) and abs(result) > _MAX_SAFE_INTEGER:
        return None
    return _normalize_number(result)


def _fold_relational(op: str, a: Number, b: Number) -> Optional[bool]:
    if op == "<":
        return a < b
    if op == "<=":
        return a <= b
    if op == ">":
        return a > b
    if op == ">=":
        return a >= b
    return None


def _literal_value(expr: Expr):
    if isinstance(expr, StringLiteral):
        return decode_olive_string(expr.value)
    return expr.value


def _is_number(expr: Expr, value: Number) -> bool:
    return isinstance(expr, NumberLiteral) and expr.value == value


def _children(node: Node) -> Iterator[Node]:
    for f in fields(node):
        if not f.compare:
            continue
        value = getattr(node, f.name)
        if isinstance(value, Node):
            yield value
        elif isinstance(value, list):
            for item in value:
                if isinstance(item, Node):
                    yield item


def _contains_call(expr: Node) -> bool:
    if isinstance(expr, FunctionCallExpression):
        return True
    return any(_contains_call(child) for child in _children(expr))


class Optimizer:
    """Post-order rewriter over an analyzed program."""

    def __init__(self, context: Optional[CompilationContext] = None):
        self.context = context
        self.rewrites = 0

    def optimize_program(self, program: Program) -> Program:
        result = replace(program, block=self._optimize_block(program.block))
        log_debug(self.context, f"optimizer applied {self.rewrites} rewrite(s)")
        return result

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def _optimize_block(self, block: Block) -> Block:
        statements: List[Stmt] = []
        for stmt in block.statements:
            optimized = self._optimize_stmt(stmt)
            if optimized is not None:
                statements.append(optimized)
        return replace(block, statements=statements)

    def _optimize_stmt(self, stmt: Stmt) -> Optional[Stmt]:
        if isinstance(stmt, ExpressionStatement):
            return replace(stmt, expression=self._optimize_expr(stmt.expression))

        if isinstance(stmt, MutableBinding):
            return replace(
                stmt,
                targets=[self._optimize_expr(t) for t in stmt.targets],
                sources=[self._optimize_expr(s) for s in stmt.sources],
                fresh=list(stmt.fresh),
            )

        if isinstance(stmt, ImmutableBinding):
            return replace(stmt, targets=list(stmt.targets), sources=[self._optimize_expr(s) for s in stmt.sources])

        if isinstance(stmt, WhileStatement):
            condition = self._optimize_expr(stmt.condition)
            if isinstance(condition, BooleanLiteral) and not condition.value:
                self.rewrites += 1
                return None
            return replace(stmt, condition=condition, body=self._optimize_block(stmt.body))

        if isinstance(stmt, ForStatement):
            return replace(stmt, iterable=self._optimize_expr(stmt.iterable), body=self._optimize_block(stmt.body))

        if isinstance(stmt, IfStatement):
            return self._optimize_if(stmt)

        if isinstance(stmt, (BreakStatement, PassStatement)):
            return stmt

        if isinstance(stmt, ReturnStatement):
            if stmt.value is None:
                return stmt
            return replace(stmt, value=self._optimize_expr(stmt.value))

        if isinstance(stmt, FunctionDeclaration):
            return replace(stmt, body=self._optimize_block(stmt.body))

        if isinstance(stmt, Block):
            return self._optimize_block(stmt)

        raise InternalCompilerError(f"[ICE-2010] optimizer: unknown statement type: {type(stmt).__name__}")

    def _optimize_if(self, stmt: IfStatement) -> Optional[Stmt]:
        cases = []
        alternate = stmt.alternate
        for case in stmt.cases:
            test = self._optimize_expr(case.test)
            if isinstance(test, BooleanLiteral) and not test.value:
                self.rewrites += 1
                continue
            cases.append(replace(case, test=test, body=self._optimize_block(case.body)))
            if isinstance(test, BooleanLiteral) and test.value:
                # Later cases and the else can never run.
                if case is not stmt.cases[-1] or alternate is not None:
                    self.rewrites += 1
                alternate = None
                break

        if alternate is not None:
            alternate = self._optimize_block(alternate)
        if cases:
            return replace(stmt, cases=cases, alternate=alternate)
        if alternate is not None:
            # Keep the else body in a block of its own so its scope is preserved.
            return alternate
        return None

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def _optimize_expr(self, expr: Expr) -> Expr:
        if isinstance(expr, (NumberLiteral, BooleanLiteral, StringLiteral, NoneLiteral, IdExpression)):
            return expr

        if isinstance(expr, SubscriptExpression):
            return replace(expr, iterable=self._optimize_expr(expr.iterable),
                           subscript=self._optimize_expr(expr.subscript))

        if isinstance(expr, BinaryExpression):
            left = self._optimize_expr(expr.left)
            right = self._optimize_expr(expr.right)
            folded = self._fold_binary(expr, left, right)
            if folded is not None:
                self.rewrites += 1
                return folded
            return replace(expr, left=left, right=right)

        if isinstance(expr, UnaryExpression):
            operand = self._optimize_expr(expr.operand)
            if expr.op == "not" and isinstance(operand, BooleanLiteral):
                self.rewrites += 1
                return BooleanLiteral(not operand.value, type=expr.type, span=expr.span)
            if expr.op == "-" and isinstance(operand, NumberLiteral):
                self.rewrites += 1
                return NumberLiteral(-operand.value, type=expr.type, span=expr.span)
            return replace(expr, operand=operand)

        if isinstance(expr, (MatrixExpression, TupleExpression, SetExpression)):
            return replace(expr, values=[self._optimize_expr(v) for v in expr.values])

        if isinstance(expr, DictionaryExpression):
            return replace(expr, entries=[
                replace(e, key=self._optimize_expr(e.key), value=self._optimize_expr(e.value))
                for e in expr.entries
            ])

        if isinstance(expr, RangeExpression):
            return replace(expr, start=self._optimize_expr(expr.start), step=self._optimize_expr(expr.step),
                           end=self._optimize_expr(expr.end))

        if isinstance(expr, StringInterpolation):
            return replace(expr, parts=[self._optimize_expr(p) for p in expr.parts])

        if isinstance(expr, Interpolation):
            return replace(expr, value=self._optimize_expr(expr.value))

        if isinstance(expr, FunctionCallExpression):
            return replace(expr, args=[self._optimize_expr(a) for a in expr.args])

        raise InternalCompilerError(f"[ICE-2020] optimizer: unknown expression type: {type(expr).__name__}")

    def _fold_binary(self, expr: BinaryExpression, left: Expr, right: Expr) -> Optional[Expr]:
        op = expr.op

        if isinstance(left, NumberLiteral) and isinstance(right, NumberLiteral):
            relational = _fold_relational(op, left.value, right.value)
            if relational is not None:
                return BooleanLiteral(relational, type=expr.type, span=expr.span)
            value = _fold_arithmetic(op, left.value, right.value)
            if value is not None:
                return NumberLiteral(value, type=expr.type, span=expr.span)

        if op in ("==", "!="):
            for literal_type in (NumberLiteral, BooleanLiteral, StringLiteral, NoneLiteral):
                if isinstance(left, literal_type) and isinstance(right, literal_type):
                    equal = literal_type is NoneLiteral or _literal_value(left) == _literal_value(right)
                    return BooleanLiteral(equal == (op == "=="), type=expr.type, span=expr.span)
            return None

        if op in ("and", "or"):
            return self._fold_logical(op, left, right)

        return self._fold_identity(op, left, right, expr)

    @staticmethod
    def _fold_logical(op: str, left: Expr, right: Expr) -> Optional[Expr]:
        if not isinstance(left, BooleanLiteral):
            return None
        # The right operand only runs when the left does not decide the result.
        if op == "and":
            return right if left.value else left
        return left if left.value else right

    @staticmethod
    def _fold_identity(op: str, left: Expr, right: Expr, expr: BinaryExpression) -> Optional[Expr]:
        if op == "+":
            if _is_number(right, 0):
                return left
            if _is_number(left, 0):
                return right
        elif op == "-":
            if _is_number(right, 0):
                return left
        elif op == "*":
            if _is_number(right, 1):
                return left
            if _is_number(left, 1):
                return right
            if _is_number(right, 0) and not _contains_call(left):
                return NumberLiteral(0, type=expr.type, span=expr.span)
            if _is_number(left, 0) and not _contains_call(right):
                return NumberLiteral(0, type=expr.type, span=expr.span)
        elif op == "/":
            if _is_number(right, 1):
                return left
        return None


def optimize_program(program: Program, context: Optional[CompilationContext] = None) -> Program:
    return Optimizer(context).optimize_program(program)
