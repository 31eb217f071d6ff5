"""
Olive Code Generation Backend

Orchestrates JavaScript generation from an analyzed (and optionally
optimized) Olive program.

The backend decides WHAT to emit and WHEN, reading the types and referents
the analyzer left on the tree, and delegates the HOW to the JsEmitter.
Lowering is structural: each statement becomes one JavaScript statement (or
a short fixed sequence for multi-target bindings) in source order, so side
effects are never reordered.
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass, field
from typing import List, NoReturn, Optional, TextIO

from olive_analysis import AnalysisResult
from olive_ast import (
    Stmt, Block, ExpressionStatement, MutableBinding, ImmutableBinding, WhileStatement, ForStatement,
    IfStatement, BreakStatement, PassStatement, ReturnStatement, FunctionDeclaration,
    Expr, NumberLiteral, BooleanLiteral, StringLiteral, NoneLiteral, IdExpression, SubscriptExpression,
    BinaryExpression, UnaryExpression, MatrixExpression, TupleExpression, SetExpression, DictionaryExpression,
    RangeExpression, StringInterpolation, Interpolation, FunctionCallExpression,
)
from olive_internal_error import ICELocation, InternalCompilerError
from olive_js_emitter import JsEmitter
from olive_js_runtime import BUILTIN_RUNTIME, DIVMOD_HELPER, RANGE_HELPER, helper_functions
from olive_logger import log_debug, log_stage
from olive_symbols import Entity
from olive_types import DictionaryType, Type


@dataclass
class Backend:
    """
    Target-independent orchestration of code generation.

    The backend walks the decorated tree; the emitter owns the JavaScript
    syntax and the entity name cache.
    """

    analysis: AnalysisResult

    # Target-specific emitter (handles all code emission)
    emitter: JsEmitter = field(default_factory=JsEmitter)

    def __post_init__(self):
        self.emitter.set_context(self.analysis.context)

    def generate(self) -> str:
        """
        Main entry point: generate the complete JavaScript program.

        Returns JavaScript source code as a string.
        """
        self._generate()
        return self.emitter.get_output()

    def generate_to(self, sink: TextIO) -> None:
        """Stream the generated program to `sink` line by line, in source order."""
        self.emitter.out.sink = sink
        try:
            self._generate()
        finally:
            self.emitter.out.sink = None

    def _generate(self) -> None:
        log_stage(self.analysis.context, "Generating JavaScript")
        program = self.analysis.program
        if program is None:
            raise ValueError("Cannot generate code without a program")

        if self.analysis.has_errors():
            raise ValueError("Cannot generate code with semantic errors")

        if not self.analysis.analyzed:
            self.ice("[ICE-3010] code generation requires an analyzed program", node=program)

        if self.analysis.context.emit_header_comment:
            self.emitter.emit_header()

        log_debug(self.analysis.context, "Emitting runtime library")
        self._emit_runtime()

        self.emitter.emit_blank_line()
        self._emit_block_sequence(program.block)

    def _emit_runtime(self) -> None:
        for name, builtin in self.analysis.builtins.items():
            runtime = BUILTIN_RUNTIME.get(name)
            if runtime is None:
                self.ice(f"[ICE-3020] no runtime implementation for builtin '{name}'")
            self.emitter.emit_runtime_function(self.emitter.js_name(builtin), runtime)
        for name, helper in helper_functions():
            self.emitter.emit_runtime_function(name, helper)

    # -------------------------------------------------------------------------
    # Internal compiler error handling
    # -------------------------------------------------------------------------

    def ice(self, message: str, *, node=None) -> NoReturn:
        program = self.analysis.program
        filename = program.filename if program is not None else None
        span = getattr(node, "span", None) if node is not None else None
        raise InternalCompilerError(message, ICELocation(filename=filename, span=span))

    def _expect_type(self, expr: Expr) -> Type:
        if expr.type is None:
            self.ice("[ICE-3110] missing inferred type for expression", node=expr)
        return expr.type

    def _expect_referent(self, expr: Expr) -> Entity:
        referent = getattr(expr, "referent", None)
        if referent is None:
            self.ice("[ICE-3120] identifier was not resolved", node=expr)
        return referent

    def _name_of(self, entity: Optional[Entity], node) -> str:
        if entity is None:
            self.ice("[ICE-3130] declaration has no entity", node=node)
        return self.emitter.js_name(entity)

    # -------------------------------------------------------------------------
    # Statement emission
    # -------------------------------------------------------------------------

    def _emit_block_sequence(self, block: Block) -> None:
        for stmt in block.statements:
            self._emit_stmt(stmt)

    def _emit_stmt(self, stmt: Stmt) -> None:
        if isinstance(stmt, ExpressionStatement):
            self.emitter.emit_expr_stmt(self._emit_expr(stmt.expression))

        elif isinstance(stmt, MutableBinding):
            self._emit_mutable_binding(stmt)

        elif isinstance(stmt, ImmutableBinding):
            targets = [self._name_of(self._expect_referent(t), t) for t in stmt.targets]
            sources = [self._emit_expr(s) for s in stmt.sources]
            self.emitter.emit_declaration("const", targets, sources)

        elif isinstance(stmt, WhileStatement):
            self.emitter.emit_while_header(self._emit_expr(stmt.condition))
            self._emit_block_sequence(stmt.body)
            self.emitter.emit_block_end()

        elif isinstance(stmt, ForStatement):
            self._emit_for(stmt)

        elif isinstance(stmt, IfStatement):
            self._emit_if(stmt)

        elif isinstance(stmt, BreakStatement):
            self.emitter.emit_break_stmt()

        elif isinstance(stmt, PassStatement):
            self.emitter.emit_continue_stmt()

        elif isinstance(stmt, ReturnStatement):
            value = None if stmt.value is None else self._emit_expr(stmt.value)
            self.emitter.emit_return_stmt(value)

        elif isinstance(stmt, FunctionDeclaration):
            name = self._name_of(stmt.function, stmt)
            params = [self._name_of(p.variable, p) for p in stmt.params]
            self.emitter.emit_function_header(name, params)
            self._emit_block_sequence(stmt.body)
            self.emitter.emit_block_end()

        elif isinstance(stmt, Block):
            self.emitter.emit_block_start()
            self._emit_block_sequence(stmt)
            self.emitter.emit_block_end()

        else:
            self.ice(f"[ICE-3030] unsupported statement type for code generation: {type(stmt).__name__}", node=stmt)

    def _is_dictionary_subscript(self, target: Expr) -> bool:
        return (isinstance(target, SubscriptExpression)
                and isinstance(self._expect_type(target.iterable), DictionaryType))

    def _emit_mutable_binding(self, stmt: MutableBinding) -> None:
        if len(stmt.fresh) != len(stmt.targets):
            self.ice("[ICE-3040] binding was not analyzed", node=stmt)

        sources = [self._emit_expr(s) for s in stmt.sources]

        if any(self._is_dictionary_subscript(t) for t in stmt.targets):
            self._emit_binding_through_temp(stmt, sources)
            return

        targets = [self._emit_expr(t) for t in stmt.targets]
        if stmt.is_declaration:
            self.emitter.emit_declaration("let", targets, sources)
            return

        fresh_names = [t for t, fresh in zip(targets, stmt.fresh) if fresh]
        if fresh_names:
            self.emitter.emit_uninitialized_let(fresh_names)
        self.emitter.emit_assignment(targets, sources)

    def _emit_binding_through_temp(self, stmt: MutableBinding, sources: List[str]) -> None:
        # Map entries can't be destructuring targets: evaluate every source
        # into a temporary first, then store each target in order.
        tmp = self.emitter.fresh_tmp()
        self.emitter.emit_declaration("const", [tmp], [self.emitter.bracket_if_necessary(sources)])

        for i, (target, fresh) in enumerate(zip(stmt.targets, stmt.fresh)):
            value = tmp if len(sources) == 1 else self.emitter.emit_index(tmp, str(i))
            if self._is_dictionary_subscript(target):
                self.emitter.emit_map_set_stmt(
                    self._emit_expr(target.iterable), self._emit_expr(target.subscript), value)
            elif fresh:
                self.emitter.emit_declaration("let", [self._emit_expr(target)], [value])
            else:
                self.emitter.emit_assignment([self._emit_expr(target)], [value])

    def _emit_for(self, stmt: ForStatement) -> None:
        var_name = self._name_of(stmt.variable, stmt)
        iterable = self._emit_expr(stmt.iterable)
        if isinstance(self._expect_type(stmt.iterable), DictionaryType):
            iterable = self.emitter.emit_map_keys(iterable)
        self.emitter.emit_for_of_header(var_name, iterable)
        self._emit_block_sequence(stmt.body)
        self.emitter.emit_block_end()

    def _emit_if(self, stmt: IfStatement) -> None:
        for i, case in enumerate(stmt.cases):
            cond = self._emit_expr(case.test)
            if i == 0:
                self.emitter.emit_if_header(cond)
            else:
                self.emitter.emit_else_if(cond)
            self._emit_block_sequence(case.body)

        if stmt.alternate is not None:
            self.emitter.emit_else()
            self._emit_block_sequence(stmt.alternate)
        self.emitter.emit_block_end()

    # -------------------------------------------------------------------------
    # Expression emission
    # -------------------------------------------------------------------------

    def _emit_expr(self, expr: Expr) -> str:
        self._expect_type(expr)

        if isinstance(expr, NumberLiteral):
            return self.emitter.emit_number_literal(expr.value)

        if isinstance(expr, BooleanLiteral):
            return self.emitter.emit_bool_literal(expr.value)

        if isinstance(expr, StringLiteral):
            return self.emitter.emit_string_literal(expr.value)

        if isinstance(expr, NoneLiteral):
            return self.emitter.emit_none_literal()

        if isinstance(expr, IdExpression):
            return self.emitter.js_name(self._expect_referent(expr))

        if isinstance(expr, SubscriptExpression):
            base = self._emit_expr(expr.iterable)
            subscript = self._emit_expr(expr.subscript)
            if isinstance(expr.iterable.type, DictionaryType):
                return self.emitter.emit_map_get(base, subscript)
            return self.emitter.emit_index(base, subscript)

        if isinstance(expr, BinaryExpression):
            left = self._emit_expr(expr.left)
            right = self._emit_expr(expr.right)
            if expr.op == "/%":
                return self.emitter.emit_function_call(DIVMOD_HELPER, [left, right])
            return self.emitter.emit_binary_op(expr.op, left, right)

        if isinstance(expr, UnaryExpression):
            return self.emitter.emit_unary_op(expr.op, self._emit_expr(expr.operand))

        if isinstance(expr, (MatrixExpression, TupleExpression)):
            return self.emitter.emit_array([self._emit_expr(v) for v in expr.values])

        if isinstance(expr, SetExpression):
            return self.emitter.emit_set([self._emit_expr(v) for v in expr.values])

        if isinstance(expr, DictionaryExpression):
            return self.emitter.emit_map([(self._emit_expr(e.key), self._emit_expr(e.value)) for e in expr.entries])

        if isinstance(expr, RangeExpression):
            return self.emitter.emit_function_call(RANGE_HELPER, [
                self.emitter.emit_bool_literal(expr.inclusive_start),
                self._emit_expr(expr.start),
                self._emit_expr(expr.step),
                self._emit_expr(expr.end),
                self.emitter.emit_bool_literal(expr.inclusive_end),
            ])

        if isinstance(expr, StringInterpolation):
            parts = []
            for part in expr.parts:
                if isinstance(part, StringLiteral):
                    parts.append((False, part.value))
                elif isinstance(part, Interpolation):
                    parts.append((True, self._emit_expr(part.value)))
                else:
                    parts.append((True, self._emit_expr(part)))
            return self.emitter.emit_template_literal(parts)

        if isinstance(expr, Interpolation):
            return self._emit_expr(expr.value)

        if isinstance(expr, FunctionCallExpression):
            callee = self.emitter.js_name(self._expect_referent(expr.callee))
            return self.emitter.emit_function_call(callee, [self._emit_expr(a) for a in expr.args])

        self.ice(f"[ICE-3050] unsupported expression type for code generation: {type(expr).__name__}", node=expr)
