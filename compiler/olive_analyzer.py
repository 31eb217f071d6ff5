#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from olive_analysis import AnalysisResult
from olive_ast import (
    Program, Stmt, Block, ExpressionStatement, MutableBinding, ImmutableBinding, WhileStatement, ForStatement,
    IfStatement, BreakStatement, PassStatement, ReturnStatement, FunctionDeclaration, FunctionAnnotation,
    Expr, NumberLiteral, BooleanLiteral, StringLiteral, NoneLiteral, IdExpression, SubscriptExpression,
    BinaryExpression, UnaryExpression, MatrixExpression, TupleExpression, SetExpression, DictionaryExpression,
    RangeExpression, StringInterpolation, Interpolation, FunctionCallExpression,
)
from olive_diagnostics import ArityError, ControlFlowError, DeclarationError, TypeMismatchError
from olive_internal_error import InternalCompilerError
from olive_logger import log_debug
from olive_scope_context import ScopeArena, ScopeId
from olive_symbols import FunctionVariable, Variable
from olive_types import FunctionType, Type, TypeRegistry, WILDCARD, format_type

RELATIONAL_OPS = ("<", "<=", ">=", ">")
EQUALITY_OPS = ("==", "!=")
LOGICAL_OPS = ("and", "or")
DIVMOD_OP = "/%"


# Semantic analysis for Olive


@dataclass
class SemanticAnalyzer:
    """Scope resolution and static type checking for an Olive program.

    Implements:
      - Expression typing: literals, identifiers, subscripts, operators,
        calls, matrix/tuple/set/dictionary literals, ranges, interpolation
      - Bindings: mutable (declare or rebind) and immutable (declare once)
      - Control flow: while, for, if/else-if/else, break, pass, return
      - Function declarations with annotated signatures
      - Scope rules: shadowing across scopes, one declaration per scope,
        immutability, loop and function membership

    Decorates the tree in place: every expression gets a `type`, identifiers
    and subscripts get a `referent`, loop variables and parameters get their
    `Variable`, function declarations get their `FunctionVariable`.

    The first error is raised and aborts the analysis.
    """
    analysis: AnalysisResult

    def __post_init__(self) -> None:
        if self.analysis.program is None:
            raise ValueError("SemanticAnalyzer requires a program")

        self.program: Program = self.analysis.program
        self.types: TypeRegistry = self.analysis.types
        self.scopes: ScopeArena = self.analysis.scopes
        self.context = self.analysis.context

    # ------------------------------------------------------------------
    # Public entry point
    # ------------------------------------------------------------------

    def analyze(self) -> None:
        """Analyze the whole program inside a prelude scope holding the builtins."""
        if self.analysis.analyzed:
            raise InternalCompilerError("[ICE-1001] program analyzed twice")

        prelude = self.scopes.new_root()
        for builtin in self.analysis.builtins.values():
            self.scopes.add(prelude, builtin)
        self.analysis.prelude_scope = prelude

        self._analyze_block(self.program.block, self.scopes.child_for_block(prelude))
        self.analysis.analyzed = True

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def _analyze_block(self, block: Block, scope: ScopeId) -> None:
        """Analyze `block` directly in `scope`; callers create the scope."""
        for stmt in block.statements:
            self._analyze_stmt(stmt, scope)

    def _analyze_stmt(self, stmt: Stmt, scope: ScopeId) -> None:
        if isinstance(stmt, ExpressionStatement):
            self._infer_expr(stmt.expression, scope)
            return

        if isinstance(stmt, MutableBinding):
            self._analyze_mutable_binding(stmt, scope)
            return

        if isinstance(stmt, ImmutableBinding):
            self._analyze_immutable_binding(stmt, scope)
            return

        if isinstance(stmt, WhileStatement):
            cond_ty = self._infer_expr(stmt.condition, scope)
            self.types.must_be_boolean(
                cond_ty,
                f"[TYP-0050] condition in 'while' statement must be boolean, got '{format_type(cond_ty)}'",
                stmt.condition,
            )
            self._analyze_block(stmt.body, self.scopes.child_for_loop(scope))
            return

        if isinstance(stmt, ForStatement):
            self._analyze_for(stmt, scope)
            return

        if isinstance(stmt, IfStatement):
            for case in stmt.cases:
                test_ty = self._infer_expr(case.test, scope)
                self.types.must_be_boolean(
                    test_ty,
                    f"[TYP-0051] condition in 'if' statement must be boolean, got '{format_type(test_ty)}'",
                    case.test,
                )
                self._analyze_block(case.body, self.scopes.child_for_block(scope))
            if stmt.alternate is not None:
                self._analyze_block(stmt.alternate, self.scopes.child_for_block(scope))
            return

        if isinstance(stmt, BreakStatement):
            if not self.scopes.in_loop(scope):
                raise ControlFlowError("[CFL-0020] 'break' used outside of a loop", stmt)
            return

        if isinstance(stmt, PassStatement):
            if not self.scopes.in_loop(scope):
                raise ControlFlowError("[CFL-0030] 'pass' used outside of a loop", stmt)
            return

        if isinstance(stmt, ReturnStatement):
            self._analyze_return(stmt, scope)
            return

        if isinstance(stmt, FunctionDeclaration):
            self._analyze_function(stmt, scope)
            return

        # Nested blocks (e.g. left behind by the optimizer) open their own scope
        if isinstance(stmt, Block):
            self._analyze_block(stmt, self.scopes.child_for_block(scope))
            return

        raise InternalCompilerError(f"[ICE-1020] unknown statement type: {type(stmt).__name__}")

    @staticmethod
    def _check_binding_arity(targets: List[Expr], sources: List[Expr], stmt: Stmt) -> None:
        if len(targets) != len(sources):
            raise ArityError(
                f"[ARI-0010] number of variables ({len(targets)}) does not equal "
                f"number of initializers ({len(sources)})",
                stmt,
            )

    def _analyze_mutable_binding(self, stmt: MutableBinding, scope: ScopeId) -> None:
        self._check_binding_arity(stmt.targets, stmt.sources, stmt)

        # Sources first: a source never sees a variable introduced by its own binding.
        source_types = [self._infer_expr(source, scope) for source in stmt.sources]

        fresh: List[bool] = []
        seen = set()
        for target, source_ty in zip(stmt.targets, source_types):
            if isinstance(target, IdExpression):
                if target.id in seen:
                    raise DeclarationError(f"[DEC-0050] '{target.id}' appears twice in the same binding", target)
                seen.add(target.id)
                fresh.append(self._bind_identifier(target, source_ty, scope))
            elif isinstance(target, SubscriptExpression):
                target_ty = self._infer_expr(target, scope)
                if target.iterable.type is self.types.string_type:
                    raise TypeMismatchError("[TYP-0033] cannot assign to a character of a string", target)
                source_ty.must_be_compatible_with(
                    target_ty,
                    f"[TYP-0031] cannot assign a value of type '{format_type(source_ty)}' "
                    f"to an element of type '{format_type(target_ty)}'",
                    target,
                )
                fresh.append(False)
            else:
                raise DeclarationError(f"[DEC-0060] cannot bind to a {type(target).__name__}", target)
        stmt.fresh = fresh

    def _bind_identifier(self, target: IdExpression, source_ty: Type, scope: ScopeId) -> bool:
        """Declare or rebind `target`; returns True when a new variable was declared."""
        existing = self.scopes.lookup(scope, target.id)
        if existing is None:
            variable = Variable(target.id, source_ty, is_mutable=True)
            self.scopes.add(scope, variable)
            target.referent = variable
            target.type = source_ty
            log_debug(self.context, f"declared mutable '{target.id}': {format_type(source_ty)}")
            return True

        if isinstance(existing, FunctionVariable):
            raise DeclarationError(f"[DEC-0070] cannot rebind '{target.id}', which is a function", target)
        self.scopes.must_not_rebind_immutable(scope, target.id, target)
        if not existing.is_mutable:
            # Declared immutable in an enclosing scope.
            raise DeclarationError(f"[DEC-0030] cannot rebind '{target.id}', which is immutable", target)

        source_ty.must_be_compatible_with(
            existing.type,
            f"[TYP-0030] cannot rebind '{target.id}' of type '{format_type(existing.type)}' "
            f"to a value of type '{format_type(source_ty)}'",
            target,
        )
        target.referent = existing
        target.type = existing.type
        return False

    def _analyze_immutable_binding(self, stmt: ImmutableBinding, scope: ScopeId) -> None:
        self._check_binding_arity(stmt.targets, stmt.sources, stmt)

        source_types = [self._infer_expr(source, scope) for source in stmt.sources]

        for target, source_ty in zip(stmt.targets, source_types):
            if not isinstance(target, IdExpression):
                raise DeclarationError(
                    f"[DEC-0060] immutable binding target must be an identifier, got a {type(target).__name__}",
                    target,
                )
            self.scopes.must_not_already_be_declared(scope, target.id, target)
            variable = Variable(target.id, source_ty, is_mutable=False)
            self.scopes.add(scope, variable)
            target.referent = variable
            target.type = source_ty
            log_debug(self.context, f"declared immutable '{target.id}': {format_type(source_ty)}")

    def _analyze_for(self, stmt: ForStatement, scope: ScopeId) -> None:
        iterable_ty = self._infer_expr(stmt.iterable, scope, allow_range=True)
        element_ty = self.types.iteration_type(iterable_ty)
        if element_ty is None:
            raise TypeMismatchError(
                f"[TYP-0040] cannot iterate over a value of type '{format_type(iterable_ty)}'",
                stmt.iterable,
            )

        loop_scope = self.scopes.child_for_loop(scope)
        variable = Variable(stmt.id, element_ty, is_mutable=False)
        self.scopes.add(loop_scope, variable)
        stmt.variable = variable
        log_debug(self.context, f"declared loop variable '{stmt.id}': {format_type(element_ty)}")

        self._analyze_block(stmt.body, loop_scope)

    def _analyze_return(self, stmt: ReturnStatement, scope: ScopeId) -> None:
        value_ty: Optional[Type] = None
        if stmt.value is not None:
            value_ty = self._infer_expr(stmt.value, scope)

        self.scopes.assert_inside_function(scope, "[CFL-0010] 'return' used outside of a function", stmt)

        signature = self.scopes.function(scope).signature
        if not signature.returns_checked:
            return
        if signature.result is None:
            if value_ty is not None:
                raise TypeMismatchError(
                    f"[TYP-0061] function declared without a return value cannot return "
                    f"a value of type '{format_type(value_ty)}'",
                    stmt,
                )
            return
        if value_ty is None:
            raise TypeMismatchError(
                f"[TYP-0062] missing return value of type '{format_type(signature.result)}'", stmt)
        value_ty.must_be_compatible_with(
            signature.result,
            f"[TYP-0060] return type mismatch: expected '{format_type(signature.result)}', "
            f"got '{format_type(value_ty)}'",
            stmt.value,
        )

    def _resolve_signature(self, stmt: FunctionDeclaration) -> FunctionType:
        annotation: FunctionAnnotation = stmt.annotation
        param_refs = annotation.param_types
        if len(param_refs) == 1 and param_refs[0].name == WILDCARD and not param_refs[0].args:
            param_refs = []

        if len(param_refs) != len(stmt.params):
            raise ArityError(
                f"[ARI-0020] annotation of '{stmt.id}' declares {len(param_refs)} parameter(s), "
                f"but the function has {len(stmt.params)}",
                stmt,
            )
        for ref in param_refs:
            if ref.name == WILDCARD:
                raise TypeMismatchError("[TYP-0090] '_' can only stand alone in a parameter annotation", ref)
        param_types = tuple(self.types.resolve_type_ref(ref) for ref in param_refs)

        ret = annotation.return_type
        if ret is None:
            return FunctionType(param_types, None, returns_checked=False)
        if ret.name == WILDCARD:
            return FunctionType(param_types, None)
        return FunctionType(param_types, self.types.resolve_type_ref(ret))

    def _analyze_function(self, stmt: FunctionDeclaration, scope: ScopeId) -> None:
        signature = self._resolve_signature(stmt)

        # Registered before the body so the function can call itself.
        self.scopes.must_not_already_be_declared(scope, stmt.id, stmt)
        function = FunctionVariable(stmt.id, signature, decl=stmt)
        self.scopes.add(scope, function)
        stmt.function = function
        log_debug(self.context, f"declared function '{stmt.id}': {format_type(signature)}")

        body_scope = self.scopes.child_for_function_body(scope, function)
        for param, param_ty in zip(stmt.params, signature.params):
            self.scopes.must_not_already_be_declared(body_scope, param.id, param)
            variable = Variable(param.id, param_ty, is_mutable=False)
            self.scopes.add(body_scope, variable)
            param.variable = variable

        self._analyze_block(stmt.body, body_scope)

    # ------------------------------------------------------------------
    # Expression typing
    # ------------------------------------------------------------------

    def _infer_expr(self, expr: Expr, scope: ScopeId, *, allow_range: bool = False) -> Type:
        result: Type

        if isinstance(expr, NumberLiteral):
            result = self.types.number_type

        elif isinstance(expr, BooleanLiteral):
            result = self.types.bool_type

        elif isinstance(expr, StringLiteral):
            result = self.types.string_type

        elif isinstance(expr, NoneLiteral):
            result = self.types.none_type

        elif isinstance(expr, IdExpression):
            result = self._infer_id(expr, scope)

        elif isinstance(expr, SubscriptExpression):
            result = self._infer_subscript(expr, scope)

        elif isinstance(expr, BinaryExpression):
            result = self._infer_binary(expr, scope)

        elif isinstance(expr, UnaryExpression):
            result = self._infer_unary(expr, scope)

        elif isinstance(expr, (MatrixExpression, SetExpression)):
            result = self._infer_homogeneous(expr, scope)

        elif isinstance(expr, TupleExpression):
            result = self.types.tuple(self._infer_expr(v, scope) for v in expr.values)

        elif isinstance(expr, DictionaryExpression):
            result = self._infer_dictionary(expr, scope)

        elif isinstance(expr, RangeExpression):
            if not allow_range:
                raise TypeMismatchError("[TYP-0032] a range can only be used as the source of a 'for' loop", expr)
            result = self._infer_range(expr, scope)

        elif isinstance(expr, StringInterpolation):
            for part in expr.parts:
                self._infer_expr(part, scope)
            result = self.types.string_type

        elif isinstance(expr, Interpolation):
            result = self._infer_expr(expr.value, scope)

        elif isinstance(expr, FunctionCallExpression):
            result = self._infer_call(expr, scope)

        else:
            raise InternalCompilerError(f"[ICE-1030] unknown expression type: {type(expr).__name__}")

        expr.type = result
        return result

    def _infer_id(self, expr: IdExpression, scope: ScopeId) -> Type:
        entity = self.scopes.lookup(scope, expr.id)
        if entity is None:
            raise DeclarationError(f"[DEC-0010] undeclared identifier '{expr.id}'", expr)
        if isinstance(entity, FunctionVariable):
            raise TypeMismatchError(f"[TYP-0072] function '{expr.id}' cannot be used as a value", expr)
        expr.referent = entity
        return entity.type

    def _infer_subscript(self, expr: SubscriptExpression, scope: ScopeId) -> Type:
        subscript_ty = self._infer_expr(expr.subscript, scope)
        base_ty = self._infer_expr(expr.iterable, scope)

        literal_index = None
        if isinstance(expr.subscript, NumberLiteral) and float(expr.subscript.value).is_integer():
            literal_index = int(expr.subscript.value)

        result = self.types.subscript_type(base_ty, subscript_ty, expr, literal_index)

        base = expr.iterable
        while isinstance(base, SubscriptExpression):
            base = base.iterable
        if isinstance(base, IdExpression):
            expr.referent = base.referent
        return result

    def _infer_binary(self, expr: BinaryExpression, scope: ScopeId) -> Type:
        left_ty = self._infer_expr(expr.left, scope)
        right_ty = self._infer_expr(expr.right, scope)
        op = expr.op

        if op in RELATIONAL_OPS:
            self._must_have_number_operands(expr, left_ty, right_ty, "TYP-0010")
            return self.types.bool_type

        if op in EQUALITY_OPS:
            left_ty.must_be_mutually_compatible_with(
                right_ty,
                f"[TYP-0012] '{op}' must have compatible operands, "
                f"got '{format_type(left_ty)}' and '{format_type(right_ty)}'",
                expr,
            )
            return self.types.bool_type

        if op in LOGICAL_OPS:
            for operand, ty in ((expr.left, left_ty), (expr.right, right_ty)):
                self.types.must_be_boolean(
                    ty, f"[TYP-0013] '{op}' must have boolean operands, got '{format_type(ty)}'", operand)
            return self.types.bool_type

        # All other binary operators are arithmetic
        self._must_have_number_operands(expr, left_ty, right_ty, "TYP-0011")
        if op == DIVMOD_OP:
            # quotient and remainder
            return self.types.tuple((self.types.number_type, self.types.number_type))
        return self.types.number_type

    def _must_have_number_operands(self, expr: BinaryExpression, left_ty: Type, right_ty: Type, code: str) -> None:
        for operand, ty in ((expr.left, left_ty), (expr.right, right_ty)):
            self.types.must_be_number(
                ty, f"[{code}] '{expr.op}' must have number operands, got '{format_type(ty)}'", operand)

    def _infer_unary(self, expr: UnaryExpression, scope: ScopeId) -> Type:
        operand_ty = self._infer_expr(expr.operand, scope)
        if expr.op == "not":
            self.types.must_be_boolean(
                operand_ty, f"[TYP-0020] 'not' requires a boolean operand, got '{format_type(operand_ty)}'", expr)
        elif expr.op == "-":
            self.types.must_be_number(
                operand_ty, f"[TYP-0021] negation requires a number operand, got '{format_type(operand_ty)}'", expr)
        else:
            raise InternalCompilerError(f"[ICE-1040] unknown unary operator '{expr.op}'")
        return operand_ty

    def _infer_homogeneous(self, expr, scope: ScopeId) -> Type:
        kind = "matrix" if isinstance(expr, MatrixExpression) else "set"
        if not expr.values:
            raise TypeMismatchError(f"[TYP-0084] cannot infer the element type of an empty {kind}", expr)

        code = "TYP-0080" if kind == "matrix" else "TYP-0081"
        element_ty = self._infer_expr(expr.values[0], scope)
        for value in expr.values[1:]:
            value_ty = self._infer_expr(value, scope)
            value_ty.must_be_compatible_with(
                element_ty,
                f"[{code}] all {kind} elements must have the same type: "
                f"expected '{format_type(element_ty)}', got '{format_type(value_ty)}'",
                value,
            )

        if kind == "matrix":
            return self.types.matrix(element_ty)
        return self.types.set(element_ty)

    def _infer_dictionary(self, expr: DictionaryExpression, scope: ScopeId) -> Type:
        if not expr.entries:
            raise TypeMismatchError("[TYP-0084] cannot infer the key and value types of an empty dictionary", expr)

        key_ty: Optional[Type] = None
        value_ty: Optional[Type] = None
        for entry in expr.entries:
            k = self._infer_expr(entry.key, scope)
            v = self._infer_expr(entry.value, scope)
            if key_ty is None:
                self.types.must_be_dictionary_key(k, entry.key)
                key_ty, value_ty = k, v
                continue
            k.must_be_compatible_with(
                key_ty,
                f"[TYP-0082] all dictionary keys must have the same type: "
                f"expected '{format_type(key_ty)}', got '{format_type(k)}'",
                entry.key,
            )
            v.must_be_compatible_with(
                value_ty,
                f"[TYP-0083] all dictionary values must have the same type: "
                f"expected '{format_type(value_ty)}', got '{format_type(v)}'",
                entry.value,
            )
        return self.types.dictionary(key_ty, value_ty)

    def _infer_range(self, expr: RangeExpression, scope: ScopeId) -> Type:
        for label, bound in (("start", expr.start), ("step", expr.step), ("end", expr.end)):
            bound_ty = self._infer_expr(bound, scope)
            self.types.must_be_number(
                bound_ty, f"[TYP-0085] range {label} must be a number, got '{format_type(bound_ty)}'", bound)
        return self.types.range_type

    def _infer_call(self, expr: FunctionCallExpression, scope: ScopeId) -> Type:
        callee = expr.callee
        entity = self.scopes.lookup(scope, callee.id)
        if entity is None:
            raise DeclarationError(f"[DEC-0040] call to undeclared function '{callee.id}'", callee)
        if not isinstance(entity, FunctionVariable):
            raise TypeMismatchError(f"[TYP-0071] '{callee.id}' is not a function", callee)

        signature = entity.signature
        callee.referent = entity
        callee.type = signature

        if len(expr.args) != len(signature.params):
            raise ArityError(
                f"[ARI-0030] '{callee.id}' expects {len(signature.params)} argument(s), got {len(expr.args)}",
                expr,
            )

        for i, (arg, param_ty) in enumerate(zip(expr.args, signature.params), start=1):
            arg_ty = self._infer_expr(arg, scope)
            if param_ty is None:
                continue
            arg_ty.must_be_compatible_with(
                param_ty,
                f"[TYP-0070] argument {i} of '{callee.id}' must have type '{format_type(param_ty)}', "
                f"got '{format_type(arg_ty)}'",
                arg,
            )

        if signature.result is None:
            return self.types.none_type
        return signature.result
