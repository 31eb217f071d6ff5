#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from __future__ import annotations

import re
import shutil
import subprocess
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from olive_ast import (
    Block, BooleanLiteral, BreakStatement, Case, DictionaryExpression, ExpressionStatement, ForStatement,
    FunctionAnnotation, FunctionCallExpression, FunctionDeclaration, IdExpression, IfStatement, ImmutableBinding,
    Interpolation, KeyValuePair, MatrixExpression, MutableBinding, NoneLiteral, NumberLiteral, Parameter,
    PassStatement, Program, RangeExpression, ReturnStatement, SetExpression, StringInterpolation, StringLiteral,
    SubscriptExpression, TupleExpression, TypeRef, UnaryExpression, WhileStatement, BinaryExpression,
)
from olive_driver import OliveDriver


# ---------------------------------------------------------------------------
# Tree builders
#
# There is no parser in this repository; tests build trees directly. Strings
# passed where an expression is expected become identifiers.
# ---------------------------------------------------------------------------


def num(value):
    return NumberLiteral(value)


def boolean(value: bool):
    return BooleanLiteral(value)


def string(text: str):
    return StringLiteral(text)


def none():
    return NoneLiteral()


def ident(name: str):
    return IdExpression(name)


def _expr(e):
    return IdExpression(e) if isinstance(e, str) else e


def binop(op: str, left, right):
    return BinaryExpression(op, _expr(left), _expr(right))


def unop(op: str, operand):
    return UnaryExpression(op, _expr(operand))


def sub(base, index):
    return SubscriptExpression(_expr(base), _expr(index))


def matrix(*values):
    return MatrixExpression([_expr(v) for v in values])


def tup(*values):
    return TupleExpression([_expr(v) for v in values])


def set_of(*values):
    return SetExpression([_expr(v) for v in values])


def dictionary(*pairs):
    return DictionaryExpression([KeyValuePair(_expr(k), _expr(v)) for k, v in pairs])


def rng(start, step, end, inclusive_start: bool = True, inclusive_end: bool = False):
    return RangeExpression(_expr(start), _expr(step), _expr(end), inclusive_start, inclusive_end)


def call(name: str, *args):
    return FunctionCallExpression(IdExpression(name), [_expr(a) for a in args])


def interp(*parts):
    """Plain strings are literal segments; anything else is interpolated."""
    return StringInterpolation([StringLiteral(p) if isinstance(p, str) else Interpolation(p) for p in parts])


def expr_stmt(e):
    return ExpressionStatement(_expr(e))


def _list(x):
    return list(x) if isinstance(x, (list, tuple)) else [x]


def assign(targets, sources):
    """Mutable binding: `a, b = x, y`."""
    return MutableBinding([_expr(t) for t in _list(targets)], [_expr(s) for s in _list(sources)])


def let(targets, sources):
    """Immutable binding: `let a, b = x, y`."""
    return ImmutableBinding([_expr(t) for t in _list(targets)], [_expr(s) for s in _list(sources)])


def block(*stmts):
    return Block(list(stmts))


def while_(condition, *body):
    return WhileStatement(_expr(condition), block(*body))


def for_(name: str, iterable, *body):
    return ForStatement(name, _expr(iterable), block(*body))


def if_(*cases, alternate=None):
    """`cases` are (test, [statements]) pairs; `alternate` a list of statements."""
    return IfStatement(
        [Case(_expr(test), block(*body)) for test, body in cases],
        None if alternate is None else block(*alternate),
    )


def brk():
    return BreakStatement()


def pass_():
    return PassStatement()


def ret(value=None):
    return ReturnStatement(None if value is None else _expr(value))


_TYPE_TOKEN_RE = re.compile(r"[A-Za-z_]+|[<>,]")


def tref(text: str) -> TypeRef:
    """Parse an annotation type like `dictionary<string, matrix<number>>`."""
    tokens = _TYPE_TOKEN_RE.findall(text)
    pos = 0

    def parse() -> TypeRef:
        nonlocal pos
        name = tokens[pos]
        pos += 1
        args = []
        if pos < len(tokens) and tokens[pos] == "<":
            pos += 1
            args.append(parse())
            while tokens[pos] == ",":
                pos += 1
                args.append(parse())
            pos += 1  # ">"
        return TypeRef(name, args)

    return parse()


def func(name: str, params, param_types, return_type, *body):
    """
    `name :: param_types -> return_type` followed by `name(params) { body }`.

    `param_types` is a list of type strings (["_"] for no parameters);
    `return_type` is a type string, "_" for no value, or None when omitted.
    """
    annotation = FunctionAnnotation(
        [tref(t) for t in param_types],
        None if return_type is None else tref(return_type),
    )
    return FunctionDeclaration(name, annotation, [Parameter(p) for p in params], block(*body))


def program(*stmts) -> Program:
    return Program(block(*stmts))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def driver() -> OliveDriver:
    return OliveDriver()


@pytest.fixture
def analyze(driver: OliveDriver):
    """Analyze a program tree.

    Usage:
        def test_something(analyze):
            result = analyze(program(let("x", num(1))))
            assert not result.has_errors()
    """

    def _analyze(prog: Program):
        return driver.analyze(prog)

    return _analyze


@pytest.fixture
def compile_js(driver: OliveDriver):
    """Analyze (optionally optimize) and generate JavaScript for a program tree."""

    def _compile(prog: Program, optimize: bool = False) -> str:
        output = driver.compile(prog, optimize=optimize)
        assert output.ok, [d.message for d in output.result.diagnostics]
        return output.text

    return _compile


@pytest.fixture
def run_js(tmp_path: Path):
    """Run generated JavaScript with node; returns (ok, stdout, stderr)."""
    node = shutil.which("node")
    if node is None:
        pytest.skip("node is not available")

    def _run(js_code: str) -> tuple[bool, str, str]:
        js_file = tmp_path / "output.js"
        js_file.write_text(js_code)

        result = subprocess.run(
            [node, str(js_file)],
            capture_output=True,
            text=True,
            timeout=10,
        )
        return result.returncode == 0, result.stdout, result.stderr

    return _run


def has_error_code(diagnostics, code: str) -> bool:
    """Check if any diagnostic contains the given error code.

    Args:
        diagnostics: List of Diagnostic objects
        code: Error code string like "TYP-0030" or "[TYP-0030]"
    """
    if not code.startswith("["):
        code = f"[{code}]"
    return any(code in d.message for d in diagnostics)
