"""
End-to-end tests: generated JavaScript is executed with node.
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import pytest

from conftest import (
    assign, binop, boolean, brk, call, dictionary, expr_stmt, for_, func, ident, if_, interp, let, matrix, num,
    pass_, program, ret, rng, set_of, string, sub, tup, unop, while_,
)


def _output(compile_js, run_js, prog, optimize=False) -> list[str]:
    ok, stdout, stderr = run_js(compile_js(prog, optimize=optimize))
    assert ok, stderr
    return stdout.splitlines()


def _print(e):
    return expr_stmt(call("print", e))


@pytest.mark.parametrize("optimize", [False, True])
def test_let_arithmetic(compile_js, run_js, optimize):
    prog = program(let("x", binop("+", num(3), num(4))), _print("x"))
    assert _output(compile_js, run_js, prog, optimize) == ["7"]


def test_swap(compile_js, run_js):
    prog = program(
        assign(["a", "b"], [num(1), num(2)]),
        assign(["a", "b"], ["b", "a"]),
        _print("a"),
        _print("b"),
    )
    assert _output(compile_js, run_js, prog) == ["2", "1"]


def test_for_with_break_halts(compile_js, run_js):
    prog = program(for_(
        "x", matrix(num(1), num(2), num(3)),
        if_((binop("==", "x", num(2)), [brk()])),
        _print("x"),
    ))
    assert _output(compile_js, run_js, prog) == ["1"]


def test_pass_skips_to_the_next_iteration(compile_js, run_js):
    prog = program(for_(
        "x", matrix(num(1), num(2), num(3)),
        if_((binop("==", "x", num(2)), [pass_()])),
        _print("x"),
    ))
    assert _output(compile_js, run_js, prog) == ["1", "3"]


@pytest.mark.parametrize("inclusive_start, inclusive_end, expected", [
    (True, True, ["1", "2", "3", "4", "5"]),
    (True, False, ["1", "2", "3", "4"]),
    (False, True, ["2", "3", "4", "5"]),
    (False, False, ["2", "3", "4"]),
])
def test_range_bounds(compile_js, run_js, inclusive_start, inclusive_end, expected):
    prog = program(for_("i", rng(num(1), num(1), num(5), inclusive_start, inclusive_end), _print("i")))
    assert _output(compile_js, run_js, prog) == expected


def test_range_with_negative_fractional_step(compile_js, run_js):
    prog = program(for_("i", rng(num(3), unop("-", num(0.5)), num(1), True, True), _print("i")))
    assert _output(compile_js, run_js, prog) == ["3", "2.5", "2", "1.5", "1"]


def test_inconsistent_range_throws(compile_js, run_js):
    js = compile_js(program(for_("i", rng(num(5), num(1), num(1)), _print("i"))))
    ok, _, stderr = run_js(js)
    assert not ok
    assert "Range expression generator values are invalid" in stderr


def test_divmod(compile_js, run_js):
    prog = program(
        let("qr", binop("/%", num(7), num(2))),
        _print(sub("qr", num(0))),
        _print(sub("qr", num(1))),
    )
    assert _output(compile_js, run_js, prog) == ["3", "1"]


def test_recursive_function(compile_js, run_js):
    fact = func(
        "fact", ["n"], ["number"], "number",
        if_((binop("<=", "n", num(1)), [ret(num(1))])),
        ret(binop("*", "n", call("fact", binop("-", "n", num(1))))),
    )
    prog = program(fact, _print(call("fact", num(5))))
    assert _output(compile_js, run_js, prog) == ["120"]


def test_while_loop_counts(compile_js, run_js):
    prog = program(
        assign(["i", "total"], [num(0), num(0)]),
        while_(
            binop("<", "i", num(5)),
            assign(["i", "total"], [binop("+", "i", num(1)), binop("+", "total", "i")]),
        ),
        _print("total"),
    )
    assert _output(compile_js, run_js, prog) == ["10"]


def test_dictionary_iteration_and_update(compile_js, run_js):
    prog = program(
        let("d", dictionary((string("a"), num(1)), (string("b"), num(2)))),
        assign(sub("d", string("a")), num(10)),
        for_("k", "d", _print(interp("", ident("k"), "=", sub("d", ident("k"))))),
    )
    assert _output(compile_js, run_js, prog) == ["a=10", "b=2"]


def test_set_iteration_removes_duplicates(compile_js, run_js):
    prog = program(for_("x", set_of(num(1), num(1), num(2)), _print("x")))
    assert _output(compile_js, run_js, prog) == ["1", "2"]


def test_string_iteration_and_subscript(compile_js, run_js):
    prog = program(
        let("s", string("ab")),
        for_("c", "s", _print("c")),
        _print(sub("s", num(1))),
    )
    assert _output(compile_js, run_js, prog) == ["a", "b", "b"]


def test_matrix_element_update(compile_js, run_js):
    prog = program(
        let("m", matrix(matrix(num(1), num(2)), matrix(num(3), num(4)))),
        assign(sub(sub("m", num(1)), num(0)), num(9)),
        _print(sub(sub("m", num(1)), num(0))),
    )
    assert _output(compile_js, run_js, prog) == ["9"]


def test_tuple_elements(compile_js, run_js):
    prog = program(let("t", tup(num(1), string("one"))), _print(sub("t", num(1))))
    assert _output(compile_js, run_js, prog) == ["one"]


def test_sqrt_and_escapes(compile_js, run_js):
    prog = program(_print(call("sqrt", num(16))), _print(string('tab\\there "q"')))
    assert _output(compile_js, run_js, prog) == ["4", 'tab\there "q"']


def test_shadowing_in_nested_scopes(compile_js, run_js):
    prog = program(
        let("x", num(1)),
        if_((boolean(True), [let("x", num(2)), _print("x")])),
        _print("x"),
    )
    assert _output(compile_js, run_js, prog) == ["2", "1"]


def test_optimized_program_behaves_the_same(compile_js, run_js):
    def build():
        return program(
            assign("x", binop("*", binop("+", num(2), num(0)), num(1))),
            while_(boolean(False), assign("x", num(100))),
            if_(
                (binop(">", num(1), num(2)), [_print(string("never"))]),
                (boolean(True), [_print("x")]),
                alternate=[_print(string("never"))],
            ),
        )

    plain = _output(compile_js, run_js, build())
    optimized = _output(compile_js, run_js, build(), optimize=True)
    assert plain == optimized == ["2"]


def test_dictionary_lookup_with_computed_keys(compile_js, run_js):
    prog = program(
        let("names", dictionary((num(1), string("one")), (num(2), string("two")))),
        let("flags", dictionary((boolean(True), string("yes")), (boolean(False), string("no")))),
        _print(sub("names", binop("+", num(1), num(1)))),
        _print(sub("flags", binop("<", num(1), num(2)))),
    )
    assert _output(compile_js, run_js, prog) == ["two", "yes"]


def test_matrix_of_strings_element_replacement(compile_js, run_js):
    prog = program(
        let("words", matrix(string("abc"), string("def"))),
        assign(sub("words", num(0)), string("zbc")),
        _print(sub("words", num(0))),
    )
    assert _output(compile_js, run_js, prog) == ["zbc"]
