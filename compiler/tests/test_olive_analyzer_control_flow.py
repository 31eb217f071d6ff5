"""
Tests for loops, conditionals and control-flow statements.
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from conftest import (
    assign, binop, block, boolean, brk, call, dictionary, expr_stmt, for_, func, has_error_code, if_, let, matrix,
    num, pass_, program, ret, rng, set_of, string, tup, while_,
)


def test_while_condition_must_be_boolean(analyze):
    result = analyze(program(while_(num(1), brk())))
    assert has_error_code(result.diagnostics, "TYP-0050")


def test_if_condition_must_be_boolean(analyze):
    result = analyze(program(if_((boolean(True), []), (string("x"), []))))
    assert has_error_code(result.diagnostics, "TYP-0051")


def test_break_and_pass_inside_loops(analyze):
    result = analyze(program(
        while_(boolean(True), if_((boolean(False), [pass_()]), alternate=[brk()])),
        for_("x", matrix(num(1)), brk()),
    ))
    assert not result.has_errors()


def test_break_outside_loop(analyze):
    result = analyze(program(brk()))
    assert result.has_errors()
    assert has_error_code(result.diagnostics, "CFL-0020")


def test_pass_outside_loop(analyze):
    result = analyze(program(if_((boolean(True), [pass_()]))))
    assert has_error_code(result.diagnostics, "CFL-0030")


def test_break_inside_a_function_inside_a_loop(analyze):
    result = analyze(program(while_(boolean(True), func("f", [], ["_"], "_", brk()), brk())))
    assert has_error_code(result.diagnostics, "CFL-0020")


def test_return_outside_function(analyze):
    result = analyze(program(ret(num(1))))
    assert has_error_code(result.diagnostics, "CFL-0010")


def test_for_variable_types(analyze):
    result = analyze(program(
        for_("a", matrix(string("x")), expr_stmt(call("print", "a"))),
        for_("b", set_of(num(1)), expr_stmt(call("print", "b"))),
        for_("c", dictionary((string("k"), num(1))), expr_stmt(call("print", "c"))),
        for_("d", rng(num(0), num(1), num(3)), expr_stmt(call("print", "d"))),
        for_("e", string("abc"), expr_stmt(call("print", "e"))),
        for_("f", tup(num(1), num(2)), expr_stmt(call("print", "f"))),
    ))
    assert not result.has_errors()

    t = result.types
    loop_types = [s.variable.type for s in result.program.block.statements]
    assert loop_types == [t.string_type, t.number_type, t.string_type, t.number_type, t.string_type, t.number_type]
    assert all(not s.variable.is_mutable for s in result.program.block.statements)


def test_for_over_a_non_iterable(analyze):
    result = analyze(program(for_("x", num(3), brk())))
    assert has_error_code(result.diagnostics, "TYP-0040")


def test_for_over_a_mixed_tuple(analyze):
    result = analyze(program(for_("x", tup(num(1), string("a")), brk())))
    assert has_error_code(result.diagnostics, "TYP-0040")


def test_for_variable_is_scoped_to_the_loop(analyze):
    result = analyze(program(for_("i", matrix(num(1)), brk()), let("x", "i")))
    assert has_error_code(result.diagnostics, "DEC-0010")


def test_if_branches_have_their_own_scope(analyze):
    result = analyze(program(
        if_((boolean(True), [assign("inner", num(1))]), alternate=[assign("inner", string("b"))]),
        let("x", "inner"),
    ))
    assert has_error_code(result.diagnostics, "DEC-0010")


def test_while_body_rebinds_outer_counter(analyze):
    result = analyze(program(
        assign("i", num(0)),
        while_(binop("<", "i", num(10)), assign("i", binop("+", "i", num(1)))),
    ))
    assert not result.has_errors()


def test_nested_block_statement_opens_a_scope(analyze):
    result = analyze(program(let("x", num(1)), block(let("x", string("shadow")))))
    assert not result.has_errors()


def test_first_error_aborts_analysis(analyze):
    result = analyze(program(brk(), ret(num(1))))
    assert len(result.diagnostics) == 1
    assert has_error_code(result.diagnostics, "CFL-0020")
