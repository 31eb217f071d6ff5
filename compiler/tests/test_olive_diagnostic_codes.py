#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from __future__ import annotations

import re
from pathlib import Path

import pytest

from conftest import (
    PROJECT_ROOT, assign, binop, boolean, brk, call, dictionary, expr_stmt, for_, func, has_error_code, if_, let,
    matrix, num, pass_, program, ret, rng, set_of, string, sub, tup, unop, while_,
)
from olive_diagnostics import DIAGNOSTIC_CODE_FAMILIES, OliveSyntaxError
from olive_driver import OliveDriver


def _square():
    return func("square", ["n"], ["number"], "number", ret(binop("*", "n", "n")))


def _declared_function():
    return func("f", [], ["_"], "_")


# Each trigger is a zero-argument callable so every test gets fresh, undecorated nodes.
SEMANTIC_TRIGGERS = {
    "DEC-0010": lambda: program(let("x", "y")),
    "DEC-0020": lambda: program(let("x", num(1)), let("x", num(2))),
    "DEC-0030": lambda: program(let("x", num(1)), assign("x", num(2))),
    "DEC-0040": lambda: program(expr_stmt(call("missing"))),
    "DEC-0050": lambda: program(assign(["a", "a"], [num(1), num(2)])),
    "DEC-0060": lambda: program(assign(num(1), num(2))),
    "DEC-0070": lambda: program(_declared_function(), assign("f", num(1))),
    "TYP-0010": lambda: program(let("x", binop("<", num(1), string("a")))),
    "TYP-0011": lambda: program(let("x", binop("+", num(1), string("a")))),
    "TYP-0012": lambda: program(let("x", binop("==", num(1), string("a")))),
    "TYP-0013": lambda: program(let("x", binop("and", num(1), boolean(True)))),
    "TYP-0020": lambda: program(let("x", unop("not", num(1)))),
    "TYP-0021": lambda: program(let("x", unop("-", string("a")))),
    "TYP-0030": lambda: program(assign("x", num(1)), assign("x", string("a"))),
    "TYP-0031": lambda: program(let("m", matrix(num(1))), assign(sub("m", num(0)), string("a"))),
    "TYP-0032": lambda: program(let("r", rng(num(0), num(1), num(3)))),
    "TYP-0033": lambda: program(assign("s", string("abc")), assign(sub("s", num(0)), string("z"))),
    "TYP-0040": lambda: program(for_("x", num(3), brk())),
    "TYP-0041": lambda: program(let("x", sub(num(3), num(0)))),
    "TYP-0042": lambda: program(let("x", sub(matrix(num(1)), string("a")))),
    "TYP-0043": lambda: program(let("x", sub(tup(num(1), string("a")), num(5)))),
    "TYP-0050": lambda: program(while_(num(1), brk())),
    "TYP-0051": lambda: program(if_((num(1), []))),
    "TYP-0060": lambda: program(func("f", ["a"], ["number"], "string", ret("a"))),
    "TYP-0061": lambda: program(func("f", [], ["_"], "_", ret(num(1)))),
    "TYP-0062": lambda: program(func("f", [], ["_"], "number", ret())),
    "TYP-0070": lambda: program(_square(), expr_stmt(call("square", string("3")))),
    "TYP-0071": lambda: program(let("x", num(1)), expr_stmt(call("x"))),
    "TYP-0072": lambda: program(_declared_function(), let("g", "f")),
    "TYP-0080": lambda: program(let("m", matrix(num(1), string("a")))),
    "TYP-0081": lambda: program(let("s", set_of(num(1), string("a")))),
    "TYP-0082": lambda: program(let("d", dictionary((string("a"), num(1)), (num(2), num(2))))),
    "TYP-0083": lambda: program(let("d", dictionary((string("a"), num(1)), (string("b"), string("c"))))),
    "TYP-0084": lambda: program(let("m", matrix())),
    "TYP-0085": lambda: program(for_("i", rng(string("a"), num(1), num(3)), brk())),
    "TYP-0086": lambda: program(let("d", dictionary((matrix(num(1)), num(5))))),
    "TYP-0090": lambda: program(func("f", ["a"], ["widget"], "_")),
    "TYP-0091": lambda: program(func("f", ["a"], ["number<string>"], "_")),
    "ARI-0010": lambda: program(assign(["a", "b"], [num(1)])),
    "ARI-0020": lambda: program(func("f", ["a", "b"], ["number"], "_")),
    "ARI-0030": lambda: program(_square(), expr_stmt(call("square", num(1), num(2)))),
    "CFL-0010": lambda: program(ret(num(1))),
    "CFL-0020": lambda: program(brk()),
    "CFL-0030": lambda: program(pass_()),
}


def _all_codes() -> list[str]:
    codes: list[str] = []
    for family in DIAGNOSTIC_CODE_FAMILIES.values():
        codes.extend(family)
    return codes


def _syntax_error_parser(source_text: str):
    raise OliveSyntaxError("[SYN-0010] unexpected token", line=1, column=len(source_text))


@pytest.mark.parametrize("code", _all_codes())
def test_diagnostic_code_triggers(code, analyze):
    if code == "SYN-0010":
        output = OliveDriver(parser=_syntax_error_parser).compile_source("let = ", filename="broken.olv")
        diagnostics = output.result.diagnostics
    else:
        diagnostics = analyze(SEMANTIC_TRIGGERS[code]()).diagnostics

    assert len(diagnostics) == 1
    assert has_error_code(diagnostics, code), [d.message for d in diagnostics]


def test_every_trigger_names_a_registered_code():
    assert set(SEMANTIC_TRIGGERS) | {"SYN-0010"} == set(_all_codes())


def test_codes_used_in_sources_are_registered():
    registered = set(_all_codes())
    used = set()
    for path in Path(PROJECT_ROOT).glob("olive_*.py"):
        used.update(re.findall(r"\[([A-Z]{3}-\d{4})\]", path.read_text()))
    user_facing = {code for code in used if not code.startswith("ICE-")}
    # Codes built from a variable are not visible to the scan; everything visible must be registered.
    assert user_facing <= registered
