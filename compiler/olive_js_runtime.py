#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

"""
Runtime support library emitted at the top of every generated program.

Each function is described by its parameters and body lines; body lines are
indented two spaces per nesting level and re-indented by the emitter.
Builtin functions are named through the entity name cache, helpers use fixed
`$`-prefixed names that no Olive identifier can produce.
"""

from dataclasses import dataclass
from typing import List, Tuple

RANGE_HELPER = "$olive_range"
DIVMOD_HELPER = "$olive_divmod"


@dataclass(frozen=True)
class RuntimeFunction:
    params: Tuple[str, ...]
    body: Tuple[str, ...]


BUILTIN_RUNTIME = {
    "print": RuntimeFunction(
        params=("value",),
        body=("console.log(value);",),
    ),
    "sqrt": RuntimeFunction(
        params=("value",),
        body=("return Math.sqrt(value);",),
    ),
}

# Materializes a range as an array. Steps may be negative or fractional;
# bounds that can never be reached from `start` are an error.
RANGE_RUNTIME = RuntimeFunction(
    params=("inclusiveStart", "start", "step", "end", "inclusiveEnd"),
    body=(
        "if (step === 0) {",
        "  throw new Error('Range step must not be zero');",
        "}",
        "const ascending = step > 0;",
        "if (ascending ? end < start : end > start) {",
        "  throw new Error('Range expression generator values are invalid');",
        "}",
        "const inRange = (value) => {",
        "  if (inclusiveEnd) {",
        "    return ascending ? value <= end : value >= end;",
        "  }",
        "  return ascending ? value < end : value > end;",
        "};",
        "const result = [];",
        "let current = inclusiveStart ? start : start + step;",
        "while (inRange(current)) {",
        "  result.push(current);",
        "  current += step;",
        "}",
        "return result;",
    ),
)

# Floored quotient and JavaScript remainder.
DIVMOD_RUNTIME = RuntimeFunction(
    params=("a", "b"),
    body=(
        "const quotient = Math.floor(a / b);",
        "const remainder = a % b;",
        "return [quotient, remainder];",
    ),
)


def helper_functions() -> List[Tuple[str, RuntimeFunction]]:
    return [(RANGE_HELPER, RANGE_RUNTIME), (DIVMOD_HELPER, DIVMOD_RUNTIME)]


def split_indent(line: str) -> Tuple[int, str]:
    """Nesting depth and text of a runtime body line."""
    text = line.lstrip(" ")
    return (len(line) - len(text)) // 2, text
