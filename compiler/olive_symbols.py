#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass
from typing import Optional, Union

from olive_ast import FunctionDeclaration
from olive_types import FunctionType, Type


# Entities are compared and hashed by identity: two variables that share an
# identifier are still distinct bindings.


@dataclass(eq=False)
class Variable:
    """
    A variable introduced by a binding, a loop, or a function parameter.
    """
    id: str
    type: Type
    is_mutable: bool


@dataclass(eq=False)
class FunctionVariable:
    """
    A function introduced by a declaration (or a builtin when `decl` is None).
    """
    id: str
    signature: FunctionType
    decl: Optional[FunctionDeclaration] = None

    @property
    def is_builtin(self) -> bool:
        return self.decl is None

    @property
    def return_type(self) -> Optional[Type]:
        return self.signature.result


Entity = Union[Variable, FunctionVariable]


BUILTIN_FUNCTION_NAMES = ("print", "sqrt")


def make_builtin_functions(types) -> dict:
    """
    Build the prelude entities for one session.

    `types` is the session's TypeRegistry.
    """
    return {
        # print accepts one argument of any type and returns nothing.
        "print": FunctionVariable("print", FunctionType((None,), None)),
        "sqrt": FunctionVariable("sqrt", FunctionType((types.number_type,), types.number_type)),
    }
