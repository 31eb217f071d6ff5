#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from olive_ast import Node, TypeRef
from olive_diagnostics import TypeMismatchError

# ==========================================
# The semantic type system for Olive.
# ==========================================

OLIVE_PRIMITIVE_TYPES = ("bool", "number", "string", "none", "range")
OLIVE_COMPOSITE_TYPES = {"matrix": 1, "set": 1, "dictionary": 2}  # name -> type argument count (tuple is variadic)

WILDCARD = "_"


class Type:
    """
    Base class for all semantic types.

    Primitives are compatible by identity, composites by shape.
    """
    is_iterable = False

    def is_compatible_with(self, other: "Type") -> bool:
        return self is other

    def must_be_compatible_with(self, other: "Type", message: str, node: Optional[Node] = None) -> None:
        if not self.is_compatible_with(other):
            raise TypeMismatchError(message, node)

    def must_be_mutually_compatible_with(self, other: "Type", message: str, node: Optional[Node] = None) -> None:
        if not (self.is_compatible_with(other) or other.is_compatible_with(self)):
            raise TypeMismatchError(message, node)

    def iteration_type(self) -> Optional["Type"]:
        """Type of the loop variable when iterating over a value of this type."""
        return None

    def assert_subscript_valid_type(
            self,
            subscript_type: "Type",
            types: "TypeRegistry",
            node: Optional[Node] = None,
            literal_index: Optional[int] = None,
    ) -> "Type":
        """Check `value[subscript]` and return the result type."""
        raise TypeMismatchError(f"[TYP-0041] a value of type '{format_type(self)}' cannot be subscripted", node)


@dataclass(frozen=True, eq=False)
class PrimitiveType(Type):
    name: str  # "number", etc.


@dataclass(frozen=True)
class MatrixType(Type):
    element: Type

    is_iterable = True

    def is_compatible_with(self, other: Type) -> bool:
        return isinstance(other, MatrixType) and self.element.is_compatible_with(other.element)

    @property
    def element_type(self) -> Type:
        return self.element

    def iteration_type(self) -> Optional[Type]:
        return self.element

    def assert_subscript_valid_type(self, subscript_type, types, node=None, literal_index=None) -> Type:
        types.must_be_number(subscript_type, "[TYP-0042] matrix subscript must be a number", node)
        return self.element


@dataclass(frozen=True)
class TupleType(Type):
    elements: Tuple[Type, ...]

    is_iterable = True

    def is_compatible_with(self, other: Type) -> bool:
        if not isinstance(other, TupleType) or len(self.elements) != len(other.elements):
            return False
        return all(a.is_compatible_with(b) for a, b in zip(self.elements, other.elements))

    @property
    def element_type(self) -> Optional[Type]:
        """The shared element type, or None when the elements differ."""
        if not self.elements:
            return None
        first = self.elements[0]
        if all(first.is_compatible_with(e) for e in self.elements[1:]):
            return first
        return None

    def iteration_type(self) -> Optional[Type]:
        return self.element_type

    def assert_subscript_valid_type(self, subscript_type, types, node=None, literal_index=None) -> Type:
        types.must_be_number(subscript_type, "[TYP-0042] tuple subscript must be a number", node)
        if literal_index is not None:
            if not 0 <= literal_index < len(self.elements):
                raise TypeMismatchError(
                    f"[TYP-0043] tuple index {literal_index} out of range for '{format_type(self)}'", node)
            return self.elements[literal_index]
        element = self.element_type
        if element is None:
            raise TypeMismatchError(
                f"[TYP-0043] tuple '{format_type(self)}' with mixed element types needs a literal index", node)
        return element


@dataclass(frozen=True)
class SetType(Type):
    element: Type

    is_iterable = True

    def is_compatible_with(self, other: Type) -> bool:
        return isinstance(other, SetType) and self.element.is_compatible_with(other.element)

    @property
    def element_type(self) -> Type:
        return self.element

    def iteration_type(self) -> Optional[Type]:
        return self.element


@dataclass(frozen=True)
class DictionaryType(Type):
    key: Type
    value: Type

    is_iterable = True

    def is_compatible_with(self, other: Type) -> bool:
        return (isinstance(other, DictionaryType)
                and self.key.is_compatible_with(other.key)
                and self.value.is_compatible_with(other.value))

    @property
    def key_type(self) -> Type:
        return self.key

    @property
    def value_type(self) -> Type:
        return self.value

    def iteration_type(self) -> Optional[Type]:
        # Iterating a dictionary walks its keys.
        return self.key

    def assert_subscript_valid_type(self, subscript_type, types, node=None, literal_index=None) -> Type:
        subscript_type.must_be_compatible_with(
            self.key,
            f"[TYP-0042] dictionary key must have type '{format_type(self.key)}', got '{format_type(subscript_type)}'",
            node,
        )
        return self.value


@dataclass(frozen=True)
class FunctionType(Type):
    # None parameter: accepts any argument type (builtins only).
    params: Tuple[Optional[Type], ...]
    # None result: returns no value. `returns_checked` is False when the
    # annotation omits the return type entirely.
    result: Optional[Type]
    returns_checked: bool = True

    def is_compatible_with(self, other: Type) -> bool:
        if not isinstance(other, FunctionType) or len(self.params) != len(other.params):
            return False
        for a, b in zip(self.params, other.params):
            if (a is None) != (b is None) or (a is not None and not a.is_compatible_with(b)):
                return False
        if self.result is None or other.result is None:
            return self.result is other.result
        return self.result.is_compatible_with(other.result)


class TypeRegistry:
    """
    Type-interning table owned by one compilation session.

    Primitive types are created once, when the registry is built; composite
    types are minted fresh by every constructing expression.
    """

    def __init__(self) -> None:
        self._primitives: Dict[str, PrimitiveType] = {
            name: PrimitiveType(name) for name in OLIVE_PRIMITIVE_TYPES
        }
        self.bool_type = self._primitives["bool"]
        self.number_type = self._primitives["number"]
        self.string_type = self._primitives["string"]
        self.none_type = self._primitives["none"]
        self.range_type = self._primitives["range"]

    def primitive(self, name: str) -> Optional[PrimitiveType]:
        return self._primitives.get(name)

    # --- composite constructors ---

    def matrix(self, element: Type) -> MatrixType:
        return MatrixType(element)

    def tuple(self, elements) -> TupleType:
        return TupleType(tuple(elements))

    def set(self, element: Type) -> SetType:
        return SetType(element)

    def dictionary(self, key: Type, value: Type) -> DictionaryType:
        return DictionaryType(key, value)

    # --- convenience checks ---

    def must_be_dictionary_key(self, t: Type, node: Optional[Node] = None) -> None:
        # Keys lower to JavaScript Map keys, which compare composites by identity.
        if not isinstance(t, PrimitiveType) or t is self.range_type:
            raise TypeMismatchError(
                f"[TYP-0086] dictionary key must have a primitive type, got '{format_type(t)}'", node)

    def must_be_number(self, t: Type, message: str, node: Optional[Node] = None) -> None:
        t.must_be_compatible_with(self.number_type, message, node)

    def must_be_boolean(self, t: Type, message: str, node: Optional[Node] = None) -> None:
        t.must_be_compatible_with(self.bool_type, message, node)

    # --- iteration and subscripting ---

    def is_iterable(self, t: Type) -> bool:
        return self.iteration_type(t) is not None

    def iteration_type(self, t: Type) -> Optional[Type]:
        if t is self.string_type:
            return self.string_type
        if t is self.range_type:
            return self.number_type
        if t.is_iterable:
            return t.iteration_type()
        return None

    def subscript_type(
            self,
            base: Type,
            subscript: Type,
            node: Optional[Node] = None,
            literal_index: Optional[int] = None,
    ) -> Type:
        if base is self.string_type:
            self.must_be_number(subscript, "[TYP-0042] string subscript must be a number", node)
            return self.string_type
        return base.assert_subscript_valid_type(subscript, self, node, literal_index)

    # --- annotations ---

    def resolve_type_ref(self, ref: TypeRef) -> Type:
        prim = self._primitives.get(ref.name)
        if prim is not None:
            if ref.args:
                raise TypeMismatchError(f"[TYP-0091] type '{ref.name}' takes no type arguments", ref)
            return prim

        if ref.name == "tuple":
            if not ref.args:
                raise TypeMismatchError("[TYP-0091] type 'tuple' needs at least one type argument", ref)
            return self.tuple(self.resolve_type_ref(a) for a in ref.args)

        arity = OLIVE_COMPOSITE_TYPES.get(ref.name)
        if arity is None:
            raise TypeMismatchError(f"[TYP-0090] unknown type '{ref.name}'", ref)
        if len(ref.args) != arity:
            raise TypeMismatchError(
                f"[TYP-0091] type '{ref.name}' takes {arity} type argument(s), got {len(ref.args)}", ref)
        args = [self.resolve_type_ref(a) for a in ref.args]
        if ref.name == "matrix":
            return self.matrix(args[0])
        if ref.name == "set":
            return self.set(args[0])
        self.must_be_dictionary_key(args[0], ref.args[0])
        return self.dictionary(args[0], args[1])


# --- type stringification for debugging ---

def format_type(t: Optional[Type]) -> str:
    if t is None:
        return "<none>"
    elif isinstance(t, PrimitiveType):
        return t.name
    elif isinstance(t, MatrixType):
        return f"matrix<{format_type(t.element)}>"
    elif isinstance(t, TupleType):
        return f"tuple<{', '.join(format_type(e) for e in t.elements)}>"
    elif isinstance(t, SetType):
        return f"set<{format_type(t.element)}>"
    elif isinstance(t, DictionaryType):
        return f"dictionary<{format_type(t.key)}, {format_type(t.value)}>"
    elif isinstance(t, FunctionType):
        params_str = ", ".join(WILDCARD if p is None else format_type(p) for p in t.params) or WILDCARD
        if not t.returns_checked:
            return params_str
        return f"{params_str} -> {WILDCARD if t.result is None else format_type(t.result)}"
    else:
        # Fallback (should not happen)
        return repr(t)
