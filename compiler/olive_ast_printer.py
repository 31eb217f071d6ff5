#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import fields, is_dataclass
from typing import Any, List, Optional

from olive_ast import Expr, ForStatement, FunctionDeclaration, MutableBinding, Node, Parameter, Program, Span
from olive_symbols import FunctionVariable, Variable
from olive_types import format_type


def _format_span(span: Optional[Span]) -> str:
    if span is None:
        return ""
    return f" @{span.start_line}:{span.start_column}-{span.end_line}:{span.end_column}"


def format_entity(entity) -> str:
    if isinstance(entity, FunctionVariable):
        kind = "builtin" if entity.is_builtin else "function"
        return f"{kind} {entity.id}: {format_type(entity.signature)}"
    if isinstance(entity, Variable):
        kind = "mutable" if entity.is_mutable else "immutable"
        return f"{kind} {entity.id}: {format_type(entity.type)}"
    return repr(entity)


def _decorations(node: Node) -> str:
    """Analysis results attached to `node`, as a header suffix."""
    parts = []
    if isinstance(node, Expr) and node.type is not None:
        parts.append(f" : {format_type(node.type)}")
    referent = getattr(node, "referent", None)
    if referent is not None:
        parts.append(f" -> {format_entity(referent)}")
    if isinstance(node, (ForStatement, Parameter)) and node.variable is not None:
        parts.append(f" -> {format_entity(node.variable)}")
    if isinstance(node, FunctionDeclaration) and node.function is not None:
        parts.append(f" -> {format_entity(node.function)}")
    if isinstance(node, MutableBinding) and node.fresh:
        parts.append(f" fresh={node.fresh}")
    return "".join(parts)


def format_node(node: Any, indent: int = 0) -> List[str]:
    """
    Reflection-based tree printer.

    - Shows the node class name with its scalar fields inline.
    - Prints child nodes and lists of nodes on indented lines.
    - After analysis, appends `: type` to expressions and `-> entity` to
      resolved identifiers and declarations.
    """
    ind = "  " * indent

    if isinstance(node, list):
        lines: List[str] = []
        for elem in node:
            lines.extend(format_node(elem, indent))
        return lines

    if not (isinstance(node, Node) and is_dataclass(node)):
        return [ind + repr(node)]

    # Decoration fields are excluded from comparison; they are shown by _decorations.
    simple_parts = []
    child_fields = []
    for f in fields(node):
        if not f.compare:
            continue
        value = getattr(node, f.name)
        if isinstance(value, (Node, list)):
            child_fields.append((f.name, value))
        elif value is not None:
            simple_parts.append((f.name, value))

    header = node.__class__.__name__
    if simple_parts:
        header += "(" + ", ".join(f"{name}={value!r}" for name, value in simple_parts) + ")"
    header += _decorations(node) + _format_span(node.span)

    lines = [ind + header]
    for name, value in child_fields:
        if isinstance(value, list) and not value:
            continue
        lines.append(f"{ind}  {name}:")
        lines.extend(format_node(value, indent + 2))
    return lines


def format_program(program: Program) -> str:
    """Pretty-print a whole program, decorated when it has been analyzed."""
    return "\n".join(format_node(program, indent=0))
