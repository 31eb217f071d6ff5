"""
JavaScript Code Emitter

Handles JavaScript-specific code emission. Knows how to emit JavaScript
syntax, but not why or when. All orchestration lives in the Backend.
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass, field
from typing import Dict, List, NoReturn, Optional, TextIO, Tuple

from olive_context import CompilationContext
from olive_internal_error import ICELocation, InternalCompilerError
from olive_js_runtime import RuntimeFunction, split_indent
from olive_logger import log_debug
from olive_string_escape import decode_olive_string, encode_js_string, encode_js_template
from olive_symbols import Entity


@dataclass
class JsCodeBuilder:
    """
    Helper for building JavaScript code with indentation tracking.

    When a sink is set, every line is written to it as soon as it is emitted
    and nothing is kept in memory.
    """
    lines: List[str] = field(default_factory=list)
    indent_level: int = 0
    indent_str: str = "  "
    sink: Optional[TextIO] = None

    def indent(self) -> None:
        self.indent_level += 1

    def dedent(self) -> None:
        assert self.indent_level > 0, "dedent below zero"
        self.indent_level -= 1

    def emit(self, line: str = "") -> None:
        """Emit a line with current indentation."""
        if line:
            line = self.indent_str * self.indent_level + line
        if self.sink is not None:
            self.sink.write(line + "\n")
        else:
            self.lines.append(line)

    def to_string(self) -> str:
        if not self.lines:
            return ""
        return "\n".join(self.lines) + "\n"


@dataclass
class JsEmitter:
    """
    JavaScript-specific code emitter.

    Responsibilities:
    - Emit JavaScript syntax for statements and expressions
    - Assign every entity a stable, unique emitted name
    - Map Olive operators to JavaScript operators
    - Encode literals

    Does NOT:
    - Decide what to emit or in which order
    - Inspect types or scopes (the backend does)
    """

    OPERATORS: Dict[str, str] = field(default_factory=lambda: {
        "==": "===",
        "!=": "!==",
        "and": "&&",
        "or": "||",
        "not": "!",
    })

    context: Optional[CompilationContext] = None

    # Output builder
    out: JsCodeBuilder = field(default_factory=JsCodeBuilder)

    # Entity -> emitted name; entities hash by identity
    _names: Dict[Entity, str] = field(default_factory=dict)

    # Temporary variable counter for unique naming
    _tmp_counter: int = 0

    def set_context(self, context: CompilationContext) -> None:
        self.context = context
        self.out.indent_str = " " * context.indent_size

    def get_output(self) -> str:
        """Returns the complete generated JavaScript code."""
        return self.out.to_string()

    def ice(self, message: str, node: Optional[object] = None) -> NoReturn:
        span = getattr(node, "span", None) if node is not None else None
        raise InternalCompilerError(message, ICELocation(filename=None, span=span))

    # ============================================================================
    # Naming
    # ============================================================================

    def js_name(self, entity: Entity) -> str:
        """
        Emitted name of `entity`: its identifier plus a suffix unique across the
        whole program, assigned on first request.
        """
        name = self._names.get(entity)
        if name is None:
            name = f"{entity.id}_{len(self._names) + 1}"
            self._names[entity] = name
            log_debug(self.context, f"entity '{entity.id}' emitted as '{name}'")
        return name

    def fresh_tmp(self) -> str:
        """Unique name for a compiler temporary, like "$tmp1"."""
        self._tmp_counter += 1
        return f"$tmp{self._tmp_counter}"

    def op(self, op: str) -> str:
        return self.OPERATORS.get(op, op)

    # ============================================================================
    # Comments and runtime
    # ============================================================================

    def emit_header(self) -> None:
        self.out.emit("// Generated by the Olive compiler")
        self.out.emit()

    def emit_blank_line(self) -> None:
        self.out.emit()

    def emit_runtime_function(self, name: str, function: RuntimeFunction) -> None:
        self.emit_function_header(name, list(function.params))
        base = self.out.indent_level
        for line in function.body:
            depth, text = split_indent(line)
            self.out.indent_level = base + depth
            self.out.emit(text)
        self.out.indent_level = base
        self.emit_block_end()

    # ============================================================================
    # Expression Emission
    # ============================================================================

    def emit_number_literal(self, value) -> str:
        if isinstance(value, float):
            text = repr(value)
        else:
            text = str(value)
        if value < 0:
            return f"({text})"
        return text

    def emit_bool_literal(self, value: bool) -> str:
        return "true" if value else "false"

    def emit_none_literal(self) -> str:
        return "null"

    def emit_string_literal(self, source_text: str) -> str:
        """`source_text` is the literal with its escape sequences preserved."""
        return f'"{encode_js_string(decode_olive_string(source_text))}"'

    def emit_template_literal(self, parts: List[Tuple[bool, str]]) -> str:
        """
        Emit a template literal from (is_expression, text) parts; literal parts
        carry escape-preserved source text, expression parts JavaScript code.
        """
        body = []
        for is_expression, text in parts:
            if is_expression:
                body.append(f"${{{text}}}")
            else:
                body.append(encode_js_template(decode_olive_string(text)))
        return f"`{''.join(body)}`"

    def emit_unary_op(self, op: str, js_operand: str) -> str:
        return f"({self.op(op)}{js_operand})"

    def emit_binary_op(self, op: str, js_left: str, js_right: str) -> str:
        return f"({js_left} {self.op(op)} {js_right})"

    def emit_function_call(self, js_func_name: str, js_args: List[str]) -> str:
        return f"{js_func_name}({', '.join(js_args)})"

    def emit_array(self, js_values: List[str]) -> str:
        return f"[{', '.join(js_values)}]"

    def emit_set(self, js_values: List[str]) -> str:
        return f"new Set({self.emit_array(js_values)})"

    def emit_map(self, js_entries: List[Tuple[str, str]]) -> str:
        pairs = [self.emit_array([k, v]) for k, v in js_entries]
        return f"new Map({self.emit_array(pairs)})"

    def emit_index(self, js_base: str, js_index: str) -> str:
        return f"{js_base}[{js_index}]"

    def emit_map_get(self, js_map: str, js_key: str) -> str:
        return f"{js_map}.get({js_key})"

    def emit_map_keys(self, js_map: str) -> str:
        return f"{js_map}.keys()"

    @staticmethod
    def bracket_if_necessary(items: List[str]) -> str:
        """`x` for a single item, `[x, y]` otherwise."""
        if len(items) == 1:
            return items[0]
        return f"[{', '.join(items)}]"

    # ============================================================================
    # Statement Emission
    # ============================================================================

    def emit_expr_stmt(self, js_expr: str) -> None:
        self.out.emit(f"{js_expr};")

    def emit_declaration(self, keyword: str, js_targets: List[str], js_sources: List[str]) -> None:
        """`let x = 1;` or `const [a, b] = [1, 2];`"""
        targets = self.bracket_if_necessary(js_targets)
        sources = self.bracket_if_necessary(js_sources)
        self.out.emit(f"{keyword} {targets} = {sources};")

    def emit_uninitialized_let(self, js_names: List[str]) -> None:
        self.out.emit(f"let {', '.join(js_names)};")

    def emit_assignment(self, js_targets: List[str], js_sources: List[str]) -> None:
        targets = self.bracket_if_necessary(js_targets)
        sources = self.bracket_if_necessary(js_sources)
        self.out.emit(f"{targets} = {sources};")

    def emit_map_set_stmt(self, js_map: str, js_key: str, js_value: str) -> None:
        self.out.emit(f"{js_map}.set({js_key}, {js_value});")

    def emit_return_stmt(self, js_value: Optional[str]) -> None:
        if js_value is None:
            self.out.emit("return;")
        else:
            self.out.emit(f"return {js_value};")

    def emit_break_stmt(self) -> None:
        self.out.emit("break;")

    def emit_continue_stmt(self) -> None:
        self.out.emit("continue;")

    def emit_block_start(self) -> None:
        self.out.emit("{")
        self.out.indent()

    def emit_block_end(self) -> None:
        self.out.dedent()
        self.out.emit("}")

    def emit_while_header(self, js_cond: str) -> None:
        self.out.emit(f"while ({js_cond}) {{")
        self.out.indent()

    def emit_for_of_header(self, js_var: str, js_iterable: str) -> None:
        self.out.emit(f"for (const {js_var} of {js_iterable}) {{")
        self.out.indent()

    def emit_if_header(self, js_cond: str) -> None:
        self.out.emit(f"if ({js_cond}) {{")
        self.out.indent()

    def emit_else_if(self, js_cond: str) -> None:
        self.out.dedent()
        self.out.emit(f"}} else if ({js_cond}) {{")
        self.out.indent()

    def emit_else(self) -> None:
        self.out.dedent()
        self.out.emit("} else {")
        self.out.indent()

    def emit_function_header(self, js_name: str, js_params: List[str]) -> None:
        self.out.emit(f"function {js_name}({', '.join(js_params)}) {{")
        self.out.indent()
