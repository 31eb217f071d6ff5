"""
Scope Context

Lexical scopes for semantic analysis, stored in an arena and referenced by
index. A scope id stays valid for the whole compilation; once the analyzer
leaves a scope it simply never looks that id up again.
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from olive_ast import Node
from olive_diagnostics import ControlFlowError, DeclarationError
from olive_internal_error import InternalCompilerError
from olive_symbols import Entity, FunctionVariable, Variable

ScopeId = int


@dataclass
class ScopeRecord:
    """One lexical scope: its parent, enclosing function, loop flag and declarations."""
    parent: Optional[ScopeId]
    function: Optional[FunctionVariable]
    in_loop: bool
    declarations: Dict[str, Entity] = field(default_factory=dict)


class ScopeArena:
    """
    Owns every scope record created during one analysis.

    Child scopes inherit from their parent as follows:
      - function body: new function, loop flag cleared
      - loop body:     same function, loop flag set
      - plain block:   same function, same loop flag
    """

    def __init__(self) -> None:
        self.records: List[ScopeRecord] = []

    def _new(self, parent: Optional[ScopeId], function: Optional[FunctionVariable], in_loop: bool) -> ScopeId:
        self.records.append(ScopeRecord(parent=parent, function=function, in_loop=in_loop))
        return len(self.records) - 1

    def record(self, scope: ScopeId) -> ScopeRecord:
        return self.records[scope]

    # --- scope creation ---

    def new_root(self) -> ScopeId:
        return self._new(None, None, False)

    def child_for_function_body(self, scope: ScopeId, function: FunctionVariable) -> ScopeId:
        return self._new(scope, function, False)

    def child_for_loop(self, scope: ScopeId) -> ScopeId:
        return self._new(scope, self.records[scope].function, True)

    def child_for_block(self, scope: ScopeId) -> ScopeId:
        rec = self.records[scope]
        return self._new(scope, rec.function, rec.in_loop)

    # --- declarations ---

    def add(self, scope: ScopeId, entity: Entity) -> None:
        """Declare `entity` in `scope` itself (never in an enclosing scope)."""
        declarations = self.records[scope].declarations
        if entity.id in declarations:
            raise InternalCompilerError(f"[ICE-1010] '{entity.id}' added twice to scope {scope}")
        declarations[entity.id] = entity

    def lookup(self, scope: ScopeId, name: str) -> Optional[Entity]:
        """Innermost entity bound to `name`, or None when no enclosing scope declares it."""
        current: Optional[ScopeId] = scope
        while current is not None:
            rec = self.records[current]
            entity = rec.declarations.get(name)
            if entity is not None:
                return entity
            current = rec.parent
        return None

    def lookup_local(self, scope: ScopeId, name: str) -> Optional[Entity]:
        return self.records[scope].declarations.get(name)

    # --- checks ---

    def must_not_already_be_declared(self, scope: ScopeId, name: str, node: Optional[Node] = None) -> None:
        if name in self.records[scope].declarations:
            raise DeclarationError(f"[DEC-0020] '{name}' already declared in this scope", node)

    def must_not_rebind_immutable(self, scope: ScopeId, name: str, node: Optional[Node] = None) -> None:
        entity = self.records[scope].declarations.get(name)
        if entity is not None and not (isinstance(entity, Variable) and entity.is_mutable):
            raise DeclarationError(f"[DEC-0030] cannot rebind '{name}', which is immutable", node)

    def assert_inside_function(self, scope: ScopeId, message: str, node: Optional[Node] = None) -> None:
        if self.records[scope].function is None:
            raise ControlFlowError(message, node)

    def function(self, scope: ScopeId) -> Optional[FunctionVariable]:
        return self.records[scope].function

    def in_loop(self, scope: ScopeId) -> bool:
        return self.records[scope].in_loop
