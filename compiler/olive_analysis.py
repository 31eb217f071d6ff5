#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from olive_ast import Program
from olive_context import CompilationContext
from olive_diagnostics import Diagnostic
from olive_scope_context import ScopeArena, ScopeId
from olive_symbols import FunctionVariable, make_builtin_functions
from olive_types import TypeRegistry


@dataclass
class AnalysisResult:
    """
    Front-end analysis result for one program.

    Contains:
      - the program tree (decorated in place when analysis succeeds)
      - compilation context (cross-cutting compiler options)
      - the session's type registry and scope arena
      - the builtin function entities and the prelude scope declaring them
      - diagnostics (fail-fast: at most one error)
    """
    program: Optional[Program] = None
    context: CompilationContext = field(default_factory=CompilationContext.default)

    types: TypeRegistry = field(default_factory=TypeRegistry)
    scopes: ScopeArena = field(default_factory=ScopeArena)

    builtins: Dict[str, FunctionVariable] = field(default_factory=dict)
    prelude_scope: Optional[ScopeId] = None

    # True once the analyzer has decorated every node of `program`.
    analyzed: bool = False

    diagnostics: List[Diagnostic] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.builtins:
            self.builtins = make_builtin_functions(self.types)

    def has_errors(self) -> bool:
        return any(d.kind == "error" for d in self.diagnostics)

    def has_warnings(self) -> bool:
        return any(d.kind == "warning" for d in self.diagnostics)
