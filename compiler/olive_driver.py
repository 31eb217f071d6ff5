#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass
from typing import Callable, Optional, TextIO

from olive_analysis import AnalysisResult
from olive_analyzer import SemanticAnalyzer
from olive_ast import Program
from olive_ast_printer import format_program
from olive_backend import Backend
from olive_context import CompilationContext
from olive_diagnostics import OliveError, OliveSyntaxError, diag_from_error
from olive_internal_error import InternalCompilerError
from olive_logger import log_debug, log_error, log_info, log_stage
from olive_optimizer import optimize_program

Parser = Callable[[str], Program]


@dataclass
class CompileOutput:
    """
    Result of `OliveDriver.compile`.

    `text` is None when `result` carries an error diagnostic.
    """
    result: AnalysisResult
    text: Optional[str] = None

    @property
    def ok(self) -> bool:
        return not self.result.has_errors()


class OliveDriver:
    """
    Pipeline driver:
      - parse (with an injected parser)
      - analyze
      - optimize (optional)
      - generate JavaScript

    Entry points:
      - analyze(program): decorate a tree, collecting the first error as a diagnostic.
      - compile(program, ...): tree only, decorated tree only, or JavaScript.
      - compile_source(text, ...): same, starting from source text.
    """

    def __init__(self, context: CompilationContext | None = None, parser: Parser | None = None):
        self.context = context or CompilationContext.default()
        self.parser = parser

    # --- Public API ---

    def parse(self, source_text: str, filename: str | None = None) -> Program:
        if self.parser is None:
            raise ValueError("No parser configured for this driver")
        log_stage(self.context, "Parsing", filename)
        program = self.parser(source_text)
        program.filename = filename
        return program

    def analyze(self, program: Program) -> AnalysisResult:
        """
        Run semantic analysis on `program`.

        Returns an AnalysisResult; on failure it holds exactly one error
        diagnostic and the tree is only partially decorated.
        """
        log_stage(self.context, "Analyzing", program.filename)
        result = AnalysisResult(program=program, context=self.context)
        try:
            SemanticAnalyzer(result).analyze()
        except OliveError as e:
            result.diagnostics.append(diag_from_error(e, filename=program.filename))
            log_debug(self.context, f"Analysis stopped: {e.message}")
            return result

        log_debug(self.context, f"Analysis created {len(result.scopes.records)} scope(s)")
        return result

    def optimize(self, result: AnalysisResult) -> AnalysisResult:
        """Replace the analyzed program of `result` with its optimized copy."""
        if not result.analyzed or result.has_errors():
            raise ValueError("Cannot optimize a program that failed analysis")
        log_stage(self.context, "Optimizing", result.program.filename)
        try:
            result.program = optimize_program(result.program, self.context)
        except InternalCompilerError as e:
            log_error(self.context, e.format())
            raise
        return result

    def generate(self, result: AnalysisResult) -> str:
        try:
            return Backend(result).generate()
        except InternalCompilerError as e:
            log_error(self.context, e.format())
            raise

    def generate_to(self, result: AnalysisResult, sink: TextIO) -> None:
        try:
            Backend(result).generate_to(sink)
        except InternalCompilerError as e:
            log_error(self.context, e.format())
            raise

    def compile(
        self,
        program: Program,
        *,
        ast_only: bool = False,
        front_end_only: bool = False,
        optimize: bool = False,
    ) -> CompileOutput:
        """
        Compile a parsed program.

          ast_only:        print the undecorated tree and stop.
          front_end_only:  analyze (and optionally optimize), print the decorated tree and stop.
          optimize:        optimize the analyzed tree before printing or generating.
        """
        if ast_only:
            return CompileOutput(AnalysisResult(program=program, context=self.context), format_program(program))

        result = self.analyze(program)
        if result.has_errors():
            return CompileOutput(result)

        if optimize:
            self.optimize(result)

        if front_end_only:
            return CompileOutput(result, format_program(result.program))

        text = self.generate(result)
        log_info(self.context, f"Generated {text.count(chr(10))} line(s) of JavaScript")
        return CompileOutput(result, text)

    def compile_source(self, source_text: str, filename: str | None = None, **options) -> CompileOutput:
        """Parse `source_text` with the injected parser, then `compile` it."""
        try:
            program = self.parse(source_text, filename)
        except OliveSyntaxError as e:
            result = AnalysisResult(context=self.context)
            result.diagnostics.append(diag_from_error(e, filename=filename))
            return CompileOutput(result)
        return self.compile(program, **options)
