#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import os
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from olive_ast import Node


DIAGNOSTIC_CODE_FAMILIES = {
    "SYN": [
        "SYN-0010",
    ],
    "DEC": [
        "DEC-0010",
        "DEC-0020",
        "DEC-0030",
        "DEC-0040",
        "DEC-0050",
        "DEC-0060",
        "DEC-0070",
    ],
    "TYP": [
        "TYP-0010", "TYP-0011", "TYP-0012", "TYP-0013",
        "TYP-0020", "TYP-0021",
        "TYP-0030", "TYP-0031", "TYP-0032", "TYP-0033",
        "TYP-0040", "TYP-0041", "TYP-0042", "TYP-0043",
        "TYP-0050", "TYP-0051",
        "TYP-0060", "TYP-0061", "TYP-0062",
        "TYP-0070", "TYP-0071", "TYP-0072",
        "TYP-0080", "TYP-0081", "TYP-0082", "TYP-0083", "TYP-0084", "TYP-0085", "TYP-0086",
        "TYP-0090", "TYP-0091",
    ],
    "ARI": [
        "ARI-0010",
        "ARI-0020",
        "ARI-0030",
    ],
    "CFL": [
        "CFL-0010",
        "CFL-0020",
        "CFL-0030",
    ],
    # ICE codes are internal compiler errors raised as exceptions,
    # not user-facing diagnostics; they are excluded from this registry.
}

_CODE_RE = re.compile(r"\[([A-Z]{3}-\d{4})\]")


class ErrorKind(Enum):
    SYNTAX = "syntax"
    DECLARATION = "declaration"
    TYPE = "type"
    ARITY = "arity"
    CONTROL_FLOW = "control flow"


class OliveError(Exception):
    """
    A user-facing compilation error.

    Raised at the point of detection; nothing catches it below the driver,
    so the first error aborts the pass.
    """
    kind: ErrorKind

    def __init__(self, message: str, node: Optional[Node] = None):
        super().__init__(message)
        self.message = message
        self.node = node

    @property
    def code(self) -> Optional[str]:
        m = _CODE_RE.search(self.message)
        return m.group(1) if m else None


class OliveSyntaxError(OliveError):
    """Raised by the external parser; passed through by the driver."""
    kind = ErrorKind.SYNTAX

    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None):
        super().__init__(message)
        self.line = line
        self.column = column


class SemanticError(OliveError):
    pass


class DeclarationError(SemanticError):
    kind = ErrorKind.DECLARATION


class TypeMismatchError(SemanticError):
    kind = ErrorKind.TYPE


class ArityError(SemanticError):
    kind = ErrorKind.ARITY


class ControlFlowError(SemanticError):
    kind = ErrorKind.CONTROL_FLOW


@dataclass
class Diagnostic:
    kind: str  # "error" or "warning"
    message: str
    error_kind: Optional[ErrorKind] = None
    filename: Optional[str] = None  # file path

    # Primary location (start of the span)
    line: Optional[int] = None
    column: Optional[int] = None

    # Optional end of span (exclusive)
    end_line: Optional[int] = None
    end_column: Optional[int] = None

    def format(self) -> str:
        loc = ""
        if self.filename is not None:
            loc += f"{os.path.abspath(str(self.filename))}"
        if self.line is not None:
            loc += f":{self.line}"
            if self.column is not None:
                loc += f":{self.column}"
        if loc:
            loc += ": "
        label = self.kind
        if self.error_kind is not None:
            label = f"{self.error_kind.value} {self.kind}"
        return f"{loc}{label}: {self.message}"


def diag_from_error(error: OliveError, *, filename: Optional[str] = None) -> Diagnostic:
    line = column = end_line = end_column = None
    node = error.node
    if node is not None and node.span is not None:
        s = node.span
        line = s.start_line
        column = s.start_column
        end_line = s.end_line
        end_column = s.end_column
    elif isinstance(error, OliveSyntaxError):
        line = error.line
        column = error.column
    return Diagnostic(
        kind="error",
        message=error.message,
        error_kind=error.kind,
        filename=filename,
        line=line,
        column=column,
        end_line=end_line,
        end_column=end_column,
    )
