#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from olive_ast import Span

UNKNOWN_ICE_CODE = "ICE-9999"

_ICE_CODE_RE = re.compile(r"\[(ICE-\d{4})\]")


@dataclass(frozen=True)
class ICELocation:
    filename: Optional[str]
    span: Optional[Span]

    def prefix(self) -> str:
        """`file:line:col: `, `file: `, or empty when the file is unknown."""
        if not self.filename:
            return ""
        if self.span is None:
            return f"{self.filename}: "
        return f"{self.filename}:{self.span.start_line}:{self.span.start_column}: "


class InternalCompilerError(RuntimeError):
    """
    A broken pipeline invariant, e.g. generating code for an undecorated tree.

    User mistakes never end up here; they are OliveErrors turned into
    Diagnostics by the driver. The driver logs `format()` before re-raising.
    """

    def __init__(self, message: str, loc: ICELocation | None = None):
        super().__init__(message)
        self.message = message
        self.loc = loc

    @property
    def code(self) -> str:
        m = _ICE_CODE_RE.search(self.message)
        return m.group(1) if m else UNKNOWN_ICE_CODE

    def format(self) -> str:
        message = self.message
        if not _ICE_CODE_RE.search(message):
            message = f"[{UNKNOWN_ICE_CODE}] {message}"
        prefix = self.loc.prefix() if self.loc else ""
        return f"{prefix}internal compiler error: {message}"
