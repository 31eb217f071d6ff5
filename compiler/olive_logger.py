"""
Logging utilities for the Olive compiler.

Every message goes to stderr and is gated by the CompilationContext log
level; rich format adds a timestamp and the level name.
"""

#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import sys
import time
from typing import Optional

from olive_context import CompilationContext, LogLevel

_LEVEL_LABELS = {
    LogLevel.ERROR: "ERROR",
    LogLevel.WARNING: "WARNING",
    LogLevel.INFO: "INFO",
    LogLevel.DEBUG: "DEBUG",
}


def _prefix(log_level: LogLevel) -> str:
    label = _LEVEL_LABELS.get(log_level)
    if label is None:
        return ""
    timestamp = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime())
    return f"{timestamp} [{label}] "


def log(context: Optional[CompilationContext], log_level: LogLevel, message: str) -> None:
    """
    Log `message` if the context's level admits `log_level`.

    Args:
        context:    The compilation context holding the log configuration.
        log_level:  The level of the message to log.
        message:    The message to log.
    """
    if context is None:
        print(f"[no compilation context] {message}", file=sys.stderr)
        return
    if context.log_level < log_level:
        return
    prefix = _prefix(log_level) if context.log_rich_format else ""
    print(f"{prefix}{message}", file=sys.stderr)


def log_error(context: Optional[CompilationContext], message: str) -> None:
    log(context, LogLevel.ERROR, message)


def log_warning(context: Optional[CompilationContext], message: str) -> None:
    log(context, LogLevel.WARNING, message)


def log_info(context: Optional[CompilationContext], message: str) -> None:
    log(context, LogLevel.INFO, message)


def log_debug(context: Optional[CompilationContext], message: str) -> None:
    log(context, LogLevel.DEBUG, message)


def log_stage(context: Optional[CompilationContext], stage: str, name: Optional[str] = None) -> None:
    """
    Log the start of a compilation stage.

    Args:
        context: The compilation context.
        stage:   The stage name (e.g. "Analyzing", "Optimizing").
        name:    Optional program or file name being processed.
    """
    if name:
        log(context, LogLevel.INFO, f"{stage} '{name}'")
    else:
        log(context, LogLevel.INFO, f"{stage}...")
