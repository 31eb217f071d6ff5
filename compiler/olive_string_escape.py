#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

"""
String escape helpers shared by the optimizer and JavaScript codegen.

String literals keep their source text with escape sequences preserved
(e.g. "\\n"). This module decodes that text to a Python string and encodes
strings back to the body of a JavaScript string or template literal.
"""

from dataclasses import dataclass


_HEX_CHARS = "0123456789abcdefABCDEF"
_SIMPLE_ESCAPES = {
    "\\": "\\",
    "'": "'",
    '"': '"',
    "`": "`",
    "{": "{",
    "}": "}",
    "0": "\0",
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
}

_JS_ESCAPES = {
    "\\": "\\\\",
    "\n": "\\n",
    "\t": "\\t",
    "\r": "\\r",
    "\b": "\\b",
    "\f": "\\f",
    "\v": "\\v",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


@dataclass(frozen=True)
class EscapeDecodeError(ValueError):
    code: str
    details: str = ""


def _hex_escape(text: str, i: int, width: int, esc: str) -> int:
    digits = text[i:i + width]
    if len(digits) != width or any(c not in _HEX_CHARS for c in digits):
        raise EscapeDecodeError("invalid_hex_escape", f"\\{esc}")
    value = int(digits, 16)
    if value > 0x10FFFF:
        raise EscapeDecodeError("unicode_out_of_range", f"\\{esc}")
    return value


def decode_olive_string(text: str) -> str:
    """
    Decode the escape-preserved text of a string literal (without quotes).
    """
    out = []
    i = 0

    while i < len(text):
        ch = text[i]
        if ch != "\\":
            out.append(ch)
            i += 1
            continue

        i += 1
        if i >= len(text):
            out.append("\\")
            break

        esc = text[i]
        if esc in _SIMPLE_ESCAPES:
            out.append(_SIMPLE_ESCAPES[esc])
            i += 1
        elif esc == "x":
            out.append(chr(_hex_escape(text, i + 1, 2, esc)))
            i += 3
        elif esc == "u":
            out.append(chr(_hex_escape(text, i + 1, 4, esc)))
            i += 5
        elif esc == "U":
            out.append(chr(_hex_escape(text, i + 1, 8, esc)))
            i += 9
        else:
            # Unknown escapes stand for the escaped character itself.
            out.append(esc)
            i += 1

    return "".join(out)


def _encode_char(ch: str) -> str:
    mapped = _JS_ESCAPES.get(ch)
    if mapped is not None:
        return mapped
    if ord(ch) < 0x20 or ord(ch) == 0x7F:
        return f"\\x{ord(ch):02x}"
    return ch


def encode_js_string(value: str) -> str:
    """
    Encode a decoded string into the body of a double-quoted JavaScript string.
    """
    return "".join('\\"' if ch == '"' else _encode_char(ch) for ch in value)


def encode_js_template(value: str) -> str:
    """
    Encode a decoded string into a segment of a JavaScript template literal.
    """
    parts = []
    for i, ch in enumerate(value):
        if ch == "`":
            parts.append("\\`")
        elif ch == "$" and value[i + 1:i + 2] == "{":
            parts.append("\\$")
        else:
            parts.append(_encode_char(ch))
    return "".join(parts)
