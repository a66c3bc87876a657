#!/usr/bin/env python3
"""
Auxiliary utility functions for kleidi

Rendering helpers shared by the analyzer, the scanner and the console layer:
escaped string literals for arbitrary key bytes and display paths.
"""

import pathlib
from typing import Optional

_SHORT_ESCAPES = {
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
    '"': '\\"',
    "\\": "\\\\",
}


def _escape_char(ch: str) -> str:
    escaped = _SHORT_ESCAPES.get(ch)
    if escaped is not None:
        return escaped

    code = ord(ch)
    # Lone surrogates in this range are undecodable bytes carried by surrogateescape
    if 0xDC80 <= code <= 0xDCFF:
        return f"\\x{code - 0xDC00:02x}"
    if ch.isprintable():
        return ch
    if code < 0x80:
        return f"\\x{code:02x}"
    if code < 0x10000:
        return f"\\u{code:04x}"
    return f"\\U{code:08x}"


def quote_text(text: str) -> str:
    """Render text as a double-quoted, escaped literal

    Args:
        text: Text to render

    Returns:
        Quoted string such as "a\\tb" with control characters escaped
    """
    return '"' + "".join(_escape_char(ch) for ch in text) + '"'


def quote_bytes(data: bytes) -> str:
    """Render raw bytes as a double-quoted, escaped literal

    Valid UTF-8 sequences are shown as characters, every byte that is not
    part of one is shown as \\xNN.

    Args:
        data: Byte sequence to render

    Returns:
        Quoted string such as "\\xff\\xfeabc"
    """
    return quote_text(data.decode("utf-8", errors="surrogateescape"))


def format_path_for_display(path: str, home_path: Optional[str] = None) -> str:
    """Format file path for display by replacing home directory with ~

    Args:
        path: File path to format
        home_path: Home directory path (defaults to platform home)

    Returns:
        Path with home directory replaced by ~ if applicable
    """
    if home_path is None:
        home_path = str(pathlib.Path.home())

    return path.replace(home_path, "~")
