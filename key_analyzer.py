#!/usr/bin/env python3
"""
Key Analyzer Module

Decides whether an etcd key is valid text or binary, and builds short,
terminal-safe previews of the values stored under those keys.
"""

from enum import Enum

from auxiliary import quote_bytes, quote_text

PREVIEW_LENGTH = 10
ELLIPSIS = "..."
NON_UTF8_SENTINEL = "[non-utf8]"

# Bytes below 0x20 that still count as text
_TEXT_WHITESPACE = frozenset(b"\n\r\t")


class Classification(Enum):
    """Classification of a key's byte content"""

    BINARY = "binary"
    TEXT = "text"


def is_binary(data: bytes) -> bool:
    """Return True if *data* holds a byte outside printable ASCII, tab, CR and LF."""
    for b in data:
        if (b < 0x20 or b > 0x7E) and b not in _TEXT_WHITESPACE:
            return True
    return False


def is_valid_utf8(data: bytes) -> bool:
    """Return True if *data* decodes as strict UTF-8."""
    try:
        data.decode("utf-8", errors="strict")
    except UnicodeDecodeError:
        return False
    return True


def classify(key: bytes) -> Classification:
    """Classify a key as BINARY or TEXT.

    Both rules are checked on their own; either one marks the key binary.
    An empty key is text.
    """
    if is_binary(key) or not is_valid_utf8(key):
        return Classification.BINARY
    return Classification.TEXT


def preview_raw(value: bytes) -> str:
    """Preview of the first bytes of a value that may not be text."""
    if len(value) > PREVIEW_LENGTH:
        return quote_bytes(value[:PREVIEW_LENGTH]) + ELLIPSIS
    return quote_bytes(value)


def preview_text(value: bytes) -> str:
    """Preview of the first characters of a UTF-8 value.

    Truncation counts characters, so multi-byte sequences are never split.
    Values that are not valid UTF-8 yield NON_UTF8_SENTINEL.
    """
    try:
        text = value.decode("utf-8", errors="strict")
    except UnicodeDecodeError:
        return NON_UTF8_SENTINEL

    if len(text) > PREVIEW_LENGTH:
        return quote_text(text[:PREVIEW_LENGTH]) + ELLIPSIS
    return quote_text(text)
