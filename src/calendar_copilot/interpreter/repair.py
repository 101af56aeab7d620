"""Single best-effort repair pass for almost-JSON emitted by language models."""

from __future__ import annotations

import re
from typing import List, Tuple

_UNQUOTED_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_$][A-Za-z0-9_$\-]*)(\s*:)")
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")


def _split_segments(text: str) -> List[Tuple[bool, str]]:
    """Split ``text`` into ``(is_string, chunk)`` runs.

    Single-quoted runs are rewritten as double-quoted JSON strings on the way,
    escaping any double quote they contain.
    """

    segments: List[Tuple[bool, str]] = []
    buffer: List[str] = []
    quote = ""
    index = 0
    while index < len(text):
        char = text[index]
        if not quote:
            if char in ('"', "'"):
                if buffer:
                    segments.append((False, "".join(buffer)))
                buffer = ['"']
                quote = char
            else:
                buffer.append(char)
            index += 1
            continue

        if char == "\\" and index + 1 < len(text):
            following = text[index + 1]
            if quote == "'" and following == "'":
                buffer.append("'")
            else:
                buffer.append(char + following)
            index += 2
            continue
        if char == quote:
            buffer.append('"')
            segments.append((True, "".join(buffer)))
            buffer = []
            quote = ""
        elif char == '"':
            buffer.append('\\"')
        else:
            buffer.append(char)
        index += 1

    if buffer:
        segments.append((bool(quote), "".join(buffer)))
    return segments


def _repair_structure(chunk: str) -> str:
    chunk = _UNQUOTED_KEY_RE.sub(r'\1"\2"\3', chunk)
    return _TRAILING_COMMA_RE.sub(r"\1", chunk)


def repair_json(text: str) -> str:
    """Normalize quotes, quote bare keys and drop trailing commas outside strings."""

    segments = _split_segments(text.strip())
    repaired: List[str] = []
    for is_string, chunk in segments:
        repaired.append(chunk if is_string else _repair_structure(chunk))
    return "".join(repaired)
