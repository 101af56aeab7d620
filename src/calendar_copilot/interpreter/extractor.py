from __future__ import annotations

from typing import Optional


def extract_json_object(text: Optional[str]) -> Optional[str]:
    """Return the first balanced ``{...}`` object in ``text``, or ``None``.

    Braces inside double-quoted strings are ignored and the character after a
    backslash is never acted on, so prose around the object and later,
    unrelated braces do not affect the result.
    """

    if not text:
        return None
    start = text.find("{")
    if start < 0:
        return None

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if escaped:
            escaped = False
            continue
        if char == "\\":
            escaped = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : index + 1]
    return None
