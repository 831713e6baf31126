"""
Fulltext query sanitizer.

Lucene treats a fixed set of characters and the upper-case operators
AND, OR, NOT and TO as syntax. Query text is made literal by lower-casing
those operators and backslash-escaping every other non-alphanumeric,
non-space character, the backslash included.

Escapes are read in pairs: a backslash followed by a reserved character is
already an escape and is kept as is; any other backslash, including a
trailing one, is itself escaped. The output therefore holds only complete
escape pairs, so sanitize(sanitize(x)) == sanitize(x).
"""

from __future__ import annotations

import re

_OPERATOR_PATTERN = re.compile(r"\b(AND|OR|NOT|TO)\b")

# Covers Lucene syntax (+ - && || ! ( ) { } [ ] ^ " ~ * ? : / \) and the
# punctuation found in compact identifiers (@ . # $ % = ; _ `)
_ESCAPE = "\\"


def is_safe_character(char: str) -> bool:
    """Alphanumerics and whitespace pass through unescaped."""
    return char.isalnum() or char.isspace()


def _is_escape_pair(text: str, index: int) -> bool:
    """True if ``text[index]`` starts a backslash escape of a reserved character."""
    return (
        text[index] == _ESCAPE
        and index + 1 < len(text)
        and not is_safe_character(text[index + 1])
    )


def sanitize_fulltext_query(query: str) -> str:
    """Escape fulltext metacharacters without double-escaping.

    Args:
        query: Raw (normally already normalized) query text

    Returns:
        Text safe to pass to db.index.fulltext.queryNodes
    """
    if not query or not isinstance(query, str):
        return ""

    neutralized = _OPERATOR_PATTERN.sub(lambda match: match.group(1).lower(), query)

    result: list[str] = []
    index = 0
    while index < len(neutralized):
        if _is_escape_pair(neutralized, index):
            result.append(neutralized[index : index + 2])
            index += 2
            continue
        char = neutralized[index]
        result.append(char if is_safe_character(char) else _ESCAPE + char)
        index += 1
    return "".join(result)


def has_unescaped_metacharacter(text: str) -> bool:
    """True if any reserved character, or a dangling backslash, is not part of an escape pair."""
    index = 0
    while index < len(text):
        if _is_escape_pair(text, index):
            index += 2
            continue
        if not is_safe_character(text[index]):
            return True
        index += 1
    return False
