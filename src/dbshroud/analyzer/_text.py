"""Text helpers shared by the shape parsers: literal masking, placeholders, splitting."""

from __future__ import annotations

import re

from dbshroud.adapters._base import Paramstyle

_PLACEHOLDER_RE: dict[Paramstyle, re.Pattern[str]] = {
    Paramstyle.QMARK: re.compile(r"\?"),
    # %% is an escaped percent sign, not a parameter.
    Paramstyle.FORMAT: re.compile(r"%%|%s"),
}

PLACEHOLDER_PATTERN: dict[Paramstyle, str] = {
    Paramstyle.QMARK: r"\?",
    Paramstyle.FORMAT: r"%s",
}

IDENT = r"[\w\"`\[\]$]+"
QUALIFIED_IDENT = rf"{IDENT}(?:\.{IDENT})*"

_SIMPLE_COLUMN_RE = re.compile(rf"^{QUALIFIED_IDENT}$")
_QUOTE_CHARS = "\"`[]"


def mask_literals(sql: str) -> str:
    """Blank out string literals and comments, preserving offsets.

    Everything downstream matches against the masked text so that commas,
    keywords and placeholder markers inside ``'...'`` or comments are inert.
    """
    out = list(sql)
    i, n = 0, len(sql)
    while i < n:
        ch = sql[i]
        if ch == "'":
            j = i + 1
            while j < n:
                if sql[j] == "'":
                    if j + 1 < n and sql[j + 1] == "'":
                        j += 2
                        continue
                    break
                j += 1
            for k in range(i + 1, min(j, n)):
                out[k] = " "
            i = j + 1
        elif sql.startswith("--", i):
            j = sql.find("\n", i)
            j = n if j == -1 else j
            for k in range(i, j):
                out[k] = " "
            i = j
        elif sql.startswith("/*", i):
            j = sql.find("*/", i + 2)
            j = n if j == -1 else j + 2
            for k in range(i, j):
                out[k] = " "
            i = j
        else:
            i += 1
    return "".join(out)


def placeholder_offsets(text: str, paramstyle: Paramstyle) -> list[int]:
    """Offsets of every placeholder marker in (already masked) text."""
    return [
        m.start()
        for m in _PLACEHOLDER_RE[paramstyle].finditer(text)
        if m.group() != "%%"
    ]


def count_placeholders(text: str, paramstyle: Paramstyle) -> int:
    return len(placeholder_offsets(text, paramstyle))


def split_top_level(text: str, sep: str = ",") -> list[str]:
    """Split on ``sep`` outside parentheses, so ``f(a, b)`` stays whole."""
    parts: list[str] = []
    depth = 0
    start = 0
    for i, ch in enumerate(text):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif ch == sep and depth == 0:
            parts.append(text[start:i])
            start = i + 1
    parts.append(text[start:])
    return parts


def find_top_level_keyword(text: str, keyword: str, start: int = 0) -> int:
    """Offset of the first ``keyword`` (whole word) at parenthesis depth 0, or -1."""
    pattern = re.compile(rf"\b{keyword}\b", re.IGNORECASE)
    depth = 0
    last = start
    for m in pattern.finditer(text, start):
        for ch in text[last : m.start()]:
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
        last = m.start()
        if depth == 0:
            return m.start()
    return -1


def matching_paren(text: str, open_at: int) -> int:
    """Offset of the ``)`` closing the ``(`` at ``open_at``, or -1."""
    depth = 0
    for i in range(open_at, len(text)):
        if text[i] == "(":
            depth += 1
        elif text[i] == ")":
            depth -= 1
            if depth == 0:
                return i
    return -1


def strip_identifier(name: str) -> str:
    """``public."Users"`` -> ``Users``: last dotted part, quotes removed."""
    last = name.strip().rsplit(".", 1)[-1]
    return last.strip().strip(_QUOTE_CHARS)


def is_simple_column(expr: str) -> bool:
    return bool(_SIMPLE_COLUMN_RE.match(expr.strip()))
