"""Shape guard: reject statements the surface parsers would mismap."""

from __future__ import annotations

import sqlglot
from sqlglot import exp


def unsupported_shape(sql: str, *, dialect: str | None = None) -> str | None:
    """Return why ``sql`` must be treated as unparsed, or None if it may be mapped.

    Multi-statement batches, sub-selects (including CTEs and set operations)
    and ``INSERT ... SELECT`` have no reliable placeholder-to-column mapping.
    Text sqlglot cannot parse is not vetoed here; the regex parsers decide.
    """
    try:
        statements = [s for s in sqlglot.parse(sql, read=dialect) if s is not None]
    except sqlglot.errors.SqlglotError:
        return None

    if len(statements) > 1:
        return "multiple statements"
    if not statements:
        return None

    statement = statements[0]
    selects = list(statement.find_all(exp.Select))
    if isinstance(statement, exp.Insert) and selects:
        return "INSERT ... SELECT"
    if isinstance(statement, exp.Update) and selects:
        return "sub-select in UPDATE"
    if len(selects) > 1:
        return "sub-select"
    return None
