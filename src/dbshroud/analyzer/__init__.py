"""Statement analyzer: classify SQL and map parameters/columns to table.column."""

from __future__ import annotations

import functools
import logging
import re

from dbshroud.adapters._base import Paramstyle
from dbshroud.analyzer._text import mask_literals
from dbshroud.analyzer._types import ParsedStatement, SqlType
from dbshroud.analyzer.shape import unsupported_shape
from dbshroud.analyzer.statements import parse_insert, parse_select, parse_update

logger = logging.getLogger(__name__)

_LEADING_KEYWORD_RE = re.compile(r"^\s*(\w+)")

_PARSERS = {
    "INSERT": parse_insert,
    "UPDATE": parse_update,
    "SELECT": parse_select,
}


@functools.lru_cache(maxsize=1024)
def analyze(
    sql: str,
    *,
    paramstyle: Paramstyle = Paramstyle.QMARK,
    dialect: str | None = None,
) -> ParsedStatement | None:
    """Analyze one SQL statement.

    Steps:
        1. Mask string literals and comments
        2. Pick a parser from the leading keyword
        3. Veto shapes with no reliable mapping (sqlglot)
        4. Parse INSERT / UPDATE / SELECT surface shape

    Returns:
        ParsedStatement, an OTHER statement for kinds that carry no mapping
        (DELETE, DDL, ...), or None when the text is unparsed. Callers treat
        both OTHER and None as "pass every value through unchanged".
    """
    if not sql or not sql.strip():
        return None

    masked = mask_literals(sql)
    keyword = _LEADING_KEYWORD_RE.match(masked)
    if keyword is None:
        return None

    parser = _PARSERS.get(keyword.group(1).upper())
    if parser is None:
        return ParsedStatement(sql_type=SqlType.OTHER)

    reason = unsupported_shape(sql, dialect=dialect)
    if reason is not None:
        logger.debug("Statement not mapped (%s): %.120s", reason, sql)
        return None

    parsed = parser(sql, masked, paramstyle)
    if parsed is None:
        logger.debug("Statement shape not recognized: %.120s", sql)
    return parsed


__all__ = ["ParsedStatement", "SqlType", "analyze"]
