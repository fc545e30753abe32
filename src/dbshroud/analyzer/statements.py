"""Per-statement shape parsers: map placeholders and projections to columns.

All parsers take the original SQL plus its literal-masked twin (same
offsets) and return None when the text does not have the expected shape.
"""

from __future__ import annotations

import logging
import re

from dbshroud.adapters._base import Paramstyle
from dbshroud.analyzer._text import (
    IDENT,
    PLACEHOLDER_PATTERN,
    QUALIFIED_IDENT,
    count_placeholders,
    find_top_level_keyword,
    is_simple_column,
    matching_paren,
    placeholder_offsets,
    split_top_level,
    strip_identifier,
)
from dbshroud.analyzer._types import ParsedStatement, SqlType

logger = logging.getLogger(__name__)

_INSERT_RE = re.compile(
    rf"^\s*INSERT\s+INTO\s+({QUALIFIED_IDENT})\s*\(",
    re.IGNORECASE,
)
_UPDATE_RE = re.compile(
    rf"^\s*UPDATE\s+({QUALIFIED_IDENT})(?:\s+(?:AS\s+)?(?!SET\b){IDENT})?\s+SET\s+",
    re.IGNORECASE,
)
_SELECT_RE = re.compile(r"^\s*SELECT\s+(?:DISTINCT\s+|ALL\s+)?", re.IGNORECASE)
_FROM_TABLE_RE = re.compile(rf"\s*({QUALIFIED_IDENT})", re.IGNORECASE)
_VALUES_RE = re.compile(r"\s*VALUES\s*", re.IGNORECASE)
_EXPLICIT_ALIAS_RE = re.compile(rf"^(.*\S)\s+AS\s+({IDENT})$", re.IGNORECASE | re.DOTALL)
_IMPLICIT_ALIAS_RE = re.compile(rf"^({QUALIFIED_IDENT})\s+({IDENT})$")

_WHERE_OPERATORS = r"(?:=|!=|<>|<=|>=|<|>|NOT\s+LIKE|I?LIKE|NOT\s+IN|IN)"


def _where_pattern(paramstyle: Paramstyle) -> re.Pattern[str]:
    marker = PLACEHOLDER_PATTERN[paramstyle]
    return re.compile(
        rf"(?:{IDENT}\.)?({IDENT})\s*{_WHERE_OPERATORS}\s*\(?\s*({marker})",
        re.IGNORECASE,
    )


def where_parameters(masked: str, paramstyle: Paramstyle) -> dict[int, str]:
    """Map placeholders in the first top-level WHERE clause to their column.

    Matches ``[qualifier.]column <op> ?``; the global index is the number of
    placeholders before WHERE plus those inside WHERE before the match.
    """
    where_at = find_top_level_keyword(masked, "WHERE")
    if where_at < 0:
        return {}

    before = count_placeholders(masked[:where_at], paramstyle)
    clause = masked[where_at:]
    mapping: dict[int, str] = {}
    for m in _where_pattern(paramstyle).finditer(clause):
        local = count_placeholders(clause[: m.start(2)], paramstyle)
        index = before + local + 1
        mapping.setdefault(index, strip_identifier(m.group(1)))
    return mapping


def parse_insert(sql: str, masked: str, paramstyle: Paramstyle) -> ParsedStatement | None:
    """``INSERT INTO t (a, b) VALUES (?, ?)[, (?, ?)...]``.

    Each VALUES item that is exactly one placeholder maps that placeholder
    to the column in the same position; literal items consume no index.
    """
    m = _INSERT_RE.match(masked)
    if m is None:
        return None

    open_at = m.end() - 1
    close_at = matching_paren(masked, open_at)
    if close_at < 0:
        return None
    columns = tuple(strip_identifier(part) for part in split_top_level(sql[open_at + 1 : close_at]))
    if not all(columns):
        return None

    values = _VALUES_RE.match(masked, close_at + 1)
    if values is None:
        logger.debug("INSERT without a VALUES list is not mapped: %.80s", sql)
        return None

    marker = re.compile(rf"\s*{PLACEHOLDER_PATTERN[paramstyle]}\s*")
    mapping: dict[int, str] = {}
    index = count_placeholders(masked[: values.end()], paramstyle)
    pos = values.end()
    while pos < len(masked) and masked[pos] == "(":
        end = matching_paren(masked, pos)
        if end < 0:
            return None
        for i, item in enumerate(split_top_level(masked[pos + 1 : end])):
            item_count = count_placeholders(item, paramstyle)
            if i < len(columns) and marker.fullmatch(item):
                mapping[index + 1] = columns[i]
            index += item_count
        tail = re.match(r"\s*,\s*", masked[end + 1 :])
        if tail is None:
            break
        pos = end + 1 + tail.end()

    return ParsedStatement(
        sql_type=SqlType.INSERT,
        table_name=strip_identifier(m.group(1)),
        columns=columns,
        parameter_index_to_column=mapping,
    )


def parse_update(sql: str, masked: str, paramstyle: Paramstyle) -> ParsedStatement | None:
    """``UPDATE t [alias] SET a = ?, b = f(x, ?) [WHERE ...]``."""
    m = _UPDATE_RE.match(masked)
    if m is None:
        return None

    set_start = m.end()
    where_at = find_top_level_keyword(masked, "WHERE", set_start)
    set_end = where_at if where_at >= 0 else len(masked)

    columns: list[str | None] = []
    mapping: dict[int, str] = {}
    index = count_placeholders(masked[:set_start], paramstyle)
    cursor = set_start
    for assignment in split_top_level(masked[set_start:set_end]):
        original = sql[cursor : cursor + len(assignment)]
        cursor += len(assignment) + 1
        eq = assignment.find("=")
        target = original[:eq].strip() if eq > 0 else ""
        column = strip_identifier(target) if target and is_simple_column(target) else None
        columns.append(column)
        for _ in placeholder_offsets(assignment, paramstyle):
            index += 1
            if column is not None:
                mapping[index] = column

    where = where_parameters(masked, paramstyle)
    for idx, column in where.items():
        mapping.setdefault(idx, column)

    return ParsedStatement(
        sql_type=SqlType.UPDATE,
        table_name=strip_identifier(m.group(1)),
        columns=tuple(columns),
        parameter_index_to_column=mapping,
        where_parameters=frozenset(where),
    )


def _projection_item(item: str) -> tuple[str | None, str | None]:
    """Return (original column, alias) for one projection item."""
    expr, alias = item.strip(), None
    explicit = _EXPLICIT_ALIAS_RE.match(expr)
    if explicit is not None:
        expr, alias = explicit.group(1).strip(), explicit.group(2)
    else:
        implicit = _IMPLICIT_ALIAS_RE.match(expr)
        if implicit is not None:
            expr, alias = implicit.group(1), implicit.group(2)

    column = strip_identifier(expr) if is_simple_column(expr) else None
    return column, strip_identifier(alias) if alias else None


def parse_select(sql: str, masked: str, paramstyle: Paramstyle) -> ParsedStatement | None:
    """``SELECT <projection> FROM <table> [alias] [WHERE ...]``.

    ``SELECT *`` leaves ``columns`` empty; result columns are then resolved
    from the labels the driver reports at read time.
    """
    m = _SELECT_RE.match(masked)
    if m is None:
        return None

    from_at = find_top_level_keyword(masked, "FROM", m.end())
    if from_at < 0:
        return None
    table = _FROM_TABLE_RE.match(masked, from_at + len("FROM"))
    if table is None:
        return None

    projection = sql[m.end() : from_at].strip()
    columns: list[str | None] = []
    aliases: dict[str, str] = {}
    if projection != "*":
        offset = m.end()
        for part in split_top_level(masked[m.end() : from_at]):
            column, alias = _projection_item(sql[offset : offset + len(part)])
            offset += len(part) + 1
            columns.append(column)
            if column is not None and alias is not None:
                aliases[alias.lower()] = column

    where = where_parameters(masked, paramstyle)
    if aliases:
        logger.debug(
            "SELECT on %s projects %d aliased column(s)", table.group(1), len(aliases)
        )

    return ParsedStatement(
        sql_type=SqlType.SELECT,
        table_name=strip_identifier(table.group(1)),
        columns=tuple(columns),
        parameter_index_to_column=where,
        alias_to_column=aliases,
        where_parameters=frozenset(where),
    )
