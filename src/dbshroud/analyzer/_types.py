"""Internal types for the statement analyzer."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field


class SqlType(enum.Enum):
    INSERT = "insert"
    UPDATE = "update"
    SELECT = "select"
    OTHER = "other"  # DELETE, DDL, ... -> no parameter/column mapping


@dataclass(frozen=True)
class ParsedStatement:
    """Surface shape of one SQL statement, keyed for policy lookups.

    ``columns`` is declaration order for INSERT/UPDATE and projection order
    for SELECT (``None`` where a projection item is not a plain column, empty
    for ``SELECT *``). Parameter indexes are 1-based, counted left to right.
    """

    sql_type: SqlType
    table_name: str | None = None
    columns: tuple[str | None, ...] = ()
    parameter_index_to_column: dict[int, str] = field(default_factory=dict)
    alias_to_column: dict[str, str] = field(default_factory=dict)
    where_parameters: frozenset[int] = frozenset()

    def column_for_parameter(self, index: int) -> str | None:
        return self.parameter_index_to_column.get(index)

    def is_search_parameter(self, index: int) -> bool:
        """True for placeholders inside a WHERE predicate (kept in plaintext)."""
        return index in self.where_parameters

    def original_column(self, label: str) -> str:
        """Map a result label back to its column: strip qualifier, resolve alias."""
        name = label.rsplit(".", 1)[-1]
        return self.alias_to_column.get(name.lower(), name)

    def result_column(self, index: int, label: str | None) -> str | None:
        """Column identity of the 0-based result position ``index``.

        The projection order wins when the statement listed its columns;
        ``SELECT *`` falls back to the label the driver reports.
        """
        if 0 <= index < len(self.columns) and self.columns[index] is not None:
            return self.columns[index]
        if label is None:
            return None
        return self.original_column(label)
