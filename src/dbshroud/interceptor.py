"""Bind-path encryption and read-path decryption for one connection."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from dbshroud.analyzer import ParsedStatement, SqlType
from dbshroud.crypto import CryptoAdapter
from dbshroud.policy_cache import PolicyCache

logger = logging.getLogger(__name__)


class FieldInterceptor:
    """Analyzer result -> policy lookup -> crypto, for parameters and rows.

    Only ``str`` values are ever transformed. Statements that did not parse,
    carry no table, or bind named (dict) parameters pass through untouched.
    """

    def __init__(self, policy_cache: PolicyCache, crypto: CryptoAdapter) -> None:
        self._cache = policy_cache
        self._crypto = crypto

    @property
    def policy_cache(self) -> PolicyCache:
        return self._cache

    def protect_parameters(self, parsed: ParsedStatement | None, params: Any) -> Any:
        if parsed is None or parsed.table_name is None or not parsed.parameter_index_to_column:
            return params
        if params is None or isinstance(params, (str, bytes)) or not isinstance(params, Sequence):
            return params

        table = parsed.table_name
        protected = list(params)
        changed = False
        for position, value in enumerate(protected, start=1):
            if not isinstance(value, str) or parsed.is_search_parameter(position):
                continue
            column = parsed.column_for_parameter(position)
            if column is None:
                continue
            policy = self._cache.resolve(table, column)
            if policy is None:
                continue
            protected[position - 1] = self._crypto.encrypt(value, policy)
            changed = True
            logger.debug("Bound parameter %d -> %s.%s (policy %s)", position, table, column, policy)

        if not changed:
            return params
        return tuple(protected) if isinstance(params, tuple) else protected

    def policies_for_result(
        self,
        parsed: ParsedStatement | None,
        description: Sequence[Sequence[Any]] | None,
    ) -> list[str | None] | None:
        """Per result position, whether the column is policy-covered (None = none are)."""
        if parsed is None or parsed.sql_type is not SqlType.SELECT or parsed.table_name is None:
            return None
        if not description or len(self._cache) == 0:
            return None

        covered: list[str | None] = []
        for index, col in enumerate(description):
            label = col[0] if col else None
            column = parsed.result_column(index, label)
            covered.append(
                self._cache.resolve(parsed.table_name, column) if column is not None else None
            )
        if not any(covered):
            return None
        return covered

    def reveal_row(self, covered: list[str | None] | None, row: Any) -> Any:
        if covered is None or row is None:
            return row
        values = list(row)
        changed = False
        for index, value in enumerate(values):
            if index < len(covered) and covered[index] is not None and isinstance(value, str):
                values[index] = self._crypto.decrypt(value)
                changed = True
        if not changed:
            return row
        return tuple(values) if isinstance(row, tuple) else values
