"""Output formatting for CLI commands."""

from __future__ import annotations

import json

from dbshroud.analyzer import ParsedStatement
from dbshroud.hub.models import SchemaColumn


def statement_to_dict(parsed: ParsedStatement) -> dict[str, object]:
    return {
        "type": parsed.sql_type.value,
        "table": parsed.table_name,
        "columns": list(parsed.columns),
        "parameters": {str(i): c for i, c in sorted(parsed.parameter_index_to_column.items())},
        "where_parameters": sorted(parsed.where_parameters),
        "aliases": dict(parsed.alias_to_column),
    }


def format_statement(parsed: ParsedStatement | None, *, output_format: str = "text") -> str:
    if output_format == "json":
        doc = {"parsed": False} if parsed is None else {"parsed": True, **statement_to_dict(parsed)}
        return json.dumps(doc, indent=2)

    if parsed is None:
        return "unparsed"
    lines = [f"type: {parsed.sql_type.value}"]
    if parsed.table_name:
        lines.append(f"table: {parsed.table_name}")
    if parsed.columns:
        lines.append("columns: " + ", ".join(c or "?" for c in parsed.columns))
    for index, column in sorted(parsed.parameter_index_to_column.items()):
        role = "search" if parsed.is_search_parameter(index) else "value"
        lines.append(f"  ${index} -> {column} ({role})")
    for alias, column in sorted(parsed.alias_to_column.items()):
        lines.append(f"  {alias} = {column}")
    return "\n".join(lines)


def format_mapping(mapping: dict[str, str], *, output_format: str = "text") -> str:
    if output_format == "json":
        return json.dumps({"mappings": mapping, "count": len(mapping)}, indent=2)
    if not mapping:
        return "No enabled policy mappings."
    width = max(len(k) for k in mapping)
    return "\n".join(f"{key.ljust(width)}  {policy}" for key, policy in sorted(mapping.items()))


def format_schema(
    columns: list[SchemaColumn],
    digest: str,
    *,
    status: str | None = None,
    output_format: str = "text",
) -> str:
    if output_format == "json":
        doc: dict[str, object] = {
            "hash": digest,
            "columns": [c.to_json() for c in columns],
        }
        if status is not None:
            doc["sync"] = status
        return json.dumps(doc, indent=2)

    lines = [
        f"  {c.table_name}.{c.column_name}  {c.column_type}"
        + ("" if c.nullable else "  NOT NULL")
        for c in columns
    ]
    lines.append(f"\n({len(columns)} encryptable columns, hash {digest[:12]})")
    if status is not None:
        lines.append(f"sync: {status}")
    return "\n".join(lines)
