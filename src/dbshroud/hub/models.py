"""Wire models for the Hub API (camelCase JSON <-> dataclasses)."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any


class HubError(Exception):
    """Hub unreachable, non-2xx status, or unusable response."""

    def __init__(self, message: str, *, path: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.path = path
        self.status_code = status_code


class HubRejectedError(HubError):
    """The Hub answered with ``success: false``."""


class HubProtocolError(HubError):
    """The response body is not the envelope we expect."""


@dataclass(frozen=True)
class HubResponse:
    success: bool
    data: Any = None
    message: str | None = None

    @classmethod
    def from_json(cls, body: Any, *, path: str) -> HubResponse:
        if not isinstance(body, dict) or "success" not in body:
            raise HubProtocolError(f"Malformed Hub response for {path}", path=path)
        return cls(
            success=bool(body["success"]),
            data=body.get("data"),
            message=body.get("message"),
        )


@dataclass(frozen=True)
class PolicyMapping:
    table_name: str
    column_name: str
    policy_name: str
    enabled: bool = True
    instance_id: str | None = None
    database_name: str | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> PolicyMapping:
        try:
            return cls(
                table_name=data["tableName"],
                column_name=data["columnName"],
                policy_name=data["policyName"],
                enabled=bool(data.get("enabled", False)),
                instance_id=data.get("instanceId"),
                database_name=data.get("databaseName"),
            )
        except (KeyError, TypeError) as e:
            raise HubProtocolError(f"Malformed policy mapping: {e}") from e

    @property
    def key(self) -> str:
        return f"{self.table_name}.{self.column_name}"


def flatten_mappings(mappings: Iterable[PolicyMapping]) -> dict[str, str]:
    """Enabled mappings as ``{"table.column": policy}``; later duplicates win."""
    return {m.key: m.policy_name for m in mappings if m.enabled}


@dataclass(frozen=True)
class SchemaColumn:
    database_name: str | None
    table_name: str
    column_name: str
    column_type: str
    nullable: bool
    default_expression: str | None = None

    def to_json(self) -> dict[str, Any]:
        return {
            "databaseName": self.database_name,
            "tableName": self.table_name,
            "columnName": self.column_name,
            "columnType": self.column_type,
            "nullable": self.nullable,
            "columnDefault": self.default_expression,
        }
