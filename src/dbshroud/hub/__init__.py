"""Hub collaborator: REST client and wire models."""

from dbshroud.hub.client import HubClient
from dbshroud.hub.models import (
    HubError,
    HubProtocolError,
    HubRejectedError,
    HubResponse,
    PolicyMapping,
    SchemaColumn,
    flatten_mappings,
)

__all__ = [
    "HubClient",
    "HubError",
    "HubProtocolError",
    "HubRejectedError",
    "HubResponse",
    "PolicyMapping",
    "SchemaColumn",
    "flatten_mappings",
]
