"""Core orchestrator package exposing node discovery and its models."""

from .filters import VAppFilter, parse_blacklist
from .location import FindLocationForResource, locations_from_inventory
from .lookup import Failed, Found, NodeLookup, NotYetPresent
from .models import (
    VAPP_XML,
    ComputeMetadata,
    ComputeType,
    Location,
    LocationScope,
    NodeMetadata,
    NodeState,
    Org,
    ReferenceType,
    VDC,
)
from .strategy import MAX_ATTEMPTS, ListNodesStrategy
from .walker import iter_vdc_resources

__all__ = [
    "ComputeMetadata",
    "ComputeType",
    "Failed",
    "FindLocationForResource",
    "Found",
    "ListNodesStrategy",
    "Location",
    "LocationScope",
    "MAX_ATTEMPTS",
    "NodeLookup",
    "NodeMetadata",
    "NodeState",
    "NotYetPresent",
    "Org",
    "ReferenceType",
    "VAPP_XML",
    "VAppFilter",
    "VDC",
    "iter_vdc_resources",
    "locations_from_inventory",
    "parse_blacklist",
]
