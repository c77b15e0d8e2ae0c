"""Pydantic models for the vCloud inventory and the nodes discovered in it."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# vCloud media types carried in the ``type`` attribute of a reference
ORG_XML = "application/vnd.vmware.vcloud.org+xml"
VDC_XML = "application/vnd.vmware.vcloud.vdc+xml"
VAPP_XML = "application/vnd.vmware.vcloud.vApp+xml"
VAPPTEMPLATE_XML = "application/vnd.vmware.vcloud.vAppTemplate+xml"
MEDIA_XML = "application/vnd.vmware.vcloud.media+xml"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class ReferenceType(_Frozen):
    """Pointer to a remote object: the href is its canonical identifier."""

    href: str
    name: str
    type: str = ""


class Org(_Frozen):
    """Organization with its VDC references keyed by name."""

    name: str
    href: str = ""
    vdcs: dict[str, ReferenceType] = Field(default_factory=dict)


class VDC(_Frozen):
    """Virtual datacenter with its resource entities keyed by name."""

    name: str
    href: str = ""
    resource_entities: dict[str, ReferenceType] = Field(default_factory=dict)


class ComputeType(str, Enum):
    NODE = "NODE"
    IMAGE = "IMAGE"
    HARDWARE = "HARDWARE"


class LocationScope(str, Enum):
    PROVIDER = "PROVIDER"
    REGION = "REGION"
    ZONE = "ZONE"


class Location(_Frozen):
    scope: LocationScope
    id: str
    description: str = ""
    parent: Optional[Location] = None


class ComputeMetadata(_Frozen):
    """Summary of a compute resource, built without fetching its details."""

    type: ComputeType = ComputeType.NODE
    provider_id: str
    id: str
    name: str
    location: Optional[Location] = None


class NodeState(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUSPENDED = "SUSPENDED"
    TERMINATED = "TERMINATED"
    ERROR = "ERROR"
    UNRECOGNIZED = "UNRECOGNIZED"


class NodeMetadata(ComputeMetadata):
    """Fully resolved node as returned by a detail fetch."""

    state: NodeState = NodeState.UNRECOGNIZED
    hostname: str = ""
    group: str = ""
    public_addresses: tuple[str, ...] = ()
    private_addresses: tuple[str, ...] = ()


__all__ = [
    "ComputeMetadata",
    "ComputeType",
    "Location",
    "LocationScope",
    "MEDIA_XML",
    "NodeMetadata",
    "NodeState",
    "ORG_XML",
    "Org",
    "ReferenceType",
    "VAPPTEMPLATE_XML",
    "VAPP_XML",
    "VDC",
    "VDC_XML",
]
