from typing import Mapping, Protocol

from box import Box

from orchestrator.lookup import NodeLookup
from orchestrator.models import VDC, Location, Org, ReferenceType


class ApiPayload(Box):
    """
    Dot-access view of a JSON document returned by the vCloud API.
    See: https://github.com/cdgriffith/Box for Box documentation.
    Examples:
        vapp = ApiPayload(r.json())
        print(vapp.vdc.href)
        print(vapp['status'])
    """


class VCloudSessionProtocol(Protocol):
    """Interface Protocol for vCloud session objects.
    To be subclassed by actual session implementations.
    """
    @property
    def hypervisor_type(self) -> str: ...
    @property
    def is_alive(self) -> bool: ...
    def connect(self): ...
    def disconnect(self): ...


class InventoryClient(Protocol):
    """
    Read access to the organization -> VDC -> resource entity hierarchy.
    Every call goes to the remote system; nothing is cached.
    """

    def orgs(self) -> Mapping[str, Org]:
        """Current organizations keyed by name."""
        ...

    def get_vdc(self, href: str) -> VDC:
        """Fetch the VDC behind ``href``, including its resource entities."""
        ...


class NodeDetailFetcher(Protocol):
    """
    Resolves a vApp href into a NodeMetadata.
    Implementations return NotYetPresent while the vApp is not readable yet,
    and Failed (or raise) for any other problem.
    """

    def get_node(self, href: str) -> NodeLookup: ...


class LocationResolver(Protocol):
    """Maps a VDC reference to the Location nodes inside it belong to."""

    def __call__(self, vdc: ReferenceType) -> Location: ...
