"""
strategy.py
-----------
Lists the nodes (vApps) of a vCloud inventory.

Two entry points share one walk over org -> VDC -> resource entity:
    list_nodes                      - cheap summaries, no per-node fetch
    list_details_on_nodes_matching  - full NodeMetadata for summaries
                                      accepted by a predicate

The walk is sequential: one blocking remote call at a time, in the order the
inventory returns things. Nothing is cached between calls.

A vApp can be listed in its VDC before its own href answers. Detail fetches
therefore retry up to MAX_ATTEMPTS times, immediately, while the fetcher
reports NotYetPresent. When every attempt comes back empty the vApp is left
out of the result and only a warning is logged, so callers of
list_details_on_nodes_matching can get fewer nodes than really exist while
vApps are being created.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Optional

from common.app_setup import null_logger

from .filters import VAppFilter, parse_blacklist
from .lookup import Failed, Found, NotYetPresent
from .models import ComputeMetadata, ComputeType, NodeMetadata, ReferenceType
from .walker import iter_vdc_resources

if TYPE_CHECKING:
    from connectors.vcloud_interface import InventoryClient, LocationResolver, NodeDetailFetcher

MAX_ATTEMPTS = 3


class ListNodesStrategy:
    """Turns the vApps of every VDC into ComputeMetadata or NodeMetadata.

    Args:
        client: inventory used for the org and VDC listings.
        get_node_metadata: fetcher for the full record of one vApp.
        find_location: resolves the VDC of a vApp to its Location.
        blacklist_nodes: comma-separated vApp names to ignore.
        logger: receives the "not yet present" warnings; silent when omitted.
    """

    def __init__(
        self,
        client: InventoryClient,
        get_node_metadata: NodeDetailFetcher,
        find_location: LocationResolver,
        blacklist_nodes: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.client = client
        self.get_node_metadata = get_node_metadata
        self.find_location = find_location
        self.valid_vapp = VAppFilter(parse_blacklist(blacklist_nodes))
        self.logger = logger if logger is not None else null_logger()

    @property
    def blacklist(self) -> frozenset[str]:
        return self.valid_vapp.blacklist

    def list_nodes(self) -> set[ComputeMetadata]:
        nodes: set[ComputeMetadata] = set()
        for vdc, resource in iter_vdc_resources(self.client):
            if self.valid_vapp(resource):
                nodes.add(self.convert_vapp_to_compute_metadata(vdc, resource))
        return nodes

    def list_details_on_nodes_matching(self, predicate: Callable[[ComputeMetadata], bool]) -> set[NodeMetadata]:
        nodes: set[NodeMetadata] = set()
        for vdc, resource in iter_vdc_resources(self.client):
            if self.valid_vapp(resource) and predicate(self.convert_vapp_to_compute_metadata(vdc, resource)):
                self.add_vapp_retrying_if_not_yet_present(nodes, vdc, resource)
        return nodes

    def convert_vapp_to_compute_metadata(self, vdc: ReferenceType, resource: ReferenceType) -> ComputeMetadata:
        return ComputeMetadata(
            type=ComputeType.NODE,
            provider_id=resource.href,
            name=resource.name,
            id=resource.href,
            location=self.find_location(vdc),
        )

    def add_vapp_retrying_if_not_yet_present(
        self, nodes: set[NodeMetadata], vdc: ReferenceType, resource: ReferenceType
    ) -> Optional[NodeMetadata]:
        """Fetch ``resource`` and add it to ``nodes``.

        Returns the node, or None when it was still missing after MAX_ATTEMPTS.
        """
        for _ in range(MAX_ATTEMPTS):
            result = self.get_node_metadata.get_node(resource.href)
            if isinstance(result, Found):
                nodes.add(result.node)
                return result.node
            if isinstance(result, Failed):
                raise result.error
            if isinstance(result, NotYetPresent):
                self.logger.warning("vApp %s not yet present in vdc %s", resource.name, vdc.name)
                continue
            raise TypeError(f"unexpected node lookup result: {result!r}")
        return None


__all__ = ["ListNodesStrategy", "MAX_ATTEMPTS"]
