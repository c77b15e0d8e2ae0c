"""Sequential walk over the vCloud inventory."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator

from .models import ReferenceType

if TYPE_CHECKING:
    from connectors.vcloud_interface import InventoryClient


def iter_vdc_resources(client: InventoryClient) -> Iterator[tuple[ReferenceType, ReferenceType]]:
    """Yield ``(vdc, resource)`` for every resource entity of every VDC of every org.

    One ``get_vdc`` call is made per VDC, lazily, in the order the mappings
    expose them. Calls are issued one at a time; client errors propagate
    unchanged and end the walk.
    """
    for org in client.orgs().values():
        for vdc in org.vdcs.values():
            for resource in client.get_vdc(vdc.href).resource_entities.values():
                yield vdc, resource


__all__ = ["iter_vdc_resources"]
