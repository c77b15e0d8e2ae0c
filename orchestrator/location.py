"""Location hierarchy for vCloud: provider, orgs as regions, VDCs as zones."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from .models import Location, LocationScope, ReferenceType

if TYPE_CHECKING:
    from connectors.vcloud_interface import InventoryClient


def locations_from_inventory(client: InventoryClient, provider_id: str, description: str = "") -> list[Location]:
    """Build every location known to ``client``.

    Only the org listing is read; VDC bodies are not fetched.
    """
    provider = Location(scope=LocationScope.PROVIDER, id=provider_id, description=description or provider_id)
    locations = [provider]
    for org in client.orgs().values():
        region = Location(scope=LocationScope.REGION, id=org.href or org.name, description=org.name, parent=provider)
        locations.append(region)
        for vdc in org.vdcs.values():
            locations.append(Location(scope=LocationScope.ZONE, id=vdc.href, description=vdc.name, parent=region))
    return locations


class FindLocationForResource:
    """Resolve a VDC reference to its zone, matching on href."""

    def __init__(self, locations: Iterable[Location]):
        self._zones = {loc.id: loc for loc in locations if loc.scope == LocationScope.ZONE}

    def __call__(self, vdc: ReferenceType) -> Location:
        try:
            return self._zones[vdc.href]
        except KeyError:
            raise LookupError(f"no location for vdc {vdc.name!r} ({vdc.href})") from None


__all__ = ["FindLocationForResource", "locations_from_inventory"]
