import ipaddress
import logging
import uuid
from typing import Optional

import httpx
from box import Box

from connectors.vcloud_interface import (
    ApiPayload,
    InventoryClient,
    LocationResolver,
    NodeDetailFetcher,
    VCloudSessionProtocol,
)
from orchestrator.lookup import Failed, Found, NodeLookup, NotYetPresent
from orchestrator.models import VDC, NodeMetadata, NodeState, Org, ReferenceType

logger = logging.getLogger(__name__)

# vApp status reported by the API -> NodeState
VAPP_STATUS_TO_NODE_STATE = {
    "UNRESOLVED": NodeState.PENDING,
    "RESOLVED": NodeState.PENDING,
    "POWERED_ON": NodeState.RUNNING,
    "POWERED_OFF": NodeState.SUSPENDED,
    "SUSPENDED": NodeState.SUSPENDED,
    "FAILED_CREATION": NodeState.ERROR,
}


##### Sessions #####
class MockVCloudSession(VCloudSessionProtocol):
    """
    A mock vCloud session implementation.
    Uses REST API.

    Args:
        host_URL (str): The base URL of the vCloud API.
            Must include scheme (http:// or https://) and optionally port.
            Examples: "http://localhost:8000", "https://vcloud.example.com"
        user (str): The username for authentication.
        password (str): The password for authentication.
        client (httpx.Client, optional): Preconfigured client, e.g. a
            fastapi TestClient. Built from host_URL and credentials if omitted.
        timeout (float): Timeout in seconds for every request.
    """
    def __init__(self, host_URL: str, user: str, password: str,
                 client: Optional[httpx.Client] = None, timeout: float = 10.0):
        self.base_URL = host_URL.rstrip("/")
        self.user = user
        self.password = password
        self.session_id = str(uuid.uuid4())
        self._client = client if client is not None else httpx.Client(
            base_url=self.base_URL, auth=(user, password), timeout=timeout)

    def request(self, method: str, endpoint: str, **kwargs) -> httpx.Response:
        """
        Make an HTTP request to the vCloud API.
        raise_for_status() is called on the response.

        Args:
            method (str): The HTTP method (GET, POST, PUT, DELETE).
            endpoint (str): API path, or an absolute href returned by the API.
            **kwargs: Additional arguments to pass to httpx request.
            example: session.request("GET", "/orgs")

        Returns:
            httpx.Response: The HTTP response object.
        """
        if endpoint.startswith(("http://", "https://")):
            url = endpoint
        else:
            url = f"{self.base_URL}/{endpoint.lstrip('/')}"
        response = self._client.request(method, url, **kwargs)
        response.raise_for_status()
        return response

    @property
    def hypervisor_type(self) -> str:
        return "mock_vcloud"

    @property
    def is_alive(self) -> bool:
        """Check if the session is alive by making a test request to the API."""
        try:
            resp = self.request("GET", "/status", timeout=2)
            return resp.status_code == 200
        except httpx.HTTPError:
            return False

    def connect(self):
        """Establish the session.
        The mock API uses no tokens, so this only checks the endpoint answers.
        """
        if not self.is_alive:
            raise ConnectionError(f"Cannot connect to vCloud at {self.base_URL}")

    def disconnect(self):
        """Close the underlying HTTP client."""
        self._client.close()


##### Connectors #####

class MockVCloudClient(InventoryClient):
    """Inventory client reading orgs and VDCs from the mock vCloud API."""

    def __init__(self, session: MockVCloudSession):
        self.session: MockVCloudSession = session
        self.request = self.session.request  # "alias" Now self.request(...) is the same as self.session.request(...)

    @property
    def info(self) -> Box:
        """ Returns information about the connector,
            such as type and endpoint, as a Box.
        """
        return Box({
            "type": self.session.hypervisor_type,
            "hostURL": self.session.base_URL,
            "user": self.session.user,
        })

    def orgs(self) -> dict[str, Org]:
        r = self.request("GET", "/orgs")
        orgs = [Org.model_validate(org) for org in r.json()]
        return {org.name: org for org in orgs}

    def get_vdc(self, href: str) -> VDC:
        r = self.request("GET", href)
        return VDC.model_validate(r.json())


class MockNodeFetcher(NodeDetailFetcher):
    """Reads one vApp from its href and builds the NodeMetadata.

    A 404 is reported as NotYetPresent: the href came from a VDC listing, so
    the vApp exists but is not readable yet. Any other failure is Failed.
    """

    def __init__(self, session: MockVCloudSession, find_location: LocationResolver):
        self.session = session
        self.find_location = find_location

    def get_node(self, href: str) -> NodeLookup:
        try:
            r = self.session.request("GET", href)
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 404:
                logger.debug("vApp %s answered 404", href)
                return NotYetPresent(href)
            return Failed(exc)
        except httpx.RequestError as exc:
            return Failed(exc)
        try:
            return Found(self.to_node(ApiPayload(r.json())))
        except (ValueError, LookupError) as exc:
            return Failed(exc)

    def to_node(self, vapp: ApiPayload) -> NodeMetadata:
        vdc = ReferenceType.model_validate(vapp.vdc.to_dict())
        addresses = tuple(vapp.get("ip_addresses") or ())
        return NodeMetadata(
            provider_id=vapp.href,
            id=vapp.href,
            name=vapp.name,
            location=self.find_location(vdc),
            state=VAPP_STATUS_TO_NODE_STATE.get(vapp.get("status", ""), NodeState.UNRECOGNIZED),
            hostname=vapp.name,
            group=vdc.name,
            private_addresses=tuple(a for a in addresses if _is_private(a)),
            public_addresses=tuple(a for a in addresses if not _is_private(a)),
        )


def _is_private(address: str) -> bool:
    try:
        return ipaddress.ip_address(address).is_private
    except ValueError:
        return False
