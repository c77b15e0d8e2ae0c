# connections_manager.py
"""
connections_manager.py
----------------------
Manages vCloud sessions

Holds in-memory sessions to the vCloud endpoints used by the CLIs.

Creates sessions as needed and reuses existing ones when possible.
A session is shared by the inventory client and the node fetcher built on it.

"""

import logging

from connectors.mock_vcloud_connector import MockVCloudSession
from connectors.vcloud_interface import VCloudSessionProtocol

logger = logging.getLogger(__name__)

######################### Sessions #########################

# key: (host_URL, user) tuple
# value: VCloudSessionProtocol instance
# This allows unique sessions per (host_URL, user) pair.
_active_sessions: dict[tuple[str, str], VCloudSessionProtocol] = {}


def get_session(hypervisor_type: str, host_URL: str, user: str, password: str, timeout: float = 10.0) -> VCloudSessionProtocol:
    """
    Get or create a vCloud session for the given parameters.
    Reuses existing sessions if one matches the (host_URL, user) pair.
    """
    key = (host_URL, user)
    if key in _active_sessions:
        return _active_sessions[key]

    if hypervisor_type == "mock_vcloud":
        session = MockVCloudSession(host_URL, user, password, timeout=timeout)
    # Add other endpoint types here as needed
    else:
        raise ValueError(f"Unsupported hypervisor type: {hypervisor_type}")

    session.connect()
    _active_sessions[key] = session
    logger.info("Opened %s session to %s as %r", hypervisor_type, host_URL, user)
    return session


def close_sessions() -> None:
    """Disconnect and forget every cached session."""
    while _active_sessions:
        key, session = _active_sessions.popitem()
        session.disconnect()
        logger.info("Closed session to %s as %r", *key)
