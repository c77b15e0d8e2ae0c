"""Outcome of a single node detail fetch.

A vApp can show up in its VDC before the vCloud API is able to return it on
its own href. Fetchers report that window as ``NotYetPresent`` instead of
``None`` so it cannot be confused with a resource that does not exist.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .models import NodeMetadata


@dataclass(frozen=True)
class Found:
    node: NodeMetadata


@dataclass(frozen=True)
class NotYetPresent:
    href: str = ""


@dataclass(frozen=True)
class Failed:
    error: Exception


NodeLookup = Union[Found, NotYetPresent, Failed]

__all__ = ["Failed", "Found", "NodeLookup", "NotYetPresent"]
