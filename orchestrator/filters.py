"""Decide which resource entities count as nodes."""

from __future__ import annotations

from typing import Iterable, Optional

from .models import VAPP_XML, ReferenceType


def parse_blacklist(value: Optional[str]) -> frozenset[str]:
    """Split a comma-separated list of vApp names. ``None`` or ``""`` means no names."""
    if not value:
        return frozenset()
    return frozenset(value.split(","))


class VAppFilter:
    """Accepts vApps whose name is not blacklisted."""

    def __init__(self, blacklist: Iterable[str] = ()):
        self.blacklist = frozenset(blacklist)

    def __call__(self, resource: ReferenceType) -> bool:
        return resource.type == VAPP_XML and resource.name not in self.blacklist

    def __repr__(self) -> str:
        return f"VAppFilter(blacklist={sorted(self.blacklist)!r})"


__all__ = ["VAppFilter", "parse_blacklist"]
