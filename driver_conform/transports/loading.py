"""Lookup of device transports installed as driver_conform.transports plugins."""

from importlib.metadata import entry_points
from typing import Any

from driver_conform.transports.manifest import TransportManifest

ENTRY_POINT_GROUP = "driver_conform.transports"


class TransportNotFoundError(Exception):
    """Raised when no installed transport can reach devices of the given kind."""


def load_transport_manifest(key: str) -> TransportManifest[Any]:
    """Find the transport that talks to devices over the protocol named by key.

    The alpaca transport ships with this package; transports for other device
    protocols register under the same entry point group from their own
    distributions.

    Args:
        key: Protocol key passed to --transport (e.g., "alpaca")

    Returns:
        The manifest of the matching transport, not yet connected to a device

    Raises:
        TransportNotFoundError: If no installed transport registered key

    """
    entries = entry_points(group=ENTRY_POINT_GROUP)

    for entry in entries:
        if entry.name == key:
            manifest: TransportManifest[Any] = entry.load()
            return manifest

    available = sorted(e.name for e in entries)
    raise TransportNotFoundError(
        f"Cannot reach devices over '{key}': transport not found. "
        f"Available transports: {', '.join(available) or 'none'}"
    )
