"""What a device transport plugin exposes to the CLI."""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass

from pydantic import BaseModel

from driver_conform.transports.base import DeviceTransport


@dataclass(frozen=True, kw_only=True)
class TransportManifest[ConfigT: BaseModel]:
    """How to configure and connect one kind of device transport.

    config_cls validates the --transport-config JSON (device address, device
    number and so on). transport_factory opens a connection to the device
    from that config and closes it when the run ends, so no connection is
    made until a run actually starts.
    """

    config_cls: type[ConfigT]
    transport_factory: Callable[
        [ConfigT], AbstractAsyncContextManager[DeviceTransport]
    ]
