"""Alpaca transport manifest."""

from driver_conform.transports.alpaca.config import AlpacaConfig
from driver_conform.transports.alpaca.transport import AlpacaTransport
from driver_conform.transports.manifest import TransportManifest

alpaca_manifest = TransportManifest(
    config_cls=AlpacaConfig,
    transport_factory=AlpacaTransport.from_config,
)
