"""Alpaca transport module."""

from driver_conform.transports.alpaca.config import AlpacaConfig
from driver_conform.transports.alpaca.manifest import alpaca_manifest
from driver_conform.transports.alpaca.transport import AlpacaTransport

__all__ = ["AlpacaConfig", "AlpacaTransport", "alpaca_manifest"]
