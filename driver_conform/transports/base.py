"""Abstract base class for device transports."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from driver_conform.models.verdict import FailureTaxonomy


class DeviceError(Exception):
    """Raised when the device reports an error for a request."""

    def __init__(self, error_number: int, message: str) -> None:
        super().__init__(
            f"0x{error_number:X}: {message}" if error_number else message
        )
        self.error_number = error_number
        self.message = message


class DeviceUnreachableError(Exception):
    """Raised when the device cannot be reached at all."""


@dataclass(frozen=True, kw_only=True)
class DeviceTransport(ABC):
    """Abstract base for device transports.

    A transport invokes interface members on one device and knows how that
    device reports failures. Mapping failures onto the taxonomy is transport
    specific because each transport has its own error number conventions.
    """

    @abstractmethod
    async def get(self, member: str, **params: Any) -> Any:
        """Read a property.

        Args:
            member: Interface member name (e.g., "Position")
            params: Extra request parameters (e.g., an Id for switch members)

        Returns:
            The value returned by the device

        Raises:
            DeviceError: If the device reported an error
            DeviceUnreachableError: If the device could not be reached

        """

    @abstractmethod
    async def put(self, member: str, **params: Any) -> Any:
        """Write a property or invoke a method.

        Args:
            member: Interface member name (e.g., "Move")
            params: Request parameters (e.g., Position=1000)

        Returns:
            The value returned by the device, None for methods without a result

        Raises:
            DeviceError: If the device reported an error
            DeviceUnreachableError: If the device could not be reached

        """

    @abstractmethod
    def classify_failure(self, error: Exception) -> FailureTaxonomy:
        """Map an exception raised by get or put onto the failure taxonomy."""
