"""Alpaca network transport implementation."""

import itertools
import logging
from collections.abc import AsyncGenerator, Iterator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import aiohttp
from pydantic import ValidationError

from driver_conform.models.verdict import FailureTaxonomy
from driver_conform.transports.alpaca.config import AlpacaConfig
from driver_conform.transports.alpaca.models import AlpacaResponse
from driver_conform.transports.base import (
    DeviceError,
    DeviceTransport,
    DeviceUnreachableError,
)

log = logging.getLogger(__name__)

NOT_IMPLEMENTED = 0x400
INVALID_VALUE = 0x401
VALUE_NOT_SET = 0x402
INVALID_OPERATION = 0x40B
ACTION_NOT_IMPLEMENTED = 0x40C

ERROR_TAXONOMY: Mapping[int, FailureTaxonomy] = {
    NOT_IMPLEMENTED: FailureTaxonomy.NOT_IMPLEMENTED,
    ACTION_NOT_IMPLEMENTED: FailureTaxonomy.NOT_IMPLEMENTED,
    INVALID_VALUE: FailureTaxonomy.INVALID_VALUE,
    INVALID_OPERATION: FailureTaxonomy.INVALID_OPERATION,
    VALUE_NOT_SET: FailureTaxonomy.UNCLASSIFIED,
}


@dataclass(frozen=True, kw_only=True)
class AlpacaTransport(DeviceTransport):
    """Transport talking to one device through the Alpaca REST API."""

    config: AlpacaConfig
    session: aiohttp.ClientSession = field(repr=False)
    _transaction_ids: Iterator[int] = field(
        default_factory=lambda: itertools.count(1), init=False, repr=False
    )

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: AlpacaConfig
    ) -> AsyncGenerator["AlpacaTransport", None]:
        """Create transport with managed session lifecycle."""
        async with aiohttp.ClientSession(
            base_url=config.base_url,
            timeout=aiohttp.ClientTimeout(total=config.timeout),
        ) as session:
            yield cls(config=config, session=session)

    def member_url(self, member: str) -> str:
        """Return the API path of a device member."""
        return (
            f"/api/v1/{self.config.device_type.lower()}"
            f"/{self.config.device_number}/{member.lower()}"
        )

    async def get(self, member: str, **params: Any) -> Any:
        """Read a property."""
        query = {**_encode(params), **self._transaction_params()}
        return await self._request("GET", member, params=query)

    async def put(self, member: str, **params: Any) -> Any:
        """Write a property or invoke a method."""
        form = {**_encode(params), **self._transaction_params()}
        return await self._request("PUT", member, data=form)

    def classify_failure(self, error: Exception) -> FailureTaxonomy:
        """Map Alpaca error numbers onto the failure taxonomy."""
        if isinstance(error, DeviceError):
            return ERROR_TAXONOMY.get(error.error_number, FailureTaxonomy.UNCLASSIFIED)
        return FailureTaxonomy.UNCLASSIFIED

    def _transaction_params(self) -> dict[str, str]:
        return {
            "ClientID": str(self.config.client_id),
            "ClientTransactionID": str(next(self._transaction_ids)),
        }

    async def _request(self, method: str, member: str, **kwargs: Any) -> Any:
        url = self.member_url(member)
        log.debug("%s %s %s", method, url, kwargs)

        try:
            async with self.session.request(method, url, **kwargs) as response:
                if response.status != 200:
                    text = await response.text()
                    raise DeviceError(
                        0, f"{method} {member} failed: {response.status} {text}"
                    )
                try:
                    data = await response.json(content_type=None)
                except ValueError as e:
                    raise DeviceError(
                        0, f"{method} {member} returned invalid JSON: {e}"
                    ) from e
        except (aiohttp.ClientConnectionError, TimeoutError) as e:
            raise DeviceUnreachableError(
                f"Unable to reach {self.config.base_url}{url}: {e}"
            ) from e

        try:
            envelope = AlpacaResponse.model_validate(data)
        except ValidationError as e:
            raise DeviceError(
                0, f"{method} {member} returned a malformed response: {e}"
            ) from e

        if envelope.error_number != 0:
            raise DeviceError(envelope.error_number, envelope.error_message)

        return envelope.value


def _encode(params: Mapping[str, Any]) -> dict[str, str]:
    """Encode request parameters the way Alpaca expects them."""
    encoded: dict[str, str] = {}
    for name, value in params.items():
        if isinstance(value, bool):
            encoded[name] = "true" if value else "false"
        else:
            encoded[name] = str(value)
    return encoded
