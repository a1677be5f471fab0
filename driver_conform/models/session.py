"""Per-device session context threaded through a conformance run."""

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any

from driver_conform.models.verdict import FailureTaxonomy, Verdict


@dataclass(frozen=True, kw_only=True)
class ProbeResult:
    """Outcome of a single probe.

    readable records whether the member worked; failure is the taxonomy of
    the error the device raised, if any.
    """

    verdict: Verdict
    value: Any = None
    readable: bool = False
    failure: FailureTaxonomy | None = None


@dataclass(frozen=True, kw_only=True)
class DeviceSession:
    """What has been learned about a device so far.

    The session is never mutated; each recorded probe returns a new session,
    so a check can be run against any earlier snapshot in isolation.
    """

    device_id: str
    capabilities: Mapping[str, bool] = field(
        default_factory=lambda: MappingProxyType({})
    )
    values: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def record(self, member: str, result: ProbeResult) -> "DeviceSession":
        """Return a session that remembers the outcome of a probe of member."""
        capabilities = {**self.capabilities, member: result.readable}
        values = dict(self.values)
        if result.readable:
            values[member] = result.value
        return replace(
            self,
            capabilities=MappingProxyType(capabilities),
            values=MappingProxyType(values),
        )

    def with_capability(self, name: str, available: bool) -> "DeviceSession":
        """Return a session with a capability flag set."""
        return replace(
            self,
            capabilities=MappingProxyType({**self.capabilities, name: available}),
        )

    def can(self, name: str) -> bool:
        """Whether a capability or member is known to be available."""
        return self.capabilities.get(name, False)
