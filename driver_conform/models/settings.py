"""Timing settings consumed by the conformance engine."""

from pydantic import Field

from driver_conform.models.base import Model


class ConformSettings(Model):
    """Settings for a conformance run."""

    poll_interval_ms: int = Field(
        default=500, ge=100, description="Interval between completion polls"
    )
    standard_timeout: float = Field(
        default=10.0, ge=0, description="Default wait timeout in seconds"
    )
    wait_update_interval_ms: int = Field(
        default=500, ge=100, description="Progress interval for plain waits"
    )
    performance_window: float = Field(
        default=5.0, gt=0, description="Length of each rate sample in seconds"
    )
    initiation_limit: float = Field(
        default=1.0,
        gt=0,
        description="Seconds within which an asynchronous operation must return",
    )
    test_performance: bool = Field(
        default=False, description="Run the transaction rate phase"
    )
