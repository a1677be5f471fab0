"""Transaction rate measurement and operation initiation timing."""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from driver_conform.models.verdict import Outcome, Verdict

log = logging.getLogger(__name__)

DEFAULT_WINDOW = 5.0
DEFAULT_INITIATION_LIMIT = 1.0
PROGRESS_INTERVAL = 1.0

type Probe = Callable[[], Any | Awaitable[Any]]
type SampleProgress = Callable[[int, float], None]


class RateBand(StrEnum):
    """Throughput bands a sampled transaction rate falls into."""

    FAST = "fast"
    NORMAL = "normal"
    SLOW = "slow"
    VERY_SLOW = "very-slow"


@dataclass(frozen=True, kw_only=True)
class RateSample:
    """Invocation count over a measured window."""

    count: int
    elapsed: float
    cancelled: bool = False

    @property
    def rate(self) -> float:
        """Transactions per second."""
        if self.elapsed <= 0:
            return 0.0
        return self.count / self.elapsed


def rate_band(rate: float) -> RateBand:
    """Map a transaction rate onto its band."""
    if rate > 10.0:
        return RateBand.FAST
    if 2.0 <= rate <= 10.0:
        return RateBand.NORMAL
    if 1.0 <= rate < 2.0:
        return RateBand.SLOW
    return RateBand.VERY_SLOW


def classify_rate(subject: str, sample: RateSample) -> Verdict:
    """Turn a rate sample into a verdict.

    Only the normal band passes. The fast, slow and very slow bands are all
    advisory.
    """
    if sample.cancelled:
        return Verdict(
            outcome=Outcome.ADVISORY,
            subject=subject,
            detail=(
                f"performance test cancelled after {sample.count} transactions "
                f"in {sample.elapsed:.1f} seconds"
            ),
        )

    band = rate_band(sample.rate)
    return Verdict(
        outcome=Outcome.PASS if band is RateBand.NORMAL else Outcome.ADVISORY,
        subject=subject,
        detail=f"Transaction rate: {sample.rate:.1f} per second",
    )


async def sample(
    probe: Probe,
    *,
    window: float = DEFAULT_WINDOW,
    cancel: asyncio.Event | None = None,
    progress: SampleProgress | None = None,
) -> RateSample:
    """Invoke probe repeatedly for window seconds and count the invocations.

    The probe always runs at least once. The loop yields to the event loop
    after every invocation, so cancellation is noticed even when probe is a
    blocking plain function. Progress is reported at most once a second with
    (count, elapsed). Exceptions raised by probe propagate.
    """
    loop = asyncio.get_event_loop()
    start = loop.time()
    last_report = 0.0
    count = 0

    while True:
        count += 1
        result = probe()
        if inspect.isawaitable(result):
            await result
        await asyncio.sleep(0)

        elapsed = loop.time() - start

        if elapsed > last_report + PROGRESS_INTERVAL:
            last_report = elapsed
            if progress is not None:
                progress(count, elapsed)

        if cancel is not None and cancel.is_set():
            log.debug("Rate sampling cancelled after %d transactions", count)
            return RateSample(count=count, elapsed=elapsed, cancelled=True)

        if elapsed > window:
            return RateSample(count=count, elapsed=elapsed)


async def time_initiation(
    subject: str,
    operation: Callable[[], Awaitable[Any]],
    *,
    limit: float = DEFAULT_INITIATION_LIMIT,
) -> Verdict:
    """Run an operation that should only start a long action and time it.

    An asynchronous operation is expected to return promptly and complete in
    the background; taking longer than limit seconds to return is reported as
    an advisory. Exceptions raised by operation propagate.
    """
    loop = asyncio.get_event_loop()
    start = loop.time()
    await operation()
    elapsed = loop.time() - start

    if elapsed > limit:
        return Verdict(
            outcome=Outcome.ADVISORY,
            subject=subject,
            detail=(
                f"Operation initiation took {elapsed:.1f} seconds, which is more "
                f"than the configured maximum: {limit:.1f} seconds"
            ),
        )
    return Verdict(
        outcome=Outcome.PASS,
        subject=subject,
        detail=f"Operation initiated in {elapsed:.1f} seconds",
    )
