"""Bounded, cancellable waiting for asynchronous device operations."""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from driver_conform.models.verdict import Outcome, Verdict

log = logging.getLogger(__name__)

MINIMUM_POLL_INTERVAL_MS = 100
DEFAULT_UPDATE_INTERVAL_MS = 500

type BusyPredicate = Callable[[], bool | Awaitable[bool]]
type ProgressCallback = Callable[[float, float], None]


@dataclass(frozen=True, kw_only=True)
class Completed:
    """The awaited condition occurred.

    synchronous is True when the operation was already complete on the
    first check, before any waiting took place.
    """

    elapsed: float
    synchronous: bool


@dataclass(frozen=True, kw_only=True)
class TimedOut:
    """The condition did not occur before the timeout."""

    elapsed: float


@dataclass(frozen=True, kw_only=True)
class Cancelled:
    """The wait was abandoned because cancellation was requested."""

    elapsed: float


type PollOutcome = Completed | TimedOut | Cancelled


async def wait_while(
    action: str,
    predicate: BusyPredicate,
    *,
    poll_interval_ms: int,
    timeout: float,
    cancel: asyncio.Event | None = None,
    progress: ProgressCallback | None = None,
) -> PollOutcome:
    """Poll predicate until it returns False, the timeout passes or cancel is set.

    Polls happen at fixed offsets from the start of the wait (multiples of the
    poll interval) so the cadence does not drift when the predicate is slow,
    for example when it is itself a remote call. The final poll is moved to
    the deadline when the deadline falls between two boundaries.

    Args:
        action: Name of the operation being waited for, used in log messages
        predicate: Returns True while the operation is still in progress, may
            be a plain function or a coroutine function
        poll_interval_ms: Milliseconds between predicate evaluations
        timeout: Seconds to wait before giving up
        cancel: Event that aborts the wait as soon as it is set
        progress: Called with (elapsed, timeout) after every poll; runs on the
            polling path so it must not block

    Returns:
        Completed, TimedOut or Cancelled with the elapsed time

    Raises:
        ValueError: If the poll interval or timeout is out of range

    Exceptions raised by predicate propagate unchanged.

    """
    if poll_interval_ms < MINIMUM_POLL_INTERVAL_MS:
        raise ValueError(
            f"The poll interval must be >= {MINIMUM_POLL_INTERVAL_MS}ms: "
            f"{poll_interval_ms}"
        )
    if timeout < 0:
        raise ValueError(f"The timeout must not be negative: {timeout}")

    loop = asyncio.get_event_loop()
    interval = poll_interval_ms / 1000
    start = loop.time()
    deadline = start + timeout

    if cancel is not None and cancel.is_set():
        return Cancelled(elapsed=loop.time() - start)

    if not await _evaluate(predicate):
        return Completed(elapsed=loop.time() - start, synchronous=True)

    tick = 0
    while True:
        tick = max(tick + 1, int((loop.time() - start) // interval) + 1)
        boundary = min(start + tick * interval, deadline)

        if await _sleep_until(loop, boundary, cancel):
            log.debug("The %s operation was cancelled", action)
            return Cancelled(elapsed=loop.time() - start)

        busy = await _evaluate(predicate)
        elapsed = loop.time() - start

        if progress is not None:
            progress(min(elapsed, timeout), timeout)

        if not busy:
            return Completed(elapsed=elapsed, synchronous=False)

        if elapsed >= timeout:
            log.debug(
                "The %s operation timed out after %.1f seconds", action, timeout
            )
            return TimedOut(elapsed=elapsed)


async def wait_for(
    action: str,
    duration: float,
    *,
    update_interval_ms: int = DEFAULT_UPDATE_INTERVAL_MS,
    cancel: asyncio.Event | None = None,
    progress: ProgressCallback | None = None,
) -> Completed | Cancelled:
    """Wait a fixed duration, reporting progress every update interval.

    Uses the same fixed-offset cadence and cancellation behaviour as
    wait_while, without a completion predicate.
    """
    if update_interval_ms < MINIMUM_POLL_INTERVAL_MS:
        raise ValueError(
            f"The update interval must be >= {MINIMUM_POLL_INTERVAL_MS}ms: "
            f"{update_interval_ms}"
        )

    loop = asyncio.get_event_loop()
    start = loop.time()

    if cancel is not None and cancel.is_set():
        return Cancelled(elapsed=0.0)

    if duration <= 0:
        return Completed(elapsed=0.0, synchronous=True)

    interval = update_interval_ms / 1000
    deadline = start + duration
    tick = 0

    while (now := loop.time()) < deadline:
        tick = max(tick + 1, int((now - start) // interval) + 1)
        boundary = min(start + tick * interval, deadline)

        if await _sleep_until(loop, boundary, cancel):
            log.debug("Waiting for %s was cancelled", action)
            return Cancelled(elapsed=loop.time() - start)

        if progress is not None:
            progress(min(loop.time() - start, duration), duration)

    return Completed(elapsed=loop.time() - start, synchronous=False)


def outcome_verdict(subject: str, outcome: PollOutcome) -> Verdict:
    """Map a wait outcome onto a verdict for the reporting sink."""
    match outcome:
        case Completed(synchronous=True):
            return Verdict(
                outcome=Outcome.PASS,
                subject=subject,
                detail="operation completed synchronously",
            )
        case Completed(elapsed=elapsed):
            return Verdict(
                outcome=Outcome.PASS,
                subject=subject,
                detail=f"operation completed after {elapsed:.1f} seconds",
            )
        case TimedOut(elapsed=elapsed):
            return Verdict(
                outcome=Outcome.FAIL,
                subject=subject,
                detail=f"operation did not complete within {elapsed:.1f} seconds",
            )
        case Cancelled():
            return Verdict(
                outcome=Outcome.ADVISORY,
                subject=subject,
                detail="wait cancelled by operator",
            )


async def _evaluate(predicate: BusyPredicate) -> bool:
    result = predicate()
    if inspect.isawaitable(result):
        result = await result
    return bool(result)


async def _sleep_until(
    loop: asyncio.AbstractEventLoop,
    when: float,
    cancel: asyncio.Event | None,
) -> bool:
    """Sleep until the loop clock reaches when; return True if cancelled."""
    while (remaining := when - loop.time()) > 0:
        if cancel is None:
            await asyncio.sleep(remaining)
            continue
        try:
            await asyncio.wait_for(cancel.wait(), timeout=remaining)
        except TimeoutError:
            continue
        return True
    return cancel is not None and cancel.is_set()
