"""Probes of single device members, turned into verdicts."""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from driver_conform.awaiter import (
    Cancelled,
    Completed,
    outcome_verdict,
    wait_for,
    wait_while,
)
from driver_conform.classifier import classify
from driver_conform.models.definition import Check
from driver_conform.models.session import ProbeResult
from driver_conform.models.settings import ConformSettings
from driver_conform.models.verdict import (
    Intent,
    MemberType,
    Outcome,
    Requirement,
    Verdict,
)
from driver_conform.sampler import classify_rate, sample, time_initiation
from driver_conform.transports.base import (
    DeviceError,
    DeviceTransport,
    DeviceUnreachableError,
)
from driver_conform.validator import (
    detect_capability_group,
    validate,
    validate_boolean,
    validate_integer,
    validate_member,
    validate_short,
    validate_string,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class ProbeRunner:
    """Runs checks against one device through its transport."""

    transport: DeviceTransport
    settings: ConformSettings = field(default_factory=ConformSettings)
    cancel: asyncio.Event | None = None

    async def run(self, check: Check) -> ProbeResult:
        """Run a check and return its result."""
        if check.kind in {"method", "write"}:
            return await self.invoke(check)
        return await self.read(check)

    async def read(self, check: Check) -> ProbeResult:
        """Read a property and validate the value it returns."""
        log.debug("About to get %s", check.member)
        try:
            value = await self.transport.get(check.member, **check.params)
        except DeviceUnreachableError as e:
            return ProbeResult(verdict=_fatal(check.member, e))
        except DeviceError as e:
            return self._classify_error(check, e)

        if check.requirement is Requirement.MUST_NOT_IMPLEMENT:
            verdict = classify(
                None,
                check.requirement,
                intent=Intent.STANDARD,
                subject=check.member,
            )
        else:
            verdict = _validate(check, value)

        return ProbeResult(verdict=verdict, value=value, readable=True)

    async def invoke(self, check: Check) -> ProbeResult:
        """Write a property or call a method, then wait for it to complete.

        When the check names a busy flag the call must only start the
        operation: initiation is timed and the flag is polled until it clears.
        A settle time is waited out after a successful call before the next
        check runs.
        """
        member_type = _member_type(check)
        intent = Intent.REJECTION if check.expect_rejection else Intent.STANDARD
        flag = check.wait_while if intent is Intent.STANDARD else None
        initiation: Verdict | None = None
        value: Any = None

        log.debug("About to put %s %s", check.member, dict(check.params))
        try:
            if flag is not None:
                initiation = await time_initiation(
                    check.member,
                    lambda: self.transport.put(check.member, **check.params),
                    limit=self.settings.initiation_limit,
                )
            else:
                value = await self.transport.put(check.member, **check.params)
        except DeviceUnreachableError as e:
            return ProbeResult(verdict=_fatal(check.member, e))
        except DeviceError as e:
            return self._classify_error(check, e, intent=intent)

        verdict = classify(
            None,
            check.requirement,
            intent=intent,
            subject=check.member,
            member_type=member_type,
        )
        if flag is not None and verdict.passed:
            verdict = await self._await_completion(check, flag)
            if verdict.passed and initiation is not None and not initiation.passed:
                verdict = initiation

        if verdict.passed and check.settle:
            verdict = await self._settle(check, verdict)

        return ProbeResult(verdict=verdict, value=value, readable=verdict.passed)

    async def check_group(self, members: Sequence[str]) -> ProbeResult:
        """Read each member of a capability group and check they agree.

        The result is readable only when every member of the group could be
        read; a group that is consistently not implemented passes but is not
        available to later checks.
        """
        subject = "/".join(members)
        readable: dict[str, bool] = {}
        for member in members:
            try:
                await self.transport.get(member)
            except DeviceUnreachableError as e:
                return ProbeResult(verdict=_fatal(subject, e))
            except DeviceError as e:
                log.debug("%s is not readable: %s", member, e)
                readable[member] = False
            else:
                readable[member] = True
        verdict = detect_capability_group(subject, readable)
        return ProbeResult(
            verdict=verdict, readable=verdict.passed and all(readable.values())
        )

    async def measure_rate(self, member: str) -> Verdict:
        """Sample how many reads of a property complete per second."""

        def report(count: int, elapsed: float) -> None:
            log.debug("%s: %d transactions in %.0f seconds", member, count, elapsed)

        try:
            rate_sample = await sample(
                lambda: self.transport.get(member),
                window=self.settings.performance_window,
                cancel=self.cancel,
                progress=report,
            )
        except DeviceUnreachableError as e:
            return _fatal(member, e)
        except DeviceError as e:
            return Verdict(
                outcome=Outcome.ADVISORY,
                subject=member,
                detail=f"Unable to complete test: {e}",
            )
        return classify_rate(member, rate_sample)

    async def _await_completion(self, check: Check, flag: str) -> Verdict:
        timeout = (
            check.timeout
            if check.timeout is not None
            else self.settings.standard_timeout
        )

        async def busy() -> bool:
            return bool(await self.transport.get(flag))

        def report(elapsed: float, total: float) -> None:
            log.debug("%s: %.1f / %.1f seconds", check.member, elapsed, total)

        try:
            outcome = await wait_while(
                check.member,
                busy,
                poll_interval_ms=self.settings.poll_interval_ms,
                timeout=timeout,
                cancel=self.cancel,
                progress=report,
            )
        except DeviceUnreachableError as e:
            return _fatal(check.member, e)
        except DeviceError as e:
            return Verdict(
                outcome=Outcome.FAIL,
                subject=check.member,
                detail=f"unable to read {flag} while waiting for completion: {e}",
            )

        if isinstance(outcome, Completed):
            log.debug("%s completed in %.1f seconds", check.member, outcome.elapsed)
        return outcome_verdict(check.member, outcome)

    async def _settle(self, check: Check, verdict: Verdict) -> Verdict:
        def report(elapsed: float, total: float) -> None:
            log.debug("%s settling: %.1f / %.1f seconds", check.member, elapsed, total)

        outcome = await wait_for(
            check.member,
            check.settle,
            update_interval_ms=self.settings.wait_update_interval_ms,
            cancel=self.cancel,
            progress=report,
        )
        if isinstance(outcome, Cancelled):
            return outcome_verdict(check.member, outcome)
        return verdict

    def _classify_error(
        self, check: Check, error: DeviceError, *, intent: Intent = Intent.STANDARD
    ) -> ProbeResult:
        failure = self.transport.classify_failure(error)
        log.debug("%s raised %s (%s)", check.member, error, failure)
        verdict = classify(
            failure,
            check.requirement,
            intent=intent,
            subject=check.member,
            member_type=_member_type(check),
            context=error.message,
        )
        return ProbeResult(verdict=verdict, failure=failure)


def _member_type(check: Check) -> MemberType:
    return MemberType.METHOD if check.kind == "method" else MemberType.PROPERTY


def _validate(check: Check, value: Any) -> Verdict:
    match check.kind:
        case "integer":
            return validate_integer(check.member, value, check.minimum, check.maximum)
        case "short":
            return validate_short(check.member, value, check.minimum, check.maximum)
        case "float":
            return validate(check.member, value, check.minimum, check.maximum)
        case "string":
            return validate_string(check.member, value, check.max_length)
        case "boolean":
            return validate_boolean(check.member, value)
        case "enum":
            return validate_member(check.member, value, check.values)
    raise ValueError(f"{check.member}: {check.kind} checks do not read a value")


def _fatal(subject: str, error: Exception) -> Verdict:
    return Verdict(
        outcome=Outcome.FATAL,
        subject=subject,
        detail=f"device unreachable, abandoning this module: {error}",
    )
