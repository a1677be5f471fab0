"""Suite runner coordinating the checks of every device-category module."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from driver_conform.models.definition import Check, CheckDefinition, CheckModule
from driver_conform.models.session import DeviceSession
from driver_conform.models.verdict import Outcome, Verdict, worst
from driver_conform.probe import ProbeRunner
from driver_conform.reporting import ReportSink

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class ModuleResult:
    """Result container for one module's checks."""

    name: str
    verdicts: Sequence[Verdict]
    aborted: bool = False

    @property
    def outcome(self) -> Outcome:
        """Most severe outcome of the module."""
        return worst(self.verdicts)


@dataclass(frozen=True, kw_only=True)
class SuiteResult:
    """Results of a whole run and the final session state."""

    modules: Sequence[ModuleResult]
    session: DeviceSession


@dataclass(frozen=True, kw_only=True)
class ConformanceSuite:
    """Runs the modules of a check definition one probe at a time.

    A FATAL verdict ends the module it occurred in; the remaining modules
    still run. A check whose requires names a member or capability group the
    session does not know to be available is not run and is reported as
    an advisory.
    """

    runner: ProbeRunner
    sink: ReportSink
    modules: Sequence[str] = field(default_factory=tuple)

    async def run(
        self, definition: CheckDefinition, session: DeviceSession
    ) -> SuiteResult:
        """Run every selected module of the definition.

        Args:
            definition: Check definition loaded from checks.yaml
            session: Starting session state for the device

        Returns:
            Per-module results and the session after the last probe

        """
        selected = [
            module
            for module in definition.modules
            if not self.modules or module.name in self.modules
        ]
        if not selected:
            log.info("No modules selected")
            return SuiteResult(modules=[], session=session)

        results: list[ModuleResult] = []
        for module in selected:
            if self._cancelled():
                log.info("Run cancelled, skipping module %s", module.name)
                break

            log.info(
                "Running module %s (%d check(s))", module.name, len(module.checks)
            )
            try:
                result, session = await self._run_module(module, session)
            except Exception as e:
                log.error("Module %s failed: %s", module.name, e, exc_info=e)
                verdict = Verdict(
                    outcome=Outcome.FATAL,
                    subject=module.name,
                    detail=f"module aborted by an unexpected error: {e}",
                )
                self.sink.record(module.name, verdict)
                result = _aborted(module, [verdict])

            log.info("Module %s completed: %s", module.name, result.outcome)
            results.append(result)

        return SuiteResult(modules=results, session=session)

    async def _run_module(
        self, module: CheckModule, session: DeviceSession
    ) -> tuple[ModuleResult, DeviceSession]:
        verdicts: list[Verdict] = []

        def record(verdict: Verdict) -> bool:
            """Record a verdict, return True if the module must stop."""
            verdicts.append(verdict)
            self.sink.record(module.name, verdict)
            if verdict.outcome is Outcome.FATAL:
                log.error("Fatal verdict in %s, abandoning module", module.name)
                return True
            return False

        for check in module.checks:
            if self._cancelled():
                return self._cancelled_result(module, verdicts), session
            if missing := _unavailable(check, session):
                record(_not_run(check, missing))
                continue
            result = await self.runner.run(check)
            session = session.record(check.member, result)
            if record(result.verdict):
                return _aborted(module, verdicts), session

        for group in module.capability_groups:
            if self._cancelled():
                return self._cancelled_result(module, verdicts), session
            result = await self.runner.check_group(group)
            session = session.with_capability("/".join(group), result.readable)
            if record(result.verdict):
                return _aborted(module, verdicts), session

        if self.runner.settings.test_performance:
            for member in module.performance:
                if self._cancelled():
                    return self._cancelled_result(module, verdicts), session
                if record(await self.runner.measure_rate(member)):
                    return _aborted(module, verdicts), session

        return ModuleResult(name=module.name, verdicts=verdicts), session

    def _cancelled(self) -> bool:
        return self.runner.cancel is not None and self.runner.cancel.is_set()

    def _cancelled_result(
        self, module: CheckModule, verdicts: list[Verdict]
    ) -> ModuleResult:
        verdict = Verdict(
            outcome=Outcome.ADVISORY,
            subject=module.name,
            detail="run cancelled by operator, remaining checks not run",
        )
        verdicts.append(verdict)
        self.sink.record(module.name, verdict)
        return _aborted(module, verdicts)


def _aborted(module: CheckModule, verdicts: list[Verdict]) -> ModuleResult:
    return ModuleResult(name=module.name, verdicts=verdicts, aborted=True)


def _unavailable(check: Check, session: DeviceSession) -> list[str]:
    return [name for name in check.requires if not session.can(name)]


def _not_run(check: Check, missing: Sequence[str]) -> Verdict:
    log.info("Skipping %s, unavailable: %s", check.member, ", ".join(missing))
    return Verdict(
        outcome=Outcome.ADVISORY,
        subject=check.member,
        detail=f"not run, prerequisite not available: {', '.join(missing)}",
    )
