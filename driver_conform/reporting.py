"""Reporting sinks that receive every verdict of a run."""

import logging
from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

from driver_conform.models.verdict import Outcome, Verdict

OUTCOME_LEVELS: Mapping[Outcome, int] = {
    Outcome.PASS: logging.INFO,
    Outcome.ADVISORY: logging.INFO,
    Outcome.FAIL: logging.WARNING,
    Outcome.FATAL: logging.ERROR,
}

OUTCOME_LABELS: Mapping[Outcome, str] = {
    Outcome.PASS: "OK",
    Outcome.ADVISORY: "INFO",
    Outcome.FAIL: "ISSUE",
    Outcome.FATAL: "ERROR",
}


class ReportSink(Protocol):
    """Receives verdicts as they are produced."""

    def record(self, module: str, verdict: Verdict) -> None:
        """Record one verdict of a module."""


@dataclass(frozen=True, kw_only=True)
class ResultsSummary:
    """Verdict counts of a run."""

    passed: int = 0
    advisories: int = 0
    failures: int = 0
    fatal: int = 0

    @property
    def total(self) -> int:
        """Number of verdicts recorded."""
        return self.passed + self.advisories + self.failures + self.fatal

    @property
    def has_failures(self) -> bool:
        """Whether any verdict failed the device."""
        return self.failures > 0 or self.fatal > 0


@dataclass(kw_only=True)
class LoggingReportSink:
    """Logs each verdict and tallies outcomes."""

    logger: logging.Logger = field(
        default_factory=lambda: logging.getLogger("driver_conform.report")
    )
    counts: Counter[Outcome] = field(default_factory=Counter)

    def record(self, module: str, verdict: Verdict) -> None:
        """Log a verdict at a level matching its outcome."""
        self.counts[verdict.outcome] += 1
        self.logger.log(
            OUTCOME_LEVELS[verdict.outcome],
            "%-8s %-6s %s: %s",
            module,
            OUTCOME_LABELS[verdict.outcome],
            verdict.subject,
            verdict.detail,
        )

    def summary(self) -> ResultsSummary:
        """Return the counts recorded so far."""
        return ResultsSummary(
            passed=self.counts[Outcome.PASS],
            advisories=self.counts[Outcome.ADVISORY],
            failures=self.counts[Outcome.FAIL],
            fatal=self.counts[Outcome.FATAL],
        )
