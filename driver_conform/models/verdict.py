"""Outcome and obligation types shared by every conformance check."""

from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum


class Outcome(StrEnum):
    """Classified outcome of a single probe."""

    PASS = "pass"
    ADVISORY = "advisory"
    FAIL = "fail"
    FATAL = "fatal"

    @property
    def severity(self) -> int:
        """Rank used to pick the worst outcome of a group."""
        return _SEVERITY[self]


_SEVERITY = {
    Outcome.PASS: 0,
    Outcome.ADVISORY: 1,
    Outcome.FAIL: 2,
    Outcome.FATAL: 3,
}


class Requirement(StrEnum):
    """Obligation level declared for a probe."""

    MUST_IMPLEMENT = "must-implement"
    MUST_NOT_IMPLEMENT = "must-not-implement"
    MANDATORY = "mandatory"
    OPTIONAL = "optional"


class FailureTaxonomy(StrEnum):
    """Classification of a failure raised by the device, made by the transport."""

    NOT_IMPLEMENTED = "not-implemented"
    INVALID_VALUE = "invalid-value"
    INVALID_OPERATION = "invalid-operation"
    UNCLASSIFIED = "unclassified"


class Intent(StrEnum):
    """What the probe expects the device to do with the request."""

    STANDARD = "standard"
    REJECTION = "rejection"


class MemberType(StrEnum):
    """Kind of interface member being probed."""

    PROPERTY = "property"
    METHOD = "method"


@dataclass(frozen=True, kw_only=True)
class Verdict:
    """Classified outcome of one probe.

    Contains only the outcome - the caller knows which module and step it
    belongs to.
    """

    outcome: Outcome
    subject: str
    detail: str = ""

    @property
    def passed(self) -> bool:
        """Whether the probe met its contract without reservation."""
        return self.outcome is Outcome.PASS


def worst(verdicts: Sequence[Verdict]) -> Outcome:
    """Return the most severe outcome among verdicts (PASS when empty)."""
    return max(
        (verdict.outcome for verdict in verdicts),
        key=lambda outcome: outcome.severity,
        default=Outcome.PASS,
    )
