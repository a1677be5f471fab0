"""Classification of driver call outcomes into conformance verdicts."""

from collections.abc import Mapping

from driver_conform.models.verdict import (
    FailureTaxonomy,
    Intent,
    MemberType,
    Outcome,
    Requirement,
    Verdict,
)

REJECTION_FAILURES = frozenset(
    {FailureTaxonomy.INVALID_VALUE, FailureTaxonomy.INVALID_OPERATION}
)

FAILURE_NAMES: Mapping[FailureTaxonomy, str] = {
    FailureTaxonomy.NOT_IMPLEMENTED: "NotImplemented",
    FailureTaxonomy.INVALID_VALUE: "InvalidValue",
    FailureTaxonomy.INVALID_OPERATION: "InvalidOperation",
    FailureTaxonomy.UNCLASSIFIED: "unclassified",
}


def describe_failure(failure: FailureTaxonomy, member_type: MemberType) -> str:
    """Return the name of a failure as a driver author would know it.

    Not implemented failures are qualified by member type, e.g.
    "PropertyNotImplemented" or "MethodNotImplemented".
    """
    name = FAILURE_NAMES[failure]
    if failure is FailureTaxonomy.NOT_IMPLEMENTED:
        return f"{member_type.value.capitalize()}{name}"
    return name


def classify(
    failure: FailureTaxonomy | None,
    requirement: Requirement,
    *,
    intent: Intent,
    subject: str,
    member_type: MemberType = MemberType.PROPERTY,
    context: str = "",
) -> Verdict:
    """Classify an already observed probe outcome.

    Args:
        failure: Taxonomy of the failure the device raised, None if the call
            returned normally
        requirement: Obligation level declared for the probe
        intent: STANDARD when the probe is a normal use of the member,
            REJECTION when it deliberately sent a value the device must refuse
        subject: Member name the verdict is about
        member_type: Whether the member is a property or a method
        context: Probe specific text prefixed to the verdict detail

    Returns:
        Exactly one verdict; this function never raises.

    """
    if intent is Intent.REJECTION:
        return _classify_rejection(failure, subject, member_type, context)
    return _classify_standard(failure, requirement, subject, member_type, context)


def _classify_standard(
    failure: FailureTaxonomy | None,
    requirement: Requirement,
    subject: str,
    member_type: MemberType,
    context: str,
) -> Verdict:
    prefix = f"{context} - " if context else ""

    if failure is None:
        if requirement is Requirement.MUST_NOT_IMPLEMENT:
            return Verdict(
                outcome=Outcome.FAIL,
                subject=subject,
                detail=(
                    f"{prefix}this {member_type} must not be implemented but "
                    "it completed without raising a "
                    f"{describe_failure(FailureTaxonomy.NOT_IMPLEMENTED, member_type)}"
                    " error"
                ),
            )
        return Verdict(outcome=Outcome.PASS, subject=subject, detail=context)

    name = describe_failure(failure, member_type)

    if failure is FailureTaxonomy.NOT_IMPLEMENTED:
        match requirement:
            case Requirement.MUST_NOT_IMPLEMENT:
                return Verdict(
                    outcome=Outcome.PASS,
                    subject=subject,
                    detail=f"{prefix}a {name} error was generated as expected",
                )
            case Requirement.OPTIONAL:
                return Verdict(
                    outcome=Outcome.ADVISORY,
                    subject=subject,
                    detail=f"{prefix}optional member returned a {name} error",
                )
            case Requirement.MANDATORY:
                return Verdict(
                    outcome=Outcome.FAIL,
                    subject=subject,
                    detail=(
                        f"{prefix}this member is mandatory but returned a {name} "
                        "error, it must function per the interface specification"
                    ),
                )
            case Requirement.MUST_IMPLEMENT:
                return Verdict(
                    outcome=Outcome.FAIL,
                    subject=subject,
                    detail=(
                        f"{prefix}a {name} error was returned, this {member_type} "
                        "must function per the interface specification"
                    ),
                )

    return Verdict(
        outcome=Outcome.FAIL,
        subject=subject,
        detail=f"{prefix}unexpected {name} error",
    )


def _classify_rejection(
    failure: FailureTaxonomy | None,
    subject: str,
    member_type: MemberType,
    context: str,
) -> Verdict:
    prefix = f"{context} - " if context else ""

    if failure is None:
        return Verdict(
            outcome=Outcome.FAIL,
            subject=subject,
            detail=(
                f"{prefix}an invalid value was accepted, the {member_type} "
                "must reject it with an InvalidValue or InvalidOperation error"
            ),
        )

    name = describe_failure(failure, member_type)

    if failure in REJECTION_FAILURES:
        return Verdict(
            outcome=Outcome.PASS,
            subject=subject,
            detail=f"{prefix}invalid value rejected with an {name} error",
        )

    return Verdict(
        outcome=Outcome.FAIL,
        subject=subject,
        detail=(
            f"{prefix}invalid value rejected for the wrong reason: received a "
            f"{name} error instead of InvalidValue or InvalidOperation"
        ),
    )
