"""Bounds, length and capability group checks for values read from a device.

Values are checked exactly as returned: nothing is coerced, clamped or
compared with a tolerance. Interface limits are hard limits.
"""

from collections.abc import Collection, Mapping
from enum import Enum

from driver_conform.models.verdict import Outcome, Verdict

SHORT_MIN = -32768
SHORT_MAX = 32767


def validate(
    subject: str,
    value: object,
    minimum: int | float,
    maximum: int | float,
) -> Verdict:
    """Check that a numeric value lies within [minimum, maximum]."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        return _wrong_type(subject, value, "a number")

    if minimum <= value <= maximum:
        return Verdict(outcome=Outcome.PASS, subject=subject, detail=str(value))

    return Verdict(
        outcome=Outcome.FAIL,
        subject=subject,
        detail=f"Invalid value: {value}, expected {minimum} to {maximum}",
    )


def validate_short(
    subject: str,
    value: object,
    minimum: int = SHORT_MIN,
    maximum: int = SHORT_MAX,
) -> Verdict:
    """Check a 16-bit integer value against its bounds."""
    if isinstance(value, bool) or not isinstance(value, int):
        return _wrong_type(subject, value, "a 16-bit integer")
    if not SHORT_MIN <= value <= SHORT_MAX:
        return Verdict(
            outcome=Outcome.FAIL,
            subject=subject,
            detail=f"Invalid value: {value} does not fit in a 16-bit integer",
        )
    return validate(subject, value, minimum, maximum)


def validate_integer(
    subject: str, value: object, minimum: int, maximum: int
) -> Verdict:
    """Check an integer value against its bounds."""
    if isinstance(value, bool) or not isinstance(value, int):
        return _wrong_type(subject, value, "an integer")
    return validate(subject, value, minimum, maximum)


def validate_boolean(subject: str, value: object) -> Verdict:
    """Check that a value is a boolean."""
    if not isinstance(value, bool):
        return _wrong_type(subject, value, "a boolean")
    return Verdict(outcome=Outcome.PASS, subject=subject, detail=str(value))


def validate_string(subject: str, value: object, max_length: int) -> Verdict:
    """Check a string value does not exceed max_length characters."""
    if not isinstance(value, str):
        return _wrong_type(subject, value, "a string")

    if value == "":
        return Verdict(
            outcome=Outcome.PASS,
            subject=subject,
            detail="The driver returned an empty string",
        )

    if len(value) <= max_length:
        return Verdict(outcome=Outcome.PASS, subject=subject, detail=value)

    return Verdict(
        outcome=Outcome.FAIL,
        subject=subject,
        detail=f"String exceeds {max_length} characters maximum length - {value}",
    )


def validate_member(
    subject: str, value: object, allowed: type[Enum] | Collection[int]
) -> Verdict:
    """Check that an integer value is one of the allowed enumeration values.

    allowed is either an Enum class or the collection of valid values.
    """
    name = allowed.__name__ if isinstance(allowed, type) else "enumeration"

    if isinstance(value, bool) or not isinstance(value, int):
        return _wrong_type(subject, value, f"a {name} value")

    if isinstance(allowed, type):
        for member in allowed:
            if member.value == value:
                return Verdict(
                    outcome=Outcome.PASS,
                    subject=subject,
                    detail=f"{name}.{member.name}",
                )
    elif value in allowed:
        return Verdict(outcome=Outcome.PASS, subject=subject, detail=str(value))

    return Verdict(
        outcome=Outcome.FAIL,
        subject=subject,
        detail=f"Invalid value: {value} is not a valid {name}",
    )


def detect_capability_group(subject: str, readable: Mapping[str, bool]) -> Verdict:
    """Decide whether a group of related optional members is consistent.

    Members such as minimum / maximum / step must either all be readable or
    all be unreadable. Any mix fails, naming both sides.

    Raises:
        ValueError: If fewer than two members are supplied

    """
    if len(readable) < 2:
        raise ValueError(
            f"A capability group needs at least two members: {list(readable)}"
        )

    names = ", ".join(readable)
    implemented = [name for name, ok in readable.items() if ok]
    missing = [name for name, ok in readable.items() if not ok]

    if not missing:
        return Verdict(
            outcome=Outcome.PASS,
            subject=subject,
            detail=f"group implemented: {names}",
        )
    if not implemented:
        return Verdict(
            outcome=Outcome.PASS,
            subject=subject,
            detail=f"group not implemented: {names}",
        )

    return Verdict(
        outcome=Outcome.FAIL,
        subject=subject,
        detail=(
            f"{', '.join(implemented)} can be read but {', '.join(missing)} "
            "cannot; the group must be implemented all together or not at all"
        ),
    )


def _wrong_type(subject: str, value: object, expected: str) -> Verdict:
    return Verdict(
        outcome=Outcome.FAIL,
        subject=subject,
        detail=(
            f"Invalid value: {value!r} is a {type(value).__name__}, "
            f"expected {expected}"
        ),
    )
