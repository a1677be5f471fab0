"""Models for check definitions loaded from checks.yaml files."""

from collections.abc import Mapping, Sequence
from typing import Any, Literal, Self

from pydantic import Field, model_validator

from driver_conform.models.base import Model
from driver_conform.models.verdict import Requirement

type CheckKind = Literal[
    "integer",
    "short",
    "float",
    "string",
    "boolean",
    "enum",
    "method",
    "write",
]


class Check(Model):
    """One probe of a device member."""

    member: str = Field(..., description="Interface member name")
    kind: CheckKind = Field(..., description="How the member is probed")
    requirement: Requirement = Field(
        default=Requirement.MANDATORY, description="Obligation level"
    )
    minimum: int | float | None = Field(
        default=None, description="Inclusive lower bound"
    )
    maximum: int | float | None = Field(
        default=None, description="Inclusive upper bound"
    )
    max_length: int | None = Field(
        default=None, ge=0, description="Maximum string length"
    )
    values: Sequence[int] = Field(
        default_factory=list, description="Valid values of an enumerated member"
    )
    params: Mapping[str, Any] = Field(
        default_factory=dict, description="Parameters sent with the request"
    )
    expect_rejection: bool = Field(
        default=False, description="The device must refuse this request"
    )
    wait_while: str | None = Field(
        default=None, description="Busy flag polled until the operation completes"
    )
    timeout: float | None = Field(
        default=None, ge=0, description="Wait timeout in seconds"
    )
    settle: float | None = Field(
        default=None, ge=0, description="Seconds to wait after the call succeeds"
    )
    requires: Sequence[str] = Field(
        default_factory=list,
        description=(
            "Members or capability groups that earlier checks must have found "
            "available, otherwise this check is not run"
        ),
    )

    @model_validator(mode="after")
    def check_bounds(self) -> Self:
        """Require the parameters each kind of check needs."""
        if self.kind in {"integer", "short", "float"} and (
            self.minimum is None or self.maximum is None
        ):
            raise ValueError(
                f"{self.member}: {self.kind} checks need minimum and maximum"
            )
        if self.kind == "string" and self.max_length is None:
            raise ValueError(f"{self.member}: string checks need max_length")
        if self.kind == "enum" and not self.values:
            raise ValueError(f"{self.member}: enum checks need values")
        if self.wait_while is not None and self.kind not in {"method", "write"}:
            raise ValueError(
                f"{self.member}: wait_while applies to method and write checks only"
            )
        if self.settle is not None and self.kind not in {"method", "write"}:
            raise ValueError(
                f"{self.member}: settle applies to method and write checks only"
            )
        return self


class CheckModule(Model):
    """Checks for one device category, run in order."""

    name: str = Field(..., description="Device category name")
    checks: Sequence[Check] = Field(default_factory=list)
    capability_groups: Sequence[Sequence[str]] = Field(
        default_factory=list,
        description="Groups of members that must be implemented together",
    )
    performance: Sequence[str] = Field(
        default_factory=list, description="Members sampled for transaction rate"
    )


class CheckDefinition(Model):
    """Complete check definition loaded from checks.yaml."""

    version: str = Field(..., description="Check definition schema version")
    modules: Sequence[CheckModule] = Field(default_factory=list)
