"""Tests for the probe runner."""

import asyncio

import pytest

from driver_conform.models.definition import Check
from driver_conform.models.verdict import FailureTaxonomy, Outcome, Requirement
from driver_conform.probe import ProbeRunner
from driver_conform.testing.factories import CheckFactory, ConformSettingsFactory
from driver_conform.testing.transport import (
    FakeTransport,
    invalid_value,
    not_implemented,
    sequence,
)
from driver_conform.transports.base import DeviceError, DeviceUnreachableError


def make_runner(
    transport: FakeTransport, cancel: asyncio.Event | None = None, **settings: object
) -> ProbeRunner:
    """Create a runner with short waits."""
    return ProbeRunner(
        transport=transport,
        settings=ConformSettingsFactory.build(**settings),
        cancel=cancel,
    )


def move(**kwargs: object) -> Check:
    """Create a Move method check."""
    return CheckFactory.build(
        member="Move",
        kind="method",
        minimum=None,
        maximum=None,
        params={"Position": 1000},
        **kwargs,
    )


class TestRead:
    """Tests for reading properties."""

    async def test_value_in_range_passes(self) -> None:
        """A value within bounds passes and is kept."""
        transport = FakeTransport(responses={"Position": 500})

        result = await make_runner(transport).run(
            CheckFactory.build(member="Position", minimum=0, maximum=1000)
        )

        assert result.verdict.outcome is Outcome.PASS
        assert result.value == 500
        assert result.readable is True
        assert transport.calls == [("GET", "Position", {})]

    async def test_value_out_of_range_fails(self) -> None:
        """A value outside bounds fails."""
        transport = FakeTransport(responses={"Position": 1001})

        result = await make_runner(transport).run(
            CheckFactory.build(member="Position", minimum=0, maximum=1000)
        )

        assert result.verdict.outcome is Outcome.FAIL
        assert result.verdict.detail == "Invalid value: 1001, expected 0 to 1000"

    async def test_sends_check_parameters(self) -> None:
        """Check parameters are sent with the read."""
        transport = FakeTransport(responses={"MinSwitchValue": 0.0})

        await make_runner(transport).run(
            CheckFactory.build(
                member="MinSwitchValue",
                kind="float",
                minimum=-10,
                maximum=10,
                params={"Id": 0},
            )
        )

        assert transport.calls == [("GET", "MinSwitchValue", {"Id": 0})]

    @pytest.mark.parametrize(
        ("check", "response", "expected"),
        [
            (
                CheckFactory.build(member="Name", kind="string", max_length=16),
                "Focuser",
                Outcome.PASS,
            ),
            (
                CheckFactory.build(member="Name", kind="string", max_length=4),
                "Focuser",
                Outcome.FAIL,
            ),
            (
                CheckFactory.build(member="IsMoving", kind="boolean"),
                False,
                Outcome.PASS,
            ),
            (
                CheckFactory.build(member="ShutterStatus", kind="enum", values=[0, 1]),
                4,
                Outcome.FAIL,
            ),
            (
                CheckFactory.build(
                    member="InterfaceVersion", kind="short", minimum=1, maximum=4
                ),
                3,
                Outcome.PASS,
            ),
        ],
    )
    async def test_validates_by_kind(
        self, check: Check, response: object, expected: Outcome
    ) -> None:
        """Each kind of check validates the value its own way."""
        transport = FakeTransport(responses={check.member: response})

        result = await make_runner(transport).run(check)

        assert result.verdict.outcome is expected

    async def test_optional_not_implemented_is_advisory(self) -> None:
        """An optional member that is not implemented is advisory."""
        transport = FakeTransport(responses={"StepSize": not_implemented("StepSize")})

        result = await make_runner(transport).run(
            CheckFactory.build(
                member="StepSize",
                kind="float",
                requirement=Requirement.OPTIONAL,
            )
        )

        assert result.verdict.outcome is Outcome.ADVISORY
        assert result.verdict.detail.startswith("StepSize is not implemented - ")
        assert "PropertyNotImplemented" in result.verdict.detail
        assert result.readable is False
        assert result.failure is FailureTaxonomy.NOT_IMPLEMENTED

    async def test_must_not_implement_value_fails(self) -> None:
        """Returning a value from a member that must not exist fails."""
        transport = FakeTransport(responses={"TempComp": False})

        result = await make_runner(transport).run(
            CheckFactory.build(
                member="TempComp",
                kind="boolean",
                requirement=Requirement.MUST_NOT_IMPLEMENT,
            )
        )

        assert result.verdict.outcome is Outcome.FAIL
        assert result.readable is True

    async def test_unclassified_error_fails(self) -> None:
        """An error the transport cannot classify fails."""
        transport = FakeTransport(responses={"Position": DeviceError(0, "HTTP 500")})

        result = await make_runner(transport).run(
            CheckFactory.build(member="Position")
        )

        assert result.verdict.outcome is Outcome.FAIL
        assert result.verdict.detail == "HTTP 500 - unexpected unclassified error"

    async def test_unreachable_device_is_fatal(self) -> None:
        """An unreachable device is fatal."""
        transport = FakeTransport(
            responses={"Position": DeviceUnreachableError("connection refused")}
        )

        result = await make_runner(transport).run(
            CheckFactory.build(member="Position")
        )

        assert result.verdict.outcome is Outcome.FATAL
        assert "connection refused" in result.verdict.detail


class TestInvoke:
    """Tests for writes and method calls."""

    async def test_method_call_passes(self) -> None:
        """A method that returns normally passes."""
        transport = FakeTransport()

        result = await make_runner(transport).run(move())

        assert result.verdict.outcome is Outcome.PASS
        assert transport.calls == [("PUT", "Move", {"Position": 1000})]

    async def test_method_not_implemented_fails(self) -> None:
        """A mandatory method that is not implemented fails."""
        transport = FakeTransport(responses={"Move": not_implemented("Move")})

        result = await make_runner(transport).run(move())

        assert result.verdict.outcome is Outcome.FAIL
        assert "MethodNotImplemented" in result.verdict.detail

    async def test_rejected_invalid_value_passes(self) -> None:
        """Refusing an invalid value with InvalidValue passes."""
        transport = FakeTransport(responses={"Move": invalid_value("Move")})

        result = await make_runner(transport).run(move(expect_rejection=True))

        assert result.verdict.outcome is Outcome.PASS

    async def test_accepted_invalid_value_fails(self) -> None:
        """Accepting an invalid value fails without waiting on the busy flag."""
        transport = FakeTransport(responses={"IsMoving": True})

        result = await make_runner(transport).run(
            move(expect_rejection=True, wait_while="IsMoving")
        )

        assert result.verdict.outcome is Outcome.FAIL
        assert transport.members_called("GET") == []

    async def test_waits_for_busy_flag_to_clear(self) -> None:
        """Polls the busy flag until the operation completes."""
        transport = FakeTransport(
            responses={"IsMoving": sequence(True, True, False)}
        )

        result = await make_runner(transport).run(move(wait_while="IsMoving"))

        assert result.verdict.outcome is Outcome.PASS
        assert result.verdict.detail.startswith("operation completed after")
        assert transport.members_called("GET") == ["IsMoving"] * 3

    async def test_synchronous_completion_passes(self) -> None:
        """An operation complete on return is reported as synchronous."""
        transport = FakeTransport(responses={"IsMoving": False})

        result = await make_runner(transport).run(move(wait_while="IsMoving"))

        assert result.verdict.detail == "operation completed synchronously"

    async def test_busy_flag_that_never_clears_fails(self) -> None:
        """An operation that never completes fails at the timeout."""
        transport = FakeTransport(responses={"IsMoving": True})

        result = await make_runner(transport).run(
            move(wait_while="IsMoving", timeout=0.3)
        )

        assert result.verdict.outcome is Outcome.FAIL
        assert "did not complete" in result.verdict.detail

    async def test_unreadable_busy_flag_fails(self) -> None:
        """A busy flag that cannot be read fails the operation."""
        transport = FakeTransport(
            responses={"IsMoving": sequence(True, DeviceError(0, "HTTP 500"))}
        )

        result = await make_runner(transport).run(move(wait_while="IsMoving"))

        assert result.verdict.outcome is Outcome.FAIL
        assert result.verdict.detail.startswith(
            "unable to read IsMoving while waiting for completion"
        )

    async def test_slow_initiation_is_advisory(self) -> None:
        """An asynchronous operation that is slow to return is advisory."""
        transport = FakeTransport(
            responses={"Move": lambda: asyncio.sleep(0.2), "IsMoving": False}
        )

        result = await make_runner(transport, initiation_limit=0.1).run(
            move(wait_while="IsMoving")
        )

        assert result.verdict.outcome is Outcome.ADVISORY
        assert "Operation initiation took" in result.verdict.detail

    async def test_cancel_during_wait_is_advisory(self) -> None:
        """Cancelling while waiting is advisory."""
        cancel = asyncio.Event()
        transport = FakeTransport(responses={"IsMoving": True})
        asyncio.get_event_loop().call_later(0.15, cancel.set)

        result = await make_runner(transport, cancel=cancel).run(
            move(wait_while="IsMoving", timeout=10)
        )

        assert result.verdict.outcome is Outcome.ADVISORY
        assert result.verdict.detail == "wait cancelled by operator"

    async def test_settles_after_successful_call(self) -> None:
        """Waits out the settle time after a successful call."""
        transport = FakeTransport()
        loop = asyncio.get_event_loop()
        start = loop.time()

        result = await make_runner(transport).run(move(settle=0.3))

        assert result.verdict.outcome is Outcome.PASS
        assert loop.time() - start >= 0.25

    async def test_does_not_settle_after_failure(self) -> None:
        """A failed call does not wait out the settle time."""
        transport = FakeTransport(responses={"Move": not_implemented("Move")})
        loop = asyncio.get_event_loop()
        start = loop.time()

        result = await make_runner(transport).run(move(settle=5))

        assert result.verdict.outcome is Outcome.FAIL
        assert loop.time() - start < 1

    async def test_cancel_while_settling_is_advisory(self) -> None:
        """Cancelling during the settle time is advisory."""
        cancel = asyncio.Event()
        asyncio.get_event_loop().call_later(0.15, cancel.set)

        result = await make_runner(FakeTransport(), cancel=cancel).run(
            move(settle=10)
        )

        assert result.verdict.outcome is Outcome.ADVISORY

    async def test_unreachable_device_is_fatal(self) -> None:
        """An unreachable device is fatal."""
        transport = FakeTransport(
            responses={"Move": DeviceUnreachableError("connection refused")}
        )

        result = await make_runner(transport).run(move(wait_while="IsMoving"))

        assert result.verdict.outcome is Outcome.FATAL


class TestCheckGroup:
    """Tests for capability groups."""

    async def test_all_readable_passes(self) -> None:
        """A group whose members can all be read passes and is available."""
        transport = FakeTransport(responses={"Minimum": 0, "Maximum": 10})

        result = await make_runner(transport).check_group(["Minimum", "Maximum"])

        assert result.verdict.outcome is Outcome.PASS
        assert result.verdict.subject == "Minimum/Maximum"
        assert result.readable is True

    async def test_unimplemented_group_passes_but_is_unavailable(self) -> None:
        """A group implemented by none of its members is consistent but absent."""
        transport = FakeTransport(
            responses={
                "Minimum": not_implemented("Minimum"),
                "Maximum": not_implemented("Maximum"),
            }
        )

        result = await make_runner(transport).check_group(["Minimum", "Maximum"])

        assert result.verdict.outcome is Outcome.PASS
        assert result.readable is False

    async def test_partial_group_fails(self) -> None:
        """A group with unreadable members fails."""
        transport = FakeTransport(
            responses={"Minimum": 0, "Maximum": not_implemented("Maximum")}
        )

        result = await make_runner(transport).check_group(["Minimum", "Maximum"])

        assert result.verdict.outcome is Outcome.FAIL
        assert result.verdict.detail.startswith(
            "Minimum can be read but Maximum cannot"
        )
        assert result.readable is False

    async def test_unreachable_device_is_fatal(self) -> None:
        """An unreachable device is fatal."""
        transport = FakeTransport(
            responses={"Minimum": DeviceUnreachableError("connection refused")}
        )

        result = await make_runner(transport).check_group(["Minimum", "Maximum"])

        assert result.verdict.outcome is Outcome.FATAL


class TestMeasureRate:
    """Tests for transaction rate measurement."""

    async def test_reports_transaction_rate(self) -> None:
        """Reports the rate of reads over the window."""
        transport = FakeTransport(responses={"Position": lambda: asyncio.sleep(0.2)})

        verdict = await make_runner(transport, performance_window=0.5).measure_rate(
            "Position"
        )

        assert verdict.outcome is Outcome.PASS
        assert verdict.detail.startswith("Transaction rate: ")

    async def test_device_error_is_advisory(self) -> None:
        """A member that fails during sampling is advisory."""
        transport = FakeTransport(responses={"Position": DeviceError(0, "HTTP 500")})

        verdict = await make_runner(transport).measure_rate("Position")

        assert verdict.outcome is Outcome.ADVISORY
        assert verdict.detail == "Unable to complete test: HTTP 500"

    async def test_unreachable_device_is_fatal(self) -> None:
        """An unreachable device is fatal."""
        transport = FakeTransport(
            responses={"Position": DeviceUnreachableError("connection refused")}
        )

        verdict = await make_runner(transport).measure_rate("Position")

        assert verdict.outcome is Outcome.FATAL
