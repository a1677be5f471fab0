"""Test factories for generating test data."""

from polyfactory.factories import DataclassFactory
from polyfactory.factories.pydantic_factory import ModelFactory

from driver_conform.models.definition import Check, CheckDefinition, CheckModule
from driver_conform.models.settings import ConformSettings
from driver_conform.models.verdict import Outcome, Requirement, Verdict


class VerdictFactory(DataclassFactory[Verdict]):
    """Factory for Verdict."""

    __model__ = Verdict

    outcome = Outcome.PASS


class CheckFactory(ModelFactory[Check]):
    """Factory for a bounded integer property check."""

    __model__ = Check

    kind = "integer"
    requirement = Requirement.MANDATORY
    minimum = 0
    maximum = 100
    max_length = None
    values = ()
    params = {}
    expect_rejection = False
    wait_while = None
    timeout = None
    settle = None
    requires = ()


class CheckModuleFactory(ModelFactory[CheckModule]):
    """Factory for CheckModule."""

    __model__ = CheckModule

    checks = ()
    capability_groups = ()
    performance = ()


class CheckDefinitionFactory(ModelFactory[CheckDefinition]):
    """Factory for CheckDefinition."""

    __model__ = CheckDefinition

    version = "1.0"
    modules = ()


class ConformSettingsFactory(ModelFactory[ConformSettings]):
    """Factory for settings with the shortest allowed waits."""

    __model__ = ConformSettings

    poll_interval_ms = 100
    standard_timeout = 1.0
    wait_update_interval_ms = 100
    performance_window = 0.3
    initiation_limit = 1.0
    test_performance = False
