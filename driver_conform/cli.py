"""CLI entry point for running conformance checks against a device."""

import argparse
import asyncio
import json
import logging
import signal
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from driver_conform.definition_loader import load_check_definition
from driver_conform.models.session import DeviceSession
from driver_conform.models.settings import ConformSettings
from driver_conform.models.verdict import Outcome
from driver_conform.probe import ProbeRunner
from driver_conform.reporting import LoggingReportSink, ResultsSummary
from driver_conform.suite import ConformanceSuite, ModuleResult
from driver_conform.transports.loading import load_transport_manifest

OUTCOME_SYMBOLS = {
    Outcome.PASS: "✅",
    Outcome.ADVISORY: "ℹ️",
    Outcome.FAIL: "❌",
    Outcome.FATAL: "❗",
}


def log_results_summary(
    log: logging.Logger,
    module_results: Sequence[ModuleResult],
    summary: ResultsSummary,
) -> None:
    """Log a formatted summary of module outcomes."""
    log.info("=" * 80)
    log.info("Conformance Summary:")
    log.info("=" * 80)

    for module_result in module_results:
        symbol = OUTCOME_SYMBOLS.get(module_result.outcome, "?")
        log.info(
            "%s %s: %s (%d verdict(s))%s",
            symbol,
            module_result.name,
            module_result.outcome,
            len(module_result.verdicts),
            " - aborted" if module_result.aborted else "",
        )

    log.info(
        "%d passed, %d advisory, %d failed, %d fatal",
        summary.passed,
        summary.advisories,
        summary.failures,
        summary.fatal,
    )


def load_settings(
    settings_path: Path | None, *, test_performance: bool
) -> ConformSettings:
    """Load settings from a JSON file, or defaults when no file is given."""
    if settings_path is None:
        settings = ConformSettings()
    else:
        settings = ConformSettings.model_validate_json(
            settings_path.read_text(encoding="utf-8")
        )
    if test_performance:
        settings = settings.model_copy(update={"test_performance": True})
    return settings


async def run(
    transport_key: str,
    transport_config_json: str,
    checks_path: Path,
    settings: ConformSettings,
    modules: Sequence[str] = (),
    cancel: asyncio.Event | None = None,
) -> int:
    """Run conformance checks and return exit code."""
    log = logging.getLogger("driver_conform")

    log.info("Loading transport: %s", transport_key)
    manifest = load_transport_manifest(transport_key)

    config_dict = json.loads(transport_config_json)
    config = manifest.config_cls(**config_dict)

    log.info("Loading check definition: %s", checks_path)
    definition = await load_check_definition(checks_path)

    if not definition.modules:
        log.info("No modules in check definition")
        print(json.dumps({"total": 0, "modules": []}))
        return 0

    sink = LoggingReportSink()
    session = DeviceSession(device_id=f"{transport_key}:{checks_path.stem}")

    async with manifest.transport_factory(config) as transport:
        runner = ProbeRunner(transport=transport, settings=settings, cancel=cancel)
        suite = ConformanceSuite(runner=runner, sink=sink, modules=tuple(modules))
        result = await suite.run(definition, session)

    summary = sink.summary()
    log_results_summary(log, result.modules, summary)

    output = format_output(result.modules, summary, result.session)
    print(json.dumps(output, indent=2))

    return 1 if summary.has_failures else 0


def format_output(
    module_results: Sequence[ModuleResult],
    summary: ResultsSummary,
    session: DeviceSession | None = None,
) -> dict[str, Any]:
    """Format module results and device capabilities for JSON output."""
    modules: list[dict[str, Any]] = []
    for module_result in module_results:
        modules.append(
            {
                "module": module_result.name,
                "outcome": str(module_result.outcome),
                "aborted": module_result.aborted,
                "verdicts": [
                    {
                        "subject": verdict.subject,
                        "outcome": str(verdict.outcome),
                        "detail": verdict.detail,
                    }
                    for verdict in module_result.verdicts
                ],
            }
        )

    return {
        "total": summary.total,
        "passed": summary.passed,
        "advisories": summary.advisories,
        "failed": summary.failures,
        "fatal": summary.fatal,
        "modules": modules,
        "capabilities": dict(session.capabilities) if session is not None else {},
    }


async def run_until_interrupted(**kwargs: Any) -> int:
    """Run with SIGINT requesting a cooperative stop instead of killing the run."""
    cancel = asyncio.Event()
    loop = asyncio.get_event_loop()
    loop.add_signal_handler(signal.SIGINT, cancel.set)
    try:
        return await run(**kwargs, cancel=cancel)
    finally:
        loop.remove_signal_handler(signal.SIGINT)


def parse_modules(modules: str) -> Sequence[str]:
    """Parse comma-separated module names."""
    if not modules.strip():
        return ()
    return tuple(m.strip() for m in modules.split(",") if m.strip())


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Check a device driver against its interface specification"
    )
    parser.add_argument(
        "--transport",
        required=True,
        help="Transport key (alpaca)",
    )
    parser.add_argument(
        "--transport-config",
        required=True,
        help="JSON configuration for the transport",
    )
    parser.add_argument(
        "--checks",
        type=Path,
        required=True,
        help="Path to the checks.yaml definition",
    )
    parser.add_argument(
        "--settings",
        type=Path,
        default=None,
        help="Path to a JSON settings file",
    )
    parser.add_argument(
        "--modules",
        default="",
        help="Comma-separated module names to run (default: all)",
    )
    parser.add_argument(
        "--performance",
        action="store_true",
        help="Run the transaction rate phase",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log every call made to the device",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    exit_code = asyncio.run(
        run_until_interrupted(
            transport_key=args.transport,
            transport_config_json=args.transport_config,
            checks_path=args.checks,
            settings=load_settings(args.settings, test_performance=args.performance),
            modules=parse_modules(args.modules),
        )
    )
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
