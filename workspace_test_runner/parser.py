"""Turn captured test output into normalized outcomes."""

import logging
import re
from dataclasses import replace

from workspace_test_runner.extractors import extract_coverage, extractors_for
from workspace_test_runner.extractors.base import first_recognized
from workspace_test_runner.models.result import RawExecutionResult, TestOutcome

log = logging.getLogger(__name__)

ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;?]*[A-Za-z]")


def strip_ansi(text: str) -> str:
    """Remove terminal colour and cursor escape sequences."""
    return ANSI_ESCAPE.sub("", text)


def parse_output(
    framework: str | None, text: str, *, duration: float = 0.0
) -> TestOutcome:
    """Normalize one target's output.

    Never raises on unrecognized output: the outcome then has zero counts and
    ``parse_failed`` set.

    Args:
        framework: Framework hint; its extractor is tried first
        text: Captured output
        duration: Measured duration, used when the output reports none

    Returns:
        Outcome with counts, coverage and the name of the matching extractor

    """
    clean = strip_ansi(text)
    if (recognized := first_recognized(extractors_for(framework), clean)) is None:
        log.debug("No extractor recognized output (hint=%s)", framework)
        return TestOutcome(duration=duration, parse_failed=True)

    extractor, counts = recognized
    return TestOutcome(
        total=counts.computed_total,
        passed=counts.passed,
        failed=counts.failed,
        skipped=counts.skipped,
        duration=counts.duration if counts.duration is not None else duration,
        coverage=extract_coverage(clean),
        framework=extractor.name,
    )


def outcome_from_result(result: RawExecutionResult) -> TestOutcome:
    """Build the outcome of a finished, timed out, unlaunched or cancelled target."""
    if result.status != "completed":
        return TestOutcome(
            status=result.status,
            duration=result.duration,
            attempts=result.attempts,
            message=result.message,
        )

    outcome = parse_output(
        result.target.framework, result.output, duration=result.duration
    )
    if outcome.parse_failed:
        log.warning(
            "Could not parse test output of %s (exit code %s)",
            result.target.name,
            result.exit_code,
        )
    return replace(outcome, exit_code=result.exit_code, attempts=result.attempts)
