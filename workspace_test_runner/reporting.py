"""Render run summaries for people and machines.

Nothing here performs I/O; callers print, log or publish the returned values.
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from html import escape
from typing import Any, Literal

from pydantic import Field

from workspace_test_runner.models.base import Model
from workspace_test_runner.models.result import TestOutcome
from workspace_test_runner.models.summary import RunSummary
from workspace_test_runner.models.target import ProjectTarget

type OutcomeLabel = Literal[
    "passed", "failed", "unparsed", "timeout", "launch_failed", "cancelled"
]
type EventType = Literal["TEST_RUN", "TEST_TARGET_COMPLETED"]

STATUS_SYMBOLS: Mapping[OutcomeLabel, str] = {
    "passed": "✅",
    "failed": "❌",
    "unparsed": "❔",
    "timeout": "⏱️",
    "launch_failed": "❗",
    "cancelled": "⏹️",
}
RULE = "=" * 80


class EventRecord(Model):
    """Structured record for an event log."""

    project: str
    type: EventType
    payload: Mapping[str, Any] = Field(default_factory=dict)
    timestamp: datetime


def outcome_label(outcome: TestOutcome) -> OutcomeLabel:
    """Single word for an outcome; abnormal statuses win over counts."""
    if outcome.abnormal:
        return outcome.status  # type: ignore[return-value]
    if outcome.failed:
        return "failed"
    if outcome.parse_failed:
        return "unparsed"
    return "passed"


def format_duration(seconds: float) -> str:
    """``1.25s`` below a minute, ``2m 5.0s`` above."""
    if seconds >= 60:
        minutes, rest = divmod(seconds, 60)
        return f"{int(minutes)}m {rest:.1f}s"
    return f"{seconds:.2f}s"


def render_text(summary: RunSummary) -> str:
    """Plain-text summary block for a terminal."""
    totals = summary.totals
    lines = [
        RULE,
        f"Test Results Summary: {'PASSED' if summary.passed else 'FAILED'} "
        f"({totals.targets} project(s))",
        RULE,
    ]

    for entry in summary.entries:
        outcome = entry.outcome
        label = outcome_label(outcome)
        line = f"{STATUS_SYMBOLS[label]} {entry.target.name}: {label}"
        if not outcome.abnormal:
            line += (
                f" ({outcome.passed} passed, {outcome.failed} failed, "
                f"{outcome.skipped} skipped)"
            )
        lines.append(f"{line} in {format_duration(outcome.duration)}")
        if outcome.message:
            lines.append(f"  Message: {outcome.message}")
        if outcome.parse_failed and outcome.exit_code is not None:
            lines.append(f"  Exit code: {outcome.exit_code}")

    lines.append("-" * 80)
    lines.append(
        f"Totals: {totals.total} tests, {totals.passed} passed, "
        f"{totals.failed} failed, {totals.skipped} skipped "
        f"in {format_duration(totals.duration)}"
    )
    if totals.coverage is not None:
        lines.append(f"Coverage: {totals.coverage:.1f}%")
    if summary.failing_targets:
        lines.append(f"Failing targets: {', '.join(summary.failing_targets)}")
    if summary.unparsed_targets:
        lines.append(f"Unparsed output: {', '.join(summary.unparsed_targets)}")
    return "\n".join(lines)


def render_markdown(summary: RunSummary, title: str = "Test Results") -> str:
    """GitHub-flavoured markdown, suitable for an issue comment."""
    totals = summary.totals
    status = "✅ PASSING" if summary.passed else "❌ FAILING"
    coverage = f"{totals.coverage:.1f}%" if totals.coverage is not None else "n/a"

    lines = [
        f"## {title}",
        "",
        f"**Status:** {status}",
        f"**Duration:** {format_duration(totals.duration)}",
        "",
        f"- Total: {totals.total}",
        f"- Passed: ✅ {totals.passed}",
        f"- Failed: ❌ {totals.failed}",
        f"- Skipped: ⏭️ {totals.skipped}",
        "",
        f"**Coverage:** {coverage}",
        "",
        "| Project | Status | Passed | Failed | Skipped | Duration |",
        "| --- | --- | ---: | ---: | ---: | ---: |",
    ]
    for entry in summary.entries:
        outcome = entry.outcome
        label = outcome_label(outcome)
        lines.append(
            f"| `{entry.target.name}` | {STATUS_SYMBOLS[label]} {label} "
            f"| {outcome.passed} | {outcome.failed} | {outcome.skipped} "
            f"| {format_duration(outcome.duration)} |"
        )

    if summary.failing_targets:
        names = ", ".join(f"`{name}`" for name in summary.failing_targets)
        lines.extend(["", f"**Failing targets:** {names}"])
    return "\n".join(lines) + "\n"


HTML_STYLE = """\
body{font-family:-apple-system,'Segoe UI',Roboto,sans-serif;margin:24px 32px}
h1{font-size:1.5em;margin-bottom:4px}
.meta{color:#57606a;margin-bottom:16px}
table{border-collapse:collapse;font-size:.9em}
th,td{padding:6px 10px;border-bottom:1px solid #d0d7de;text-align:left}
td.num{text-align:right}
.passed{color:#1a7f37}.failed,.launch_failed{color:#cf222e}
.timeout,.unparsed{color:#9a6700}.cancelled{color:#57606a}"""


def render_html(summary: RunSummary, title: str = "Test Results") -> str:
    """Standalone HTML page with totals and one table row per project."""
    e = escape
    totals = summary.totals
    status = "PASSED" if summary.passed else "FAILED"
    coverage = f"{totals.coverage:.1f}%" if totals.coverage is not None else "n/a"

    rows = ""
    for entry in summary.entries:
        outcome = entry.outcome
        label = outcome_label(outcome)
        message = f"<br><small>{e(outcome.message)}</small>" if outcome.message else ""
        rows += (
            f'      <tr class="{label}">'
            f"<td>{e(entry.target.name)}{message}</td>"
            f'<td class="{label}">{STATUS_SYMBOLS[label]} {label}</td>'
            f'<td class="num">{outcome.passed}</td>'
            f'<td class="num">{outcome.failed}</td>'
            f'<td class="num">{outcome.skipped}</td>'
            f'<td class="num">{format_duration(outcome.duration)}</td></tr>\n'
        )

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<title>{e(title)}</title>
<style>
{HTML_STYLE}
</style>
</head>
<body>
<h1>{e(title)}: <span class="{status.lower()}">{status}</span></h1>
<div class="meta">
  Projects: <strong>{totals.targets}</strong> &nbsp;|&nbsp;
  Tests: <strong>{totals.total}</strong> &nbsp;|&nbsp;
  Passed: <strong>{totals.passed}</strong> &nbsp;|&nbsp;
  Failed: <strong>{totals.failed}</strong> &nbsp;|&nbsp;
  Skipped: <strong>{totals.skipped}</strong> &nbsp;|&nbsp;
  Coverage: <strong>{coverage}</strong> &nbsp;|&nbsp;
  Duration: <strong>{format_duration(totals.duration)}</strong>
</div>
<table>
  <thead>
    <tr><th>Project</th><th>Status</th><th>Passed</th><th>Failed</th>\
<th>Skipped</th><th>Duration</th></tr>
  </thead>
  <tbody>
{rows}  </tbody>
</table>
</body>
</html>
"""


def format_output(summary: RunSummary) -> dict[str, Any]:
    """JSON-ready report of the whole run."""
    totals = summary.totals
    return {
        "status": "passed" if summary.passed else "failed",
        "cancelled": summary.cancelled,
        "total": totals.total,
        "passed": totals.passed,
        "failed": totals.failed,
        "skipped": totals.skipped,
        "duration": totals.duration,
        "coverage": totals.coverage,
        "failing_targets": list(summary.failing_targets),
        "results": [
            format_outcome(entry.target, entry.outcome) for entry in summary.entries
        ],
    }


def format_outcome(target: ProjectTarget, outcome: TestOutcome) -> dict[str, Any]:
    """JSON-ready report of one target."""
    return {
        "project": target.name,
        "status": outcome_label(outcome),
        "total": outcome.total,
        "passed": outcome.passed,
        "failed": outcome.failed,
        "skipped": outcome.skipped,
        "coverage": outcome.coverage,
        "duration": outcome.duration,
        "exit_code": outcome.exit_code,
        "parse_failed": outcome.parse_failed,
        "framework": outcome.framework,
        "attempts": outcome.attempts,
        "message": outcome.message,
    }


def build_run_event(
    summary: RunSummary, project: str, timestamp: datetime | None = None
) -> EventRecord:
    """``TEST_RUN`` record describing a finished run."""
    return EventRecord(
        project=project,
        type="TEST_RUN",
        payload=format_output(summary),
        timestamp=timestamp or datetime.now(UTC),
    )


def build_target_event(
    target: ProjectTarget,
    outcome: TestOutcome,
    project: str,
    timestamp: datetime | None = None,
) -> EventRecord:
    """``TEST_TARGET_COMPLETED`` record for one target."""
    return EventRecord(
        project=project,
        type="TEST_TARGET_COMPLETED",
        payload=format_outcome(target, outcome),
        timestamp=timestamp or datetime.now(UTC),
    )
