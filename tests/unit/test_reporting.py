"""Tests for report rendering."""

from datetime import UTC, datetime

import pytest

from workspace_test_runner.aggregator import aggregate
from workspace_test_runner.models.result import TestOutcome
from workspace_test_runner.models.summary import RunSummary
from workspace_test_runner.reporting import (
    build_run_event,
    build_target_event,
    format_duration,
    format_output,
    outcome_label,
    render_html,
    render_markdown,
    render_text,
)
from workspace_test_runner.testing.factories import ProjectTargetFactory

TIMESTAMP = datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)


@pytest.fixture
def mixed_summary() -> RunSummary:
    """Summary with a passing, a failing, a timed out and an unparsed target."""
    names = ["api", "web", "worker", "docs"]
    return aggregate(
        [ProjectTargetFactory.build(name=name) for name in names],
        [
            TestOutcome(total=5, passed=5, duration=1.0, coverage=90.0, exit_code=0),
            TestOutcome(total=4, passed=2, failed=2, duration=2.0, exit_code=1),
            TestOutcome(status="timeout", duration=30.0, message="Timed out after 30s"),
            TestOutcome(parse_failed=True, duration=0.5, exit_code=3),
        ],
    )


@pytest.fixture
def passing_summary() -> RunSummary:
    return aggregate(
        [ProjectTargetFactory.build(name="api")],
        [TestOutcome(total=3, passed=3, duration=1.25)],
    )


@pytest.mark.parametrize(
    ("outcome", "label"),
    [
        (TestOutcome(passed=1, total=1), "passed"),
        (TestOutcome(failed=1, total=1), "failed"),
        (TestOutcome(parse_failed=True), "unparsed"),
        (TestOutcome(status="timeout"), "timeout"),
        (TestOutcome(status="launch_failed"), "launch_failed"),
        (TestOutcome(status="cancelled"), "cancelled"),
    ],
)
def test_outcome_label(outcome: TestOutcome, label: str) -> None:
    """Labels reflect the most important fact about an outcome."""
    assert outcome_label(outcome) == label


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [(0.5, "0.50s"), (12.345, "12.35s"), (125.0, "2m 5.0s")],
)
def test_format_duration(seconds: float, expected: str) -> None:
    """Formats seconds and minutes."""
    assert format_duration(seconds) == expected


class TestRenderText:
    """Tests for render_text."""

    def test_lists_every_target(self, mixed_summary: RunSummary) -> None:
        """Each target appears with its symbol and label."""
        text = render_text(mixed_summary)

        assert "Test Results Summary: FAILED (4 project(s))" in text
        assert "✅ api: passed (5 passed, 0 failed, 0 skipped) in 1.00s" in text
        assert "❌ web: failed (2 passed, 2 failed, 0 skipped) in 2.00s" in text
        assert "⏱️ worker: timeout in 30.00s" in text
        assert "  Message: Timed out after 30s" in text
        assert "❔ docs: unparsed" in text
        assert "  Exit code: 3" in text

    def test_lists_totals_and_failing_targets(self, mixed_summary: RunSummary) -> None:
        """Totals, coverage and failing targets close the block."""
        text = render_text(mixed_summary)

        assert "Totals: 9 tests, 7 passed, 2 failed, 0 skipped in 33.50s" in text
        assert "Coverage: 90.0%" in text
        assert "Failing targets: web, worker" in text
        assert "Unparsed output: docs" in text

    def test_passing_run(self, passing_summary: RunSummary) -> None:
        """A passing run has no failing targets line."""
        text = render_text(passing_summary)

        assert "Test Results Summary: PASSED (1 project(s))" in text
        assert "Failing targets" not in text
        assert "Coverage" not in text


class TestRenderMarkdown:
    """Tests for render_markdown."""

    def test_failing_run(self, mixed_summary: RunSummary) -> None:
        """Renders status, counts, table and failing targets."""
        markdown = render_markdown(mixed_summary)

        assert markdown.startswith("## Test Results\n")
        assert "**Status:** ❌ FAILING" in markdown
        assert "- Total: 9" in markdown
        assert "- Failed: ❌ 2" in markdown
        assert "**Coverage:** 90.0%" in markdown
        assert "| `web` | ❌ failed | 2 | 2 | 0 | 2.00s |" in markdown
        assert "**Failing targets:** `web`, `worker`" in markdown

    def test_passing_run(self, passing_summary: RunSummary) -> None:
        """Passing runs have no coverage and no failing targets."""
        markdown = render_markdown(passing_summary, title="Nightly")

        assert markdown.startswith("## Nightly\n")
        assert "**Status:** ✅ PASSING" in markdown
        assert "**Coverage:** n/a" in markdown
        assert "Failing targets" not in markdown


class TestRenderHtml:
    """Tests for render_html."""

    def test_failing_run(self, mixed_summary: RunSummary) -> None:
        """Renders a standalone page with totals and a row per target."""
        html = render_html(mixed_summary)

        assert html.startswith("<!DOCTYPE html>")
        assert "<title>Test Results</title>" in html
        assert '<span class="failed">FAILED</span>' in html
        assert "Tests: <strong>9</strong>" in html
        assert "Coverage: <strong>90.0%</strong>" in html
        assert html.count('<tr class="') == 4
        assert (
            '<tr class="failed"><td>web</td><td class="failed">❌ failed</td>'
            '<td class="num">2</td><td class="num">2</td><td class="num">0</td>'
            '<td class="num">2.00s</td></tr>'
        ) in html
        assert "<small>Timed out after 30s</small>" in html

    def test_escapes_names_and_messages(self) -> None:
        """Project names, messages and the title are HTML-escaped."""
        summary = aggregate(
            [ProjectTargetFactory.build(name="<api>")],
            [TestOutcome(status="launch_failed", message='"npm" & <co>')],
        )

        html = render_html(summary, title="A & B")

        assert "<title>A &amp; B</title>" in html
        assert "<td>&lt;api&gt;<br>" in html
        assert "&quot;npm&quot; &amp; &lt;co&gt;" in html
        assert "<api>" not in html

    def test_passing_run(self, passing_summary: RunSummary) -> None:
        """Passing runs show the passed status and no coverage."""
        html = render_html(passing_summary)

        assert '<span class="passed">PASSED</span>' in html
        assert "Coverage: <strong>n/a</strong>" in html


def test_format_output(mixed_summary: RunSummary) -> None:
    """Machine-readable output has totals and one result per target."""
    output = format_output(mixed_summary)

    assert output["status"] == "failed"
    assert output["cancelled"] is False
    assert output["total"] == 9
    assert output["failing_targets"] == ["web", "worker"]
    assert [r["project"] for r in output["results"]] == ["api", "web", "worker", "docs"]
    assert output["results"][2]["status"] == "timeout"
    assert output["results"][3]["parse_failed"] is True
    assert output["results"][3]["exit_code"] == 3


def test_format_output_empty() -> None:
    """An empty run passes with zero totals."""
    output = format_output(aggregate([], []))

    assert output["status"] == "passed"
    assert output["total"] == 0
    assert output["results"] == []


def test_build_run_event(passing_summary: RunSummary) -> None:
    """Run events carry the JSON report as payload."""
    event = build_run_event(passing_summary, "agents", TIMESTAMP)

    assert event.project == "agents"
    assert event.type == "TEST_RUN"
    assert event.payload["passed"] == 3
    assert event.model_dump(mode="json")["timestamp"] == "2026-01-02T03:04:05Z"


def test_build_target_event() -> None:
    """Target events carry one target's outcome."""
    target = ProjectTargetFactory.build(name="api")

    event = build_target_event(target, TestOutcome(total=2, passed=2), "agents")

    assert event.type == "TEST_TARGET_COMPLETED"
    assert event.payload["project"] == "api"
    assert event.payload["passed"] == 2
    assert event.timestamp.tzinfo is not None
