"""Models for the aggregated result of a whole run."""

from collections.abc import Sequence
from dataclasses import dataclass

from workspace_test_runner.models.result import TestOutcome
from workspace_test_runner.models.target import ProjectTarget


@dataclass(frozen=True, kw_only=True)
class TargetOutcome:
    """A target paired with its outcome."""

    target: ProjectTarget
    outcome: TestOutcome


@dataclass(frozen=True, kw_only=True)
class RunTotals:
    """Counts summed over every target of a run."""

    targets: int = 0
    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    duration: float = 0.0
    parse_failed: int = 0
    coverage: float | None = None


@dataclass(frozen=True, kw_only=True)
class RunSummary:
    """Outcomes of one run, in discovery order, with their totals."""

    entries: Sequence[TargetOutcome]
    totals: RunTotals

    @property
    def passed(self) -> bool:
        """Aggregate pass: no failures and no abnormal target anywhere."""
        return all(entry.outcome.ok for entry in self.entries)

    @property
    def cancelled(self) -> bool:
        """Whether any target was cancelled."""
        return any(entry.outcome.status == "cancelled" for entry in self.entries)

    @property
    def failing_targets(self) -> Sequence[str]:
        """Names of targets that prevent an aggregate pass."""
        return [entry.target.name for entry in self.entries if not entry.outcome.ok]

    @property
    def unparsed_targets(self) -> Sequence[str]:
        """Names of targets whose output matched no extractor."""
        return [
            entry.target.name for entry in self.entries if entry.outcome.parse_failed
        ]
