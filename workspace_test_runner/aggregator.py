"""Fold per-target outcomes into a run summary."""

from collections.abc import Sequence
from dataclasses import dataclass, field

from workspace_test_runner.models.result import TestOutcome
from workspace_test_runner.models.summary import RunSummary, RunTotals, TargetOutcome
from workspace_test_runner.models.target import ProjectTarget

NOT_COMPLETED_MESSAGE = "Run ended before the target completed"


@dataclass(kw_only=True)
class ResultAggregator:
    """Collects outcomes as they arrive, keyed by submission index.

    ``finalize`` always returns one entry per target, in submission order.
    """

    targets: Sequence[ProjectTarget]
    _outcomes: dict[int, TestOutcome] = field(default_factory=dict, init=False)

    def add(self, index: int, outcome: TestOutcome) -> None:
        """Record the outcome of the target at ``index``, at most once."""
        if not 0 <= index < len(self.targets):
            raise IndexError(f"No target at index {index}")
        if index in self._outcomes:
            raise ValueError(
                f"Outcome for target '{self.targets[index].name}' already recorded"
            )
        self._outcomes[index] = outcome

    def finalize(self) -> RunSummary:
        """Build the summary, marking targets without an outcome as cancelled."""
        entries = [
            TargetOutcome(
                target=target,
                outcome=self._outcomes.get(index)
                or TestOutcome(
                    status="cancelled", attempts=0, message=NOT_COMPLETED_MESSAGE
                ),
            )
            for index, target in enumerate(self.targets)
        ]
        return RunSummary(entries=entries, totals=compute_totals(entries))


def aggregate(
    targets: Sequence[ProjectTarget], outcomes: Sequence[TestOutcome]
) -> RunSummary:
    """Pair targets with outcomes given in the same order."""
    if len(targets) != len(outcomes):
        raise ValueError(
            f"Got {len(outcomes)} outcome(s) for {len(targets)} target(s)"
        )

    aggregator = ResultAggregator(targets=targets)
    for index, outcome in enumerate(outcomes):
        aggregator.add(index, outcome)
    return aggregator.finalize()


def compute_totals(entries: Sequence[TargetOutcome]) -> RunTotals:
    """Sum counts and durations; coverage is the mean of reporting targets."""
    outcomes = [entry.outcome for entry in entries]
    coverages = [o.coverage for o in outcomes if o.coverage is not None]
    return RunTotals(
        targets=len(outcomes),
        total=sum(o.total for o in outcomes),
        passed=sum(o.passed for o in outcomes),
        failed=sum(o.failed for o in outcomes),
        skipped=sum(o.skipped for o in outcomes),
        duration=sum(o.duration for o in outcomes),
        parse_failed=sum(1 for o in outcomes if o.parse_failed),
        coverage=round(sum(coverages) / len(coverages), 2) if coverages else None,
    )
