"""Test orchestrator wiring execution, parsing and aggregation for one run."""

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from workspace_test_runner.aggregator import ResultAggregator
from workspace_test_runner.cancellation import CancellationSignal
from workspace_test_runner.executor import TestExecutor
from workspace_test_runner.models.result import RawExecutionResult, TestOutcome
from workspace_test_runner.models.summary import RunSummary
from workspace_test_runner.models.target import ProjectTarget
from workspace_test_runner.parser import outcome_from_result

log = logging.getLogger(__name__)

type OutcomeListener = Callable[[ProjectTarget, TestOutcome], Awaitable[None]]


@dataclass(frozen=True, kw_only=True)
class TestOrchestrator:
    """Runs targets and folds their outcomes into a summary as they complete."""

    __test__ = False

    executor: TestExecutor
    listener: OutcomeListener | None = None

    async def run_tests(
        self,
        targets: Sequence[ProjectTarget],
        cancellation: CancellationSignal | None = None,
    ) -> RunSummary:
        """Run all targets.

        Args:
            targets: Targets in discovery order
            cancellation: Signal that aborts the run; outcomes collected so far
                are kept and the rest are marked cancelled

        Returns:
            Summary with exactly one outcome per target, in discovery order

        """
        aggregator = ResultAggregator(targets=targets)
        if not targets:
            log.info("No targets to run")
            return aggregator.finalize()

        async def on_result(result: RawExecutionResult) -> None:
            outcome = outcome_from_result(result)
            self._log_outcome(result.target, outcome)
            aggregator.add(result.index, outcome)
            await self._notify(result.target, outcome)

        log.info(
            "Running tests for %d project(s) with concurrency %d",
            len(targets),
            self.executor.concurrency,
        )
        await self.executor.execute(targets, cancellation, on_result)

        summary = aggregator.finalize()
        log.info(
            "Test execution completed: %s (%d failing)",
            "passed" if summary.passed else "failed",
            len(summary.failing_targets),
        )
        return summary

    def _log_outcome(self, target: ProjectTarget, outcome: TestOutcome) -> None:
        log.info(
            "Test completed: project=%s status=%s passed=%d failed=%d "
            "skipped=%d duration=%.1fs",
            target.name,
            outcome.status,
            outcome.passed,
            outcome.failed,
            outcome.skipped,
            outcome.duration,
        )

    async def _notify(self, target: ProjectTarget, outcome: TestOutcome) -> None:
        if self.listener is None:
            return
        try:
            await self.listener(target, outcome)
        except Exception as e:
            log.error("Outcome listener failed for %s: %s", target.name, e, exc_info=e)
