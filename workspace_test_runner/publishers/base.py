"""Abstract base class for result publishers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from workspace_test_runner.models.result import TestOutcome
from workspace_test_runner.models.summary import RunSummary
from workspace_test_runner.models.target import ProjectTarget


@dataclass(frozen=True, kw_only=True)
class PublishContext:
    """Where a run's results belong.

    ``project`` names the workspace in event records; ``issue`` is the issue
    requested on the command line, if any.
    """

    project: str
    issue: int | None = None


@dataclass(frozen=True, kw_only=True)
class ResultPublisher(ABC):
    """Delivers rendered results to an external service."""

    @abstractmethod
    async def publish_run(self, summary: RunSummary, context: PublishContext) -> None:
        """Publish the summary of a finished run.

        Args:
            summary: Finalized run summary
            context: Workspace name and requested issue number

        """

    async def publish_target(
        self,
        target: ProjectTarget,
        outcome: TestOutcome,
        context: PublishContext,
    ) -> None:
        """Publish a single target's outcome as soon as it is known.

        Publishers without fine-grained reporting keep this no-op.
        """
        return None
