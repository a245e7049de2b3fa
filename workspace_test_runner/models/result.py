"""Models for test execution results."""

from dataclasses import dataclass
from typing import Literal

from workspace_test_runner.models.target import ProjectTarget

type ExecutionStatus = Literal["completed", "timeout", "launch_failed", "cancelled"]


@dataclass(frozen=True, kw_only=True)
class RawExecutionResult:
    """What one target's test process produced, before any parsing.

    ``exit_code`` is only set for ``completed`` results; a killed or never
    started process has no meaningful exit code.
    """

    target: ProjectTarget
    index: int
    status: ExecutionStatus
    exit_code: int | None = None
    stdout: str = ""
    stderr: str = ""
    duration: float = 0.0
    attempts: int = 1
    message: str | None = None

    @property
    def output(self) -> str:
        """Combined output; frameworks disagree on which stream gets the summary."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


@dataclass(frozen=True, kw_only=True)
class TestOutcome:
    """Normalized result of one target's test run."""

    __test__ = False

    status: ExecutionStatus = "completed"
    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    duration: float = 0.0
    coverage: float | None = None
    parse_failed: bool = False
    exit_code: int | None = None
    framework: str | None = None
    attempts: int = 1
    message: str | None = None

    @property
    def abnormal(self) -> bool:
        """True for timed out, unlaunchable and cancelled targets."""
        return self.status != "completed"

    @property
    def ok(self) -> bool:
        """True when the target counts towards an aggregate pass."""
        return self.failed == 0 and not self.abnormal
