"""Models describing the projects a run executes."""

from collections.abc import Mapping
from pathlib import Path
from typing import Literal

from pydantic import Field

from workspace_test_runner.models.base import Model

type FrameworkHint = Literal["jest", "vitest", "mocha", "pytest"]


class ProjectTarget(Model):
    """One testable project: where it lives and how its tests are started."""

    name: str = Field(..., min_length=1, description="Unique project name")
    path: Path = Field(..., description="Working directory of the test command")
    command: tuple[str, ...] = Field(
        ..., min_length=1, description="Test command as an argv sequence"
    )
    framework: FrameworkHint | None = Field(
        default=None, description="Test framework whose output format to expect"
    )
    timeout: float | None = Field(
        default=None, gt=0, description="Per-target timeout override in seconds"
    )
    env: Mapping[str, str] = Field(
        default_factory=dict, description="Extra environment variables"
    )
    issue: int | None = Field(
        default=None, gt=0, description="Issue to post this project's results to"
    )
