"""Models for the ``testrunner.yaml`` files found in a workspace."""

import shlex
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import Field, field_validator

from workspace_test_runner.models.base import Model
from workspace_test_runner.models.target import FrameworkHint


class ProjectManifest(Model):
    """Explicit test configuration placed in a project directory.

    Takes precedence over anything inferred from ``package.json`` or Python
    packaging files.
    """

    name: str | None = Field(
        default=None, min_length=1, description="Project name (defaults to dir name)"
    )
    command: tuple[str, ...] = Field(
        ..., min_length=1, description="Test command, as a list or a shell string"
    )
    framework: FrameworkHint | None = Field(default=None)
    timeout: float | None = Field(default=None, gt=0)
    env: Mapping[str, str] = Field(default_factory=dict)
    issue: int | None = Field(default=None, gt=0)

    @field_validator("command", mode="before")
    @classmethod
    def split_command(cls, value: Any) -> Any:
        """Accept ``"pnpm test -- --run"`` as well as a list of arguments."""
        if isinstance(value, str):
            return tuple(shlex.split(value))
        return value


class RunnerSettings(Model):
    """Workspace-wide settings, read from ``testrunner.yaml`` at the root."""

    concurrency: int = Field(default=1, ge=1, description="Parallel test processes")
    timeout: float = Field(default=600.0, gt=0, description="Per-target timeout")
    retries: int = Field(default=0, ge=0, description="Re-runs of failing targets")
    kill_grace_period: float = Field(
        default=5.0, ge=0, description="Seconds between SIGTERM and SIGKILL"
    )
    package_manager: str = Field(default="pnpm", min_length=1)
    python: str = Field(default="python", min_length=1)
    project_dirs: Sequence[str] = Field(
        default=(".", "projects", "packages", "apps"),
        description="Directories whose children are candidate projects",
    )
    exclude: Sequence[str] = Field(
        default=(), description="Project directory names to skip"
    )
    watch_interval: float = Field(default=2.0, gt=0)
