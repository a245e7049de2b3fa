"""Fixtures for integration tests."""

import json
import sys
import textwrap
from pathlib import Path
from typing import Protocol

import pytest

from workspace_test_runner.models.target import FrameworkHint, ProjectTarget


class ScriptTargetFn(Protocol):
    """Protocol for script target creation function."""

    def __call__(
        self,
        name: str,
        script: str,
        *,
        framework: FrameworkHint | None = None,
        timeout: float | None = None,
    ) -> ProjectTarget:
        """Write a Python script into a project directory and target it."""


class CreateProjectFn(Protocol):
    """Protocol for workspace project creation function."""

    def __call__(self, name: str, script: str) -> Path:
        """Create a project whose test command runs ``script``."""


@pytest.fixture
def script_target(tmp_path: Path) -> ScriptTargetFn:
    """Return a function building targets that run a Python script."""

    def _create(
        name: str,
        script: str,
        *,
        framework: FrameworkHint | None = None,
        timeout: float | None = None,
    ) -> ProjectTarget:
        project_dir = tmp_path / name
        project_dir.mkdir()
        (project_dir / "run_tests.py").write_text(textwrap.dedent(script))
        return ProjectTarget(
            name=name,
            path=project_dir,
            command=(sys.executable, "run_tests.py"),
            framework=framework,
            timeout=timeout,
        )

    return _create


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create an empty workspace directory."""
    root = tmp_path / "workspace"
    (root / "packages").mkdir(parents=True)
    return root


@pytest.fixture
def create_project(workspace: Path) -> CreateProjectFn:
    """Return a function to add projects with a testrunner.yaml to the workspace."""

    def _create(name: str, script: str) -> Path:
        project_dir = workspace / "packages" / name
        project_dir.mkdir()
        (project_dir / "run_tests.py").write_text(textwrap.dedent(script))
        command = json.dumps([sys.executable, "run_tests.py"])
        (project_dir / "testrunner.yaml").write_text(f"command: {command}\n")
        return project_dir

    return _create
