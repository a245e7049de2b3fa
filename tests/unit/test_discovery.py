"""Tests for project discovery."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from workspace_test_runner.discovery import (
    detect_js_framework,
    discover_targets,
    select_targets,
)
from workspace_test_runner.errors import DiscoveryError
from workspace_test_runner.models.manifest import RunnerSettings
from workspace_test_runner.testing.factories import ProjectTargetFactory


def write_package_json(project_dir: Path, package: object) -> None:
    project_dir.mkdir(parents=True, exist_ok=True)
    (project_dir / "package.json").write_text(json.dumps(package))


def write_python_project(project_dir: Path) -> None:
    (project_dir / "tests").mkdir(parents=True)
    (project_dir / "pyproject.toml").write_text("[project]\nname = 'x'\n")


class TestDiscoverTargets:
    """Tests for discover_targets function."""

    def test_empty_workspace(self, tmp_path: Path) -> None:
        """A workspace without projects yields no targets."""
        assert discover_targets(tmp_path) == []

    def test_discovers_node_project(self, tmp_path: Path) -> None:
        """A package.json with a test script becomes a target."""
        write_package_json(
            tmp_path / "packages" / "web",
            {"scripts": {"test": "vitest run"}, "devDependencies": {"vitest": "^1"}},
        )

        [target] = discover_targets(tmp_path)

        assert target.name == "web"
        assert target.path == (tmp_path / "packages" / "web").resolve()
        assert target.command == ("pnpm", "test")
        assert target.framework == "vitest"

    def test_uses_configured_package_manager(self, tmp_path: Path) -> None:
        """The package manager comes from settings."""
        write_package_json(tmp_path / "apps" / "site", {"scripts": {"test": "jest"}})

        [target] = discover_targets(tmp_path, RunnerSettings(package_manager="npm"))

        assert target.command == ("npm", "test")
        assert target.framework == "jest"

    def test_skips_placeholder_test_script(self, tmp_path: Path) -> None:
        """The script written by ``npm init`` is not a test command."""
        write_package_json(
            tmp_path / "packages" / "lib",
            {"scripts": {"test": 'echo "Error: no test specified" && exit 1'}},
        )

        assert discover_targets(tmp_path) == []

    def test_skips_package_without_test_script(self, tmp_path: Path) -> None:
        """Projects with no test script are ignored."""
        write_package_json(tmp_path / "packages" / "lib", {"scripts": {"build": "tsc"}})

        assert discover_targets(tmp_path) == []

    def test_discovers_python_project(self, tmp_path: Path) -> None:
        """A Python package with a tests directory runs pytest."""
        write_python_project(tmp_path / "projects" / "agents")

        [target] = discover_targets(tmp_path, RunnerSettings(python="python3"))

        assert target.name == "agents"
        assert target.command == ("python3", "-m", "pytest")
        assert target.framework == "pytest"

    def test_python_project_needs_tests(self, tmp_path: Path) -> None:
        """Packaging metadata alone is not enough."""
        project = tmp_path / "projects" / "tool"
        project.mkdir(parents=True)
        (project / "pyproject.toml").write_text("")

        assert discover_targets(tmp_path) == []

    def test_manifest_takes_precedence(self, tmp_path: Path) -> None:
        """An explicit testrunner.yaml overrides package.json inference."""
        project = tmp_path / "packages" / "web"
        write_package_json(project, {"scripts": {"test": "jest"}})
        (project / "testrunner.yaml").write_text(
            "name: frontend\ncommand: pnpm vitest run\nframework: vitest\n"
            "timeout: 30\nissue: 7\n"
        )

        [target] = discover_targets(tmp_path)

        assert target.name == "frontend"
        assert target.command == ("pnpm", "vitest", "run")
        assert target.framework == "vitest"
        assert target.timeout == 30
        assert target.issue == 7

    def test_sorted_by_name(self, tmp_path: Path) -> None:
        """Targets are returned in name order regardless of location."""
        write_package_json(tmp_path / "packages" / "zeta", {"scripts": {"test": "x"}})
        write_package_json(tmp_path / "apps" / "alpha", {"scripts": {"test": "x"}})
        write_python_project(tmp_path / "projects" / "mid")

        names = [target.name for target in discover_targets(tmp_path)]

        assert names == ["alpha", "mid", "zeta"]

    def test_skips_hidden_and_excluded_dirs(self, tmp_path: Path) -> None:
        """Dot directories, node_modules and configured exclusions are skipped."""
        for name in (".cache", "node_modules", "legacy", "kept"):
            write_package_json(tmp_path / "packages" / name, {"scripts": {"test": "x"}})

        targets = discover_targets(tmp_path, RunnerSettings(exclude=["legacy"]))

        assert [target.name for target in targets] == ["kept"]

    def test_custom_project_dirs(self, tmp_path: Path) -> None:
        """Only the configured directories are searched."""
        write_package_json(tmp_path / "services" / "api", {"scripts": {"test": "x"}})
        write_package_json(tmp_path / "packages" / "web", {"scripts": {"test": "x"}})

        targets = discover_targets(tmp_path, RunnerSettings(project_dirs=["services"]))

        assert [target.name for target in targets] == ["api"]

    def test_raises_for_duplicate_names(self, tmp_path: Path) -> None:
        """Two projects with the same name are rejected."""
        write_package_json(tmp_path / "packages" / "api", {"scripts": {"test": "x"}})
        write_package_json(tmp_path / "apps" / "api", {"scripts": {"test": "x"}})

        with pytest.raises(DiscoveryError, match="Duplicate project name 'api'"):
            discover_targets(tmp_path)

    def test_raises_for_missing_workspace(self, tmp_path: Path) -> None:
        """A missing workspace root is a discovery error."""
        with pytest.raises(DiscoveryError, match="does not exist"):
            discover_targets(tmp_path / "missing")

    def test_raises_for_file_workspace(self, tmp_path: Path) -> None:
        """A workspace root that is a file is a discovery error."""
        path = tmp_path / "file.txt"
        path.write_text("")

        with pytest.raises(DiscoveryError, match="not a directory"):
            discover_targets(path)

    def test_raises_for_invalid_manifest(self, tmp_path: Path) -> None:
        """An invalid project manifest stops discovery."""
        project = tmp_path / "packages" / "api"
        project.mkdir(parents=True)
        (project / "testrunner.yaml").write_text("framework: jest\n")

        with pytest.raises(DiscoveryError, match="Invalid project manifest schema"):
            discover_targets(tmp_path)

    def test_raises_for_malformed_package_json(self, tmp_path: Path) -> None:
        """A package.json that is not JSON stops discovery."""
        project = tmp_path / "packages" / "api"
        project.mkdir(parents=True)
        (project / "package.json").write_text("{not json")

        with pytest.raises(DiscoveryError, match="Cannot read"):
            discover_targets(tmp_path)

    def test_raises_for_unreadable_project(self, tmp_path: Path) -> None:
        """A permission error while inspecting a project stops discovery."""
        (tmp_path / "packages" / "api").mkdir(parents=True)
        denied = PermissionError(13, "Permission denied")

        with (
            patch.object(Path, "is_file", side_effect=denied),
            pytest.raises(DiscoveryError, match="Cannot inspect"),
        ):
            discover_targets(tmp_path)

    def test_raises_for_unreadable_project_dir(self, tmp_path: Path) -> None:
        """A project directory that cannot be stat-ed stops discovery."""
        (tmp_path / "packages" / "api").mkdir(parents=True)
        real_is_dir = Path.is_dir

        def is_dir(path: Path) -> bool:
            if path.name == "api":
                raise PermissionError(13, "Permission denied")
            return real_is_dir(path)

        with (
            patch.object(Path, "is_dir", autospec=True, side_effect=is_dir),
            pytest.raises(DiscoveryError, match="Cannot inspect .*api"),
        ):
            discover_targets(tmp_path)


@pytest.mark.parametrize(
    ("package", "script", "expected"),
    [
        ({"devDependencies": {"vitest": "1", "jest": "29"}}, "x", "vitest"),
        ({"dependencies": {"mocha": "10"}}, "x", "mocha"),
        ({}, "jest --coverage", "jest"),
        ({}, "node test.js", None),
    ],
)
def test_detect_js_framework(
    package: dict[str, object], script: str, expected: str | None
) -> None:
    """Dependencies are checked before the test script."""
    assert detect_js_framework(package, script) == expected


class TestSelectTargets:
    """Tests for select_targets function."""

    def test_empty_selection_returns_all(self) -> None:
        """No names selects every target."""
        targets = [ProjectTargetFactory.build(name=n) for n in ("a", "b")]

        assert select_targets(targets, []) == targets

    def test_keeps_discovery_order(self) -> None:
        """Selected targets keep discovery order, not argument order."""
        targets = [ProjectTargetFactory.build(name=n) for n in ("a", "b", "c")]

        selected = select_targets(targets, ["c", "a"])

        assert [target.name for target in selected] == ["a", "c"]

    def test_raises_for_unknown_name(self) -> None:
        """Unknown names are reported with the available projects."""
        targets = [ProjectTargetFactory.build(name="a")]

        with pytest.raises(DiscoveryError, match="Unknown project\\(s\\): nope"):
            select_targets(targets, ["nope"])
