"""Discover testable projects in a workspace."""

import json
import logging
import os
from collections.abc import Iterator, Sequence
from pathlib import Path

from workspace_test_runner.config_loader import CONFIG_FILE, load_project_manifest
from workspace_test_runner.errors import DiscoveryError
from workspace_test_runner.models.manifest import RunnerSettings
from workspace_test_runner.models.target import FrameworkHint, ProjectTarget

log = logging.getLogger(__name__)

SKIPPED_DIRS = frozenset(
    {"node_modules", "__pycache__", "venv", "dist", "build", "coverage"}
)
PYTHON_MARKERS = ("pyproject.toml", "pytest.ini", "setup.cfg", "tox.ini")
# Checked in order: a vitest project often also depends on jest-compatible libs.
JS_FRAMEWORKS: Sequence[FrameworkHint] = ("vitest", "jest", "mocha")
# The script `npm init` writes when no test runner is configured.
NPM_PLACEHOLDER_TEST = "no test specified"


def discover_targets(
    workspace_root: Path, settings: RunnerSettings | None = None
) -> Sequence[ProjectTarget]:
    """Find every project under the workspace that has a runnable test command.

    Args:
        workspace_root: Directory containing the projects
        settings: Runner settings (project directories, exclusions, commands)

    Returns:
        Targets sorted by name, which is the canonical reporting order

    Raises:
        DiscoveryError: If the workspace is missing or unreadable, a project
            declares an invalid manifest, or two projects share a name

    """
    settings = settings or RunnerSettings()
    root = check_workspace_root(workspace_root)

    targets: dict[str, ProjectTarget] = {}
    for project_dir in iter_project_dirs(root, settings):
        try:
            target = detect_target(project_dir, settings)
        except OSError as e:
            raise DiscoveryError(f"Cannot inspect {project_dir}: {e}") from e
        if target is None:
            log.debug("No test command found in %s", project_dir)
            continue
        if (existing := targets.get(target.name)) is not None:
            raise DiscoveryError(
                f"Duplicate project name '{target.name}': "
                f"{existing.path} and {target.path}"
            )
        targets[target.name] = target

    log.info("Discovered %d project(s) in %s", len(targets), root)
    return [targets[name] for name in sorted(targets)]


def select_targets(
    targets: Sequence[ProjectTarget], names: Sequence[str]
) -> Sequence[ProjectTarget]:
    """Narrow discovered targets to the given names, keeping discovery order.

    An empty ``names`` selects everything.
    """
    if not names:
        return targets

    available = {target.name for target in targets}
    unknown = [name for name in names if name not in available]
    if unknown:
        raise DiscoveryError(
            f"Unknown project(s): {', '.join(unknown)}. "
            f"Available projects: {sorted(available)}"
        )

    wanted = set(names)
    return [target for target in targets if target.name in wanted]


def check_workspace_root(workspace_root: Path) -> Path:
    """Resolve the workspace root and make sure it can be listed."""
    root = workspace_root.resolve()
    try:
        exists, is_dir = root.exists(), root.is_dir()
    except OSError as e:
        raise DiscoveryError(f"Workspace root is not readable: {root}: {e}") from e
    if not exists:
        raise DiscoveryError(f"Workspace root does not exist: {root}")
    if not is_dir:
        raise DiscoveryError(f"Workspace root is not a directory: {root}")
    if not os.access(root, os.R_OK | os.X_OK):
        raise DiscoveryError(f"Workspace root is not readable: {root}")
    return root


def iter_project_dirs(root: Path, settings: RunnerSettings) -> Iterator[Path]:
    """Yield candidate project directories, each at most once."""
    seen: set[Path] = set()
    excluded = SKIPPED_DIRS.union(settings.exclude)

    for base_name in settings.project_dirs:
        base = (root / base_name).resolve()
        try:
            if not base.is_dir():
                continue
            children = sorted(base.iterdir())
        except OSError as e:
            raise DiscoveryError(f"Cannot read directory {base}: {e}") from e

        for child in children:
            if child.name.startswith(".") or child.name in excluded:
                continue
            try:
                is_dir = child.is_dir()
            except OSError as e:
                raise DiscoveryError(f"Cannot inspect {child}: {e}") from e
            if child in seen or not is_dir:
                continue
            seen.add(child)
            yield child


def detect_target(project_dir: Path, settings: RunnerSettings) -> ProjectTarget | None:
    """Build a target from a manifest, a ``package.json`` or Python markers."""
    if (project_dir / CONFIG_FILE).is_file():
        return target_from_manifest(project_dir)

    if (project_dir / "package.json").is_file():
        if (target := target_from_package_json(project_dir, settings)) is not None:
            return target

    if is_python_project(project_dir):
        return ProjectTarget(
            name=project_dir.name,
            path=project_dir,
            command=(settings.python, "-m", "pytest"),
            framework="pytest",
        )

    return None


def target_from_manifest(project_dir: Path) -> ProjectTarget:
    """Build a target from the project's ``testrunner.yaml``."""
    try:
        manifest = load_project_manifest(project_dir)
    except ValueError as e:
        raise DiscoveryError(str(e)) from e

    return ProjectTarget(
        name=manifest.name or project_dir.name,
        path=project_dir,
        command=manifest.command,
        framework=manifest.framework,
        timeout=manifest.timeout,
        env=manifest.env,
        issue=manifest.issue,
    )


def target_from_package_json(
    project_dir: Path, settings: RunnerSettings
) -> ProjectTarget | None:
    """Build a target from the ``test`` script of a Node.js project."""
    path = project_dir / "package.json"
    try:
        package = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise DiscoveryError(f"Cannot read {path}: {e}") from e
    if not isinstance(package, dict):
        raise DiscoveryError(f"Invalid package.json in {project_dir}: not an object")

    scripts = package.get("scripts") or {}
    test_script = scripts.get("test") if isinstance(scripts, dict) else None
    if not isinstance(test_script, str) or NPM_PLACEHOLDER_TEST in test_script:
        return None

    return ProjectTarget(
        name=project_dir.name,
        path=project_dir,
        command=(settings.package_manager, "test"),
        framework=detect_js_framework(package, test_script),
    )


def detect_js_framework(
    package: dict[str, object], test_script: str
) -> FrameworkHint | None:
    """Guess the framework from dependency names, then from the test script."""
    dependencies: set[str] = set()
    for key in ("dependencies", "devDependencies"):
        section = package.get(key)
        if isinstance(section, dict):
            dependencies.update(section)

    for framework in JS_FRAMEWORKS:
        if framework in dependencies:
            return framework
    for framework in JS_FRAMEWORKS:
        if framework in test_script:
            return framework
    return None


def is_python_project(project_dir: Path) -> bool:
    """A Python project has packaging or pytest config and somewhere to find tests."""
    has_conftest = (project_dir / "conftest.py").is_file()
    has_marker = has_conftest or any(
        (project_dir / marker).is_file() for marker in PYTHON_MARKERS
    )
    return has_marker and (has_conftest or (project_dir / "tests").is_dir())
