"""Load runner settings and project manifests from ``testrunner.yaml`` files."""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from workspace_test_runner.errors import ConfigError
from workspace_test_runner.models.manifest import ProjectManifest, RunnerSettings

log = logging.getLogger(__name__)

CONFIG_FILE = "testrunner.yaml"


def load_settings(
    workspace_root: Path, config_path: Path | None = None
) -> RunnerSettings:
    """Load workspace settings.

    Args:
        workspace_root: Workspace whose ``testrunner.yaml`` provides defaults
        config_path: Explicit settings file, which must exist when given

    Returns:
        Parsed settings, or the defaults when the workspace has no settings file

    Raises:
        FileNotFoundError: If an explicit ``config_path`` does not exist
        ConfigError: If the file is not valid YAML, is empty or fails validation

    """
    path = config_path if config_path is not None else workspace_root / CONFIG_FILE
    if not path.is_file():
        if config_path is not None:
            raise FileNotFoundError(f"Config file not found: {path}")
        log.debug("No %s in %s, using default settings", CONFIG_FILE, workspace_root)
        return RunnerSettings()

    data = read_yaml(path, ConfigError)
    if data is None:
        raise ConfigError(f"Empty config file: {path}")

    try:
        return RunnerSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid runner settings in {path}: {e}") from e


def load_project_manifest(project_dir: Path) -> ProjectManifest:
    """Load the ``testrunner.yaml`` manifest of a single project.

    Raises:
        FileNotFoundError: If the project has no manifest
        ValueError: If the manifest is malformed, empty or fails validation

    """
    path = project_dir / CONFIG_FILE
    if not path.is_file():
        raise FileNotFoundError(f"Manifest file not found: {path}")

    data = read_yaml(path, ValueError)
    if data is None:
        raise ValueError(f"Empty manifest file: {path}")

    try:
        return ProjectManifest.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid project manifest schema in {path}: {e}") from e


def read_yaml(path: Path, error_cls: type[ValueError]) -> Any:
    """Parse a YAML file, reporting syntax errors as ``error_cls``."""
    try:
        with path.open(encoding="utf-8") as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise error_cls(f"Invalid YAML in {path}: {e}") from e
