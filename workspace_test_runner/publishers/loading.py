"""Loading of publishers from entry points."""

import json
from collections.abc import Mapping
from importlib.metadata import entry_points
from typing import Any

from pydantic import BaseModel

from workspace_test_runner.publishers.manifest import PublisherManifest

ENTRY_POINT_GROUP = "workspace_test_runner.publishers"


class PublisherNotFoundError(Exception):
    """Raised when a publisher is not found."""


def load_publisher_manifest(key: str) -> PublisherManifest[Any]:
    """Load a publisher manifest by key.

    Args:
        key: The publisher key as registered in pyproject.toml
             (e.g., "github-issues", "supabase-events")

    Returns:
        The publisher manifest instance

    Raises:
        PublisherNotFoundError: If no publisher with the given key is found

    """
    entries = entry_points(group=ENTRY_POINT_GROUP)

    for entry in entries:
        if entry.name == key:
            manifest: PublisherManifest[Any] = entry.load()
            return manifest

    available = sorted(e.name for e in entries)
    raise PublisherNotFoundError(
        f"Publisher '{key}' not found. Available publishers: {available}"
    )


def build_publisher_config(
    manifest: PublisherManifest[Any],
    config_json: str,
    environ: Mapping[str, str],
) -> BaseModel:
    """Validate a publisher's JSON config, filling gaps from the environment.

    Raises:
        ValueError: If the JSON is malformed or fails validation

    """
    config = json.loads(config_json) if config_json.strip() else {}
    if not isinstance(config, dict):
        raise ValueError("Publisher config must be a JSON object")

    for field_name, variable in manifest.env_defaults.items():
        if field_name not in config and (value := environ.get(variable)):
            config[field_name] = value

    return manifest.config_cls.model_validate(config)
