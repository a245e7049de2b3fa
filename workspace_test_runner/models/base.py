"""Base model shared by everything loaded from YAML, JSON or the command line."""

from pydantic import BaseModel, ConfigDict


class Model(BaseModel):
    """Immutable model that rejects unknown keys.

    Unknown keys in a ``testrunner.yaml`` are almost always typos, so they fail
    validation instead of being silently dropped.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")
