"""Publisher manifest definition for the plugin system."""

from collections.abc import Callable, Mapping
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field

from pydantic import BaseModel

from workspace_test_runner.publishers.base import ResultPublisher


@dataclass(frozen=True, kw_only=True)
class PublisherManifest[ConfigT: BaseModel]:
    """Manifest describing a publisher plugin.

    ``env_defaults`` maps config fields to environment variables that supply
    them when the JSON configuration leaves them out, so tokens need not be
    passed on the command line.
    """

    config_cls: type[ConfigT]
    publisher_factory: Callable[
        [ConfigT], AbstractAsyncContextManager[ResultPublisher]
    ]
    env_defaults: Mapping[str, str] = field(default_factory=dict)
