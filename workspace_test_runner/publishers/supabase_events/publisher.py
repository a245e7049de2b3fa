"""Supabase event-log publisher implementation."""

import logging
from collections.abc import AsyncGenerator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

import aiohttp

from workspace_test_runner.models.result import TestOutcome
from workspace_test_runner.models.summary import RunSummary
from workspace_test_runner.models.target import ProjectTarget
from workspace_test_runner.publishers.base import PublishContext, ResultPublisher
from workspace_test_runner.publishers.supabase_events.config import (
    SupabaseEventsConfig,
)
from workspace_test_runner.reporting import (
    EventRecord,
    build_run_event,
    build_target_event,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class SupabaseEventsPublisher(ResultPublisher):
    """Inserts ``TEST_RUN`` and ``TEST_TARGET_COMPLETED`` records into a table."""

    config: SupabaseEventsConfig
    session: aiohttp.ClientSession = field(repr=False)

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: SupabaseEventsConfig
    ) -> AsyncGenerator["SupabaseEventsPublisher", None]:
        """Create publisher with managed session lifecycle."""
        key = config.service_role_key.get_secret_value()
        headers = {
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Prefer": "return=minimal",
        }
        async with aiohttp.ClientSession(
            base_url=config.url,
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=config.timeout),
        ) as session:
            yield cls(config=config, session=session)

    async def publish_run(self, summary: RunSummary, context: PublishContext) -> None:
        """Insert a ``TEST_RUN`` row for the finished run."""
        await self.insert_events([build_run_event(summary, self._project(context))])

    async def publish_target(
        self,
        target: ProjectTarget,
        outcome: TestOutcome,
        context: PublishContext,
    ) -> None:
        """Insert a ``TEST_TARGET_COMPLETED`` row for one target."""
        await self.insert_events(
            [build_target_event(target, outcome, self._project(context))]
        )

    async def insert_events(self, records: Sequence[EventRecord]) -> None:
        """Insert event records in a single request."""
        url = f"/rest/v1/{self.config.table}"
        payload = [record.model_dump(mode="json") for record in records]
        log.info("Logging %d event(s) to table %s", len(payload), self.config.table)

        async with self.session.post(url, json=payload) as response:
            if response.status != 201:
                text = await response.text()
                raise RuntimeError(f"Failed to insert events: {response.status} {text}")

    def _project(self, context: PublishContext) -> str:
        return self.config.project or context.project
