"""Supabase event-log publisher manifest."""

from workspace_test_runner.publishers.manifest import PublisherManifest
from workspace_test_runner.publishers.supabase_events.config import (
    SupabaseEventsConfig,
)
from workspace_test_runner.publishers.supabase_events.publisher import (
    SupabaseEventsPublisher,
)

supabase_events_manifest = PublisherManifest(
    config_cls=SupabaseEventsConfig,
    publisher_factory=SupabaseEventsPublisher.from_config,
    env_defaults={"url": "SUPABASE_URL", "service_role_key": "SUPABASE_SERVICE_ROLE"},
)
