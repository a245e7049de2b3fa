"""Supabase event-log publisher module."""

from workspace_test_runner.publishers.supabase_events.config import (
    SupabaseEventsConfig,
)
from workspace_test_runner.publishers.supabase_events.manifest import (
    supabase_events_manifest,
)
from workspace_test_runner.publishers.supabase_events.publisher import (
    SupabaseEventsPublisher,
)

__all__ = [
    "SupabaseEventsConfig",
    "SupabaseEventsPublisher",
    "supabase_events_manifest",
]
