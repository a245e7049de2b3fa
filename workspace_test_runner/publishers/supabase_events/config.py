"""Configuration for the Supabase event-log publisher."""

from pydantic import BaseModel, Field, SecretStr


class SupabaseEventsConfig(BaseModel):
    """Configuration for the Supabase event-log publisher.

    Writes go through the PostgREST API with the service role key, so row
    level security does not apply.
    """

    url: str
    service_role_key: SecretStr
    table: str = "events"
    project: str | None = None
    timeout: float = Field(default=30.0, gt=0, description="Request timeout")
