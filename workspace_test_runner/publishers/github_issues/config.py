"""Configuration for the GitHub issue-comment publisher."""

from pydantic import BaseModel, Field, SecretStr


class GitHubIssuesConfig(BaseModel):
    """Configuration for the GitHub issue-comment publisher.

    ``issue`` is the default issue for run summaries; ``--issue`` on the
    command line takes precedence.
    """

    token: SecretStr
    owner: str
    repo: str
    issue: int | None = Field(default=None, gt=0)
    title: str = "Test Results"
    api_base_url: str = "https://api.github.com"
    timeout: float = Field(default=30.0, gt=0, description="Request timeout")
