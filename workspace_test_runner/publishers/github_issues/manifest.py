"""GitHub issue-comment publisher manifest."""

from workspace_test_runner.publishers.github_issues.config import GitHubIssuesConfig
from workspace_test_runner.publishers.github_issues.publisher import (
    GitHubIssuesPublisher,
)
from workspace_test_runner.publishers.manifest import PublisherManifest

github_issues_manifest = PublisherManifest(
    config_cls=GitHubIssuesConfig,
    publisher_factory=GitHubIssuesPublisher.from_config,
    env_defaults={"token": "GITHUB_TOKEN"},
)
