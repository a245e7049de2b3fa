"""GitHub issue-comment publisher module."""

from workspace_test_runner.publishers.github_issues.config import GitHubIssuesConfig
from workspace_test_runner.publishers.github_issues.manifest import (
    github_issues_manifest,
)
from workspace_test_runner.publishers.github_issues.publisher import (
    GitHubIssuesPublisher,
)

__all__ = ["GitHubIssuesConfig", "GitHubIssuesPublisher", "github_issues_manifest"]
