"""GitHub issue-comment publisher implementation."""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

import aiohttp

from workspace_test_runner.aggregator import aggregate
from workspace_test_runner.models.summary import RunSummary
from workspace_test_runner.publishers.base import PublishContext, ResultPublisher
from workspace_test_runner.publishers.github_issues.config import GitHubIssuesConfig
from workspace_test_runner.publishers.github_issues.models import IssueComment
from workspace_test_runner.reporting import render_markdown

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class GitHubIssuesPublisher(ResultPublisher):
    """Posts markdown test reports as GitHub issue comments.

    The run summary goes to the requested issue. Projects that declare their
    own issue additionally get a comment with just their result.
    """

    config: GitHubIssuesConfig
    session: aiohttp.ClientSession = field(repr=False)

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: GitHubIssuesConfig
    ) -> AsyncGenerator["GitHubIssuesPublisher", None]:
        """Create publisher with managed session lifecycle."""
        headers = {
            "Authorization": f"Bearer {config.token.get_secret_value()}",
            "Accept": "application/vnd.github+json",
        }
        async with aiohttp.ClientSession(
            base_url=config.api_base_url,
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=config.timeout),
        ) as session:
            yield cls(config=config, session=session)

    async def publish_run(self, summary: RunSummary, context: PublishContext) -> None:
        """Comment the run summary and any per-project summaries.

        Every comment is posted even when another one fails.

        Raises:
            RuntimeError: If any comment could not be posted

        """
        issue = context.issue or self.config.issue
        comments: list[tuple[int, str]] = []
        if issue is None:
            log.info("No issue configured, skipping run summary comment")
        else:
            comments.append((issue, render_markdown(summary, self.config.title)))

        for entry in summary.entries:
            if entry.target.issue is None or entry.target.issue == issue:
                continue
            single = aggregate([entry.target], [entry.outcome])
            title = f"{self.config.title}: {entry.target.name}"
            comments.append((entry.target.issue, render_markdown(single, title)))

        results = await asyncio.gather(
            *(self.post_comment(number, body) for number, body in comments),
            return_exceptions=True,
        )
        failed = 0
        for (number, _), result in zip(comments, results, strict=True):
            if isinstance(result, Exception):
                failed += 1
                log.error("Comment on issue #%d failed: %s", number, result)
            elif isinstance(result, BaseException):
                raise result
        if failed:
            raise RuntimeError(
                f"Failed to post {failed} of {len(comments)} issue comment(s)"
            )

    async def post_comment(self, issue: int, body: str) -> IssueComment:
        """Create a comment on an issue."""
        url = f"/repos/{self.config.owner}/{self.config.repo}/issues/{issue}/comments"
        log.info(
            "Posting test results to %s/%s#%d",
            self.config.owner,
            self.config.repo,
            issue,
        )

        async with self.session.post(url, json={"body": body}) as response:
            if response.status != 201:
                text = await response.text()
                raise RuntimeError(
                    f"Failed to post issue comment: {response.status} {text}"
                )
            data = await response.json()

        comment = IssueComment.model_validate(data)
        log.info("Posted comment %s", comment.html_url)
        return comment
