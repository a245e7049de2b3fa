"""Pydantic models for GitHub issues API responses."""

from pydantic import BaseModel


class IssueComment(BaseModel):
    """A comment created on an issue."""

    id: int
    html_url: str
