"""Pull request model as returned by the hosted code-review API."""

from datetime import datetime

from pydantic import BaseModel, Field


class User(BaseModel):
    """Pull request author."""

    login: str = ""
    html_url: str = ""
    avatar_url: str = ""


class PullRequest(BaseModel):
    """Pull request; merged_at is None until merged."""

    number: int
    title: str = ""
    body: str = ""
    user: User = Field(default_factory=User)
    state: str = "open"
    merged_at: datetime | None = None
    merge_commit_sha: str | None = None
    head_branch: str = ""
    base_branch: str = ""
    html_url: str | None = None
    url: str | None = None
    created_at: datetime | None = None

    @property
    def is_merged(self) -> bool:
        return self.merged_at is not None
