"""Data models for commits, references and pull requests (Pydantic)."""

from pr_release.models.commit import Commit, RemoteReference
from pr_release.models.pull_request import PullRequest, User

__all__ = ["Commit", "PullRequest", "RemoteReference", "User"]
