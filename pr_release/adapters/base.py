"""Abstract base for code-review hosts."""

from abc import ABC, abstractmethod
from typing import List

from pr_release.models import PullRequest


class CodeReviewHost(ABC):
    """Capability interface of a hosted code-review API (GitHub today).

    Read operations used by merged-PR resolution treat "not found" as an
    empty result; every other failure raises TransportError.
    """

    @abstractmethod
    def get_pull_request(self, repo: str, number: int, timeout: float | None = None) -> PullRequest | None:
        """Fetch PR by number; None if it does not exist."""
        ...

    @abstractmethod
    def list_pull_requests_for_commit(self, repo: str, sha: str, timeout: float | None = None) -> List[PullRequest]:
        """List PRs associated with a commit; empty if none or commit unknown."""
        ...

    @abstractmethod
    def list_closed_pull_requests(
        self,
        repo: str,
        page: int,
        per_page: int,
        timeout: float | None = None,
    ) -> List[PullRequest]:
        """One page of closed PRs, newest created first."""
        ...

    @abstractmethod
    def list_open_pull_requests(self, repo: str, head: str, base: str) -> List[PullRequest]:
        """Open PRs filtered by head ("owner:branch") and base branch."""
        ...

    @abstractmethod
    def create_pr(self, repo: str, title: str, body: str, head: str, base: str) -> PullRequest:
        """Create a pull request."""
        ...

    @abstractmethod
    def update_pr(self, repo: str, number: int, title: str, body: str) -> PullRequest:
        """Edit title and body of a pull request."""
        ...

    def request_reviewers(self, repo: str, number: int, reviewers: List[str]) -> PullRequest:
        """Request reviews from users. Override if supported."""
        raise NotImplementedError("request_reviewers")

    def add_labels(self, repo: str, number: int, labels: List[str]) -> List[str]:
        """Add labels to a PR, return the resulting label names. Override if supported."""
        raise NotImplementedError("add_labels")
