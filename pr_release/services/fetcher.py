"""Pull request fetcher: concurrent lookups by number, by commit, and closed listing."""

import logging
from typing import Iterable, List

from pr_release.adapters.base import CodeReviewHost
from pr_release.models import PullRequest
from pr_release.services.task_group import Deadline, TaskGroup

LOG = logging.getLogger("pr_release.services.fetcher")

DEFAULT_MAX_WORKERS = 8
DEFAULT_PER_PAGE = 100
# Per-request ceiling; the resolution deadline may shorten it
REQUEST_TIMEOUT = 30.0


class PullRequestFetcher:
    """Fetches pull requests of one repository with bounded parallelism.

    Each public method is one task group: the first transport error cancels
    the tasks not yet started and is re-raised; "not found" is never an error.
    """

    def __init__(
        self,
        host: CodeReviewHost,
        repo: str,
        max_workers: int = DEFAULT_MAX_WORKERS,
        per_page: int = DEFAULT_PER_PAGE,
        deadline: Deadline | None = None,
    ) -> None:
        self._host = host
        self._repo = repo
        self._max_workers = max_workers
        self._per_page = per_page
        self._deadline = deadline or Deadline()

    def with_deadline(self, deadline: Deadline) -> "PullRequestFetcher":
        """Return a fetcher for the same host and repo bound to another deadline."""
        return PullRequestFetcher(
            self._host,
            self._repo,
            max_workers=self._max_workers,
            per_page=self._per_page,
            deadline=deadline,
        )

    @property
    def max_workers(self) -> int:
        return self._max_workers

    @property
    def deadline(self) -> Deadline:
        return self._deadline

    def _group(self, name: str) -> TaskGroup:
        return TaskGroup(name, max_workers=self._max_workers, deadline=self._deadline)

    def _timeout(self) -> float:
        return self._deadline.clamp(REQUEST_TIMEOUT)

    def fetch_by_number(self, numbers: Iterable[int]) -> List[PullRequest]:
        """Fetch each PR number; numbers that are not found are left out."""
        numbers = list(numbers)

        def fetch(number: int) -> PullRequest | None:
            pr = self._host.get_pull_request(self._repo, number, timeout=self._timeout())
            if pr is None:
                LOG.debug("PR #%d not found", number)
            return pr

        results = self._group("fetch-by-number").map(fetch, numbers)
        return [pr for pr in results if pr is not None]

    def fetch_by_commit_sha(self, sha: str) -> List[PullRequest]:
        """Merged PRs containing the commit; empty when there are none."""
        prs = self._host.list_pull_requests_for_commit(self._repo, sha, timeout=self._timeout())
        merged = [pr for pr in prs if pr.is_merged]
        LOG.debug("Commit %s: %d PRs, %d merged", sha, len(prs), len(merged))
        return merged

    def list_closed(self, page_budget: int) -> List[PullRequest]:
        """Closed PRs (newest created first) from at most page_budget pages.

        Pages are fetched concurrently; anything after the first short page
        is discarded so a concurrent close cannot splice pages out of order.
        """
        if page_budget <= 0:
            return []

        def fetch_page(page: int) -> List[PullRequest]:
            return self._host.list_closed_pull_requests(
                self._repo, page=page, per_page=self._per_page, timeout=self._timeout()
            )

        pages = self._group("list-closed").map(fetch_page, range(1, page_budget + 1))
        prs: List[PullRequest] = []
        for page in pages:
            prs.extend(page)
            if len(page) < self._per_page:
                break
        LOG.debug("Listed %d closed PRs from up to %d pages", len(prs), page_budget)
        return prs
