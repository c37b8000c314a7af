"""Merged pull request resolution.

Finds the pull requests merged into a develop branch that have not reached
the release branch yet, reconciling two sources of truth:

1. the local commit graph, walked from the develop tip back to the parents
   of the release tip, which yields candidate commits;
2. the remote's pull-request-head refs (``refs/pull/<N>/head``), which turn
   candidate commits into PR numbers without any API call.

Candidates no ref points at fall back to the hosted API: first a bounded
listing of closed PRs matched on merge commit SHA, then one "PRs containing
this commit" lookup per remaining commit. The result is merged-only,
unique by number, and sorted by number descending.
"""

import logging
import threading
from typing import Iterable, List

from pr_release.models import PullRequest
from pr_release.services.fetcher import PullRequestFetcher
from pr_release.services.git.graph import CommitGraph
from pr_release.services.git.refs import ReferenceLister, pull_request_refs
from pr_release.services.task_group import Deadline, TaskGroup

LOG = logging.getLogger("pr_release.services.resolver")

DEFAULT_CLOSED_PAGE_BUDGET = 3


class PullRequestAccumulator:
    """Insertion-ordered PR collection, safe to add to from several threads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: List[PullRequest] = []

    def add(self, prs: Iterable[PullRequest]) -> None:
        prs = list(prs)
        with self._lock:
            self._items.extend(prs)

    def snapshot(self) -> List[PullRequest]:
        with self._lock:
            return list(self._items)


def finalize(prs: Iterable[PullRequest]) -> List[PullRequest]:
    """Keep merged PRs, first occurrence per number, sorted by number descending."""
    unique: dict[int, PullRequest] = {}
    for pr in prs:
        if not pr.is_merged:
            LOG.debug("Dropping PR #%d: not merged", pr.number)
            continue
        if pr.number not in unique:
            unique[pr.number] = pr
    return sorted(unique.values(), key=lambda pr: pr.number, reverse=True)


class MergeResolver:
    """Resolves merged-but-unreleased PRs between two branches. Stateless per call."""

    def __init__(
        self,
        graph: CommitGraph,
        lister: ReferenceLister,
        fetcher: PullRequestFetcher,
        closed_page_budget: int = DEFAULT_CLOSED_PAGE_BUDGET,
        timeout: float | None = None,
    ) -> None:
        self._graph = graph
        self._lister = lister
        self._fetcher = fetcher
        self._closed_page_budget = closed_page_budget
        self._timeout = timeout

    def get_merged_prs(
        self,
        develop_branch: str,
        release_branch: str,
        timeout: float | None = None,
    ) -> List[PullRequest]:
        """Return PRs merged into develop_branch and absent from release_branch.

        Raises BranchNotFoundError, TransportError, InconsistentGraphError or
        ResolutionTimeoutError; never returns a partial list.
        """
        deadline = Deadline(timeout if timeout is not None else self._timeout)
        fetcher = self._fetcher.with_deadline(deadline)
        graph = self._graph.with_deadline(deadline)

        release_tip = graph.resolve_branch(release_branch)
        develop_tip = graph.resolve_branch(develop_branch)
        LOG.debug("develop %s=%s, release %s=%s", develop_branch, develop_tip, release_branch, release_tip)
        if develop_tip == release_tip:
            LOG.info("%s and %s point at the same commit; nothing to release", develop_branch, release_branch)
            return []

        candidates = self._collect_candidates(graph, develop_tip, release_tip, deadline)
        if not candidates:
            return []

        lister = self._lister.with_deadline(deadline)
        # one-task group so a remote that hangs cannot outlive the deadline
        refs_group = TaskGroup("list-refs", max_workers=1, deadline=deadline)
        (refs,) = refs_group.map(lambda _: lister.list_references(), [None])
        by_ref = pull_request_refs(refs)
        numbers: List[int] = []
        unresolved: List[str] = []
        for commit_hash in candidates:
            found = by_ref.get(commit_hash)
            if not found:
                unresolved.append(commit_hash)
                continue
            for number in found:
                if number not in numbers:
                    numbers.append(number)
        LOG.debug(
            "%d candidates: %d PR numbers via refs, %d commits unresolved",
            len(candidates),
            len(numbers),
            len(unresolved),
        )

        prs = fetcher.fetch_by_number(numbers)
        fallback = self._resolve_unmatched(fetcher, unresolved)

        merged = [
            pr
            for pr in finalize(prs + fallback)
            if not (pr.merge_commit_sha and graph.is_ancestor(pr.merge_commit_sha, release_tip))
        ]
        deadline.check()
        LOG.info("Found %d merged PRs in %s not yet in %s", len(merged), develop_branch, release_branch)
        return merged

    def _collect_candidates(
        self,
        graph: CommitGraph,
        develop_tip: str,
        release_tip: str,
        deadline: Deadline,
    ) -> List[str]:
        """Merge bases of every commit between the develop tip and the release boundary."""
        release_commit = graph.get_commit(release_tip)
        stop_set = set(release_commit.parents) | {release_tip}

        candidates: dict[str, None] = {}
        visited = 0
        for commit in graph.walk_ancestry(develop_tip, stop_set):
            deadline.check()
            visited += 1
            for base in graph.merge_base(develop_tip, commit.hash):
                LOG.debug("Candidate %s from %s %r", base, commit.hash, commit.subject)
                candidates[base] = None
        LOG.debug("Walked %d commits, %d candidates", visited, len(candidates))

        # criss-cross histories can surface commits the release branch already has
        return [c for c in candidates if not graph.is_ancestor(c, release_tip)]

    def _resolve_unmatched(self, fetcher: PullRequestFetcher, shas: List[str]) -> List[PullRequest]:
        """Resolve commits with no PR-head ref: closed-PR listing first, then per-commit lookup."""
        if not shas:
            return []
        accumulator = PullRequestAccumulator()
        closed = fetcher.list_closed(self._closed_page_budget)
        by_merge_sha = {pr.merge_commit_sha: pr for pr in closed if pr.merge_commit_sha and pr.is_merged}
        remaining: List[str] = []
        for sha in shas:
            pr = by_merge_sha.get(sha)
            if pr is not None:
                accumulator.add([pr])
            else:
                remaining.append(sha)
        LOG.debug("%d commits matched closed PRs, %d need commit lookup", len(shas) - len(remaining), len(remaining))

        def lookup(sha: str) -> None:
            accumulator.add(fetcher.fetch_by_commit_sha(sha))

        TaskGroup("fetch-by-sha", max_workers=fetcher.max_workers, deadline=fetcher.deadline).map(lookup, remaining)
        return accumulator.snapshot()


def get_merged_prs(
    graph: CommitGraph,
    lister: ReferenceLister,
    fetcher: PullRequestFetcher,
    develop_branch: str,
    release_branch: str,
    timeout: float | None = None,
    closed_page_budget: int = DEFAULT_CLOSED_PAGE_BUDGET,
) -> List[PullRequest]:
    """One-shot merged PR resolution (see MergeResolver.get_merged_prs)."""
    resolver = MergeResolver(graph, lister, fetcher, closed_page_budget=closed_page_budget)
    return resolver.get_merged_prs(develop_branch, release_branch, timeout=timeout)
