"""Tests for pr_release.services.resolver (in-memory graph, refs and host)."""

import time

import pytest

from pr_release.errors import BranchNotFoundError, ResolutionTimeoutError, TransportError
from pr_release.services.fetcher import PullRequestFetcher
from pr_release.services.resolver import MergeResolver, PullRequestAccumulator, finalize, get_merged_prs
from tests.fakes import FakeHost, FakeReferenceLister, InMemoryCommitGraph, make_pr

REPO = "owner/repo"


def _resolver(graph, lister, host, **kwargs) -> MergeResolver:
    fetcher = PullRequestFetcher(host, REPO, max_workers=4, per_page=kwargs.pop("per_page", 100))
    return MergeResolver(graph, lister, fetcher, **kwargs)


@pytest.fixture
def release_scenario():
    """develop is three merges ahead of main.

    a0 ── m1                               (main)
      └── f1 ── d1 ── f2 ── d2 ── d3       (develop)
    d1 merges PR #42 (head f1, ref still advertised), d2 merges PR #43
    (head f2, ref deleted), d3 is a direct commit with no PR.
    """
    graph = InMemoryCommitGraph()
    graph.add("a0")
    graph.add("m1", "a0")
    graph.add("f1", "a0", subject="feat: pr42")
    graph.add("d1", "a0", "f1", subject="Merge pull request #42")
    graph.add("f2", "d1", subject="feat: pr43")
    graph.add("d2", "d1", "f2", subject="Merge pull request #43")
    graph.add("d3", "d2", subject="chore: direct commit")
    graph.set_branch("main", "m1")
    graph.set_branch("develop", "d3")

    lister = FakeReferenceLister(
        {
            "HEAD": "d3",
            "refs/heads/develop": "d3",
            "refs/heads/main": "m1",
            "refs/pull/42/head": "f1",
            "refs/tags/v1.0.0": "a0",
        }
    )

    host = FakeHost()
    host.prs[42] = make_pr(42, merge_commit_sha="d1")
    host.prs[43] = make_pr(43, merge_commit_sha="d2")
    host.by_commit = {"f1": [42], "d1": [42], "f2": [43], "d2": [43]}
    return graph, lister, host


class TestMergeResolver:
    """MergeResolver.get_merged_prs end to end against fakes."""

    def test_recovers_prs_via_ref_and_commit_fallback(self, release_scenario) -> None:
        """PR #42 comes from its head ref, #43 from the commit lookup; the direct commit yields nothing."""
        graph, lister, host = release_scenario
        prs = _resolver(graph, lister, host).get_merged_prs("develop", "main")

        assert [pr.number for pr in prs] == [43, 42]
        assert ("get_pull_request", REPO, 42) in host.calls
        looked_up = {c[2] for c in host.calls_named("list_pull_requests_for_commit")}
        assert "f1" not in looked_up
        assert {"d3", "d2", "f2", "d1"} <= looked_up

    def test_closed_listing_satisfies_fallback_before_commit_lookup(self, release_scenario) -> None:
        """A merge commit found in the closed-PR listing is not looked up individually."""
        graph, lister, host = release_scenario
        host.closed = [make_pr(43, merge_commit_sha="d2"), make_pr(41, merge_commit_sha="zz")]

        prs = _resolver(graph, lister, host).get_merged_prs("develop", "main")

        assert [pr.number for pr in prs] == [43, 42]
        looked_up = {c[2] for c in host.calls_named("list_pull_requests_for_commit")}
        assert "d2" not in looked_up
        assert len(host.calls_named("list_closed_pull_requests")) == 3

    def test_duplicate_cause_yields_pr_once(self, release_scenario) -> None:
        """PR #42 is reachable via its ref and via the merge commit lookup; it appears once."""
        graph, lister, host = release_scenario
        prs = _resolver(graph, lister, host).get_merged_prs("develop", "main")

        assert [pr.number for pr in prs].count(42) == 1

    def test_identical_tips_return_empty(self, release_scenario) -> None:
        graph, lister, host = release_scenario
        graph.set_branch("main", "d3")

        assert _resolver(graph, lister, host).get_merged_prs("develop", "main") == []
        assert host.calls == []
        assert lister.calls == 0

    def test_missing_branch_raises(self, release_scenario) -> None:
        graph, lister, host = release_scenario
        with pytest.raises(BranchNotFoundError, match="origin/nope"):
            _resolver(graph, lister, host).get_merged_prs("nope", "main")

    def test_unmerged_prs_are_dropped(self, release_scenario) -> None:
        """A PR that reads as not merged at fetch time is left out."""
        graph, lister, host = release_scenario
        host.prs[42] = make_pr(42, merged=False)
        host.by_commit = {"f2": [43], "d2": [43]}

        prs = _resolver(graph, lister, host).get_merged_prs("develop", "main")

        assert [pr.number for pr in prs] == [43]
        assert all(pr.merged_at is not None for pr in prs)

    def test_pr_already_in_release_is_dropped(self, release_scenario) -> None:
        """A PR whose merge commit is an ancestor of the release tip is not announced again."""
        graph, lister, host = release_scenario
        host.prs[40] = make_pr(40, merge_commit_sha="a0")
        host.by_commit["d3"] = [40]

        prs = _resolver(graph, lister, host).get_merged_prs("develop", "main")

        assert 40 not in [pr.number for pr in prs]

    def test_not_found_number_is_skipped(self, release_scenario) -> None:
        """A PR-head ref whose PR 404s does not fail the call."""
        graph, lister, host = release_scenario
        lister.refs["refs/pull/99/head"] = "d3"

        prs = _resolver(graph, lister, host).get_merged_prs("develop", "main")

        assert [pr.number for pr in prs] == [43, 42]
        assert ("get_pull_request", REPO, 99) in host.calls

    def test_transport_error_fails_whole_call(self, release_scenario) -> None:
        graph, lister, host = release_scenario
        host.errors[42] = TransportError("500: boom", status_code=500)

        with pytest.raises(TransportError, match="boom"):
            _resolver(graph, lister, host).get_merged_prs("develop", "main")

    def test_deadline_expiry_raises_timeout(self, release_scenario) -> None:
        graph, lister, host = release_scenario
        host.delay = 0.5

        with pytest.raises(ResolutionTimeoutError):
            _resolver(graph, lister, host).get_merged_prs("develop", "main", timeout=0.05)

    def test_slow_reference_listing_is_bounded_by_deadline(self, release_scenario) -> None:
        """A remote that hangs in ls-remote fails at the deadline, not when the listing returns."""
        graph, lister, host = release_scenario
        lister.delay = 1.0

        started = time.monotonic()
        with pytest.raises(ResolutionTimeoutError):
            _resolver(graph, lister, host).get_merged_prs("develop", "main", timeout=0.1)
        assert time.monotonic() - started < 0.5
        assert host.calls == []

    def test_repeated_calls_are_identical(self, release_scenario) -> None:
        graph, lister, host = release_scenario
        resolver = _resolver(graph, lister, host)

        first = resolver.get_merged_prs("develop", "main")
        second = resolver.get_merged_prs("develop", "main")

        assert [pr.number for pr in first] == [pr.number for pr in second]

    def test_every_merge_base_is_a_candidate(self, release_scenario) -> None:
        """All merge bases returned for a visited commit are looked up."""
        graph, lister, host = release_scenario

        class CrissCrossGraph(InMemoryCommitGraph):
            def merge_base(self, commit_a, commit_b):
                bases = super().merge_base(commit_a, commit_b)
                if commit_b == "d3":
                    bases.append("x1")
                return bases

        criss = CrissCrossGraph()
        criss.commits = graph.commits
        criss.branches = graph.branches
        host.prs[44] = make_pr(44, merge_commit_sha="x1")
        host.by_commit["x1"] = [44]

        prs = _resolver(criss, lister, host).get_merged_prs("develop", "main")

        assert [pr.number for pr in prs] == [44, 43, 42]

    def test_module_level_get_merged_prs(self, release_scenario) -> None:
        graph, lister, host = release_scenario
        fetcher = PullRequestFetcher(host, REPO)

        prs = get_merged_prs(graph, lister, fetcher, "develop", "main")

        assert [pr.number for pr in prs] == [43, 42]


class TestWalkBoundary:
    """The ancestry walk stops at the release boundary."""

    def test_long_walk_stops_at_release_parents(self) -> None:
        """300 commits ahead of release: all are visited, nothing behind the boundary is loaded."""
        graph = InMemoryCommitGraph()
        graph.add("c0")
        for i in range(1, 401):
            graph.add(f"c{i}", f"c{i - 1}")
        graph.add("r1", "c100", subject="release")
        graph.set_branch("main", "r1")
        graph.set_branch("develop", "c400")

        walked = [c.hash for c in graph.walk_ancestry("c400", {"c100", "r1"})]

        assert len(walked) == 300
        assert walked[0] == "c400"
        assert walked[-1] == "c101"
        assert "c99" not in graph.loaded

    def test_resolver_candidates_limited_to_unreleased_range(self) -> None:
        graph = InMemoryCommitGraph()
        graph.add("c0")
        for i in range(1, 11):
            graph.add(f"c{i}", f"c{i - 1}")
        graph.add("r1", "c5")
        graph.set_branch("main", "r1")
        graph.set_branch("develop", "c10")
        host = FakeHost()

        prs = _resolver(graph, FakeReferenceLister(), host).get_merged_prs("develop", "main")

        assert prs == []
        looked_up = {c[2] for c in host.calls_named("list_pull_requests_for_commit")}
        assert looked_up == {"c6", "c7", "c8", "c9", "c10"}


class TestFinalize:
    """finalize: merged-only, unique by number, descending."""

    def test_unique_sorted_merged(self) -> None:
        prs = [make_pr(3), make_pr(10), make_pr(3, title="later copy"), make_pr(7, merged=False), make_pr(1)]

        result = finalize(prs)

        assert [pr.number for pr in result] == [10, 3, 1]
        assert result[1].title == "feat: pr3"

    def test_empty(self) -> None:
        assert finalize([]) == []


def test_accumulator_collects_in_order() -> None:
    acc = PullRequestAccumulator()
    acc.add([make_pr(1)])
    acc.add([make_pr(2), make_pr(3)])
    assert [pr.number for pr in acc.snapshot()] == [1, 2, 3]
