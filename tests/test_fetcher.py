"""Tests for pr_release.services.fetcher (PullRequestFetcher against a fake host)."""

import pytest

from pr_release.errors import TransportError
from pr_release.services.fetcher import PullRequestFetcher
from tests.fakes import FakeHost, make_pr

REPO = "owner/repo"


@pytest.fixture
def host() -> FakeHost:
    h = FakeHost()
    for n in (1, 2, 3):
        h.prs[n] = make_pr(n, merge_commit_sha=f"sha{n}")
    return h


class TestFetchByNumber:
    def test_returns_found_prs(self, host: FakeHost) -> None:
        prs = PullRequestFetcher(host, REPO).fetch_by_number([3, 1, 2])
        assert [pr.number for pr in prs] == [3, 1, 2]

    def test_not_found_is_omitted(self, host: FakeHost) -> None:
        """A 404 number leaves no slot in the result and raises nothing."""
        prs = PullRequestFetcher(host, REPO).fetch_by_number([1, 404, 2])
        assert [pr.number for pr in prs] == [1, 2]

    def test_error_fails_batch(self, host: FakeHost) -> None:
        host.errors[2] = TransportError("401: Bad credentials", status_code=401)
        with pytest.raises(TransportError) as exc_info:
            PullRequestFetcher(host, REPO).fetch_by_number([1, 2, 3])
        assert exc_info.value.status_code == 401

    def test_empty(self, host: FakeHost) -> None:
        assert PullRequestFetcher(host, REPO).fetch_by_number([]) == []
        assert host.calls == []


class TestFetchByCommitSha:
    def test_keeps_merged_only(self, host: FakeHost) -> None:
        host.prs[4] = make_pr(4, merged=False)
        host.by_commit["abc"] = [1, 4]
        prs = PullRequestFetcher(host, REPO).fetch_by_commit_sha("abc")
        assert [pr.number for pr in prs] == [1]

    def test_zero_results(self, host: FakeHost) -> None:
        assert PullRequestFetcher(host, REPO).fetch_by_commit_sha("unknown") == []


class TestListClosed:
    def test_stops_at_short_page(self, host: FakeHost) -> None:
        host.closed = [make_pr(n) for n in range(25, 0, -1)]
        prs = PullRequestFetcher(host, REPO, per_page=10).list_closed(page_budget=5)
        assert [pr.number for pr in prs] == list(range(25, 0, -1))

    def test_page_budget_bounds_requests(self, host: FakeHost) -> None:
        host.closed = [make_pr(n) for n in range(100, 0, -1)]
        prs = PullRequestFetcher(host, REPO, per_page=10).list_closed(page_budget=2)
        assert len(prs) == 20
        pages = sorted(c[2] for c in host.calls_named("list_closed_pull_requests"))
        assert pages == [1, 2]

    def test_zero_budget(self, host: FakeHost) -> None:
        assert PullRequestFetcher(host, REPO).list_closed(0) == []
        assert host.calls == []
