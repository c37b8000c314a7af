"""Tests for pr_release.services.release_pr (create or update the release PR)."""

from pr_release.models import PullRequest
from pr_release.services.release_pr import default_title, find_release_pr, publish_release_pr
from tests.fakes import FakeHost, make_pr

REPO = "owner/repo"


def _open_release_pr(number: int = 50) -> PullRequest:
    return PullRequest(number=number, title="old", head_branch="develop", base_branch="main", state="open")


def test_default_title() -> None:
    assert default_title("develop", "main") == "Merge to main from develop"


def test_find_release_pr_matches_head_and_base() -> None:
    host = FakeHost()
    host.open_prs = [
        PullRequest(number=1, head_branch="other", base_branch="main"),
        _open_release_pr(),
    ]
    pr = find_release_pr(host, REPO, "develop", "main")
    assert pr is not None and pr.number == 50
    assert host.calls_named("list_open_pull_requests")[0][2:] == ("owner:develop", "main")


def test_find_release_pr_ignores_merged() -> None:
    host = FakeHost()
    merged = make_pr(51)
    merged.head_branch = "develop"
    merged.base_branch = "main"
    host.open_prs = [merged]
    assert find_release_pr(host, REPO, "develop", "main") is None


def test_publish_updates_existing() -> None:
    host = FakeHost()
    host.open_prs = [_open_release_pr()]
    pr = publish_release_pr(host, REPO, "Title", "Body", "develop", "main")
    assert pr.number == 50
    assert host.calls_named("update_pr") == [("update_pr", REPO, 50, "Title", "Body")]
    assert host.calls_named("create_pr") == []


def test_publish_creates_and_decorates() -> None:
    host = FakeHost()
    pr = publish_release_pr(
        host,
        REPO,
        "Title",
        "Body",
        "develop",
        "main",
        reviewers=["alice"],
        labels=["release"],
    )
    assert host.calls_named("create_pr") == [("create_pr", REPO, "Title", "Body", "owner:develop", "main")]
    assert host.calls_named("request_reviewers") == [("request_reviewers", REPO, pr.number, ("alice",))]
    assert host.calls_named("add_labels") == [("add_labels", REPO, pr.number, ("release",))]


def test_publish_without_reviewers_or_labels() -> None:
    host = FakeHost()
    publish_release_pr(host, REPO, "Title", "Body", "develop", "main", reviewers=[], labels=None)
    assert host.calls_named("request_reviewers") == []
    assert host.calls_named("add_labels") == []
