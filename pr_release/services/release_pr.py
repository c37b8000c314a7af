"""Create or update the release pull request, then attach reviewers and labels."""

import logging
from typing import List

from pr_release.adapters.base import CodeReviewHost
from pr_release.models import PullRequest

LOG = logging.getLogger("pr_release.services.release_pr")


def default_title(develop_branch: str, release_branch: str) -> str:
    return f"Merge to {release_branch} from {develop_branch}"


def find_release_pr(host: CodeReviewHost, repo: str, develop_branch: str, release_branch: str) -> PullRequest | None:
    """Return the open, unmerged PR from develop_branch into release_branch, if any."""
    owner = repo.split("/", 1)[0]
    prs = host.list_open_pull_requests(repo, head=f"{owner}:{develop_branch}", base=release_branch)
    for pr in prs:
        if pr.head_branch == develop_branch and pr.base_branch == release_branch and not pr.is_merged:
            return pr
    return None


def publish_release_pr(
    host: CodeReviewHost,
    repo: str,
    title: str,
    body: str,
    develop_branch: str,
    release_branch: str,
    reviewers: List[str] | None = None,
    labels: List[str] | None = None,
) -> PullRequest:
    """Edit the existing release PR or open a new one; then request reviewers and add labels."""
    existing = find_release_pr(host, repo, develop_branch, release_branch)
    if existing is not None:
        pr = host.update_pr(repo, existing.number, title=title, body=body)
        LOG.info("Updated release PR #%d", pr.number)
    else:
        owner = repo.split("/", 1)[0]
        pr = host.create_pr(repo, title=title, body=body, head=f"{owner}:{develop_branch}", base=release_branch)
        LOG.info("Created release PR #%d", pr.number)

    if reviewers:
        host.request_reviewers(repo, pr.number, list(reviewers))
        LOG.info("Requested reviews on #%d from %s", pr.number, ", ".join(reviewers))
    if labels:
        host.add_labels(repo, pr.number, list(labels))
        LOG.info("Labeled #%d with %s", pr.number, ", ".join(labels))
    return pr
