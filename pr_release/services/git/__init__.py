"""Git operations: commit graph, remote refs, fetch."""

from pr_release.services.git._run import GitRunnerError
from pr_release.services.git.graph import CommitGraph, GitCommitGraph
from pr_release.services.git.refs import (
    GitReferenceLister,
    ReferenceLister,
    extract_pr_number,
    parse_ls_remote,
    pull_request_refs,
)
from pr_release.services.git.remote import fetch_remote, parse_repository, remote_url

__all__ = [
    "CommitGraph",
    "GitCommitGraph",
    "GitReferenceLister",
    "GitRunnerError",
    "ReferenceLister",
    "extract_pr_number",
    "fetch_remote",
    "parse_ls_remote",
    "parse_repository",
    "pull_request_refs",
    "remote_url",
]
