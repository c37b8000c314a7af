"""Remote reference listing and pull-request-head ref matching."""

import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable

from pr_release.errors import ResolutionTimeoutError, TransportError
from pr_release.models import RemoteReference
from pr_release.services.git._run import GitRunnerError, _run_git
from pr_release.services.task_group import Deadline

LOG = logging.getLogger("pr_release.services.git.refs")

# GitHub advertises every pull request's source tip as refs/pull/<N>/head
PULL_REQUEST_REF_RE = re.compile(r"^refs/pull/(\d+)/head$")

LS_REMOTE_TIMEOUT = 120.0


def extract_pr_number(ref_name: str) -> int | None:
    """Return the PR number encoded in a pull-request-head ref name, else None.

    Branches, tags and refs/pull/<N>/merge are expected not to match.
    """
    m = PULL_REQUEST_REF_RE.match(ref_name)
    if not m:
        return None
    return int(m.group(1))


def pull_request_refs(refs: Iterable[RemoteReference]) -> dict[str, list[int]]:
    """Map commit hash -> PR numbers whose head ref points at it."""
    lookup: dict[str, list[int]] = {}
    for ref in refs:
        number = extract_pr_number(ref.name)
        if number is None:
            continue
        numbers = lookup.setdefault(ref.hash, [])
        if number not in numbers:
            numbers.append(number)
    return lookup


class ReferenceLister(ABC):
    """Lists every reference advertised by the remote."""

    @abstractmethod
    def list_references(self) -> list[RemoteReference]:
        """Return all remote refs, including peeled tags."""
        ...

    def with_deadline(self, deadline: Deadline) -> "ReferenceLister":
        """Return a lister bounded by deadline; listers that never block return themselves."""
        return self


class GitReferenceLister(ReferenceLister):
    """ReferenceLister using `git ls-remote` (one round trip, no pagination)."""

    def __init__(
        self,
        repo_dir: Path | None = None,
        remote: str = "origin",
        timeout: float = LS_REMOTE_TIMEOUT,
        deadline: Deadline | None = None,
    ) -> None:
        self._cwd = Path(repo_dir) if repo_dir is not None else Path.cwd()
        self._remote = remote
        self._timeout = timeout
        self._deadline = deadline or Deadline()

    def with_deadline(self, deadline: Deadline) -> "GitReferenceLister":
        return GitReferenceLister(self._cwd, remote=self._remote, timeout=self._timeout, deadline=deadline)

    def list_references(self) -> list[RemoteReference]:
        self._deadline.check()
        try:
            out = _run_git(
                ["ls-remote", self._remote],
                cwd=self._cwd,
                log=LOG,
                timeout=self._deadline.clamp(self._timeout),
            )
        except GitRunnerError as e:
            if self._deadline.expired():
                raise ResolutionTimeoutError(
                    f"git ls-remote {self._remote}: deadline of {self._deadline.timeout}s exceeded"
                ) from e
            raise TransportError(f"git ls-remote {self._remote} failed: {e}") from e
        refs = parse_ls_remote(out)
        LOG.debug("Listed %d refs from %s", len(refs), self._remote)
        return refs


def parse_ls_remote(output: str) -> list[RemoteReference]:
    """Parse `git ls-remote` output (``<hash>\\t<name>`` per line)."""
    refs: list[RemoteReference] = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        parts = line.split(None, 1)
        if len(parts) != 2:
            LOG.debug("Skipping malformed ls-remote line: %r", line)
            continue
        commit_hash, name = parts
        refs.append(RemoteReference(name=name.strip(), hash=commit_hash))
    return refs
