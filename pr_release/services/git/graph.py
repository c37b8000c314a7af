"""Commit graph reader: branch resolution, merge bases, ancestry walk.

``CommitGraph`` is the collaborator boundary; ``walk_ancestry`` is shared by
every implementation so an in-memory graph walks exactly like a real clone.
``GitCommitGraph`` answers the primitive queries with the git CLI against a
local clone whose remote-tracking refs were fetched beforehand.
"""

import heapq
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import AbstractSet, Iterator

from pr_release.errors import BranchNotFoundError, InconsistentGraphError, ResolutionTimeoutError
from pr_release.models import Commit
from pr_release.services.git._run import GitRunnerError, _run_git
from pr_release.services.task_group import Deadline

LOG = logging.getLogger("pr_release.services.git.graph")

# NUL-separated fields of `git log --format`: hash, parents, committer time, subject
_COMMIT_FORMAT = "%H%x00%P%x00%ct%x00%s"

# Per-command ceiling; a resolution deadline may shorten it
GIT_TIMEOUT = 60.0


class CommitGraph(ABC):
    """Read-only view of a repository's commit graph."""

    @abstractmethod
    def resolve_branch(self, name: str) -> str:
        """Return the commit hash of the remote-tracking branch, or raise BranchNotFoundError."""
        ...

    @abstractmethod
    def get_commit(self, commit_hash: str) -> Commit:
        """Load one commit; raise InconsistentGraphError if it is not in the object store."""
        ...

    @abstractmethod
    def merge_base(self, commit_a: str, commit_b: str) -> list[str]:
        """Return all best common ancestors; empty for unrelated histories."""
        ...

    @abstractmethod
    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        """True if ancestor is reachable from descendant (a commit is its own ancestor)."""
        ...

    def with_deadline(self, deadline: Deadline) -> "CommitGraph":
        """Return a graph whose blocking queries stop at deadline.

        Graphs that never block return themselves.
        """
        return self

    def walk_ancestry(self, start: str, stop_set: AbstractSet[str]) -> Iterator[Commit]:
        """Yield commits reachable from start, newest committer time first.

        The walk ends the first time a commit in stop_set comes up; that
        commit is not yielded and nothing behind it is loaded.
        """
        first = self.get_commit(start)
        # heap entries: (-committer_time, hash, commit); hash breaks ties deterministically
        heap: list[tuple[int, str, Commit]] = [(-first.committer_time, first.hash, first)]
        seen = {first.hash}
        while heap:
            _, _, commit = heapq.heappop(heap)
            if commit.hash in stop_set:
                LOG.debug("Walk stopped at %s", commit.hash)
                return
            yield commit
            for parent_hash in commit.parents:
                if parent_hash in seen:
                    continue
                seen.add(parent_hash)
                parent = self.get_commit(parent_hash)
                heapq.heappush(heap, (-parent.committer_time, parent.hash, parent))


class GitCommitGraph(CommitGraph):
    """CommitGraph backed by the git CLI in a local clone."""

    def __init__(
        self,
        repo_dir: Path | None = None,
        remote: str = "origin",
        deadline: Deadline | None = None,
    ) -> None:
        self._cwd = Path(repo_dir) if repo_dir is not None else Path.cwd()
        self._remote = remote
        self._deadline = deadline or Deadline()
        self._commits: dict[str, Commit] = {}

    def with_deadline(self, deadline: Deadline) -> "GitCommitGraph":
        graph = GitCommitGraph(self._cwd, remote=self._remote, deadline=deadline)
        graph._commits = self._commits
        return graph

    def _git(self, args: list[str]) -> str:
        """Run git with the time left on the deadline as its timeout."""
        self._deadline.check()
        try:
            return _run_git(args, cwd=self._cwd, log=LOG, timeout=self._deadline.clamp(GIT_TIMEOUT))
        except GitRunnerError as e:
            if self._deadline.expired():
                raise ResolutionTimeoutError(
                    f"git {args[0]} interrupted: deadline of {self._deadline.timeout}s exceeded"
                ) from e
            raise

    def resolve_branch(self, name: str) -> str:
        revision = f"refs/remotes/{self._remote}/{name}^{{commit}}"
        try:
            out = self._git(["rev-parse", "--verify", "--quiet", revision])
        except GitRunnerError as e:
            raise BranchNotFoundError(name, self._remote) from e
        commit_hash = out.strip()
        if not commit_hash:
            raise BranchNotFoundError(name, self._remote)
        LOG.debug("Resolved branch=%s hash=%s", name, commit_hash)
        return commit_hash

    def get_commit(self, commit_hash: str) -> Commit:
        cached = self._commits.get(commit_hash)
        if cached is not None:
            return cached
        try:
            out = self._git(["log", "-1", f"--format={_COMMIT_FORMAT}", commit_hash, "--"])
        except GitRunnerError as e:
            raise InconsistentGraphError(f"cannot read commit {commit_hash}: {e}") from e
        commit = _parse_commit(out)
        self._commits[commit.hash] = commit
        return commit

    def merge_base(self, commit_a: str, commit_b: str) -> list[str]:
        try:
            out = self._git(["merge-base", "--all", commit_a, commit_b])
        except GitRunnerError as e:
            # exit 1 without output: no common ancestor
            if e.returncode == 1 and not e.stderr:
                return []
            raise InconsistentGraphError(f"merge-base {commit_a} {commit_b} failed: {e}") from e
        return [line.strip() for line in out.splitlines() if line.strip()]

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        try:
            self._git(["merge-base", "--is-ancestor", ancestor, descendant])
        except GitRunnerError as e:
            # exit 1: not an ancestor; other codes: unknown object (e.g. a merge commit never fetched)
            if e.returncode != 1:
                LOG.debug("is-ancestor %s %s: %s", ancestor, descendant, e)
            return False
        return True


def _parse_commit(output: str) -> Commit:
    line = output.strip("\n")
    parts = line.split("\x00", 3)
    if len(parts) < 3 or not parts[0]:
        raise InconsistentGraphError(f"unexpected git log output: {output!r}")
    commit_hash, parents, committer_time = parts[0], parts[1], parts[2]
    subject = parts[3] if len(parts) > 3 else ""
    try:
        timestamp = int(committer_time)
    except ValueError as e:
        raise InconsistentGraphError(f"bad committer time for {commit_hash}: {committer_time!r}") from e
    return Commit(
        hash=commit_hash,
        parents=tuple(parents.split()),
        committer_time=timestamp,
        subject=subject,
    )
