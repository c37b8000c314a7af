"""Remote setup: fetch and owner/repo discovery from the remote URL."""

import logging
import re
from pathlib import Path

from pr_release.errors import ConfigError, TransportError
from pr_release.services.git._run import GitRunnerError, _run_git

LOG = logging.getLogger("pr_release.services.git.remote")

_GITHUB_URL_RE = re.compile(
    r"^(?:https?://(?:[^@/]+@)?github\.com/|ssh://git@github\.com/|git@github\.com:)"
    r"(?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?$"
)


def parse_repository(url: str) -> str:
    """Return "owner/repo" from a GitHub remote URL (https or ssh form)."""
    m = _GITHUB_URL_RE.match(url.strip())
    if not m:
        raise ConfigError(f"cannot parse GitHub repository from remote URL: {url!r}")
    return f"{m.group('owner')}/{m.group('repo')}"


def remote_url(remote: str = "origin", repo_dir: Path | None = None) -> str:
    """Return the first URL configured for the remote."""
    cwd = Path(repo_dir) if repo_dir is not None else Path.cwd()
    try:
        out = _run_git(["remote", "get-url", remote], cwd=cwd, log=LOG)
    except GitRunnerError as e:
        raise ConfigError(f"no URL set for git remote {remote!r}: {e}") from e
    url = out.strip().splitlines()[0] if out.strip() else ""
    if not url:
        raise ConfigError(f"no URL set for git remote {remote!r}")
    return url


def fetch_remote(
    remote: str = "origin",
    repo_dir: Path | None = None,
    timeout: float | None = 300,
) -> None:
    """Fetch remote-tracking refs; an up-to-date remote is success."""
    cwd = Path(repo_dir) if repo_dir is not None else Path.cwd()
    try:
        _run_git(["fetch", "--prune", remote], cwd=cwd, log=LOG, timeout=timeout)
    except GitRunnerError as e:
        raise TransportError(f"git fetch {remote} failed: {e}") from e
    LOG.info("Fetched %s", remote)
