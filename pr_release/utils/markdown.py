"""Render the release pull request body from merged PRs."""

from pathlib import Path
from string import Template
from typing import Any, Dict, Iterable

from pr_release.errors import ConfigError
from pr_release.models import PullRequest

DEFAULT_TEMPLATE = "# Releases\n$pull_requests\n"
DEFAULT_ITEM_FORMAT = "- [ ] #{number} @{login}"


def _item_fields(pr: PullRequest) -> Dict[str, Any]:
    return {
        "number": pr.number,
        "title": pr.title,
        "login": pr.user.login,
        "user_url": pr.user.html_url,
        "avatar": pr.user.avatar_url,
        "url": pr.html_url or pr.url or "",
        "merged_at": pr.merged_at.isoformat() if pr.merged_at else "",
        "merge_commit_sha": pr.merge_commit_sha or "",
    }


def render_pr_body(
    prs: Iterable[PullRequest],
    develop_branch: str,
    release_branch: str,
    template: str = DEFAULT_TEMPLATE,
    item_format: str = DEFAULT_ITEM_FORMAT,
) -> str:
    """Render body text.

    ``template`` is a string.Template with $pull_requests, $develop_branch and
    $release_branch; each PR becomes one ``item_format`` line (str.format
    fields: number, title, login, user_url, avatar, url, merged_at,
    merge_commit_sha).
    """
    try:
        lines = [item_format.format(**_item_fields(pr)) for pr in prs]
    except (KeyError, IndexError, ValueError) as e:
        raise ConfigError(f"invalid item format {item_format!r}: {e}") from e
    try:
        return Template(template).substitute(
            pull_requests="\n".join(lines),
            develop_branch=develop_branch,
            release_branch=release_branch,
        )
    except (KeyError, ValueError) as e:
        raise ConfigError(f"invalid body template: {e}") from e


def load_template(path: Path | None) -> str:
    """Template text from file, or the default template when path is None."""
    if path is None:
        return DEFAULT_TEMPLATE
    try:
        return Path(path).read_text()
    except OSError as e:
        raise ConfigError(f"cannot read template {path}: {e}") from e
