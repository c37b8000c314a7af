"""pr-release entry point.

Collects the PRs merged into the develop branch but not yet into the release
branch, renders them into a body and creates or updates the release PR.
Usage: pr-release --from develop --to main [--dry-run].
"""

import argparse
import logging
import sys
from pathlib import Path

from pr_release import __version__
from pr_release.adapters.github import GitHubAdapter
from pr_release.config import AppConfig, load_config
from pr_release.errors import ConfigError, PrReleaseError
from pr_release.logging import PrReleaseLogging
from pr_release.models import PullRequest
from pr_release.services.fetcher import PullRequestFetcher
from pr_release.services.git import GitCommitGraph, GitReferenceLister, fetch_remote, parse_repository, remote_url
from pr_release.services.release_pr import default_title, publish_release_pr
from pr_release.services.resolver import MergeResolver
from pr_release.utils.markdown import DEFAULT_ITEM_FORMAT, load_template, render_pr_body

LOG = logging.getLogger("pr_release.main")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_USAGE = 2

# (config attribute, how the user sets it) for values that must be present
_REQUIRED = [
    ("token", "--token or environment variable:PR_RELEASE_TOKEN"),
    ("release_branch", "--release-branch or environment variable:PR_RELEASE_RELEASE_BRANCH"),
    ("develop_branch", "--develop-branch or environment variable:PR_RELEASE_DEVELOP_BRANCH"),
]


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="pr-release",
        description="Create or update a release pull request listing merged PRs",
    )
    parser.add_argument("--config", "-c", type=Path, default=Path("config.yaml"), help="Path to YAML config file")
    parser.add_argument("--dry-run", "-n", action="store_true", default=None, help="Print the body, do not create/update a PR")
    parser.add_argument("--token", help="Token for the GitHub API")
    parser.add_argument("--title", help="Title of the release PR")
    parser.add_argument("--release-branch", "--to", dest="release_branch", help="Branch to be released")
    parser.add_argument(
        "--develop-branch",
        "--from",
        dest="develop_branch",
        help="Branch that will be merged into the release branch",
    )
    parser.add_argument("--template", "-t", type=Path, help="Body template file (string.Template)")
    parser.add_argument("--label", "-l", dest="labels", action="append", help="Label for the release PR (repeatable)")
    parser.add_argument("--reviewer", "-r", dest="reviewers", action="append", help="Reviewer (repeatable)")
    parser.add_argument("--verbose", action="store_true", default=None, help="Output detailed logs")
    parser.add_argument("--version", "-v", action="store_true", help="Print version and exit")
    return parser.parse_args(argv)


def apply_args(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Return config with command-line values layered over file and env values."""
    overrides = {
        key: getattr(args, key)
        for key in (
            "dry_run",
            "token",
            "title",
            "release_branch",
            "develop_branch",
            "template",
            "labels",
            "reviewers",
            "verbose",
        )
        if getattr(args, key) not in (None, [])
    }
    if not overrides:
        return config
    return config.model_copy(update={"release": config.release.model_copy(update=overrides)})


def validate(config: AppConfig) -> list[str]:
    """Return one message per missing required value."""
    values = {
        "token": config.token_resolved,
        "release_branch": config.release.release_branch,
        "develop_branch": config.release.develop_branch,
    }
    return [f"{name} is required" for key, name in _REQUIRED if not values[key]]


def make_body(config: AppConfig, prs: list[PullRequest]) -> str:
    release = config.release
    return render_pr_body(
        prs,
        develop_branch=release.develop_branch or "",
        release_branch=release.release_branch or "",
        template=load_template(release.template),
        item_format=release.item_format or DEFAULT_ITEM_FORMAT,
    )


def run(config: AppConfig) -> int:
    """Resolve merged PRs, then print (dry run) or publish the release PR."""
    release = config.release
    repo_dir = config.git.repo_dir
    remote = config.git.remote
    repo = config.github.repository or parse_repository(remote_url(remote, repo_dir))
    LOG.debug(
        "repo=%s develop=%s release=%s dry_run=%s",
        repo,
        release.develop_branch,
        release.release_branch,
        release.dry_run,
    )

    if config.git.fetch:
        fetch_remote(remote, repo_dir)

    host = GitHubAdapter(token=config.token_resolved or "", api_url=config.github.api_url)
    fetcher = PullRequestFetcher(
        host,
        repo,
        max_workers=config.resolver.max_workers,
        per_page=config.resolver.per_page,
    )
    resolver = MergeResolver(
        GitCommitGraph(repo_dir, remote=remote),
        GitReferenceLister(repo_dir, remote=remote),
        fetcher,
        closed_page_budget=config.resolver.closed_page_budget,
        timeout=config.resolver.timeout_seconds,
    )
    prs = resolver.get_merged_prs(release.develop_branch, release.release_branch)
    body = make_body(config, prs)

    if release.dry_run:
        print(body)
        return EXIT_OK

    title = release.title or default_title(release.develop_branch, release.release_branch)
    pr = publish_release_pr(
        host,
        repo,
        title=title,
        body=body,
        develop_branch=release.develop_branch,
        release_branch=release.release_branch,
        reviewers=release.reviewers,
        labels=release.labels,
    )
    if pr.html_url:
        print(pr.html_url)
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """Entry point: parse args, load config, run."""
    args = parse_args(argv)
    if args.version:
        print(f"pr-release {__version__}")
        return EXIT_OK

    try:
        config = apply_args(load_config(args.config), args)
        missing = validate(config)
    except ConfigError as e:
        print(f"configuration error: {e}", file=sys.stderr)
        return EXIT_USAGE

    PrReleaseLogging(config.logging, verbose=config.release.verbose).setup()
    if missing:
        print(", ".join(missing), file=sys.stderr)
        return EXIT_USAGE

    try:
        return run(config)
    except KeyboardInterrupt:
        return EXIT_ERROR
    except PrReleaseError as e:
        LOG.error("%s", e)
        LOG.debug("Failure details", exc_info=True)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
