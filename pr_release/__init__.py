"""pr-release: open or update a release pull request listing merged PRs."""

__version__ = "0.3.0"
