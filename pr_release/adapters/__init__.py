"""Code-review host adapters."""

from pr_release.adapters.base import CodeReviewHost
from pr_release.adapters.github import GitHubAdapter

__all__ = ["CodeReviewHost", "GitHubAdapter"]
