"""Configuration loading from YAML and environment.

The token is taken from the config, the environment (PR_RELEASE_TOKEN,
GITHUB_TOKEN) or a file named by PR_RELEASE_TOKEN_FILE (Docker secrets).
Never put real tokens in config files committed to the repo.
"""

import os
from pathlib import Path
from typing import Annotated, Any

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict, SettingsError

from pr_release.errors import ConfigError


def _read_secret(env_key: str, file_env_key: str) -> str | None:
    """Read secret from env var or from file path in env (e.g. Docker
    secrets)."""
    value = _current_env.get(env_key)
    if value:
        return value.strip()
    file_path = _current_env.get(file_env_key)
    if file_path:
        try:
            return Path(file_path).read_text().strip()
        except OSError as e:
            raise ConfigError(f"{file_env_key}: cannot read {file_path}: {e}") from e
    return None


# Injected by load_config so secrets and ${VAR} substitution read the same env
_current_env: dict[str, str] = {}


def _split_csv(value: Any) -> Any:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class ReleaseConfig(BaseSettings):
    """What to release: branches, PR title/body, reviewers and labels."""

    model_config = SettingsConfigDict(env_prefix="PR_RELEASE_", extra="ignore")

    token: str | None = Field(default=None, description="GitHub token; prefer env or secret file")
    develop_branch: str | None = Field(default=None, description="Branch merged into the release branch")
    release_branch: str | None = Field(default=None, description="Branch to be released")
    title: str | None = Field(default=None, description="Release PR title (default: Merge to <release> from <develop>)")
    template: Path | None = Field(default=None, description="Body template file (string.Template)")
    item_format: str | None = Field(default=None, description="Format of one PR line in the body")
    labels: Annotated[list[str], NoDecode] = Field(default_factory=list, description="Labels for the release PR")
    reviewers: Annotated[list[str], NoDecode] = Field(default_factory=list, description="Reviewers to request")
    dry_run: bool = Field(default=False, description="Print the body, do not create or edit the PR")
    verbose: bool = Field(default=False, description="Debug logging")

    @field_validator("labels", "reviewers", mode="before")
    @classmethod
    def _split_lists(cls, value: Any) -> Any:
        return _split_csv(value)


class GitHubConfig(BaseSettings):
    """GitHub API settings."""

    model_config = SettingsConfigDict(env_prefix="GITHUB_", extra="ignore")

    api_url: str = Field(default="https://api.github.com", description="API base URL")
    repository: str | None = Field(default=None, description="owner/repo; default parsed from the git remote URL")


class GitConfig(BaseSettings):
    """Local clone settings."""

    model_config = SettingsConfigDict(env_prefix="GIT_", extra="ignore")

    repo_dir: Path = Field(default=Path("."), description="Path of the local clone")
    remote: str = Field(default="origin", description="Remote whose branches and refs are compared")
    fetch: bool = Field(default=True, description="Fetch the remote before resolving")


class ResolverConfig(BaseSettings):
    """Merged PR resolution limits."""

    model_config = SettingsConfigDict(env_prefix="RESOLVER_", extra="ignore")

    max_workers: int = Field(default=8, ge=1, le=32, description="Concurrent API requests per fan-out")
    closed_page_budget: int = Field(default=3, ge=0, le=50, description="Pages of closed PRs to pre-fetch")
    per_page: int = Field(default=100, ge=1, le=100, description="Page size for closed PR listing")
    timeout_seconds: float = Field(default=300, gt=0, description="Deadline for the whole resolution")


class LoggingConfig(BaseSettings):
    """Logging settings."""

    model_config = SettingsConfigDict(env_prefix="LOGGING_", extra="ignore")

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )


class AppConfig(BaseSettings):
    """Root application config from YAML + env."""

    model_config = SettingsConfigDict(extra="ignore")

    release: ReleaseConfig = Field(default_factory=ReleaseConfig)
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    git: GitConfig = Field(default_factory=GitConfig)
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def token_resolved(self) -> str | None:
        """Resolve token from config, PR_RELEASE_TOKEN_FILE or GITHUB_TOKEN."""
        t = self.release.token
        if t and not t.startswith("${"):
            return t
        return _read_secret("GITHUB_TOKEN", "PR_RELEASE_TOKEN_FILE")


def _substitute_env(value: Any) -> Any:
    """Replace ${VAR} and $VAR in strings with os.environ."""
    if isinstance(value, str):
        if value.startswith("${") and value.endswith("}"):
            key = value[2:-1].strip()
            return _current_env.get(key, value)
        if value.startswith("$") and not value.startswith("${"):
            key = value[1:].strip()
            return _current_env.get(key, value)
        return value
    if isinstance(value, dict):
        return {k: _substitute_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_substitute_env(v) for v in value]
    return value


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load config from YAML file and environment.

    Values present in the YAML file win over PR_RELEASE_*, GITHUB_*, GIT_*,
    RESOLVER_* and LOGGING_* environment variables; the environment fills
    in everything the file leaves out. A missing file is not an error; a
    malformed file or a value that fails validation raises ConfigError.
    """
    global _current_env

    _current_env = dict(os.environ)

    path = config_path or Path("config.yaml")
    raw: dict[str, Any] = {}
    if path.is_file():
        try:
            raw = yaml.safe_load(path.read_text()) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"cannot load {path}: {e}") from e
        if not isinstance(raw, dict):
            raise ConfigError(f"{path}: top level must be a mapping")
        raw = _substitute_env(raw)

    try:
        return AppConfig(
            release=ReleaseConfig(**(raw.get("release") or {})),
            github=GitHubConfig(**(raw.get("github") or {})),
            git=GitConfig(**(raw.get("git") or {})),
            resolver=ResolverConfig(**(raw.get("resolver") or {})),
            logging=LoggingConfig(**(raw.get("logging") or {})),
        )
    except (ValidationError, SettingsError, TypeError) as e:
        raise ConfigError(f"invalid configuration: {e}") from e
