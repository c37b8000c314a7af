"""Error taxonomy for merged pull request resolution and release PR publishing."""


class PrReleaseError(Exception):
    """Base class for all pr-release errors."""

    pass


class ConfigError(PrReleaseError):
    """Raised when configuration or the local repository setup is unusable."""

    pass


class BranchNotFoundError(PrReleaseError):
    """Raised when a branch name does not resolve to a tip on the tracked remote."""

    def __init__(self, branch: str, remote: str = "origin") -> None:
        super().__init__(f"branch not found: {remote}/{branch}")
        self.branch = branch
        self.remote = remote


class TransportError(PrReleaseError):
    """Raised on network, auth or rate-limit failure from git or the hosted API."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ResolutionTimeoutError(TransportError):
    """Raised when the caller's deadline expires before resolution completes."""

    pass


class InconsistentGraphError(PrReleaseError):
    """Raised when the local commit graph cannot answer a structural query."""

    pass
