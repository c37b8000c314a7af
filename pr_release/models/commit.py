"""Commit graph node and remote reference."""

from pydantic import BaseModel, ConfigDict, Field


class Commit(BaseModel):
    """Immutable commit read from the repository object store."""

    model_config = ConfigDict(frozen=True)

    hash: str
    parents: tuple[str, ...] = Field(default_factory=tuple)
    committer_time: int = 0
    subject: str = ""


class RemoteReference(BaseModel):
    """Reference advertised by the remote (name, commit hash)."""

    model_config = ConfigDict(frozen=True)

    name: str
    hash: str
