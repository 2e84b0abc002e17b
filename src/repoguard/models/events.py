"""Typed webhook envelope validated at the parse boundary."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Account(BaseModel):
    """A GitHub user or organization reference."""

    model_config = ConfigDict(extra="ignore")

    login: str = Field(..., min_length=1)
    id: int | None = None


class RepositoryDescriptor(BaseModel):
    model_config = ConfigDict(extra="ignore")

    full_name: str = Field(..., pattern=r"^[^/\s]+/[^/\s]+$")
    name: str
    default_branch: str | None = None
    owner: Account | None = None
    private: bool = False


class InstallationRef(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int


class WebhookEvent(BaseModel):
    """A verified, parsed webhook notification.

    ``event_type`` comes from the ``X-GitHub-Event`` header, everything else
    from the JSON body. Unknown body fields are kept in ``payload`` for
    handlers that need more than the envelope.
    """

    model_config = ConfigDict(extra="forbid")

    event_type: str
    action: str | None = None
    delivery_id: str | None = None
    repository: RepositoryDescriptor | None = None
    sender: Account | None = None
    installation: InstallationRef | None = None
    payload: dict[str, Any] = Field(default_factory=dict, repr=False)

    @property
    def installation_id(self) -> str | None:
        if self.installation is None:
            return None
        return str(self.installation.id)
