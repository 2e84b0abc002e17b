"""Application configuration via environment variables."""

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # GitHub App identity (validated once at startup, see repoguard.auth.assertion)
    private_key: str = Field("", validation_alias=AliasChoices("GITHUB_PRIVATE_KEY", "REPOGUARD_PRIVATE_KEY"))
    webhook_secret: str = Field(
        "", validation_alias=AliasChoices("GITHUB_WEBHOOK_SECRET", "REPOGUARD_WEBHOOK_SECRET")
    )
    app_identifier: str = Field(
        "", validation_alias=AliasChoices("GITHUB_APP_IDENTIFIER", "REPOGUARD_APP_IDENTIFIER")
    )

    # GitHub API
    github_api_url: str = "https://api.github.com"
    github_api_version: str = "2022-11-28"

    # Outbound timeouts (seconds)
    token_timeout_seconds: float = 10.0
    action_timeout_seconds: float = 15.0

    # Default branch polling after repository creation
    branch_wait_seconds: float = 10.0
    branch_poll_initial_seconds: float = 0.5
    branch_poll_max_seconds: float = 3.0

    # Cached credentials are refreshed this long before they expire
    credential_skew_seconds: int = 60

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "info"
    json_logs: bool = True

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "REPOGUARD_",
        "extra": "ignore",
        "populate_by_name": True,
    }

    @field_validator("private_key")
    @classmethod
    def _unescape_newlines(cls, value: str) -> str:
        """Keys stored in a single env line carry literal ``\\n`` sequences."""
        return value.replace("\\n", "\n")

    @property
    def webhook_secret_bytes(self) -> bytes:
        return self.webhook_secret.encode("utf-8")


settings = Settings()
