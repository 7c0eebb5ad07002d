from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ToolConfig(BaseModel):
    """
    Process-wide defaults handed to every tool handler.

    Built once from `Settings` at startup and never mutated afterwards.
    """

    model_config = ConfigDict(frozen=True)

    default_owner: Optional[str] = None
    default_repo: Optional[str] = None


class Settings(BaseSettings):
    """
    Central configuration for the GitHub MCP server.

    All values are loaded from environment variables with `GITHUB_MCP_` prefix.
    The token, owner and repository are also accepted from the plain
    `GITHUB_TOKEN`, `GITHUB_OWNER` and `GITHUB_REPO` variables. A `.env` file
    in the working directory is read during development.
    """

    model_config = SettingsConfigDict(
        env_prefix="GITHUB_MCP_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    # General
    env: str = "dev"
    transport: str = "stdio"  # "stdio", "tcp" or "http"
    server_host: str = "127.0.0.1"
    server_port: int = 8000
    log_level: str = "INFO"
    max_frame_bytes: int = 4 * 1024 * 1024

    # GitHub
    github_token: SecretStr = Field(
        validation_alias=AliasChoices("GITHUB_MCP_GITHUB_TOKEN", "GITHUB_TOKEN"),
    )
    default_owner: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GITHUB_MCP_DEFAULT_OWNER", "GITHUB_OWNER"),
    )
    default_repo: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GITHUB_MCP_DEFAULT_REPO", "GITHUB_REPO"),
    )
    github_api_url: str = "https://api.github.com"
    request_timeout: float = 30.0

    @field_validator("github_token")
    @classmethod
    def _token_not_blank(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value().strip():
            raise ValueError("GitHub token must not be empty")
        return value

    def tool_config(self) -> ToolConfig:
        return ToolConfig(default_owner=self.default_owner, default_repo=self.default_repo)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load and cache settings from environment."""
    return Settings()  # type: ignore[call-arg]
