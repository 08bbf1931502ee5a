"""Environment configuration for the Jira MCP server.

Settings are read from the process environment and, when present, a local
``.env`` file. Credentials are required; everything else has a default.
"""
import re
from functools import lru_cache

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Jira connection and server settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        populate_by_name=True,
    )

    jira_domain: str = Field(default="", alias="JIRA_DOMAIN")
    jira_email: str = Field(default="", alias="JIRA_EMAIL")
    jira_api_token: SecretStr = Field(default=SecretStr(""), alias="JIRA_API_TOKEN")
    jira_timeout: float = Field(default=30.0, gt=0, alias="JIRA_TIMEOUT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("jira_domain", "jira_email", mode="before")
    @classmethod
    def strip_whitespace(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {value} (expected one of {', '.join(LOG_LEVELS)})")
        return level

    @model_validator(mode="after")
    def check_required(self) -> "Settings":
        # Presence first, in the order the variables are documented
        if not self.jira_api_token.get_secret_value():
            raise ValueError("JIRA_API_TOKEN environment variable is required")
        if not self.jira_email:
            raise ValueError("JIRA_EMAIL environment variable is required")
        if not self.jira_domain:
            raise ValueError("JIRA_DOMAIN environment variable is required")

        if not EMAIL_PATTERN.match(self.jira_email):
            raise ValueError(f"Invalid email format: {self.jira_email}")
        if "." not in self.jira_domain or len(self.jira_domain) < 3:
            raise ValueError(f"Invalid domain format: {self.jira_domain}")
        return self

    @property
    def base_url(self) -> str:
        """REST API v2 root for the configured site."""
        return f"https://{self.jira_domain}/rest/api/2"


@lru_cache
def get_settings() -> Settings:
    """Load settings once per process."""
    return Settings()
