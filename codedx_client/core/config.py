"""
Client configuration from environment variables.
Credential-safe: no secrets in defaults or logs.
"""
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Client settings loaded from CODEDX_* environment variables."""

    # Server location
    base_url: str = Field(
        ...,
        description="Base URL of the Code Dx server, e.g. https://codedx.example.com/codedx"
    )
    insecure: bool = Field(
        default=False,
        description="Skip the certificate hostname check (self-signed or mismatched certs)"
    )

    # Credentials: API key wins over basic auth when both are set
    api_key: Optional[str] = Field(
        default=None,
        description="API key sent in the API-Key header"
    )
    username: Optional[str] = Field(
        default=None,
        description="Username for HTTP basic auth"
    )
    password: Optional[str] = Field(
        default=None,
        description="Password for HTTP basic auth"
    )

    # Transport
    timeout_ms: int = Field(
        default=30000,
        ge=1000,
        le=600000,
        description="Connect/read timeout for each request in milliseconds"
    )

    # Job polling
    poll_interval_ms: int = Field(
        default=2000,
        ge=0,
        le=600000,
        description="Wait between job status checks in milliseconds"
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Log level for the codedx_client loggers"
    )

    @field_validator("base_url", mode="after")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an http(s) URL and drop trailing slashes."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("CODEDX_BASE_URL must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("api_key", "username", "password", mode="before")
    @classmethod
    def empty_as_none(cls, v: Optional[str]) -> Optional[str]:
        if v == "":
            return None
        return v

    class Config:
        env_prefix = "CODEDX_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
