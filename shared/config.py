"""
Shared configuration management for the authorization engine.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="AUTHZ_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")


class AuthzConfig(BaseConfig):
    """Authorization engine configuration."""

    service_name: str = Field(default="authz")

    # Compiled rule sets kept per (role, ownership context)
    rule_cache_size: int = Field(default=128, ge=0)

    # Observability
    enable_metrics: bool = Field(default=True)
    log_decisions: bool = Field(default=False)


def get_config(**overrides) -> AuthzConfig:
    """Get the authorization engine configuration."""
    return AuthzConfig(**overrides)
