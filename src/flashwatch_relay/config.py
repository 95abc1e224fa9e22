"""Configuration management with Pydantic Settings.

This module provides centralized configuration for the FlashWatch relay,
loading and validating environment variables at startup. A missing
Moltbook credential is a fatal configuration error: the relay refuses to
start serving without it.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _require_http_url(v: str) -> str:
    if not v.startswith(("http://", "https://")):
        raise ValueError("URL must be an HTTP(S) endpoint")
    return v.rstrip("/")


class RelaySettings(BaseSettings):
    """Webhook listener and pipeline tuning."""

    model_config = SettingsConfigDict(env_prefix="")

    bind: str = Field(
        default="127.0.0.1",
        alias="RELAY_BIND",
        description="Address the webhook listener binds to",
    )
    port: int = Field(
        default=4747,
        alias="RELAY_PORT",
        description="Port the webhook listener binds to",
        ge=1,
        le=65535,
    )
    ai_threshold_eth: float = Field(
        default=50.0,
        alias="AI_THRESHOLD_ETH",
        description="Minimum ETH value for the enriched (narrated) path",
        ge=0,
    )
    cooldown_seconds: float = Field(
        default=600.0,
        alias="COOLDOWN_SECONDS",
        description="Minimum time between two successful posts for one rule",
        ge=0,
    )


class RpcSettings(BaseSettings):
    """Base chain JSON-RPC settings."""

    model_config = SettingsConfigDict(env_prefix="")

    url: str = Field(
        default="https://mainnet.base.org",
        alias="BASE_RPC_URL",
        description="Base JSON-RPC endpoint",
    )
    timeout_seconds: float = Field(
        default=5.0,
        alias="RPC_TIMEOUT_SECONDS",
        gt=0,
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate RPC URL format."""
        return _require_http_url(v)


class NamingSettings(BaseSettings):
    """Reverse name resolution settings."""

    model_config = SettingsConfigDict(env_prefix="")

    url: str = Field(
        default="https://api.ensideas.com/ens/resolve",
        alias="NAMING_URL",
        description="Reverse resolution endpoint; the address is appended",
    )
    timeout_seconds: float = Field(
        default=4.0,
        alias="NAMING_TIMEOUT_SECONDS",
        gt=0,
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate naming URL format."""
        return _require_http_url(v)


class NarrativeSettings(BaseSettings):
    """Language-completion service settings."""

    model_config = SettingsConfigDict(env_prefix="")

    api_key: SecretStr | None = Field(
        default=None,
        alias="ANTHROPIC_API_KEY",
        description="Completion API key; without it every alert uses the template",
    )
    api_url: str = Field(
        default="https://api.anthropic.com",
        alias="ANTHROPIC_API_URL",
    )
    model: str = Field(
        default="claude-haiku-4-5",
        alias="ANTHROPIC_MODEL",
    )
    timeout_seconds: float = Field(
        default=15.0,
        alias="NARRATIVE_TIMEOUT_SECONDS",
        gt=0,
    )

    @field_validator("api_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate completion API URL format."""
        return _require_http_url(v)

    @property
    def enabled(self) -> bool:
        """Check if narrative generation is enabled."""
        return self.api_key is not None and bool(self.api_key.get_secret_value())


class MoltbookSettings(BaseSettings):
    """Moltbook content platform settings."""

    model_config = SettingsConfigDict(env_prefix="")

    api_key: SecretStr = Field(
        alias="MOLTBOOK_API_KEY",
        description="Moltbook API key (required)",
    )
    api_url: str = Field(
        default="https://www.moltbook.com/api/v1",
        alias="MOLTBOOK_API_URL",
    )
    submolt: str = Field(
        default="lablab",
        alias="MOLTBOOK_SUBMOLT",
        description="Community the relay posts into",
    )
    timeout_seconds: float = Field(
        default=10.0,
        alias="PUBLISH_TIMEOUT_SECONDS",
        gt=0,
    )

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v: SecretStr) -> SecretStr:
        """Reject a blank or non-ASCII API key."""
        key = v.get_secret_value()
        if not key.strip():
            raise ValueError("MOLTBOOK_API_KEY must not be empty")
        if not key.isascii():
            raise ValueError("MOLTBOOK_API_KEY must be ASCII")
        return v

    @field_validator("api_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate Moltbook URL format."""
        return _require_http_url(v)


class AuditSettings(BaseSettings):
    """Audit log destination."""

    model_config = SettingsConfigDict(env_prefix="")

    path: str = Field(
        default="flashwatch-audit.jsonl",
        alias="AUDIT_LOG_PATH",
        description="JSON-lines file the audit log appends to",
    )
    redis_url: str | None = Field(
        default=None,
        alias="AUDIT_REDIS_URL",
        description="Optional Redis URL; when set the audit log is kept in Redis",
    )

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: str | None) -> str | None:
        """Validate Redis URL format."""
        if v is not None and not v.startswith("redis://"):
            raise ValueError("AUDIT_REDIS_URL must start with redis://")
        return v


class Settings(BaseSettings):
    """Main application settings.

    Loads configuration from environment variables with support for
    .env files via python-dotenv.

    Example:
        ```python
        from flashwatch_relay.config import get_settings

        settings = get_settings()
        print(settings.relay.port)
        print(settings.narrative.enabled)
        ```
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    relay: RelaySettings = Field(default_factory=RelaySettings)
    rpc: RpcSettings = Field(default_factory=RpcSettings)
    naming: NamingSettings = Field(default_factory=NamingSettings)
    narrative: NarrativeSettings = Field(default_factory=NarrativeSettings)
    moltbook: MoltbookSettings = Field(default_factory=MoltbookSettings)  # type: ignore[arg-type]
    audit: AuditSettings = Field(default_factory=AuditSettings)

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level",
    )
    dry_run: bool = Field(
        default=False,
        alias="DRY_RUN",
        description="Log posts instead of sending them to Moltbook",
    )

    def get_logging_level(self) -> int:
        """Get the numeric logging level."""
        level: int = getattr(logging, self.log_level)
        return level

    def redacted_summary(self) -> dict[str, str | dict[str, str]]:
        """Get a summary of settings with secrets redacted.

        Returns:
            Dictionary of settings with sensitive values masked.
        """
        return {
            "listen": f"{self.relay.bind}:{self.relay.port}",
            "ai_threshold_eth": str(self.relay.ai_threshold_eth),
            "cooldown_seconds": str(self.relay.cooldown_seconds),
            "rpc_url": self.rpc.url,
            "naming_url": self.naming.url,
            "narrative": {
                "api_key": "(set)" if self.narrative.enabled else "(not set)",
                "model": self.narrative.model,
            },
            "moltbook": {
                "api_key": "(set)",
                "api_url": self.moltbook.api_url,
                "submolt": self.moltbook.submolt,
            },
            "audit": (
                self._redact_url(self.audit.redis_url)
                if self.audit.redis_url
                else self.audit.path
            ),
            "log_level": self.log_level,
            "dry_run": str(self.dry_run),
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact password from URL if present."""
        if "@" in url and "://" in url:
            protocol_end = url.index("://") + 3
            at_pos = url.index("@")
            creds_part = url[protocol_end:at_pos]
            if ":" in creds_part:
                username = creds_part.split(":")[0]
                return f"{url[:protocol_end]}{username}:***@{url[at_pos + 1 :]}"
        return url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The Settings instance.

    Raises:
        ValidationError: If required environment variables are missing
            or have invalid values.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing when you need to reload settings with
    different environment variables.
    """
    get_settings.cache_clear()
