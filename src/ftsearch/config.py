"""Centralized configuration for ftsearch using Pydantic Settings."""

from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Connection and client defaults loaded from ``FTSEARCH_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FTSEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # Connection
    redis_url: str = Field(default="", description="Full connection URL; overrides host/port/db/password when set")
    redis_host: str = Field(default="localhost", description="Server host")
    redis_port: int = Field(default=6379, ge=1, le=65535, description="Server port")
    redis_db: int = Field(default=0, ge=0, description="Logical database number")
    redis_password: str | None = Field(default=None, description="Password for AUTH")
    socket_timeout: float | None = Field(default=None, gt=0, description="Socket timeout in seconds")
    decode_responses: bool = Field(default=True, description="Decode replies to str instead of bytes")

    # Client defaults
    default_storage_type: Literal["hash", "json"] = Field(
        default="hash", description="Storage type used by create_index when none is given"
    )
    default_dialect: int | None = Field(default=None, ge=1, description="DIALECT sent with searches that set none")

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    log_json: bool = Field(default=True, description="Emit structured JSON log lines")

    @model_validator(mode="after")
    def _check_connection(self) -> "Settings":
        if not self.redis_url and not self.redis_host:
            raise ValueError("Either FTSEARCH_REDIS_URL or FTSEARCH_REDIS_HOST must be set")
        return self

    def connection_kwargs(self) -> dict[str, object]:
        """Keyword arguments for ``redis.Redis`` (ignored by from_url for url-encoded parts)."""
        kwargs: dict[str, object] = {"decode_responses": self.decode_responses}
        if self.socket_timeout is not None:
            kwargs["socket_timeout"] = self.socket_timeout
        if not self.redis_url:
            kwargs.update(host=self.redis_host, port=self.redis_port, db=self.redis_db)
            if self.redis_password:
                kwargs["password"] = self.redis_password
        return kwargs
