from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables.

    Connection credentials for the remote HaloPSA instance are optional so the
    service can start without them; the request layer refuses to build a
    client until they are present.
    """

    app_name: str = "HaloDesk"
    environment: str = "development"
    halo_base_url: AnyHttpUrl | None = Field(default=None, validation_alias="HALO_BASE_URL")
    halo_client_id: str | None = Field(default=None, validation_alias="HALO_CLIENT_ID")
    halo_client_secret: str | None = Field(
        default=None, validation_alias="HALO_CLIENT_SECRET"
    )
    halo_tenant: str | None = Field(default=None, validation_alias="HALO_TENANT")
    halo_request_timeout: float = Field(
        default=30.0, gt=0, validation_alias="HALO_REQUEST_TIMEOUT"
    )
    halo_closed_status_id: int = Field(default=9, validation_alias="HALO_CLOSED_STATUS_ID")
    duplicate_lookback_hours: int = Field(
        default=72, gt=0, validation_alias="DUPLICATE_LOOKBACK_HOURS"
    )
    duplicate_similarity_threshold: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        validation_alias="DUPLICATE_SIMILARITY_THRESHOLD",
    )
    log_path: Path | None = Field(default=None, validation_alias="LOG_PATH")

    @field_validator(
        "halo_base_url",
        "halo_client_id",
        "halo_client_secret",
        "halo_tenant",
        "log_path",
        mode="before",
    )
    @classmethod
    def _empty_string_to_none(cls, value):  # type: ignore[override]
        """Coerce blank environment variables to ``None`` so optional values stay optional."""

        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    model_config = SettingsConfigDict(
        env_file=(Path(__file__).resolve().parent.parent.parent / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
