"""
Configuration management for the ColorVision dashboard.
"""

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Application
    app_name: str = Field(default="ColorVision Dashboard")
    debug: bool = Field(default=False)
    environment: str = Field(default="development")

    # API
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    api_workers: int = Field(default=1)
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins.",
    )

    # Database
    database_url: str = Field(default="sqlite:///./colorvision_dashboard.db")

    # Sessions
    session_ttl_minutes: int = Field(default=60 * 24)

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")

    # Artifact storage
    artifact_root: str = Field(
        default="file://./artifacts",
        description="Base URI for uploaded artifacts. Supported: file://",
    )
    fundus_max_upload_bytes: int = Field(default=10 * 1024 * 1024)
    erg_max_upload_bytes: int = Field(default=50 * 1024 * 1024)
    erg_allowed_extensions: str = Field(default=".csv,.xlsx,.xls,.txt")

    # Job lifecycle
    job_dispatch_mode: str = Field(
        default="asyncio",
        description="'asyncio' runs finalization as delayed background tasks, "
        "'inline' runs it before the request returns.",
    )
    fundus_processing_delay_seconds: float = Field(default=3.0)
    erg_processing_delay_seconds: float = Field(default=4.0)
    analysis_processing_delay_seconds: float = Field(default=5.0)
    processing_timeout_seconds: int = Field(default=900)
    sweep_interval_seconds: int = Field(default=60)

    def cors_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def erg_extension_list(self) -> List[str]:
        return [
            ext.strip().lower()
            for ext in self.erg_allowed_extensions.split(",")
            if ext.strip()
        ]


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings."""
    return settings
