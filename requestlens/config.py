"""
Configuration management using pydantic-settings.
All settings loaded from environment variables (12-factor app).
"""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Data source
    db_path: str = Field(default="./data/requests.duckdb", description="DuckDB file path")
    raw_table: str = Field(default="raw_311_data", description="Raw service request table")
    data_csv_path: str = Field(
        default="", description="Optional CSV loaded into the raw table at startup"
    )

    # Report defaults
    min_group_size: int = Field(
        default=100, ge=0, description="Minimum rows per group (HAVING COUNT(*) >= n)"
    )
    min_monthly_group_size: int = Field(
        default=30, ge=0, description="Minimum rows per department-month in trend reports"
    )
    rolling_window: int = Field(default=3, ge=1, description="Rolling average window in months")
    z_threshold: float = Field(default=1.5, ge=0.0, description="Absolute z-score anomaly threshold")
    top_n: int = Field(default=10, ge=1, description="Row limit for top-N reports")
    report_decimals: int = Field(
        default=2, ge=0, le=10, description="Decimal places applied at presentation"
    )
    report_max_workers: int = Field(
        default=4, ge=1, description="Thread pool size when running all reports"
    )

    # API
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")
    api_reload: bool = Field(default=False, description="Enable hot reload")
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="CORS allowed origins (comma-separated)",
    )

    # Logging
    log_level: str = Field(default="info", description="Log level")
    log_format: str = Field(default="json", description="Log format (json|console)")

    # Development
    dev_mode: bool = Field(default=True, description="Development mode")
    testing: bool = Field(default=False, description="Testing mode")

    @field_validator("cors_origins")
    @classmethod
    def parse_cors_origins(cls, v: str) -> List[str]:
        """Parse comma-separated CORS origins."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to ensure singleton behavior.
    """
    return Settings()
