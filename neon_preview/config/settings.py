"""
Application Settings
====================

Main application settings and environment configuration using Pydantic Settings.
Supports development, testing, and production environments.
"""

from typing import Annotated, Optional, List, Union
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
import json
from pathlib import Path


class Settings(BaseSettings):
    """Main application settings with environment variable support."""

    # Application Configuration
    app_name: str = Field(default="Neon Preview Renderer", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(
        default="development", description="Environment: development, testing, production"
    )
    debug: bool = Field(default=True, description="Debug mode")

    # Server Configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")

    # CORS Configuration
    allowed_origins: Annotated[List[str], NoDecode] = Field(
        default=["*"], description="Allowed origins for CORS"
    )
    cors_allow_methods: Annotated[List[str], NoDecode] = Field(
        default=["GET", "POST", "OPTIONS"], description="Allowed CORS methods"
    )
    cors_allow_headers: Annotated[List[str], NoDecode] = Field(
        default=["Content-Type", "Authorization", "X-Requested-With"],
        description="Allowed CORS request headers",
    )
    cors_max_age: int = Field(default=86400, description="CORS preflight cache in seconds")

    # Rendering Configuration
    default_width: int = Field(default=2000, description="Default render width")
    default_height: int = Field(default=1500, description="Default render height")
    render_delay_ms: int = Field(
        default=1000, ge=0, description="Settle delay before capture in milliseconds"
    )
    render_format: str = Field(default="webp", description="Output format: png, jpeg, webp")
    render_quality: int = Field(default=90, ge=0, le=100, description="Lossy output quality")
    device_scale_factor: float = Field(default=2.0, gt=0, le=3.0, description="Device pixel ratio")
    navigation_timeout_ms: int = Field(
        default=30000, description="Page content load timeout in milliseconds"
    )
    readiness_timeout_ms: int = Field(
        default=10000, description="Font/image readiness timeout in milliseconds"
    )
    preview_background_url: Optional[str] = Field(
        default="https://cdn.shopify.com/s/files/1/0965/8187/8085/files/SFONDO.jpg?v=1763119217",
        description="Background image behind the sign",
    )

    # Browser Configuration
    playwright_headless: bool = Field(default=True, description="Run browser in headless mode")
    chromium_executable_path: Optional[str] = Field(
        default=None, description="Custom Chromium executable"
    )
    chromium_args: Annotated[List[str], NoDecode] = Field(
        default=[
            "--no-sandbox",
            "--disable-setuid-sandbox",
            "--disable-dev-shm-usage",
            "--font-render-hinting=none",
        ],
        description="Extra Chromium command line switches",
    )
    close_browser_after_render: bool = Field(
        default=True, description="Launch a private browser per render and close it afterwards"
    )

    # API Documentation Configuration
    enable_docs: bool = Field(default=True, description="Enable FastAPI docs endpoint")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_to_file: bool = Field(default=False, description="Write rotating log files")
    log_dir: Path = Field(default=Path("./logs"), description="Log file directory")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed = {"development", "testing", "production"}
        if v not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of: {allowed}")
        return v.upper()

    @field_validator("render_format")
    @classmethod
    def validate_render_format(cls, v: str) -> str:
        """Validate output image format."""
        allowed = {"png", "jpeg", "webp"}
        if v.lower() not in allowed:
            raise ValueError(f"Render format must be one of: {allowed}")
        return v.lower()

    @field_validator(
        "allowed_origins", "cors_allow_methods", "cors_allow_headers", "chromium_args",
        mode="before",
    )
    @classmethod
    def parse_string_list(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse list values from a JSON or comma-separated string."""
        if isinstance(v, str):
            # Handle JSON-like string: ["*"] or ["a", "b"]
            v = v.strip()
            if v.startswith("[") and v.endswith("]"):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            # Handle comma-separated string: "*" or "a,b"
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, env_prefix="NEON_PREVIEW_"
    )


# Global settings instance - will be initialized when needed
settings = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global settings
    if settings is None:
        settings = Settings()
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment."""
    global settings
    settings = Settings()
    return settings
