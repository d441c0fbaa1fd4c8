"""
Converter configuration management using Pydantic Settings.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Converter settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="POMSHIFT_",
        case_sensitive=False,
        extra="ignore",
    )

    # Input discovery
    source_extensions: list[str] = Field(default_factory=lambda: [".java"])
    excluded_dirs: list[str] = Field(
        default_factory=lambda: [
            ".git", ".idea", ".gradle", "target", "build", "bin", "out",
            "node_modules", "__pycache__",
        ]
    )
    source_encoding: str = "utf-8"

    # Output
    output_extension: str = ".ts"
    output_dir_suffix: str = "_playwright"
    base_imports: list[str] = Field(
        default_factory=lambda: [
            "import { Page, Locator, expect } from '@playwright/test';",
        ]
    )
    write_diagnostics: bool = False
    use_project_context: bool = True

    # Pattern recognition service (optional)
    pattern_recognition_enabled: bool = False
    openai_api_key: str = Field(default="")
    openai_model: str = "gpt-4o-mini"
    openai_temperature: float = 0.1
    pattern_cache_ttl: int = 300  # seconds
    pattern_max_tokens: int = 1024

    # Logging
    log_level: str = "WARNING"
    log_format: Literal["json", "console"] = "console"

    @property
    def pattern_service_configured(self) -> bool:
        return self.pattern_recognition_enabled and bool(self.openai_api_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
