from __future__ import annotations

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    """Application configuration loaded from environment variables."""

    features_dir: str = Field(default="features", description="Root directory with .feature files")
    output_dir: str = Field(default=".features-gen", description="Directory for generated test modules")
    steps: List[str] = Field(
        default_factory=list, description="Python modules that register step definitions"
    )
    import_fixtures_from: Optional[str] = Field(
        default=None, description="Module star-imported by every generated file to provide fixtures"
    )
    examples_title_format: str = Field(
        default="Example #<_index_>", description="Default title for scenario outline rows"
    )
    concurrency: int = Field(default=4, description="Max documents compiled in parallel")

    # Discovery
    ignore_globs: List[str] = Field(
        default_factory=lambda: [
            "**/.git/**",
            "**/.venv/**",
            "**/node_modules/**",
            "**/.features-gen/**",
        ]
    )

    model_config = SettingsConfigDict(env_file=".env", env_prefix="FEATUREGEN_", extra="ignore")
