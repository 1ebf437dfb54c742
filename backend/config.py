"""
Personal Insights Engine - Configuration

Configuration using Pydantic Settings.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class OllamaSettings(BaseSettings):
    """Ollama text-generation backend configuration."""

    model_config = SettingsConfigDict(env_prefix="OLLAMA_")

    enabled: bool = Field(
        default=True,
        description="Try the Ollama backend before local extraction"
    )
    base_url: str = Field(
        default="http://localhost:11434",
        description="Ollama API base URL"
    )
    model: str = Field(
        default="llama3.1:8b",
        description="Model used for text extraction"
    )
    timeout: float = Field(
        default=30.0,
        description="Hard timeout for one generation call in seconds"
    )
    probe_timeout: float = Field(
        default=2.0,
        description="Timeout for the availability probe in seconds"
    )
    temperature: float = Field(default=0.1, description="Sampling temperature")
    max_tokens: int = Field(default=1000, description="Maximum tokens to generate")
    probe_cache_seconds: float = Field(
        default=10.0,
        description="How long an availability probe result is reused"
    )


class CacheSettings(BaseSettings):
    """Caching configuration."""

    model_config = SettingsConfigDict(env_prefix="CACHE_")

    enabled: bool = Field(default=True, description="Enable caching")
    max_size: int = Field(default=256, description="LRU cache max size")
    ttl_seconds: int = Field(default=3600, description="Cache TTL in seconds")


class ExtractionSettings(BaseSettings):
    """Text extraction configuration."""

    model_config = SettingsConfigDict(env_prefix="EXTRACTION_")

    max_text_length: int = Field(
        default=10000,
        description="Maximum accepted length of a text entry"
    )


class AnalysisSettings(BaseSettings):
    """Analysis engine configuration."""

    model_config = SettingsConfigDict(env_prefix="ANALYSIS_")

    # Sampling
    sample_rows: int = Field(
        default=10,
        description="Rows sampled for value patterns and date detection"
    )

    # Aggregation
    trend_change_ratio: float = Field(
        default=0.1,
        description="Relative change that flips an aggregation trend"
    )
    series_slope_threshold: float = Field(
        default=0.1,
        description="Least-squares slope that marks a time series as trending"
    )
    canonical_alias_ingestion: bool = Field(
        default=True,
        description="Also ingest domain metrics under their canonical alias"
    )

    # Correlation
    time_alignment_days: float = Field(
        default=1.0,
        description="Tolerance in days when aligning two time series"
    )
    min_aligned_points: int = Field(
        default=3,
        description="Minimum aligned pairs for a time-based correlation"
    )
    time_correlation_threshold: float = Field(
        default=0.3,
        description="Minimum |r| reported for time-aligned correlations"
    )
    shared_column_threshold: float = Field(
        default=0.2,
        description="Minimum |r| reported for shared-column correlations"
    )
    metric_correlation_threshold: float = Field(
        default=0.3,
        description="Minimum heuristic score kept for metric correlations"
    )

    # Output
    max_recommendations: int = Field(default=5, description="Recommendations returned")
    max_charts: int = Field(default=10, description="Chart suggestions returned")


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Application
    app_name: str = "Personal Insights Engine"
    app_version: str = "1.0.0"
    debug: bool = Field(default=False, description="Debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")

    # Logging
    log_dir: str = Field(default="./logs", description="Directory for log files")
    log_level: str = Field(default="DEBUG", description="Minimum log level")

    # File Upload
    max_file_size_mb: int = Field(
        default=50,
        description="Maximum file size in MB"
    )

    # Nested settings
    ollama: OllamaSettings = Field(default_factory=OllamaSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    analysis: AnalysisSettings = Field(default_factory=AnalysisSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
