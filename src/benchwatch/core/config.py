"""Configuration management for benchwatch.

This module provides configuration classes using pydantic-settings
for environment variable management and validation.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from benchwatch.regression.models import Aggregation, AnalyzerConfig, Direction


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables with
    the BENCHWATCH_ prefix.

    Attributes:
        store_path: Path to the JSON history file.
        source_ref: Reference to the benchmarked project (e.g. repository URL).
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        threshold_ratio: Ratio a change must exceed to count (1.05 = 5%).
        window: Number of prior values forming the baseline.
        aggregation: How the window is folded into a baseline (last, mean, median).
        default_direction: Direction for benchmarks without an explicit entry.
        analyzer_config: Optional YAML file with the full analyzer configuration.

    Example:
        >>> # Set via environment variables:
        >>> # export BENCHWATCH_THRESHOLD_RATIO=1.10
        >>> # export BENCHWATCH_WINDOW=5
        >>>
        >>> settings = Settings()
        >>> settings.analyzer().window
        5

    Environment Variables:
        BENCHWATCH_STORE_PATH: History file (default: .benchwatch/history.json)
        BENCHWATCH_SOURCE_REF: Source reference (default: empty)
        BENCHWATCH_LOG_LEVEL: Logging level (default: WARNING)
        BENCHWATCH_THRESHOLD_RATIO: Alert threshold ratio (default: 1.05)
        BENCHWATCH_WINDOW: Rolling baseline window (default: 1)
        BENCHWATCH_AGGREGATION: Baseline aggregation (default: mean)
        BENCHWATCH_DEFAULT_DIRECTION: Default direction (default: lower_is_better)
        BENCHWATCH_ANALYZER_CONFIG: Analyzer YAML file (optional)
    """

    model_config = SettingsConfigDict(
        env_prefix="BENCHWATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage settings
    store_path: Path = Field(
        default=Path(".benchwatch/history.json"),
        description="Path to the JSON history file",
    )
    source_ref: str = Field(
        default="",
        description="Reference to the benchmarked project",
    )

    # General settings
    log_level: str = Field(
        default="WARNING",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )

    # Analyzer settings
    threshold_ratio: float = Field(
        default=1.05,
        gt=1.0,
        description="Alert threshold ratio",
    )
    window: int = Field(
        default=1,
        ge=1,
        description="Rolling baseline window",
    )
    aggregation: Aggregation = Field(
        default=Aggregation.MEAN,
        description="Baseline aggregation",
    )
    default_direction: Direction = Field(
        default=Direction.LOWER_IS_BETTER,
        description="Direction for benchmarks without an explicit entry",
    )
    analyzer_config: Path | None = Field(
        default=None,
        description="Optional YAML file with the analyzer configuration",
    )

    def analyzer(self) -> AnalyzerConfig:
        """Build the analyzer configuration.

        A configured YAML file takes precedence over the individual
        environment settings.

        Returns:
            The analyzer configuration.

        Raises:
            FileNotFoundError: If the configured YAML file doesn't exist.
            ConfigurationError: If the YAML file is invalid.
        """
        if self.analyzer_config is not None:
            return AnalyzerConfig.from_yaml(self.analyzer_config)
        return AnalyzerConfig(
            threshold_ratio=self.threshold_ratio,
            window=self.window,
            aggregation=self.aggregation,
            default_direction=self.default_direction,
        )
