"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic import field_validator
from pydantic_settings import BaseSettings

from moodlens.domains.mood.domain_logic.registry import CategoryRegistry, load_registry
from moodlens.domains.mood.domain_logic.snapshot import AnalysisSettings


class Settings(BaseSettings):
    """moodlens server and analysis configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Loopback by default: there is no auth layer in front of the MCP tools.
    moodlens_host: str = "127.0.0.1"
    moodlens_port: int = 8011
    moodlens_log_level: str = "info"
    moodlens_allow_insecure_bind: bool = False

    # Data
    observations_export_path: str = ""
    category_registry_path: str = ""

    # Analysis windows (days)
    sliding_windows: list[int] = [30, 90, 180]
    trend_windows: list[int] = [7, 30, 90]
    volatility_window: int = 14
    butterfly_short_window: int = 7
    butterfly_long_window: int = 28

    # Influence results need this many days with and without a flag
    influence_min_samples: int = 3

    analysis_max_workers: int = 4

    @field_validator("sliding_windows", "trend_windows")
    @classmethod
    def _positive_windows(cls, value: list[int]) -> list[int]:
        if not value or any(w < 1 for w in value):
            raise ValueError("window lists must be non-empty and positive")
        return value

    @field_validator(
        "volatility_window",
        "butterfly_short_window",
        "butterfly_long_window",
        "influence_min_samples",
        "analysis_max_workers",
    )
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be >= 1")
        return value

    def load_category_registry(self) -> CategoryRegistry:
        return load_registry(self.category_registry_path or None)

    def analysis_settings(self, registry: CategoryRegistry | None = None) -> AnalysisSettings:
        """Resolve the frozen per-run analysis settings."""
        return AnalysisSettings(
            registry=registry if registry is not None else self.load_category_registry(),
            sliding_windows=tuple(self.sliding_windows),
            trend_windows=tuple(self.trend_windows),
            volatility_window=self.volatility_window,
            butterfly_short_window=self.butterfly_short_window,
            butterfly_long_window=self.butterfly_long_window,
            influence_min_samples=self.influence_min_samples,
        )


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
