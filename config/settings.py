"""
Carbon leakage engine settings.
"""

from pathlib import Path
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_METHODS = ("legacy", "exact")


class Settings(BaseSettings):
    """Analysis settings loaded from LEAKAGE_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="LEAKAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    # Directories
    output_dir: Path = Field(default=Path("outputs"), description="Output directory")

    # Intervention window (inclusive calendar years)
    cbam_start_year: int = Field(default=2023, description="First year of the CBAM window")
    cbam_end_year: int = Field(default=2025, description="Last year of the CBAM window")

    # Feasibility thresholds
    min_regression_obs: int = Field(
        default=20, ge=1, description="Minimum complete observations for any regression"
    )
    monthly_overlap_threshold: int = Field(
        default=20, ge=1, description="Monthly overlap below which data is aggregated to annual"
    )
    interaction_min_pre: int = Field(
        default=10, ge=0, description="Observations required before the CBAM window"
    )
    interaction_min_post: int = Field(
        default=5, ge=0, description="Observations required inside the CBAM window"
    )

    # Lag structure
    short_lag_cap: int = Field(default=6, ge=0, description="Requested K for the short lagged model")
    long_lag: int = Field(default=12, ge=0, description="Requested K for the long lagged model")
    rolling_window: int = Field(default=12, ge=2, description="Rolling correlation window")

    # Inference
    se_method: str = Field(
        default="legacy",
        description="Standard errors: legacy (diagonal of X'X) | exact (diagonal of inverse)",
    )
    p_value_method: str = Field(
        default="legacy",
        description="P-values: legacy (approximation) | exact (Student t)",
    )

    @field_validator("se_method", "p_value_method")
    @classmethod
    def _check_method(cls, value: str) -> str:
        value = value.lower()
        if value not in _METHODS:
            raise ValueError(f"must be one of {_METHODS}, got {value!r}")
        return value

    @model_validator(mode="after")
    def _check_window(self) -> "Settings":
        if self.cbam_start_year > self.cbam_end_year:
            raise ValueError(
                f"cbam_start_year ({self.cbam_start_year}) is after cbam_end_year ({self.cbam_end_year})"
            )
        return self

    @property
    def cbam_window(self) -> tuple[int, int]:
        return (self.cbam_start_year, self.cbam_end_year)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
