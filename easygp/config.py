"""
Configuration Management for the Diagnosis Engine

Environment-based configuration using Pydantic Settings.
"""
from typing import Optional, List, Dict
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator, model_validator
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra fields from .env file
    )

    # Application
    app_name: str = "EasyGP Diagnosis Engine"
    app_version: str = "0.1.0"
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level for the easygp logger")

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_prefix: str = "/api/v1"
    cors_origins: List[str] = ["*"]

    # Calibration
    calibration_path: Optional[str] = Field(
        default=None,
        description="Path to a calibration JSON; the packaged default is used when unset"
    )

    # Recommendation policy thresholds
    prescribe_threshold: float = Field(default=0.7, ge=0.0, le=1.0, description="Strep probability to prescribe")
    test_low: float = Field(default=0.3, ge=0.0, le=1.0, description="Lower bound of the strep testing band")
    test_high: float = Field(default=0.7, ge=0.0, le=1.0, description="Upper bound (exclusive) of the testing band")
    low_confidence_floor: float = Field(default=0.35, ge=0.0, le=1.0, description="Top probability below this is uncertain")
    alternatives_margin: float = Field(default=0.1, ge=0.0, le=1.0, description="Max gap between top two to call it a tie")
    referral_thresholds: Dict[str, float] = Field(
        default={"InfectiousMono": 0.5, "ScarletFever": 0.6},
        description="Conditions flagged for specialist referral and their probability thresholds"
    )

    # Explanation
    explanation_top_k: int = Field(default=3, gt=0, description="Number of features listed in the explanation")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("referral_thresholds")
    @classmethod
    def validate_referral_thresholds(cls, v: Dict[str, float]) -> Dict[str, float]:
        from easygp.core.observation.base import Condition

        for name, threshold in v.items():
            Condition.from_string(name)
            if not 0.0 <= threshold <= 1.0:
                raise ValueError(f"Referral threshold for {name} must be within [0, 1]")
        return v

    @model_validator(mode="after")
    def validate_testing_band(self) -> "Settings":
        if self.test_low >= self.test_high:
            raise ValueError("test_low must be strictly below test_high")
        return self


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
