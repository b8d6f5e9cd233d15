"""
Configuration settings for the tutorquiz engine.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Database
    # ========================================
    database_url: str = Field(
        default="sqlite:///tutorquiz.db",
        description="SQLAlchemy connection string (sqlite or postgresql)",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    # ========================================
    # Question Selection
    # ========================================
    selection_strategy: Literal["default", "adaptive"] = Field(
        default="default",
        description="Strategy used when a quiz does not name one",
    )
    selection_seed: int | None = Field(
        default=None,
        description="Seed for reproducible selection (None = system randomness)",
    )

    # ========================================
    # Quiz Defaults
    # ========================================
    default_passing_percentage: float = Field(
        default=40.0,
        ge=0,
        le=100,
        description="Passing percentage for quizzes that do not set one",
    )
    default_quiz_duration_minutes: int = Field(
        default=30,
        ge=1,
        le=300,
        description="Duration for quizzes that do not set one",
    )
    default_attempts_allowed: int = Field(
        default=1,
        ge=1,
        le=10,
        description="Attempts allowed for quizzes that do not set one",
    )

    # ========================================
    # Evaluation Analytics
    # ========================================
    history_window: int = Field(
        default=5,
        ge=1,
        description="Previous completed attempts considered for trend analysis",
    )
    weak_area_threshold: float = Field(
        default=50.0,
        description="Topic accuracy below which a topic is a weak area",
    )
    strong_area_threshold: float = Field(
        default=80.0,
        description="Topic accuracy at or above which a topic is a strong area",
    )
    weak_area_min_questions: int = Field(
        default=2,
        ge=1,
        description="Minimum questions in a topic before it can be flagged weak",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
