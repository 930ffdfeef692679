"""
Configuration settings for the MixMind lesson scheduler.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
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
        default="sqlite:///mixmind.db",
        description="SQLAlchemy URL for the mastery store",
    )

    # ========================================
    # Content
    # ========================================
    catalog_path: str | None = Field(
        default=None,
        description="Lesson catalog JSON file (None for the bundled catalog)",
    )

    # ========================================
    # Session Mixer
    # ========================================
    scheduler_current_ratio: float = Field(
        default=0.6,
        description="Share of the time budget for never-seen items",
    )
    scheduler_review_ratio: float = Field(
        default=0.3,
        description="Share of the time budget for due reviews",
    )
    scheduler_older_ratio: float = Field(
        default=0.1,
        description="Share of the time budget for fragile items from other modules",
    )
    scheduler_min_fill_fraction: float = Field(
        default=0.5,
        description="Below this fraction of the budget a plan is flagged as under-filled",
    )
    adaptive_ratios_enabled: bool = Field(
        default=True,
        description="Shift the mix toward review after a weak session",
    )
    scheduler_adaptive_low_accuracy: float = Field(
        default=0.6,
        description="Last-lesson accuracy below which the struggling mix is used",
    )
    scheduler_adaptive_high_accuracy: float = Field(
        default=0.9,
        description="Last-lesson accuracy above which the excelling mix is used",
    )
    scheduler_adaptive_struggling_ratios: list[float] = Field(
        default=[0.5, 0.4, 0.1],
        description="current/review/older ratios after a weak lesson",
    )
    scheduler_adaptive_excelling_ratios: list[float] = Field(
        default=[0.8, 0.15, 0.05],
        description="current/review/older ratios after a strong lesson",
    )

    # ========================================
    # Mastery Tracker
    # ========================================
    mastery_strength_cap: int = Field(
        default=5,
        description="Maximum mastery strength",
    )
    mastery_interval_days: list[int] = Field(
        default=[0, 1, 3, 7, 16, 35],
        description="Review interval in days indexed by strength (cap + 1 entries)",
    )

    # ========================================
    # Placement
    # ========================================
    placement_beginner_max_fraction: float = Field(
        default=1 / 3,
        description="Experience score fraction at or below which a user is a beginner",
    )
    placement_intermediate_max_fraction: float = Field(
        default=2 / 3,
        description="Experience score fraction at or below which a user is intermediate",
    )
    placement_default_session_minutes: int = Field(
        default=5,
        description="Session length when the time question is unanswered",
    )
    placement_single_select_points: dict[str, dict[str, int]] = Field(
        default={
            "experience": {"none": 0, "never": 0, "occasionally": 1, "regularly": 2},
            "knowledge": {"margarita": 2},
            "glassware": {"coupe": 2},
        },
        description="Experience points per option of each single-select question",
    )
    placement_technique_points: list[tuple[int, int]] = Field(
        default=[(5, 2), (3, 1)],
        description="(min technique rating, points) pairs, first match wins",
    )
    placement_tools_points: list[tuple[int, int]] = Field(
        default=[(3, 2), (1, 1)],
        description="(min tools owned, points) pairs, first match wins",
    )
    placement_build_order_points: int = Field(
        default=2,
        description="Points for the correct shaken-sour build order",
    )
    placement_track_pref_weight: int = Field(
        default=1,
        description="Track points for a stated alcohol preference",
    )
    placement_avoid_alcohol_weight: int = Field(
        default=10,
        description="Zero-proof points for avoiding alcohol entirely",
    )
    placement_session_minutes: dict[str, int] = Field(
        default={
            "short": 3, "3m": 3,
            "medium": 5, "5m": 5,
            "long": 8, "8m": 8,
            "extended": 12, "12m": 12,
        },
        description="Time answer -> session length in minutes",
    )

    # ========================================
    # XP
    # ========================================
    xp_per_correct: int = Field(default=10, description="XP per correct attempt")
    xp_completion_bonus: int = Field(default=15, description="XP for closing a lesson")
    xp_accuracy_bonus: list[tuple[float, int]] = Field(
        default=[(1.0, 10), (0.85, 5)],
        description="(min accuracy, bonus) pairs, first match wins",
    )

    # ========================================
    # Analytics
    # ========================================
    analytics_sink: Literal["memory", "log", "http"] = Field(
        default="log",
        description="Where analytics events are delivered",
    )
    analytics_endpoint: str | None = Field(
        default=None,
        description="Capture endpoint for the HTTP sink",
    )
    analytics_api_key: str | None = Field(
        default=None,
        description="API key sent with HTTP analytics batches",
    )
    analytics_batch_size: int = Field(
        default=20,
        description="Events buffered before the HTTP sink flushes",
    )
    analytics_timeout_seconds: float = Field(
        default=5.0,
        description="HTTP sink request timeout",
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

    @model_validator(mode="after")
    def _check_policies(self) -> "Settings":
        total = self.scheduler_current_ratio + self.scheduler_review_ratio + self.scheduler_older_ratio
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"scheduler ratios must sum to 1.0, got {total:.3f}")
        if len(self.mastery_interval_days) != self.mastery_strength_cap + 1:
            raise ValueError("mastery_interval_days needs one entry per strength 0..cap")
        if any(b < a for a, b in zip(self.mastery_interval_days, self.mastery_interval_days[1:])):
            raise ValueError("mastery_interval_days must be non-decreasing")
        if not 0 < self.placement_beginner_max_fraction < self.placement_intermediate_max_fraction < 1:
            raise ValueError("placement fractions must satisfy 0 < beginner < intermediate < 1")
        if any(minutes <= 0 for minutes in self.placement_session_minutes.values()):
            raise ValueError("placement_session_minutes values must be positive")
        if not 0 <= self.scheduler_adaptive_low_accuracy <= self.scheduler_adaptive_high_accuracy <= 1:
            raise ValueError("adaptive accuracy bands must satisfy 0 <= low <= high <= 1")
        for name in ("scheduler_adaptive_struggling_ratios", "scheduler_adaptive_excelling_ratios"):
            ratios = getattr(self, name)
            if len(ratios) != 3 or abs(sum(ratios) - 1.0) > 1e-6:
                raise ValueError(f"{name} needs three ratios summing to 1.0")
        return self

    # ========================================
    # Helper Methods
    # ========================================
    def has_http_analytics(self) -> bool:
        """Check if the HTTP analytics sink can be used."""
        return self.analytics_sink == "http" and bool(self.analytics_endpoint)

    def get_mix_ratios(self) -> dict[str, float]:
        """Return the default session mix as a dictionary."""
        return {
            "current": self.scheduler_current_ratio,
            "review": self.scheduler_review_ratio,
            "older": self.scheduler_older_ratio,
        }

    def get_adaptive_ratios(self) -> dict[str, dict[str, float]]:
        """Return the struggling and excelling mixes as dictionaries."""
        keys = ("current", "review", "older")
        return {
            "struggling": dict(zip(keys, self.scheduler_adaptive_struggling_ratios)),
            "excelling": dict(zip(keys, self.scheduler_adaptive_excelling_ratios)),
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
