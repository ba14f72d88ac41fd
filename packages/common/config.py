from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strongly-typed settings model loaded from env / .env.

    Notes:
        - Grading defaults mirror the course authoring defaults (60% pass mark,
          10% per late day capped at 3 days, 20% peer-review weight).
        - KAFKA_BOOTSTRAP is optional; without it events are only logged.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        protected_namespaces=()
    )

    ENV: str = Field(default="dev", description="Deployment environment, e.g. dev/staging/prod")
    SERVICE_NAME: str = Field(default="lms-grading", description="Service name")
    LOG_LEVEL: str = Field(default="INFO", description="Root logging level")

    KAFKA_BOOTSTRAP: Optional[str] = Field(default=None, description="Kafka bootstrap servers")
    EVENTS_TOPIC: str = Field(default="lms.events", description="Topic for grading/streak events")

    DEFAULT_PASSING_SCORE: float = Field(default=60, ge=0, le=100)
    LATE_PENALTY_PER_DAY: float = Field(default=10, ge=0, le=100, description="Percent deducted per late day")
    MAX_LATE_DAYS: int = Field(default=3, ge=0)
    PEER_REVIEW_WEIGHT: float = Field(default=20, ge=0, le=100)
    PEER_REVIEWS_REQUIRED: int = Field(default=2, ge=1)

    STRENGTH_THRESHOLD: float = Field(default=75, description="Category percentage counted as a strength")
    WEAKNESS_THRESHOLD: float = Field(default=50, description="Category percentage below which it is a weakness")

    FREEZE_EXPIRY_DAYS: int = Field(default=30, ge=1)
    FREEZE_COST_POINTS: int = Field(default=50, ge=0)
    WEEKLY_TARGET_DAYS: int = Field(default=5, ge=1, le=7)
    WEEKLY_COMMITMENT_HOURS: float = Field(default=5, ge=0)


@lru_cache()
def get_settings() -> Settings:
    """Return a cached singleton `Settings` instance."""
    return Settings()
