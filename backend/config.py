"""Application configuration management."""
from decimal import Decimal
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from sqlalchemy.engine.url import make_url, URL
from typing import Optional
import logging

SQLITE_LOCAL_URL = "sqlite+aiosqlite:///./quizarena.db"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = SQLITE_LOCAL_URL
    db_pool_size: int = 5
    db_max_overflow: int = 10

    # Redis (optional, falls back to in-memory locks)
    redis_url: str = ""

    # Application
    frontend_url: str = "http://localhost:5173"
    environment: str = "development"
    secret_key: str = "dev-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    access_token_cookie_name: str = "quizarena_access_token"

    # Wagering
    platform_fee_percent: int = 10  # Share of every collected pool kept by the platform
    min_level_questions: int = 5  # Levels with fewer questions cannot host a game
    solo_question_cap: int = 10
    duel_question_cap: int = 10
    league_question_cap: int = 15
    league_min_players: int = 3
    league_max_players: int = 50
    league_bracket_percents: list[int] = [45, 25, 15, 15]  # Ranks 1..4 of the distributable pool
    tie_time_tolerance_seconds: float = 0.5
    max_entry_amount: Decimal = Decimal("1000000")
    currency_symbol: str = "₦"  # Used in notification text only

    # Settlement
    settlement_lock_timeout_seconds: int = 30
    settlement_max_retries: int = 3
    settlement_retry_base_delay_seconds: float = 0.2
    pending_settlement_sweep_minutes: int = 5

    # History
    history_default_page_size: int = 20
    history_max_page_size: int = 100

    @model_validator(mode="after")
    def validate_all_config(self):
        """Validate wagering and security configuration and normalize Postgres URLs."""
        logger = logging.getLogger(__name__)

        # Security validation
        if self.environment == "production":
            if self.secret_key == "dev-secret-key-change-in-production":
                raise ValueError("secret_key must be changed from default value in production")

        if self.jwt_algorithm not in ["HS256", "HS384", "HS512"]:
            raise ValueError(f"Unsupported JWT algorithm: {self.jwt_algorithm}. Use HS256, HS384, or HS512.")

        # Wagering validation
        if not 0 <= self.platform_fee_percent < 100:
            raise ValueError("platform_fee_percent must be between 0 and 99")

        if sum(self.league_bracket_percents) != 100:
            raise ValueError(
                f"league_bracket_percents must sum to 100, got {sum(self.league_bracket_percents)}"
            )

        if self.league_min_players < 3 or self.league_max_players < self.league_min_players:
            raise ValueError("league player bounds must satisfy 3 <= min <= max")

        if self.min_level_questions < 1:
            raise ValueError("min_level_questions must be at least 1")

        if self.settlement_max_retries < 0:
            raise ValueError("settlement_max_retries must not be negative")

        # Database URL normalization
        url = self.database_url
        if not url:
            logger.warning("Empty DATABASE_URL, using SQLite fallback")
            self.database_url = SQLITE_LOCAL_URL
            return self

        parsed: Optional[URL] = None
        try:
            parsed = make_url(url)
        except Exception as e:  # pragma: no cover - defensive fallback
            logger.error(f"Failed to parse DATABASE_URL: {e}")
            logger.warning("Invalid DATABASE_URL; falling back to default sqlite database.")
            self.database_url = SQLITE_LOCAL_URL
            return self

        drivername = parsed.drivername
        if drivername.startswith("postgres") and "+asyncpg" not in drivername:
            parsed = parsed.set(drivername="postgresql+asyncpg")
            logger.info(f"Driver normalized: {drivername} -> {parsed.drivername}")

        # Use render_as_string to properly re-encode special characters in password
        self.database_url = parsed.render_as_string(hide_password=False)

        return self

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
