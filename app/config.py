import logging
import sys
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class RateLimitRule(BaseModel):
    """Fixed-window limit for one operation."""

    window_seconds: int
    max_count: int


DEFAULT_RATE_LIMITS: dict[str, RateLimitRule] = {
    "create_game": RateLimitRule(window_seconds=60, max_count=5),
    "join_game": RateLimitRule(window_seconds=60, max_count=10),
    "submit_set_clip": RateLimitRule(window_seconds=60, max_count=20),
    "judge_set": RateLimitRule(window_seconds=60, max_count=20),
    "submit_response_clip": RateLimitRule(window_seconds=60, max_count=20),
    "judge_response": RateLimitRule(window_seconds=60, max_count=20),
    "self_fail_set": RateLimitRule(window_seconds=60, max_count=20),
    "self_fail_response": RateLimitRule(window_seconds=60, max_count=20),
}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Supabase (identity provider, JWKS only)
    SUPABASE_URL: str = "http://localhost:54321"

    # App config
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]
    DEBUG: bool = False

    # Game store
    GAME_STORE_BACKEND: Literal["redis", "memory"] = "redis"
    TX_MAX_ATTEMPTS: int = 5
    CODE_MAX_ATTEMPTS: int = 10
    CLIP_EXTENSIONS: list[str] = ["mp4", "mov", "webm"]

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMITS: dict[str, RateLimitRule] = {}

    # Upstash Redis
    UPSTASH_REDIS_REST_URL: str | None = None
    UPSTASH_REDIS_REST_TOKEN: str | None = None

    # WebSocket config
    WS_HEARTBEAT_INTERVAL: int = 30
    WS_CONNECTION_TIMEOUT: int = 120

    @field_validator("UPSTASH_REDIS_REST_URL")
    @classmethod
    def validate_redis_url(cls, v: str | None) -> str | None:
        if v is not None and not v.startswith("https://"):
            raise ValueError("UPSTASH_REDIS_REST_URL must be a valid HTTPS URL")
        return v

    @field_validator("CLIP_EXTENSIONS")
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        return [ext.lower().lstrip(".") for ext in v if ext.strip()]

    @model_validator(mode="after")
    def validate_redis_backend(self) -> "Settings":
        if self.GAME_STORE_BACKEND == "redis":
            if not self.UPSTASH_REDIS_REST_URL:
                raise ValueError("UPSTASH_REDIS_REST_URL is required for the redis store")
            if not self.UPSTASH_REDIS_REST_TOKEN or not self.UPSTASH_REDIS_REST_TOKEN.strip():
                raise ValueError("UPSTASH_REDIS_REST_TOKEN cannot be empty")
        return self

    @property
    def supabase_jwks_url(self) -> str:
        return f"{self.SUPABASE_URL}/auth/v1/.well-known/jwks.json"

    def rate_limit_for(self, operation: str) -> RateLimitRule | None:
        return self.RATE_LIMITS.get(operation) or DEFAULT_RATE_LIMITS.get(operation)


def configure_logging(debug: bool = False) -> None:
    """Configure logging for the application."""
    log_level = logging.DEBUG if debug else logging.INFO
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    configure_logging(settings.DEBUG)
    logger.info("Settings loaded successfully")
    logger.debug("Game store backend: %s", settings.GAME_STORE_BACKEND)
    logger.debug("JWKS URL: %s", settings.supabase_jwks_url)
    return settings
