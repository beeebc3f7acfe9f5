from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from pydantic import field_validator, model_validator
from typing import Annotated, Any, ClassVar
import json
from pathlib import Path
import os


class Settings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore", case_sensitive=True)

    API_PREFIX: str = "/api"

    # JWT configuration (provide a fallback for local development)
    SECRET_KEY: str = "fallback_secret_for_dev_only"
    ALGORITHM: str = "HS256"
    # Tokens are long-lived: seven days
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 7 * 24 * 60

    # Use an absolute path so running the app from different directories
    # (e.g., repo root or backend/) always resolves the same DB file.
    BASE_DIR: ClassVar[Path] = Path(__file__).resolve().parents[2]
    SQLALCHEMY_DATABASE_URL: str = f"sqlite:///{BASE_DIR / 'marketplace.db'}"

    # Redis connection URL for caching and login throttling.
    # Empty / "disabled" switches to a no-op client.
    REDIS_URL: str = "redis://localhost:6379/0"
    SERVICE_LIST_CACHE_TTL: int = 30

    # NoDecode: the validator below accepts JSON or a comma list
    CORS_ORIGINS: Annotated[list[str], NoDecode] = ["http://localhost:3000"]
    CORS_ALLOW_ALL: bool = False

    # Login rate limiting
    MAX_LOGIN_ATTEMPTS: int = 5
    LOGIN_ATTEMPT_WINDOW: int = 300  # seconds

    LOG_LEVEL: str = "INFO"
    ENABLE_CONSOLE_TRACING: bool = False

    # Reject reservations whose start lies in the past. Off by default; the
    # web client already guards this.
    BOOKING_REQUIRE_FUTURE_START: bool = False

    @field_validator("CORS_ORIGINS", mode="before")
    def split_origins(cls, v: Any) -> list[str]:
        """Parse comma-separated or JSON list of origins from environment."""
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return parsed
            except json.JSONDecodeError:
                pass
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("SECRET_KEY", "REDIS_URL", "API_PREFIX", mode="before")
    def strip_whitespace(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @model_validator(mode="after")
    def allow_all_if_requested(cls, values: "Settings") -> "Settings":
        if values.CORS_ALLOW_ALL:
            values.CORS_ORIGINS = ["*"]
        return values

    @model_validator(mode="after")
    def normalize_api_prefix(cls, values: "Settings") -> "Settings":
        prefix = values.API_PREFIX.rstrip("/")
        if prefix and not prefix.startswith("/"):
            prefix = f"/{prefix}"
        values.API_PREFIX = prefix
        return values


def load_settings() -> "Settings":
    return Settings(_env_file=os.getenv("ENV_FILE", str(Path(__file__).resolve().parents[3] / ".env")))


settings = load_settings()
