from pydantic import field_validator
from pydantic_settings import BaseSettings
from slowapi import Limiter
from slowapi.util import get_remote_address


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8080
    cors_origins: list[str] = ["http://localhost:8080", "http://127.0.0.1:8080"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_cors(cls, v: object) -> list[str]:
        """Accept both a JSON list and a comma-separated string for CORS_ORIGINS."""
        if isinstance(v, str):
            return [o.strip() for o in v.split(",") if o.strip()]
        return v  # type: ignore[return-value]

    log_level: str = "INFO"

    # Chat stream
    stream_ping_interval: float = 15.0  # seconds of silence before a keepalive comment
    max_queue_size: int = 0  # per-subscriber backlog; 0 = unbounded, otherwise slow readers are dropped
    send_rate_limit: str = "30/minute"

    # Error reporting (empty DSN disables Sentry)
    sentry_dsn: str = ""
    environment: str = "development"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


settings = Settings()

limiter = Limiter(key_func=get_remote_address)
