import logging
import logging.handlers
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # NuGet feed
    nuget_feed_url: str = os.getenv("NUGET_FEED_URL", "https://api.nuget.org/v3/index.json")
    nuget_username: str | None = os.getenv("NUGET_USERNAME")
    nuget_password: str | None = os.getenv("NUGET_PASSWORD")  # password or PAT
    nuget_timeout: float = float(os.getenv("NUGET_TIMEOUT", "30"))

    # Cache
    cache_database_path: str = os.getenv("CACHE_DATABASE_PATH", "nuget_cache.db")
    cache_ttl_minutes: int = int(os.getenv("CACHE_TTL_MINUTES", "60"))
    cache_max_retry_attempts: int = int(os.getenv("CACHE_MAX_RETRY_ATTEMPTS", "3"))
    cache_retry_delay_ms: int = int(os.getenv("CACHE_RETRY_DELAY_MS", "100"))

    # Eviction
    eviction_initial_delay_seconds: float = float(os.getenv("EVICTION_INITIAL_DELAY_SECONDS", "15"))

    # Analysis
    analysis_max_concurrency: int = int(os.getenv("ANALYSIS_MAX_CONCURRENCY", "8"))

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str | None = os.getenv("LOG_FILE")

    # API
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    api_reload: bool = os.getenv("API_RELOAD", "false").lower() == "true"

    @property
    def cache_ttl_seconds(self) -> int:
        """Default cache entry lifetime in seconds."""
        return self.cache_ttl_minutes * 60

    @property
    def has_credentials(self) -> bool:
        """Check if feed credentials are configured.

        Returns:
            True when a password or personal access token is set
        """
        return bool(self.nuget_password)

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if not self.nuget_feed_url:
            raise ValueError("NUGET_FEED_URL must not be empty")

        if self.cache_ttl_minutes <= 0:
            raise ValueError(f"CACHE_TTL_MINUTES must be positive, got {self.cache_ttl_minutes}")

        if self.cache_max_retry_attempts < 1:
            raise ValueError(
                f"CACHE_MAX_RETRY_ATTEMPTS must be at least 1, got {self.cache_max_retry_attempts}"
            )

        if self.analysis_max_concurrency < 1:
            raise ValueError(
                f"ANALYSIS_MAX_CONCURRENCY must be at least 1, got {self.analysis_max_concurrency}"
            )

        if logging.getLevelName(self.log_level.upper()) not in range(0, 51):
            raise ValueError(f"LOG_LEVEL is not a valid logging level: {self.log_level}")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


def configure_logging(config: Settings | None = None) -> None:
    """Install console (and optional daily rotating file) log handlers.

    Args:
        config: Settings to read the level and log file from. Defaults to the global settings.
    """
    config = config or settings
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if config.log_file:
        handlers.append(
            logging.handlers.TimedRotatingFileHandler(
                config.log_file,
                when="midnight",
                backupCount=7,
                encoding="utf-8",
            )
        )

    logging.basicConfig(
        level=config.log_level.upper(),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
