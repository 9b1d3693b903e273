"""Clarity configuration — loaded from .env via pydantic-settings."""

from pydantic_settings import BaseSettings
from pydantic import Field


class ClaritySettings(BaseSettings):
    """All Clarity configuration. Reads from .env file and environment variables."""

    # --- Research jobs ---
    max_query_length: int = Field(
        default=500,
        description="Longest accepted research query, in characters",
    )
    research_timeout_seconds: float = Field(
        default=300.0,
        description="Upper bound on how long await_completion waits for the collector",
    )

    # --- Redis (job records + version history) ---
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis URL for the job and history stores",
    )

    # --- Export ---
    export_wrap_width: int = Field(
        default=95,
        description="Characters per line in the paginated document export",
    )
    export_lines_per_page: int = Field(
        default=64,
        description="Text lines per page in the paginated document export",
    )

    # --- Logging ---
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(
        default="console",
        description="Log format: 'console' for dev, 'json' for production",
    )

    # --- User ---
    default_user_id: str = Field(default="default", description="Default user ID")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


# Singleton — import this everywhere
settings = ClaritySettings()
