"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with HOUSEBOARD_ prefix.
No config files — everything has a sensible local default, so a bare
`houseboard serve` runs against a SQLite file next to the working directory.

Learn: list-valued settings (cors_origins, generator_command) are read from
the environment as JSON, e.g.
    HOUSEBOARD_GENERATOR_COMMAND='["python", "data_gen.py"]'
"""

import sys

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


def _default_generator_command() -> list[str]:
    # The bundled emitter, run with whatever interpreter runs the server.
    return [sys.executable, "-u", "-m", "houseboard.generator.emitter"]


class Settings(BaseSettings):
    """All app configuration. Set via HOUSEBOARD_* env vars."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./houseboard.db"
    auto_create_schema: bool = True  # create tables at startup (alembic otherwise)

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 5000

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Generator process
    generator_command: list[str] = Field(default_factory=_default_generator_command)
    generator_cwd: str | None = None
    generator_autostart: bool | None = None  # None = autostart outside production
    generator_autostart_delay_seconds: float = 2.0
    generator_stop_timeout_seconds: float = 5.0

    # Real-time fan-out
    subscriber_queue_size: int = 100

    # Query surface
    recent_events_default_limit: int = 50
    recent_events_max_limit: int = 500

    model_config = {"env_prefix": "HOUSEBOARD_"}

    @model_validator(mode="after")
    def validate_generator_settings(self):
        """A generator needs something to run and a positive stop timeout."""
        if not self.generator_command:
            raise ValueError("HOUSEBOARD_GENERATOR_COMMAND must not be empty")
        if self.generator_stop_timeout_seconds <= 0:
            raise ValueError("HOUSEBOARD_GENERATOR_STOP_TIMEOUT_SECONDS must be positive")
        if self.subscriber_queue_size < 1:
            raise ValueError("HOUSEBOARD_SUBSCRIBER_QUEUE_SIZE must be at least 1")
        return self

    @property
    def should_autostart_generator(self) -> bool:
        if self.generator_autostart is not None:
            return self.generator_autostart
        return self.environment != "production"


# Singleton: import this everywhere
settings = Settings()
