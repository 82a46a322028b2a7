"""Server configuration via environment variables."""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """scalargrad-server configuration. All values from env vars or .env file."""

    # Server
    host: str = "127.0.0.1"
    port: int = 18791
    log_level: str = "info"

    # Auth
    api_key: str = ""  # empty = no auth required

    # Model registry
    db_path: str = "scalargrad.db"

    # Training defaults for requests that omit them
    learning_rate: float = 0.01
    epochs: int = 100
    batch_size: int = 32
    seed: Optional[int] = None

    # Largest dataset accepted in a single train request
    max_samples: int = 10_000

    model_config = {"env_prefix": "SCALARGRAD_", "env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def db_path_resolved(self) -> Path:
        return Path(self.db_path).resolve()


# Singleton: import this everywhere instead of creating new Settings()
settings = Settings()
