"""
scalargrad configuration.

Registry location and default training hyperparameters are set here.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass
class ScalargradConfig:
    """Configuration for the model registry and default training runs."""

    # Model registry (sqlite)
    db_path: Path

    # Training defaults (used when a caller doesn't override them)
    learning_rate: float = 0.01
    epochs: int = 100
    batch_size: int = 32
    log_every: Optional[int] = None  # None = about ten reports per run
    seed: Optional[int] = None  # None = unseeded shuffling and init

    def __post_init__(self):
        self.db_path = Path(self.db_path)
        if self.learning_rate <= 0:
            raise ValueError(f"learning_rate must be positive, got {self.learning_rate}")
        if self.epochs < 1:
            raise ValueError(f"epochs must be positive, got {self.epochs}")
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")
