"""
scalargrad: scalar reverse-mode autodiff with a small neural-network layer.

Builds expression graphs out of scalar Values, backpropagates through them,
and trains neuron/layer/network models with mini-batch SGD.

Usage:
    from scalargrad.core import Value, BinaryClassifier, Trainer, LOSSES

    model = BinaryClassifier(2, [8, 8])
    trainer = Trainer(model, LOSSES["binary_cross_entropy"], learning_rate=0.1)
    trainer.train(samples)

The model registry (and the HTTP server built on it) needs a config:

    import scalargrad
    from scalargrad.config import ScalargradConfig

    scalargrad.init(ScalargradConfig(db_path=Path("models.db")))
"""

import logging
import threading

from scalargrad.config import ScalargradConfig

__version__ = "0.1.0"

_log = logging.getLogger(__name__)

_config: ScalargradConfig | None = None
_initialized: bool = False
_init_lock = threading.Lock()


def init(config: ScalargradConfig) -> None:
    """
    Initialize scalargrad with configuration and create the registry schema.

    Only needed for the model registry; the autograd engine, models and
    trainer work without it.
    """
    global _config, _initialized

    with _init_lock:
        _config = config
        _initialized = True

    from scalargrad.core.db import init_db
    init_db()
    _log.info("scalargrad initialized: db=%s", config.db_path)


def get_config() -> ScalargradConfig:
    """Get the current config. Raises if not initialized."""
    if not _initialized or _config is None:
        raise RuntimeError("scalargrad not initialized. Call scalargrad.init() first.")
    return _config
