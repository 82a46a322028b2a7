"""scalargrad-server: HTTP API for training and serving scalargrad models."""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI

from scalargrad.server.auth import require_auth
from scalargrad.server.config import settings

logger = logging.getLogger("scalargrad_server")


def _init_scalargrad():
    """Initialize scalargrad with the configured registry and defaults."""
    import scalargrad
    from scalargrad.config import ScalargradConfig

    config = ScalargradConfig(
        db_path=settings.db_path_resolved,
        learning_rate=settings.learning_rate,
        epochs=settings.epochs,
        batch_size=settings.batch_size,
        seed=settings.seed,
    )

    scalargrad.init(config)
    logger.info(
        "scalargrad initialized: db=%s, lr=%s, epochs=%d, batch_size=%d",
        config.db_path, config.learning_rate, config.epochs, config.batch_size,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    _init_scalargrad()
    logger.info("scalargrad-server ready on %s:%d", settings.host, settings.port)
    yield
    logger.info("scalargrad-server shutting down")


app = FastAPI(
    title="scalargrad-server",
    description="HTTP API for training and serving scalargrad models",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if not settings.api_key else None,
    openapi_url="/openapi.json" if not settings.api_key else None,
)


# --- Register routers ---

from scalargrad.server.routers import health, models  # noqa: E402

app.include_router(
    models.router, prefix="/v1/models", tags=["models"],
    dependencies=[Depends(require_auth)],
)

# Health router: /health is public, /stats is protected at the route level
app.include_router(health.router, prefix="/v1", tags=["health"])


def run():
    """Entry point for `scalargrad-server` CLI command."""
    import uvicorn

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    uvicorn.run(
        "scalargrad.server.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
    )


if __name__ == "__main__":
    run()
