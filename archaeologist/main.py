"""Repo Archaeologist — FastAPI service entry point."""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI

from archaeologist.api.routes import router
from archaeologist.api.services import Services
from archaeologist.config import settings

logging.basicConfig(
    level=settings.log_level,
    format='{"timestamp":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s","message":"%(message)s"}',
    stream=sys.stdout,
)
logger = logging.getLogger("archaeologist")


def create_app(services: Services | None = None) -> FastAPI:
    """Build the app. Collaborators are created at startup unless supplied."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Initializing Repo Archaeologist...")
        app.state.services = services or Services.from_settings(settings)
        logger.info(
            "Repo Archaeologist ready: provider=%s model=%s on %s:%d",
            settings.llm_provider,
            settings.llm_model,
            settings.host,
            settings.port,
        )

        yield

        if services is None:
            await app.state.services.close()
        logger.info("Repo Archaeologist shut down")

    app = FastAPI(
        title="Repo Archaeologist",
        description="Explains why a piece of code exists from its git and code-review history",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.include_router(router)

    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "services_ready": getattr(app.state, "services", None) is not None,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
