from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .api import chat, health, webhooks
from .config import Settings, settings
from .container import Container, build_container
from .logging_config import setup_logging


def create_app(app_settings: Optional[Settings] = None, container: Optional[Container] = None) -> FastAPI:
    """Build the app. Tests pass a prebuilt container with fake collaborators."""
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if container is None:
            setup_logging(app_settings.log_level)
        wired = container or build_container(app_settings)
        app.state.container = wired
        wired.start()
        try:
            yield
        finally:
            await wired.close()

    app = FastAPI(
        title="TrustBridge Transfer API",
        description="Chat-driven cross-border transfer orchestration",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(chat.router, tags=["Chat"])
    app.include_router(webhooks.router, tags=["Webhooks"])

    @app.get("/")
    async def root():
        """Root endpoint with basic info"""
        return {
            "name": "TrustBridge Transfer API",
            "version": __version__,
            "docs": "/docs",
            "health": "/healthz",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "trustbridge.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower()
    )
