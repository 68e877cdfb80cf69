"""
Google Meet broker — application entry point.
"""

from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.middleware import register_exception_handlers, register_middleware
from api.routes import router as api_router
from config.settings import config
from connectors.routes import router as oauth_router
from utils.logging_setup import configure_logging, uvicorn_log_config

configure_logging(config.debug)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title="Google Meet Broker",
        version="1.0.0",
        description="Links Google Calendar to application users and creates Meet links.",
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_middleware(app)
    register_exception_handlers(app)

    # Routes
    app.include_router(oauth_router, prefix="/auth/google")
    app.include_router(api_router)

    @app.on_event("startup")
    async def on_startup():
        if not config.is_google_configured():
            logger.warning("GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET not set — OAuth will fail")
        logger.info("CORS origins: %s", config.allowed_origins())
        logger.info("Meet provisioning mode: %s", config.meet_mode)
        logger.info("Application ready to accept requests.")

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
        log_config=uvicorn_log_config(),
    )
