"""
FastAPI Application Entry Point.

Usage:
    uvicorn tts_gateway.main:app --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

from fastapi import FastAPI

from tts_gateway.api.routes import router
from tts_gateway.core.logging import configure_logging


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Services are created lazily on the first request for each voice, so
    the app starts without credentials and reports NOT_CONFIGURED until
    DASHSCOPE_API_KEY (or provider.api_key) is set.
    """
    configure_logging()

    app = FastAPI(title="tts-gateway")
    app.include_router(router)
    return app


# Global application instance for ASGI servers
app = create_app()
