"""
FastAPI application entrypoint for the SumUp connector.
"""

from __future__ import annotations

from http import HTTPStatus

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import router as api_router
from app.core.config import get_settings
from app.core.logging import configure_logging

CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]
CORS_ALLOW_METHODS = ["GET", "POST", "DELETE", "OPTIONS"]


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="SumUp Connector",
        version="0.1.0",
        description="REST API for connecting SumUp accounts and syncing transactions.",
    )
    # Browser clients call every endpoint cross-origin, pre-flight included.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=CORS_ALLOW_HEADERS,
    )
    app.include_router(api_router, prefix="/api")

    # OPTIONS without the pre-flight headers never reaches the CORS middleware.
    @app.options("/api/{path:path}", include_in_schema=False)
    async def options_fallback(path: str) -> Response:
        return Response(
            status_code=HTTPStatus.OK,
            headers={
                "Access-Control-Allow-Origin": "*",
                "Access-Control-Allow-Methods": ", ".join(CORS_ALLOW_METHODS),
                "Access-Control-Allow-Headers": ", ".join(CORS_ALLOW_HEADERS),
            },
        )

    return app


app = create_app()

__all__ = ["app", "create_app"]
