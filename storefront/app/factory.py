"""
FastAPI application factory for the storefront server.

This module handles FastAPI app creation, middleware configuration,
and router registration.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..api.chat import chat_router
from ..api.health import health_router
from ..api.products import product_router
from ..api.real_time import realtime_router
from ..auth.endpoints import auth_router
from ..config import get_config
from ..structured_logging.enhanced_logging_config import get_logger
from .error_handlers import register_error_handlers
from .lifespan import lifespan

logger = get_logger(__name__)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: The configured FastAPI application instance
    """
    app = FastAPI(
        title="Storefront API",
        description="Product catalog with JWT authentication and a shared real-time chat room",
        version="0.1.0",
        lifespan=lifespan,
    )

    config = get_config()
    cors = config.cors
    logger.info(
        "CORS configuration",
        allow_origins=cors.allow_origins,
        allow_methods=cors.allow_methods,
        allow_headers=cors.allow_headers,
        allow_credentials=cors.allow_credentials,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors.allow_origins,
        allow_credentials=cors.allow_credentials,
        allow_methods=[m.upper() for m in cors.allow_methods],
        allow_headers=cors.allow_headers,
    )

    register_error_handlers(app, include_details=config.logging.environment != "production")

    app.include_router(auth_router)
    app.include_router(product_router)
    app.include_router(chat_router)
    app.include_router(realtime_router)
    app.include_router(health_router)

    return app
