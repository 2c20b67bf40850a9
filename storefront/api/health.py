"""
Health check endpoint.
"""

from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ..database import get_database_manager

health_router = APIRouter(tags=["health"])


@health_router.get("/health")
async def health_check(request: Request) -> JSONResponse:
    """Report database connectivity and current chat presence."""
    database_ok = await get_database_manager().check_connection()
    coordinator = getattr(request.app.state, "chat_coordinator", None)
    body: dict[str, Any] = {
        "status": "healthy" if database_ok else "degraded",
        "database": "connected" if database_ok else "unavailable",
        "chat": {
            "connected_users": coordinator.presence_count() if coordinator else 0,
            "connections": coordinator.connections.connection_count() if coordinator else 0,
        },
    }
    return JSONResponse(status_code=200 if database_ok else 503, content=body)
