"""API route modules."""

from routes.checkin_routes import router as checkin_router
from routes.health_routes import router as health_router

__all__ = [
    "checkin_router",
    "health_router",
]
