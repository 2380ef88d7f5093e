"""API routes package."""

from .health_routes import router as health_router
from .pause_routes import router as pause_router, get_orchestrator, get_publisher, shutdown_orchestrator

__all__ = ["health_router", "pause_router", "get_orchestrator", "get_publisher", "shutdown_orchestrator"]
