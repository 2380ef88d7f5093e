"""API 엔드포인트 패키지 - export only."""

from .routes import health_router, pause_router, get_orchestrator, get_publisher, shutdown_orchestrator

__all__ = ["health_router", "pause_router", "get_orchestrator", "get_publisher", "shutdown_orchestrator"]
