"""헬스 체크 엔드포인트"""
from datetime import datetime

from fastapi import APIRouter, Depends

from pauseshop import __version__
from pauseshop.api.routes.pause_routes import get_orchestrator
from pauseshop.engine import DiscoveryOrchestrator
from pauseshop.schemas.analysis_schema import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(orchestrator: DiscoveryOrchestrator = Depends(get_orchestrator)):
    """
    헬스 체크 엔드포인트

    - 서버 상태
    - 진행 중인 pause 수
    """
    return HealthResponse(
        status="ok",
        version=__version__,
        active_pauses=orchestrator.registry.active_count,
        timestamp=datetime.now(),
    )
