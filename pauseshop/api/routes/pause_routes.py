"""Pause Routes - 브라우저 쪽이 쓰는 메시지 표면

registerPause / cancelPause / 캡처 프레임 분석 요청을 오케스트레이터로 위임하는 Translator입니다.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends

from pauseshop.core.logging import logger
from pauseshop.engine import DiscoveryOrchestrator, InMemoryPublisher, StaticFrameCapturer
from pauseshop.schemas.analysis_schema import (
    FrameAnalysisRequest,
    FrameAnalysisResponse,
    Notification,
    PauseResponse,
    RegisterPauseRequest,
)

router = APIRouter(prefix="/api/v1", tags=["pause"])

# 싱글톤
_publisher: Optional[InMemoryPublisher] = None
_orchestrator: Optional[DiscoveryOrchestrator] = None


def get_publisher() -> InMemoryPublisher:
    """InMemoryPublisher 싱글톤"""
    global _publisher
    if _publisher is None:
        _publisher = InMemoryPublisher()
    return _publisher


def get_orchestrator(
    publisher: InMemoryPublisher = Depends(get_publisher),
) -> DiscoveryOrchestrator:
    """DiscoveryOrchestrator 싱글톤"""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = DiscoveryOrchestrator(publisher=publisher)
    return _orchestrator


async def shutdown_orchestrator() -> None:
    """앱 종료 시 진행 중인 분석 취소 + 분석 세션 정리"""
    global _orchestrator
    if _orchestrator is None:
        return
    await _orchestrator.shutdown()
    await _orchestrator.analysis_client.close()
    _orchestrator = None


@router.post("/pauses", response_model=PauseResponse)
async def register_pause(
    request: RegisterPauseRequest,
    orchestrator: DiscoveryOrchestrator = Depends(get_orchestrator),
):
    """일시정지 등록 (같은 범위의 이전 분석은 취소)"""
    orchestrator.register_pause(request.pause_id, request.scope)
    logger.info(f"[API] Pause registered: pause_id={request.pause_id}, scope={request.scope}")
    return PauseResponse(success=True, pause_id=request.pause_id, message="registered")


@router.delete("/pauses/{pause_id}", response_model=PauseResponse)
async def cancel_pause(
    pause_id: str,
    orchestrator: DiscoveryOrchestrator = Depends(get_orchestrator),
):
    """분석 취소 (재생 재개 / 사용자 취소)"""
    cancelled = orchestrator.cancel_pause(pause_id)
    logger.info(f"[API] Cancel requested: pause_id={pause_id}, cancelled={cancelled}")
    return PauseResponse(
        success=cancelled,
        pause_id=pause_id,
        message="cancelled" if cancelled else "not registered",
    )


@router.post("/pauses/{pause_id}/frame", response_model=FrameAnalysisResponse)
async def analyze_frame(
    pause_id: str,
    request: FrameAnalysisRequest,
    orchestrator: DiscoveryOrchestrator = Depends(get_orchestrator),
    publisher: InMemoryPublisher = Depends(get_publisher),
):
    """캡처된 프레임으로 파이프라인 실행 후 결과와 알림 반환"""
    logger.info(f"[API] Frame analysis request: pause_id={pause_id} (image length: {len(request.image_data)})")
    outcome = await orchestrator.handle_pause_event(
        pause_id,
        capturer=StaticFrameCapturer(request.image_data),
        scope=request.scope,
    )
    return FrameAnalysisResponse(outcome=outcome, notifications=publisher.history(pause_id))


@router.get("/pauses/{pause_id}/notifications", response_model=List[Notification])
async def get_notifications(
    pause_id: str,
    publisher: InMemoryPublisher = Depends(get_publisher),
):
    """pause_id로 게시된 알림 목록"""
    return publisher.history(pause_id)
