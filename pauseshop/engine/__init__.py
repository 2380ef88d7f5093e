"""Engine Layer - 일시정지 단위 분석/검색 오케스트레이션

- DiscoveryOrchestrator: 캡처 → 스트리밍 분석 → 상품별 검색 파이프라인
- CancellationRegistry: pause_id별 취소 토큰
- AnalysisClient: 분석 서버 SSE 클라이언트
- NotificationPublisher: UI 알림 게시
"""

from .analysis_client import AnalysisClient, AnalysisEvent, AnalysisEventKind, parse_sse_line
from .cancellation import CancellationRegistry, CancellationToken
from .notifications import InMemoryPublisher, NotificationPublisher
from .orchestrator import (
    DiscoveryOrchestrator,
    FrameCapturer,
    OrchestratorPauseListener,
    StaticFrameCapturer,
)

__all__ = [
    "AnalysisClient",
    "AnalysisEvent",
    "AnalysisEventKind",
    "parse_sse_line",
    "CancellationRegistry",
    "CancellationToken",
    "InMemoryPublisher",
    "NotificationPublisher",
    "DiscoveryOrchestrator",
    "FrameCapturer",
    "OrchestratorPauseListener",
    "StaticFrameCapturer",
]
