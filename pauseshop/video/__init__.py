"""비디오 일시정지 감지 (상태 머신, 사이트 핸들러, 스케줄러)."""

from .element import ContainerNode, Document, EventEmitter, InteractionEvent, VideoElement
from .scheduler import AsyncioScheduler, Scheduler, TimerHandle
from .seeking_state import PausePhase, SeekingState, VideoTimingConfig
from .site_handlers import DefaultHandler, SiteHandlerRegistry, SiteKind, YouTubeHandler
from .state_machine import PauseListener, PauseSeekStateMachine, VideoDetector

__all__ = [
    "ContainerNode",
    "Document",
    "EventEmitter",
    "InteractionEvent",
    "VideoElement",
    "AsyncioScheduler",
    "Scheduler",
    "TimerHandle",
    "PausePhase",
    "SeekingState",
    "VideoTimingConfig",
    "DefaultHandler",
    "SiteHandlerRegistry",
    "SiteKind",
    "YouTubeHandler",
    "PauseListener",
    "PauseSeekStateMachine",
    "VideoDetector",
]
