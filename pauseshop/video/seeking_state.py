"""일시정지/탐색 판별 상태

관찰 중인 비디오 1개당 SeekingState 1개. 비디오가 바뀌면 통째로 새로 만듭니다.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from pauseshop.core.config import settings
from pauseshop.core.exceptions import InvalidConfigException

from .scheduler import TimerHandle


class PausePhase(str, Enum):
    IDLE = "idle"
    SEEKING = "seeking"
    PAUSE_DEBOUNCING = "pause_debouncing"
    CAPTURED = "captured"


@dataclass
class VideoTimingConfig:
    """상태 머신 타이밍 설정 (ms, 시간 차이는 초)"""

    default_debounce_ms: int = 300
    interaction_debounce_ms: int = 5000
    seek_settle_ms: int = 500
    seek_grace_ms: int = 1500
    time_jump_threshold_s: float = 1.0
    near_end_threshold_s: float = 0.25

    def __post_init__(self):
        for name in ("default_debounce_ms", "interaction_debounce_ms", "seek_settle_ms", "seek_grace_ms"):
            if getattr(self, name) < 0:
                raise InvalidConfigException(name, "must be >= 0")
        if self.time_jump_threshold_s <= 0:
            raise InvalidConfigException("time_jump_threshold_s", "must be positive")

    @classmethod
    def from_settings(cls, **overrides) -> "VideoTimingConfig":
        values = dict(
            default_debounce_ms=settings.video_default_debounce_ms,
            interaction_debounce_ms=settings.video_interaction_debounce_ms,
            seek_settle_ms=settings.video_seek_settle_ms,
            seek_grace_ms=settings.video_seek_grace_ms,
            time_jump_threshold_s=settings.video_time_jump_threshold_s,
            near_end_threshold_s=settings.video_near_end_threshold_s,
        )
        values.update(overrides)
        return cls(**values)


@dataclass
class SeekingState:
    is_seeking: bool = False
    last_seek_time_ms: float = 0.0
    seek_settle_timer: Optional[TimerHandle] = None
    pause_confirm_timer: Optional[TimerHandle] = None
    seek_grace_timer: Optional[TimerHandle] = None
    inferred_seeked_timer: Optional[TimerHandle] = None
    previous_current_time: float = 0.0
    user_interaction_detected: bool = False
    last_interaction_time_ms: float = 0.0
    current_pause_id: Optional[str] = None
    inferred_seek: bool = False
    phase: PausePhase = PausePhase.IDLE

    def cancel_timer(self, name: str) -> None:
        handle = getattr(self, name)
        if handle is not None:
            handle.cancel()
            setattr(self, name, None)

    def cancel_all_timers(self) -> None:
        for name in ("seek_settle_timer", "pause_confirm_timer", "seek_grace_timer", "inferred_seeked_timer"):
            self.cancel_timer(name)

    def snapshot(self) -> Dict[str, Any]:
        """로그/디버그용 직렬화 (타이머는 대기 여부만)"""
        return {
            "phase": self.phase.value,
            "is_seeking": self.is_seeking,
            "last_seek_time_ms": self.last_seek_time_ms,
            "previous_current_time": self.previous_current_time,
            "user_interaction_detected": self.user_interaction_detected,
            "last_interaction_time_ms": self.last_interaction_time_ms,
            "current_pause_id": self.current_pause_id,
            "inferred_seek": self.inferred_seek,
            "seek_settle_pending": self.seek_settle_timer is not None,
            "pause_confirm_pending": self.pause_confirm_timer is not None,
            "seek_grace_pending": self.seek_grace_timer is not None,
            "inferred_seeked_pending": self.inferred_seeked_timer is not None,
        }
