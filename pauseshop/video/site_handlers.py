"""사이트별 일시정지 판별 핸들러

닫힌 변형(SiteKind)마다 핸들러 클래스 1개. 레지스트리가 hostname으로
처음 적용 가능한 핸들러를 고르고, 없으면 기본 핸들러를 씁니다.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, List, Optional, Sequence, Union

from pauseshop.core.logging import logger

from .element import Document, InteractionEvent
from .scheduler import Scheduler, TimerHandle
from .seeking_state import SeekingState, VideoTimingConfig


Cleanup = Callable[[], None]


class SiteKind(str, Enum):
    DEFAULT = "default"
    YOUTUBE = "youtube"


class DefaultHandler:
    """일반 사이트: 표준 미디어 이벤트만으로 충분"""

    kind = SiteKind.DEFAULT

    def __init__(self, timing: Optional[VideoTimingConfig] = None) -> None:
        self.timing = timing or VideoTimingConfig.from_settings()

    def is_applicable(self, hostname: str) -> bool:
        return True

    def should_ignore_pause(self, state: SeekingState, now_ms: float) -> bool:
        return False

    def get_debounce_time(self, state: SeekingState, now_ms: float) -> int:
        return self.timing.default_debounce_ms

    def attach_site_specific_listeners(
        self,
        state: SeekingState,
        document: Document,
        scheduler: Scheduler,
    ) -> Optional[Cleanup]:
        return None


class YouTubeHandler:
    """YouTube: 진행 바 클릭/탐색 단축키를 '탐색 의도'로 보고 일시정지를 미룹니다.

    - 힌트는 2초 뒤 만료
    - 힌트 후 2초 이내 pause는 무시
    - 힌트 후 1초 이내 pause는 debounce 5초
    """

    kind = SiteKind.YOUTUBE

    SEEK_KEYS = frozenset({"ArrowLeft", "ArrowRight", "j", "l"})
    PROGRESS_BAR_CLASSES = ("ytp-progress-bar", "ytp-scrubber-button", "ytp-progress-list")
    PROGRESS_BAR_CONTAINER = "ytp-progress-bar-container"
    PLAY_BUTTON_CLASSES = ("ytp-play-button", "ytp-large-play-button")

    HINT_EXPIRY_MS = 2000
    IGNORE_WINDOW_MS = 2000
    RECENT_INTERACTION_MS = 1000

    def __init__(self, timing: Optional[VideoTimingConfig] = None) -> None:
        self.timing = timing or VideoTimingConfig.from_settings()

    def is_applicable(self, hostname: str) -> bool:
        return "youtube.com" in (hostname or "").lower()

    def is_seek_intent(self, event: InteractionEvent) -> bool:
        if event.type == "keydown":
            return event.key in self.SEEK_KEYS
        if event.type != "mousedown":
            return False

        if any(event.within(c) for c in self.PLAY_BUTTON_CLASSES):
            return False
        if any(event.has_class(c) for c in self.PROGRESS_BAR_CLASSES):
            return True
        return event.within(self.PROGRESS_BAR_CONTAINER)

    def handle_user_interaction(
        self,
        state: SeekingState,
        scheduler: Scheduler,
        event: InteractionEvent,
    ) -> Optional[TimerHandle]:
        if not self.is_seek_intent(event):
            return None

        now = scheduler.now_ms()
        state.user_interaction_detected = True
        state.last_interaction_time_ms = now
        logger.debug(f"[SITE_HANDLER] Seek intent ({event.type}, key={event.key})")

        def _expire() -> None:
            elapsed = scheduler.now_ms() - state.last_interaction_time_ms
            if state.user_interaction_detected and elapsed >= self.HINT_EXPIRY_MS:
                state.user_interaction_detected = False

        return scheduler.call_later(self.HINT_EXPIRY_MS, _expire)

    def _since_interaction(self, state: SeekingState, now_ms: float) -> Optional[float]:
        if not state.user_interaction_detected:
            return None
        return now_ms - state.last_interaction_time_ms

    def should_ignore_pause(self, state: SeekingState, now_ms: float) -> bool:
        elapsed = self._since_interaction(state, now_ms)
        return elapsed is not None and elapsed < self.IGNORE_WINDOW_MS

    def get_debounce_time(self, state: SeekingState, now_ms: float) -> int:
        elapsed = self._since_interaction(state, now_ms)
        if elapsed is not None and elapsed < self.RECENT_INTERACTION_MS:
            return self.timing.interaction_debounce_ms
        return self.timing.default_debounce_ms

    def attach_site_specific_listeners(
        self,
        state: SeekingState,
        document: Document,
        scheduler: Scheduler,
    ) -> Optional[Cleanup]:
        pending: List[TimerHandle] = []

        def _on_interaction(event: InteractionEvent) -> None:
            handle = self.handle_user_interaction(state, scheduler, event)
            if handle is not None:
                # 최신 힌트의 만료 타이머만 유지
                for old in pending:
                    old.cancel()
                pending[:] = [handle]

        document.add_listener("mousedown", _on_interaction)
        document.add_listener("keydown", _on_interaction)

        def _cleanup() -> None:
            document.remove_listener("mousedown", _on_interaction)
            document.remove_listener("keydown", _on_interaction)
            for handle in pending:
                handle.cancel()
            pending.clear()

        return _cleanup


SiteHandler = Union[DefaultHandler, YouTubeHandler]


class SiteHandlerRegistry:
    """hostname → 사이트 핸들러 (첫 번째 적용 가능 핸들러, 없으면 기본)"""

    def __init__(
        self,
        timing: Optional[VideoTimingConfig] = None,
        handlers: Optional[Sequence[SiteHandler]] = None,
    ) -> None:
        timing = timing or VideoTimingConfig.from_settings()
        self._handlers: List[SiteHandler] = list(handlers) if handlers is not None else [YouTubeHandler(timing)]
        self._default = DefaultHandler(timing)
        self._active: SiteHandler = self._default

    def initialize(self, hostname: str) -> SiteHandler:
        self._active = next((h for h in self._handlers if h.is_applicable(hostname)), self._default)
        logger.info(f"[SITE_HANDLER] {hostname} -> {self._active.kind.value}")
        return self._active

    @property
    def active_handler(self) -> SiteHandler:
        return self._active

    @property
    def kind(self) -> SiteKind:
        return self._active.kind

    def should_ignore_pause(self, state: SeekingState, now_ms: float) -> bool:
        return self._active.should_ignore_pause(state, now_ms)

    def get_debounce_time(self, state: SeekingState, now_ms: float) -> int:
        return self._active.get_debounce_time(state, now_ms)

    def attach_site_specific_listeners(
        self,
        state: SeekingState,
        document: Document,
        scheduler: Scheduler,
    ) -> Optional[Cleanup]:
        return self._active.attach_site_specific_listeners(state, document, scheduler)
