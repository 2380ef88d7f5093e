"""일시정지/탐색 판별 상태 머신 + 비디오 감지기

상태: IDLE → PAUSE_DEBOUNCING → CAPTURED, 어디서든 seeking → SEEKING

- pause: pause_id 발급 → current_pause_id 저장 → 리스너 통지 → 사이트 핸들러 확인 → 확정 타이머
- seeking: 모든 타이머 취소, 현재 pause 무효화
- seeked: settle 타이머 → 여전히 일시정지면 grace 타이머 후 pause 경로 재진입
- timeupdate 점프: 명시적 탐색이 없을 때만 추론 탐색으로 처리 (명시적 신호 우선)
- play: 현재 pause 무효화, 확정/grace 타이머 취소
"""

from __future__ import annotations

from typing import Iterable, Optional, Protocol, Union

from pauseshop.core.logging import logger

from .element import ContainerNode, Document, VideoElement
from .scheduler import AsyncioScheduler, Scheduler
from .seeking_state import PausePhase, SeekingState, VideoTimingConfig
from .site_handlers import Cleanup, SiteHandlerRegistry


class PauseListener(Protocol):
    """상태 머신 → 오케스트레이터 통지"""

    def on_pause_registered(self, pause_id: str) -> None:
        ...

    def on_pause_cancelled(self, pause_id: str) -> None:
        ...

    def on_capture(self, pause_id: str) -> None:
        ...


class PauseSeekStateMachine:
    """비디오 1개의 일시정지/탐색 판별기"""

    _MEDIA_EVENTS = ("pause", "play", "seeking", "seeked", "timeupdate")

    def __init__(
        self,
        video: VideoElement,
        site_handlers: SiteHandlerRegistry,
        scheduler: Scheduler,
        listener: Optional[PauseListener] = None,
        timing: Optional[VideoTimingConfig] = None,
        document: Optional[Document] = None,
    ) -> None:
        self.video = video
        self.site_handlers = site_handlers
        self.scheduler = scheduler
        self.listener = listener
        self.timing = timing or VideoTimingConfig.from_settings()
        self.document = document

        self.state = SeekingState(previous_current_time=video.current_time)
        self._last_pause_id = 0
        self._attached = False
        self._site_cleanup: Optional[Cleanup] = None

        self._handlers = {
            "pause": lambda _event: self.handle_pause(),
            "play": lambda _event: self.handle_play(),
            "seeking": lambda _event: self.handle_seeking(),
            "seeked": lambda _event: self.handle_seeked(),
            "timeupdate": lambda _event: self.handle_time_update(),
        }

    @property
    def phase(self) -> PausePhase:
        return self.state.phase

    @property
    def current_pause_id(self) -> Optional[str]:
        return self.state.current_pause_id

    def attach(self) -> None:
        if self._attached:
            return
        for event_type in self._MEDIA_EVENTS:
            self.video.add_listener(event_type, self._handlers[event_type])
        if self.document is not None:
            self._site_cleanup = self.site_handlers.attach_site_specific_listeners(
                self.state, self.document, self.scheduler
            )
        self._attached = True

    def detach(self) -> None:
        """리스너 제거 + 대기 중인 타이머 전부 취소"""
        if self._attached:
            for event_type in self._MEDIA_EVENTS:
                self.video.remove_listener(event_type, self._handlers[event_type])
            if self._site_cleanup is not None:
                self._site_cleanup()
                self._site_cleanup = None
            self._attached = False
        self.state.cancel_all_timers()

    # ------------------------------------------------------------------
    # 전이
    # ------------------------------------------------------------------

    def handle_pause(self) -> Optional[str]:
        """pause 이벤트. 새 pause_id를 반환 (무시되면 None)"""
        state = self.state
        if state.is_seeking:
            return None

        if self.video.ended:
            logger.info("[STATE_MACHINE] Ignoring pause because video has ended")
            return None
        if self.video.is_near_end(self.timing.near_end_threshold_s):
            logger.info("[STATE_MACHINE] Ignoring pause because video is near the end")
            return None

        pause_id = self._mint_pause_id()
        state.current_pause_id = pause_id
        logger.info(f"[STATE_MACHINE] Pause detected (pause_id={pause_id})")
        self._notify("on_pause_registered", pause_id)

        now = self.scheduler.now_ms()
        if self.site_handlers.should_ignore_pause(state, now):
            state.phase = PausePhase.IDLE
            self._invalidate_pause("Pause ignored by site handler")
            return None

        state.cancel_timer("pause_confirm_timer")
        debounce_ms = self.site_handlers.get_debounce_time(state, now)
        state.pause_confirm_timer = self.scheduler.call_later(
            debounce_ms, lambda: self._on_pause_confirmed(pause_id)
        )
        state.phase = PausePhase.PAUSE_DEBOUNCING
        logger.debug(f"[STATE_MACHINE] Pause debounce {debounce_ms}ms (pause_id={pause_id})")
        return pause_id

    def handle_play(self) -> None:
        state = self.state
        self._invalidate_pause("play")
        state.cancel_timer("pause_confirm_timer")
        state.cancel_timer("seek_grace_timer")
        state.phase = PausePhase.SEEKING if state.is_seeking else PausePhase.IDLE

    def handle_seeking(self, inferred: bool = False) -> None:
        state = self.state
        if not inferred and state.inferred_seek:
            # 명시적 신호가 추론 탐색을 넘겨받음
            state.cancel_timer("inferred_seeked_timer")
            state.inferred_seek = False

        state.is_seeking = True
        state.last_seek_time_ms = self.scheduler.now_ms()
        state.user_interaction_detected = False

        state.cancel_timer("seek_settle_timer")
        state.cancel_timer("pause_confirm_timer")
        state.cancel_timer("seek_grace_timer")

        self._invalidate_pause("seeking")
        state.phase = PausePhase.SEEKING

    def handle_seeked(self, inferred: bool = False) -> None:
        state = self.state
        if not inferred and state.inferred_seek:
            state.cancel_timer("inferred_seeked_timer")
            state.inferred_seek = False

        state.previous_current_time = self.video.current_time
        state.cancel_timer("seek_settle_timer")
        state.seek_settle_timer = self.scheduler.call_later(self.timing.seek_settle_ms, self._on_seek_settled)

    def handle_time_update(self) -> None:
        state = self.state
        current = self.video.current_time
        jump = abs(current - state.previous_current_time)

        if jump > self.timing.time_jump_threshold_s and state.previous_current_time > 0 and not state.is_seeking:
            logger.debug(
                f"[STATE_MACHINE] Inferred seek {state.previous_current_time:.2f}s -> {current:.2f}s"
            )
            self.handle_seeking(inferred=True)
            state.inferred_seek = True
            state.inferred_seeked_timer = self.scheduler.call_later(
                self.timing.seek_settle_ms, self._on_inferred_seeked
            )

        state.previous_current_time = current

    def retry_pause(self) -> Optional[str]:
        """현재 비디오가 일시정지 상태면 pause 경로를 다시 실행"""
        if not self.video.paused or self.state.is_seeking:
            return None
        return self.handle_pause()

    # ------------------------------------------------------------------
    # 타이머 콜백
    # ------------------------------------------------------------------

    def _on_pause_confirmed(self, pause_id: str) -> None:
        state = self.state
        state.pause_confirm_timer = None

        if not self.video.paused or state.is_seeking or state.current_pause_id != pause_id:
            if state.phase == PausePhase.PAUSE_DEBOUNCING:
                state.phase = PausePhase.IDLE
            return

        state.phase = PausePhase.CAPTURED
        logger.info(f"[STATE_MACHINE] Pause confirmed, capturing (pause_id={pause_id})")
        if self.listener is None:
            return
        try:
            self.listener.on_capture(pause_id)
        except Exception as e:
            logger.error(f"[STATE_MACHINE] Capture failed (pause_id={pause_id}): {type(e).__name__}: {e}")
            state.phase = PausePhase.IDLE

    def _on_seek_settled(self) -> None:
        state = self.state
        state.seek_settle_timer = None
        state.is_seeking = False
        state.inferred_seek = False
        state.phase = PausePhase.IDLE

        if not self.video.paused:
            return
        if self.site_handlers.should_ignore_pause(state, self.scheduler.now_ms()):
            return

        state.cancel_timer("seek_grace_timer")
        state.seek_grace_timer = self.scheduler.call_later(self.timing.seek_grace_ms, self._on_seek_grace_elapsed)

    def _on_seek_grace_elapsed(self) -> None:
        self.state.seek_grace_timer = None
        if self.video.paused and not self.state.is_seeking:
            self.handle_pause()

    def _on_inferred_seeked(self) -> None:
        state = self.state
        state.inferred_seeked_timer = None
        if state.inferred_seek and state.is_seeking:
            self.handle_seeked(inferred=True)

    # ------------------------------------------------------------------

    def _mint_pause_id(self) -> str:
        candidate = int(self.scheduler.now_ms())
        if candidate <= self._last_pause_id:
            candidate = self._last_pause_id + 1
        self._last_pause_id = candidate
        return str(candidate)

    def _invalidate_pause(self, reason: str) -> None:
        pause_id = self.state.current_pause_id
        if pause_id is None:
            return
        self.state.current_pause_id = None
        logger.info(f"[STATE_MACHINE] {reason} -> cancelling pause_id={pause_id}")
        self._notify("on_pause_cancelled", pause_id)

    def _notify(self, method: str, pause_id: str) -> None:
        if self.listener is None:
            return
        try:
            getattr(self.listener, method)(pause_id)
        except Exception as e:
            logger.error(f"[STATE_MACHINE] Listener {method} failed (pause_id={pause_id}): {type(e).__name__}: {e}")


class VideoDetector:
    """페이지에서 관찰할 비디오를 고르고 상태 머신 수명을 관리

    비디오가 바뀌면 이전 리스너/타이머를 정리하고 새 상태로 시작합니다.
    """

    def __init__(
        self,
        document: Document,
        listener: Optional[PauseListener] = None,
        scheduler: Optional[Scheduler] = None,
        timing: Optional[VideoTimingConfig] = None,
        site_handlers: Optional[SiteHandlerRegistry] = None,
    ) -> None:
        self.document = document
        self.listener = listener
        self.scheduler = scheduler or AsyncioScheduler()
        self.timing = timing or VideoTimingConfig.from_settings()
        self.site_handlers = site_handlers or SiteHandlerRegistry(self.timing)
        self.site_handlers.initialize(document.hostname)

        self.state_machine: Optional[PauseSeekStateMachine] = None
        self._observing = False

    @property
    def video(self) -> Optional[VideoElement]:
        return self.state_machine.video if self.state_machine else None

    def start(self) -> Optional[VideoElement]:
        """기존 비디오 스캔 + DOM 변경 관찰 시작"""
        video = self.scan_for_videos()
        if video is not None:
            self.set_video(video)
        if not self._observing:
            self.document.add_listener("mutation", self.on_nodes_added)
            self._observing = True
        return video

    def scan_for_videos(self) -> Optional[VideoElement]:
        """가장 큰(보이는) 비디오"""
        target: Optional[VideoElement] = None
        max_area = 0
        for video in self.document.videos:
            if video.area > max_area:
                max_area = video.area
                target = video
        if target is not None:
            logger.info(f"[VIDEO_DETECTOR] Found video element: {target!r}")
        return target

    def set_video(self, video: VideoElement) -> None:
        if self.state_machine is not None:
            if self.state_machine.video is video:
                return
            self.state_machine.detach()

        self.state_machine = PauseSeekStateMachine(
            video,
            self.site_handlers,
            self.scheduler,
            listener=self.listener,
            timing=self.timing,
            document=self.document,
        )
        self.state_machine.attach()

    def on_nodes_added(self, nodes: Iterable[Union[ContainerNode, VideoElement]]) -> None:
        for node in nodes or ():
            if isinstance(node, VideoElement):
                self.set_video(node)
                return
            if isinstance(node, ContainerNode):
                nested = next(iter(node.iter_videos()), None)
                if nested is not None:
                    self.set_video(nested)
                    return

    def trigger_retry_analysis(self) -> Optional[str]:
        if self.state_machine is None:
            logger.info("[VIDEO_DETECTOR] Retry requested but no video is attached")
            return None
        return self.state_machine.retry_pause()

    def shutdown(self) -> None:
        if self.state_machine is not None:
            self.state_machine.detach()
            self.state_machine = None
        if self._observing:
            self.document.remove_listener("mutation", self.on_nodes_added)
            self._observing = False
