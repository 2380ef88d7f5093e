"""타이머 스케줄러 추상화

상태 머신은 시간을 직접 읽지 않고 Scheduler를 주입받습니다.
운영에서는 AsyncioScheduler(실행 중인 이벤트 루프), 테스트에서는 수동 시계를 씁니다.
"""

from __future__ import annotations

import asyncio
import time
from typing import Callable, Optional, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """밀리초 단위 시계 + 지연 콜백"""

    def now_ms(self) -> float:
        ...

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        ...


class AsyncioScheduler:
    """이벤트 루프 기반 스케줄러 (콜백은 루프 스레드에서 실행)"""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def now_ms(self) -> float:
        # pause_id로도 쓰이므로 벽시계 기준
        return time.time() * 1000

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self._get_loop().call_later(max(0.0, delay_ms) / 1000.0, callback)
