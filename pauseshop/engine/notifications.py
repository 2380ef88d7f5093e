"""UI 레이어로 가는 알림 게시"""

from __future__ import annotations

from collections import OrderedDict
from typing import Dict, List, Protocol

from pauseshop.core.logging import logger
from pauseshop.schemas.analysis_schema import Notification


class NotificationPublisher(Protocol):
    async def publish(self, notification: Notification) -> None:
        ...


class InMemoryPublisher:
    """pause_id별 알림 보관 (최근 max_pauses개 pause만 유지)"""

    def __init__(self, max_pauses: int = 100) -> None:
        self.max_pauses = max_pauses
        self._by_pause: "OrderedDict[str, List[Notification]]" = OrderedDict()

    async def publish(self, notification: Notification) -> None:
        bucket = self._by_pause.setdefault(notification.pause_id, [])
        bucket.append(notification)
        self._by_pause.move_to_end(notification.pause_id)
        while len(self._by_pause) > self.max_pauses:
            self._by_pause.popitem(last=False)

        logger.info(f"[NOTIFY] {notification.type.value} (pause_id={notification.pause_id})")

    def history(self, pause_id: str) -> List[Notification]:
        return list(self._by_pause.get(pause_id, ()))

    def all(self) -> Dict[str, List[Notification]]:
        return {k: list(v) for k, v in self._by_pause.items()}

    def clear(self) -> None:
        self._by_pause.clear()
