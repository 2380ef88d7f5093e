"""일시정지 단위 취소 레지스트리

pause_id마다 살아 있는 토큰은 최대 1개, 범위(scope: 탭/영상)마다 현재 pause는 1개입니다.
같은 pause_id를 다시 등록하거나 같은 범위에 새 pause가 등록되면 이전 토큰을 취소합니다.

취소는 협조적입니다. 대기 중인 fetch는 보내지 않고, 진행 중인 fetch는 끝까지 간 뒤
결과 게시 직전에 is_current()로 버립니다.
이벤트 루프 스레드에서만 변경합니다.
"""

from __future__ import annotations

from typing import Dict, Optional

from pauseshop.core.exceptions import AnalysisCancelledException
from pauseshop.core.logging import logger


DEFAULT_SCOPE = "default"


class CancellationToken:
    """pause 1건의 취소 신호"""

    def __init__(self, pause_id: str, scope: str = DEFAULT_SCOPE) -> None:
        self.pause_id = pause_id
        self.scope = scope
        self.reason: Optional[str] = None
        self._cancelled = False

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: str = "cancelled") -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self.reason = reason

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise AnalysisCancelledException(self.pause_id, {"pause_id": self.pause_id, "reason": self.reason})

    def __repr__(self) -> str:
        state = f"cancelled:{self.reason}" if self._cancelled else "live"
        return f"CancellationToken(pause_id={self.pause_id!r}, scope={self.scope!r}, {state})"


class CancellationRegistry:
    def __init__(self) -> None:
        self._tokens: Dict[str, CancellationToken] = {}
        self._current_by_scope: Dict[str, str] = {}

    @property
    def active_count(self) -> int:
        return len(self._tokens)

    def register_pause(self, pause_id: str, scope: str = DEFAULT_SCOPE) -> CancellationToken:
        """새 토큰 등록 (같은 키 / 같은 범위의 이전 pause는 취소)"""
        if pause_id in self._tokens:
            logger.info(f"[CANCELLATION] Cancelling previous token before re-registering pause_id={pause_id}")
            self.cancel_pause(pause_id, reason="re-registered")

        previous = self._current_by_scope.get(scope)
        if previous is not None and previous != pause_id:
            self.cancel_pause(previous, reason="superseded")

        token = CancellationToken(pause_id, scope)
        self._tokens[pause_id] = token
        self._current_by_scope[scope] = pause_id
        logger.info(f"[CANCELLATION] Registered pause_id={pause_id} (scope={scope})")
        return token

    def cancel_pause(self, pause_id: str, reason: str = "cancelled") -> bool:
        token = self._tokens.pop(pause_id, None)
        if token is None:
            return False
        token.cancel(reason)
        if self._current_by_scope.get(token.scope) == pause_id:
            del self._current_by_scope[token.scope]
        logger.warning(f"[CANCELLATION] Cancelled pause_id={pause_id} ({reason})")
        return True

    def cancel_all(self, reason: str = "shutdown") -> int:
        count = 0
        for pause_id in list(self._tokens):
            if self.cancel_pause(pause_id, reason=reason):
                count += 1
        return count

    def get_token(self, pause_id: str) -> Optional[CancellationToken]:
        return self._tokens.get(pause_id)

    def is_registered(self, pause_id: str) -> bool:
        return pause_id in self._tokens

    def current_pause(self, scope: str = DEFAULT_SCOPE) -> Optional[str]:
        return self._current_by_scope.get(scope)

    def is_current(self, pause_id: str) -> bool:
        """pause_id가 아직 살아 있고 자기 범위의 최신 pause인지 (오래된 결과 필터)"""
        token = self._tokens.get(pause_id)
        if token is None or token.is_cancelled:
            return False
        return self._current_by_scope.get(token.scope) == pause_id

    def cleanup(self, pause_id: str, token: Optional[CancellationToken] = None) -> bool:
        """완료된(취소되지 않은) 토큰 제거

        token을 넘기면 그 토큰이 아직 등록된 경우에만 제거합니다. (재등록된 새 토큰 보호)
        """
        current = self._tokens.get(pause_id)
        if current is None or current.is_cancelled:
            return False
        if token is not None and current is not token:
            return False

        del self._tokens[pause_id]
        if self._current_by_scope.get(current.scope) == pause_id:
            del self._current_by_scope[current.scope]
        logger.info(f"[CANCELLATION] Cleaned up completed pause_id={pause_id}")
        return True
