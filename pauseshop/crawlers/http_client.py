"""공유 HTTP 클라이언트 (curl_cffi)

- 요청마다 AsyncSession을 만들면 TLS/커넥션 오버헤드가 커지므로
  프로세스 단위로 세션을 재사용합니다.
- 실행 엔진이 재시도 여부를 판단할 수 있도록 전송 오류는 NetworkException으로 올립니다.
- 앱 종료 시 close()로 정리합니다.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional, Dict, Protocol

from curl_cffi.requests import AsyncSession

from pauseshop.core.config import settings
from pauseshop.core.exceptions import NetworkException
from pauseshop.core.logging import logger


@dataclass
class HttpResponse:
    status_code: int
    text: str
    reason: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class HttpTransport(Protocol):
    """실행 엔진이 의존하는 전송 계층 인터페이스"""

    async def get(self, url: str, *, headers: Dict[str, str], timeout_s: float) -> HttpResponse:
        ...


class SharedHttpClient:
    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._session: Optional[AsyncSession] = None

    async def _ensure_session(self) -> AsyncSession:
        async with self._lock:
            if self._session is not None:
                return self._session
            self._session = AsyncSession(
                impersonate=settings.crawler_http_impersonate,
                allow_redirects=True,
                max_clients=settings.crawler_http_max_clients,
                trust_env=False,
            )
            return self._session

    async def get(self, url: str, *, headers: Dict[str, str], timeout_s: float) -> HttpResponse:
        sess = await self._ensure_session()
        try:
            resp = await sess.get(
                url,
                headers=headers,
                timeout=timeout_s,
                allow_redirects=True,
            )
        except Exception as e:
            logger.info(f"[HTTP_CLIENT] GET failed: {type(e).__name__}: {repr(e)}")
            raise NetworkException(f"{type(e).__name__}: {e}") from e

        status = getattr(resp, "status_code", 0) or 0
        text = getattr(resp, "text", "") or ""
        reason = getattr(resp, "reason", "") or ""
        return HttpResponse(status_code=status, text=text, reason=str(reason))

    async def close(self) -> None:
        async with self._lock:
            if self._session is None:
                return
            try:
                await self._session.close()
            except Exception as e:
                logger.debug(f"[HTTP_CLIENT] Session close failed: {type(e).__name__}")
            self._session = None


_shared_http_client = SharedHttpClient()


def get_shared_http_client() -> SharedHttpClient:
    return _shared_http_client


async def shutdown_shared_http_client() -> None:
    await _shared_http_client.close()
