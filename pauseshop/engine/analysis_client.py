"""분석 서버 스트리밍 클라이언트

POST {base}/analyze/stream → server-sent events.
data: 줄의 JSON 모양으로 이벤트를 구분합니다.
- 상품: name + category
- 완료: totalProducts 또는 processingTime
- 오류: message + code

잘못된 JSON 줄은 로그만 남기고 건너뜁니다. 완료 이벤트 없이 스트림이 끝나도 완료로 봅니다.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, AsyncIterator, Dict, Iterable, Iterator, Optional

from curl_cffi.requests import AsyncSession
from pydantic import ValidationError

from pauseshop.core.config import settings
from pauseshop.core.exceptions import AnalysisSessionException, AnalysisStreamException
from pauseshop.core.logging import logger, sanitize_for_log
from pauseshop.engine.cancellation import CancellationToken
from pauseshop.schemas.product_schema import Product


class AnalysisEventKind(str, Enum):
    PRODUCT = "product"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass
class AnalysisEvent:
    kind: AnalysisEventKind
    product: Optional[Product] = None
    total_products: Optional[int] = None
    processing_time_ms: Optional[float] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.kind != AnalysisEventKind.PRODUCT


def parse_sse_data(payload: str) -> Optional[AnalysisEvent]:
    """data: 뒤의 JSON 1개 → AnalysisEvent (알 수 없는 모양이면 None)"""
    try:
        data = json.loads(payload)
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning(f"[ANALYSIS_CLIENT] Error parsing streaming data: {e} (data={sanitize_for_log(payload, 80)})")
        return None

    if not isinstance(data, dict):
        return None

    if data.get("name") and data.get("category"):
        try:
            return AnalysisEvent(kind=AnalysisEventKind.PRODUCT, product=Product.model_validate(data))
        except ValidationError as e:
            logger.warning(f"[ANALYSIS_CLIENT] Invalid product payload skipped: {e.error_count()} error(s)")
            return None

    if "totalProducts" in data or "processingTime" in data:
        return AnalysisEvent(
            kind=AnalysisEventKind.COMPLETE,
            total_products=data.get("totalProducts"),
            processing_time_ms=data.get("processingTime"),
        )

    if data.get("message") and data.get("code"):
        return AnalysisEvent(
            kind=AnalysisEventKind.ERROR,
            error_message=str(data["message"]),
            error_code=str(data["code"]),
        )

    return None


def parse_sse_line(line: str) -> Optional[AnalysisEvent]:
    line = (line or "").strip()
    if not line or line.startswith("event:") or line.startswith(":"):
        return None
    if not line.startswith("data:"):
        return None
    return parse_sse_data(line[len("data:"):].strip())


def iter_sse_events(lines: Iterable[str]) -> Iterator[AnalysisEvent]:
    for line in lines:
        event = parse_sse_line(line)
        if event is not None:
            yield event


class AnalysisClient:
    """스트리밍 분석 세션 클라이언트 (curl_cffi AsyncSession)"""

    def __init__(self, base_url: Optional[str] = None, timeout_s: Optional[float] = None) -> None:
        self.base_url = (base_url or settings.analysis_base_url).rstrip("/")
        self.timeout_s = timeout_s if timeout_s is not None else settings.analysis_timeout_s
        self._lock = asyncio.Lock()
        self._session: Optional[AsyncSession] = None

    async def _ensure_session(self) -> AsyncSession:
        async with self._lock:
            if self._session is None:
                self._session = AsyncSession(trust_env=False)
            return self._session

    def build_request_body(self, image: str, pause_id: str) -> Dict[str, Any]:
        return {
            "image": image,
            "sessionId": pause_id,
            "metadata": {"timestamp": datetime.now(timezone.utc).isoformat()},
        }

    async def stream(
        self,
        image: str,
        pause_id: str,
        token: Optional[CancellationToken] = None,
    ) -> AsyncIterator[AnalysisEvent]:
        """분석 이벤트 비동기 이터레이터

        종료 이벤트(완료/오류)에서 멈추고, 이벤트 사이에 토큰 취소를 확인합니다.

        Raises:
            AnalysisSessionException: 세션을 열 수 없음 (연결 실패, 2xx 아님)
            AnalysisStreamException: 스트림 읽기 도중 실패
        """
        body = self.build_request_body(image, pause_id)
        logger.info(
            f"[ANALYSIS_CLIENT] Starting stream (pause_id={pause_id}, image={sanitize_for_log(image, 60)})"
        )

        completed = False
        lines = self._iter_lines(body)
        try:
            async for line in lines:
                if token is not None and token.is_cancelled:
                    logger.info(f"[ANALYSIS_CLIENT] Stream abandoned, pause cancelled (pause_id={pause_id})")
                    return

                event = parse_sse_line(line)
                if event is None:
                    continue
                yield event
                if event.is_terminal:
                    completed = True
                    break
        finally:
            await lines.aclose()

        if not completed and not (token is not None and token.is_cancelled):
            logger.info(f"[ANALYSIS_CLIENT] Stream ended without completion event (pause_id={pause_id})")
            yield AnalysisEvent(kind=AnalysisEventKind.COMPLETE)

    async def _iter_lines(self, body: Dict[str, Any]) -> AsyncIterator[str]:
        session = await self._ensure_session()
        url = f"{self.base_url}/analyze/stream"
        try:
            resp = await session.post(
                url,
                json=body,
                headers={
                    "Content-Type": "application/json",
                    "Accept": "text/event-stream",
                    "Cache-Control": "no-cache",
                },
                timeout=self.timeout_s,
                stream=True,
            )
        except Exception as e:
            raise AnalysisSessionException(f"{type(e).__name__}: {e}") from e

        try:
            status = getattr(resp, "status_code", 0) or 0
            if not (200 <= status < 300):
                raise AnalysisSessionException(f"HTTP {status}: {getattr(resp, 'reason', '')}")

            try:
                async for raw in resp.aiter_lines():
                    yield raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
            except Exception as e:
                raise AnalysisStreamException(f"{type(e).__name__}: {e}", code="stream_error") from e
        finally:
            await resp.aclose()

    async def end_session(self, pause_id: str) -> bool:
        """세션 종료 통지 (best effort)"""
        url = f"{self.base_url}/session/{pause_id}/end"
        try:
            session = await self._ensure_session()
            resp = await session.post(url, json={}, timeout=min(self.timeout_s, 10.0))
            ok = 200 <= (getattr(resp, "status_code", 0) or 0) < 300
            if not ok:
                logger.warning(f"[ANALYSIS_CLIENT] end_session HTTP {resp.status_code} (pause_id={pause_id})")
            return ok
        except Exception as e:
            logger.warning(f"[ANALYSIS_CLIENT] end_session failed (pause_id={pause_id}): {type(e).__name__}: {e}")
            return False

    async def close(self) -> None:
        async with self._lock:
            if self._session is None:
                return
            try:
                await self._session.close()
            except Exception as e:
                logger.debug(f"[ANALYSIS_CLIENT] Session close failed: {type(e).__name__}")
            self._session = None
