"""검색 결과 페이지 HTTP 실행 엔진

- FIFO 대기열 + 동시 실행 상한(기본 3)으로 요청을 흘려보냅니다. (우선순위 없음)
- 시도마다 브라우저 헤더/User-Agent 로테이션, 다른 요청이 진행 중이면 지연(+지터)
- 타임아웃/비정상 응답/봇 차단 문구는 모두 재시도 가능한 오류로 취급합니다.
- 재시도를 모두 소진해도 예외를 던지지 않고 실패한 FetchResult를 돌려줍니다.
"""

from __future__ import annotations

import asyncio
import random
import time
import uuid
from asyncio import TimeoutError as AsyncTimeoutError
from collections import deque
from dataclasses import dataclass
from typing import Awaitable, Callable, Deque, Dict, List, Optional, Sequence

from pauseshop.core.config import settings
from pauseshop.core.exceptions import (
    BlockedException,
    EmptyResponseException,
    HttpStatusException,
    InvalidConfigException,
    NetworkTimeoutException,
    PauseShopException,
)
from pauseshop.core.logging import logger
from pauseshop.crawlers.http_client import HttpResponse, HttpTransport, get_shared_http_client
from pauseshop.schemas.product_schema import BatchMetadata, FetchBatch, FetchResult, SearchQuery

from .constants import BLOCK_KEYWORDS, USER_AGENTS


SleepFunc = Callable[[float], Awaitable[None]]
CancelCheck = Callable[[], bool]


@dataclass
class HttpEngineConfig:
    """HTTP 실행 엔진 설정"""

    max_concurrent_requests: int = 3
    request_delay_ms: int = 1500
    request_jitter_ms: int = 500
    timeout_ms: int = 10000
    max_retries: int = 2
    backoff_base_ms: int = 1000
    user_agent_rotation: bool = True
    min_html_length: int = 100

    def __post_init__(self):
        """설정 검증"""
        if self.max_concurrent_requests < 1:
            raise InvalidConfigException("max_concurrent_requests", "must be >= 1")
        if self.timeout_ms <= 0:
            raise InvalidConfigException("timeout_ms", "must be positive")
        if self.max_retries < 0:
            raise InvalidConfigException("max_retries", "must be >= 0")

    @classmethod
    def from_settings(cls, **overrides) -> "HttpEngineConfig":
        values = dict(
            max_concurrent_requests=settings.crawler_max_concurrent_requests,
            request_delay_ms=settings.crawler_request_delay_ms,
            request_jitter_ms=settings.crawler_request_jitter_ms,
            timeout_ms=settings.crawler_timeout_ms,
            max_retries=settings.crawler_max_retries,
            backoff_base_ms=settings.crawler_backoff_base_ms,
            user_agent_rotation=settings.crawler_user_agent_rotation,
            min_html_length=settings.crawler_min_html_length,
        )
        values.update(overrides)
        return cls(**values)


def get_blocked_keyword(html: str) -> Optional[str]:
    if not html:
        return None
    lowered = html.lower()
    for k in BLOCK_KEYWORDS:
        if k in lowered:
            return k
    return None


def validate_search_response(response: HttpResponse, min_html_length: int = 100) -> str:
    """응답 검증 후 본문 반환

    200 OK라도 챌린지/빈 페이지일 수 있으므로 '성공한 빈 결과'로 넘기지 않고 예외로 올립니다.

    Raises:
        HttpStatusException: 2xx가 아님
        EmptyResponseException: 본문이 min_html_length 미만
        BlockedException: 봇 차단 문구 포함
    """
    if not response.ok:
        raise HttpStatusException(response.status_code, response.reason)

    html = response.text or ""
    if len(html) < min_html_length:
        raise EmptyResponseException(len(html), min_html_length)

    kw = get_blocked_keyword(html)
    if kw:
        raise BlockedException("amazon", kw)

    return html


@dataclass
class _QueuedRequest:
    query: SearchQuery
    future: "asyncio.Future[FetchResult]"
    is_cancelled: Optional[CancelCheck] = None

    def cancelled(self) -> bool:
        return self.is_cancelled is not None and self.is_cancelled()


class SearchHttpEngine:
    """검색 페이지 fetch 실행 엔진 (동시성 상한 + 재시도/백오프)

    Usage:
        engine = SearchHttpEngine()
        result = await engine.execute_search(query)
        batch = await engine.execute_batch([q1, q2, q3])
    """

    def __init__(
        self,
        config: Optional[HttpEngineConfig] = None,
        transport: Optional[HttpTransport] = None,
        sleep: Optional[SleepFunc] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        """
        Args:
            config: 엔진 설정 (기본값: settings)
            transport: 전송 계층 (기본값: 공유 curl_cffi 클라이언트)
            sleep: 지연 함수 (테스트에서 가짜 sleep 주입)
            rng: 지터용 난수 생성기
        """
        self.config = config or HttpEngineConfig.from_settings()
        self.transport: HttpTransport = transport or get_shared_http_client()
        self._sleep: SleepFunc = sleep or asyncio.sleep
        self._random = rng or random.Random()

        self._queue: Deque[_QueuedRequest] = deque()
        self._active = 0
        self._user_agent_index = 0
        self._tasks: set[asyncio.Task] = set()

    @property
    def active_requests(self) -> int:
        return self._active

    @property
    def queued_requests(self) -> int:
        return len(self._queue)

    def generate_headers(self) -> Dict[str, str]:
        """평범한 브라우저와 같은 헤더 세트"""
        if self.config.user_agent_rotation:
            user_agent = USER_AGENTS[self._user_agent_index % len(USER_AGENTS)]
            self._user_agent_index += 1
        else:
            user_agent = USER_AGENTS[0]

        return {
            "User-Agent": user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,image/apng,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
            "Accept-Encoding": "gzip, deflate, br",
            "DNT": "1",
            "Connection": "keep-alive",
            "Upgrade-Insecure-Requests": "1",
            "Sec-Fetch-Dest": "document",
            "Sec-Fetch-Mode": "navigate",
            "Sec-Fetch-Site": "none",
            "Sec-Fetch-User": "?1",
            "Cache-Control": "max-age=0",
        }

    async def execute_search(self, query: SearchQuery, is_cancelled: Optional[CancelCheck] = None) -> FetchResult:
        """검색 1건을 대기열에 넣고 처리될 때까지 기다립니다.

        is_cancelled가 참이 되면 아직 시작하지 않은 요청은 보내지 않고,
        진행 중인 요청은 더 이상 재시도하지 않습니다.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[FetchResult] = loop.create_future()
        self._queue.append(_QueuedRequest(query=query, future=future, is_cancelled=is_cancelled))
        self._drain_queue()
        return await future

    async def execute_batch(self, queries: Sequence[SearchQuery]) -> FetchBatch:
        """여러 검색을 같은 대기열/상한으로 실행하고 집계합니다."""
        started = time.monotonic()

        if not queries:
            return FetchBatch(results=[], metadata=_aggregate([], 0.0))

        results: List[FetchResult] = list(
            await asyncio.gather(*(self.execute_search(q) for q in queries))
        )
        metadata = _aggregate(results, (time.monotonic() - started) * 1000)
        logger.info(
            f"[HTTP_ENGINE] Batch done: total={metadata.total_requests}, "
            f"ok={metadata.successful_requests}, failed={metadata.failed_requests}, "
            f"avg={metadata.average_response_time_ms:.0f}ms"
        )
        return FetchBatch(results=results, metadata=metadata)

    def _drain_queue(self) -> None:
        while self._queue and self._active < self.config.max_concurrent_requests:
            queued = self._queue.popleft()
            if queued.future.done():
                # 호출자가 이미 취소함
                continue
            if queued.cancelled():
                logger.info(f"[HTTP_ENGINE] Skipping cancelled request (product={queued.query.id})")
                queued.future.set_result(_cancelled_result(queued.query, retry_count=0))
                continue
            self._active += 1
            task = asyncio.ensure_future(self._run(queued))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _run(self, queued: _QueuedRequest) -> None:
        try:
            result = await self._execute_with_retry(queued.query, queued.cancelled)
            if not queued.future.done():
                queued.future.set_result(result)
        except asyncio.CancelledError:
            if not queued.future.done():
                queued.future.cancel()
            raise
        finally:
            self._active -= 1
            self._drain_queue()

    async def _execute_with_retry(self, query: SearchQuery, cancelled: CancelCheck = lambda: False) -> FetchResult:
        loop = asyncio.get_running_loop()
        attempt = 0
        last_error = "Unknown error"
        last_status: Optional[int] = None
        response_time_ms = 0.0

        while True:
            attempt_started = loop.time()
            try:
                response = await self._attempt(query)
                html = validate_search_response(response, self.config.min_html_length)
                response_time_ms = (loop.time() - attempt_started) * 1000
                logger.info(
                    f"[HTTP_ENGINE] OK (len={len(html)}, status={response.status_code}, "
                    f"attempt={attempt + 1}, {response_time_ms:.0f}ms)"
                )
                return FetchResult(
                    id=f"fetch-{uuid.uuid4().hex[:12]}",
                    product_id=query.id,
                    search_url=query.search_url,
                    success=True,
                    html_content=html,
                    status_code=response.status_code,
                    response_time_ms=response_time_ms,
                    retry_count=attempt,
                )
            except PauseShopException as e:
                last_error = str(e)
                last_status = getattr(e, "status_code", None)
            except Exception as e:
                last_error = f"{type(e).__name__}: {e}"
                last_status = None
            response_time_ms = (loop.time() - attempt_started) * 1000

            if attempt >= self.config.max_retries:
                break
            if cancelled():
                logger.info(f"[HTTP_ENGINE] Request cancelled, no retry (product={query.id})")
                return _cancelled_result(query, retry_count=attempt, response_time_ms=response_time_ms)

            backoff_ms = self.config.backoff_base_ms * (2 ** attempt) + self._random.uniform(0, 1000)
            logger.warning(
                f"[HTTP_ENGINE] Request failed (attempt {attempt + 1}/{self.config.max_retries + 1}): "
                f"{last_error} - retrying in {backoff_ms:.0f}ms"
            )
            await self._sleep(backoff_ms / 1000.0)
            attempt += 1

        logger.warning(f"[HTTP_ENGINE] Giving up after {attempt + 1} attempts: {last_error}")
        return FetchResult(
            id=f"fetch-{uuid.uuid4().hex[:12]}",
            product_id=query.id,
            search_url=query.search_url,
            success=False,
            error=last_error,
            status_code=last_status,
            response_time_ms=response_time_ms,
            retry_count=attempt,
        )

    async def _attempt(self, query: SearchQuery) -> HttpResponse:
        # 자기 자신 외에 진행 중인 요청이 있으면 속도 제한
        if self._active > 1:
            delay_ms = self.config.request_delay_ms + self._random.uniform(0, self.config.request_jitter_ms)
            logger.debug(f"[HTTP_ENGINE] Rate limit delay {delay_ms:.0f}ms (active={self._active})")
            await self._sleep(delay_ms / 1000.0)

        headers = self.generate_headers()
        timeout_s = self.config.timeout_ms / 1000.0

        url_display = query.search_url if len(query.search_url) <= 120 else query.search_url[:120] + "..."
        logger.info(f"[HTTP_ENGINE] Fetching {url_display} (timeout={timeout_s:.1f}s)")

        try:
            return await asyncio.wait_for(
                self.transport.get(query.search_url, headers=headers, timeout_s=timeout_s),
                timeout=timeout_s,
            )
        except AsyncTimeoutError as e:
            raise NetworkTimeoutException("search_fetch", self.config.timeout_ms) from e


def _cancelled_result(query: SearchQuery, retry_count: int, response_time_ms: float = 0.0) -> FetchResult:
    return FetchResult(
        id=f"fetch-{uuid.uuid4().hex[:12]}",
        product_id=query.id,
        search_url=query.search_url,
        success=False,
        error="Cancelled before completion",
        response_time_ms=response_time_ms,
        retry_count=retry_count,
    )


def _aggregate(results: Sequence[FetchResult], total_execution_time_ms: float) -> BatchMetadata:
    successful = sum(1 for r in results if r.success)
    total_response = sum(r.response_time_ms for r in results)
    return BatchMetadata(
        total_requests=len(results),
        successful_requests=successful,
        failed_requests=len(results) - successful,
        total_execution_time_ms=total_execution_time_ms,
        total_response_time_ms=total_response,
        average_response_time_ms=(total_response / len(results)) if results else 0.0,
    )
