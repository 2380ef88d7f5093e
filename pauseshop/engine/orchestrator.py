"""Discovery Orchestrator - 일시정지 1건의 캡처 → 분석 → 검색 파이프라인

1. 취소 토큰 등록 (같은 pause_id / 같은 범위의 이전 분석 취소)
2. analysis_started 게시
3. 프레임 캡처 (실패 시 analysis_error)
4. 스트리밍 분석 세션 (열기 실패 시 analysis_error)
5. 상품마다 독립 태스크: 검색 URL → HTTP fetch → 후보 추출 → product_discovered
6. 완료/오류/취소 게시
7. 토큰 정리

모든 알림은 pause_id를 싣고, 상품 결과는 게시 직전에 현재 pause인지 확인합니다.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, List, Optional, Protocol, Set

from pauseshop.core.config import settings
from pauseshop.core.exceptions import (
    AnalysisCancelledException,
    AnalysisException,
    FrameCaptureException,
    InvalidQueryException,
)
from pauseshop.core.logging import logger, sanitize_for_log
from pauseshop.crawlers.amazon.http_engine import HttpEngineConfig, SearchHttpEngine
from pauseshop.crawlers.amazon.parsing import scrape_fetch_result
from pauseshop.crawlers.amazon.query_builder import SearchQueryConfig, build_search_query
from pauseshop.engine.analysis_client import AnalysisClient, AnalysisEventKind
from pauseshop.engine.cancellation import DEFAULT_SCOPE, CancellationRegistry, CancellationToken
from pauseshop.engine.notifications import InMemoryPublisher, NotificationPublisher
from pauseshop.schemas.analysis_schema import AnalysisOutcome, Notification, NotificationType
from pauseshop.schemas.product_schema import Product


class FrameCapturer(Protocol):
    async def capture(self, pause_id: str) -> str:
        """캡처 이미지를 data URL 문자열로 반환"""
        ...


class StaticFrameCapturer:
    """브라우저가 이미 캡처해 보낸 프레임을 그대로 돌려줌"""

    def __init__(self, image_data: str) -> None:
        self.image_data = image_data

    async def capture(self, pause_id: str) -> str:
        if not self.image_data.startswith("data:image/"):
            raise FrameCaptureException("image must be a data URL", details={"pause_id": pause_id})
        return self.image_data


class DiscoveryOrchestrator:
    """일시정지 이벤트 → 상품 후보 알림"""

    def __init__(
        self,
        analysis_client: Optional[AnalysisClient] = None,
        publisher: Optional[NotificationPublisher] = None,
        registry: Optional[CancellationRegistry] = None,
        engine: Optional[SearchHttpEngine] = None,
        query_config: Optional[SearchQueryConfig] = None,
        capturer: Optional[FrameCapturer] = None,
        max_listings: Optional[int] = None,
        require_thumbnail: Optional[bool] = None,
    ):
        """
        Args:
            analysis_client: 스트리밍 분석 클라이언트 (stream/end_session 구현)
            publisher: 알림 게시자 (기본값: InMemoryPublisher)
            registry: 취소 레지스트리
            engine: 검색 fetch 엔진 (기본값: 동시 fetch 1개)
            query_config: 검색 URL 설정
            capturer: 기본 프레임 캡처기
        """
        self.analysis_client = analysis_client or AnalysisClient()
        self.publisher: NotificationPublisher = publisher or InMemoryPublisher()
        self.registry = registry or CancellationRegistry()
        self.engine = engine or SearchHttpEngine(
            HttpEngineConfig.from_settings(max_concurrent_requests=settings.discovery_fetch_concurrency)
        )
        self.query_config = query_config or SearchQueryConfig.from_settings()
        self.capturer = capturer
        self.max_listings = max_listings
        self.require_thumbnail = require_thumbnail

        self._tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # 등록 / 취소
    # ------------------------------------------------------------------

    def register_pause(self, pause_id: str, scope: str = DEFAULT_SCOPE) -> CancellationToken:
        return self.registry.register_pause(pause_id, scope)

    def cancel_pause(self, pause_id: str, notify_backend: bool = True) -> bool:
        """분석 취소 (재생 재개 / UI 취소 요청)

        진행 중인 분석은 다음 확인 지점에서 멈추고 analysis_cancelled를 게시합니다.
        """
        cancelled = self.registry.cancel_pause(pause_id, reason="cancel requested")
        if cancelled and notify_backend:
            self.spawn(lambda: self.analysis_client.end_session(pause_id))
        return cancelled

    def spawn(self, factory: Callable[[], Awaitable[Any]]) -> Optional[asyncio.Task]:
        """실행 중인 루프에 백그라운드 태스크로 올림 (루프가 없으면 건너뜀)"""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("[ORCHESTRATOR] No running event loop, background task skipped")
            return None

        task = loop.create_task(factory())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def shutdown(self) -> None:
        self.registry.cancel_all(reason="shutdown")
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # 파이프라인
    # ------------------------------------------------------------------

    async def handle_pause_event(
        self,
        pause_id: str,
        capturer: Optional[FrameCapturer] = None,
        scope: str = DEFAULT_SCOPE,
    ) -> AnalysisOutcome:
        """일시정지 1건 처리

        Returns:
            AnalysisOutcome: success/error/products_found
        """
        token = self.registry.register_pause(pause_id, scope)
        capturer = capturer or self.capturer
        await self._publish(NotificationType.ANALYSIS_STARTED, pause_id)

        try:
            # 1. 프레임 캡처
            if capturer is None:
                return await self._fail(pause_id, "No frame capturer configured")
            try:
                image = await capturer.capture(pause_id)
            except Exception as e:
                logger.error(f"[ORCHESTRATOR] Frame capture failed (pause_id={pause_id}): {type(e).__name__}: {e}")
                return await self._fail(pause_id, f"Frame capture failed: {e}")

            if not image:
                return await self._fail(pause_id, "Frame capture returned no image")
            if token.is_cancelled:
                return await self._cancelled(pause_id, 0)

            # 2. 스트리밍 분석 + 상품별 팬아웃
            products_found = 0
            stream_error: Optional[str] = None
            tasks: List[asyncio.Task] = []

            events = self.analysis_client.stream(image, pause_id, token)
            try:
                async for event in events:
                    if event.kind == AnalysisEventKind.PRODUCT and event.product is not None:
                        products_found += 1
                        logger.info(
                            f"[ORCHESTRATOR] Product #{products_found} "
                            f"'{sanitize_for_log(event.product.name, 50)}' (pause_id={pause_id})"
                        )
                        tasks.append(asyncio.create_task(self._discover_product(pause_id, event.product, token)))
                    elif event.kind == AnalysisEventKind.ERROR:
                        stream_error = event.error_message or "Analysis stream error"
                        break
                    elif event.kind == AnalysisEventKind.COMPLETE:
                        break
            except AnalysisException as e:
                logger.error(f"[ORCHESTRATOR] Analysis stream failed (pause_id={pause_id}): {e}")
                stream_error = e.message
            finally:
                aclose = getattr(events, "aclose", None)
                if aclose is not None:
                    await aclose()

            # 3. 진행 중인 상품 파이프라인 마무리 (각자 예외를 삼킴)
            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)

            if token.is_cancelled:
                return await self._cancelled(pause_id, products_found)
            if stream_error is not None:
                return await self._fail(pause_id, stream_error, products_found)

            await self._publish(NotificationType.ANALYSIS_COMPLETE, pause_id, products_found=products_found)
            logger.info(f"[ORCHESTRATOR] Analysis complete (pause_id={pause_id}, products={products_found})")
            return AnalysisOutcome(success=True, pause_id=pause_id, products_found=products_found)

        finally:
            self.registry.cleanup(pause_id, token)

    async def _discover_product(self, pause_id: str, product: Product, token: CancellationToken) -> bool:
        """상품 1개: 검색 URL → fetch → 추출 → 게시 (실패는 로그만)

        취소된 pause의 상품은 검색 요청을 보내지 않습니다.
        """
        try:
            token.raise_if_cancelled()
            query = build_search_query(product, self.query_config)
            fetch_result = await self.engine.execute_search(query, is_cancelled=lambda: token.is_cancelled)
            token.raise_if_cancelled()
            scrape = scrape_fetch_result(
                fetch_result,
                query,
                max_listings=self.max_listings,
                require_thumbnail=self.require_thumbnail,
            )

            if not scrape.listings:
                logger.info(
                    f"[ORCHESTRATOR] No listings for '{sanitize_for_log(product.name, 50)}' (pause_id={pause_id})"
                )
                return False

            if not self.registry.is_current(pause_id):
                logger.info(f"[ORCHESTRATOR] Discarding stale result (pause_id={pause_id})")
                return False

            await self._publish(
                NotificationType.PRODUCT_DISCOVERED,
                pause_id,
                product=product,
                listings=scrape.listings,
            )
            return True

        except AnalysisCancelledException:
            logger.info(
                f"[ORCHESTRATOR] Skipping '{sanitize_for_log(product.name, 50)}', pause cancelled (pause_id={pause_id})"
            )
        except InvalidQueryException as e:
            logger.warning(f"[ORCHESTRATOR] Query rejected for '{sanitize_for_log(product.name, 50)}': {e}")
        except Exception as e:
            logger.error(
                f"[ORCHESTRATOR] Product pipeline failed (pause_id={pause_id}): {type(e).__name__}: {e}",
                exc_info=True,
            )
        return False

    async def _fail(self, pause_id: str, error: str, products_found: int = 0) -> AnalysisOutcome:
        await self._publish(NotificationType.ANALYSIS_ERROR, pause_id, error=error)
        return AnalysisOutcome(success=False, pause_id=pause_id, error=error, products_found=products_found)

    async def _cancelled(self, pause_id: str, products_found: int) -> AnalysisOutcome:
        await self._publish(NotificationType.ANALYSIS_CANCELLED, pause_id)
        logger.info(f"[ORCHESTRATOR] Analysis cancelled (pause_id={pause_id})")
        return AnalysisOutcome(success=False, pause_id=pause_id, error="cancelled", products_found=products_found)

    async def _publish(self, notification_type: NotificationType, pause_id: str, **fields) -> None:
        try:
            await self.publisher.publish(Notification(type=notification_type, pause_id=pause_id, **fields))
        except Exception as e:
            logger.error(f"[ORCHESTRATOR] Publish {notification_type.value} failed (pause_id={pause_id}): {e}")


class OrchestratorPauseListener:
    """상태 머신 콜백 → 오케스트레이터 (캡처 시 파이프라인을 태스크로 실행)"""

    def __init__(
        self,
        orchestrator: DiscoveryOrchestrator,
        capturer: Optional[FrameCapturer] = None,
        scope: str = DEFAULT_SCOPE,
    ) -> None:
        self.orchestrator = orchestrator
        self.capturer = capturer
        self.scope = scope

    def on_pause_registered(self, pause_id: str) -> None:
        self.orchestrator.register_pause(pause_id, self.scope)

    def on_pause_cancelled(self, pause_id: str) -> None:
        self.orchestrator.cancel_pause(pause_id)

    def on_capture(self, pause_id: str) -> None:
        self.orchestrator.spawn(
            lambda: self.orchestrator.handle_pause_event(pause_id, self.capturer, self.scope)
        )
