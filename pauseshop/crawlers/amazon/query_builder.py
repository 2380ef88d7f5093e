"""Amazon 검색 URL 생성

분석 서버가 감지한 Product를 마켓플레이스 검색 URL(SearchQuery)로 바꿉니다.
네트워크/상태가 없는 순수 함수 모음이라 단위 테스트로 모든 분기를 확인합니다.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Optional, List, Sequence
from urllib.parse import urlencode

from pauseshop.core.config import settings
from pauseshop.core.exceptions import InvalidConfigException, InvalidQueryException
from pauseshop.core.logging import logger, sanitize_for_log
from pauseshop.schemas.product_schema import (
    Product,
    ProductCategory,
    QueryBatchMetadata,
    SearchQuery,
    SearchQueryBatch,
    TargetGender,
)

from .constants import (
    APPAREL_CATEGORIES,
    CATEGORY_NODES,
    REF_PARAM,
    SEARCH_TERM_STRIP_CHARS,
    SORT_PARAM,
    SUPPORTED_DOMAINS,
)


FALLBACK_TERMS_PENALTY = 0.3
TRUNCATION_PENALTY = 0.2
WORD_BOUNDARY_RATIO = 0.8
MAX_FEATURES_IN_TERMS = 2

_STRIP_TABLE = str.maketrans("", "", SEARCH_TERM_STRIP_CHARS)


@dataclass
class SearchQueryConfig:
    """검색 URL 생성 설정"""

    domain: str = "amazon.com"
    max_search_term_length: int = 200
    enable_category_filtering: bool = True

    def __post_init__(self):
        """설정 검증"""
        if not validate_domain(self.domain):
            raise InvalidConfigException("domain", f"unsupported marketplace domain: {self.domain}")
        if self.max_search_term_length < 1:
            raise InvalidConfigException("max_search_term_length", "must be >= 1")

    @classmethod
    def from_settings(cls) -> "SearchQueryConfig":
        return cls(
            domain=settings.marketplace_domain,
            max_search_term_length=settings.marketplace_max_search_term_length,
            enable_category_filtering=settings.marketplace_enable_category_filtering,
        )


@dataclass
class SearchTermValidation:
    """검색어 검증/가공 결과"""

    is_valid: bool
    processed_terms: str
    truncated: bool = False
    warnings: List[str] = field(default_factory=list)


def validate_domain(domain: str) -> bool:
    return domain in SUPPORTED_DOMAINS


def _is_known(value: Optional[str]) -> bool:
    return bool(value and value.strip() and value.strip().lower() != "unknown")


def synthesize_search_terms(product: Product) -> str:
    """개별 필드로 검색어 조합 (모델 검색어가 없을 때의 폴백)

    순서: 성별 → 주 색상 → 상품명 → 브랜드 → 특징 최대 2개
    - 성별: 의류 계열 카테고리 + unisex가 아닐 때만
    - 색상/브랜드: unknown이거나 상품명에 이미 있으면 생략
    """
    name = product.name.strip()
    name_lower = name.lower()
    parts: List[str] = []

    if product.category in APPAREL_CATEGORIES and product.target_gender != TargetGender.UNISEX:
        parts.append(product.target_gender.value)

    if _is_known(product.primary_color) and product.primary_color.strip().lower() not in name_lower:
        parts.append(product.primary_color.strip())

    parts.append(name)

    if _is_known(product.brand) and product.brand.strip().lower() not in name_lower:
        parts.append(product.brand.strip())

    for feature in product.features[:MAX_FEATURES_IN_TERMS]:
        if feature and feature.strip():
            parts.append(feature.strip())

    return " ".join(p for p in parts if p).strip()


def select_search_terms(product: Product) -> tuple[str, bool]:
    """검색어 선택

    Returns:
        (검색어, 폴백 조합 여부)
    """
    own_terms = (product.search_terms or "").strip()
    if own_terms:
        return own_terms, False
    return synthesize_search_terms(product), True


def _last_whitespace_index(text: str) -> int:
    for idx in range(len(text) - 1, -1, -1):
        if text[idx].isspace():
            return idx
    return -1


def validate_search_terms(terms: str, max_length: int) -> SearchTermValidation:
    """검색어 검증 및 가공

    - 앞뒤 공백 제거 후 비었으면 거절
    - URL 쿼리를 깨뜨리는 문자(<>{}[]\\) 제거
    - max_length 초과 시 자르고, 마지막 공백이 80% 지점 뒤에 있으면 단어 경계까지 되돌림
    """
    processed = (terms or "").strip()
    if not processed:
        return SearchTermValidation(is_valid=False, processed_terms="", warnings=["Empty search terms"])

    warnings: List[str] = []
    stripped = processed.translate(_STRIP_TABLE).strip()
    if stripped != processed:
        warnings.append("Removed special characters from search terms")
    processed = stripped

    if not processed:
        return SearchTermValidation(is_valid=False, processed_terms="", warnings=warnings + ["Empty search terms"])

    truncated = False
    if len(processed) > max_length:
        processed = processed[:max_length].strip()
        last_ws = _last_whitespace_index(processed)
        if last_ws > max_length * WORD_BOUNDARY_RATIO:
            processed = processed[:last_ws].rstrip()
        truncated = True
        warnings.append(f"Truncated search terms to {max_length} characters")

    return SearchTermValidation(
        is_valid=True,
        processed_terms=processed,
        truncated=truncated,
        warnings=warnings,
    )


def get_category_node(category: ProductCategory) -> Optional[str]:
    return CATEGORY_NODES.get(category) or None


def calculate_confidence(used_fallback: bool, truncated: bool) -> float:
    """1.0에서 폴백/절단 패널티를 뺀 신뢰도 (하한 0)"""
    confidence = 1.0
    if used_fallback:
        confidence -= FALLBACK_TERMS_PENALTY
    if truncated:
        confidence -= TRUNCATION_PENALTY
    return max(0.0, round(confidence, 4))


def build_search_url(search_terms: str, category: ProductCategory, config: SearchQueryConfig) -> str:
    params: List[tuple[str, str]] = [("k", search_terms)]

    if config.enable_category_filtering:
        node = get_category_node(category)
        if node:
            params.append(("rh", f"n:{node}"))

    params.append(("sort", SORT_PARAM))
    params.append(("ref", REF_PARAM))
    # 캐시 충돌 방지용 고유 파라미터
    params.append(("qid", str(int(time.time() * 1000))))

    return f"https://www.{config.domain}/s?{urlencode(params)}"


def build_search_query(product: Product, config: Optional[SearchQueryConfig] = None) -> SearchQuery:
    """Product 1개 → SearchQuery

    Raises:
        InvalidQueryException: 사용할 수 있는 검색어가 없을 때 (네트워크 호출 전 단락)
    """
    config = config or SearchQueryConfig.from_settings()

    raw_terms, used_fallback = select_search_terms(product)
    validation = validate_search_terms(raw_terms, config.max_search_term_length)

    if not validation.is_valid:
        logger.warning(f"[QUERY_BUILDER] Rejected product '{sanitize_for_log(product.name, 50)}': empty search terms")
        raise InvalidQueryException("Empty search terms", details={"product": product.name})

    search_url = build_search_url(validation.processed_terms, product.category, config)
    confidence = calculate_confidence(used_fallback, validation.truncated)

    logger.debug(
        f"[QUERY_BUILDER] terms='{sanitize_for_log(validation.processed_terms, 80)}', "
        f"fallback={used_fallback}, truncated={validation.truncated}, confidence={confidence:.2f}"
    )

    return SearchQuery(
        id=f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}",
        search_url=search_url,
        search_terms=validation.processed_terms,
        category=product.category,
        confidence=confidence,
        warnings=validation.warnings,
        product=product,
    )


def build_search_batch(
    products: Sequence[Product],
    config: Optional[SearchQueryConfig] = None,
) -> SearchQueryBatch:
    """여러 상품의 SearchQuery를 한 번에 생성

    거절된 상품은 로그만 남기고 건너뛰며 failed_searches로 집계합니다.
    """
    started = time.monotonic()
    config = config or SearchQueryConfig.from_settings()

    queries: List[SearchQuery] = []
    failed = 0
    for product in products:
        try:
            queries.append(build_search_query(product, config))
        except InvalidQueryException as e:
            failed += 1
            logger.warning(f"[QUERY_BUILDER] Skipping product in batch: {e}")

    return SearchQueryBatch(
        queries=queries,
        metadata=QueryBatchMetadata(
            total_products=len(products),
            successful_searches=len(queries),
            failed_searches=failed,
            processing_time_ms=(time.monotonic() - started) * 1000,
        ),
    )
