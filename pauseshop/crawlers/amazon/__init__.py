"""Amazon 검색 (URL 생성, HTTP 실행, HTML 추출)."""

from .query_builder import (
    SearchQueryConfig,
    SearchTermValidation,
    build_search_batch,
    build_search_query,
    build_search_url,
    calculate_confidence,
    validate_domain,
    validate_search_terms,
)
from .http_engine import HttpEngineConfig, SearchHttpEngine, validate_search_response
from .parsing import (
    ContainerPattern,
    FALLBACK_PATTERNS,
    PRIMARY_PATTERNS,
    extract_listings,
    extract_thumbnail,
    is_valid_image_url,
    scrape_fetch_result,
)

__all__ = [
    "SearchQueryConfig",
    "SearchTermValidation",
    "build_search_batch",
    "build_search_query",
    "build_search_url",
    "calculate_confidence",
    "validate_domain",
    "validate_search_terms",
    "HttpEngineConfig",
    "SearchHttpEngine",
    "validate_search_response",
    "ContainerPattern",
    "FALLBACK_PATTERNS",
    "PRIMARY_PATTERNS",
    "extract_listings",
    "extract_thumbnail",
    "is_valid_image_url",
    "scrape_fetch_result",
]
