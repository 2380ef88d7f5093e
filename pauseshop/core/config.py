"""설정 관리 - 환경 변수 로드 및 검증"""
from pydantic_settings import BaseSettings
from pydantic import field_validator


class Settings(BaseSettings):
    """애플리케이션 설정"""

    # 마켓플레이스 검색어 생성
    marketplace_domain: str = "amazon.com"
    marketplace_enable_category_filtering: bool = True
    marketplace_max_search_term_length: int = 200

    # 검색 페이지 HTTP 실행 엔진
    # NOTE: 봇 차단을 피하려는 목적이 아니라 '평범한 브라우저처럼' 보이기 위한 기본값입니다.
    crawler_max_concurrent_requests: int = 3
    crawler_request_delay_ms: int = 1500
    crawler_request_jitter_ms: int = 500
    crawler_timeout_ms: int = 10000
    crawler_max_retries: int = 2
    crawler_backoff_base_ms: int = 1000
    crawler_user_agent_rotation: bool = True
    crawler_min_html_length: int = 100
    crawler_http_impersonate: str = "chrome110"
    crawler_http_max_clients: int = 20

    # 검색 결과 파싱
    parser_max_listings: int = 5
    parser_require_thumbnail: bool = True

    # 상품 1개당 동시 fetch 수 (마켓플레이스 차단 방지용으로 1 유지)
    discovery_fetch_concurrency: int = 1

    # 분석 서버 (스트리밍)
    analysis_base_url: str = "http://localhost:3000"
    analysis_timeout_s: float = 60.0

    # 일시정지/탐색 판별 타이밍
    video_default_debounce_ms: int = 300
    video_interaction_debounce_ms: int = 5000
    video_seek_settle_ms: int = 500
    video_seek_grace_ms: int = 1500
    video_time_jump_threshold_s: float = 1.0
    video_near_end_threshold_s: float = 0.25

    # API
    api_title: str = "PauseShop Discovery Service"
    api_version: str = "0.3.0"
    api_description: str = "영상 일시정지 프레임에서 상품을 분석하고 마켓플레이스 후보를 찾습니다."

    # 로깅
    log_level: str = "INFO"

    @field_validator(
        "marketplace_max_search_term_length",
        "crawler_max_concurrent_requests",
        "crawler_timeout_ms",
        "parser_max_listings",
        "discovery_fetch_concurrency",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("value must be positive")
        return v

    @field_validator(
        "crawler_request_delay_ms",
        "crawler_request_jitter_ms",
        "crawler_max_retries",
        "crawler_backoff_base_ms",
        "crawler_min_html_length",
    )
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("value must be >= 0")
        return v

    @field_validator(
        "video_default_debounce_ms",
        "video_interaction_debounce_ms",
        "video_seek_settle_ms",
        "video_seek_grace_ms",
    )
    @classmethod
    def validate_video_timings(cls, v: int) -> int:
        if v < 0:
            raise ValueError("video timings must be >= 0")
        return v

    @field_validator("analysis_base_url")
    @classmethod
    def validate_analysis_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("analysis_base_url must start with http:// or https://")
        return v.rstrip("/")

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
