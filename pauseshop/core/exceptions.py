"""커스텀 예외 정의 (Structured Exception Hierarchy)"""
from typing import Any, Optional


# 기본 예외 클래스
class PauseShopException(Exception):
    """기본 예외 클래스 - 모든 커스텀 예외의 부모"""
    def __init__(self, message: str, error_code: str = "UNKNOWN_ERROR", details: Optional[dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


# 크롤러(마켓플레이스 HTTP) 관련 예외
class CrawlerException(PauseShopException):
    """크롤러 관련 예외의 기본 클래스"""
    def __init__(self, message: str, error_code: str = "CRAWLER_ERROR", details: Optional[dict[str, Any]] = None):
        super().__init__(message, error_code or "CRAWLER_ERROR", details)


class NetworkException(CrawlerException):
    """연결 실패/전송 오류"""
    def __init__(self, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Network error: {reason}"
        super().__init__(message, "NETWORK_ERROR", details or {"reason": reason})


class NetworkTimeoutException(CrawlerException):
    """네트워크 타임아웃 예외"""
    def __init__(self, operation: str, timeout_ms: int, details: Optional[dict[str, Any]] = None):
        message = f"Request timeout during '{operation}' after {timeout_ms}ms"
        super().__init__(message, "NETWORK_TIMEOUT",
                        details or {"operation": operation, "timeout_ms": timeout_ms})


class HttpStatusException(CrawlerException):
    """2xx가 아닌 응답"""
    def __init__(self, status_code: int, reason: str = "", details: Optional[dict[str, Any]] = None):
        message = f"HTTP {status_code}: {reason}".rstrip(": ")
        super().__init__(message, "HTTP_STATUS",
                        details or {"status_code": status_code})
        self.status_code = status_code


class EmptyResponseException(CrawlerException):
    """본문이 비었거나 너무 짧은 응답"""
    def __init__(self, length: int, min_length: int, details: Optional[dict[str, Any]] = None):
        message = f"Invalid or empty response content (len={length}, min={min_length})"
        super().__init__(message, "EMPTY_RESPONSE",
                        details or {"length": length, "min_length": min_length})


class BlockedException(CrawlerException):
    """봇 감지/차단 예외"""
    def __init__(self, source: str, marker: str = "", details: Optional[dict[str, Any]] = None):
        message = f"Anti-bot protection detected by {source} (possible bot detection, marker='{marker}')"
        super().__init__(message, "BLOCKED", details or {"source": source, "marker": marker})


# 유효성 검증 관련 예외
class ValidationException(PauseShopException):
    """유효성 검증 예외"""
    def __init__(self, field: str, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Validation failed for '{field}': {reason}"
        super().__init__(message, "VALIDATION_ERROR",
                        details or {"field": field, "reason": reason})


class InvalidQueryException(ValidationException):
    """유효하지 않은 검색어"""
    def __init__(self, reason: str, details: Optional[dict[str, Any]] = None):
        super().__init__("search_terms", reason, details)


class InvalidURLException(ValidationException):
    """유효하지 않은 URL"""
    def __init__(self, url: str, reason: str, details: Optional[dict[str, Any]] = None):
        super().__init__("url", f"{reason} (url: {url})", details)


class InvalidConfigException(ValidationException):
    """유효하지 않은 설정값"""
    def __init__(self, field: str, reason: str, details: Optional[dict[str, Any]] = None):
        super().__init__(field, reason, details)


# 분석(비전 모델 스트리밍) 관련 예외
class AnalysisException(PauseShopException):
    """분석 파이프라인 예외의 기본 클래스"""
    def __init__(self, message: str, error_code: str = "ANALYSIS_ERROR", details: Optional[dict[str, Any]] = None):
        super().__init__(message, error_code or "ANALYSIS_ERROR", details)


class AnalysisSessionException(AnalysisException):
    """스트리밍 세션을 열 수 없음"""
    def __init__(self, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Failed to start streaming analysis: {reason}"
        super().__init__(message, "ANALYSIS_SESSION_ERROR", details or {"reason": reason})


class AnalysisStreamException(AnalysisException):
    """스트림 도중 서버가 보낸 오류 이벤트"""
    def __init__(self, reason: str, code: str = "", details: Optional[dict[str, Any]] = None):
        message = f"Streaming analysis failed: {reason}"
        super().__init__(message, "ANALYSIS_STREAM_ERROR", details or {"reason": reason, "code": code})


class FrameCaptureException(AnalysisException):
    """프레임 캡처 실패"""
    def __init__(self, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Failed to capture video frame: {reason}"
        super().__init__(message, "FRAME_CAPTURE_ERROR", details or {"reason": reason})


class AnalysisCancelledException(AnalysisException):
    """새 일시정지/재생 재개로 취소된 분석"""
    def __init__(self, pause_id: str, details: Optional[dict[str, Any]] = None):
        message = f"Analysis cancelled for pauseId: {pause_id}"
        super().__init__(message, "ANALYSIS_CANCELLED", details or {"pause_id": pause_id})
