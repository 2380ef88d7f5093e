"""마켓플레이스 크롤러 모듈 (curl_cffi HTTP + 정규식 추출).

공개 API는 이 파일에서만 export합니다.
"""

from .http_client import HttpResponse, HttpTransport, SharedHttpClient, get_shared_http_client

__all__ = [
    "HttpResponse",
    "HttpTransport",
    "SharedHttpClient",
    "get_shared_http_client",
]
