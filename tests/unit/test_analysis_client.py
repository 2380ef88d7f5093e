"""분석 서버 스트리밍 클라이언트 단위 테스트

- 실제 네트워크 없음 (_iter_lines / 세션 교체)
"""

import json

import pytest

from pauseshop.core.exceptions import AnalysisSessionException
from pauseshop.engine.analysis_client import (
    AnalysisClient,
    AnalysisEventKind,
    iter_sse_events,
    parse_sse_data,
    parse_sse_line,
)
from pauseshop.engine.cancellation import CancellationToken
from tests.fixtures import PRODUCTS


def _data(payload) -> str:
    return "data: " + json.dumps(payload)


PRODUCT_LINE = _data(PRODUCTS["red_running_shoes"])
LAMP_LINE = _data(PRODUCTS["table_lamp"])
COMPLETE_LINE = _data({"totalProducts": 2, "processingTime": 1834})
ERROR_LINE = _data({"message": "model overloaded", "code": "overloaded", "timestamp": "2024-01-01T00:00:00Z"})


def _client_with_lines(lines, fail_after=None):
    client = AnalysisClient(base_url="http://analysis.test", timeout_s=5.0)
    consumed = []

    async def fake_iter_lines(body):
        consumed.append(body)
        for idx, line in enumerate(lines):
            if fail_after is not None and idx == fail_after:
                raise AnalysisSessionException("HTTP 502: Bad Gateway")
            yield line

    client._iter_lines = fake_iter_lines
    return client, consumed


async def _collect(stream):
    return [event async for event in stream]


# ============================================================================
# SSE 파싱
# ============================================================================

def test_parse_product_line():
    event = parse_sse_line(PRODUCT_LINE)

    assert event.kind == AnalysisEventKind.PRODUCT
    assert event.product.name == "Red Running Shoes"
    assert event.product.search_terms == "women red running shoes"
    assert event.is_terminal is False


def test_parse_complete_line():
    event = parse_sse_line(COMPLETE_LINE)

    assert event.kind == AnalysisEventKind.COMPLETE
    assert event.total_products == 2
    assert event.processing_time_ms == 1834
    assert event.is_terminal is True


def test_parse_error_line():
    event = parse_sse_line(ERROR_LINE)

    assert event.kind == AnalysisEventKind.ERROR
    assert event.error_message == "model overloaded"
    assert event.error_code == "overloaded"


@pytest.mark.parametrize(
    "line",
    [
        "",
        "   ",
        "event: product",
        ": keep-alive",
        "id: 42",
        "data: {not json",
        "data: [1, 2, 3]",
        "data: {\"unrelated\": true}",
    ],
)
def test_ignored_lines(line):
    assert parse_sse_line(line) is None


def test_product_without_category_is_not_a_product():
    assert parse_sse_data(json.dumps({"name": "Shoe"})) is None


def test_iter_sse_events_skips_noise():
    events = list(iter_sse_events(["event: product", PRODUCT_LINE, "", "data: oops", COMPLETE_LINE]))
    assert [e.kind for e in events] == [AnalysisEventKind.PRODUCT, AnalysisEventKind.COMPLETE]


def test_request_body_shape():
    client = AnalysisClient(base_url="http://analysis.test/")
    body = client.build_request_body("data:image/jpeg;base64,AAAA", "1700000000000")

    assert client.base_url == "http://analysis.test"
    assert body["image"] == "data:image/jpeg;base64,AAAA"
    assert body["sessionId"] == "1700000000000"
    assert "timestamp" in body["metadata"]


# ============================================================================
# 스트림
# ============================================================================

@pytest.mark.asyncio
async def test_stream_yields_products_until_complete():
    client, consumed = _client_with_lines([PRODUCT_LINE, LAMP_LINE, COMPLETE_LINE, PRODUCT_LINE])

    events = await _collect(client.stream("data:image/png;base64,AA", "p1"))

    assert [e.kind for e in events] == [
        AnalysisEventKind.PRODUCT,
        AnalysisEventKind.PRODUCT,
        AnalysisEventKind.COMPLETE,
    ]
    assert consumed[0]["sessionId"] == "p1"


@pytest.mark.asyncio
async def test_stream_without_completion_is_completed():
    client, _ = _client_with_lines([PRODUCT_LINE, "data: garbage"])

    events = await _collect(client.stream("data:image/png;base64,AA", "p1"))

    assert [e.kind for e in events] == [AnalysisEventKind.PRODUCT, AnalysisEventKind.COMPLETE]
    assert events[-1].total_products is None


@pytest.mark.asyncio
async def test_stream_stops_on_error_event():
    client, _ = _client_with_lines([PRODUCT_LINE, ERROR_LINE, LAMP_LINE])

    events = await _collect(client.stream("data:image/png;base64,AA", "p1"))

    assert [e.kind for e in events] == [AnalysisEventKind.PRODUCT, AnalysisEventKind.ERROR]


@pytest.mark.asyncio
async def test_stream_stops_when_cancelled():
    client, _ = _client_with_lines([PRODUCT_LINE, LAMP_LINE, COMPLETE_LINE])
    token = CancellationToken("p1")

    seen = []
    async for event in client.stream("data:image/png;base64,AA", "p1", token):
        seen.append(event)
        token.cancel("play")

    # 취소 후에는 합성 완료 이벤트도 없음
    assert [e.kind for e in seen] == [AnalysisEventKind.PRODUCT]


@pytest.mark.asyncio
async def test_stream_open_failure_propagates():
    client, _ = _client_with_lines([PRODUCT_LINE], fail_after=0)

    with pytest.raises(AnalysisSessionException) as exc_info:
        await _collect(client.stream("data:image/png;base64,AA", "p1"))
    assert "HTTP 502" in str(exc_info.value)


# ============================================================================
# 세션 종료
# ============================================================================

class _FakeResponse:
    def __init__(self, status_code):
        self.status_code = status_code


class _FakeSession:
    def __init__(self, status_code=200, error=None):
        self.status_code = status_code
        self.error = error
        self.posts = []
        self.closed = False

    async def post(self, url, **kwargs):
        self.posts.append(url)
        if self.error:
            raise self.error
        return _FakeResponse(self.status_code)

    async def close(self):
        self.closed = True


@pytest.mark.asyncio
async def test_end_session_posts_to_session_url():
    client = AnalysisClient(base_url="http://analysis.test")
    session = _FakeSession()
    client._session = session

    assert await client.end_session("p1") is True
    assert session.posts == ["http://analysis.test/session/p1/end"]


@pytest.mark.asyncio
async def test_end_session_is_best_effort():
    client = AnalysisClient(base_url="http://analysis.test")
    client._session = _FakeSession(error=ConnectionError("refused"))
    assert await client.end_session("p1") is False

    client._session = _FakeSession(status_code=404)
    assert await client.end_session("p1") is False


@pytest.mark.asyncio
async def test_close_releases_session():
    client = AnalysisClient(base_url="http://analysis.test")
    session = _FakeSession()
    client._session = session

    await client.close()
    await client.close()

    assert session.closed is True
    assert client._session is None
