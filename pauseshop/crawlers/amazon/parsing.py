"""Amazon 검색 결과 HTML - 후보 상품 추출 (정규식 캐스케이드)

네트워크(fetch)와 분리된 순수 텍스트 파싱 로직입니다.

- 컨테이너 패턴은 이름 붙은 전략의 순서 있는 목록입니다.
  primary(new_layout → old_layout)는 처음 결과가 나온 전략에서 멈추고,
  부족하면 fallback(role_listitem → asin_only)으로 보충합니다.
- 상품 URL은 마크업에서 긁지 않고 origin + "/dp/" + ASIN으로 재구성합니다.
- 썸네일이 검증되지 않은 컨테이너는 통째로 버립니다.
"""

from __future__ import annotations

import html as html_lib
import re
import uuid
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Set, Tuple
from urllib.parse import urlparse

from pauseshop.core.config import settings
from pauseshop.core.exceptions import InvalidURLException
from pauseshop.core.logging import logger
from pauseshop.schemas.product_schema import FetchResult, ScrapedListing, ScrapeResult, SearchQuery

from .constants import IMAGE_EXTENSIONS, IMAGE_HOST_MARKERS


_ASIN = r"[A-Z0-9]{10}"

# role / data-component-type 이외의 속성들 (사이에 끼어 있어도 허용)
_PLAIN_ATTRS = r'(?:\s+(?!role=|data-component-type=)[\w:-]+(?:="[^"]*")?)*'

# 다음 컨테이너가 없을 때 본문으로 인정하는 최대 길이 (푸터 이미지 오인 방지)
_MAX_CONTAINER_CHARS = 15000


@dataclass(frozen=True)
class ContainerPattern:
    """검색 결과 컨테이너 시작 태그 패턴 (named group 'asin')"""

    name: str
    pattern: re.Pattern


PRIMARY_PATTERNS: Tuple[ContainerPattern, ...] = (
    # data-asin 다음에 data-component-type
    ContainerPattern(
        "new_layout",
        re.compile(
            rf'<div\b[^>]*?\sdata-asin="(?P<asin>{_ASIN})"{_PLAIN_ATTRS}'
            rf'\s+data-component-type="s-search-result"[^>]*>',
            re.IGNORECASE,
        ),
    ),
    # 순서가 반대인 예전 마크업
    ContainerPattern(
        "old_layout",
        re.compile(
            rf'<div\b[^>]*?\sdata-component-type="s-search-result"{_PLAIN_ATTRS}'
            rf'\s+data-asin="(?P<asin>{_ASIN})"[^>]*>',
            re.IGNORECASE,
        ),
    ),
)

FALLBACK_PATTERNS: Tuple[ContainerPattern, ...] = (
    ContainerPattern(
        "role_listitem",
        re.compile(
            rf'<div\b(?=[^>]*\srole="listitem")[^>]*?\sdata-asin="(?P<asin>{_ASIN})"[^>]*>',
            re.IGNORECASE,
        ),
    ),
    ContainerPattern(
        "asin_only",
        re.compile(rf'<div\b[^>]*?\sdata-asin="(?P<asin>{_ASIN})"[^>]*>', re.IGNORECASE),
    ),
)


_THUMBNAIL_PATTERNS: Tuple[re.Pattern, ...] = (
    # 1) 마켓플레이스 전용 이미지 클래스
    re.compile(r'<img\b[^>]*\sclass="[^"]*\bs-image\b[^"]*"[^>]*\ssrc="([^"]+)"', re.IGNORECASE),
    re.compile(r'<img\b[^>]*\ssrc="([^"]+)"[^>]*\sclass="[^"]*\bs-image\b[^"]*"', re.IGNORECASE),
    # 2) data-* 속성 폴백
    re.compile(r'<img\b[^>]*\sdata-image-latency[^>]*\ssrc="([^"]+)"', re.IGNORECASE),
    re.compile(r'<img\b[^>]*\sdata-image-index[^>]*\ssrc="([^"]+)"', re.IGNORECASE),
    # 3) 이미지 호스트 문자열
    re.compile(r'<img\b[^>]*\ssrc="([^"]*(?:ssl-images-amazon|images-amazon|media-amazon)[^"]*)"', re.IGNORECASE),
)

_PRICE_OFFSCREEN = re.compile(
    r'<span[^>]*class="[^"]*\ba-offscreen\b[^"]*"[^>]*>\s*[^\d<]*([\d.,]+)\s*</span>',
    re.IGNORECASE,
)
_PRICE_WHOLE = re.compile(r'<span[^>]*class="[^"]*\ba-price-whole\b[^"]*"[^>]*>\s*([\d,]+)', re.IGNORECASE)
_PRICE_FRACTION = re.compile(r'<span[^>]*class="[^"]*\ba-price-fraction\b[^"]*"[^>]*>\s*(\d+)', re.IGNORECASE)


def is_valid_image_url(url: str) -> bool:
    """썸네일 URL 검증

    절대 http(s) URL이면서 이미지 호스트 표식이나 이미지 확장자를 포함해야 합니다.
    """
    if not url:
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return False

    lowered = url.lower()
    if any(marker in lowered for marker in IMAGE_HOST_MARKERS):
        return True
    return parsed.path.lower().endswith(IMAGE_EXTENSIONS)


def extract_thumbnail(container_html: str) -> Optional[str]:
    for pattern in _THUMBNAIL_PATTERNS:
        for match in pattern.finditer(container_html):
            candidate = html_lib.unescape(match.group(1).strip())
            if is_valid_image_url(candidate):
                return candidate
    return None


def _to_price(text: str) -> Optional[float]:
    cleaned = text.replace(",", "").strip().rstrip(".")
    if not cleaned:
        return None
    try:
        return float(cleaned)
    except ValueError:
        return None


def extract_price(container_html: str) -> Optional[float]:
    m = _PRICE_OFFSCREEN.search(container_html)
    if m:
        price = _to_price(m.group(1))
        if price is not None:
            return price

    whole = _PRICE_WHOLE.search(container_html)
    if whole:
        fraction = _PRICE_FRACTION.search(container_html, whole.end())
        text = whole.group(1).replace(",", "")
        if fraction:
            text = f"{text}.{fraction.group(1)}"
        return _to_price(text)

    return None


def find_containers(html: str, strategy: ContainerPattern) -> Iterator[Tuple[str, str]]:
    """전략 1개로 (ASIN, 컨테이너 본문) 순회

    본문은 시작 태그 끝부터 같은 전략의 다음 컨테이너 시작 직전까지입니다.
    (중첩 div 때문에 닫는 태그 매칭은 신뢰하지 않음)
    """
    matches = list(strategy.pattern.finditer(html))
    for idx, match in enumerate(matches):
        end = matches[idx + 1].start() if idx + 1 < len(matches) else len(html)
        end = min(end, match.end() + _MAX_CONTAINER_CHARS)
        yield match.group("asin").upper(), html[match.end():end]


def normalize_origin(base_origin: str) -> str:
    parsed = urlparse(base_origin)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidURLException(base_origin, "origin must be an absolute http(s) URL")
    return f"{parsed.scheme}://{parsed.netloc}"


def _run_strategy(
    html: str,
    strategy: ContainerPattern,
    origin: str,
    seen: Set[str],
    listings: List[ScrapedListing],
    max_listings: int,
    require_thumbnail: bool,
) -> int:
    added = 0
    for asin, body in find_containers(html, strategy):
        if len(listings) >= max_listings:
            break
        if asin in seen:
            continue

        thumbnail = extract_thumbnail(body)
        if thumbnail is None and require_thumbnail:
            # fallback 패스에서도 제외
            seen.add(asin)
            continue

        seen.add(asin)
        listings.append(
            ScrapedListing(
                id=f"scraped-{uuid.uuid4().hex[:12]}",
                asin=asin,
                thumbnail_url=thumbnail,
                product_url=f"{origin}/dp/{asin}",
                position=len(listings) + 1,
                price=extract_price(body),
            )
        )
        added += 1
    return added


def extract_listings(
    html: str,
    base_origin: str,
    max_listings: Optional[int] = None,
    require_thumbnail: Optional[bool] = None,
    *,
    primary: Sequence[ContainerPattern] = PRIMARY_PATTERNS,
    fallback: Sequence[ContainerPattern] = FALLBACK_PATTERNS,
) -> List[ScrapedListing]:
    """검색 결과 HTML → 순위가 매겨진 ScrapedListing 목록 (1부터)"""
    if max_listings is None:
        max_listings = settings.parser_max_listings
    if require_thumbnail is None:
        require_thumbnail = settings.parser_require_thumbnail

    if not html or max_listings < 1:
        return []

    origin = normalize_origin(base_origin)
    listings: List[ScrapedListing] = []
    seen: Set[str] = set()

    for strategy in primary:
        added = _run_strategy(html, strategy, origin, seen, listings, max_listings, require_thumbnail)
        logger.debug(f"[PARSER] strategy={strategy.name} added={added}")
        if added:
            break

    if len(listings) < max_listings:
        for strategy in fallback:
            added = _run_strategy(html, strategy, origin, seen, listings, max_listings, require_thumbnail)
            logger.debug(f"[PARSER] fallback strategy={strategy.name} added={added}")
            if len(listings) >= max_listings:
                break

    return listings


def scrape_fetch_result(
    fetch_result: FetchResult,
    query: Optional[SearchQuery] = None,
    max_listings: Optional[int] = None,
    require_thumbnail: Optional[bool] = None,
) -> ScrapeResult:
    """fetch 결과 1건 → ScrapeResult

    실패한 fetch나 깨진 마크업은 예외 없이 빈 목록으로 처리합니다.
    """
    result_id = f"scrape-{uuid.uuid4().hex[:12]}"

    if not fetch_result.success or not fetch_result.html_content:
        logger.info(f"[PARSER] Skip failed fetch (product={fetch_result.product_id}): {fetch_result.error}")
        return ScrapeResult(id=result_id, search_url=fetch_result.search_url, listings=[], query=query)

    try:
        listings = extract_listings(
            fetch_result.html_content,
            fetch_result.search_url,
            max_listings=max_listings,
            require_thumbnail=require_thumbnail,
        )
    except InvalidURLException as e:
        logger.warning(f"[PARSER] {e}")
        listings = []
    except Exception as e:
        logger.warning(f"[PARSER] Extraction failed (product={fetch_result.product_id}): {type(e).__name__}: {e}")
        listings = []

    logger.info(f"[PARSER] product={fetch_result.product_id} listings={len(listings)}")
    return ScrapeResult(id=result_id, search_url=fetch_result.search_url, listings=listings, query=query)
