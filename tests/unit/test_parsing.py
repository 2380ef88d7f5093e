"""검색 결과 HTML 추출 단위 테스트 (정규식 캐스케이드)"""

import pytest

from pauseshop.core.exceptions import InvalidURLException
from pauseshop.crawlers.amazon.parsing import (
    FALLBACK_PATTERNS,
    PRIMARY_PATTERNS,
    extract_listings,
    extract_price,
    extract_thumbnail,
    find_containers,
    is_valid_image_url,
    normalize_origin,
    scrape_fetch_result,
)
from pauseshop.schemas.product_schema import FetchResult
from tests.fixtures import AMAZON_PAGES


BASE = "https://www.amazon.com/s?k=women+red+running+shoes&qid=1"


def _fetch(html, success=True, error=None) -> FetchResult:
    return FetchResult(
        id="fetch-test",
        product_id="query-1",
        search_url=BASE,
        success=success,
        html_content=html,
        error=error,
        status_code=200 if success else None,
    )


# ============================================================================
# 레이아웃별 추출
# ============================================================================

def test_new_layout_listings():
    listings = extract_listings(AMAZON_PAGES["new_layout"], BASE)

    assert [l.asin for l in listings] == ["B0TESTNEW1", "B0TESTNEW2"]
    assert [l.position for l in listings] == [1, 2]
    assert listings[0].product_url == "https://www.amazon.com/dp/B0TESTNEW1"
    assert listings[0].thumbnail_url == "https://m.media-amazon.com/images/I/71abcNEW1._AC_UL320_.jpg"
    assert listings[1].thumbnail_url == "https://m.media-amazon.com/images/I/81xyzNEW2._AC_UL320_.jpg"
    assert all(l.id.startswith("scraped-") for l in listings)


def test_new_and_old_layout_yield_same_asin():
    new = extract_listings(AMAZON_PAGES["new_layout"], BASE)
    old = extract_listings(AMAZON_PAGES["old_layout"], BASE)

    assert old[0].asin == new[0].asin == "B0TESTNEW1"
    assert old[0].thumbnail_url == "https://images-na.ssl-images-amazon.com/images/I/71abcOLD1.jpg"
    assert is_valid_image_url(old[0].thumbnail_url)
    assert len(old) == 1


def test_role_listitem_fallback():
    listings = extract_listings(AMAZON_PAGES["role_listitem"], BASE)

    assert [l.asin for l in listings] == ["B0ROLE0001", "B0ROLE0002"]
    assert listings[1].thumbnail_url.endswith("61role2.jpg")


def test_primary_patterns_skip_role_marked_tag():
    html = AMAZON_PAGES["role_listitem"]
    for strategy in PRIMARY_PATTERNS:
        assert list(find_containers(html, strategy)) == []

    role_strategy = FALLBACK_PATTERNS[0]
    assert role_strategy.name == "role_listitem"
    assert [asin for asin, _ in find_containers(html, role_strategy)] == ["B0ROLE0001", "B0ROLE0002"]


def test_container_without_thumbnail_dropped():
    listings = extract_listings(AMAZON_PAGES["no_image_first"], BASE)

    assert [l.asin for l in listings] == ["B0WITHIMG1"]
    assert listings[0].position == 1


def test_thumbnail_optional_when_not_required():
    listings = extract_listings(AMAZON_PAGES["no_image_first"], BASE, require_thumbnail=False)

    assert [l.asin for l in listings] == ["B0NOIMAGE1", "B0WITHIMG1"]
    assert listings[0].thumbnail_url is None
    assert listings[0].price == pytest.approx(10.0)


def test_invalid_thumbnails_skipped_in_cascade():
    listings = extract_listings(AMAZON_PAGES["bad_thumbnails"], BASE)
    assert listings[0].thumbnail_url == "https://m.media-amazon.com/images/I/51fallback.jpg"


def test_max_listings_cap():
    assert len(extract_listings(AMAZON_PAGES["many_listings"], BASE)) == 5

    listings = extract_listings(AMAZON_PAGES["many_listings"], BASE, max_listings=3)
    assert [l.position for l in listings] == [1, 2, 3]
    assert [l.asin for l in listings] == ["B0MANY0001", "B0MANY0002", "B0MANY0003"]


def test_duplicate_asin_listed_once():
    block = (
        '<div data-asin="B0DUPE0001" data-component-type="s-search-result">'
        '<img class="s-image" src="https://m.media-amazon.com/images/I/dupe.jpg"/></div>'
    )
    html = "<html><body>" + block + block + "</body></html>"

    listings = extract_listings(html, BASE)
    assert [l.asin for l in listings] == ["B0DUPE0001"]


def test_lowercase_asin_normalized():
    html = (
        '<div data-asin="b0lower001" data-component-type="s-search-result">'
        '<img class="s-image" src="https://m.media-amazon.com/images/I/lower.jpg"/></div>'
    )
    listings = extract_listings(html, BASE)
    assert listings[0].asin == "B0LOWER001"
    assert listings[0].product_url == "https://www.amazon.com/dp/B0LOWER001"


def test_page_without_results():
    assert extract_listings(AMAZON_PAGES["empty_results"], BASE) == []
    assert extract_listings("", BASE) == []
    assert extract_listings(AMAZON_PAGES["new_layout"], BASE, max_listings=0) == []


def test_origin_from_search_url():
    assert normalize_origin(BASE) == "https://www.amazon.com"
    assert normalize_origin("https://www.amazon.co.uk/") == "https://www.amazon.co.uk"
    listings = extract_listings(AMAZON_PAGES["new_layout"], "https://www.amazon.co.uk/s?k=x")
    assert listings[0].product_url == "https://www.amazon.co.uk/dp/B0TESTNEW1"


@pytest.mark.parametrize("base", ["/s?k=shoes", "www.amazon.com", "ftp://www.amazon.com/s"])
def test_relative_origin_rejected(base):
    with pytest.raises(InvalidURLException):
        normalize_origin(base)


# ============================================================================
# 필드 추출
# ============================================================================

def test_prices():
    listings = extract_listings(AMAZON_PAGES["new_layout"], BASE)
    assert listings[0].price == pytest.approx(59.99)
    assert listings[1].price == pytest.approx(74.50)


def test_price_with_thousands_separator():
    assert extract_price('<span class="a-offscreen">$1,299.00</span>') == pytest.approx(1299.0)
    assert extract_price('<span class="a-price-whole">1,049<span class="a-price-decimal">.</span></span>') == 1049.0
    assert extract_price("<span>no price here</span>") is None


def test_thumbnail_html_entities_unescaped():
    html = '<img class="s-image" src="https://m.media-amazon.com/images/I/x.jpg?a=1&amp;b=2"/>'
    assert extract_thumbnail(html) == "https://m.media-amazon.com/images/I/x.jpg?a=1&b=2"


@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://m.media-amazon.com/images/I/71abc.jpg", True),
        ("https://images-na.ssl-images-amazon.com/images/I/71abc._SX300_", True),
        ("https://cdn.example.com/photo.webp", True),
        ("https://cdn.example.com/photo", False),
        ("/images/I/71abc.jpg", False),
        ("data:image/gif;base64,R0lGOD", False),
        ("javascript:alert(1)", False),
        ("", False),
    ],
)
def test_is_valid_image_url(url, expected):
    assert is_valid_image_url(url) is expected


# ============================================================================
# fetch 결과 → ScrapeResult
# ============================================================================

def test_scrape_successful_fetch():
    result = scrape_fetch_result(_fetch(AMAZON_PAGES["new_layout"]))

    assert result.id.startswith("scrape-")
    assert result.search_url == BASE
    assert len(result.listings) == 2
    assert result.best_listing.asin == "B0TESTNEW1"


def test_scrape_failed_fetch_is_empty():
    result = scrape_fetch_result(_fetch(None, success=False, error="[BLOCKED] Anti-bot protection detected"))

    assert result.listings == []
    assert result.best_listing is None


def test_scrape_garbled_markup_is_empty():
    result = scrape_fetch_result(_fetch("<div data-asin=\"<<<\" <img src=>" * 20))
    assert result.listings == []


def test_scrape_with_unusable_search_url_is_empty():
    fetch = _fetch(AMAZON_PAGES["new_layout"]).model_copy(update={"search_url": "/s?k=shoes"})
    result = scrape_fetch_result(fetch)
    assert result.listings == []
