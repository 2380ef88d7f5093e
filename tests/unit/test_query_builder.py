"""검색 URL 생성 단위 테스트

- 네트워크 없음 (순수 함수)
- 검색어 선택/폴백 조합/절단/카테고리 필터 검증
"""

import re
from urllib.parse import parse_qs, urlparse

import pytest

from pauseshop.core.exceptions import InvalidConfigException, InvalidQueryException
from pauseshop.crawlers.amazon.query_builder import (
    SearchQueryConfig,
    build_search_batch,
    build_search_query,
    calculate_confidence,
    synthesize_search_terms,
    validate_search_terms,
)
from pauseshop.schemas.product_schema import Product, ProductCategory, TargetGender
from tests.fixtures import PRODUCTS


def _product(key: str) -> Product:
    return Product.model_validate(PRODUCTS[key])


def _params(url: str) -> dict:
    return parse_qs(urlparse(url).query)


def test_red_running_shoes_uses_model_terms():
    query = build_search_query(_product("red_running_shoes"), SearchQueryConfig())

    assert query.search_terms == "women red running shoes"
    assert query.search_url.startswith("https://www.amazon.com/s?")
    assert "k=women+red+running+shoes" in query.search_url
    assert query.confidence == 1.0
    assert query.warnings == []
    assert query.category == ProductCategory.FOOTWEAR


def test_search_url_parameters():
    query = build_search_query(_product("red_running_shoes"), SearchQueryConfig())
    params = _params(query.search_url)

    assert params["rh"] == ["n:679255011"]
    assert params["sort"] == ["relevanceblender"]
    assert params["ref"] == ["sr_pg_1"]
    assert params["qid"][0].isdigit()


def test_query_id_format():
    query = build_search_query(_product("table_lamp"), SearchQueryConfig())
    assert re.fullmatch(r"\d+-[0-9a-f]{9}", query.id)


def test_category_filter_can_be_disabled():
    config = SearchQueryConfig(enable_category_filtering=False)
    query = build_search_query(_product("red_running_shoes"), config)
    assert "rh" not in _params(query.search_url)


def test_other_category_has_no_filter():
    query = build_search_query(_product("mystery_gadget"), SearchQueryConfig())
    assert query.category == ProductCategory.OTHER
    assert "rh" not in _params(query.search_url)


def test_other_marketplace_domain():
    query = build_search_query(_product("table_lamp"), SearchQueryConfig(domain="amazon.co.uk"))
    assert query.search_url.startswith("https://www.amazon.co.uk/s?")


def test_unsupported_domain_rejected():
    with pytest.raises(InvalidConfigException):
        SearchQueryConfig(domain="example.com")


def test_invalid_max_length_rejected():
    with pytest.raises(InvalidConfigException):
        SearchQueryConfig(max_search_term_length=0)


# ============================================================================
# 폴백 검색어 조합
# ============================================================================

def test_synthesized_terms_for_apparel():
    product = _product("leather_jacket_no_terms")
    assert product.target_gender == TargetGender.MEN

    terms = synthesize_search_terms(product)
    assert terms == "men black Leather Jacket Schott zip front quilted lining"


def test_synthesized_terms_lower_confidence():
    query = build_search_query(_product("leather_jacket_no_terms"), SearchQueryConfig())
    assert query.confidence == pytest.approx(0.7)
    assert query.search_terms.startswith("men black Leather Jacket")


def test_synthesized_terms_skip_unknown_fields():
    product = _product("mystery_gadget")
    assert product.target_gender == TargetGender.UNISEX
    assert synthesize_search_terms(product) == "Mystery Gadget"


def test_color_already_in_name_not_repeated():
    product = Product(name="Red Sofa", category=ProductCategory.FURNITURE, primary_color="red")
    assert synthesize_search_terms(product) == "Red Sofa"


def test_gender_not_added_outside_apparel():
    product = Product(name="Desk Lamp", category=ProductCategory.HOME_DECOR, target_gender="women")
    assert synthesize_search_terms(product) == "Desk Lamp"


def test_blank_product_rejected_before_fetch():
    with pytest.raises(InvalidQueryException):
        build_search_query(_product("blank_terms"), SearchQueryConfig())


# ============================================================================
# 검색어 검증/절단
# ============================================================================

def test_empty_terms_invalid():
    result = validate_search_terms("   ", 200)
    assert result.is_valid is False
    assert result.processed_terms == ""


def test_special_characters_removed():
    result = validate_search_terms("red <shoes> {x}", 200)
    assert result.is_valid is True
    assert result.processed_terms == "red shoes x"
    assert "Removed special characters from search terms" in result.warnings


def test_only_special_characters_invalid():
    result = validate_search_terms("<>{}[]", 200)
    assert result.is_valid is False


def test_truncation_backs_off_to_word_boundary():
    result = validate_search_terms("abcdefghijklmnopq rstuvw", 20)
    assert result.truncated is True
    assert result.processed_terms == "abcdefghijklmnopq"
    assert "Truncated search terms to 20 characters" in result.warnings


def test_truncation_keeps_hard_cut_when_boundary_too_early():
    result = validate_search_terms("alpha beta gamma delta epsilon", 20)
    assert result.truncated is True
    assert result.processed_terms == "alpha beta gamma del"


def test_truncated_query_confidence():
    product = Product(name="Lamp", searchTerms="abcdefghijklmnopq rstuvw")
    query = build_search_query(product, SearchQueryConfig(max_search_term_length=20))
    assert query.confidence == pytest.approx(0.8)
    assert query.search_terms == "abcdefghijklmnopq"


def test_confidence_floor():
    assert calculate_confidence(False, False) == 1.0
    assert calculate_confidence(True, True) == pytest.approx(0.5)
    assert calculate_confidence(True, True) >= 0.0


# ============================================================================
# 일괄 생성
# ============================================================================

def test_batch_skips_rejected_products():
    products = [_product("red_running_shoes"), _product("blank_terms"), _product("table_lamp")]
    batch = build_search_batch(products, SearchQueryConfig())

    assert len(batch.queries) == 2
    assert batch.metadata.total_products == 3
    assert batch.metadata.successful_searches == 2
    assert batch.metadata.failed_searches == 1
    assert batch.metadata.processing_time_ms >= 0


def test_batch_empty():
    batch = build_search_batch([], SearchQueryConfig())
    assert batch.queries == []
    assert batch.metadata.total_products == 0
