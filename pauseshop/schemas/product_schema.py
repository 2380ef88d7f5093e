"""Pydantic 스키마 정의 - 상품/검색/스크래핑 도메인 모델"""
from enum import Enum
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProductCategory(str, Enum):
    """분석 서버가 돌려주는 상품 카테고리 (닫힌 열거형)"""

    CLOTHING = "clothing"
    ELECTRONICS = "electronics"
    FURNITURE = "furniture"
    ACCESSORIES = "accessories"
    FOOTWEAR = "footwear"
    HOME_DECOR = "home_decor"
    BOOKS_MEDIA = "books_media"
    SPORTS_FITNESS = "sports_fitness"
    BEAUTY_PERSONAL_CARE = "beauty_personal_care"
    KITCHEN_DINING = "kitchen_dining"
    OTHER = "other"


class TargetGender(str, Enum):
    """대상 성별"""

    MEN = "men"
    WOMEN = "women"
    UNISEX = "unisex"
    BOY = "boy"
    GIRL = "girl"


class Product(BaseModel):
    """분석 서버가 감지한 화면 속 상품 (불변 입력)

    분석 서버는 camelCase 필드명을 쓰므로 alias로 그대로 받습니다.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str = Field(..., min_length=1, description="상품명")
    icon_category: str = Field("", alias="iconCategory", description="UI 아이콘 분류")
    category: ProductCategory = Field(ProductCategory.OTHER, description="상품 카테고리")
    brand: str = Field("unknown", description="브랜드 (모르면 'unknown')")
    primary_color: str = Field("unknown", alias="primaryColor", description="주 색상")
    secondary_colors: List[str] = Field(default_factory=list, alias="secondaryColors")
    features: List[str] = Field(default_factory=list, description="자유 텍스트 특징")
    target_gender: TargetGender = Field(TargetGender.UNISEX, alias="targetGender")
    search_terms: str = Field("", alias="searchTerms", description="모델이 제안한 검색어")

    @field_validator("category", mode="before")
    @classmethod
    def coerce_unknown_category(cls, v):
        """모르는 카테고리는 OTHER로 흡수"""
        if isinstance(v, ProductCategory):
            return v
        try:
            return ProductCategory(str(v).lower())
        except ValueError:
            return ProductCategory.OTHER

    @field_validator("target_gender", mode="before")
    @classmethod
    def coerce_unknown_gender(cls, v):
        if isinstance(v, TargetGender):
            return v
        try:
            return TargetGender(str(v).lower())
        except ValueError:
            return TargetGender.UNISEX


class SearchQuery(BaseModel):
    """상품 → 마켓플레이스 검색 URL (불변)"""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="검색 ID")
    search_url: str = Field(..., description="완성된 검색 URL")
    search_terms: str = Field(..., description="실제로 사용된 검색어")
    category: ProductCategory
    confidence: float = Field(..., ge=0.0, le=1.0, description="검색어 품질 신뢰도")
    warnings: List[str] = Field(default_factory=list)
    product: Product


class QueryBatchMetadata(BaseModel):
    """검색어 일괄 생성 메타데이터"""
    total_products: int = Field(..., ge=0)
    successful_searches: int = Field(..., ge=0)
    failed_searches: int = Field(..., ge=0)
    processing_time_ms: float = Field(..., ge=0)


class SearchQueryBatch(BaseModel):
    """검색어 일괄 생성 결과"""
    queries: List[SearchQuery]
    metadata: QueryBatchMetadata


class FetchResult(BaseModel):
    """검색 결과 페이지 fetch 결과

    성공 시 html_content, 실패 시 error/retry_count를 채웁니다.
    """
    id: str
    product_id: str = Field(..., description="원본 SearchQuery ID")
    search_url: str
    success: bool
    html_content: Optional[str] = None
    error: Optional[str] = None
    status_code: Optional[int] = None
    response_time_ms: float = Field(0.0, ge=0)
    retry_count: int = Field(0, ge=0)


class BatchMetadata(BaseModel):
    """일괄 fetch 집계 (전부 실패해도 계산)"""
    total_requests: int = Field(..., ge=0)
    successful_requests: int = Field(..., ge=0)
    failed_requests: int = Field(..., ge=0)
    total_execution_time_ms: float = Field(..., ge=0)
    total_response_time_ms: float = Field(..., ge=0)
    average_response_time_ms: float = Field(..., ge=0)


class FetchBatch(BaseModel):
    """일괄 fetch 결과"""
    results: List[FetchResult]
    metadata: BatchMetadata


class ScrapedListing(BaseModel):
    """검색 결과 페이지에서 추출한 후보 상품 1건"""
    id: str
    asin: Optional[str] = Field(None, description="마켓플레이스 상품 ID (ASIN)")
    thumbnail_url: Optional[str] = Field(None, description="검증된 썸네일 URL")
    product_url: str = Field(..., description="ASIN으로 재구성한 정규 URL")
    position: int = Field(..., ge=1, description="페이지 내 순위 (1부터)")
    price: Optional[float] = Field(None, ge=0)


class ScrapeResult(BaseModel):
    """검색 결과 페이지 1개의 추출 결과"""
    id: str
    search_url: str
    listings: List[ScrapedListing] = Field(default_factory=list)
    query: Optional[SearchQuery] = None

    @property
    def best_listing(self) -> Optional[ScrapedListing]:
        return self.listings[0] if self.listings else None
