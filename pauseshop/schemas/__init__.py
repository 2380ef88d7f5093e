"""공유 Pydantic 스키마 - export only."""

from .product_schema import (
    BatchMetadata,
    FetchBatch,
    FetchResult,
    Product,
    ProductCategory,
    QueryBatchMetadata,
    ScrapedListing,
    ScrapeResult,
    SearchQuery,
    SearchQueryBatch,
    TargetGender,
)
from .analysis_schema import (
    AnalysisOutcome,
    FrameAnalysisRequest,
    FrameAnalysisResponse,
    HealthResponse,
    Notification,
    NotificationType,
    PauseResponse,
    RegisterPauseRequest,
)

__all__ = [
    "BatchMetadata",
    "FetchBatch",
    "FetchResult",
    "Product",
    "ProductCategory",
    "QueryBatchMetadata",
    "ScrapedListing",
    "ScrapeResult",
    "SearchQuery",
    "SearchQueryBatch",
    "TargetGender",
    "AnalysisOutcome",
    "FrameAnalysisRequest",
    "FrameAnalysisResponse",
    "HealthResponse",
    "Notification",
    "NotificationType",
    "PauseResponse",
    "RegisterPauseRequest",
]
