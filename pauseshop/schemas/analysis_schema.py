"""Pydantic 스키마 정의 - 분석 알림/결과 및 API 요청/응답"""
from datetime import datetime
from enum import Enum
from typing import Optional, List

from pydantic import BaseModel, Field, field_validator

from pauseshop.schemas.product_schema import Product, ScrapedListing


class NotificationType(str, Enum):
    """UI 레이어로 보내는 알림 종류"""

    ANALYSIS_STARTED = "analysis_started"
    PRODUCT_DISCOVERED = "product_discovered"
    ANALYSIS_COMPLETE = "analysis_complete"
    ANALYSIS_ERROR = "analysis_error"
    ANALYSIS_CANCELLED = "analysis_cancelled"


class Notification(BaseModel):
    """pause_id로 키잉된 알림

    소비자는 pause_id로 오래된 결과를 버릴 수 있습니다.
    """
    type: NotificationType
    pause_id: str
    product: Optional[Product] = None
    listings: List[ScrapedListing] = Field(default_factory=list)
    error: Optional[str] = None
    products_found: Optional[int] = None
    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def best_listing(self) -> Optional[ScrapedListing]:
        return self.listings[0] if self.listings else None


class AnalysisOutcome(BaseModel):
    """handle_pause_event 반환값"""
    success: bool
    pause_id: str
    error: Optional[str] = None
    products_found: int = Field(0, ge=0)


class RegisterPauseRequest(BaseModel):
    """일시정지 등록 요청"""
    pause_id: str = Field(..., min_length=1, max_length=64)
    scope: str = Field("default", min_length=1, max_length=128, description="탭/영상 단위 범위")

    @field_validator("pause_id")
    @classmethod
    def validate_pause_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("pause_id는 공백만으로 구성될 수 없습니다")
        return v


class FrameAnalysisRequest(BaseModel):
    """캡처된 프레임 분석 요청"""
    image_data: str = Field(..., min_length=1, description="data URL 인코딩된 캡처 이미지")
    scope: str = Field("default", min_length=1, max_length=128)

    @field_validator("image_data")
    @classmethod
    def validate_image_data(cls, v: str) -> str:
        if not v.startswith("data:image/"):
            raise ValueError("image_data는 data:image/로 시작해야 합니다")
        return v


class PauseResponse(BaseModel):
    """등록/취소 응답"""
    success: bool
    pause_id: str
    message: str = ""


class FrameAnalysisResponse(BaseModel):
    """프레임 분석 응답"""
    outcome: AnalysisOutcome
    notifications: List[Notification] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """헬스 체크 응답"""
    status: str
    version: str
    active_pauses: int
    timestamp: datetime
