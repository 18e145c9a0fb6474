from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum


class SubmissionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class SubmittedCouponCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1, max_length=100)
    store_name: str = Field(..., min_length=1, max_length=100)
    category_id: Optional[int] = None
    expires_at: Optional[datetime] = None


class SubmittedCouponUpdate(BaseModel):
    """제보 부분 수정 - 상태/검토 정보는 관리자 검토 API 로만 변경"""

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1)
    code: Optional[str] = Field(None, min_length=1, max_length=100)
    store_name: Optional[str] = Field(None, min_length=1, max_length=100)
    category_id: Optional[int] = None
    expires_at: Optional[datetime] = None


class SubmittedCouponStatusUpdate(BaseModel):
    status: str
    review_notes: Optional[str] = Field(None, max_length=1000)


class SubmittedCoupon(BaseModel):
    id: int
    user_id: int
    title: str
    description: str
    code: str
    store_name: str
    category_id: Optional[int] = None
    expires_at: Optional[datetime] = None
    status: SubmissionStatus
    review_notes: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
