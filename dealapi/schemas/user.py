from pydantic import BaseModel, ConfigDict, EmailStr, Field, StrictBool, field_validator
from datetime import datetime
from typing import List, Optional


class User(BaseModel):
    id: int
    external_id: str
    email: EmailStr
    display_name: Optional[str] = None
    photo_url: Optional[str] = None
    is_admin: bool = False
    is_banned: bool = False
    points: int = 0
    streak: int = 0
    last_check_in: Optional[datetime] = None
    preferred_categories: List[int] = []
    preferred_stores: List[int] = []
    has_completed_onboarding: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserSummary(BaseModel):
    """다른 응답에 포함되는 사용자 요약 정보"""

    id: int
    email: EmailStr
    display_name: Optional[str] = None

    class Config:
        from_attributes = True


def _strip_display_name(v: Optional[str]) -> Optional[str]:
    if v is not None and v.strip() == "":
        raise ValueError("Display name cannot be empty")
    return v.strip() if v else v


class UserCreate(BaseModel):
    email: Optional[EmailStr] = None
    display_name: Optional[str] = Field(None, min_length=1, max_length=100)

    @field_validator("display_name")
    @classmethod
    def display_name_must_not_be_empty(cls, v: Optional[str]) -> Optional[str]:
        return _strip_display_name(v)


class UserWithSubmissionCount(User):
    submission_count: int = 0


class UserBanRequest(BaseModel):
    is_banned: StrictBool


class UserProfileUpdate(BaseModel):
    """본인 프로필 수정 (표시 이름, 프로필 이미지)"""

    model_config = ConfigDict(populate_by_name=True)

    display_name: Optional[str] = Field(
        None, min_length=1, max_length=100, alias="displayName"
    )
    photo_url: Optional[str] = Field(None, max_length=500, alias="photoURL")

    @field_validator("display_name")
    @classmethod
    def display_name_must_not_be_empty(cls, v: Optional[str]) -> Optional[str]:
        return _strip_display_name(v)


class UserPreferencesUpdate(BaseModel):
    """온보딩 관심사 저장 - 목록은 통째로 교체"""

    model_config = ConfigDict(populate_by_name=True)

    preferred_categories: List[int] = Field(
        default_factory=list, alias="preferredCategories"
    )
    preferred_stores: List[int] = Field(default_factory=list, alias="preferredStores")
    has_completed_onboarding: StrictBool = Field(True, alias="hasCompletedOnboarding")


class AdminUserUpdate(BaseModel):
    """관리자 사용자 정보 수정 - 포인트는 원장 조정으로만 변경"""

    model_config = ConfigDict(populate_by_name=True)

    display_name: Optional[str] = Field(
        None, min_length=1, max_length=100, alias="displayName"
    )
    email: Optional[EmailStr] = None
    photo_url: Optional[str] = Field(None, max_length=500, alias="photoURL")
    is_admin: Optional[StrictBool] = Field(None, alias="isAdmin")
    is_banned: Optional[StrictBool] = Field(None, alias="isBanned")

    @field_validator("display_name")
    @classmethod
    def display_name_must_not_be_empty(cls, v: Optional[str]) -> Optional[str]:
        return _strip_display_name(v)
