from pydantic import BaseModel, EmailStr
from typing import Optional


class TokenClaims(BaseModel):
    """검증된 Firebase ID 토큰에서 추출한 사용자 식별 정보"""

    uid: str
    email: Optional[EmailStr] = None
    name: Optional[str] = None
    email_verified: bool = False
