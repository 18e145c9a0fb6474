from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from dependency_injector.wiring import inject, Provide
from sqlalchemy.orm import Session

from dealapi.containers import Container
from dealapi.database.session import get_db
from dealapi.repositories.user_repository import UserRepository
from dealapi.schemas.auth import TokenClaims
from dealapi.schemas.user import User as UserSchema
from dealapi.services.identity_service import FirebaseTokenVerifier
from dealapi.core.exceptions import AuthenticationError, AuthorizationError

# Firebase ID 토큰 Bearer 스킴
security = HTTPBearer(auto_error=False)


@inject
def get_token_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    token_verifier: FirebaseTokenVerifier = Depends(Provide[Container.token_verifier]),
) -> TokenClaims:
    """Bearer 토큰을 검증하고 외부 인증 클레임 반환 (가입 전 사용자도 허용)"""
    if not credentials or not credentials.credentials:
        raise AuthenticationError("Authentication required")
    return token_verifier.verify(credentials.credentials)


def get_current_user(
    claims: TokenClaims = Depends(get_token_claims),
    db: Session = Depends(get_db),
) -> UserSchema:
    """필수 사용자 인증 - 토큰 uid 로 로컬 사용자를 찾음"""
    user = UserRepository(db).get_by_external_id(claims.uid)
    if not user:
        raise AuthenticationError(
            "User is not registered", details={"registered": False}
        )
    return user


def get_current_active_user(
    current_user: UserSchema = Depends(get_current_user),
) -> UserSchema:
    """정지되지 않은 사용자만 허용 (출석, 출금, 쿠폰 제보 등 변경 작업)"""
    if current_user.is_banned:
        raise AuthorizationError("User account is banned", details={"banned": True})
    return current_user


def require_admin(
    current_user: UserSchema = Depends(get_current_user),
) -> UserSchema:
    """관리자 권한이 필요한 엔드포인트용 의존성"""
    if not current_user.is_admin:
        raise AuthorizationError("Admin access required")
    return current_user


def ensure_self_or_admin(current_user: UserSchema, owner_id: int) -> None:
    """본인 또는 관리자만 접근 가능한 리소스 검사"""
    if current_user.id != owner_id and not current_user.is_admin:
        raise AuthorizationError("Access to another user's data is not allowed")
