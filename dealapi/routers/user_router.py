"""
사용자 API 라우터

사용자용 엔드포인트:
- POST /users: 로그인한 외부 사용자를 등록 (가입 보너스 지급)
- GET /users/me: 내 정보
- GET /users/{external_id}: 사용자 프로필
- GET /users/{external_id}/points-log: 포인트 내역 (최신순)
- GET /users/{external_id}/points-balance: 포인트 잔액
- GET /users/{external_id}/streak: 연속 출석 현황
- GET /users/{external_id}/check-ins: 출석 기록
- POST /users/{external_id}/check-in: 출석 체크
- GET /users/{user_id}/withdrawals: 출금 요청 내역
- PUT /users/{user_id}: 프로필 수정 (표시 이름, 프로필 이미지)
- PUT /users/{user_id}/preferences: 관심 카테고리/스토어, 온보딩 완료 여부

인증 및 권한:
- 모든 엔드포인트는 Firebase ID 토큰(Bearer) 필요
- 다른 사용자의 데이터는 관리자만 조회 가능
"""

import logging
from typing import List, Optional

from dependency_injector.wiring import inject, Provide
from fastapi import APIRouter, Body, Depends, Path, Query, Response, status

from dealapi.containers import Container
from dealapi.core.auth_middleware import (
    ensure_self_or_admin,
    get_current_active_user,
    get_current_user,
    get_token_claims,
)
from dealapi.core.exceptions import AuthorizationError
from dealapi.deps import (
    get_check_in_service,
    get_point_service,
    get_user_service,
    get_withdrawal_service,
)
from dealapi.schemas.auth import TokenClaims
from dealapi.schemas.check_in import CheckIn, CheckInResult, StreakStatus
from dealapi.schemas.pagination import PaginationLimits
from dealapi.schemas.points import PointsBalanceResponse, PointsLogResponse
from dealapi.schemas.user import (
    User as UserSchema,
    UserCreate,
    UserPreferencesUpdate,
    UserProfileUpdate,
)
from dealapi.schemas.withdrawal import WithdrawalRequest
from dealapi.services.cache_service import QueryCache
from dealapi.services.check_in_service import CheckInService
from dealapi.services.point_service import PointService
from dealapi.services.user_service import UserService
from dealapi.services.withdrawal_service import WithdrawalService
from dealapi.utils.cache_utils import (
    ADMIN_WITHDRAWALS_KEY,
    calculate_ttl,
    points_balance_key,
    points_mutation_keys,
    user_profile_key,
    user_withdrawals_key,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


def _resolve_user(
    external_id: str, current_user: UserSchema, user_service: UserService
) -> UserSchema:
    """경로의 external_id 를 사용자로 변환 (본인 또는 관리자만)"""
    if external_id == current_user.external_id:
        return current_user
    if not current_user.is_admin:
        raise AuthorizationError("Access to another user's data is not allowed")
    return user_service.get_by_external_id(external_id)


@router.post("", response_model=UserSchema)
@inject
async def register_user(
    response: Response,
    payload: Optional[UserCreate] = Body(None),
    claims: TokenClaims = Depends(get_token_claims),
    user_service: UserService = Depends(get_user_service),
    cache: QueryCache = Depends(Provide[Container.query_cache]),
) -> UserSchema:
    """
    로그인한 외부 사용자를 로컬 사용자로 등록

    이미 등록된 사용자면 기존 정보를 200 으로 반환하고,
    신규 가입이면 가입 보너스가 지급된 사용자를 201 로 반환합니다.
    """
    user, created = user_service.register(claims, payload)
    if created:
        response.status_code = status.HTTP_201_CREATED
        await cache.invalidate(points_mutation_keys(user.id, user.external_id))
    return user


@router.get("/me", response_model=UserSchema)
async def get_me(current_user: UserSchema = Depends(get_current_user)) -> UserSchema:
    return current_user


@router.get("/{user_id}/withdrawals", response_model=List[WithdrawalRequest])
@inject
async def get_user_withdrawals(
    user_id: int = Path(..., gt=0),
    current_user: UserSchema = Depends(get_current_user),
    withdrawal_service: WithdrawalService = Depends(get_withdrawal_service),
    cache: QueryCache = Depends(Provide[Container.query_cache]),
):
    """사용자 출금 요청 내역 (최신순) - 본인 또는 관리자"""
    ensure_self_or_admin(current_user, user_id)

    key = user_withdrawals_key(user_id)
    cached = await cache.get(key)
    if cached is not None:
        return cached

    withdrawals = withdrawal_service.list_for_user(user_id)
    await cache.set(
        key, [w.model_dump(mode="json") for w in withdrawals], calculate_ttl()
    )
    return withdrawals


@router.put("/{user_id}", response_model=UserSchema)
@inject
async def update_profile(
    payload: UserProfileUpdate,
    user_id: int = Path(..., gt=0),
    current_user: UserSchema = Depends(get_current_active_user),
    user_service: UserService = Depends(get_user_service),
    cache: QueryCache = Depends(Provide[Container.query_cache]),
) -> UserSchema:
    """프로필 수정 - 본인 또는 관리자

    Body:
        displayName: 표시 이름 (1-100자)
        photoURL: 프로필 이미지 URL
    """
    ensure_self_or_admin(current_user, user_id)

    user = user_service.update_profile(user_id, payload)
    # 관리자 출금 목록에 표시 이름이 포함됨
    await cache.invalidate([user_profile_key(user.external_id), ADMIN_WITHDRAWALS_KEY])
    return user


@router.put("/{user_id}/preferences", response_model=UserSchema)
@inject
async def update_preferences(
    payload: UserPreferencesUpdate,
    user_id: int = Path(..., gt=0),
    current_user: UserSchema = Depends(get_current_active_user),
    user_service: UserService = Depends(get_user_service),
    cache: QueryCache = Depends(Provide[Container.query_cache]),
) -> UserSchema:
    """관심 카테고리/스토어 저장 (목록 전체 교체) - 본인 또는 관리자

    HTTP Status:
        200: 저장 완료
        403: 다른 사용자
        404: 사용자 없음
        422: 존재하지 않는 카테고리/스토어 ID (details.ids)
    """
    ensure_self_or_admin(current_user, user_id)

    user = user_service.update_preferences(user_id, payload)
    await cache.invalidate([user_profile_key(user.external_id)])
    return user


@router.get("/{external_id}", response_model=UserSchema)
@inject
async def get_user_profile(
    external_id: str,
    current_user: UserSchema = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
    cache: QueryCache = Depends(Provide[Container.query_cache]),
):
    key = user_profile_key(external_id)
    if external_id != current_user.external_id and not current_user.is_admin:
        raise AuthorizationError("Access to another user's data is not allowed")

    cached = await cache.get(key)
    if cached is not None:
        return cached

    user = _resolve_user(external_id, current_user, user_service)
    await cache.set(key, user.model_dump(mode="json"), calculate_ttl())
    return user


@router.get("/{external_id}/points-log", response_model=PointsLogResponse)
async def get_points_log(
    external_id: str,
    limit: int = Query(
        PaginationLimits.POINTS_LOG["default"],
        ge=PaginationLimits.POINTS_LOG["min"],
        le=PaginationLimits.POINTS_LOG["max"],
        description="페이지 크기",
    ),
    offset: int = Query(0, ge=0, description="오프셋"),
    current_user: UserSchema = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
    point_service: PointService = Depends(get_point_service),
) -> PointsLogResponse:
    """
    포인트 내역 조회 - 최신순, 항목마다 표시용 아이콘 포함

    Query Parameters:
        limit: 한 페이지에 조회할 항목 수 (1-100, 기본: 50)
        offset: 건너뛸 항목 수 (기본: 0)
    """
    user = _resolve_user(external_id, current_user, user_service)
    return point_service.get_user_log(user.id, limit=limit, offset=offset)


@router.get("/{external_id}/points-balance", response_model=PointsBalanceResponse)
@inject
async def get_points_balance(
    external_id: str,
    current_user: UserSchema = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
    point_service: PointService = Depends(get_point_service),
    cache: QueryCache = Depends(Provide[Container.query_cache]),
):
    user = _resolve_user(external_id, current_user, user_service)

    key = points_balance_key(user.id)
    cached = await cache.get(key)
    if cached is not None:
        return cached

    balance = point_service.get_user_balance(user.id)
    await cache.set(key, balance.model_dump(mode="json"), calculate_ttl())
    return balance


@router.get("/{external_id}/streak", response_model=StreakStatus)
async def get_streak(
    external_id: str,
    current_user: UserSchema = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
    check_in_service: CheckInService = Depends(get_check_in_service),
) -> StreakStatus:
    user = _resolve_user(external_id, current_user, user_service)
    return check_in_service.get_streak(user.id)


@router.get("/{external_id}/check-ins", response_model=List[CheckIn])
async def get_check_in_history(
    external_id: str,
    limit: int = Query(
        PaginationLimits.CHECK_IN_HISTORY["default"],
        ge=PaginationLimits.CHECK_IN_HISTORY["min"],
        le=PaginationLimits.CHECK_IN_HISTORY["max"],
    ),
    offset: int = Query(0, ge=0),
    current_user: UserSchema = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
    check_in_service: CheckInService = Depends(get_check_in_service),
) -> List[CheckIn]:
    user = _resolve_user(external_id, current_user, user_service)
    return check_in_service.get_history(user.id, limit=limit, offset=offset)


@router.post(
    "/{external_id}/check-in",
    response_model=CheckInResult,
    status_code=status.HTTP_201_CREATED,
)
@inject
async def check_in(
    external_id: str,
    current_user: UserSchema = Depends(get_current_active_user),
    check_in_service: CheckInService = Depends(get_check_in_service),
    cache: QueryCache = Depends(Provide[Container.query_cache]),
) -> CheckInResult:
    """
    출석 체크 - 24시간에 한 번

    HTTP Status:
        201: 출석 완료 (포인트 지급)
        403: 다른 사용자 또는 정지된 계정
        409: 아직 출석할 수 없음 (details.next_check_in_time)
    """
    if external_id != current_user.external_id:
        raise AuthorizationError("Users can only check in for themselves")

    result = check_in_service.check_in(current_user.id)
    await cache.invalidate(points_mutation_keys(current_user.id, current_user.external_id))
    return result
