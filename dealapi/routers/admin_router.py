"""
관리자 API 라우터

- GET /admin/withdrawals: 전체 출금 요청 (status, search 필터)
- PATCH /admin/withdrawals/{id}: 출금 요청 승인/거절
- GET /admin/users: 사용자 목록 (쿠폰 제보 건수 포함)
- PATCH /admin/users/{id}: 사용자 정보 수정
- DELETE /admin/users/{id}: 사용자 및 관련 데이터 삭제
- POST /admin/users/{id}/ban: 사용자 정지/해제
- POST /admin/points/adjust: 포인트 조정
- GET /admin/points/integrity[/{user_id}]: 포인트 정합성 검증
- GET|PUT /admin/settings: 사이트 설정
- PUT /admin/user-submitted-coupons/{id}/status: 쿠폰 제보 검토
"""

import logging
from typing import Dict, List, Optional

from dependency_injector.wiring import inject, Provide
from fastapi import APIRouter, Depends, Path, Query

from dealapi.containers import Container
from dealapi.core.auth_middleware import require_admin
from dealapi.deps import (
    get_point_service,
    get_settings_service,
    get_submission_service,
    get_user_service,
    get_withdrawal_service,
)
from dealapi.models.withdrawal import WithdrawalStatus
from dealapi.schemas.pagination import PaginationLimits
from dealapi.schemas.common import DeleteResponse
from dealapi.schemas.points import (
    AdminPointsAdjustmentRequest,
    PointsIntegrityCheckResponse,
    PointsTransactionResponse,
)
from dealapi.schemas.settings import SiteSettingsUpdate
from dealapi.schemas.submission import SubmittedCoupon, SubmittedCouponStatusUpdate
from dealapi.schemas.user import (
    AdminUserUpdate,
    User as UserSchema,
    UserBanRequest,
    UserWithSubmissionCount,
)
from dealapi.schemas.withdrawal import (
    WithdrawalRequest,
    WithdrawalRequestWithUser,
    WithdrawalReview,
)
from dealapi.services.cache_service import QueryCache
from dealapi.services.point_service import PointService
from dealapi.services.settings_service import SettingsService
from dealapi.services.submission_service import SubmissionService
from dealapi.services.user_service import UserService
from dealapi.services.withdrawal_service import WithdrawalService
from dealapi.utils.cache_utils import (
    ADMIN_WITHDRAWALS_KEY,
    calculate_ttl,
    points_mutation_keys,
    withdrawal_mutation_keys,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


# ============================================================================
# Withdrawals
# ============================================================================


@router.get("/withdrawals", response_model=List[WithdrawalRequestWithUser])
@inject
async def list_withdrawals(
    status: Optional[WithdrawalStatus] = Query(None, description="상태 필터"),
    search: Optional[str] = Query(None, max_length=100, description="이름/이메일/결제수단 검색"),
    _: UserSchema = Depends(require_admin),
    withdrawal_service: WithdrawalService = Depends(get_withdrawal_service),
    cache: QueryCache = Depends(Provide[Container.query_cache]),
):
    """전체 출금 요청 (최신순). 필터가 없는 기본 목록만 캐시합니다."""
    unfiltered = status is None and not search
    if unfiltered:
        cached = await cache.get(ADMIN_WITHDRAWALS_KEY)
        if cached is not None:
            return cached

    withdrawals = withdrawal_service.list_all(status=status, search=search)

    if unfiltered:
        await cache.set(
            ADMIN_WITHDRAWALS_KEY,
            [w.model_dump(mode="json") for w in withdrawals],
            calculate_ttl(),
        )
    return withdrawals


@router.patch("/withdrawals/{withdrawal_id}", response_model=WithdrawalRequest)
@inject
async def review_withdrawal(
    review: WithdrawalReview,
    withdrawal_id: int = Path(..., gt=0),
    admin: UserSchema = Depends(require_admin),
    withdrawal_service: WithdrawalService = Depends(get_withdrawal_service),
    user_service: UserService = Depends(get_user_service),
    cache: QueryCache = Depends(Provide[Container.query_cache]),
) -> WithdrawalRequest:
    """
    출금 요청 승인/거절 - pending 상태에서만 가능

    HTTP Status:
        200: 처리 완료 (승인 시 포인트 차감 내역 기록)
        400: 승인 시점 잔액 부족 (요청은 pending 유지)
        404: 요청 없음
        409: 이미 처리된 요청
        422: status 가 approved/rejected 가 아님
    """
    withdrawal = withdrawal_service.review(withdrawal_id, review, admin)

    owner = user_service.get_user(withdrawal.user_id)
    await cache.invalidate(withdrawal_mutation_keys(owner.id, owner.external_id))
    return withdrawal


# ============================================================================
# Users
# ============================================================================


@router.get("/users", response_model=List[UserWithSubmissionCount])
async def list_users(
    search: Optional[str] = Query(None, max_length=100),
    limit: int = Query(
        PaginationLimits.USER_LIST["default"],
        ge=PaginationLimits.USER_LIST["min"],
        le=PaginationLimits.USER_LIST["max"],
    ),
    offset: int = Query(0, ge=0),
    _: UserSchema = Depends(require_admin),
    user_service: UserService = Depends(get_user_service),
) -> List[UserWithSubmissionCount]:
    return user_service.list_users(search=search, limit=limit, offset=offset)


@router.post("/users/{user_id}/ban", response_model=UserSchema)
@inject
async def set_user_ban(
    request: UserBanRequest,
    user_id: int = Path(..., gt=0),
    _: UserSchema = Depends(require_admin),
    user_service: UserService = Depends(get_user_service),
    cache: QueryCache = Depends(Provide[Container.query_cache]),
) -> UserSchema:
    user = user_service.set_banned(user_id, request.is_banned)
    await cache.invalidate(withdrawal_mutation_keys(user.id, user.external_id))
    return user


@router.patch("/users/{user_id}", response_model=UserSchema)
@inject
async def update_user(
    payload: AdminUserUpdate,
    user_id: int = Path(..., gt=0),
    admin: UserSchema = Depends(require_admin),
    user_service: UserService = Depends(get_user_service),
    cache: QueryCache = Depends(Provide[Container.query_cache]),
) -> UserSchema:
    """사용자 정보 부분 수정 - 포인트는 /admin/points/adjust 로만 변경"""
    user = user_service.admin_update(user_id, payload, admin)
    await cache.invalidate(withdrawal_mutation_keys(user.id, user.external_id))
    return user


@router.delete("/users/{user_id}", response_model=DeleteResponse)
@inject
async def delete_user(
    user_id: int = Path(..., gt=0),
    admin: UserSchema = Depends(require_admin),
    user_service: UserService = Depends(get_user_service),
    cache: QueryCache = Depends(Provide[Container.query_cache]),
) -> DeleteResponse:
    """
    사용자 삭제 - 제보, 출석, 출금, 포인트 내역을 함께 삭제합니다.

    HTTP Status:
        200: 삭제 완료
        404: 사용자 없음
        409: 처리 대기 중인 출금 요청 있음
        422: 본인 계정 삭제 시도
    """
    user = user_service.delete_user(user_id, admin)
    await cache.invalidate(withdrawal_mutation_keys(user.id, user.external_id))
    return DeleteResponse(
        message="User and all associated data deleted successfully"
    )


# ============================================================================
# Points
# ============================================================================


@router.post("/points/adjust", response_model=PointsTransactionResponse)
@inject
async def adjust_points(
    request: AdminPointsAdjustmentRequest,
    admin: UserSchema = Depends(require_admin),
    point_service: PointService = Depends(get_point_service),
    user_service: UserService = Depends(get_user_service),
    cache: QueryCache = Depends(Provide[Container.query_cache]),
) -> PointsTransactionResponse:
    """관리자 포인트 조정 (양수: 지급, 음수: 차감) - action=other 로 기록"""
    target = user_service.get_user(request.user_id)
    result = point_service.admin_adjust_points(request, admin_id=admin.id)
    await cache.invalidate(points_mutation_keys(target.id, target.external_id))
    return result


@router.get("/points/integrity", response_model=PointsIntegrityCheckResponse)
async def verify_global_integrity(
    _: UserSchema = Depends(require_admin),
    point_service: PointService = Depends(get_point_service),
) -> PointsIntegrityCheckResponse:
    return point_service.verify_global_integrity()


@router.get("/points/integrity/{user_id}", response_model=PointsIntegrityCheckResponse)
async def verify_user_integrity(
    user_id: int = Path(..., gt=0),
    _: UserSchema = Depends(require_admin),
    point_service: PointService = Depends(get_point_service),
    user_service: UserService = Depends(get_user_service),
) -> PointsIntegrityCheckResponse:
    user_service.get_user(user_id)
    return point_service.verify_user_integrity(user_id)


# ============================================================================
# Site settings
# ============================================================================


@router.get("/settings", response_model=Dict[str, str])
async def get_site_settings(
    _: UserSchema = Depends(require_admin),
    settings_service: SettingsService = Depends(get_settings_service),
) -> Dict[str, str]:
    return settings_service.get_all()


@router.put("/settings", response_model=Dict[str, str])
async def update_site_settings(
    request: SiteSettingsUpdate,
    _: UserSchema = Depends(require_admin),
    settings_service: SettingsService = Depends(get_settings_service),
) -> Dict[str, str]:
    return settings_service.update(request.settings)


# ============================================================================
# User-submitted coupons
# ============================================================================


@router.put("/user-submitted-coupons/{submission_id}/status", response_model=SubmittedCoupon)
@inject
async def review_submission(
    update: SubmittedCouponStatusUpdate,
    submission_id: int = Path(..., gt=0),
    admin: UserSchema = Depends(require_admin),
    submission_service: SubmissionService = Depends(get_submission_service),
    user_service: UserService = Depends(get_user_service),
    cache: QueryCache = Depends(Provide[Container.query_cache]),
) -> SubmittedCoupon:
    """쿠폰 제보 승인/거절 - 승인 시 제보자에게 포인트 지급"""
    submission = submission_service.update_status(submission_id, update, admin)

    owner = user_service.get_user(submission.user_id)
    await cache.invalidate(points_mutation_keys(owner.id, owner.external_id))
    return submission
