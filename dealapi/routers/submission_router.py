from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status as http_status

from dealapi.core.auth_middleware import get_current_active_user, get_current_user
from dealapi.deps import get_submission_service
from dealapi.schemas.common import DeleteResponse
from dealapi.schemas.submission import (
    SubmissionStatus,
    SubmittedCoupon,
    SubmittedCouponCreate,
    SubmittedCouponUpdate,
)
from dealapi.schemas.user import User as UserSchema
from dealapi.services.submission_service import SubmissionService

router = APIRouter(prefix="/user-submitted-coupons", tags=["user-submitted-coupons"])


@router.post("", response_model=SubmittedCoupon, status_code=http_status.HTTP_201_CREATED)
async def submit_coupon(
    payload: SubmittedCouponCreate,
    current_user: UserSchema = Depends(get_current_active_user),
    submission_service: SubmissionService = Depends(get_submission_service),
) -> SubmittedCoupon:
    """쿠폰 제보 - 관리자 승인 시 포인트 지급"""
    return submission_service.submit(current_user, payload)


@router.get("", response_model=List[SubmittedCoupon])
async def list_submissions(
    status: Optional[SubmissionStatus] = Query(None),
    user_id: Optional[int] = Query(None, gt=0, description="관리자 전용 필터"),
    current_user: UserSchema = Depends(get_current_user),
    submission_service: SubmissionService = Depends(get_submission_service),
) -> List[SubmittedCoupon]:
    """내 제보 목록 (관리자는 전체)"""
    return submission_service.list_submissions(current_user, status=status, user_id=user_id)


@router.get("/{submission_id}", response_model=SubmittedCoupon)
async def get_submission(
    submission_id: int = Path(..., gt=0),
    current_user: UserSchema = Depends(get_current_user),
    submission_service: SubmissionService = Depends(get_submission_service),
) -> SubmittedCoupon:
    return submission_service.get_submission(current_user, submission_id)


@router.patch("/{submission_id}", response_model=SubmittedCoupon)
async def update_submission(
    payload: SubmittedCouponUpdate,
    submission_id: int = Path(..., gt=0),
    current_user: UserSchema = Depends(get_current_active_user),
    submission_service: SubmissionService = Depends(get_submission_service),
) -> SubmittedCoupon:
    """
    제보 수정 - 작성자는 검토 전(pending) 제보만, 관리자는 모든 제보

    HTTP Status:
        200: 수정 완료
        404: 제보 없음 또는 다른 사용자의 제보
        409: 이미 검토된 제보 (작성자)
        422: 존재하지 않는 카테고리
    """
    return submission_service.update_submission(current_user, submission_id, payload)


@router.delete("/{submission_id}", response_model=DeleteResponse)
async def delete_submission(
    submission_id: int = Path(..., gt=0),
    current_user: UserSchema = Depends(get_current_active_user),
    submission_service: SubmissionService = Depends(get_submission_service),
) -> DeleteResponse:
    """제보 삭제 - 작성자는 검토 전 제보만, 관리자는 모든 제보"""
    submission_service.delete_submission(current_user, submission_id)
    return DeleteResponse(message="Coupon permanently deleted from the database")
