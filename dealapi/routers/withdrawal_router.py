import logging

from dependency_injector.wiring import inject, Provide
from fastapi import APIRouter, Depends, status

from dealapi.containers import Container
from dealapi.core.auth_middleware import get_current_active_user
from dealapi.deps import get_user_service, get_withdrawal_service
from dealapi.schemas.user import User as UserSchema
from dealapi.schemas.withdrawal import WithdrawalCreate, WithdrawalRequest
from dealapi.services.cache_service import QueryCache
from dealapi.services.user_service import UserService
from dealapi.services.withdrawal_service import WithdrawalService
from dealapi.utils.cache_utils import withdrawal_mutation_keys

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/withdrawals", tags=["withdrawals"])


@router.post("", response_model=WithdrawalRequest, status_code=status.HTTP_201_CREATED)
@inject
async def create_withdrawal(
    payload: WithdrawalCreate,
    current_user: UserSchema = Depends(get_current_active_user),
    withdrawal_service: WithdrawalService = Depends(get_withdrawal_service),
    user_service: UserService = Depends(get_user_service),
    cache: QueryCache = Depends(Provide[Container.query_cache]),
) -> WithdrawalRequest:
    """
    출금 요청 생성 - pending 상태로 저장되며 관리자 승인 시 포인트가 차감됩니다.

    Body:
        userId: 대상 사용자 ID (생략 시 본인, 다른 사용자는 관리자만)
        amount: 출금 포인트 (최소 1000)
        paymentMethod: esewa | khalti | bank (bank-transfer, bank_transfer 도 bank 로 저장)
        accountDetails: 지갑 번호/ID 또는 은행 계좌 정보

    HTTP Status:
        201: 요청 생성
        400: 사용 가능 포인트 부족 (pending 요청 금액 제외)
        403: 다른 사용자 대리 요청 또는 정지된 계정
        404: 사용자 없음
        422: 금액 또는 결제 정보 오류
    """
    withdrawal = withdrawal_service.submit(current_user, payload)

    owner = (
        current_user
        if withdrawal.user_id == current_user.id
        else user_service.get_user(withdrawal.user_id)
    )
    await cache.invalidate(withdrawal_mutation_keys(owner.id, owner.external_id))
    return withdrawal
