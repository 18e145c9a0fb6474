"""
출금 요청 서비스

흐름:
1. 사용자가 출금 요청 → pending (잔액/포인트 내역 변동 없음)
2. 관리자가 승인 → 같은 트랜잭션에서 -amount 의 withdrawal 내역 기록 + 잔액 차감
3. 관리자가 거절 → 내역 기록 없음

pending 요청 금액은 사용 가능 잔액에서 제외되므로 여러 건을 요청해도
승인 시점의 잔액을 초과할 수 없습니다.
"""

import logging
import re
from typing import List, Optional

from sqlalchemy.orm import Session

from dealapi.config import Settings
from dealapi.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)
from dealapi.models.points import PointsAction
from dealapi.models.withdrawal import PaymentMethod, WithdrawalStatus
from dealapi.repositories.points_repository import PointsRepository
from dealapi.repositories.user_repository import UserRepository
from dealapi.repositories.withdrawal_repository import WithdrawalRepository
from dealapi.schemas.user import User as UserSchema
from dealapi.schemas.withdrawal import (
    WithdrawalCreate,
    WithdrawalRequest,
    WithdrawalRequestWithUser,
    WithdrawalReview,
)
from dealapi.utils.timezone_utils import now_utc

logger = logging.getLogger(__name__)

# 지갑(eSewa/Khalti) 계정: 9로 시작하는 10자리 휴대폰 번호 또는 이메일 형식 ID
WALLET_MOBILE_RE = re.compile(r"^9\d{9}$")
WALLET_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
BANK_DETAILS_MIN_LENGTH = 10

# 클라이언트가 보내는 은행 송금 표기
PAYMENT_METHOD_ALIASES = {
    "bank-transfer": PaymentMethod.BANK.value,
    "bank_transfer": PaymentMethod.BANK.value,
}


def is_valid_account_details(method: PaymentMethod, account_details: str) -> bool:
    details = (account_details or "").strip()
    if not details:
        return False
    if method in (PaymentMethod.ESEWA, PaymentMethod.KHALTI):
        return bool(WALLET_MOBILE_RE.match(details) or WALLET_EMAIL_RE.match(details))
    # 은행명, 계좌번호, 예금주를 적는 자유 형식
    return len(details) >= BANK_DETAILS_MIN_LENGTH and any(c.isdigit() for c in details)


class WithdrawalService:
    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.withdrawal_repo = WithdrawalRepository(db)
        self.user_repo = UserRepository(db)
        self.points_repo = PointsRepository(db)

    def _validate_request(self, payload: WithdrawalCreate) -> PaymentMethod:
        if payload.amount < self.settings.MIN_WITHDRAWAL_POINTS:
            raise ValidationError(
                "invalid amount",
                details={"minimum": self.settings.MIN_WITHDRAWAL_POINTS},
            )

        try:
            raw_method = (payload.payment_method or "").strip().lower()
            method = PaymentMethod(PAYMENT_METHOD_ALIASES.get(raw_method, raw_method))
        except ValueError:
            raise ValidationError(
                "payment details required",
                details={"allowed_methods": [m.value for m in PaymentMethod]},
            )

        if not is_valid_account_details(method, payload.account_details):
            raise ValidationError(
                "payment details required", details={"method": method.value}
            )
        return method

    def submit(
        self, current_user: UserSchema, payload: WithdrawalCreate
    ) -> WithdrawalRequest:
        """출금 요청 생성

        Raises:
            ValidationError: 최소 금액 미만, 결제 수단/계정 정보 오류
            AuthorizationError: 다른 사용자 대리 요청, 정지된 사용자
            NotFoundError: 대상 사용자 없음
            InsufficientBalanceError: 사용 가능 잔액 부족
        """
        method = self._validate_request(payload)

        user_id = payload.user_id or current_user.id
        if user_id != current_user.id and not current_user.is_admin:
            raise AuthorizationError("Cannot request a withdrawal for another user")

        try:
            # 잔액 확인부터 요청 저장까지 사용자 행을 잠근 상태로 처리
            user = self.user_repo.lock_for_update(user_id)
            if user is None:
                raise NotFoundError(f"User {user_id} not found")
            if user.is_banned:
                raise AuthorizationError("Banned users cannot request withdrawals")

            pending_total = self.withdrawal_repo.get_pending_total(user_id)
            available = (user.points or 0) - pending_total
            if payload.amount > available:
                raise InsufficientBalanceError(
                    "insufficient points",
                    details={
                        "balance": user.points,
                        "pending": pending_total,
                        "available": max(available, 0),
                        "requested": payload.amount,
                    },
                )

            withdrawal = self.withdrawal_repo.create_request(
                user_id=user_id,
                amount=payload.amount,
                method=method.value,
                account_details=payload.account_details.strip(),
                requested_at=now_utc(),
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Withdrawal request {withdrawal.id} created: user {user_id}, "
            f"{payload.amount} points via {method.value}"
        )
        return withdrawal

    def review(
        self, withdrawal_id: int, review: WithdrawalReview, admin: UserSchema
    ) -> WithdrawalRequest:
        """관리자 검토 (pending → approved / rejected)

        승인 시 포인트 차감이 같은 트랜잭션에서 수행되며, 잔액이 부족하면
        InsufficientBalanceError 와 함께 요청은 pending 으로 남습니다.
        이미 처리된 요청은 ConflictError.
        """
        try:
            new_status = WithdrawalStatus((review.status or "").strip().lower())
        except ValueError:
            new_status = None
        if new_status not in (WithdrawalStatus.APPROVED, WithdrawalStatus.REJECTED):
            raise ValidationError(
                "status must be 'approved' or 'rejected'",
                details={"status": review.status},
            )

        try:
            withdrawal = self.withdrawal_repo.lock_for_update(withdrawal_id)
            if withdrawal is None:
                raise NotFoundError(f"Withdrawal request {withdrawal_id} not found")

            if WithdrawalStatus.is_terminal(withdrawal.status):
                raise ConflictError(
                    "Withdrawal request already processed",
                    details={"id": withdrawal_id, "status": withdrawal.status},
                )

            if new_status == WithdrawalStatus.APPROVED:
                result = self.points_repo.transact(
                    user_id=withdrawal.user_id,
                    points=-withdrawal.amount,
                    action=PointsAction.WITHDRAWAL,
                    description=f"Withdrawal via {withdrawal.method}",
                    ref_id=f"withdrawal_{withdrawal.id}",
                    commit=False,
                )
                if not result.success:
                    if result.message == "User not found":
                        raise NotFoundError(f"User {withdrawal.user_id} not found")
                    raise InsufficientBalanceError(
                        "insufficient points",
                        details={
                            "balance": result.balance_after,
                            "requested": withdrawal.amount,
                        },
                    )

            updated = self.withdrawal_repo.mark_processed(
                withdrawal,
                status=new_status,
                processed_at=now_utc(),
                notes=review.notes,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Withdrawal request {withdrawal_id} {new_status.value} by admin {admin.id}"
        )
        return updated

    def get_request(self, withdrawal_id: int) -> WithdrawalRequest:
        withdrawal = self.withdrawal_repo.get_by_id(withdrawal_id)
        if withdrawal is None:
            raise NotFoundError(f"Withdrawal request {withdrawal_id} not found")
        return withdrawal

    def list_for_user(self, user_id: int) -> List[WithdrawalRequest]:
        return self.withdrawal_repo.list_by_user(user_id)

    def list_all(
        self,
        status: Optional[WithdrawalStatus] = None,
        search: Optional[str] = None,
    ) -> List[WithdrawalRequestWithUser]:
        return self.withdrawal_repo.list_all(status=status, search=search)
