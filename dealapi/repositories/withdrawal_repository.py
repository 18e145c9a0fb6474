from datetime import datetime
from typing import List, Optional

from sqlalchemy import desc, func, or_
from sqlalchemy.orm import Session

from dealapi.models.user import User as UserModel
from dealapi.models.withdrawal import (
    WithdrawalRequest as WithdrawalModel,
    WithdrawalStatus,
)
from dealapi.repositories.base import BaseRepository
from dealapi.schemas.withdrawal import (
    WithdrawalRequest as WithdrawalSchema,
    WithdrawalRequestWithUser,
)


class WithdrawalRepository(BaseRepository[WithdrawalModel, WithdrawalSchema]):
    """출금 요청 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(WithdrawalModel, WithdrawalSchema, db)

    def create_request(
        self,
        user_id: int,
        amount: int,
        method: str,
        account_details: str,
        requested_at: datetime,
    ) -> WithdrawalSchema:
        """pending 상태의 출금 요청 추가 (커밋은 호출자가 수행)"""
        return self.create(
            commit=False,
            user_id=user_id,
            amount=amount,
            method=method,
            account_details=account_details,
            status=WithdrawalStatus.PENDING.value,
            requested_at=requested_at,
        )

    def lock_for_update(self, withdrawal_id: int) -> Optional[WithdrawalModel]:
        """검토 대상 요청 행을 잠그고 ORM 모델을 반환"""
        return (
            self.db.query(self.model_class)
            .filter(self.model_class.id == withdrawal_id)
            .with_for_update(of=self.model_class)
            .populate_existing()
            .first()
        )

    def get_pending_total(self, user_id: int) -> int:
        """아직 처리되지 않은(pending) 요청 금액 합계"""
        total = (
            self.db.query(func.sum(self.model_class.amount))
            .filter(
                self.model_class.user_id == user_id,
                self.model_class.status == WithdrawalStatus.PENDING.value,
            )
            .scalar()
        )
        return total or 0

    def mark_processed(
        self,
        withdrawal: WithdrawalModel,
        status: WithdrawalStatus,
        processed_at: datetime,
        notes: Optional[str] = None,
    ) -> WithdrawalSchema:
        withdrawal.status = status.value
        withdrawal.processed_at = processed_at
        if notes is not None:
            withdrawal.notes = notes
        self.db.flush()
        return self._to_schema(withdrawal)

    def list_by_user(self, user_id: int) -> List[WithdrawalSchema]:
        """사용자 출금 요청 내역 (최신순)"""
        model_instances = (
            self.db.query(self.model_class)
            .filter(self.model_class.user_id == user_id)
            .order_by(desc(self.model_class.requested_at), desc(self.model_class.id))
            .all()
        )
        return self._to_schemas(model_instances)

    def list_all(
        self,
        status: Optional[WithdrawalStatus] = None,
        search: Optional[str] = None,
    ) -> List[WithdrawalRequestWithUser]:
        """관리자용 전체 출금 요청 (최신순, 요청자 정보 포함)

        search 는 요청자 이름/이메일, 결제 수단에 대해 대소문자 구분 없이 부분 일치
        """
        query = self.db.query(self.model_class).join(
            UserModel, UserModel.id == self.model_class.user_id
        )

        if status is not None:
            query = query.filter(self.model_class.status == WithdrawalStatus(status).value)

        if search:
            pattern = f"%{search.strip().lower()}%"
            query = query.filter(
                or_(
                    func.lower(UserModel.display_name).like(pattern),
                    func.lower(UserModel.email).like(pattern),
                    func.lower(self.model_class.method).like(pattern),
                )
            )

        model_instances = query.order_by(
            desc(self.model_class.requested_at), desc(self.model_class.id)
        ).all()
        return [
            WithdrawalRequestWithUser.model_validate(instance)
            for instance in model_instances
        ]
