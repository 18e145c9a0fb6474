"""
포인트 리포지토리 - 포인트 내역(points_log) 데이터베이스 접근

이 파일은 포인트 시스템의 핵심 규칙을 담당합니다:
1. 포인트 변동 = 내역 추가 + users.points 갱신 (하나의 트랜잭션)
2. 멱등성 보장 (ref_id 중복 처리 방지)
3. 잔액 부족 검증 (음수 잔액 방지)
4. 내역 조회 (최신순)
5. 데이터 정합성 검증

핵심 특징:
- 잔액 변경 전 사용자 행을 SELECT ... FOR UPDATE 로 잠급니다
- 각 내역에는 변동 후 잔액(balance_after)이 함께 저장됩니다
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import asc, desc, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dealapi.models.points import PointsAction, PointsLog as PointsLogModel
from dealapi.models.user import User as UserModel
from dealapi.repositories.base import BaseRepository
from dealapi.schemas.points import (
    PointsBalanceResponse,
    PointsIntegrityCheckResponse,
    PointsLogEntry,
    PointsLogResponse,
    PointsTransactionResponse,
    resolve_action_icon,
)


class PointsRepository(BaseRepository[PointsLogModel, PointsLogEntry]):
    """
    포인트 리포지토리 - 포인트 관련 모든 데이터베이스 작업 처리

    주요 기능:
    1. 멱등성 보장 - ref_id를 통한 중복 지급/차감 방지
    2. 원자성 - 내역 추가와 캐시 잔액 갱신을 한 트랜잭션에서 처리
    3. 완전한 감사 추적 - 모든 포인트 변동 기록
    """

    def __init__(self, db: Session):
        super().__init__(PointsLogModel, PointsLogEntry, db)

    def _to_schema(self, model_instance: Optional[PointsLogModel]) -> Optional[PointsLogEntry]:
        """내역 모델을 스키마로 변환하면서 action 에 맞는 아이콘을 채움"""
        entry = super()._to_schema(model_instance)
        if entry is not None:
            entry.icon = resolve_action_icon(entry.action)
        return entry

    def _lock_user(self, user_id: int) -> Optional[UserModel]:
        return (
            self.db.query(UserModel)
            .filter(UserModel.id == user_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def _find_by_ref(self, ref_id: str) -> Optional[PointsLogModel]:
        return (
            self.db.query(self.model_class)
            .filter(self.model_class.ref_id == ref_id)
            .first()
        )

    def _idempotent_response(
        self, entry: PointsLogModel, message: str
    ) -> PointsTransactionResponse:
        return PointsTransactionResponse(
            success=True,
            transaction_id=entry.id,
            points=entry.points,
            balance_after=entry.balance_after,
            message=message,
        )

    def get_user_balance(self, user_id: int) -> int:
        """
        사용자의 현재 포인트 잔액 조회

        users.points 캐시 값을 반환합니다. 사용자가 없으면 0.
        """
        balance = (
            self.db.query(UserModel.points).filter(UserModel.id == user_id).scalar()
        )
        return balance or 0

    def transact(
        self,
        user_id: int,
        points: int,
        action: PointsAction,
        description: str,
        ref_id: str,
        commit: bool = True,
    ) -> PointsTransactionResponse:
        """
        포인트 변동 처리의 핵심 로직 - 멱등성과 원자성 보장

        Args:
            user_id: 대상 사용자 ID
            points: 포인트 변동량 (양수=적립, 음수=차감)
            action: 변동 사유 태그
            description: 화면에 표시할 설명
            ref_id: 중복 방지용 고유 참조 ID
            commit: False 면 flush 만 하고 커밋은 호출자에게 맡김

        Returns:
            PointsTransactionResponse: 처리 결과 (성공/실패, 잔액 정보)

        핵심 로직:
        1. ref_id 중복 체크 (이미 처리된 요청이면 기존 결과 반환)
        2. 사용자 행 잠금
        3. 차감 시 잔액 부족 검증
        4. 내역 추가 + users.points 갱신
        """
        try:
            existing_entry = self._find_by_ref(ref_id)
            if existing_entry:
                return self._idempotent_response(
                    existing_entry, "Transaction already processed (idempotent)"
                )

            user = self._lock_user(user_id)
            if user is None:
                return PointsTransactionResponse(
                    success=False,
                    transaction_id=None,
                    points=0,
                    balance_after=0,
                    message="User not found",
                )

            current_balance = user.points or 0

            if points < 0 and current_balance + points < 0:
                return PointsTransactionResponse(
                    success=False,
                    transaction_id=None,
                    points=0,
                    balance_after=current_balance,
                    message="Insufficient balance",
                )

            new_balance = current_balance + points

            log_entry = self.model_class(
                user_id=user_id,
                points=points,
                action=PointsAction(action).value,
                description=description,
                ref_id=ref_id,
                balance_after=new_balance,
            )
            user.points = new_balance

            self.db.add(log_entry)
            self.db.flush()
            if commit:
                self.db.commit()

            return PointsTransactionResponse(
                success=True,
                transaction_id=log_entry.id,
                points=points,
                balance_after=new_balance,
                message="Transaction completed successfully",
            )

        except IntegrityError:
            self.db.rollback()
            if not commit:
                # 호출자의 트랜잭션 전체가 롤백되었으므로 그대로 전파
                raise

            # 동시에 같은 ref_id 가 먼저 기록된 경우 기존 항목 반환
            existing_entry = self._find_by_ref(ref_id)
            if existing_entry:
                return self._idempotent_response(
                    existing_entry,
                    "Transaction already processed (idempotent, integrity error handled)",
                )
            raise

    def get_user_log(
        self, user_id: int, limit: int = 50, offset: int = 0
    ) -> PointsLogResponse:
        """사용자 포인트 내역 조회 (최신순, 페이징)"""
        total_count = (
            self.db.query(self.model_class)
            .filter(self.model_class.user_id == user_id)
            .count()
        )

        model_instances = (
            self.db.query(self.model_class)
            .filter(self.model_class.user_id == user_id)
            .order_by(desc(self.model_class.id))
            .limit(limit)
            .offset(offset)
            .all()
        )

        return PointsLogResponse(
            balance=self.get_user_balance(user_id),
            entries=self._to_schemas(model_instances),
            total_count=total_count,
            has_next=offset + limit < total_count,
        )

    def get_balance_response(self, user_id: int) -> PointsBalanceResponse:
        """포인트 잔액 응답"""
        return PointsBalanceResponse(balance=self.get_user_balance(user_id))

    def verify_integrity_for_user(self, user_id: int) -> PointsIntegrityCheckResponse:
        """
        특정 사용자의 포인트 정합성 검증

        검증 방식:
        1. 모든 내역의 points 합계 계산
        2. 최신 내역의 balance_after 및 users.points 와 비교
        3. 하나라도 다르면 MISMATCH
        """
        entries = (
            self.db.query(self.model_class)
            .filter(self.model_class.user_id == user_id)
            .order_by(asc(self.model_class.id))
            .all()
        )
        cached_balance = self.get_user_balance(user_id)
        verified_at = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

        calculated_balance = sum(entry.points for entry in entries)
        recorded_balance = entries[-1].balance_after if entries else 0

        status = (
            "OK"
            if calculated_balance == recorded_balance == cached_balance
            else "MISMATCH"
        )

        return PointsIntegrityCheckResponse(
            status=status,
            user_id=user_id,
            calculated_balance=calculated_balance,
            recorded_balance=recorded_balance,
            cached_balance=cached_balance,
            entry_count=len(entries),
            verified_at=verified_at,
        )

    def verify_global_integrity(self) -> PointsIntegrityCheckResponse:
        """
        전체 시스템의 포인트 정합성 검증

        모든 사용자의 users.points 합계와 모든 내역의 points 합계가
        일치해야 합니다. 포인트가 내역 없이 생성되거나 소멸되지 않았음을 보장합니다.
        """
        total_cached = self.db.query(func.sum(UserModel.points)).scalar()
        total_deltas = self.db.query(func.sum(self.model_class.points)).scalar()
        user_count = self.db.query(
            func.count(func.distinct(self.model_class.user_id))
        ).scalar()
        total_entries = self.db.query(func.count(self.model_class.id)).scalar()

        status = "OK" if (total_cached or 0) == (total_deltas or 0) else "MISMATCH"

        return PointsIntegrityCheckResponse(
            status=status,
            total_cached_balance=total_cached or 0,
            total_deltas=total_deltas or 0,
            user_count=user_count or 0,
            total_entries=total_entries or 0,
            verified_at=datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S"),
        )
