from datetime import datetime, timezone
import logging

from sqlalchemy.orm import Session

from dealapi.core.exceptions import InsufficientBalanceError, NotFoundError
from dealapi.models.points import PointsAction
from dealapi.repositories.points_repository import PointsRepository
from dealapi.schemas.points import (
    AdminPointsAdjustmentRequest,
    PointsBalanceResponse,
    PointsIntegrityCheckResponse,
    PointsLogResponse,
    PointsTransactionResponse,
)

logger = logging.getLogger(__name__)


class PointService:
    """포인트 관련 비즈니스 로직을 담당하는 서비스"""

    def __init__(self, db: Session):
        self.db = db
        self.points_repo = PointsRepository(db)

    def _raise_for_failure(
        self, user_id: int, result: PointsTransactionResponse
    ) -> PointsTransactionResponse:
        if result.success:
            return result
        if result.message == "User not found":
            raise NotFoundError(f"User {user_id} not found")
        raise InsufficientBalanceError(
            "insufficient points",
            details={"balance": result.balance_after},
        )

    def get_user_balance(self, user_id: int) -> PointsBalanceResponse:
        """사용자 포인트 잔액 조회

        Args:
            user_id: 사용자 ID

        Returns:
            PointsBalanceResponse: 포인트 잔액 정보
        """
        return self.points_repo.get_balance_response(user_id)

    def get_user_log(
        self, user_id: int, limit: int = 50, offset: int = 0
    ) -> PointsLogResponse:
        """사용자 포인트 내역 조회 (최신순)

        Args:
            user_id: 사용자 ID
            limit: 페이지 크기 (최대 100)
            offset: 오프셋
        """
        limit = max(1, min(limit, 100))
        offset = max(0, offset)

        log = self.points_repo.get_user_log(user_id=user_id, limit=limit, offset=offset)
        logger.debug(f"Retrieved points log for user {user_id}: {log.total_count} entries")
        return log

    def transact(
        self,
        user_id: int,
        points: int,
        action: PointsAction,
        description: str,
        ref_id: str,
        commit: bool = True,
    ) -> PointsTransactionResponse:
        """포인트 적립/차감

        잔액 부족이면 InsufficientBalanceError, 사용자가 없으면 NotFoundError.
        같은 ref_id 로 다시 호출하면 기존 결과를 반환합니다.
        """
        result = self.points_repo.transact(
            user_id=user_id,
            points=points,
            action=action,
            description=description,
            ref_id=ref_id,
            commit=commit,
        )
        if not result.success:
            logger.warning(
                f"Points transaction rejected for user {user_id} ({ref_id}): {result.message}"
            )
        else:
            logger.info(
                f"Points {points:+d} ({PointsAction(action).value}) for user {user_id}, "
                f"balance {result.balance_after}"
            )
        return self._raise_for_failure(user_id, result)

    def admin_adjust_points(
        self, request: AdminPointsAdjustmentRequest, admin_id: int
    ) -> PointsTransactionResponse:
        """관리자 포인트 조정 (action=other)"""
        ref_id = f"admin_adjustment_{admin_id}_{request.user_id}_{datetime.now(timezone.utc).timestamp()}"
        description = f"Admin adjustment: {request.reason}"

        return self.transact(
            user_id=request.user_id,
            points=request.amount,
            action=PointsAction.OTHER,
            description=description,
            ref_id=ref_id,
        )

    def verify_user_integrity(self, user_id: int) -> PointsIntegrityCheckResponse:
        result = self.points_repo.verify_integrity_for_user(user_id)
        if result.status != "OK":
            logger.error(
                f"Points integrity mismatch for user {user_id}: "
                f"log={result.calculated_balance} latest={result.recorded_balance} "
                f"cached={result.cached_balance}"
            )
        return result

    def verify_global_integrity(self) -> PointsIntegrityCheckResponse:
        result = self.points_repo.verify_global_integrity()
        if result.status != "OK":
            logger.error(
                f"Global points integrity mismatch: cached={result.total_cached_balance} "
                f"log={result.total_deltas}"
            )
        return result
