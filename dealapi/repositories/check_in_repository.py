from datetime import datetime
from typing import List

from sqlalchemy import desc
from sqlalchemy.orm import Session

from dealapi.models.check_in import CheckIn as CheckInModel
from dealapi.repositories.base import BaseRepository
from dealapi.schemas.check_in import CheckIn as CheckInSchema


class CheckInRepository(BaseRepository[CheckInModel, CheckInSchema]):
    def __init__(self, db: Session):
        super().__init__(CheckInModel, CheckInSchema, db)

    def record(
        self,
        user_id: int,
        checked_in_at: datetime,
        streak_day: int,
        points_earned: int,
    ) -> CheckInSchema:
        """출석 기록 추가 (커밋은 호출자가 수행)"""
        return self.create(
            commit=False,
            user_id=user_id,
            checked_in_at=checked_in_at,
            streak_day=streak_day,
            points_earned=points_earned,
        )

    def list_by_user(
        self, user_id: int, limit: int = 30, offset: int = 0
    ) -> List[CheckInSchema]:
        model_instances = (
            self.db.query(self.model_class)
            .filter(self.model_class.user_id == user_id)
            .order_by(desc(self.model_class.checked_in_at), desc(self.model_class.id))
            .offset(offset)
            .limit(limit)
            .all()
        )
        return self._to_schemas(model_instances)
