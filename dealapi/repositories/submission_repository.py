from datetime import datetime
from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from dealapi.models.submission import UserSubmittedCoupon
from dealapi.repositories.base import BaseRepository
from dealapi.schemas.submission import SubmissionStatus, SubmittedCoupon


class SubmissionRepository(BaseRepository[UserSubmittedCoupon, SubmittedCoupon]):
    def __init__(self, db: Session):
        super().__init__(UserSubmittedCoupon, SubmittedCoupon, db)

    def list_submissions(
        self,
        user_id: Optional[int] = None,
        status: Optional[SubmissionStatus] = None,
    ) -> List[SubmittedCoupon]:
        query = self.db.query(self.model_class)
        if user_id is not None:
            query = query.filter(self.model_class.user_id == user_id)
        if status is not None:
            query = query.filter(self.model_class.status == SubmissionStatus(status).value)
        return self._to_schemas(query.order_by(desc(self.model_class.id)).all())

    def lock_for_update(self, submission_id: int) -> Optional[UserSubmittedCoupon]:
        return (
            self.db.query(self.model_class)
            .filter(self.model_class.id == submission_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def apply_changes(
        self, submission: UserSubmittedCoupon, **changes
    ) -> SubmittedCoupon:
        for key, value in changes.items():
            setattr(submission, key, value)
        self.db.flush()
        return self._to_schema(submission)

    def remove(self, submission: UserSubmittedCoupon) -> None:
        self.db.delete(submission)
        self.db.flush()

    def mark_reviewed(
        self,
        submission: UserSubmittedCoupon,
        status: SubmissionStatus,
        reviewed_at: datetime,
        review_notes: Optional[str] = None,
    ) -> SubmittedCoupon:
        submission.status = status.value
        submission.reviewed_at = reviewed_at
        if review_notes is not None:
            submission.review_notes = review_notes
        self.db.flush()
        return self._to_schema(submission)
