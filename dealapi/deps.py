from fastapi import Depends
from sqlalchemy.orm import Session

from dealapi.database.session import get_db
from dealapi.config import settings

# Services
from dealapi.services.user_service import UserService
from dealapi.services.point_service import PointService
from dealapi.services.check_in_service import CheckInService
from dealapi.services.withdrawal_service import WithdrawalService
from dealapi.services.catalog_service import CatalogService
from dealapi.services.submission_service import SubmissionService
from dealapi.services.settings_service import SettingsService


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    return UserService(db=db, settings=settings)


def get_point_service(db: Session = Depends(get_db)) -> PointService:
    return PointService(db=db)


def get_check_in_service(db: Session = Depends(get_db)) -> CheckInService:
    return CheckInService(db=db, settings=settings)


def get_withdrawal_service(db: Session = Depends(get_db)) -> WithdrawalService:
    return WithdrawalService(db=db, settings=settings)


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    return CatalogService(db=db)


def get_submission_service(db: Session = Depends(get_db)) -> SubmissionService:
    return SubmissionService(db=db, settings=settings)


def get_settings_service(db: Session = Depends(get_db)) -> SettingsService:
    return SettingsService(db=db)
