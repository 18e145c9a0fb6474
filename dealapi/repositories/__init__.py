# Repository layer - Data access with Pydantic responses

from .base import BaseRepository
from .user_repository import UserRepository
from .points_repository import PointsRepository
from .check_in_repository import CheckInRepository
from .withdrawal_repository import WithdrawalRepository
from .catalog_repository import CategoryRepository, StoreRepository, CouponRepository
from .submission_repository import SubmissionRepository
from .site_setting_repository import SiteSettingRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "PointsRepository",
    "CheckInRepository",
    "WithdrawalRepository",
    "CategoryRepository",
    "StoreRepository",
    "CouponRepository",
    "SubmissionRepository",
    "SiteSettingRepository",
]
