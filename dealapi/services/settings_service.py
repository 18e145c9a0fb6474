import logging
from typing import Dict

from sqlalchemy.orm import Session

from dealapi.repositories.site_setting_repository import SiteSettingRepository

logger = logging.getLogger(__name__)


class SettingsService:
    """사이트 설정 (예: header_verification_code)"""

    def __init__(self, db: Session):
        self.repo = SiteSettingRepository(db)

    def get_all(self) -> Dict[str, str]:
        return self.repo.get_all()

    def update(self, values: Dict[str, str]) -> Dict[str, str]:
        updated = self.repo.upsert_many(values)
        logger.info(f"Updated site settings: {sorted(values)}")
        return updated
