from typing import Dict

from sqlalchemy.orm import Session

from dealapi.models.site_setting import SiteSetting as SiteSettingModel
from dealapi.repositories.base import BaseRepository
from dealapi.schemas.settings import SiteSetting as SiteSettingSchema


class SiteSettingRepository(BaseRepository[SiteSettingModel, SiteSettingSchema]):
    def __init__(self, db: Session):
        super().__init__(SiteSettingModel, SiteSettingSchema, db)

    def get_all(self) -> Dict[str, str]:
        return {row.key: row.value for row in self.find_all(order_by="key")}

    def upsert_many(self, values: Dict[str, str]) -> Dict[str, str]:
        try:
            for key, value in values.items():
                instance = self.db.get(self.model_class, key)
                if instance is None:
                    self.db.add(self.model_class(key=key, value=value))
                else:
                    instance.value = value
            self.db.flush()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return self.get_all()
