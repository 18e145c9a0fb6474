from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from dealapi.models.base import BaseModel


class SiteSetting(BaseModel):
    """사이트 전역 설정 (key/value)"""

    __tablename__ = "site_settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False, default="")
