from pydantic import BaseModel, Field
from typing import Dict


class SiteSetting(BaseModel):
    key: str
    value: str

    class Config:
        from_attributes = True


class SiteSettingsUpdate(BaseModel):
    """설정 일괄 저장 (upsert)"""

    settings: Dict[str, str] = Field(..., min_length=1)
