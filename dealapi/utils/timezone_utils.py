"""
타임존 유틸리티

서비스 기준 시간대(기본: 네팔 표준시 Asia/Kathmandu)와 UTC 처리를 위한 함수들.
DB에는 항상 UTC aware datetime 으로 저장합니다.
"""

from datetime import datetime, timezone
from typing import Optional

import pytz

from dealapi.config import settings


def get_local_tz():
    return pytz.timezone(settings.TIMEZONE)


def now_utc() -> datetime:
    """현재 UTC 시간을 반환합니다."""
    return datetime.now(timezone.utc)


def get_local_now() -> datetime:
    return datetime.now(get_local_tz())


def ensure_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """naive datetime 은 UTC 로 간주합니다 (SQLite 는 tzinfo 를 저장하지 않음)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def to_local(dt: datetime) -> datetime:
    """UTC 또는 다른 타임존의 datetime 을 서비스 기준 시간대로 변환합니다."""
    return ensure_aware(dt).astimezone(get_local_tz())


def get_local_date(dt: Optional[datetime] = None):
    """서비스 기준 시간대의 날짜 (출석 ref_id 생성에 사용)"""
    return to_local(dt or now_utc()).date()
