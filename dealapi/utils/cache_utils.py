"""
Query cache key generation and TTL utilities.
Key Format: {resource}:{scope}[:{id}]
"""

from datetime import datetime

import pytz

from dealapi.config import settings

ADMIN_WITHDRAWALS_KEY = "withdrawals:admin"


def user_withdrawals_key(user_id: int) -> str:
    return f"withdrawals:user:{user_id}"


def points_balance_key(user_id: int) -> str:
    return f"points:balance:{user_id}"


def user_profile_key(external_id: str) -> str:
    return f"users:profile:{external_id}"


def withdrawal_mutation_keys(user_id: int, external_id: str) -> list[str]:
    """출금 요청 생성/검토 시 무효화해야 하는 키 목록"""
    return [
        user_withdrawals_key(user_id),
        user_profile_key(external_id),
        points_balance_key(user_id),
        ADMIN_WITHDRAWALS_KEY,
    ]


def points_mutation_keys(user_id: int, external_id: str) -> list[str]:
    """포인트 변동 시 무효화해야 하는 키 목록"""
    return [points_balance_key(user_id), user_profile_key(external_id)]


def calculate_ttl(default: int | None = None) -> int:
    """
    Return the cache TTL in seconds, capped at the next local midnight so a
    cached streak or balance view never survives a day boundary.

    Examples (Asia/Kathmandu, default 300):
        14:23:45 → 300
        23:59:50 → 10
    """
    ttl = default if default is not None else settings.CACHE_TTL_SECONDS
    tz = pytz.timezone(settings.TIMEZONE)
    now_local = datetime.now(tz)

    seconds_to_midnight = (
        (23 - now_local.hour) * 3600
        + (59 - now_local.minute) * 60
        + (60 - now_local.second)
    )
    if seconds_to_midnight <= 0:
        return ttl

    return max(1, min(ttl, seconds_to_midnight))
