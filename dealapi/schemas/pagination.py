# 엔드포인트별 페이지네이션 제한
class PaginationLimits:
    POINTS_LOG = {"min": 1, "max": 100, "default": 50}
    CHECK_IN_HISTORY = {"min": 1, "max": 100, "default": 30}
    USER_LIST = {"min": 1, "max": 100, "default": 50}
    COUPON_LIST = {"min": 1, "max": 100, "default": 50}
