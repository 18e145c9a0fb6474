from .user import User, UserSummary
from .points import PointsLogEntry, PointsBalanceResponse
from .check_in import CheckIn
from .withdrawal import WithdrawalRequest, WithdrawalRequestWithUser
from .catalog import Category, Store, Coupon
from .submission import SubmittedCoupon
