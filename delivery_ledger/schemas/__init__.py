from delivery_ledger.schemas.analytics import (
    DailyStats,
    Leaderboard,
    LeaderboardEntry,
    RestaurantStats,
    RevenueReport,
    StatusDistribution,
)
from delivery_ledger.schemas.common import ErrorDetail, ErrorMeta, ErrorResponse
from delivery_ledger.schemas.orders import (
    AssignOrder,
    CancelOrder,
    DeliverOrder,
    OrderCreate,
    OrderDetailsUpdate,
    OrderFilters,
    OrderPatch,
    OrderResponse,
    OrderTransition,
    PickUpOrder,
    ReopenOrder,
)
from delivery_ledger.schemas.ratings import (
    DriverRatingSummary,
    RatingCreate,
    RatingResponse,
)
from delivery_ledger.schemas.transactions import AdjustmentCreate, TransactionResponse
from delivery_ledger.schemas.users import (
    LocationUpdate,
    PushTokenUpdate,
    UserCreate,
    UserResponse,
)

__all__ = [
    "AdjustmentCreate",
    "AssignOrder",
    "CancelOrder",
    "DailyStats",
    "DeliverOrder",
    "DriverRatingSummary",
    "ErrorDetail",
    "ErrorMeta",
    "ErrorResponse",
    "Leaderboard",
    "LeaderboardEntry",
    "LocationUpdate",
    "OrderCreate",
    "OrderDetailsUpdate",
    "OrderFilters",
    "OrderPatch",
    "OrderResponse",
    "OrderTransition",
    "PickUpOrder",
    "PushTokenUpdate",
    "RatingCreate",
    "RatingResponse",
    "ReopenOrder",
    "RestaurantStats",
    "RevenueReport",
    "StatusDistribution",
    "TransactionResponse",
    "UserCreate",
    "UserResponse",
]
