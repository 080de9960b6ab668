"""
Pydantic models for database documents and domain constants.
"""
from pricetalk.models.user import SubscriptionTier, User, UserProfile, level_for_xp
from pricetalk.models.trade import Trade, TradeSide, TradeStatus, realized_pnl
from pricetalk.models.demo import DemoTradeStatus, OrderType
from pricetalk.models.macro import Signal
from pricetalk.models.learning import ProgressStatus
from pricetalk.models.community import ChallengeStatus, VoteType
from pricetalk.models.risk import BlockerSeverity
from pricetalk.models.billing import PLANS, Plan, SubscriptionStatus

__all__ = [
    "User",
    "UserProfile",
    "SubscriptionTier",
    "level_for_xp",
    "Trade",
    "TradeSide",
    "TradeStatus",
    "realized_pnl",
    "OrderType",
    "DemoTradeStatus",
    "Signal",
    "ProgressStatus",
    "ChallengeStatus",
    "VoteType",
    "BlockerSeverity",
    "Plan",
    "PLANS",
    "SubscriptionStatus",
]
