"""
Service layer for business logic.
"""
from pricetalk.services.auth_service import AuthService
from pricetalk.services.billing_service import BillingService
from pricetalk.services.community_service import CommunityService
from pricetalk.services.demo_service import DemoService
from pricetalk.services.forum_service import ForumService
from pricetalk.services.journal_service import JournalService
from pricetalk.services.learning_service import LearningService
from pricetalk.services.macro_service import MacroService
from pricetalk.services.risk_service import RiskService
from pricetalk.services.user_service import UserService

__all__ = [
    "AuthService",
    "BillingService",
    "CommunityService",
    "DemoService",
    "ForumService",
    "JournalService",
    "LearningService",
    "MacroService",
    "RiskService",
    "UserService",
]
