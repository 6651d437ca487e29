"""
Chat, billing and usage models.
"""
from .session import ChatSession
from .message import Message
from .plan import Plan
from .subscription import Subscription
from .credit_transaction import CreditTransaction
from .usage_log import APIUsageLog

__all__ = [
    "ChatSession",
    "Message",
    "Plan",
    "Subscription",
    "CreditTransaction",
    "APIUsageLog",
]
