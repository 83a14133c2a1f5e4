"""
All SQLAlchemy models. Schema is the source of truth for new DBs.
Base.metadata.create_all() creates every table; no migration scripts needed for fresh installs.
"""
from app.models.user import User
from app.models.business import BusinessProfile, Service, BusinessSetupProgress
from app.models.provider import Provider, ProviderAvailability, ProviderService
from app.models.promotion import Promotion, PromotionUsage
from app.models.booking import Booking
from app.models.financial import Transaction, PayoutRequest
from app.models.conversation import Conversation, ConversationParticipant, Message
from app.models.audit_log import AuditLog

__all__ = [
    "User",
    "BusinessProfile",
    "Service",
    "BusinessSetupProgress",
    "Provider",
    "ProviderAvailability",
    "ProviderService",
    "Promotion",
    "PromotionUsage",
    "Booking",
    "Transaction",
    "PayoutRequest",
    "Conversation",
    "ConversationParticipant",
    "Message",
    "AuditLog",
]
