from src.models.campaign import Campaign, CampaignStatus
from src.models.content import Content
from src.models.invitation_history import InvitationHistory
from src.models.notification import Notification, NotificationType
from src.models.transaction import DonationTransaction, PaymentStatus
from src.models.user import User

__all__ = [
    "Campaign",
    "CampaignStatus",
    "Content",
    "DonationTransaction",
    "InvitationHistory",
    "Notification",
    "NotificationType",
    "PaymentStatus",
    "User",
]
