from drc_loyalty.db.models.campaign_supermarkets import CampaignSupermarket
from drc_loyalty.db.models.campaigns import Campaign
from drc_loyalty.db.models.email_verifications import EmailVerification
from drc_loyalty.db.models.ledger_entries import LedgerEntry
from drc_loyalty.db.models.notifications import Notification
from drc_loyalty.db.models.partner_supermarkets import PartnerSupermarket
from drc_loyalty.db.models.partners import Partner
from drc_loyalty.db.models.receipt_items import ReceiptItem
from drc_loyalty.db.models.receipt_submissions import ReceiptSubmission
from drc_loyalty.db.models.receipts import Receipt
from drc_loyalty.db.models.reward_redemptions import RewardRedemption
from drc_loyalty.db.models.rewards import Reward
from drc_loyalty.db.models.supermarkets import Supermarket
from drc_loyalty.db.models.users import User

__all__ = [
    "Campaign",
    "CampaignSupermarket",
    "EmailVerification",
    "LedgerEntry",
    "Notification",
    "Partner",
    "PartnerSupermarket",
    "Receipt",
    "ReceiptItem",
    "ReceiptSubmission",
    "Reward",
    "RewardRedemption",
    "Supermarket",
    "User",
]
