from drc_loyalty.db.repo.campaigns_repo import CampaignsRepo
from drc_loyalty.db.repo.email_verifications_repo import EmailVerificationsRepo
from drc_loyalty.db.repo.ledger_repo import LedgerRepo
from drc_loyalty.db.repo.notifications_repo import NotificationsRepo
from drc_loyalty.db.repo.receipts_repo import ReceiptsRepo
from drc_loyalty.db.repo.rewards_repo import RewardsRepo
from drc_loyalty.db.repo.supermarkets_repo import SupermarketsRepo
from drc_loyalty.db.repo.users_repo import UsersRepo

__all__ = [
    "CampaignsRepo",
    "EmailVerificationsRepo",
    "LedgerRepo",
    "NotificationsRepo",
    "ReceiptsRepo",
    "RewardsRepo",
    "SupermarketsRepo",
    "UsersRepo",
]
