from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

EXPIRATION_WARNING_WINDOW = timedelta(days=7)
EXPIRATION_SWEEP_BATCH_SIZE = 200

VIP_TOTAL_SPENT_THRESHOLD = Decimal("100000")
NEW_USER_WINDOW = timedelta(days=30)
CHURN_RISK_INACTIVITY_WINDOW = timedelta(days=60)

LEDGER_ENTRY_SIGNUP_BONUS = "SIGNUP_BONUS"
LEDGER_ENTRY_RECEIPT_AWARD = "RECEIPT_AWARD"
LEDGER_ENTRY_REWARD_REDEMPTION = "REWARD_REDEMPTION"
LEDGER_ENTRY_POINTS_EXPIRED = "POINTS_EXPIRED"
LEDGER_ENTRY_MANUAL_ADJUSTMENT = "MANUAL_ADJUSTMENT"
