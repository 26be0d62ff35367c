from __future__ import annotations

from datetime import timedelta

RECEIPT_RATE_LIMIT_WINDOW = timedelta(hours=24)
RECEIPT_RATE_LIMIT_MAX_SUBMISSIONS = 10

PARTNER_MATCH_SCORE_CUTOFF = 90.0
SUPPORTED_CURRENCIES = ("CDF", "USD")

SUBMISSION_SOURCE_API = "API"
SUBMISSION_SOURCE_MODERATION = "MODERATION"

MAX_RECEIPT_ITEMS = 200
