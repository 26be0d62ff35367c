from __future__ import annotations

import re
import unicodedata
from collections.abc import Sequence

from rapidfuzz import fuzz

from drc_loyalty.db.models.supermarkets import Supermarket
from drc_loyalty.economy.receipts.constants import PARTNER_MATCH_SCORE_CUTOFF

_NON_ALNUM_PATTERN = re.compile(r"[^0-9a-z]+")


def normalize_store_name(raw_name: str) -> str:
    decomposed = unicodedata.normalize("NFKD", raw_name.casefold())
    without_accents = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _NON_ALNUM_PATTERN.sub(" ", without_accents).strip()


def resolve_partner_store(
    merchant_name: str,
    supermarkets: Sequence[Supermarket],
    *,
    score_cutoff: float = PARTNER_MATCH_SCORE_CUTOFF,
) -> Supermarket | None:
    """Exact normalized match first, then the best fuzzy score above the cutoff."""
    query = normalize_store_name(merchant_name)
    if not query:
        return None

    normalized = [(normalize_store_name(store.name), store) for store in supermarkets if store.active]
    for name, store in normalized:
        if name == query:
            return store

    best_store: Supermarket | None = None
    best_score = 0.0
    for name, store in normalized:
        score = fuzz.WRatio(query, name)
        if score >= score_cutoff and score > best_score:
            best_store = store
            best_score = score
    return best_store
