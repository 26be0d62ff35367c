from __future__ import annotations

import pytest
from sqlalchemy import text

from drc_loyalty.core.integration_db_safety import assert_safe_integration_db
from drc_loyalty.db.session import engine

TRUNCATE_TABLES = (
    "partner_supermarkets",
    "partners",
    "notifications",
    "ledger_entries",
    "reward_redemptions",
    "rewards",
    "receipt_submissions",
    "receipt_items",
    "receipts",
    "campaign_supermarkets",
    "campaigns",
    "supermarkets",
    "email_verifications",
    "users",
)

TRUNCATE_SQL = f"TRUNCATE TABLE {', '.join(TRUNCATE_TABLES)} RESTART IDENTITY CASCADE"


@pytest.fixture(scope="session", autouse=True)
def guard_integration_db_target() -> None:
    assert_safe_integration_db(str(engine.url))


@pytest.fixture(autouse=True)
async def cleanup_db() -> None:
    # Pooled asyncpg connections are bound to the loop that opened them.
    await engine.dispose()

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as exc:  # pragma: no cover - environment-dependent
        pytest.skip(f"Postgres is required for integration tests: {exc}")

    async with engine.begin() as conn:
        await conn.execute(text(TRUNCATE_SQL))

    yield

    await engine.dispose()
