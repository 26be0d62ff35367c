from __future__ import annotations

import asyncio

import asyncpg
from sqlalchemy.engine import make_url

from drc_loyalty.core.config import get_settings
from drc_loyalty.core.integration_db_safety import assert_safe_integration_db


async def _create_test_database(database_url: str) -> str:
    """Creates the integration-test database when it is missing.

    Returns "created" or "exists". The same safety rules that guard the
    TRUNCATE fixture apply, so a production URL is refused before connecting.
    """
    assert_safe_integration_db(database_url)
    target = make_url(database_url)
    if target.username is None:
        raise RuntimeError("DATABASE_URL username is required.")

    conn = await asyncpg.connect(
        host=target.host or "localhost",
        port=int(target.port or 5432),
        user=target.username,
        password=target.password,
        database="postgres",
    )
    try:
        if await conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", target.database):
            return "exists"
        # Identifiers cannot be bound as parameters; quote_ident keeps the name literal.
        quoted_name = await conn.fetchval("SELECT quote_ident($1)", target.database)
        await conn.execute(f"CREATE DATABASE {quoted_name}")
        return "created"
    finally:
        await conn.close()


def main() -> int:
    database_url = get_settings().database_url
    outcome = asyncio.run(_create_test_database(database_url))
    print(f"ensure_test_db: {outcome} db={make_url(database_url).database}")  # noqa: T201
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
