from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.engine import make_url

LOCAL_TEST_HOSTS = frozenset(
    {
        "localhost",
        "127.0.0.1",
        "::1",
        "postgres",
        "drc_loyalty_postgres",
    }
)


@dataclass(frozen=True, slots=True)
class TestDatabaseTarget:
    database_name: str
    host: str
    problems: tuple[str, ...]

    @property
    def is_safe(self) -> bool:
        return not self.problems


def inspect_test_database_target(database_url: str) -> TestDatabaseTarget:
    """Lists every reason a URL must not be wiped by the integration fixtures."""
    target = make_url(database_url)
    database_name = (target.database or "").strip()
    host = (target.host or "").strip().lower()

    problems: list[str] = []
    if target.get_backend_name() != "postgresql":
        problems.append("backend is not PostgreSQL")
    if "test" not in database_name.lower():
        problems.append("database name does not contain 'test'")
    if host not in LOCAL_TEST_HOSTS:
        problems.append(f"host '{host}' is not a local test host")

    return TestDatabaseTarget(database_name=database_name, host=host, problems=tuple(problems))


def assert_safe_integration_db(database_url: str) -> None:
    target = inspect_test_database_target(database_url)
    if target.is_safe:
        return

    raise RuntimeError(
        "Refusing to run integration tests with destructive TRUNCATE "
        f"against db='{target.database_name}' host='{target.host}': "
        f"{'; '.join(target.problems)}. Point DATABASE_URL at a local database "
        "such as 'drc_loyalty_test'."
    )
