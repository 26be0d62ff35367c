from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from drc_loyalty.db.repo.receipts_repo import ReceiptsRepo
from drc_loyalty.economy.receipts import attempts

NOW_UTC = datetime(2026, 9, 1, 10, 0, tzinfo=timezone.utc)


class _Transaction:
    def __init__(self, session: object) -> None:
        self.session = session

    async def __aenter__(self):
        return self.session

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


async def test_rejection_audit_writes_api_submission(monkeypatch) -> None:
    written = []
    session = object()

    class FakeSessionLocal:
        @staticmethod
        def begin() -> _Transaction:
            return _Transaction(session)

    async def fake_create_submission(db_session, *, submission):
        written.append((db_session, submission))
        return submission

    monkeypatch.setattr(attempts, "SessionLocal", FakeSessionLocal)
    monkeypatch.setattr(ReceiptsRepo, "create_submission", fake_create_submission)

    recorded = await attempts.record_rejected_submission(
        user_id=7,
        image_sha256="b" * 64,
        result="NOT_PARTNER_STORE",
        now_utc=NOW_UTC,
        metadata={"merchant_name": "Boutique Inconnue"},
    )

    assert recorded is True
    [(db_session, submission)] = written
    assert db_session is session
    assert submission.result == "NOT_PARTNER_STORE"
    assert submission.source == "API"
    assert submission.metadata_ == {"merchant_name": "Boutique Inconnue"}


async def test_rejection_audit_failure_is_logged_not_raised(monkeypatch) -> None:
    class ExhaustedSessionLocal:
        @staticmethod
        def begin():
            raise PoolTimeoutError("QueuePool limit reached")

    monkeypatch.setattr(attempts, "SessionLocal", ExhaustedSessionLocal)

    recorded = await attempts.record_rejected_submission(
        user_id=7,
        image_sha256="c" * 64,
        result="DUPLICATE_IMAGE",
        now_utc=NOW_UTC,
    )

    assert recorded is False
