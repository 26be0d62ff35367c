from __future__ import annotations

from types import SimpleNamespace

from drc_loyalty.economy.points.types import ExpirationSweepBatchResult
from drc_loyalty.workers.tasks import points_expiration


def test_run_points_expiration_sweep_task_wrapper(monkeypatch) -> None:
    async def fake_async(*, batch_size: int) -> dict[str, int]:
        return {
            "batches": 1,
            "examined": batch_size,
            "warned": 2,
            "expired": 1,
            "points_expired": 200,
        }

    async def fake_dispose() -> None:
        return None

    monkeypatch.setattr(points_expiration, "run_points_expiration_sweep_async", fake_async)
    monkeypatch.setattr("drc_loyalty.workers.asyncio_runner.dispose_engine", fake_dispose)

    result = points_expiration.run_points_expiration_sweep(batch_size=7)

    assert result["examined"] == 7
    assert result["points_expired"] == 200


class _FakeTransaction:
    async def __aenter__(self):
        return SimpleNamespace()

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


async def test_sweep_pages_until_short_batch(monkeypatch) -> None:
    batches = [
        ExpirationSweepBatchResult(examined=2, warned=1, expired=1, points_expired=200, last_user_id=5),
        ExpirationSweepBatchResult(examined=1, warned=0, expired=1, points_expired=50, last_user_id=9),
    ]
    seen_cursors: list[int] = []

    async def fake_run_batch(session, *, now_utc, after_user_id: int, batch_size: int):
        seen_cursors.append(after_user_id)
        return batches[len(seen_cursors) - 1]

    monkeypatch.setattr(points_expiration, "SessionLocal", SimpleNamespace(begin=_FakeTransaction))
    monkeypatch.setattr(points_expiration.PointsService, "run_expiration_batch", fake_run_batch)

    result = await points_expiration.run_points_expiration_sweep_async(batch_size=2)

    assert seen_cursors == [0, 5]
    assert result == {
        "batches": 2,
        "examined": 3,
        "warned": 1,
        "expired": 2,
        "points_expired": 250,
    }


async def test_sweep_stops_on_empty_batch(monkeypatch) -> None:
    async def fake_run_batch(session, *, now_utc, after_user_id: int, batch_size: int):
        return ExpirationSweepBatchResult(examined=0, warned=0, expired=0, points_expired=0, last_user_id=None)

    monkeypatch.setattr(points_expiration, "SessionLocal", SimpleNamespace(begin=_FakeTransaction))
    monkeypatch.setattr(points_expiration.PointsService, "run_expiration_batch", fake_run_batch)

    result = await points_expiration.run_points_expiration_sweep_async(batch_size=50)

    assert result["batches"] == 1
    assert result["examined"] == 0
