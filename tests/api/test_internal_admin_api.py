from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace
from uuid import UUID

import pytest
from fastapi.testclient import TestClient

from drc_loyalty.api.routes import deps
from drc_loyalty.api.routes import internal_dashboard as internal_dashboard_routes
from drc_loyalty.api.routes import internal_partners as internal_partners_routes
from drc_loyalty.api.routes import internal_receipts as internal_receipts_routes
from drc_loyalty.api.routes import internal_users as internal_users_routes
from drc_loyalty.db.repo import dashboard_aggregations
from drc_loyalty.db.repo.partners_repo import PartnersRepo, StorePerformanceRow
from drc_loyalty.db.repo.receipts_repo import ReceiptsRepo
from drc_loyalty.db.repo.supermarkets_repo import SupermarketsRepo
from drc_loyalty.db.repo.users_repo import UsersRepo
from drc_loyalty.main import app

NOW_UTC = datetime(2026, 9, 3, 9, 0, tzinfo=timezone.utc)
INTERNAL_HEADERS = {"X-Internal-Token": "internal-secret", "X-Internal-Actor": "ops-anna"}
STORE_ID = UUID("00000000-0000-0000-0000-0000000000b1")
RECEIPT_ID = UUID("00000000-0000-0000-0000-0000000000c1")


class _Transaction:
    async def __aenter__(self):
        return SimpleNamespace()

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


class _FakeSessionLocal:
    @staticmethod
    def begin() -> _Transaction:
        return _Transaction()


@pytest.fixture
def internal_client(monkeypatch) -> TestClient:
    monkeypatch.setattr(
        deps,
        "get_settings",
        lambda: SimpleNamespace(
            internal_api_token="internal-secret",
            internal_api_allowlist="127.0.0.1/32",
            internal_api_trusted_proxies="",
        ),
    )
    for module in (
        internal_users_routes,
        internal_receipts_routes,
        internal_dashboard_routes,
        internal_partners_routes,
    ):
        monkeypatch.setattr(module, "SessionLocal", _FakeSessionLocal)
    for module in (internal_users_routes, internal_dashboard_routes, internal_partners_routes):
        monkeypatch.setattr(module, "utc_now", lambda: NOW_UTC)
    return TestClient(app, client=("127.0.0.1", 50000))


def _user(**overrides) -> SimpleNamespace:
    values = {
        "id": 21,
        "first_name": "Amani",
        "last_name": "Kabeya",
        "email": "amani@example.com",
        "phone_number": "+243812345678",
        "status": "ACTIVE",
        "points_balance": 640,
        "points_expiring": 0,
        "points_expires_at": None,
        "total_spent": Decimal("180.00"),
        "joined_at": NOW_UTC - timedelta(days=200),
        "last_receipt_at": NOW_UTC - timedelta(days=2),
        "gender": "F",
        "birthdate": date(1994, 5, 17),
        "login_locked_until": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def _receipt(**overrides) -> SimpleNamespace:
    values = {
        "id": RECEIPT_ID,
        "user_id": 21,
        "supermarket_name": "KinMart Gombe",
        "amount": Decimal("42.50"),
        "currency": "USD",
        "receipt_date": date(2026, 9, 2),
        "status": "PENDING",
        "points_awarded": 0,
        "confidence_score": 0.72,
        "image_url": "https://cdn.example.com/receipts/c1.jpg",
        "campaign_id": None,
        "reject_reason": None,
        "created_at": NOW_UTC - timedelta(hours=20),
        "reviewed_at": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def _partner(**overrides) -> SimpleNamespace:
    values = {
        "id": 4,
        "name": "Grace Mbuyi",
        "email": "ops@kinmart.cd",
        "company_name": "KinMart SARL",
        "phone": None,
        "status": "pending",
        "created_at": NOW_UTC - timedelta(days=1),
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def test_user_search_passes_filters_and_returns_profiles(internal_client, monkeypatch) -> None:
    searches = []

    async def fake_search(session, *, query, status, limit, offset=0):
        searches.append((query, status, limit, offset))
        return [_user()]

    monkeypatch.setattr(UsersRepo, "search", fake_search)

    response = internal_client.get(
        "/internal/users",
        params={"query": "  kabeya ", "status": "active", "limit": 10, "offset": 20},
        headers=INTERNAL_HEADERS,
    )

    assert response.status_code == 200
    assert searches == [("kabeya", "ACTIVE", 10, 20)]
    [profile] = response.json()
    assert profile["id"] == 21
    assert profile["phone_number"] == "+243812345678"
    assert profile["points_balance"] == 640


def test_user_search_rejects_unknown_status(internal_client) -> None:
    response = internal_client.get(
        "/internal/users",
        params={"status": "deleted"},
        headers=INTERNAL_HEADERS,
    )

    assert response.status_code == 422
    assert response.json() == {"detail": {"code": "E_USER_STATUS_INVALID"}}


def test_user_detail_includes_recent_receipts(internal_client, monkeypatch) -> None:
    async def fake_get_by_id(session, user_id):
        return _user(id=user_id)

    async def fake_list_by_user(session, *, user_id, limit):
        return [_receipt(user_id=user_id)]

    async def fake_list_items(session, receipt_ids):
        return {}

    monkeypatch.setattr(UsersRepo, "get_by_id", fake_get_by_id)
    monkeypatch.setattr(ReceiptsRepo, "list_by_user", fake_list_by_user)
    monkeypatch.setattr(ReceiptsRepo, "list_items_by_receipt_ids", fake_list_items)

    response = internal_client.get("/internal/users/21", headers=INTERNAL_HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["gender"] == "F"
    assert body["birthdate"] == "1994-05-17"
    assert [receipt["id"] for receipt in body["recent_receipts"]] == [str(RECEIPT_ID)]
    assert body["recent_receipts"][0]["status"] == "PENDING"


def test_user_detail_missing_user_is_not_found(internal_client, monkeypatch) -> None:
    async def fake_get_by_id(session, user_id):
        return None

    monkeypatch.setattr(UsersRepo, "get_by_id", fake_get_by_id)

    response = internal_client.get("/internal/users/999", headers=INTERNAL_HEADERS)

    assert response.status_code == 404
    assert response.json() == {"detail": {"code": "E_USER_NOT_FOUND"}}


def test_receipt_listing_filters_by_status(internal_client, monkeypatch) -> None:
    calls = []

    async def fake_list_recent(session, *, status, limit, offset=0):
        calls.append((status, limit, offset))
        return [_receipt(status="VERIFIED", points_awarded=42)]

    async def fake_list_items(session, receipt_ids):
        return {}

    monkeypatch.setattr(ReceiptsRepo, "list_recent", fake_list_recent)
    monkeypatch.setattr(ReceiptsRepo, "list_items_by_receipt_ids", fake_list_items)

    response = internal_client.get(
        "/internal/receipts",
        params={"status": "verified", "limit": 5},
        headers=INTERNAL_HEADERS,
    )

    assert response.status_code == 200
    assert calls == [("VERIFIED", 5, 0)]
    assert response.json()[0]["points_awarded"] == 42


def test_receipt_listing_rejects_unknown_status(internal_client) -> None:
    response = internal_client.get(
        "/internal/receipts",
        params={"status": "archived"},
        headers=INTERNAL_HEADERS,
    )

    assert response.status_code == 422
    assert response.json() == {"detail": {"code": "E_RECEIPT_STATUS_INVALID"}}


def test_dashboard_stats_aggregate_members_and_receipts(internal_client, monkeypatch) -> None:
    async def fake_users_by_status(session):
        return {"ACTIVE": 120, "SUSPENDED": 3}

    async def fake_member_spend(session):
        return Decimal("15420.50")

    async def fake_outstanding_points(session):
        return 98000

    async def fake_receipts_by_status(session):
        return {"VERIFIED": 300, "PENDING": 12}

    async def fake_average_amount(session):
        return Decimal("37.456")

    monkeypatch.setattr(dashboard_aggregations, "count_users_by_status", fake_users_by_status)
    monkeypatch.setattr(dashboard_aggregations, "sum_member_spend", fake_member_spend)
    monkeypatch.setattr(dashboard_aggregations, "sum_outstanding_points", fake_outstanding_points)
    monkeypatch.setattr(dashboard_aggregations, "count_receipts_by_status", fake_receipts_by_status)
    monkeypatch.setattr(dashboard_aggregations, "average_receipt_amount", fake_average_amount)

    response = internal_client.get("/internal/dashboard/stats", headers=INTERNAL_HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["active_users"] == 120
    assert body["receipts_processed"] == 312
    assert body["receipts_pending"] == 12
    assert body["receipts_by_status"] == {"PENDING": 12, "VERIFIED": 300, "REJECTED": 0}
    assert Decimal(body["avg_basket"]) == Decimal("37.46")
    assert Decimal(body["total_sales"]) == Decimal("15420.50")
    assert body["points_outstanding"] == 98000


def test_dashboard_charts_fill_missing_days(internal_client, monkeypatch) -> None:
    windows = []

    async def fake_daily_totals(session, *, from_date, to_date):
        windows.append((from_date, to_date))
        return {date(2026, 9, 2): (Decimal("85.00"), 2)}

    async def fake_top_brands(session, *, limit):
        assert limit == 4
        return [("Primus", 3), ("Vital'O", 1)]

    monkeypatch.setattr(dashboard_aggregations, "daily_receipt_totals", fake_daily_totals)
    monkeypatch.setattr(dashboard_aggregations, "top_campaign_brands", fake_top_brands)

    response = internal_client.get("/internal/dashboard/charts", headers=INTERNAL_HEADERS)

    assert response.status_code == 200
    # 09:00 UTC is 10:00 in Kinshasa, still 3 September.
    assert windows == [(date(2026, 8, 28), date(2026, 9, 3))]
    sales = response.json()["sales_data"]
    assert [point["day"] for point in sales][0] == "2026-08-28"
    assert len(sales) == 7
    by_day = {point["day"]: point for point in sales}
    assert by_day["2026-09-02"]["receipts"] == 2
    assert by_day["2026-09-02"]["name"] == "Wed"
    assert by_day["2026-09-03"]["receipts"] == 0
    assert response.json()["brand_data"] == [
        {"name": "Primus", "value": 3},
        {"name": "Vital'O", "value": 1},
    ]


def test_partner_status_update_rejects_unknown_status(internal_client) -> None:
    response = internal_client.put(
        "/internal/partners/4/status",
        json={"status": "archived"},
        headers=INTERNAL_HEADERS,
    )

    assert response.status_code == 422
    assert response.json() == {"detail": {"code": "E_PARTNER_STATUS_INVALID"}}


def test_partner_status_update_activates_partner(internal_client, monkeypatch) -> None:
    partner = _partner()

    async def fake_set_status(session, *, partner_id, status, now_utc):
        partner.status = status
        return 1

    async def fake_get_by_id(session, partner_id):
        return partner

    async def fake_list_supermarket_ids(session, partner_ids):
        return {4: [STORE_ID]}

    monkeypatch.setattr(PartnersRepo, "set_status", fake_set_status)
    monkeypatch.setattr(PartnersRepo, "get_by_id", fake_get_by_id)
    monkeypatch.setattr(PartnersRepo, "list_supermarket_ids", fake_list_supermarket_ids)

    response = internal_client.put(
        "/internal/partners/4/status",
        json={"status": "Active"},
        headers=INTERNAL_HEADERS,
    )

    assert response.status_code == 200
    assert response.json()["status"] == "active"
    assert response.json()["supermarket_ids"] == [str(STORE_ID)]


def test_partner_store_assignment_requires_known_stores(internal_client, monkeypatch) -> None:
    replaced = []

    async def fake_get_partner(session, partner_id):
        return _partner(status="active")

    async def fake_get_supermarket(session, supermarket_id):
        return None

    async def fake_replace(session, *, partner_id, supermarket_ids):
        replaced.append(supermarket_ids)

    monkeypatch.setattr(PartnersRepo, "get_by_id", fake_get_partner)
    monkeypatch.setattr(SupermarketsRepo, "get_by_id", fake_get_supermarket)
    monkeypatch.setattr(PartnersRepo, "replace_supermarkets", fake_replace)

    response = internal_client.put(
        "/internal/partners/4/supermarkets",
        json={"supermarket_ids": [str(STORE_ID)]},
        headers=INTERNAL_HEADERS,
    )

    assert response.status_code == 422
    assert response.json() == {"detail": {"code": "E_SUPERMARKET_NOT_FOUND"}}
    assert replaced == []


def test_partner_performance_for_missing_partner(internal_client, monkeypatch) -> None:
    async def fake_get_partner(session, partner_id):
        return None

    monkeypatch.setattr(PartnersRepo, "get_by_id", fake_get_partner)

    response = internal_client.get("/internal/partners/77/performance", headers=INTERNAL_HEADERS)

    assert response.status_code == 404
    assert response.json() == {"detail": {"code": "E_PARTNER_NOT_FOUND"}}


def test_partner_performance_uses_since_date(internal_client, monkeypatch) -> None:
    requested = []

    async def fake_get_partner(session, partner_id):
        return _partner(status="active")

    async def fake_store_performance(session, *, partner_id, since_date):
        requested.append((partner_id, since_date))
        return [
            StorePerformanceRow(
                supermarket_id=STORE_ID,
                name="KinMart Gombe",
                active=True,
                receipts_total=5,
                receipts_verified=4,
                receipts_pending=1,
                verified_amount=Decimal("210.00"),
                points_awarded=210,
                shoppers=3,
            )
        ]

    monkeypatch.setattr(PartnersRepo, "get_by_id", fake_get_partner)
    monkeypatch.setattr(PartnersRepo, "store_performance", fake_store_performance)

    response = internal_client.get(
        "/internal/partners/4/performance",
        params={"since": "2026-08-01"},
        headers=INTERNAL_HEADERS,
    )

    assert response.status_code == 200
    assert requested == [(4, date(2026, 8, 1))]
    assert response.json()[0]["receipts_verified"] == 4
    assert response.json()[0]["shoppers"] == 3
