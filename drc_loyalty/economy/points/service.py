from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from drc_loyalty.core.config import get_settings
from drc_loyalty.db.models.ledger_entries import LedgerEntry
from drc_loyalty.db.models.notifications import Notification
from drc_loyalty.db.models.users import User
from drc_loyalty.db.repo.ledger_repo import LedgerRepo
from drc_loyalty.db.repo.notifications_repo import NotificationsRepo
from drc_loyalty.db.repo.users_repo import UsersRepo
from drc_loyalty.economy.points.constants import (
    EXPIRATION_SWEEP_BATCH_SIZE,
    EXPIRATION_WARNING_WINDOW,
    LEDGER_ENTRY_MANUAL_ADJUSTMENT,
    LEDGER_ENTRY_POINTS_EXPIRED,
)
from drc_loyalty.economy.points.errors import (
    PointsInsufficientBalanceError,
    PointsInvalidAdjustmentError,
    PointsUserNotFoundError,
)
from drc_loyalty.economy.points.expiration import evaluate_expiration, is_in_warning_window
from drc_loyalty.economy.points.time import add_months, kinshasa_local_date
from drc_loyalty.economy.points.types import (
    ExpirationAction,
    ExpirationDecision,
    ExpirationSweepBatchResult,
    PointsAdjustmentResult,
    PointsTrancheSnapshot,
)

logger = structlog.get_logger(__name__)

EXPIRATION_WARNING_KIND = "EXPIRATION_WARNING"
EXPIRATION_EXPIRED_KIND = "POINTS_EXPIRED"


class PointsService:
    @staticmethod
    async def credit(
        session: AsyncSession,
        *,
        user_id: int,
        points: int,
        entry_type: str,
        source: str,
        idempotency_key: str,
        now_utc: datetime,
        spent: Decimal = Decimal("0"),
        receipt_at: datetime | None = None,
        metadata: dict[str, object] | None = None,
    ) -> int:
        """Atomically credits a new tranche and appends the matching ledger row.

        The tranche expiry is refreshed to award date + POINTS_EXPIRY_MONTHS. A
        zero-point credit only books spend and writes no ledger entry.
        """
        settings = get_settings()
        expires_at = add_months(kinshasa_local_date(now_utc), settings.points_expiry_months)
        balance_after = await UsersRepo.credit_points(
            session,
            user_id=user_id,
            points=points,
            expires_at=expires_at,
            spent=spent,
            receipt_at=receipt_at,
        )
        if balance_after is None:
            raise PointsUserNotFoundError

        if points > 0:
            await LedgerRepo.create(
                session,
                entry=LedgerEntry(
                    user_id=user_id,
                    entry_type=entry_type,
                    direction="CREDIT",
                    amount=points,
                    balance_after=balance_after,
                    source=source,
                    idempotency_key=idempotency_key,
                    metadata_={**(metadata or {}), "expires_at": expires_at.isoformat()},
                    created_at=now_utc,
                ),
            )
        return int(balance_after)

    @staticmethod
    async def debit(
        session: AsyncSession,
        *,
        user_id: int,
        points: int,
        entry_type: str,
        source: str,
        idempotency_key: str,
        now_utc: datetime,
        metadata: dict[str, object] | None = None,
    ) -> int:
        balance_after = await UsersRepo.adjust_points(session, user_id=user_id, delta=-points)
        if balance_after is None:
            if await UsersRepo.get_by_id(session, user_id) is None:
                raise PointsUserNotFoundError
            raise PointsInsufficientBalanceError

        await LedgerRepo.create(
            session,
            entry=LedgerEntry(
                user_id=user_id,
                entry_type=entry_type,
                direction="DEBIT",
                amount=points,
                balance_after=balance_after,
                source=source,
                idempotency_key=idempotency_key,
                metadata_=metadata or {},
                created_at=now_utc,
            ),
        )
        return int(balance_after)

    @staticmethod
    async def _snapshot_for_user(
        session: AsyncSession,
        *,
        user: User,
        today: date,
    ) -> PointsTrancheSnapshot:
        warning_already_sent = False
        if user.points_expires_at is not None and is_in_warning_window(
            user.points_expires_at, today=today
        ):
            warning_already_sent = await NotificationsRepo.has_expiration_warning(
                session,
                user_id=user.id,
                expires_for_date=user.points_expires_at,
            )
        return PointsTrancheSnapshot(
            points_balance=user.points_balance,
            points_expiring=user.points_expiring,
            points_expires_at=user.points_expires_at,
            warning_already_sent=warning_already_sent,
        )

    @staticmethod
    async def apply_expiration(
        session: AsyncSession,
        *,
        user: User,
        now_utc: datetime,
    ) -> ExpirationDecision:
        """Applies the expiration transition to a user row locked by the caller."""
        today = kinshasa_local_date(now_utc)
        snapshot = await PointsService._snapshot_for_user(session, user=user, today=today)
        decision = evaluate_expiration(snapshot, today=today)

        if decision.action == ExpirationAction.WARN:
            await NotificationsRepo.create(
                session,
                notification=Notification(
                    user_id=user.id,
                    title="Points Expiration Warning",
                    message=(
                        f"{snapshot.points_expiring} points will expire on "
                        f"{decision.expires_at.isoformat()}. Redeem them before they lapse."
                    ),
                    notification_type="expiration",
                    kind=EXPIRATION_WARNING_KIND,
                    expires_for_date=decision.expires_at,
                    created_at=now_utc,
                ),
            )
            logger.info(
                "points_expiration_warning_issued",
                user_id=user.id,
                points_expiring=snapshot.points_expiring,
                expires_at=decision.expires_at.isoformat(),
            )
            return decision

        if decision.action != ExpirationAction.EXPIRE:
            return decision

        balance_after = await UsersRepo.expire_points(
            session,
            user_id=user.id,
            points=decision.points_to_debit,
        )
        if decision.points_to_debit > 0:
            await LedgerRepo.create(
                session,
                entry=LedgerEntry(
                    user_id=user.id,
                    entry_type=LEDGER_ENTRY_POINTS_EXPIRED,
                    direction="DEBIT",
                    amount=decision.points_to_debit,
                    balance_after=balance_after,
                    source="EXPIRATION",
                    idempotency_key=f"points:expired:{user.id}:{decision.expires_at.isoformat()}",
                    metadata_={"expires_at": decision.expires_at.isoformat()},
                    created_at=now_utc,
                ),
            )
        await NotificationsRepo.create(
            session,
            notification=Notification(
                user_id=user.id,
                title="Points Expired",
                message=f"{decision.points_to_debit} points expired on {decision.expires_at.isoformat()}.",
                notification_type="expiration",
                kind=EXPIRATION_EXPIRED_KIND,
                expires_for_date=decision.expires_at,
                created_at=now_utc,
            ),
        )
        logger.info(
            "points_expired",
            user_id=user.id,
            points_expired=decision.points_to_debit,
            balance_after=balance_after,
            expires_at=decision.expires_at.isoformat(),
        )
        return decision

    @staticmethod
    async def sync_user_expiration(
        session: AsyncSession,
        *,
        user_id: int,
        now_utc: datetime,
    ) -> User:
        user = await UsersRepo.get_by_id_for_update(session, user_id)
        if user is None:
            raise PointsUserNotFoundError

        decision = await PointsService.apply_expiration(session, user=user, now_utc=now_utc)
        if decision.action == ExpirationAction.EXPIRE:
            await session.refresh(user)
        return user

    @staticmethod
    async def run_expiration_batch(
        session: AsyncSession,
        *,
        now_utc: datetime,
        after_user_id: int = 0,
        batch_size: int = EXPIRATION_SWEEP_BATCH_SIZE,
    ) -> ExpirationSweepBatchResult:
        today = kinshasa_local_date(now_utc)
        users = await UsersRepo.list_expiration_candidates_for_update(
            session,
            horizon_date=today + EXPIRATION_WARNING_WINDOW,
            limit=batch_size,
            after_user_id=after_user_id,
        )

        warned = 0
        expired = 0
        points_expired = 0
        for user in users:
            decision = await PointsService.apply_expiration(session, user=user, now_utc=now_utc)
            if decision.action == ExpirationAction.WARN:
                warned += 1
            elif decision.action == ExpirationAction.EXPIRE:
                expired += 1
                points_expired += decision.points_to_debit

        return ExpirationSweepBatchResult(
            examined=len(users),
            warned=warned,
            expired=expired,
            points_expired=points_expired,
            last_user_id=(users[-1].id if users else None),
        )

    @staticmethod
    async def adjust_manually(
        session: AsyncSession,
        *,
        user_id: int,
        delta: int,
        reason: str,
        actor: str,
        now_utc: datetime,
    ) -> PointsAdjustmentResult:
        if delta == 0:
            raise PointsInvalidAdjustmentError

        idempotency_key = f"points:manual:{uuid4().hex}"
        metadata: dict[str, object] = {"reason": reason, "actor": actor}
        if delta > 0:
            balance_after = await PointsService.credit(
                session,
                user_id=user_id,
                points=delta,
                entry_type=LEDGER_ENTRY_MANUAL_ADJUSTMENT,
                source="ADMIN",
                idempotency_key=idempotency_key,
                now_utc=now_utc,
                metadata=metadata,
            )
        else:
            balance_after = await PointsService.debit(
                session,
                user_id=user_id,
                points=-delta,
                entry_type=LEDGER_ENTRY_MANUAL_ADJUSTMENT,
                source="ADMIN",
                idempotency_key=idempotency_key,
                now_utc=now_utc,
                metadata=metadata,
            )

        logger.info(
            "points_manual_adjustment",
            user_id=user_id,
            delta=delta,
            balance_after=balance_after,
            actor=actor,
        )
        return PointsAdjustmentResult(user_id=user_id, delta=delta, balance_after=balance_after)
