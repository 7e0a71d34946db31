# ridebid/core/auction/repository.py
"""
Репозиторий аукциона: поездки и ставки в PostgreSQL.

Все изменения состояния идут через единицу работы (AuctionUnitOfWork),
открытую в store.transaction(): либо коммитятся целиком, либо откатываются.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncContextManager, AsyncGenerator, Optional, Protocol, Sequence

import asyncpg
from asyncpg import Connection

from ridebid.common.constants import BidStatus, JourneyStatus
from ridebid.common.exceptions import ConflictError
from ridebid.core.auction.models import Bid, Journey
from ridebid.infra.database import DatabaseManager

JOURNEY_COLUMNS = """
    id, owner_id, kind,
    pickup_latitude, pickup_longitude, pickup_address,
    dropoff_latitude, dropoff_longitude, dropoff_address,
    scheduled_at, distance_meters, duration_seconds, vehicle_types, currency,
    status, agreed_fare, counterparty_id,
    created_at, updated_at, confirmed_at
"""

BID_COLUMNS = "id, journey_id, bidder_id, amount, message, status, created_at, decided_at"


class AuctionUnitOfWork(Protocol):
    """Операции записи внутри одной транзакции."""

    async def lock_journey_status(self, journey_id: str) -> Optional[JourneyStatus]:
        """Блокирует строку поездки (FOR SHARE) и возвращает её статус."""
        ...

    async def insert_bid(self, bid: Bid) -> Bid:
        """Вставляет ставку. Дубликат (journey_id, bidder_id) -> ConflictError."""
        ...

    async def confirm_journey(
        self,
        journey_id: str,
        counterparty_id: str,
        agreed_fare: float,
        confirmed_at: datetime,
    ) -> Optional[Journey]:
        """OPEN -> CONFIRMED одним условным UPDATE. None, если поездка уже не OPEN."""
        ...

    async def accept_bid(self, bid_id: str, decided_at: datetime) -> bool:
        """PENDING -> ACCEPTED. False, если ставка уже решена."""
        ...

    async def reject_pending_bids(
        self,
        journey_id: str,
        decided_at: datetime,
        except_bid_id: Optional[str] = None,
    ) -> list[str]:
        """Все PENDING ставки поездки (кроме except_bid_id) -> REJECTED. Возвращает их id."""
        ...

    async def cancel_journey(
        self,
        journey_id: str,
        from_statuses: Sequence[JourneyStatus],
        cancelled_at: datetime,
    ) -> Optional[tuple[JourneyStatus, Journey]]:
        """
        Условная отмена под блокировкой строки поездки.
        Возвращает (статус до отмены, поездку) или None, если статус не из from_statuses.
        """
        ...


class AuctionStore(Protocol):
    """Хранилище поездок и ставок."""

    def transaction(self) -> AsyncContextManager[AuctionUnitOfWork]:
        ...

    async def insert_journey(self, journey: Journey) -> Journey:
        ...

    async def get_journey(self, journey_id: str) -> Optional[Journey]:
        ...

    async def get_bid(self, bid_id: str) -> Optional[Bid]:
        ...

    async def list_bids_for_journey(self, journey_id: str, descending: bool = False) -> list[Bid]:
        """По сумме (направление задаётся), при равенстве: created_at, затем id."""
        ...

    async def list_bids_by_bidder(self, bidder_id: str) -> list[Bid]:
        """Новые первыми."""
        ...


def row_to_journey(row) -> Journey:
    """Конвертирует строку БД в модель Journey."""
    return Journey(
        id=row["id"],
        owner_id=row["owner_id"],
        kind=row["kind"],
        pickup_latitude=row["pickup_latitude"],
        pickup_longitude=row["pickup_longitude"],
        pickup_address=row["pickup_address"],
        dropoff_latitude=row["dropoff_latitude"],
        dropoff_longitude=row["dropoff_longitude"],
        dropoff_address=row["dropoff_address"],
        scheduled_at=row["scheduled_at"],
        distance_meters=row["distance_meters"],
        duration_seconds=row["duration_seconds"],
        vehicle_types=list(row["vehicle_types"] or []),
        currency=row["currency"],
        status=JourneyStatus(row["status"]),
        agreed_fare=float(row["agreed_fare"]) if row["agreed_fare"] is not None else None,
        counterparty_id=row["counterparty_id"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        confirmed_at=row["confirmed_at"],
    )


def row_to_bid(row) -> Bid:
    """Конвертирует строку БД в модель Bid."""
    return Bid(
        id=row["id"],
        journey_id=row["journey_id"],
        bidder_id=row["bidder_id"],
        amount=float(row["amount"]),
        message=row["message"],
        status=BidStatus(row["status"]),
        created_at=row["created_at"],
        decided_at=row["decided_at"],
    )


class PostgresUnitOfWork:
    """Единица работы поверх одного соединения с открытой транзакцией."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    async def lock_journey_status(self, journey_id: str) -> Optional[JourneyStatus]:
        status = await self._conn.fetchval(
            "SELECT status FROM journeys WHERE id = $1 FOR SHARE",
            journey_id,
        )
        return JourneyStatus(status) if status is not None else None

    async def insert_bid(self, bid: Bid) -> Bid:
        try:
            row = await self._conn.fetchrow(
                f"""
                INSERT INTO bids (id, journey_id, bidder_id, amount, message, status, created_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7)
                RETURNING {BID_COLUMNS}
                """,
                bid.id,
                bid.journey_id,
                bid.bidder_id,
                bid.amount,
                bid.message,
                bid.status.value,
                bid.created_at,
            )
        except asyncpg.UniqueViolationError as e:
            raise ConflictError(
                f"Bidder {bid.bidder_id} has already bid on journey {bid.journey_id}"
            ) from e
        return row_to_bid(row)

    async def confirm_journey(
        self,
        journey_id: str,
        counterparty_id: str,
        agreed_fare: float,
        confirmed_at: datetime,
    ) -> Optional[Journey]:
        # Точка сериализации конкурирующих accept: выигрывает ровно один UPDATE
        row = await self._conn.fetchrow(
            f"""
            UPDATE journeys
            SET status = $2, counterparty_id = $3, agreed_fare = $4,
                confirmed_at = $5, updated_at = $5
            WHERE id = $1 AND status = $6
            RETURNING {JOURNEY_COLUMNS}
            """,
            journey_id,
            JourneyStatus.CONFIRMED.value,
            counterparty_id,
            agreed_fare,
            confirmed_at,
            JourneyStatus.OPEN.value,
        )
        return row_to_journey(row) if row is not None else None

    async def accept_bid(self, bid_id: str, decided_at: datetime) -> bool:
        try:
            result = await self._conn.execute(
                """
                UPDATE bids SET status = $2, decided_at = $3
                WHERE id = $1 AND status = $4
                """,
                bid_id,
                BidStatus.ACCEPTED.value,
                decided_at,
                BidStatus.PENDING.value,
            )
        except asyncpg.UniqueViolationError as e:
            raise ConflictError(f"Journey of bid {bid_id} already has an accepted bid") from e
        return result == "UPDATE 1"

    async def reject_pending_bids(
        self,
        journey_id: str,
        decided_at: datetime,
        except_bid_id: Optional[str] = None,
    ) -> list[str]:
        rows = await self._conn.fetch(
            """
            UPDATE bids SET status = $2, decided_at = $3
            WHERE journey_id = $1 AND status = $4
              AND ($5::text IS NULL OR id <> $5::text)
            RETURNING id
            """,
            journey_id,
            BidStatus.REJECTED.value,
            decided_at,
            BidStatus.PENDING.value,
            except_bid_id,
        )
        return [row["id"] for row in rows]

    async def cancel_journey(
        self,
        journey_id: str,
        from_statuses: Sequence[JourneyStatus],
        cancelled_at: datetime,
    ) -> Optional[tuple[JourneyStatus, Journey]]:
        previous = await self._conn.fetchval(
            "SELECT status FROM journeys WHERE id = $1 FOR UPDATE",
            journey_id,
        )
        if previous is None or previous not in {s.value for s in from_statuses}:
            return None

        row = await self._conn.fetchrow(
            f"""
            UPDATE journeys
            SET status = $2, updated_at = $3
            WHERE id = $1 AND status = ANY($4::text[])
            RETURNING {JOURNEY_COLUMNS}
            """,
            journey_id,
            JourneyStatus.CANCELLED.value,
            cancelled_at,
            [s.value for s in from_statuses],
        )
        return (JourneyStatus(previous), row_to_journey(row)) if row is not None else None


class PostgresAuctionStore:
    """Репозиторий поездок и ставок."""

    def __init__(self, db: DatabaseManager) -> None:
        """
        Инициализация репозитория.

        Args:
            db: Менеджер базы данных (Dependency Injection)
        """
        self._db = db

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[PostgresUnitOfWork, None]:
        async with self._db.transaction() as conn:
            yield PostgresUnitOfWork(conn)

    async def insert_journey(self, journey: Journey) -> Journey:
        try:
            async with self._db.transaction() as conn:
                row = await conn.fetchrow(
                    f"""
                    INSERT INTO journeys (
                        id, owner_id, kind,
                        pickup_latitude, pickup_longitude, pickup_address,
                        dropoff_latitude, dropoff_longitude, dropoff_address,
                        scheduled_at, distance_meters, duration_seconds, vehicle_types, currency,
                        status, created_at, updated_at
                    )
                    VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15, $16, $17)
                    RETURNING {JOURNEY_COLUMNS}
                    """,
                    journey.id,
                    journey.owner_id,
                    journey.kind.value,
                    journey.pickup_latitude,
                    journey.pickup_longitude,
                    journey.pickup_address,
                    journey.dropoff_latitude,
                    journey.dropoff_longitude,
                    journey.dropoff_address,
                    journey.scheduled_at,
                    journey.distance_meters,
                    journey.duration_seconds,
                    journey.vehicle_types,
                    journey.currency,
                    journey.status.value,
                    journey.created_at,
                    journey.updated_at,
                )
        except asyncpg.UniqueViolationError as e:
            raise ConflictError(f"Journey {journey.id} already exists") from e
        return row_to_journey(row)

    async def get_journey(self, journey_id: str) -> Optional[Journey]:
        row = await self._db.fetchrow(
            f"SELECT {JOURNEY_COLUMNS} FROM journeys WHERE id = $1",
            journey_id,
        )
        return row_to_journey(row) if row is not None else None

    async def get_bid(self, bid_id: str) -> Optional[Bid]:
        row = await self._db.fetchrow(
            f"SELECT {BID_COLUMNS} FROM bids WHERE id = $1",
            bid_id,
        )
        return row_to_bid(row) if row is not None else None

    async def list_bids_for_journey(self, journey_id: str, descending: bool = False) -> list[Bid]:
        direction = "DESC" if descending else "ASC"
        rows = await self._db.fetch(
            f"""
            SELECT {BID_COLUMNS} FROM bids
            WHERE journey_id = $1
            ORDER BY amount {direction}, created_at ASC, id ASC
            """,
            journey_id,
        )
        return [row_to_bid(row) for row in rows]

    async def list_bids_by_bidder(self, bidder_id: str) -> list[Bid]:
        rows = await self._db.fetch(
            f"""
            SELECT {BID_COLUMNS} FROM bids
            WHERE bidder_id = $1
            ORDER BY created_at DESC, id DESC
            """,
            bidder_id,
        )
        return [row_to_bid(row) for row in rows]
