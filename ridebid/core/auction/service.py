# ridebid/core/auction/service.py
"""
Auction Engine: размещение ставок, списки ставок, атомарное принятие ставки
и отмена поездки.

Единственный источник синхронизации: хранилище. Движок не повторяет записи;
события публикуются только после коммита.
"""

from __future__ import annotations

import math
from typing import Optional

from ridebid.common.constants import BidStatus, JourneyKind, JourneyStatus, TypeMsg
from ridebid.common.exceptions import (
    DataIntegrityError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from ridebid.common.logger import log_error, log_info
from ridebid.config.loader import AuctionSettings
from ridebid.core.auction.models import Bid, Journey, utcnow
from ridebid.core.auction.repository import AuctionStore
from ridebid.core.auction.state_machine import BidStateMachine, JourneyStateMachine
from ridebid.infra.event_bus import EventSink
from ridebid.shared.events import BidAccepted, BidPlaced, DomainEvent, JourneyCancelled

LOGGER_NAME = "auction"


class AuctionEngine:
    """
    Сервис аукциона.
    Управляет жизненным циклом ставок и подтверждением поездок.
    """

    def __init__(
        self,
        store: AuctionStore,
        events: EventSink,
        auction_settings: AuctionSettings | None = None,
    ) -> None:
        """
        Инициализация сервиса.

        Args:
            store: Хранилище поездок и ставок
            events: Получатель доменных событий
            auction_settings: Настройки аукциона (из конфига если None)
        """
        if auction_settings is None:
            from ridebid.config import settings
            auction_settings = settings.auction

        self._store = store
        self._events = events
        self._settings = auction_settings

    # =========================================================================
    # ЧТЕНИЕ
    # =========================================================================

    async def get_journey(self, journey_id: str) -> Journey:
        """
        Возвращает поездку по ID.

        Raises:
            NotFoundError: поездка не найдена
        """
        journey = await self._store.get_journey(journey_id)
        if journey is None:
            raise NotFoundError(f"Journey {journey_id} not found")
        return journey

    async def list_bids_for_journey(self, journey_id: str, requester_id: str) -> list[Bid]:
        """
        Ставки по поездке: только для владельца.
        Сортировка по сумме: для запроса пассажира по возрастанию,
        для маршрута водителя по убыванию (настраивается).
        """
        journey = await self.get_journey(journey_id)
        if journey.owner_id != requester_id:
            raise ForbiddenError(f"Only the owner can list bids of journey {journey_id}")

        return await self._store.list_bids_for_journey(
            journey_id,
            descending=self._bid_order(journey.kind) == "desc",
        )

    async def list_bids_by_bidder(self, bidder_id: str, requester_id: str) -> list[Bid]:
        """Ставки участника, новые первыми. Только для самого участника."""
        if bidder_id != requester_id:
            raise ForbiddenError("Bids can only be listed by their bidder")
        return await self._store.list_bids_by_bidder(bidder_id)

    def _bid_order(self, kind: JourneyKind) -> str:
        if kind == JourneyKind.DRIVER_ROUTE:
            return self._settings.DRIVER_ROUTE_BID_ORDER
        return self._settings.PASSENGER_REQUEST_BID_ORDER

    # =========================================================================
    # СТАВКИ
    # =========================================================================

    def _validate_bid_input(self, amount: float, message: Optional[str]) -> None:
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            raise ValidationError(f"Bid amount must be a number, got {amount!r}")
        if math.isnan(amount) or math.isinf(amount) or amount <= 0:
            raise ValidationError(f"Bid amount must be positive, got {amount}")
        if message is not None and len(message) > self._settings.BID_MESSAGE_MAX_LENGTH:
            raise ValidationError(
                f"Bid message exceeds {self._settings.BID_MESSAGE_MAX_LENGTH} characters"
            )

    async def place_bid(
        self,
        journey_id: str,
        bidder_id: str,
        amount: float,
        message: Optional[str] = None,
    ) -> Bid:
        """
        Размещает ставку на открытую поездку.

        Raises:
            ValidationError: сумма <= 0 или слишком длинное сообщение
            NotFoundError: поездка не найдена
            InvalidStateError: поездка не OPEN
            ForbiddenError: ставка на собственную поездку
            ConflictError: участник уже делал ставку на эту поездку
            InfrastructureError: хранилище недоступно
        """
        self._validate_bid_input(amount, message)

        journey = await self.get_journey(journey_id)
        if not journey.is_open:
            raise InvalidStateError(f"Journey {journey_id} is {journey.status}, not open")
        if journey.owner_id == bidder_id:
            raise ForbiddenError("Cannot bid on your own journey")

        bid = Bid(
            journey_id=journey_id,
            bidder_id=bidder_id,
            amount=float(amount),
            message=message,
        )

        async with self._store.transaction() as uow:
            # Блокировка строки поездки: параллельный accept не проскочит между проверкой и вставкой
            status = await uow.lock_journey_status(journey_id)
            if status is None:
                raise NotFoundError(f"Journey {journey_id} not found")
            if status != JourneyStatus.OPEN:
                raise InvalidStateError(f"Journey {journey_id} is {status}, not open")
            created = await uow.insert_bid(bid)

        await log_info(
            f"Ставка {created.id} на поездку {journey_id}: {created.amount}",
            type_msg=TypeMsg.INFO,
            logger_name=LOGGER_NAME,
        )

        await self._publish(BidPlaced(
            journey_id=journey_id,
            bid_id=created.id,
            bidder_id=bidder_id,
            amount=created.amount,
            owner_id=journey.owner_id,
        ))
        return created

    async def accept_bid(self, bid_id: str, requester_id: str) -> Journey:
        """
        Принимает ставку: поездка -> CONFIRMED, ставка -> ACCEPTED,
        остальные ожидающие ставки -> REJECTED. Всё в одной транзакции.

        Raises:
            NotFoundError: ставка не найдена
            DataIntegrityError: у ставки нет поездки
            ForbiddenError: принимает не владелец
            InvalidStateError: поездка уже не OPEN (в т.ч. проигранная гонка)
            InfrastructureError: хранилище недоступно, транзакция откатена
        """
        bid = await self._store.get_bid(bid_id)
        if bid is None:
            raise NotFoundError(f"Bid {bid_id} not found")

        journey = await self._store.get_journey(bid.journey_id)
        if journey is None:
            await log_error(
                f"Ставка {bid_id} ссылается на несуществующую поездку {bid.journey_id}",
                logger_name=LOGGER_NAME,
            )
            raise DataIntegrityError(f"Bid {bid_id} references missing journey {bid.journey_id}")

        if journey.owner_id != requester_id:
            raise ForbiddenError("Only the journey owner can accept a bid")
        if not journey.is_open:
            raise InvalidStateError(f"Journey {journey.id} is {journey.status}, not open")
        if not BidStateMachine.can_transition(bid.status, BidStatus.ACCEPTED):
            raise InvalidStateError(f"Bid {bid_id} is already {bid.status}")

        now = utcnow()
        async with self._store.transaction() as uow:
            confirmed = await uow.confirm_journey(
                journey.id,
                counterparty_id=bid.bidder_id,
                agreed_fare=bid.amount,
                confirmed_at=now,
            )
            if confirmed is None:
                raise InvalidStateError(f"Journey {journey.id} is no longer open")

            if not await uow.accept_bid(bid.id, now):
                raise InvalidStateError(f"Bid {bid_id} is no longer pending")

            rejected = await uow.reject_pending_bids(journey.id, now, except_bid_id=bid.id)

        await log_info(
            f"Ставка {bid_id} принята, поездка {journey.id} подтверждена; отклонено ставок: {len(rejected)}",
            type_msg=TypeMsg.INFO,
            logger_name=LOGGER_NAME,
        )

        await self._publish(BidAccepted(
            journey_id=confirmed.id,
            bid_id=bid.id,
            bidder_id=bid.bidder_id,
            owner_id=confirmed.owner_id,
            agreed_fare=bid.amount,
            scheduled_at=confirmed.scheduled_at,
        ))
        return confirmed

    # =========================================================================
    # ОТМЕНА
    # =========================================================================

    async def cancel_journey(self, journey_id: str, requester_id: str) -> Journey:
        """
        Отменяет поездку (из OPEN или CONFIRMED) и отклоняет ожидающие ставки.

        Raises:
            NotFoundError: поездка не найдена
            ForbiddenError: отменяет не владелец
            InvalidStateError: поездку уже нельзя отменить
        """
        journey = await self.get_journey(journey_id)
        if journey.owner_id != requester_id:
            raise ForbiddenError("Only the journey owner can cancel it")
        if not JourneyStateMachine.can_transition(journey.status, JourneyStatus.CANCELLED):
            raise InvalidStateError(f"Journey {journey_id} is {journey.status} and cannot be cancelled")

        now = utcnow()
        async with self._store.transaction() as uow:
            result = await uow.cancel_journey(
                journey_id,
                from_statuses=JourneyStateMachine.CANCELLABLE,
                cancelled_at=now,
            )
            if result is None:
                raise InvalidStateError(f"Journey {journey_id} can no longer be cancelled")
            previous_status, cancelled = result
            rejected = await uow.reject_pending_bids(journey_id, now)

        await log_info(
            f"Поездка {journey_id} отменена; отклонено ставок: {len(rejected)}",
            type_msg=TypeMsg.INFO,
            logger_name=LOGGER_NAME,
        )

        await self._publish(JourneyCancelled(
            journey_id=journey_id,
            owner_id=journey.owner_id,
            previous_status=previous_status.value,
            rejected_bid_ids=rejected,
        ))
        return cancelled

    # =========================================================================
    # СОБЫТИЯ
    # =========================================================================

    async def _publish(self, event: DomainEvent) -> None:
        """
        Публикует событие после коммита.
        Ошибка публикации логируется: операция уже зафиксирована.
        """
        try:
            await self._events.publish(event.event_type, event.to_payload())
        except Exception as e:
            await log_error(
                f"Не удалось опубликовать событие {event.event_type}: {e}",
                logger_name=LOGGER_NAME,
                extra=event.to_payload(),
            )
