# ridebid/app.py
"""
Сборка маркетплейса: инфраструктура + сервисы ядра.
"""

from __future__ import annotations

from dataclasses import dataclass

from ridebid.common.constants import TypeMsg
from ridebid.common.logger import log_info, setup_logging
from ridebid.config import Settings, get_settings
from ridebid.core.auction import AuctionEngine, PostgresAuctionStore
from ridebid.core.geo import GeoMatcher, GoogleRoadsSnapper, IdentitySnapper, RedisDriverLocationStore
from ridebid.core.geo.snapper import RoadSnapper
from ridebid.core.pricing import PricingAdvisor
from ridebid.infra.database import DatabaseManager, close_db, init_db
from ridebid.infra.event_bus import EventBus, close_event_bus, init_event_bus
from ridebid.infra.redis_client import RedisClient, close_redis, init_redis


@dataclass
class Marketplace:
    """Сервисы ядра, готовые к использованию."""
    auction: AuctionEngine
    geo: GeoMatcher
    pricing: PricingAdvisor
    snapper: RoadSnapper

    async def health_check(self) -> dict[str, bool]:
        """Состояние подключений к инфраструктуре."""
        return {
            "postgres": await DatabaseManager().health_check(),
            "redis": await RedisClient().health_check(),
            "rabbitmq": await EventBus().health_check(),
        }


def build_marketplace(
    db: DatabaseManager,
    redis: RedisClient,
    event_bus: EventBus,
    settings: Settings | None = None,
) -> Marketplace:
    """Собирает сервисы поверх уже подключённой инфраструктуры."""
    settings = settings or get_settings()

    if settings.google_maps.SNAP_TO_ROAD_ENABLED:
        snapper: RoadSnapper = GoogleRoadsSnapper(
            api_key=settings.google_maps.GOOGLE_MAPS_API_KEY,
            timeout=settings.google_maps.ROADS_API_TIMEOUT,
        )
    else:
        snapper = IdentitySnapper()

    return Marketplace(
        auction=AuctionEngine(
            store=PostgresAuctionStore(db),
            events=event_bus,
            auction_settings=settings.auction,
        ),
        geo=GeoMatcher(
            store=RedisDriverLocationStore(redis),
            snapper=snapper,
            geo_settings=settings.geo,
        ),
        pricing=PricingAdvisor(
            pricing_settings=settings.pricing,
            timezone=settings.domain.TIMEZONE,
        ),
        snapper=snapper,
    )


async def startup() -> Marketplace:
    """Инициализирует логирование и подключения, возвращает маркетплейс."""
    setup_logging()
    await log_info("Инициализация инфраструктуры...", type_msg=TypeMsg.INFO)

    db = await init_db()
    redis = await init_redis()
    event_bus = await init_event_bus()

    await log_info("Инфраструктура инициализирована", type_msg=TypeMsg.INFO)
    return build_marketplace(db, redis, event_bus)


async def shutdown(marketplace: Marketplace | None = None) -> None:
    """Закрывает все подключения."""
    await log_info("Закрытие подключений...", type_msg=TypeMsg.INFO)

    if marketplace is not None and isinstance(marketplace.snapper, GoogleRoadsSnapper):
        await marketplace.snapper.close()

    await close_event_bus()
    await close_redis()
    await close_db()

    await log_info("Подключения закрыты", type_msg=TypeMsg.INFO)
