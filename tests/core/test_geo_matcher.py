# tests/core/test_geo_matcher.py
"""
Тесты для Geo-Matcher: поиск, расстояния, привязка к дороге, ранжирование.
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from ridebid.common.exceptions import ValidationError
from ridebid.config.loader import GeoSettings
from ridebid.core.geo.models import Coordinates, DriverLocation
from ridebid.core.geo.repository import (
    DRIVER_LOCATIONS_KEY,
    RedisDriverLocationStore,
    parse_driver_hash,
)
from ridebid.core.geo.service import GeoMatcher, haversine_km
from ridebid.core.geo.snapper import GoogleRoadsSnapper, IdentitySnapper

COLOMBO_FORT = Coordinates(latitude=6.9344, longitude=79.8428)
KANDY = Coordinates(latitude=7.2906, longitude=80.6337)


class StubStore:
    """Хранилище, возвращающее заданных водителей как есть."""

    def __init__(self, drivers: list[DriverLocation]) -> None:
        self.drivers = drivers
        self.calls: list[tuple[Coordinates, float]] = []

    async def find_within(self, center: Coordinates, radius_km: float) -> list[DriverLocation]:
        self.calls.append((center, radius_km))
        return list(self.drivers)


def driver(driver_id: str, lat: float, lon: float, **kwargs) -> DriverLocation:
    return DriverLocation(
        driver_id=driver_id,
        coordinates=Coordinates(latitude=lat, longitude=lon),
        **kwargs,
    )


@pytest.fixture
def drivers() -> list[DriverLocation]:
    # ~0.11 км на 0.001 градуса широты
    return [
        driver("d-far", 6.9614, 79.8428, vehicle_types=("car",), rating=5.0),     # ~3 км
        driver("d-near", 6.9354, 79.8428, vehicle_types=("Van",), rating=4.0),    # ~0.11 км
        driver("d-busy", 6.9345, 79.8428, available=False, vehicle_types=("car",)),
        driver("d-outside", 7.0344, 79.8428, vehicle_types=("car",)),             # ~11 км
        driver("d-mid", 6.9444, 79.8428, vehicle_types=("car", "suv")),           # ~1.1 км
    ]


class TestCoordinates:
    """Тесты валидации координат."""

    def test_valid(self) -> None:
        point = Coordinates(latitude=-90.0, longitude=180.0)
        assert point.latitude == -90.0

    @pytest.mark.parametrize(
        "lat,lon",
        [(90.1, 0.0), (0.0, -180.5), (float("nan"), 0.0), ("6.9", 79.8)],
    )
    def test_invalid(self, lat, lon) -> None:
        with pytest.raises(ValidationError):
            Coordinates(latitude=lat, longitude=lon)


class TestDistance:
    """Тесты расчёта расстояния."""

    def test_same_point_is_zero(self) -> None:
        assert GeoMatcher.distance(COLOMBO_FORT, COLOMBO_FORT) == 0.0

    def test_symmetric(self) -> None:
        assert GeoMatcher.distance(COLOMBO_FORT, KANDY) == pytest.approx(
            GeoMatcher.distance(KANDY, COLOMBO_FORT)
        )

    def test_colombo_to_kandy(self) -> None:
        """Colombo Fort -> Kandy по прямой около 95 км."""
        assert 94.0 <= haversine_km(COLOMBO_FORT, KANDY) <= 96.0

    def test_antipodes_do_not_fail(self) -> None:
        """Противоположные точки: asin не выходит за область определения."""
        a = Coordinates(latitude=0.0, longitude=0.0)
        b = Coordinates(latitude=0.0, longitude=180.0)
        assert haversine_km(a, b) == pytest.approx(20015.1, rel=1e-3)


class TestFindNearby:
    """Тесты поиска водителей рядом."""

    @pytest.mark.asyncio
    async def test_filters_and_sorts(self, drivers: list[DriverLocation], geo_settings: GeoSettings) -> None:
        """Только доступные в радиусе, по возрастанию расстояния."""
        matcher = GeoMatcher(StubStore(drivers), geo_settings=geo_settings)

        result = await matcher.find_nearby(COLOMBO_FORT, radius_km=5.0)

        assert [n.driver_id for n in result] == ["d-near", "d-mid", "d-far"]
        distances = [n.distance_meters for n in result]
        assert distances == sorted(distances)
        assert result[0].distance_meters == pytest.approx(111.2, abs=1.0)

    @pytest.mark.asyncio
    async def test_vehicle_type_filter_case_insensitive(
        self,
        drivers: list[DriverLocation],
        geo_settings: GeoSettings,
    ) -> None:
        matcher = GeoMatcher(StubStore(drivers), geo_settings=geo_settings)

        result = await matcher.find_nearby(COLOMBO_FORT, radius_km=5.0, vehicle_type="VAN")

        assert [n.driver_id for n in result] == ["d-near"]

    @pytest.mark.asyncio
    async def test_ties_broken_by_id(self, geo_settings: GeoSettings) -> None:
        same_place = [
            driver("b", 6.9354, 79.8428),
            driver("a", 6.9354, 79.8428),
        ]
        matcher = GeoMatcher(StubStore(same_place), geo_settings=geo_settings)

        result = await matcher.find_nearby(COLOMBO_FORT, radius_km=1.0)

        assert [n.driver_id for n in result] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_empty_store(self, geo_settings: GeoSettings) -> None:
        matcher = GeoMatcher(StubStore([]), geo_settings=geo_settings)
        assert await matcher.find_nearby(COLOMBO_FORT) == []

    @pytest.mark.asyncio
    async def test_default_radius(self, geo_settings: GeoSettings) -> None:
        """Без радиуса используется значение из настроек."""
        store = StubStore([])
        matcher = GeoMatcher(store, geo_settings=geo_settings)

        await matcher.find_nearby(COLOMBO_FORT)

        assert store.calls[0][1] == geo_settings.DEFAULT_SEARCH_RADIUS_KM

    @pytest.mark.asyncio
    @pytest.mark.parametrize("radius", [0, -1.5, float("nan"), True, "5"])
    async def test_invalid_radius(self, geo_settings: GeoSettings, radius) -> None:
        store = StubStore([])
        matcher = GeoMatcher(store, geo_settings=geo_settings)

        with pytest.raises(ValidationError):
            await matcher.find_nearby(COLOMBO_FORT, radius_km=radius)
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_radius_clamped_to_max(self) -> None:
        """Политика clamp: радиус ограничивается максимумом."""
        store = StubStore([])
        matcher = GeoMatcher(
            store,
            geo_settings=GeoSettings(MAX_SEARCH_RADIUS_KM=20.0, RADIUS_OVERFLOW_POLICY="clamp"),
        )

        await matcher.find_nearby(COLOMBO_FORT, radius_km=100.0)

        assert store.calls[0][1] == 20.0

    @pytest.mark.asyncio
    async def test_radius_rejected_over_max(self) -> None:
        """Политика reject: превышение максимума: ValidationError."""
        matcher = GeoMatcher(
            StubStore([]),
            geo_settings=GeoSettings(MAX_SEARCH_RADIUS_KM=20.0, RADIUS_OVERFLOW_POLICY="reject"),
        )

        with pytest.raises(ValidationError):
            await matcher.find_nearby(COLOMBO_FORT, radius_km=20.5)


class TestRankCandidates:
    """Тесты ранжирования кандидатов."""

    @pytest.mark.asyncio
    async def test_scores_and_order(self, drivers: list[DriverLocation], geo_settings: GeoSettings) -> None:
        matcher = GeoMatcher(StubStore(drivers), geo_settings=geo_settings)

        ranked = await matcher.rank_candidates(COLOMBO_FORT, radius_km=5.0, preferred_vehicle_type="car")

        by_id = {s.driver_id: s.score for s in ranked}
        # d-near: 0.6 * (1 - 0.111/5) + 0.3 * 0.8 + 0.1 * 0.5
        assert by_id["d-near"] == pytest.approx(0.6 * (1 - 0.1112 / 5) + 0.24 + 0.05, abs=1e-3)
        # d-mid без рейтинга
        assert by_id["d-mid"] == pytest.approx(0.6 * (1 - 1.112 / 5) + 0.0 + 0.1, abs=1e-3)
        scores = [s.score for s in ranked]
        assert scores == sorted(scores, reverse=True)
        assert ranked[0].driver_id == "d-near"

    @pytest.mark.asyncio
    async def test_rating_is_clamped(self, geo_settings: GeoSettings) -> None:
        matcher = GeoMatcher(
            StubStore([driver("d1", 6.9344, 79.8428, rating=9.0)]),
            geo_settings=geo_settings,
        )

        ranked = await matcher.rank_candidates(COLOMBO_FORT, radius_km=5.0)

        assert ranked[0].score == pytest.approx(0.6 + 0.3 + 0.05)


class TestSnapToRoad:
    """Тесты привязки к дороге."""

    @pytest.mark.asyncio
    async def test_identity_by_default(self, geo_settings: GeoSettings) -> None:
        matcher = GeoMatcher(StubStore([]), geo_settings=geo_settings)
        assert await matcher.snap_to_road(COLOMBO_FORT) == COLOMBO_FORT

    @pytest.mark.asyncio
    async def test_identity_snapper(self) -> None:
        assert await IdentitySnapper().snap(KANDY) is KANDY

    @pytest.mark.asyncio
    async def test_google_snapper_success(self) -> None:
        """Ответ nearestRoads: берётся первая точка."""
        captured: dict[str, httpx.Request] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["request"] = request
            return httpx.Response(200, content=json.dumps({
                "snappedPoints": [
                    {"location": {"latitude": 6.93451, "longitude": 79.84295}, "placeId": "abc"},
                ],
            }))

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        snapper = GoogleRoadsSnapper(api_key="key", timeout=1.0, client=client)

        snapped = await snapper.snap(COLOMBO_FORT)
        await snapper.close()

        assert snapped == Coordinates(latitude=6.93451, longitude=79.84295)
        assert captured["request"].url.params["points"] == "6.9344,79.8428"
        assert captured["request"].url.params["key"] == "key"

    @pytest.mark.asyncio
    async def test_google_snapper_no_road(self) -> None:
        client = httpx.AsyncClient(transport=httpx.MockTransport(
            lambda request: httpx.Response(200, content=b"{}")
        ))
        snapper = GoogleRoadsSnapper(api_key="key", timeout=1.0, client=client)

        assert await snapper.snap(COLOMBO_FORT) == COLOMBO_FORT

    @pytest.mark.asyncio
    async def test_google_snapper_http_error(self) -> None:
        client = httpx.AsyncClient(transport=httpx.MockTransport(
            lambda request: httpx.Response(500, content=b"boom")
        ))
        snapper = GoogleRoadsSnapper(api_key="key", timeout=1.0, client=client)

        assert await snapper.snap(COLOMBO_FORT) == COLOMBO_FORT

    @pytest.mark.asyncio
    async def test_google_snapper_without_key(self) -> None:
        client = AsyncMock()
        snapper = GoogleRoadsSnapper(api_key="", timeout=1.0, client=client)

        assert await snapper.snap(COLOMBO_FORT) == COLOMBO_FORT
        client.get.assert_not_called()


class TestDriverLocationStore:
    """Тесты Redis-хранилища положений."""

    def test_parse_driver_hash(self) -> None:
        parsed = parse_driver_hash(
            "d1",
            COLOMBO_FORT,
            {"available": "true", "vehicle_types": "Car, tuktuk", "rating": "4.7"},
        )

        assert parsed.available is True
        assert parsed.vehicle_types == ("car", "tuktuk")
        assert parsed.rating == 4.7

    def test_parse_driver_hash_defaults(self) -> None:
        parsed = parse_driver_hash("d1", COLOMBO_FORT, {"rating": "n/a"})

        assert parsed.available is False
        assert parsed.vehicle_types == ()
        assert parsed.rating is None

    @pytest.mark.asyncio
    async def test_find_within(self, mock_redis: AsyncMock) -> None:
        mock_redis.georadius.return_value = [
            ("d1", 0.1, 79.8428, 6.9354),
            ("d2", 0.5, 79.8430, 6.9390),
            ("d3", 0.7, 79.8440, 6.9400),
        ]
        mock_redis.hgetall_many.return_value = [
            {"available": "1", "vehicle_types": "car"},
            {},
            {"available": "0", "vehicle_types": "van", "rating": "3.5"},
        ]
        store = RedisDriverLocationStore(mock_redis)

        result = await store.find_within(COLOMBO_FORT, 5.0)

        mock_redis.georadius.assert_awaited_once_with(
            DRIVER_LOCATIONS_KEY, 79.8428, 6.9344, 5.0, unit="km",
        )
        mock_redis.hgetall_many.assert_awaited_once_with(["driver:d1", "driver:d2", "driver:d3"])
        assert [d.driver_id for d in result] == ["d1", "d3"]
        assert result[0].coordinates == Coordinates(latitude=6.9354, longitude=79.8428)
        assert result[1].available is False

    @pytest.mark.asyncio
    async def test_find_within_empty(self, mock_redis: AsyncMock) -> None:
        store = RedisDriverLocationStore(mock_redis)

        assert await store.find_within(COLOMBO_FORT, 5.0) == []
        mock_redis.hgetall_many.assert_not_called()
