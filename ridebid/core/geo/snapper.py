# ridebid/core/geo/snapper.py
"""
Привязка координат к ближайшей дороге.
По умолчанию: тождественное преобразование; реальная реализация
использует Google Roads API.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import httpx

from ridebid.common.constants import TypeMsg
from ridebid.common.logger import log_error, log_info
from ridebid.core.geo.models import Coordinates


@runtime_checkable
class RoadSnapper(Protocol):
    """Привязывает точку к дорожной сети."""

    async def snap(self, point: Coordinates) -> Coordinates:
        ...


class IdentitySnapper:
    """Возвращает точку без изменений."""

    async def snap(self, point: Coordinates) -> Coordinates:
        return point


class GoogleRoadsSnapper:
    """
    Привязка через Google Roads API (nearestRoads).
    При любой ошибке провайдера возвращает исходную точку.
    """

    NEAREST_ROADS_URL = "https://roads.googleapis.com/v1/nearestRoads"

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Инициализация.

        Args:
            api_key: API ключ Google Maps (берётся из конфига если None)
            timeout: Таймаут HTTP запроса (секунды)
            client: Готовый HTTP клиент (для тестов)
        """
        if api_key is None or timeout is None:
            from ridebid.config import settings
            api_key = api_key if api_key is not None else settings.google_maps.GOOGLE_MAPS_API_KEY
            timeout = timeout if timeout is not None else settings.google_maps.ROADS_API_TIMEOUT

        self._api_key = api_key
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        """Закрывает HTTP клиент."""
        await self._client.aclose()

    async def snap(self, point: Coordinates) -> Coordinates:
        if not self._api_key:
            await log_error("Google Maps API key не настроен", logger_name="geo")
            return point

        try:
            response = await self._client.get(
                self.NEAREST_ROADS_URL,
                params={
                    "points": f"{point.latitude},{point.longitude}",
                    "key": self._api_key,
                },
            )
            response.raise_for_status()
            data = response.json()

            snapped = data.get("snappedPoints") or []
            if not snapped:
                await log_info(
                    f"Дорога рядом с {point.latitude},{point.longitude} не найдена",
                    type_msg=TypeMsg.WARNING,
                    logger_name="geo",
                )
                return point

            location = snapped[0]["location"]
            return Coordinates(
                latitude=float(location["latitude"]),
                longitude=float(location["longitude"]),
            )
        except Exception as e:
            await log_error(f"Ошибка привязки к дороге: {e}", logger_name="geo")
            return point
