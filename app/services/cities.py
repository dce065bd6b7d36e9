# app/services/cities.py
"""
🏘️ СПРАВОЧНИК НАСЕЛЕННЫХ ПУНКТОВ

Государственный открытый API (data.gov.il).
Оставляем только северные округа - туда возим газ.
"""

from typing import Iterable, List

import aiohttp

from app.errors import RemoteCallFailure
from config.settings import config

import structlog

logger = structlog.get_logger()

NORTHERN_DISTRICTS = ("עכו", "יזרעאל", "צפת", "כנרת", "גולן", "חיפה")

CITY_FIELD = "שם_ישוב"
DISTRICT_FIELD = "שם_נפה"


def filter_northern_cities(records: Iterable[dict]) -> List[str]:
    """
    Записи API → отсортированный список уникальных названий.

    Пример записи:
        {"שם_ישוב": "עכו ", "שם_נפה": "עכו"}
    """
    cities = set()
    for record in records:
        district = (record.get(DISTRICT_FIELD) or "").strip()
        name = (record.get(CITY_FIELD) or "").strip()
        if district in NORTHERN_DISTRICTS and name:
            cities.add(name)
    return sorted(cities)


class CityDirectory:
    """Загрузка списка городов для настройки дней доставки."""

    def __init__(self, api_url: str = None, resource_id: str = None, limit: int = None):
        self.api_url = api_url or config.cities_api_url
        self.resource_id = resource_id or config.cities_resource_id
        self.limit = limit or config.cities_limit

    async def fetch_records(self) -> List[dict]:
        params = {"resource_id": self.resource_id, "limit": str(self.limit)}
        timeout = aiohttp.ClientTimeout(total=config.messaging_timeout_seconds)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as http:
                async with http.get(self.api_url, params=params) as response:
                    response.raise_for_status()
                    data = await response.json(content_type=None)
        except (aiohttp.ClientError, TimeoutError) as e:
            logger.error("cities_fetch_error", error=str(e))
            raise RemoteCallFailure(str(e), title="שגיאה בטעינת רשימת יישובים")

        return (data.get("result") or {}).get("records") or []

    async def northern_cities(self) -> List[str]:
        cities = filter_northern_cities(await self.fetch_records())
        logger.info("cities_loaded", count=len(cities))
        return cities
