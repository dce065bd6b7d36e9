# app/services/delivery_days.py
"""
🚚 ДНИ ДОСТАВКИ

Админ настраивает: в какой день недели в какие города едем.
Клиент видит только те дни, когда машина едет в его город (кроме сегодня).

Дни недели: 0 = воскресенье ... 6 = суббота.
Рабочие дни: 0-5 (в субботу не возим).
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import RemoteCallFailure, ValidationError
from app.ordering.selection import WEEKDAY_KEYS
from config.settings import config
from infrastructure.database.models import DeliveryDay
from infrastructure.database.repositories import DeliveryDayRepository

import structlog

logger = structlog.get_logger()


# ==========================================
# НАЗВАНИЯ ДНЕЙ
# ==========================================

HEBREW_DAY_NAMES = {
    0: "יום ראשון",
    1: "יום שני",
    2: "יום שלישי",
    3: "יום רביעי",
    4: "יום חמישי",
    5: "יום שישי",
    6: "שבת",
}

SHORT_HEBREW_DAY_NAMES = {
    0: "ראשון",
    1: "שני",
    2: "שלישי",
    3: "רביעי",
    4: "חמישי",
    5: "שישי",
    6: "שבת",
}

WORKING_DAYS = range(0, 6)


def hebrew_day_name(day_of_week: int) -> str:
    return HEBREW_DAY_NAMES.get(day_of_week, "")


def short_hebrew_day_name(day_of_week: int) -> str:
    return SHORT_HEBREW_DAY_NAMES.get(day_of_week, "")


def weekday_index(value: date) -> int:
    """Python: понедельник = 0. У нас: воскресенье = 0."""
    return (value.weekday() + 1) % 7


def day_key_to_index(key: str) -> Optional[int]:
    """ "sunday" → 0 """
    try:
        return WEEKDAY_KEYS.index((key or "").lower())
    except ValueError:
        return None


def day_index_to_key(day_of_week: int) -> Optional[str]:
    if 0 <= day_of_week < len(WEEKDAY_KEYS):
        return WEEKDAY_KEYS[day_of_week]
    return None


def next_weekday_date(day_of_week: int, today: date) -> date:
    """
    Ближайшая дата с нужным днем недели, считая С ЗАВТРАШНЕГО дня.

    Если завтра и есть нужный день - вернется завтра.
    Сегодняшний день недели → через неделю.
    """
    tomorrow = today + timedelta(days=1)
    days_until = (day_of_week - weekday_index(tomorrow)) % 7
    return tomorrow + timedelta(days=days_until)


def format_date_with_hebrew_day(value: date) -> str:
    """ "יום שני, 15.11.2024" """
    return f"{hebrew_day_name(weekday_index(value))}, {value.day}.{value.month}.{value.year}"


# ==========================================
# СЕРВИС
# ==========================================

@dataclass(frozen=True)
class SaveReport:
    success_count: int
    error_count: int

    @property
    def message(self) -> str:
        if self.error_count == 0:
            return "הגדרות ימי האספקה נשמרו בהצלחה"
        return f"נשמרו {self.success_count} ימים, {self.error_count} נכשלו"


def _clean_cities(cities) -> List[str]:
    seen = []
    for city in cities or []:
        name = str(city).strip()
        if name and name not in seen:
            seen.append(name)
    return seen


class DeliveryDayService:
    """Настройка дней доставки."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.days = DeliveryDayRepository(session)

    async def list_all(self) -> List[DeliveryDay]:
        try:
            return await self.days.list_all()
        except SQLAlchemyError as e:
            logger.error("delivery_days_fetch_error", error=str(e))
            raise RemoteCallFailure(str(e), title="שגיאה בטעינת ימי האספקה")

    async def week_config(self) -> Dict[int, List[str]]:
        """Все 6 рабочих дней, для отсутствующих - пустой список."""
        rows = {row.day_of_week: list(row.cities or []) for row in await self.list_all()}
        return {day: rows.get(day, []) for day in WORKING_DAYS}

    async def save_day(self, day_of_week: int, cities: List[str]) -> DeliveryDay:
        if day_of_week not in range(0, 7):
            raise ValidationError(f"day_of_week={day_of_week}", title="יום לא תקין")

        try:
            row = await self.days.upsert(day_of_week, _clean_cities(cities))
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("delivery_day_save_error", day_of_week=day_of_week, error=str(e))
            raise RemoteCallFailure(str(e), title="שגיאה בשמירת ימי האספקה")

        logger.info("delivery_day_saved", day_of_week=day_of_week, cities=len(row.cities))
        return row

    async def save_week(self, week: Dict[int, List[str]]) -> SaveReport:
        """
        Сохранить ВСЕ 6 рабочих дней ПО ОДНОМУ (каждый своим commit).

        Дня нет в week → сохраняется пустой список городов.
        Один день упал - остальные все равно сохраняются.
        """
        success_count = 0
        error_count = 0

        for day in WORKING_DAYS:
            try:
                await self.save_day(day, week.get(day, []))
                success_count += 1
            except RemoteCallFailure:
                error_count += 1

        logger.info(
            "delivery_week_saved",
            success_count=success_count,
            error_count=error_count
        )
        return SaveReport(success_count=success_count, error_count=error_count)

    async def delete_day(self, day_of_week: int) -> bool:
        try:
            deleted = await self.days.delete(day_of_week)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("delivery_day_delete_error", day_of_week=day_of_week, error=str(e))
            raise RemoteCallFailure(str(e), title="שגיאה במחיקת יום אספקה")

        return bool(deleted)

    async def available_days_for_city(self, city: Optional[str], today: date) -> List[int]:
        """
        Дни, когда едем в город. Сегодняшний день не предлагаем.

        Нет города → пустой список.
        """
        if not city or not city.strip():
            logger.warning("delivery_days_no_city")
            return []

        city = city.strip()
        today_index = weekday_index(today)

        return sorted(
            row.day_of_week
            for row in await self.list_all()
            if city in (row.cities or []) and row.day_of_week != today_index
        )


def local_today() -> date:
    """Сегодня по часовому поясу бизнеса (Asia/Jerusalem)."""
    return datetime.now(ZoneInfo(config.timezone)).date()
