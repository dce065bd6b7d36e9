# tests/test_delivery_days.py
from datetime import date

import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.errors import ValidationError
from app.services.delivery_days import (
    DeliveryDayService,
    SaveReport,
    day_index_to_key,
    day_key_to_index,
    format_date_with_hebrew_day,
    hebrew_day_name,
    next_weekday_date,
    weekday_index,
)
from infrastructure.database.repositories import DeliveryDayRepository

# 17.11.2024 - воскресенье
SUNDAY = date(2024, 11, 17)


def test_weekday_index_starts_on_sunday():
    assert weekday_index(SUNDAY) == 0
    assert weekday_index(date(2024, 11, 23)) == 6


def test_day_keys():
    assert day_key_to_index("Sunday") == 0
    assert day_key_to_index("friday") == 5
    assert day_key_to_index("someday") is None
    assert day_index_to_key(2) == "tuesday"
    assert day_index_to_key(7) is None


def test_next_weekday_date_counts_from_tomorrow():
    assert next_weekday_date(1, SUNDAY) == date(2024, 11, 18)
    assert next_weekday_date(3, SUNDAY) == date(2024, 11, 20)
    # сегодняшний день недели → через неделю
    assert next_weekday_date(0, SUNDAY) == date(2024, 11, 24)


def test_hebrew_names():
    assert hebrew_day_name(0) == "יום ראשון"
    assert hebrew_day_name(6) == "שבת"
    assert format_date_with_hebrew_day(date(2024, 11, 18)) == "יום שני, 18.11.2024"


def test_save_report_message():
    assert SaveReport(6, 0).message == "הגדרות ימי האספקה נשמרו בהצלחה"
    assert SaveReport(4, 2).message == "נשמרו 4 ימים, 2 נכשלו"


async def test_week_config_fills_missing_days(session):
    service = DeliveryDayService(session)
    await service.save_day(1, ["עכו", " צפת ", "עכו", ""])

    week = await service.week_config()

    assert list(week) == [0, 1, 2, 3, 4, 5]
    assert week[1] == ["עכו", "צפת"]
    assert week[0] == []


async def test_save_day_upserts(session):
    service = DeliveryDayService(session)
    await service.save_day(2, ["עכו"])
    await service.save_day(2, ["נהריה"])

    rows = await service.list_all()

    assert len(rows) == 1
    assert rows[0].cities == ["נהריה"]


async def test_save_day_rejects_bad_index(session):
    with pytest.raises(ValidationError):
        await DeliveryDayService(session).save_day(9, ["עכו"])


async def test_save_week_counts_results(session):
    report = await DeliveryDayService(session).save_week({0: ["עכו"], 3: ["צפת"], 6: ["חיפה"]})

    # суббота не рабочий день - не сохраняется
    assert report == SaveReport(success_count=6, error_count=0)


async def test_save_week_clears_days_missing_from_payload(session):
    service = DeliveryDayService(session)
    await service.save_day(1, ["עכו"])
    await service.save_day(4, ["צפת"])

    await service.save_week({4: ["טבריה"]})

    week = await service.week_config()
    assert week[1] == []
    assert week[4] == ["טבריה"]
    assert {row.day_of_week for row in await service.list_all()} == {0, 1, 2, 3, 4, 5}


async def test_save_week_keeps_other_days_when_one_fails(session, monkeypatch):
    original_upsert = DeliveryDayRepository.upsert

    async def flaky_upsert(self, day_of_week, cities):
        if day_of_week == 2:
            raise SQLAlchemyError("connection lost")
        return await original_upsert(self, day_of_week, cities)

    monkeypatch.setattr(DeliveryDayRepository, "upsert", flaky_upsert)
    service = DeliveryDayService(session)

    report = await service.save_week({day: ["עכו"] for day in range(6)})

    assert report == SaveReport(success_count=5, error_count=1)
    saved = {row.day_of_week: row.cities for row in await service.list_all()}
    assert set(saved) == {0, 1, 3, 4, 5}
    assert saved[5] == ["עכו"]


async def test_delete_day(session):
    service = DeliveryDayService(session)
    await service.save_day(4, ["טבריה"])

    assert await service.delete_day(4) is True
    assert await service.delete_day(4) is False


async def test_available_days_exclude_today(session):
    service = DeliveryDayService(session)
    await service.save_day(0, ["עכו"])
    await service.save_day(2, ["עכו", "צפת"])
    await service.save_day(4, ["צפת"])

    assert await service.available_days_for_city("עכו", SUNDAY) == [2]
    assert await service.available_days_for_city("צפת", SUNDAY) == [2, 4]
    assert await service.available_days_for_city("", SUNDAY) == []
    assert await service.available_days_for_city(None, SUNDAY) == []
