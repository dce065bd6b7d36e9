# app/api/routes/delivery.py
"""Дни доставки для города клиента."""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_optional_customer
from app.services.delivery_days import (
    DeliveryDayService,
    format_date_with_hebrew_day,
    hebrew_day_name,
    local_today,
    next_weekday_date,
)
from infrastructure.database.base import get_db_session
from infrastructure.database.models import Customer

router = APIRouter(prefix="/api/delivery-days", tags=["delivery"])


@router.get("/available")
async def available_days(
    city: Optional[str] = None,
    customer: Optional[Customer] = Depends(get_optional_customer),
    session: AsyncSession = Depends(get_db_session)
):
    """
    ?city= не передан → город из профиля клиента.

    Каждый день с ближайшей датой (считая с завтра).
    """
    city = city or (customer.city if customer else None)
    today = local_today()

    days = await DeliveryDayService(session).available_days_for_city(city, today)

    result = []
    for day in days:
        next_date = next_weekday_date(day, today)
        result.append({
            "day_of_week": day,
            "name": hebrew_day_name(day),
            "next_date": next_date,
            "label": format_date_with_hebrew_day(next_date),
        })

    return {"city": city, "days": result}
