# app/services/price_lists.py
"""
💲 ПРАЙС-ЛИСТЫ

Админ заводит прайс-лист ("מסעדות", "קבלנים"...), ставит особые цены
на часть товаров и назначает его клиентам (см. CustomerAdminService).
Товар без особой цены продается по базовой цене каталога.
"""

from decimal import Decimal, InvalidOperation
from typing import Dict, List, Mapping

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import LookupFailure, RemoteCallFailure, ValidationError
from infrastructure.database.models import PriceList, utcnow
from infrastructure.database.repositories import (
    CustomerRepository,
    PriceListRepository,
    ProductRepository,
)

import structlog

logger = structlog.get_logger()

NOT_FOUND_TITLE = "המחירון לא נמצא"
SAVE_ERROR_TITLE = "שגיאה בעדכון המחירון"


def _parse_price(product_id: str, value) -> Decimal:
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{product_id}: {value!r}", title="מחיר לא תקין")
    if not price.is_finite() or price < 0:
        raise ValidationError(f"{product_id}: {value!r}", title="מחיר לא תקין")
    return price


class PriceListService:
    """
    Пример:
        service = PriceListService(session)
        vip = await service.create("VIP")
        await service.set_prices(vip.id, {"p1": "8.50"})
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.price_lists = PriceListRepository(session)
        self.products = ProductRepository(session)
        self.customers = CustomerRepository(session)

    async def _commit(self, event: str, price_list_id: str = None):
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(event, price_list_id=price_list_id, error=str(e))
            raise RemoteCallFailure(str(e), title=SAVE_ERROR_TITLE)

    async def list_all(self) -> List[PriceList]:
        return await self.price_lists.list_all()

    async def get(self, price_list_id: str) -> PriceList:
        price_list = await self.price_lists.get_by_id(price_list_id)
        if not price_list:
            raise LookupFailure(f"price list {price_list_id}", title=NOT_FOUND_TITLE)
        return price_list

    async def create(self, name: str, description: str = None, is_default: bool = False) -> PriceList:
        if not name or not name.strip():
            raise ValidationError("name", title="חובה להזין שם מחירון")

        if is_default:
            await self.price_lists.clear_default()
        price_list = await self.price_lists.create(
            name=name.strip(),
            description=description,
            is_default=is_default,
        )
        await self._commit("price_list_create_error")

        logger.info("price_list_created", price_list_id=price_list.id, name=price_list.name)
        return await self.get(price_list.id)

    async def update(self, price_list_id: str, data: dict) -> PriceList:
        """Имя, описание, флаг "по умолчанию"."""
        price_list = await self.get(price_list_id)

        if "name" in data:
            if not data["name"] or not data["name"].strip():
                raise ValidationError("name", title="חובה להזין שם מחירון")
            price_list.name = data["name"].strip()
        if "description" in data:
            price_list.description = data["description"]
        if data.get("is_default"):
            await self.price_lists.clear_default(keep_id=price_list.id)
            price_list.is_default = True
        elif "is_default" in data:
            price_list.is_default = False

        price_list.updated_at = utcnow()
        await self._commit("price_list_update_error", price_list_id)

        logger.info("price_list_updated", price_list_id=price_list_id)
        return await self.get(price_list_id)

    async def set_prices(self, price_list_id: str, prices: Mapping[str, object]) -> PriceList:
        """
        Заменить ВСЕ особые цены прайс-листа.

        Товара нет в prices → его особая цена удаляется.
        Неизвестный товар или отрицательная цена → ValidationError, ничего не меняется.
        """
        price_list = await self.get(price_list_id)

        parsed: Dict[str, Decimal] = {
            product_id: _parse_price(product_id, value)
            for product_id, value in (prices or {}).items()
        }

        known = {p.id for p in await self.products.get_many(parsed.keys())}
        unknown = sorted(set(parsed) - known)
        if unknown:
            raise ValidationError(", ".join(unknown), title="המוצר לא נמצא")

        await self.price_lists.replace_prices(price_list, parsed)
        await self._commit("price_list_prices_error", price_list_id)

        logger.info("price_list_prices_saved", price_list_id=price_list_id, items=len(parsed))
        return await self.get(price_list_id)

    async def delete(self, price_list_id: str):
        """Прайс-лист, назначенный клиентам, не удаляется."""
        price_list = await self.get(price_list_id)

        assigned = await self.customers.count_with_price_list(price_list_id)
        if assigned:
            raise ValidationError(
                f"{assigned} לקוחות משויכים למחירון",
                title="לא ניתן למחוק מחירון בשימוש"
            )

        await self.price_lists.delete(price_list)
        await self._commit("price_list_delete_error", price_list_id)
        logger.info("price_list_deleted", price_list_id=price_list_id)
