# app/services/customer_admin.py
"""
👥 КЛИЕНТЫ В АДМИНКЕ

- список с количеством заказов и открытым балансом
- добавить / изменить клиента (в т.ч. назначить прайс-лист, заметки)
- удалить клиента (только без истории: заказы никогда не удаляются)
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import LookupFailure, RemoteCallFailure, ValidationError
from app.services.customers import PHONE_TAKEN_DETAILS, PHONE_TAKEN_TITLE, require_valid_phone
from infrastructure.database.models import Customer, utcnow
from infrastructure.database.repositories import CustomerRepository, PriceListRepository

import structlog

logger = structlog.get_logger()

NOT_FOUND_TITLE = "הלקוח לא נמצא"
SAVE_ERROR_TITLE = "שגיאה בשמירת לקוח"

EDITABLE_FIELDS = (
    "name",
    "phone",
    "address",
    "city",
    "notes",
    "price_list_id",
    "delivery_instructions",
    "emergency_contact",
    "preferred_delivery_time",
    "gas_supplier_license",
)


@dataclass(frozen=True)
class CustomerOverview:
    customer: Customer
    total_orders: int = 0
    active_orders: int = 0
    open_balance: Decimal = Decimal("0")


class CustomerAdminService:

    def __init__(self, session: AsyncSession):
        self.session = session
        self.customers = CustomerRepository(session)
        self.price_lists = PriceListRepository(session)

    async def list_overview(self, search: Optional[str] = None) -> List[CustomerOverview]:
        try:
            customers = await self.customers.list_all(search)
            stats = await self.customers.order_stats()
        except SQLAlchemyError as e:
            logger.error("customers_fetch_error", error=str(e))
            raise RemoteCallFailure(str(e), title="שגיאה בטעינת לקוחות")

        return [
            CustomerOverview(customer=c, **stats.get(c.id, {}))
            for c in customers
        ]

    async def get(self, customer_id: int) -> Customer:
        customer = await self.customers.get_by_id(customer_id)
        if not customer:
            raise LookupFailure(f"customer {customer_id}", title=NOT_FOUND_TITLE)
        return customer

    async def _clean(self, data: dict, current: Optional[Customer] = None) -> dict:
        fields = {k: v for k, v in data.items() if k in EDITABLE_FIELDS}

        if "name" in fields and not (fields["name"] or "").strip():
            raise ValidationError("name", title="חובה להזין שם לקוח")

        if "phone" in fields:
            if not fields["phone"]:
                raise ValidationError("phone", title="חובה להזין מספר טלפון")
            fields["phone"] = require_valid_phone(fields["phone"])
            owner = await self.customers.get_by_phone(fields["phone"])
            if owner and (current is None or owner.id != current.id):
                raise ValidationError(PHONE_TAKEN_DETAILS, title=PHONE_TAKEN_TITLE)

        if "price_list_id" in fields:
            fields["price_list_id"] = fields["price_list_id"] or None
        if fields.get("price_list_id"):
            if not await self.price_lists.get_by_id(fields["price_list_id"]):
                raise LookupFailure(fields["price_list_id"], title="המחירון לא נמצא")

        return fields

    async def _commit(self, event: str, customer_id: Optional[int] = None):
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            logger.warning(event, customer_id=customer_id, error=str(e))
            raise ValidationError(PHONE_TAKEN_DETAILS, title=PHONE_TAKEN_TITLE)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(event, customer_id=customer_id, error=str(e))
            raise RemoteCallFailure(str(e), title=SAVE_ERROR_TITLE)

    async def create(self, data: dict) -> Customer:
        if not data.get("name"):
            raise ValidationError("name", title="חובה להזין שם לקוח")
        if not data.get("phone"):
            raise ValidationError("phone", title="חובה להזין מספר טלפון")

        fields = await self._clean(data)
        try:
            customer = await self.customers.create(**fields)
        except IntegrityError as e:
            await self.session.rollback()
            logger.warning("customer_admin_create_conflict", error=str(e))
            raise ValidationError(PHONE_TAKEN_DETAILS, title=PHONE_TAKEN_TITLE)
        await self._commit("customer_admin_create_error")

        logger.info("customer_admin_created", customer_id=customer.id)
        return customer

    async def update(self, customer_id: int, data: dict) -> Customer:
        customer = await self.get(customer_id)
        fields = await self._clean(data, current=customer)

        for key, value in fields.items():
            setattr(customer, key, value)
        customer.updated_at = utcnow()
        await self._commit("customer_admin_update_error", customer_id)

        logger.info("customer_admin_updated", customer_id=customer_id, fields=sorted(fields))
        return customer

    async def assign_price_list(self, customer_id: int, price_list_id: Optional[str]) -> Customer:
        """price_list_id=None → снова базовые цены."""
        return await self.update(customer_id, {"price_list_id": price_list_id or None})

    async def delete(self, customer_id: int):
        customer = await self.get(customer_id)

        orders = await self.customers.count_orders(customer_id)
        requests = await self.customers.count_service_requests(customer_id)
        if orders or requests:
            raise ValidationError(
                f"orders={orders}, service_requests={requests}",
                title="לא ניתן למחוק לקוח עם היסטוריית הזמנות"
            )

        await self.customers.delete(customer)
        await self._commit("customer_admin_delete_error", customer_id)
