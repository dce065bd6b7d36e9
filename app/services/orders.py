# app/services/orders.py
"""
Сервис заказов.

Бизнес-логика для работы с заказами:
- Отправка заказа (клиент + шапка + строки = ОДНА транзакция)
- Изменение количества в строке
- Отмена (только статус, строки никогда не удаляются физически)
- Смена статуса админом
- Повторный заказ
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, Mapping, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import LookupFailure, RemoteCallFailure, ValidationError
from app.ordering import ASAP, DeliveryPreference, OrderSelection, OrderSummary, build_order_summary
from app.services.catalog import CatalogService
from app.services.customers import CustomerIdentity, CustomerService
from app.services.delivery_days import day_index_to_key, day_key_to_index
from infrastructure.database.models import Order, OrderStatus, format_order_number, utcnow
from infrastructure.database.repositories import OrderRepository

import structlog

logger = structlog.get_logger()

SUBMIT_ERROR_TITLE = "שגיאה בשליחת ההזמנה"
UPDATE_ERROR_TITLE = "לא ניתן לעדכן את ההזמנה"

# Куда можно перейти из каждого статуса
ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
}


@dataclass(frozen=True)
class SubmissionResult:
    order_id: int
    order_number: str
    customer_id: int
    total: Decimal
    summary: OrderSummary

    @property
    def message(self) -> str:
        return "ההזמנה שלך התקבלה ותטופל בהקדם"

    def to_dict(self) -> dict:
        return {
            "success": True,
            "title": "הזמנה נשלחה בהצלחה",
            "message": self.message,
            "order_id": self.order_id,
            "order_number": self.order_number,
            "customer_id": self.customer_id,
            "total": self.total,
            "summary": self.summary.to_dict(),
        }


def parse_status(value: Union[str, OrderStatus]) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError(f"status={value}", title="סטטוס לא תקין")


def recompute_total(order: Order) -> Decimal:
    return sum(
        (Decimal(item.price) * item.quantity for item in order.items),
        Decimal("0")
    )


class OrderService:
    """
    Сервис для работы с заказами.

    Пример:
        service = OrderService(session)
        result = await service.submit_order(identity, selection)
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.orders = OrderRepository(session)
        self.customers = CustomerService(session)
        self.catalog = CatalogService(session)

    # ==========================================
    # ОТПРАВИТЬ ЗАКАЗ
    # ==========================================

    async def submit_order(
        self,
        identity: Optional[CustomerIdentity],
        selection: Union[OrderSelection, Mapping[str, object]],
        target_date: Optional[date] = None,
        preferences: Optional[Dict[str, DeliveryPreference]] = None,
    ) -> SubmissionResult:
        """
        Отправить заказ.

        1. Нет клиента / пустая корзина → ValidationError (в БД не ходим)
        2. Найти или создать клиента
        3. Цены берем из каталога (цены клиента не принимаем)
        4. Шапка (pending) + строки с копией цены
        Шаги 2-4 в одной транзакции: ошибка → откат всего.
        """
        if not isinstance(selection, OrderSelection):
            selection = OrderSelection.from_quantities(selection or {})

        if identity is None or identity.is_empty:
            raise ValidationError("יש להתחבר כדי לשלוח הזמנה", title=SUBMIT_ERROR_TITLE)

        if selection.is_empty:
            raise ValidationError("לא נבחרו מוצרים להזמנה", title=SUBMIT_ERROR_TITLE)

        preferences = {**selection.preferences, **(preferences or {})}

        if target_date is None:
            dates = [p.date for p in preferences.values() if not p.asap and p.date]
            target_date = min(dates) if dates else None

        try:
            customer = await self.customers.get_or_create(identity)

            products = await self.catalog.resolve_many(selection.quantities.keys(), customer)
            summary = build_order_summary(selection, products)

            if summary.is_empty:
                raise ValidationError("המוצרים שנבחרו אינם זמינים", title=SUBMIT_ERROR_TITLE)

            order = await self.orders.create(
                customer_id=customer.id,
                total=summary.total,
                target_date=target_date,
            )

            items = []
            for line in summary.lines:
                pref = preferences.get(line.product_id)
                day = line.day
                if day is None and pref is not None and pref.day_of_week is not None:
                    day = day_index_to_key(pref.day_of_week)

                items.append({
                    "product_id": line.product_id,
                    "quantity": line.quantity,
                    "price": line.unit_price,
                    "day_of_week": day,
                    "delivery_date": pref.date if pref is not None and not pref.asap else None,
                })

            await self.orders.add_items(order, items)
            await self.session.commit()

        except ValidationError:
            await self.session.rollback()
            raise

        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("order_submit_error", error=str(e), error_type=type(e).__name__)
            raise RemoteCallFailure(str(e), title=SUBMIT_ERROR_TITLE)

        logger.info(
            "order_submitted",
            order_id=order.id,
            customer_id=customer.id,
            total=str(summary.total),
            items=len(items)
        )

        return SubmissionResult(
            order_id=order.id,
            order_number=format_order_number(order.id),
            customer_id=customer.id,
            total=summary.total,
            summary=summary,
        )

    # ==========================================
    # ЗАГРУЗИТЬ ЗАКАЗ
    # ==========================================

    async def _load(self, order_id: int, customer_id: Optional[int] = None) -> Order:
        """customer_id задан → чужой заказ считается ненайденным."""
        order = await self.orders.get_by_id_with_items(order_id)

        if not order or (customer_id is not None and order.customer_id != customer_id):
            logger.warning("order_not_found", order_id=order_id)
            raise LookupFailure(f"order {order_id}", title="ההזמנה לא נמצאה")

        return order

    async def _commit(self, event: str, order_id: int):
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"{event}_error", order_id=order_id, error=str(e))
            raise RemoteCallFailure(str(e), title=UPDATE_ERROR_TITLE)

    # ==========================================
    # ИЗМЕНИТЬ КОЛИЧЕСТВО
    # ==========================================

    async def update_item_quantity(
        self,
        order_id: int,
        item_id: int,
        quantity: int,
        customer_id: Optional[int] = None
    ) -> Order:
        """
        Изменить количество в строке.

        quantity <= 0 → строка удаляется.
        Удалили последнюю строку → заказ отменяется (пустых заказов не бывает).
        Редактировать можно только pending.
        """
        order = await self._load(order_id, customer_id)

        if order.status != OrderStatus.PENDING:
            raise ValidationError("ניתן לערוך רק הזמנות ממתינות", title=UPDATE_ERROR_TITLE)

        item = next((i for i in order.items if i.id == item_id), None)
        if item is None:
            raise LookupFailure(f"item {item_id}", title="הפריט לא נמצא בהזמנה")

        if quantity <= 0:
            order.items.remove(item)
        else:
            item.quantity = quantity

        order.total = recompute_total(order)
        order.updated_at = utcnow()

        if not order.items:
            order.status = OrderStatus.CANCELLED

        await self._commit("order_item_update", order_id)

        logger.info(
            "order_item_updated",
            order_id=order.id,
            item_id=item_id,
            quantity=max(quantity, 0),
            total=str(order.total)
        )
        return order

    # ==========================================
    # ОТМЕНИТЬ ЗАКАЗ
    # ==========================================

    async def cancel_order(self, order_id: int, customer_id: Optional[int] = None) -> Order:
        """Отменить заказ: только смена статуса, ничего не удаляется."""
        order = await self._load(order_id, customer_id)

        if order.status.is_final:
            raise ValidationError(
                "לא ניתן לבטל הזמנה שהושלמה או בוטלה",
                title="שגיאה בביטול ההזמנה"
            )

        await self.orders.set_status(order, OrderStatus.CANCELLED)
        await self._commit("order_cancel", order_id)

        logger.info("order_cancelled", order_id=order.id)
        return order

    # ==========================================
    # СМЕНИТЬ СТАТУС (админ / оператор)
    # ==========================================

    async def change_status(self, order_id: int, status: Union[str, OrderStatus]) -> Order:
        new_status = parse_status(status)
        order = await self._load(order_id)

        if order.status == new_status:
            return order

        if new_status not in ALLOWED_TRANSITIONS[order.status]:
            raise ValidationError(
                f"{order.status.value} → {new_status.value}",
                title="לא ניתן לשנות את סטטוס ההזמנה"
            )

        await self.orders.set_status(order, new_status)
        await self._commit("order_status", order_id)
        return order

    # ==========================================
    # ПОВТОРИТЬ ЗАКАЗ
    # ==========================================

    async def reorder(
        self,
        order_id: int,
        identity: CustomerIdentity,
        customer_id: Optional[int] = None
    ) -> SubmissionResult:
        """
        Новый заказ с теми же товарами и количествами.
        Цены - текущие из каталога, не из старого заказа.
        """
        previous = await self._load(order_id, customer_id)

        selection = OrderSelection()
        for item in previous.items:
            if not item.product_id or item.quantity <= 0:
                continue
            day = item.day_of_week if day_key_to_index(item.day_of_week) is not None else ASAP
            selection.set_quantity(
                item.product_id,
                selection.quantity_of(item.product_id, day) + item.quantity,
                day=day,
            )

        logger.info("order_reorder", source_order_id=order_id, products=len(selection))
        return await self.submit_order(identity, selection)
