# app/services/history.py
"""
📜 ИСТОРИЯ ЗАКАЗОВ

Заказы приходят из БД вместе со строками, превращаются в плоские строки
(как их отдает JOIN) и группируются по номеру заказа.

Сортировка: по дате доставки (если нет - по дате создания), новые сверху.
Без кэша и без пагинации: каждый запрос читает заново.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import LookupFailure, RemoteCallFailure
from infrastructure.database.models import Order, OrderStatus, format_order_number, utcnow
from infrastructure.database.repositories import OrderRepository

import structlog

logger = structlog.get_logger()

DEFAULT_WINDOW = timedelta(days=365)


@dataclass
class OrderLine:
    item_id: int
    product_id: Optional[str]
    product_name: str
    quantity: int
    price: Decimal
    day_of_week: Optional[str] = None
    delivery_date: Optional[date] = None

    @property
    def line_total(self) -> Decimal:
        return Decimal(self.price) * self.quantity


@dataclass
class OrderGroup:
    order_id: int
    status: OrderStatus
    created_at: datetime
    target_date: Optional[date] = None
    customer_id: Optional[int] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    items: List[OrderLine] = field(default_factory=list)

    @property
    def order_number(self) -> str:
        return format_order_number(self.order_id)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def total(self) -> Decimal:
        return sum((item.line_total for item in self.items), Decimal("0"))

    @property
    def sort_date(self) -> datetime:
        if self.target_date:
            return datetime.combine(self.target_date, time.min)
        return self.created_at

    def to_dict(self) -> dict:
        return {
            "order_id": self.order_id,
            "order_number": self.order_number,
            "status": self.status.value,
            "created_at": self.created_at,
            "target_date": self.target_date,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "item_count": self.item_count,
            "total": self.total,
            "items": [
                {
                    "id": item.item_id,
                    "product_id": item.product_id,
                    "product_name": item.product_name,
                    "quantity": item.quantity,
                    "price": item.price,
                    "line_total": item.line_total,
                    "day_of_week": item.day_of_week,
                    "delivery_date": item.delivery_date,
                }
                for item in self.items
            ],
        }


# ==========================================
# ГРУППИРОВКА (чистые функции)
# ==========================================

def orders_to_rows(orders: Iterable[Order]) -> List[dict]:
    """
    Заказы со строками → плоские строки (одна на позицию).
    Заказ без позиций дает одну строку с item_id=None.
    """
    rows = []
    for order in orders:
        customer = order.customer
        base = {
            "order_id": order.id,
            "status": order.status,
            "created_at": order.created_at,
            "target_date": order.target_date,
            "customer_id": order.customer_id,
            "customer_name": customer.name if customer else None,
            "customer_phone": customer.phone if customer else None,
        }
        if not order.items:
            rows.append({**base, "item_id": None})
            continue

        for item in order.items:
            rows.append({
                **base,
                "item_id": item.id,
                "product_id": item.product_id,
                "product_name": item.product.name if item.product else "",
                "quantity": item.quantity,
                "price": item.price,
                "day_of_week": item.day_of_week,
                "delivery_date": item.delivery_date,
            })
    return rows


def group_order_rows(rows: Iterable[dict]) -> List[OrderGroup]:
    """
    Сгруппировать плоские строки по order_id.

    Пример:
        rows = [{"order_id": 1, ...item A}, {"order_id": 1, ...item B}]
        → [OrderGroup(order_id=1, items=[A, B])]
    """
    groups = {}

    for row in rows:
        order_id = row["order_id"]
        group = groups.get(order_id)
        if group is None:
            group = OrderGroup(
                order_id=order_id,
                status=OrderStatus(row.get("status") or OrderStatus.PENDING),
                created_at=row.get("created_at") or utcnow(),
                target_date=row.get("target_date"),
                customer_id=row.get("customer_id"),
                customer_name=row.get("customer_name"),
                customer_phone=row.get("customer_phone"),
            )
            groups[order_id] = group

        if row.get("item_id") is None:
            continue

        group.items.append(OrderLine(
            item_id=row["item_id"],
            product_id=row.get("product_id"),
            product_name=row.get("product_name") or "",
            quantity=int(row.get("quantity") or 0),
            price=Decimal(str(row.get("price") or 0)),
            day_of_week=row.get("day_of_week"),
            delivery_date=row.get("delivery_date"),
        ))

    return sorted(
        groups.values(),
        key=lambda g: (g.sort_date, g.created_at),
        reverse=True
    )


# ==========================================
# ЧТЕНИЕ ИЗ БД
# ==========================================

class OrderHistoryReader:
    """История и текущие заказы (клиент или админ)."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.orders = OrderRepository(session)

    async def history(
        self,
        customer_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        statuses: Optional[List[OrderStatus]] = None,
    ) -> List[OrderGroup]:
        """
        customer_id=None → все клиенты (админ).
        Окно по умолчанию: год назад .. год вперед.
        """
        now = utcnow()
        start = start or now - DEFAULT_WINDOW
        end = end or now + DEFAULT_WINDOW

        try:
            orders = await self.orders.list_with_items(
                customer_id=customer_id,
                start=start,
                end=end,
                statuses=statuses,
            )
        except SQLAlchemyError as e:
            logger.error("order_history_fetch_error", customer_id=customer_id, error=str(e))
            raise RemoteCallFailure(str(e), title="שגיאה בטעינת ההזמנות")

        groups = group_order_rows(orders_to_rows(orders))
        logger.info("order_history_fetched", customer_id=customer_id, count=len(groups))
        return groups

    async def current(self, customer_id: int) -> List[OrderGroup]:
        """Ожидающие заказы клиента, последние сверху."""
        groups = await self.history(
            customer_id=customer_id,
            statuses=[OrderStatus.PENDING],
        )
        return sorted(groups, key=lambda g: g.created_at, reverse=True)

    async def get(self, order_id: int, customer_id: Optional[int] = None) -> OrderGroup:
        order = await self.orders.get_by_id_with_items(order_id)
        if not order or (customer_id is not None and order.customer_id != customer_id):
            raise LookupFailure(f"order {order_id}", title="ההזמנה לא נמצאה")
        return group_order_rows(orders_to_rows([order]))[0]
