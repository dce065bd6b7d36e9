# app/services/reports.py
"""
📊 ОТЧЕТЫ (только цифры, графики рисует фронтенд)

Отмененные заказы в выручку не входят, но считаются в разбивке по статусам.
"""

from collections import defaultdict
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.models import OrderStatus
from infrastructure.database.repositories import OrderRepository

TOP_PRODUCTS_LIMIT = 10

CENT = Decimal("0.01")


class ReportService:

    def __init__(self, session: AsyncSession):
        self.session = session
        self.orders = OrderRepository(session)

    async def summary(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> dict:
        orders = await self.orders.list_with_items(start=start, end=end)

        status_counts = {status.value: 0 for status in OrderStatus}
        revenue = Decimal("0")
        paid_orders = 0
        customers = set()
        products = {}
        daily = defaultdict(lambda: {"orders": 0, "revenue": Decimal("0")})

        for order in orders:
            status_counts[order.status.value] += 1
            customers.add(order.customer_id)

            if order.status == OrderStatus.CANCELLED:
                continue

            total = Decimal(order.total or 0)
            revenue += total
            paid_orders += 1

            day = order.created_at.date().isoformat()
            daily[day]["orders"] += 1
            daily[day]["revenue"] += total

            for item in order.items:
                key = item.product_id or "unknown"
                entry = products.setdefault(key, {
                    "product_id": item.product_id,
                    "product_name": item.product.name if item.product else "",
                    "quantity": 0,
                    "revenue": Decimal("0"),
                })
                entry["quantity"] += item.quantity
                entry["revenue"] += Decimal(item.price) * item.quantity

        average = (revenue / paid_orders).quantize(CENT, ROUND_HALF_UP) if paid_orders else Decimal("0")

        top_products = sorted(
            products.values(),
            key=lambda p: (-p["quantity"], p["product_name"])
        )[:TOP_PRODUCTS_LIMIT]

        return {
            "order_count": len(orders),
            "customer_count": len(customers),
            "revenue": revenue,
            "average_order_value": average,
            "status_counts": status_counts,
            "top_products": top_products,
            "daily_sales": [
                {"date": day, **values}
                for day, values in sorted(daily.items())
            ],
        }
