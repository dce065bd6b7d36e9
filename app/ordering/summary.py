# app/ordering/summary.py
"""
🧾 СВОДКА ЗАКАЗА

Чистая функция: (количества, товары) → строки + итог.
Ничего не пишет, можно вызывать сколько угодно раз.

Пропускается молча:
- количество <= 0
- товар, которого больше нет в каталоге
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .selection import ASAP, OrderSelection


@dataclass(frozen=True)
class SummaryLine:
    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    day: Optional[str] = None
    # None = как можно скорее

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "line_total": self.line_total,
            "day": self.day,
        }


@dataclass(frozen=True)
class OrderSummary:
    lines: List[SummaryLine] = field(default_factory=list)
    total: Decimal = Decimal("0")

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def total_items(self) -> int:
        return sum(line.quantity for line in self.lines)

    def to_dict(self) -> dict:
        return {
            "lines": [line.to_dict() for line in self.lines],
            "total": self.total,
            "total_items": self.total_items,
        }


def _field(product: Any, name: str):
    # Товар может быть ORM-объектом, dataclass или обычным dict
    if isinstance(product, Mapping):
        return product.get(name)
    return getattr(product, name, None)


def _index_products(products: Union[Mapping[str, Any], Iterable[Any]]) -> Dict[str, Any]:
    if isinstance(products, Mapping):
        return dict(products)
    return {str(_field(p, "id")): p for p in products}


def _to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def build_order_summary(
    quantities: Union[OrderSelection, Mapping[str, Any]],
    products: Union[Mapping[str, Any], Iterable[Any]],
) -> OrderSummary:
    """
    Построить сводку.

    quantities:
        {"p1": 2}                         - плоский вариант
        {"p1": {"sunday": 1, "asap": 2}}  - по дням
        или OrderSelection
    products:
        {"p1": product} или список товаров (у каждого id / name / price)

    Пример:
        build_order_summary({"p1": 2, "p2": 1}, [p1(10), p2(25)])
        → строки (p1, 2, 10, 20), (p2, 1, 25, 25), итог 45
    """
    if isinstance(quantities, OrderSelection):
        quantities = quantities.nested_quantities()

    catalog = _index_products(products)
    lines: List[SummaryLine] = []

    for product_id, value in quantities.items():
        product = catalog.get(product_id)
        if product is None:
            continue

        per_day = value if isinstance(value, Mapping) else {ASAP: value}

        for day, qty in per_day.items():
            try:
                qty = int(qty)
            except (TypeError, ValueError):
                continue
            if qty <= 0:
                continue

            unit_price = _to_decimal(_field(product, "price") or 0)
            lines.append(SummaryLine(
                product_id=product_id,
                product_name=_field(product, "name") or "",
                quantity=qty,
                unit_price=unit_price,
                line_total=unit_price * qty,
                day=None if day == ASAP else day,
            ))

    total = sum((line.line_total for line in lines), Decimal("0"))
    return OrderSummary(lines=lines, total=total)
