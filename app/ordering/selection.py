# app/ordering/selection.py
"""
🛒 ВЫБОР ТОВАРОВ (корзина до отправки)

Структура:
    quantities  = {"p1": {"asap": 2}, "p2": {"sunday": 1, "tuesday": 3}}
    preferences = {"p1": DeliveryPreference(asap=True)}

Простой поток (без дней) использует один ключ "asap".
Других ключей, кроме "asap" и дней недели (sunday ... saturday), не бывает.
Количество никогда не бывает <= 0: такие записи сразу удаляются,
вместе с предпочтением доставки, если у товара ничего не осталось.
"""

from dataclasses import dataclass
from datetime import date
from typing import Dict, Optional

from app.errors import ValidationError

ASAP = "asap"

# 0 = воскресенье
WEEKDAY_KEYS = [
    "sunday",
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
]

DAY_KEYS = frozenset(WEEKDAY_KEYS) | {ASAP}


def normalize_day(day: Optional[str]) -> str:
    """
    None / "" → "asap", "Sunday " → "sunday".
    Неизвестный ключ → ValidationError.
    """
    key = str(day or ASAP).strip().lower()
    if key not in DAY_KEYS:
        raise ValidationError(f"day={str(day)[:32]!r}", title="יום אספקה לא תקין")
    return key


@dataclass(frozen=True)
class DeliveryPreference:
    """
    Когда привезти товар:
    - asap=True → как можно скорее
    - иначе конкретная дата + день недели (0 = воскресенье)
    """
    asap: bool = True
    date: Optional[date] = None
    day_of_week: Optional[int] = None

    @classmethod
    def soonest(cls) -> "DeliveryPreference":
        return cls(asap=True)

    @classmethod
    def on(cls, target: date) -> "DeliveryPreference":
        # weekday(): понедельник = 0, у нас воскресенье = 0
        return cls(asap=False, date=target, day_of_week=(target.weekday() + 1) % 7)

    def to_dict(self) -> dict:
        if self.asap:
            return {"type": ASAP}
        return {
            "type": "date",
            "date": self.date.isoformat() if self.date else None,
            "day_of_week": self.day_of_week,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DeliveryPreference":
        if not data or data.get("type", ASAP) == ASAP:
            return cls.soonest()
        raw_date = data.get("date")
        target = date.fromisoformat(raw_date) if raw_date else None
        return cls(asap=False, date=target, day_of_week=data.get("day_of_week"))


class OrderSelection:
    """
    Что клиент выбрал, но еще не отправил.

    Пример:
        selection = OrderSelection()
        selection.increment("p1", preference=DeliveryPreference.soonest())
        selection.increment("p1")
        selection.flat_quantities()  → {"p1": 2}
    """

    def __init__(self):
        self.quantities: Dict[str, Dict[str, int]] = {}
        self.preferences: Dict[str, DeliveryPreference] = {}

    # ==========================================
    # ИЗМЕНЕНИЕ
    # ==========================================

    def increment(
        self,
        product_id: str,
        day: str = None,
        preference: DeliveryPreference = None
    ) -> int:
        """+1. Предпочтение записывается только при переходе 0 → 1."""
        day = normalize_day(day)
        return self.set_quantity(
            product_id,
            self.quantity_of(product_id, day) + 1,
            day=day,
            preference=preference,
        )

    def decrement(self, product_id: str, day: str = None) -> int:
        """-1. На нуле запись (и предпочтение) удаляется."""
        day = normalize_day(day)
        current = self.quantity_of(product_id, day)
        if current <= 0:
            return 0
        return self.set_quantity(product_id, current - 1, day=day)

    def set_quantity(
        self,
        product_id: str,
        quantity: int,
        day: str = None,
        preference: DeliveryPreference = None
    ) -> int:
        """
        Прямая установка количества (ниже нуля не бывает).
        Возвращает новое количество для этого дня.
        """
        day = normalize_day(day)
        quantity = max(0, int(quantity))

        if quantity == 0:
            self._drop_day(product_id, day)
            return 0

        was_empty = self.quantity_of(product_id) == 0
        self.quantities.setdefault(product_id, {})[day] = quantity

        if was_empty and preference is not None:
            self.preferences[product_id] = preference

        return quantity

    def remove(self, product_id: str):
        self.quantities.pop(product_id, None)
        self.preferences.pop(product_id, None)

    def clear(self):
        self.quantities.clear()
        self.preferences.clear()

    def _drop_day(self, product_id: str, day: str):
        days = self.quantities.get(product_id)
        if not days:
            self.preferences.pop(product_id, None)
            return

        days.pop(day, None)
        if not days:
            self.remove(product_id)

    # ==========================================
    # ЧТЕНИЕ
    # ==========================================

    def quantity_of(self, product_id: str, day: str = None) -> int:
        """day=None → сумма по всем дням"""
        days = self.quantities.get(product_id, {})
        if day is None:
            return sum(days.values())
        return days.get(day, 0)

    def preference_for(self, product_id: str) -> Optional[DeliveryPreference]:
        return self.preferences.get(product_id)

    @property
    def total_items(self) -> int:
        return sum(sum(days.values()) for days in self.quantities.values())

    @property
    def is_empty(self) -> bool:
        return self.total_items == 0

    def flat_quantities(self) -> Dict[str, int]:
        return {
            product_id: sum(days.values())
            for product_id, days in self.quantities.items()
        }

    def nested_quantities(self) -> Dict[str, Dict[str, int]]:
        return {
            product_id: dict(days)
            for product_id, days in self.quantities.items()
        }

    # ==========================================
    # СЕРИАЛИЗАЦИЯ (черновик корзины)
    # ==========================================

    def to_dict(self) -> dict:
        return {
            "quantities": self.nested_quantities(),
            "preferences": {
                product_id: pref.to_dict()
                for product_id, pref in self.preferences.items()
            },
        }

    @classmethod
    def from_dict(cls, data: Optional[dict], strict: bool = False) -> "OrderSelection":
        """
        Восстановить выбор.

        Понимает и старый плоский формат {"p1": 2}.
        Некорректные и неположительные значения пропускаются.
        Неизвестный день: strict → ValidationError, иначе строка пропускается.
        """
        selection = cls()
        if not data:
            return selection

        if "quantities" in data:
            quantities = data["quantities"] or {}
        else:
            quantities = data

        for product_id, value in quantities.items():
            if isinstance(value, dict):
                for day, qty in value.items():
                    selection._restore(product_id, qty, day, strict)
            else:
                selection._restore(product_id, value, ASAP, strict)

        for product_id, pref in (data.get("preferences") or {}).items():
            if product_id in selection.quantities:
                selection.preferences[product_id] = DeliveryPreference.from_dict(pref)

        return selection

    def _restore(self, product_id: str, qty, day: str, strict: bool = False):
        try:
            day = normalize_day(day)
        except ValidationError:
            if strict:
                raise
            return
        try:
            qty = int(qty)
        except (TypeError, ValueError):
            return
        if qty > 0:
            self.quantities.setdefault(product_id, {})[day] = qty

    @classmethod
    def from_quantities(cls, quantities: Dict[str, object]) -> "OrderSelection":
        """Из сырого словаря (ввод клиента): неизвестный день → ValidationError."""
        return cls.from_dict({"quantities": quantities}, strict=True)

    def __len__(self) -> int:
        return len(self.quantities)

    def __repr__(self) -> str:
        return f"OrderSelection({self.quantities!r})"
