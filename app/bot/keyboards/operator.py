# app/bot/keyboards/operator.py
"""
Клавиатуры для оператора.

Под каждым заказом - кнопки только тех статусов,
в которые заказ можно перевести из текущего.
"""

from typing import Optional

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from app.services.orders import ALLOWED_TRANSITIONS
from infrastructure.database.models import OrderStatus

STATUS_CALLBACK_PREFIX = "order_status"

ACTION_LABELS = {
    OrderStatus.PROCESSING: "🔄 לטיפול",
    OrderStatus.COMPLETED: "✅ סופק",
    OrderStatus.CANCELLED: "❌ ביטול",
}

# Порядок кнопок в ряду
ACTION_ORDER = (OrderStatus.PROCESSING, OrderStatus.COMPLETED, OrderStatus.CANCELLED)


def status_callback_data(order_id: int, status: OrderStatus) -> str:
    """ "order_status:42:processing" """
    return f"{STATUS_CALLBACK_PREFIX}:{order_id}:{status.value}"


def parse_status_callback(data: str) -> Optional[tuple]:
    """ "order_status:42:processing" → (42, OrderStatus.PROCESSING) """
    parts = (data or "").split(":")
    if len(parts) != 3 or parts[0] != STATUS_CALLBACK_PREFIX:
        return None
    try:
        return int(parts[1]), OrderStatus(parts[2])
    except ValueError:
        return None


def order_status_keyboard(order_id: int, status: OrderStatus) -> Optional[InlineKeyboardMarkup]:
    """
    Кнопки смены статуса.
    Финальный статус (выполнен / отменен) → клавиатуры нет.
    """
    allowed = ALLOWED_TRANSITIONS.get(status, set())
    buttons = [
        InlineKeyboardButton(
            text=ACTION_LABELS[target],
            callback_data=status_callback_data(order_id, target)
        )
        for target in ACTION_ORDER
        if target in allowed
    ]

    if not buttons:
        return None

    return InlineKeyboardMarkup(inline_keyboard=[buttons])
