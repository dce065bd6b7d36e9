# app/bot/handlers/operator.py
"""
Обработчики для оператора.

Доступны ТОЛЬКО оператору (OPERATOR_TELEGRAM_ID):
- /start  - приветствие и список команд
- /orders - ожидающие заказы
- кнопки под карточкой заказа - смена статуса
"""

from aiogram import F, Router, types
from aiogram.filters import Command, CommandStart
from sqlalchemy.ext.asyncio import AsyncSession

from app.bot.filters import IsOperator
from app.bot.keyboards.operator import (
    STATUS_CALLBACK_PREFIX,
    order_status_keyboard,
    parse_status_callback,
)
from app.bot.texts import STATUS_LABELS, order_card_text, pending_orders_text
from app.errors import OrderingError
from app.services.history import OrderHistoryReader
from app.services.orders import OrderService
from infrastructure.database.models import OrderStatus

import structlog

logger = structlog.get_logger()

router = Router()
router.message.filter(IsOperator())
router.callback_query.filter(IsOperator())


# ==========================================
# КОМАНДА: /start
# ==========================================

@router.message(CommandStart())
async def cmd_start(message: types.Message):
    await message.answer(
        "👋 <b>שירותי גז מינרל - מוקד הזמנות</b>\n\n"
        "הזמנות חדשות יגיעו לכאן אוטומטית.\n\n"
        "/orders - הזמנות ממתינות"
    )


# ==========================================
# КОМАНДА: /orders
# ==========================================

@router.message(Command("orders"))
async def cmd_orders(message: types.Message, session: AsyncSession):
    """Ожидающие заказы всех клиентов, новые сверху."""
    groups = await OrderHistoryReader(session).history(statuses=[OrderStatus.PENDING])
    groups = sorted(groups, key=lambda g: g.created_at, reverse=True)

    await message.answer(pending_orders_text(groups))
    logger.info("operator_pending_orders_viewed", count=len(groups))


# ==========================================
# КНОПКИ: смена статуса
# ==========================================

@router.callback_query(F.data.startswith(f"{STATUS_CALLBACK_PREFIX}:"))
async def change_order_status(query: types.CallbackQuery, session: AsyncSession):
    parsed = parse_status_callback(query.data)
    if parsed is None:
        await query.answer("❌ פעולה לא תקינה", show_alert=True)
        return

    order_id, new_status = parsed

    try:
        await OrderService(session).change_status(order_id, new_status)
        group = await OrderHistoryReader(session).get(order_id)
    except OrderingError as e:
        logger.warning("operator_status_change_failed", order_id=order_id, error=e.details)
        await query.answer(f"❌ {e.title}", show_alert=True)
        return

    await query.message.edit_text(
        order_card_text(group),
        reply_markup=order_status_keyboard(group.order_id, group.status)
    )
    await query.answer(STATUS_LABELS[group.status])

    logger.info(
        "operator_status_changed",
        order_id=order_id,
        status=new_status.value,
        operator_id=query.from_user.id
    )
