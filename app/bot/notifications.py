# app/bot/notifications.py
"""
Сервис для отправки уведомлений оператору.

Бот создается лениво: без BOT_TOKEN уведомления просто выключены.
Ошибка отправки не ломает заказ - только запись в лог.
"""

from typing import Optional

from aiogram import Bot
from aiogram.client.default import DefaultBotProperties
from aiogram.exceptions import TelegramAPIError
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.bot.keyboards.operator import order_status_keyboard
from app.bot.texts import order_card_text, service_request_card_text
from app.errors import LookupFailure
from app.services.history import OrderHistoryReader
from app.services.service_requests import ServiceRequestService
from config.settings import config
from infrastructure.database.base import async_session_maker

import structlog

logger = structlog.get_logger()

_bot: Optional[Bot] = None


def get_bot() -> Optional[Bot]:
    """Один Bot на процесс. None если бот не настроен."""
    global _bot

    if not config.bot_enabled:
        return None

    if _bot is None:
        _bot = Bot(
            token=config.bot_token,
            default=DefaultBotProperties(parse_mode="HTML")
        )
    return _bot


async def close_bot():
    global _bot

    if _bot is not None:
        await _bot.session.close()
        _bot = None


async def notify_operator_new_order(
    order_id: int,
    session_maker: async_sessionmaker = None,
    bot: Bot = None
) -> bool:
    """
    Отправляет оператору карточку нового заказа с кнопками статуса.

    Вызывается в фоне (BackgroundTasks), поэтому открывает свою сессию БД.
    """
    bot = bot or get_bot()
    if bot is None:
        return False

    session_maker = session_maker or async_session_maker

    try:
        async with session_maker() as session:
            group = await OrderHistoryReader(session).get(order_id)

        await bot.send_message(
            chat_id=config.operator_telegram_id,
            text=order_card_text(group),
            reply_markup=order_status_keyboard(group.order_id, group.status)
        )

    except (TelegramAPIError, LookupFailure) as e:
        logger.error("notification_error", order_id=order_id, error=str(e))
        return False

    logger.info("operator_notified", order_id=order_id)
    return True


async def notify_operator_service_request(
    request_id: str,
    session_maker: async_sessionmaker = None,
    bot: Bot = None
) -> bool:
    """Новый вызов техника → карточка оператору (без кнопок, статус ведется в админке)."""
    bot = bot or get_bot()
    if bot is None:
        return False

    session_maker = session_maker or async_session_maker

    try:
        async with session_maker() as session:
            request = await ServiceRequestService(session).get(request_id)

        await bot.send_message(
            chat_id=config.operator_telegram_id,
            text=service_request_card_text(request)
        )

    except (TelegramAPIError, LookupFailure) as e:
        logger.error("notification_error", service_request_id=request_id, error=str(e))
        return False

    logger.info("operator_notified", service_request_id=request_id)
    return True
