# app/bot/middlewares/logging.py
"""
Лог каждого апдейта от оператора: кто, что нажал, сколько обрабатывали.
"""

import time
from typing import Any, Awaitable, Callable, Dict

from aiogram import BaseMiddleware
from aiogram.types import CallbackQuery, Message, TelegramObject

from app.utils import truncate

import structlog

logger = structlog.get_logger()


def _describe(event: TelegramObject) -> Dict[str, Any]:
    if isinstance(event, CallbackQuery):
        return {"kind": "callback", "callback_data": event.data}
    if isinstance(event, Message):
        return {"kind": "message", "text": truncate(event.text or "", 50)}
    return {"kind": type(event).__name__}


class LoggingMiddleware(BaseMiddleware):

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any]
    ) -> Any:
        user = getattr(event, "from_user", None)
        started = time.perf_counter()

        result = await handler(event, data)

        logger.info(
            "bot_update_handled",
            telegram_id=user.id if user else None,
            elapsed_ms=round((time.perf_counter() - started) * 1000, 1),
            **_describe(event)
        )
        return result
