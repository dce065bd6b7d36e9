# app/bot/filters/role.py
"""
Фильтры aiogram - ограничивают доступ к обработчикам.

Пример:
    @router.message(Command("orders"), IsOperator())
    async def list_orders(message: Message):
        # Выполнится ТОЛЬКО если пишет оператор
        ...

Оператор = OPERATOR_TELEGRAM_ID из настроек (роль в БД не смотрим).
"""

from typing import Optional, Union

from aiogram.filters import BaseFilter
from aiogram.types import CallbackQuery, Message

from config.settings import config


class IsOperator(BaseFilter):

    def __init__(self, operator_id: Optional[int] = None):
        self.operator_id = operator_id

    async def __call__(self, event: Union[Message, CallbackQuery]) -> bool:
        operator_id = self.operator_id or config.operator_telegram_id
        if operator_id is None or event.from_user is None:
            return False
        return event.from_user.id == operator_id
