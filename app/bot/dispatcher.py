# app/bot/dispatcher.py
"""
Диспетчер бота оператора.

Порядок middleware: сначала лог, потом сессия БД.
"""

from aiogram import Dispatcher
from aiogram.fsm.storage.base import BaseStorage

from app.bot.handlers import operator_router
from app.bot.middlewares import DatabaseMiddleware, LoggingMiddleware


def build_dispatcher(storage: BaseStorage) -> Dispatcher:
    dp = Dispatcher(storage=storage)

    for observer in (dp.message, dp.callback_query):
        observer.middleware(LoggingMiddleware())
        observer.middleware(DatabaseMiddleware())

    dp.include_router(operator_router)
    return dp
