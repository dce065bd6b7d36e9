# app/bot/middlewares/__init__.py
"""
🔄 MIDDLEWARE (перехватчики)

Срабатывают для КАЖДОГО сообщения / нажатия кнопки:
- LoggingMiddleware  - пишет событие в лог
- DatabaseMiddleware - дает обработчику сессию БД
"""

from .database import DatabaseMiddleware
from .logging import LoggingMiddleware

__all__ = [
    "LoggingMiddleware",
    "DatabaseMiddleware",
]
