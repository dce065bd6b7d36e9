# app/bot/handlers/__init__.py
"""
🤖 BOT HANDLERS (обработчики команд)
"""

from .operator import router as operator_router

__all__ = ["operator_router"]
