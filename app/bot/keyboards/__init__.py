# app/bot/keyboards/__init__.py
"""Инициализация клавиатур."""

from .operator import order_status_keyboard, parse_status_callback, status_callback_data

__all__ = ["order_status_keyboard", "parse_status_callback", "status_callback_data"]
