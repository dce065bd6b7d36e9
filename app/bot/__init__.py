# app/bot/__init__.py
"""Telegram бот оператора: уведомления о заказах и смена статуса."""
