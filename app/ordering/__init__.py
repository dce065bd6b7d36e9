# app/ordering/__init__.py
"""Корзина и сводка заказа (без БД)."""

from .selection import ASAP, DeliveryPreference, OrderSelection
from .summary import OrderSummary, SummaryLine, build_order_summary

__all__ = [
    "ASAP",
    "DeliveryPreference",
    "OrderSelection",
    "OrderSummary",
    "SummaryLine",
    "build_order_summary",
]
