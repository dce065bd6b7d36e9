# app/utils/__init__.py
"""Инициализация утилит."""

from .phone import format_phone, normalize_phone, validate_phone
from .text import escape_html, format_currency, truncate

__all__ = [
    "format_phone",
    "normalize_phone",
    "validate_phone",
    "escape_html",
    "format_currency",
    "truncate",
]
