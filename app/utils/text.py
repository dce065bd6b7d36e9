# app/utils/text.py
"""Текстовые помощники для сообщений (Telegram HTML)."""

import html
from decimal import Decimal, ROUND_HALF_UP


def escape_html(text) -> str:
    """Экранировать < > & для parse_mode=HTML"""
    if text is None:
        return ""
    return html.escape(str(text), quote=False)


def truncate(text: str, limit: int = 64) -> str:
    if not text or len(text) <= limit:
        return text or ""
    return text[: limit - 1] + "…"


def format_currency(amount) -> str:
    """
    Сумма в шекелях: ₪1,234.50

    Целые суммы без копеек: ₪45
    """
    value = Decimal(str(amount or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    if value == value.to_integral_value():
        return f"₪{int(value):,}"
    return f"₪{value:,.2f}"
