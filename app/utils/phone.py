# app/utils/phone.py
"""
📞 Телефоны (израильский формат).

Храним всегда 10 цифр, начиная с 0: 0501234567
"""

import re

PHONE_RE = re.compile(r"^0[0-9]{9}$")


def normalize_phone(phone: str) -> str:
    """
    Убрать пробелы / дефисы / скобки, +972 → 0.

    Пример:
        normalize_phone("+972 50-123-4567") → "0501234567"
    """
    if not phone:
        return ""

    digits = re.sub(r"[^\d+]", "", phone.strip())

    if digits.startswith("+972"):
        digits = "0" + digits[4:]
    elif digits.startswith("972") and len(digits) == 12:
        digits = "0" + digits[3:]

    return digits.replace("+", "")


def validate_phone(phone: str) -> bool:
    """True если номер в формате 05XXXXXXXX (10 цифр, начинается с 0)."""
    return bool(phone) and bool(PHONE_RE.match(phone))


def format_phone(phone: str) -> str:
    """Для сообщений оператору: 050-123-4567"""
    if not validate_phone(phone):
        return phone or ""
    return f"{phone[:3]}-{phone[3:6]}-{phone[6:]}"
