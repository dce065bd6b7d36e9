# app/services/__init__.py
"""Бизнес-логика: заказы, клиенты, каталог, доставка, сессии."""
