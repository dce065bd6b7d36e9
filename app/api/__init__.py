# app/api/__init__.py
"""
🌐 HTTP API

- /functions/v1/...  - клиент: регистрация и вход по коду
- /api/...           - каталог, корзина, заказы, дни доставки
- /api/admin/...     - админка (пароль)
"""

from .app import create_app

__all__ = ["create_app"]
