# app/__init__.py
"""Приложение: заказы газовых баллонов (API + бот оператора)."""
