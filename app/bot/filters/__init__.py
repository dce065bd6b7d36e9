# app/bot/filters/__init__.py
from .role import IsOperator

__all__ = ["IsOperator"]
