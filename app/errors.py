# app/errors.py
"""
❗ ОШИБКИ ПРИЛОЖЕНИЯ

Каждая ошибка несет:
- title   - короткий заголовок на иврите (то, что видит клиент)
- details - подробности (сообщение исходной ошибки и т.д.)

HTTP слой превращает их в JSON:
    {"error": "<title>", "details": "<details>"}
"""


class OrderingError(Exception):
    """Базовая ошибка."""

    status_code = 500
    title = "שגיאה"

    def __init__(self, details: str = "", title: str = None):
        super().__init__(details or self.title)
        self.details = details
        if title:
            self.title = title

    def to_dict(self) -> dict:
        return {"error": self.title, "details": self.details}


class ValidationError(OrderingError):
    """Неправильный ввод (пустая корзина, плохой телефон...). Ничего не записано."""

    status_code = 400
    title = "שגיאת קלט"


class LookupFailure(OrderingError):
    """Клиент / товар / заказ не найден."""

    status_code = 404
    title = "לא נמצא"


class RemoteCallFailure(OrderingError):
    """Упал запрос к БД или к внешнему сервису."""

    status_code = 502
    title = "שגיאה בשרת"


class AuthenticationError(OrderingError):
    """Нет сессии, неправильный пароль / код, аккаунт заблокирован."""

    status_code = 401
    title = "נדרשת התחברות"


class TooManyRequests(OrderingError):
    """Слишком много запросов (например, кодов подтверждения)."""

    status_code = 429
    title = "יותר מדי בקשות"
