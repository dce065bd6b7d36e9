# app/services/customers.py
"""
👤 КЛИЕНТЫ

ОДНО правило "найти или создать" для всего приложения:
- ищем по user_id, если его нет - по телефону
- телефон чужого user_id не отдаем (ValidationError), телефон без
  user_id привязываем к пришедшему user_id
- не нашли → создаем
- два запроса одновременно? Уникальные индексы (user_id, phone) не дадут
  создать дубль: второй получит IntegrityError, откатится и вернет
  уже существующую запись.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import RemoteCallFailure, ValidationError
from app.utils.phone import normalize_phone, validate_phone
from infrastructure.database.models import Customer
from infrastructure.database.repositories import CustomerRepository

import structlog

logger = structlog.get_logger()

INVALID_PHONE_TITLE = "מספר טלפון לא תקין"
INVALID_PHONE_DETAILS = "מספר הטלפון חייב להיות בפורמט ישראלי (10 ספרות, מתחיל ב-0)"
PHONE_TAKEN_TITLE = "מספר הטלפון כבר רשום"
PHONE_TAKEN_DETAILS = "מספר הטלפון משויך לחשבון אחר"

# Дополнительные поля анкеты регистрации
PROFILE_FIELDS = (
    "address",
    "city",
    "delivery_instructions",
    "emergency_contact",
    "preferred_delivery_time",
    "gas_supplier_license",
)


@dataclass(frozen=True)
class CustomerIdentity:
    """Кто заказывает: user_id из сессии и/или телефон."""
    user_id: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.user_id and not self.phone


def require_valid_phone(phone: str) -> str:
    """Нормализовать телефон или кинуть ValidationError."""
    phone = normalize_phone(phone)
    if not validate_phone(phone):
        raise ValidationError(INVALID_PHONE_DETAILS, title=INVALID_PHONE_TITLE)
    return phone


class CustomerService:
    """Сервис для безопасного создания клиентов."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.customers = CustomerRepository(session)

    async def get_or_create(self, identity: CustomerIdentity) -> Customer:
        """
        Получить или создать клиента (защита от race condition).

        НЕ делает commit: вызывающий код решает, когда фиксировать
        (при отправке заказа клиент и заказ пишутся одной транзакцией).
        """
        if identity is None or identity.is_empty:
            raise ValidationError("יש להתחבר כדי לשלוח הזמנה", title="נדרשת התחברות")

        phone = normalize_phone(identity.phone) if identity.phone else None

        customer = await self.customers.find(identity.user_id, phone)
        if customer:
            return self._claim(customer, identity.user_id)

        if not phone or not validate_phone(phone):
            raise ValidationError(INVALID_PHONE_DETAILS, title=INVALID_PHONE_TITLE)

        try:
            return await self.customers.create(
                user_id=identity.user_id,
                name=identity.name,
                phone=phone,
            )

        except IntegrityError:
            # Другой запрос создал клиента одновременно
            await self.session.rollback()

            customer = await self.customers.find(identity.user_id, phone)
            if customer:
                logger.info(
                    "customer_already_exists_after_race",
                    user_id=identity.user_id,
                    phone=phone
                )
                return self._claim(customer, identity.user_id)

            raise

    @staticmethod
    def _claim(customer: Customer, user_id: Optional[str]) -> Customer:
        """
        Найден по телефону под другим user_id → отказ.
        У найденного нет user_id → привязываем (запишется вместе с commit).
        """
        if not user_id or customer.user_id == user_id:
            return customer

        if customer.user_id:
            logger.warning(
                "customer_phone_owned_by_other_user",
                customer_id=customer.id,
                user_id=user_id
            )
            raise ValidationError(PHONE_TAKEN_DETAILS, title=PHONE_TAKEN_TITLE)

        customer.user_id = user_id
        logger.info("customer_user_linked", customer_id=customer.id, user_id=user_id)
        return customer

    async def create_or_get_id(self, identity: CustomerIdentity) -> int:
        """
        Для /functions/v1/create-or-get-customer: вернуть только id.
        """
        if not identity.user_id or not identity.name or not identity.phone:
            raise ValidationError("userId, name, phone", title="Missing required fields")

        try:
            customer = await self.get_or_create(identity)
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            logger.error("customer_create_error", error=str(e))
            raise RemoteCallFailure(str(e), title="Error creating customer")
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("customer_query_error", error=str(e))
            raise RemoteCallFailure(str(e), title="Error querying customer")

        return customer.id

    async def register(self, phone: str, name: str, **profile) -> Customer:
        """
        Регистрация нового клиента (анкета).

        Телефон уже есть в базе → ValidationError.
        """
        if not phone or not name:
            raise ValidationError("מספר טלפון ושם נדרשים", title="חסרים פרטים נדרשים")

        phone = require_valid_phone(phone)

        if await self.customers.get_by_phone(phone):
            raise ValidationError("מספר הטלפון כבר רשום במערכת", title="רישום נכשל")

        fields = {k: v for k, v in profile.items() if k in PROFILE_FIELDS and v}

        try:
            customer = await self.customers.create(phone=phone, name=name, **fields)
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise ValidationError("מספר הטלפון כבר רשום במערכת", title="רישום נכשל")
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("customer_register_error", phone=phone, error=str(e))
            raise RemoteCallFailure(str(e), title="שגיאה ברישום לקוח")

        logger.info("customer_registered", customer_id=customer.id, phone=phone)
        return customer
