# app/services/verification.py
"""
📱 ПОДТВЕРЖДЕНИЕ ТЕЛЕФОНА

1. send_code   → 6 цифр, живет 10 минут, уходит в WhatsApp или SMS
2. verify_code → проверка; после max_login_attempts неверных попыток
                 номер блокируется на login_lock_minutes
Успех → телефон подтвержден, открывается сессия.
"""

import hmac
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import (
    AuthenticationError,
    LookupFailure,
    RemoteCallFailure,
    TooManyRequests,
    ValidationError,
)
from app.services import messaging
from app.services.customers import require_valid_phone
from app.services.sessions import AuthSession, SessionStore
from app.services.throttling import SendThrottle
from config.settings import config
from infrastructure.database.models import Customer, utcnow
from infrastructure.database.repositories import CustomerRepository

import structlog

logger = structlog.get_logger()

VERIFY_FAILED_TITLE = "אימות נכשל"
WRONG_CODE_DETAILS = "קוד אימות שגוי או פג תוקף"


def generate_code() -> str:
    return f"{secrets.randbelow(10 ** 6):06d}"


@dataclass(frozen=True)
class VerificationResult:
    customer: Customer
    session: AuthSession


class VerificationService:

    def __init__(
        self,
        session: AsyncSession,
        sessions: SessionStore,
        throttle: Optional[SendThrottle] = None
    ):
        self.session = session
        self.sessions = sessions
        self.throttle = throttle
        self.customers = CustomerRepository(session)

    async def _commit(self, event: str, phone: str):
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(event, phone=phone, error=str(e))
            raise RemoteCallFailure(str(e), title="שגיאה בשליחת קוד אימות")

    # ==========================================
    # ОТПРАВИТЬ КОД
    # ==========================================

    async def send_code(self, phone: str, method: str) -> dict:
        phone = require_valid_phone(phone)

        if method not in messaging.METHODS:
            raise ValidationError(
                "השיטה חייבת להיות 'whatsapp' או 'sms'",
                title="שיטת שליחה לא תקינה"
            )

        if self.throttle and not await self.throttle.hit(phone):
            raise TooManyRequests("נשלחו יותר מדי קודים, נסה שוב בעוד מספר דקות")

        customer = await self.customers.get_by_phone(phone)
        if not customer:
            raise LookupFailure("הלקוח לא נמצא במערכת", title="שגיאה בשליחת קוד אימות")

        code = generate_code()
        customer.verification_code = code
        customer.verification_code_expires_at = utcnow() + timedelta(
            minutes=config.verification_code_ttl_minutes
        )
        await self._commit("verification_code_save_error", phone)

        sent = await messaging.send_message(
            phone,
            messaging.verification_message(code, method),
            method
        )
        logger.info("verification_code_sent", phone=phone, method=method, delivered=sent)

        response = {
            "success": True,
            "message": "קוד אימות נשלח בווטסאפ" if method == "whatsapp" else "קוד אימות נשלח ב-SMS",
            "method": method,
        }
        if config.is_development:
            response["code"] = code
        return response

    # ==========================================
    # ПРОВЕРИТЬ КОД
    # ==========================================

    async def verify_code(self, phone: str, code: str) -> VerificationResult:
        if not phone or not code:
            raise ValidationError("חובה לספק מספר טלפון וקוד אימות", title="נתונים חסרים")

        phone = require_valid_phone(phone)
        customer = await self.customers.get_by_phone(phone)
        if not customer:
            raise AuthenticationError(WRONG_CODE_DETAILS, title=VERIFY_FAILED_TITLE)

        now = utcnow()

        if customer.locked_until and customer.locked_until > now:
            logger.warning("verification_locked", phone=phone)
            raise AuthenticationError(
                "החשבון נעול זמנית, נסה שוב מאוחר יותר",
                title=VERIFY_FAILED_TITLE
            )

        valid = (
            customer.verification_code is not None
            and customer.verification_code_expires_at is not None
            and customer.verification_code_expires_at > now
            and hmac.compare_digest(customer.verification_code, str(code).strip())
        )

        if not valid:
            customer.login_attempts = (customer.login_attempts or 0) + 1
            if customer.login_attempts >= config.max_login_attempts:
                customer.locked_until = now + timedelta(minutes=config.login_lock_minutes)
                customer.login_attempts = 0
                customer.verification_code = None
                logger.warning("verification_lock_applied", phone=phone)
            await self._commit("verification_attempt_save_error", phone)
            raise AuthenticationError(WRONG_CODE_DETAILS, title=VERIFY_FAILED_TITLE)

        customer.phone_verified = True
        customer.verification_code = None
        customer.verification_code_expires_at = None
        customer.login_attempts = 0
        customer.locked_until = None
        customer.last_login_at = now
        await self._commit("verification_success_save_error", phone)

        auth_session = await self.sessions.open(
            customer_id=customer.id,
            user_id=customer.user_id,
            role=customer.role,
        )
        logger.info("phone_verified", customer_id=customer.id)
        return VerificationResult(customer=customer, session=auth_session)
