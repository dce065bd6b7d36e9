# app/services/service_requests.py
"""
🔧 ВЫЗОВЫ ТЕХНИКА

Клиент: открыть вызов (тип, описание, удобная дата / время, адрес).
Админ: список с фильтрами, статус, приоритет, заметки техника.

Утечка газа (emergency) сразу получает приоритет urgent
и уходит оператору в Telegram, как новый заказ.
"""

from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import LookupFailure, RemoteCallFailure, ValidationError
from app.utils.phone import normalize_phone, validate_phone
from infrastructure.database.models import (
    Customer,
    ServiceRequest,
    ServiceRequestPriority,
    ServiceRequestStatus,
    ServiceType,
    TimeSlot,
    utcnow,
)
from infrastructure.database.repositories import ServiceRequestRepository

import structlog

logger = structlog.get_logger()

SUBMIT_ERROR_TITLE = "שגיאה בשליחת הבקשה"
UPDATE_ERROR_TITLE = "שגיאה בעדכון בקשת השירות"

SERVICE_TYPE_NAMES = {
    ServiceType.INSTALLATION: "התקנת מערכת גז",
    ServiceType.REPAIR: "תיקון תקלה",
    ServiceType.MAINTENANCE: "בדיקה תקופתית",
    ServiceType.EMERGENCY: "חירום - דליפת גז",
    ServiceType.CONSULTATION: "ייעוץ",
    ServiceType.OTHER: "אחר",
}

STATUS_NAMES = {
    ServiceRequestStatus.PENDING: "ממתינה",
    ServiceRequestStatus.IN_PROGRESS: "בטיפול",
    ServiceRequestStatus.COMPLETED: "הושלמה",
    ServiceRequestStatus.CANCELLED: "בוטלה",
}

ALLOWED_TRANSITIONS = {
    ServiceRequestStatus.PENDING: {
        ServiceRequestStatus.IN_PROGRESS,
        ServiceRequestStatus.COMPLETED,
        ServiceRequestStatus.CANCELLED,
    },
    ServiceRequestStatus.IN_PROGRESS: {
        ServiceRequestStatus.COMPLETED,
        ServiceRequestStatus.CANCELLED,
    },
    ServiceRequestStatus.COMPLETED: set(),
    ServiceRequestStatus.CANCELLED: set(),
}


class ServiceRequestService:

    def __init__(self, session: AsyncSession):
        self.session = session
        self.requests = ServiceRequestRepository(session)

    async def _commit(self, event: str, title: str, request_id: str = None):
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(event, request_id=request_id, error=str(e))
            raise RemoteCallFailure(str(e), title=title)

    # ==========================================
    # КЛИЕНТ
    # ==========================================

    async def open_request(
        self,
        customer: Customer,
        service_type: ServiceType,
        description: str,
        preferred_date: Optional[date] = None,
        preferred_time_slot: Optional[TimeSlot] = None,
        city: Optional[str] = None,
        address: Optional[str] = None,
        customer_phone: Optional[str] = None,
        today: Optional[date] = None,
    ) -> ServiceRequest:
        """
        Открыть вызов.

        Пустое описание / дата в прошлом / плохой телефон → ValidationError.
        Город, адрес и телефон по умолчанию берутся из профиля клиента.
        """
        if not service_type or not description or not description.strip():
            raise ValidationError("יש למלא את כל השדות החובה", title=SUBMIT_ERROR_TITLE)

        if preferred_date and today and preferred_date < today:
            raise ValidationError("התאריך המועדף כבר עבר", title=SUBMIT_ERROR_TITLE)

        phone = normalize_phone(customer_phone) if customer_phone else customer.phone
        if not validate_phone(phone):
            raise ValidationError("מספר טלפון לא תקין", title=SUBMIT_ERROR_TITLE)

        try:
            service_type = ServiceType(service_type)
        except ValueError:
            raise ValidationError(f"service_type={service_type!r}", title=SUBMIT_ERROR_TITLE)

        priority = (
            ServiceRequestPriority.URGENT
            if service_type == ServiceType.EMERGENCY
            else ServiceRequestPriority.NORMAL
        )

        request = await self.requests.create(
            customer_id=customer.id,
            service_type=service_type,
            title=SERVICE_TYPE_NAMES[service_type],
            description=description.strip(),
            priority=priority,
            status=ServiceRequestStatus.PENDING,
            preferred_date=preferred_date,
            preferred_time_slot=preferred_time_slot,
            city=(city or customer.city or None),
            address=(address or customer.address or None),
            customer_phone=phone,
        )
        await self._commit("service_request_create_error", SUBMIT_ERROR_TITLE)

        logger.info(
            "service_request_opened",
            request_id=request.id,
            customer_id=customer.id,
            service_type=service_type.value,
            priority=priority.value
        )
        return await self.get(request.id)

    async def for_customer(self, customer_id: int) -> List[ServiceRequest]:
        return await self.requests.list_filtered(customer_id=customer_id)

    # ==========================================
    # АДМИН
    # ==========================================

    async def get(self, request_id: str, customer_id: Optional[int] = None) -> ServiceRequest:
        """customer_id задан → чужой вызов считается ненайденным."""
        request = await self.requests.get_by_id(request_id)
        if not request or (customer_id is not None and request.customer_id != customer_id):
            raise LookupFailure(f"service request {request_id}", title="בקשת השירות לא נמצאה")
        return request

    async def list_filtered(
        self,
        status: Optional[ServiceRequestStatus] = None,
        priority: Optional[ServiceRequestPriority] = None,
        customer_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[ServiceRequest]:
        try:
            return await self.requests.list_filtered(
                customer_id=customer_id,
                status=status,
                priority=priority,
                start=start,
                end=end,
            )
        except SQLAlchemyError as e:
            logger.error("service_requests_fetch_error", error=str(e))
            raise RemoteCallFailure(str(e), title="שגיאה בטעינת בקשות השירות")

    async def update(self, request_id: str, data: dict) -> ServiceRequest:
        """
        Статус / приоритет / заметки техника / удобная дата.

        Переход в completed ставит completed_at.
        Из completed и cancelled статус больше не меняется.
        """
        request = await self.get(request_id)

        if data.get("status") is not None:
            new_status = ServiceRequestStatus(data["status"])
            if new_status != request.status:
                if new_status not in ALLOWED_TRANSITIONS[request.status]:
                    raise ValidationError(
                        f"{request.status.value} → {new_status.value}",
                        title=UPDATE_ERROR_TITLE
                    )
                request.status = new_status
                if new_status == ServiceRequestStatus.COMPLETED:
                    request.completed_at = utcnow()

        if data.get("priority") is not None:
            request.priority = ServiceRequestPriority(data["priority"])

        for key in ("technician_notes", "preferred_date", "preferred_time_slot"):
            if key in data:
                setattr(request, key, data[key])

        request.updated_at = utcnow()
        await self._commit("service_request_update_error", UPDATE_ERROR_TITLE, request_id)

        logger.info("service_request_updated", request_id=request_id, status=request.status.value)
        return await self.get(request_id)
