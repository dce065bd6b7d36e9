# app/api/routes/service_requests.py
"""
Вызовы техника со стороны клиента.

Новый вызов уходит оператору в Telegram (в фоне), как и заказ.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import require_customer
from app.api.schemas import ServiceRequestIn
from app.api.serializers import service_request_to_dict
from app.bot.notifications import notify_operator_service_request
from app.services.delivery_days import local_today
from app.services.service_requests import ServiceRequestService
from infrastructure.database.base import get_db_session
from infrastructure.database.models import Customer

router = APIRouter(prefix="/api/service-requests", tags=["service-requests"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def open_service_request(
    payload: ServiceRequestIn,
    background_tasks: BackgroundTasks,
    customer: Customer = Depends(require_customer),
    session: AsyncSession = Depends(get_db_session)
):
    request = await ServiceRequestService(session).open_request(
        customer,
        payload.service_type,
        payload.description,
        preferred_date=payload.preferred_date,
        preferred_time_slot=payload.preferred_time_slot,
        city=payload.city,
        address=payload.address,
        customer_phone=payload.customer_phone,
        today=local_today(),
    )
    background_tasks.add_task(notify_operator_service_request, request.id)
    return service_request_to_dict(request)


@router.get("")
async def my_service_requests(
    customer: Customer = Depends(require_customer),
    session: AsyncSession = Depends(get_db_session)
):
    requests = await ServiceRequestService(session).for_customer(customer.id)
    return [service_request_to_dict(r) for r in requests]


@router.get("/{request_id}")
async def get_service_request(
    request_id: str,
    customer: Customer = Depends(require_customer),
    session: AsyncSession = Depends(get_db_session)
):
    request = await ServiceRequestService(session).get(request_id, customer_id=customer.id)
    return service_request_to_dict(request)
