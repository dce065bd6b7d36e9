# app/api/routes/functions.py
"""
Совместимость со старыми serverless функциями:
    POST /functions/v1/create-or-get-customer
    POST /functions/v1/register-customer
    POST /functions/v1/send-verification-code
    POST /functions/v1/verify-phone-code

Ответы в том же формате, что и раньше.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_send_throttle, get_session_store
from app.api.schemas import (
    CreateOrGetCustomerRequest,
    RegisterCustomerRequest,
    SendCodeRequest,
    VerifyCodeRequest,
)
from app.api.serializers import customer_to_dict
from app.services.customers import CustomerIdentity, CustomerService
from app.services.sessions import SessionStore
from app.services.throttling import SendThrottle
from app.services.verification import VerificationService
from infrastructure.database.base import get_db_session

router = APIRouter(prefix="/functions/v1", tags=["functions"])


@router.post("/create-or-get-customer")
async def create_or_get_customer(
    payload: CreateOrGetCustomerRequest,
    session: AsyncSession = Depends(get_db_session)
):
    """
    {"userId": "...", "name": "...", "phone": "05..."} → {"customerId": 7}
    """
    customer_id = await CustomerService(session).create_or_get_id(
        CustomerIdentity(user_id=payload.user_id, name=payload.name, phone=payload.phone)
    )
    return {"customerId": customer_id}


@router.post("/register-customer", status_code=status.HTTP_201_CREATED)
async def register_customer(
    payload: RegisterCustomerRequest,
    session: AsyncSession = Depends(get_db_session)
):
    customer = await CustomerService(session).register(
        phone=payload.phone,
        name=payload.name,
        **payload.model_dump(exclude={"phone", "name"})
    )
    return {
        "success": True,
        "message": "המשתמש נוצר בהצלחה",
        "user": customer_to_dict(customer),
    }


@router.post("/send-verification-code")
async def send_verification_code(
    payload: SendCodeRequest,
    session: AsyncSession = Depends(get_db_session),
    sessions: SessionStore = Depends(get_session_store),
    throttle: SendThrottle = Depends(get_send_throttle)
):
    service = VerificationService(session, sessions, throttle)
    return await service.send_code(payload.phone, payload.method)


@router.post("/verify-phone-code")
async def verify_phone_code(
    payload: VerifyCodeRequest,
    session: AsyncSession = Depends(get_db_session),
    sessions: SessionStore = Depends(get_session_store)
):
    result = await VerificationService(session, sessions).verify_code(payload.phone, payload.code)
    return {
        "success": True,
        "message": "אימות הצליח",
        "user": customer_to_dict(result.customer),
        "token": result.session.token,
        "expires_at": result.session.expires_at,
    }
