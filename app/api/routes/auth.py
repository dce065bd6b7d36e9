# app/api/routes/auth.py
"""Текущая сессия и выход."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_session_store, require_session
from app.api.serializers import customer_to_dict
from app.services.sessions import AuthSession, SessionStore
from infrastructure.database.base import get_db_session
from infrastructure.database.repositories import CustomerRepository

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.get("/me")
async def me(
    auth: AuthSession = Depends(require_session),
    session: AsyncSession = Depends(get_db_session)
):
    customer = None
    if auth.customer_id is not None:
        customer = await CustomerRepository(session).get_by_id(auth.customer_id)

    return {
        "role": auth.role.value,
        "expires_at": auth.expires_at,
        "customer": customer_to_dict(customer) if customer else None,
    }


@router.post("/logout")
async def logout(
    auth: AuthSession = Depends(require_session),
    store: SessionStore = Depends(get_session_store)
):
    await store.close(auth.token)
    return {"success": True}
