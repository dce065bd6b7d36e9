# app/api/dependencies.py
"""
Зависимости FastAPI (Depends).

- get_db_session     - сессия БД на запрос
- get_storage        - Redis / память (app.state.storage)
- get_auth_session   - сессия клиента по токену (Authorization: Bearer ...)
- require_customer   - клиент обязан быть залогинен
- require_admin      - только админ
"""

from typing import Optional

from aiogram.fsm.storage.base import BaseStorage
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import AuthenticationError
from app.services.customers import CustomerIdentity
from app.services.drafts import DraftStore
from app.services.sessions import AuthSession, SessionStore
from app.services.throttling import SendThrottle
from infrastructure.database.base import get_db_session
from infrastructure.database.models import Customer
from infrastructure.database.repositories import CustomerRepository

TOKEN_HEADER = "X-Session-Token"


def get_storage(request: Request) -> BaseStorage:
    return request.app.state.storage


def get_session_store(storage: BaseStorage = Depends(get_storage)) -> SessionStore:
    return SessionStore(storage)


def get_draft_store(storage: BaseStorage = Depends(get_storage)) -> DraftStore:
    return DraftStore(storage)


def get_send_throttle(storage: BaseStorage = Depends(get_storage)) -> SendThrottle:
    return SendThrottle(storage)


def extract_token(request: Request) -> Optional[str]:
    """Authorization: Bearer <token> или X-Session-Token: <token>"""
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return request.headers.get(TOKEN_HEADER) or None


async def get_auth_session(
    request: Request,
    store: SessionStore = Depends(get_session_store)
) -> Optional[AuthSession]:
    return await store.load(extract_token(request))


async def require_session(
    auth: Optional[AuthSession] = Depends(get_auth_session)
) -> AuthSession:
    if auth is None:
        raise AuthenticationError("יש להתחבר מחדש")
    return auth


async def require_customer(
    auth: AuthSession = Depends(require_session),
    session: AsyncSession = Depends(get_db_session)
) -> Customer:
    if auth.customer_id is None:
        raise AuthenticationError("נדרש חשבון לקוח")

    customer = await CustomerRepository(session).get_by_id(auth.customer_id)
    if customer is None:
        raise AuthenticationError("הלקוח לא נמצא")
    return customer


async def get_optional_customer(
    auth: Optional[AuthSession] = Depends(get_auth_session),
    session: AsyncSession = Depends(get_db_session)
) -> Optional[Customer]:
    """Клиент если залогинен, иначе None (каталог доступен всем)."""
    if auth is None or auth.customer_id is None:
        return None
    return await CustomerRepository(session).get_by_id(auth.customer_id)


async def require_admin(auth: AuthSession = Depends(require_session)) -> AuthSession:
    if not auth.is_admin:
        raise AuthenticationError("נדרשת הרשאת מנהל", title="אין הרשאה")
    return auth


def identity_of(customer: Customer) -> CustomerIdentity:
    return CustomerIdentity(user_id=customer.user_id, name=customer.name, phone=customer.phone)
