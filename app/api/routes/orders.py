# app/api/routes/orders.py
"""
Заказы клиента.

После успешной отправки оператору уходит уведомление в Telegram (в фоне).
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_draft_store, identity_of, require_customer
from app.api.schemas import ItemQuantityRequest, SubmitOrderRequest
from app.bot.notifications import notify_operator_new_order
from app.ordering import OrderSelection
from app.services.drafts import DraftStore
from app.services.history import OrderHistoryReader
from app.services.orders import OrderService
from infrastructure.database.base import get_db_session
from infrastructure.database.models import Customer, OrderStatus

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def submit_order(
    payload: SubmitOrderRequest,
    background_tasks: BackgroundTasks,
    customer: Customer = Depends(require_customer),
    drafts: DraftStore = Depends(get_draft_store),
    session: AsyncSession = Depends(get_db_session)
):
    """
    Отправить заказ.

    quantities в теле → заказываем их, иначе - черновик корзины.
    Цены и итог считает сервер.
    """
    if payload.quantities is None:
        selection = await drafts.load(customer.id)
    else:
        selection = OrderSelection.from_quantities(payload.quantities)

    preferences = {
        product_id: pref.to_preference()
        for product_id, pref in payload.preferences.items()
        if product_id in selection.quantities
    }

    result = await OrderService(session).submit_order(
        identity_of(customer),
        selection,
        target_date=payload.target_date,
        preferences=preferences,
    )

    await drafts.clear(customer.id)
    background_tasks.add_task(notify_operator_new_order, result.order_id)

    return result.to_dict()


@router.get("")
async def order_history(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    statuses: Optional[List[OrderStatus]] = Query(default=None, alias="status"),
    customer: Customer = Depends(require_customer),
    session: AsyncSession = Depends(get_db_session)
):
    groups = await OrderHistoryReader(session).history(
        customer_id=customer.id,
        start=start,
        end=end,
        statuses=statuses,
    )
    return [group.to_dict() for group in groups]


@router.get("/current")
async def current_orders(
    customer: Customer = Depends(require_customer),
    session: AsyncSession = Depends(get_db_session)
):
    groups = await OrderHistoryReader(session).current(customer.id)
    return [group.to_dict() for group in groups]


@router.get("/{order_id}")
async def get_order(
    order_id: int,
    customer: Customer = Depends(require_customer),
    session: AsyncSession = Depends(get_db_session)
):
    group = await OrderHistoryReader(session).get(order_id, customer_id=customer.id)
    return group.to_dict()


@router.patch("/{order_id}/items/{item_id}")
async def update_item_quantity(
    order_id: int,
    item_id: int,
    payload: ItemQuantityRequest,
    customer: Customer = Depends(require_customer),
    session: AsyncSession = Depends(get_db_session)
):
    """quantity <= 0 удаляет строку."""
    await OrderService(session).update_item_quantity(
        order_id, item_id, payload.quantity, customer_id=customer.id
    )
    group = await OrderHistoryReader(session).get(order_id, customer_id=customer.id)
    return group.to_dict()


@router.post("/{order_id}/cancel")
async def cancel_order(
    order_id: int,
    customer: Customer = Depends(require_customer),
    session: AsyncSession = Depends(get_db_session)
):
    await OrderService(session).cancel_order(order_id, customer_id=customer.id)
    group = await OrderHistoryReader(session).get(order_id, customer_id=customer.id)
    return group.to_dict()


@router.post("/{order_id}/reorder", status_code=status.HTTP_201_CREATED)
async def reorder(
    order_id: int,
    background_tasks: BackgroundTasks,
    customer: Customer = Depends(require_customer),
    session: AsyncSession = Depends(get_db_session)
):
    result = await OrderService(session).reorder(
        order_id, identity_of(customer), customer_id=customer.id
    )
    background_tasks.add_task(notify_operator_new_order, result.order_id)
    return result.to_dict()
