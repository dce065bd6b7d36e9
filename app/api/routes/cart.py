# app/api/routes/cart.py
"""
Корзина:
- черновик (сохраняется между визитами)
- сводка с ценами клиента (ничего не записывает)
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_draft_store, get_optional_customer, require_customer
from app.api.schemas import SelectionIn
from app.ordering import build_order_summary
from app.services.catalog import CatalogService
from app.services.drafts import DraftStore
from infrastructure.database.base import get_db_session
from infrastructure.database.models import Customer

router = APIRouter(prefix="/api/cart", tags=["cart"])


@router.get("/draft")
async def get_draft(
    customer: Customer = Depends(require_customer),
    drafts: DraftStore = Depends(get_draft_store)
):
    selection = await drafts.load(customer.id)
    return {**selection.to_dict(), "total_items": selection.total_items}


@router.put("/draft")
async def save_draft(
    payload: SelectionIn,
    customer: Customer = Depends(require_customer),
    drafts: DraftStore = Depends(get_draft_store)
):
    selection = payload.to_selection()
    await drafts.save(customer.id, selection)
    return {**selection.to_dict(), "total_items": selection.total_items}


@router.delete("/draft")
async def clear_draft(
    customer: Customer = Depends(require_customer),
    drafts: DraftStore = Depends(get_draft_store)
):
    await drafts.clear(customer.id)
    return {"success": True}


@router.post("/summary")
async def cart_summary(
    payload: SelectionIn,
    customer: Customer = Depends(get_optional_customer),
    session: AsyncSession = Depends(get_db_session)
):
    selection = payload.to_selection()
    products = await CatalogService(session).resolve_many(selection.quantities.keys(), customer)
    return build_order_summary(selection, products).to_dict()
