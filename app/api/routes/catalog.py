# app/api/routes/catalog.py
"""
Каталог. Залогиненный клиент видит свои особые цены.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_optional_customer
from app.services.catalog import CatalogService
from infrastructure.database.base import get_db_session
from infrastructure.database.models import Customer

router = APIRouter(prefix="/api/products", tags=["catalog"])


@router.get("")
async def list_products(
    category: Optional[str] = None,
    customer: Optional[Customer] = Depends(get_optional_customer),
    session: AsyncSession = Depends(get_db_session)
):
    products = await CatalogService(session).list_products(customer)
    if category:
        products = [p for p in products if p.category == category]
    return [p.to_dict() for p in products]


@router.get("/{product_id}")
async def get_product(
    product_id: str,
    customer: Optional[Customer] = Depends(get_optional_customer),
    session: AsyncSession = Depends(get_db_session)
):
    product = await CatalogService(session).get_product(product_id, customer)
    return product.to_dict()
