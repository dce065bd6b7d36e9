# app/services/catalog.py
"""
📦 КАТАЛОГ ТОВАРОВ

Читает товары и накладывает особые цены из прайс-листа клиента.
Цена, которую видит клиент (и которая попадает в заказ) = CatalogProduct.price.

Клиент каталог не меняет. Создание / изменение товаров - только админ.
"""

from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import LookupFailure, RemoteCallFailure, ValidationError
from infrastructure.database.models import Customer, Product, utcnow
from infrastructure.database.repositories import ProductRepository

import structlog

logger = structlog.get_logger()


@dataclass(frozen=True)
class CatalogProduct:
    """Товар с ценой, уже пересчитанной для конкретного клиента."""
    id: str
    name: str
    price: Decimal
    base_price: Decimal
    has_custom_price: bool = False
    description: Optional[str] = None
    image: Optional[str] = None
    category: Optional[str] = None
    sku: Optional[str] = None
    available: bool = True
    featured: bool = False
    uom: Optional[str] = None
    package_amount: Optional[int] = None
    quantity_increment: Optional[int] = None

    def to_dict(self) -> dict:
        return asdict(self)


def resolve_product(product: Product, custom_prices: Dict[str, Decimal]) -> CatalogProduct:
    """Наложить особую цену (если есть) на базовую."""
    custom = custom_prices.get(product.id)
    return CatalogProduct(
        id=product.id,
        name=product.name,
        price=custom if custom is not None else product.price,
        base_price=product.price,
        has_custom_price=custom is not None,
        description=product.description,
        image=product.image,
        category=product.category,
        sku=product.sku,
        available=bool(product.available),
        featured=bool(product.featured),
        uom=product.uom,
        package_amount=product.package_amount,
        quantity_increment=product.quantity_increment,
    )


# Поля, которые админ может менять
EDITABLE_FIELDS = (
    "name", "description", "price", "image", "category", "sku",
    "available", "featured", "uom", "package_amount", "quantity_increment",
)


class CatalogService:
    """
    Каталог.

    Пример:
        catalog = CatalogService(session)
        products = await catalog.list_products(customer)
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.products = ProductRepository(session)

    async def _custom_prices(self, customer: Optional[Customer]) -> Dict[str, Decimal]:
        if customer is None:
            return {}
        return await self.products.custom_prices(customer.price_list_id)

    # ==========================================
    # ЧТЕНИЕ
    # ==========================================

    async def list_products(
        self,
        customer: Optional[Customer] = None,
        only_available: bool = True
    ) -> List[CatalogProduct]:
        try:
            rows = await self.products.list_all(only_available=only_available)
            custom_prices = await self._custom_prices(customer)
        except SQLAlchemyError as e:
            logger.error("catalog_fetch_error", error=str(e))
            raise RemoteCallFailure(str(e), title="שגיאה בטעינת המוצרים")

        return [resolve_product(p, custom_prices) for p in rows]

    async def get_product(
        self,
        product_id: str,
        customer: Optional[Customer] = None
    ) -> CatalogProduct:
        product = await self.products.get_by_id(product_id)
        if not product:
            raise LookupFailure(f"product {product_id}", title="המוצר לא נמצא")
        return resolve_product(product, await self._custom_prices(customer))

    async def resolve_many(
        self,
        product_ids: Iterable[str],
        customer: Optional[Customer] = None
    ) -> Dict[str, CatalogProduct]:
        """
        Товары для сводки заказа: {id: CatalogProduct}.

        Недоступные товары не возвращаются - сводка их просто пропустит.
        """
        rows = await self.products.get_many(product_ids)
        custom_prices = await self._custom_prices(customer)
        return {
            p.id: resolve_product(p, custom_prices)
            for p in rows
            if p.available
        }

    # ==========================================
    # АДМИН
    # ==========================================

    async def create_product(self, data: dict) -> CatalogProduct:
        if not data.get("name") or data.get("price") is None:
            raise ValidationError("name, price", title="חסרים פרטים נדרשים")
        if Decimal(str(data["price"])) < 0:
            raise ValidationError("price", title="מחיר לא תקין")

        fields = {k: v for k, v in data.items() if k in EDITABLE_FIELDS or k == "id"}
        if not fields.get("id"):
            fields.pop("id", None)

        try:
            product = await self.products.create(**fields)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("product_create_error", error=str(e))
            raise RemoteCallFailure(str(e), title="שגיאה ביצירת מוצר")

        logger.info("product_created", product_id=product.id, name=product.name)
        return resolve_product(product, {})

    async def update_product(self, product_id: str, data: dict) -> CatalogProduct:
        product = await self.products.get_by_id(product_id)
        if not product:
            raise LookupFailure(f"product {product_id}", title="המוצר לא נמצא")

        if data.get("price") is not None and Decimal(str(data["price"])) < 0:
            raise ValidationError("price", title="מחיר לא תקין")

        for key, value in data.items():
            if key in EDITABLE_FIELDS:
                setattr(product, key, value)
        product.updated_at = utcnow()

        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("product_update_error", product_id=product_id, error=str(e))
            raise RemoteCallFailure(str(e), title="שגיאה בעדכון מוצר")

        logger.info("product_updated", product_id=product_id)
        return resolve_product(product, {})
