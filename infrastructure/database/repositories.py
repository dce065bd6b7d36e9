# infrastructure/database/repositories.py
"""
Repository паттерн.

Вместо того чтобы писать:
    session.execute(select(...))
везде в коде, мы создаем методы:
    repo.get_by_phone("0501234567")
    repo.create(...)

ВАЖНО: репозитории НЕ делают commit - только flush().
Commit / rollback делает сервис, потому что один заказ = одна транзакция
(клиент + шапка заказа + строки либо записываются вместе, либо никак).

Для связанных данных используем selectinload() (без N+1 запросов).
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy import case, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .models import (
    Customer,
    DeliveryDay,
    Order,
    OrderItem,
    OrderStatus,
    PriceList,
    PriceListItem,
    Product,
    ServiceRequest,
    ServiceRequestPriority,
    ServiceRequestStatus,
    SystemUpdate,
    utcnow,
)

import structlog

logger = structlog.get_logger()


# ==========================================
# REPOSITORY: Customer (работа с клиентами)
# ==========================================

class CustomerRepository:
    """
    Репозиторий для работы с клиентами.
    """

    def __init__(self, session: AsyncSession):
        """При создании репозитория передаем сессию БД"""
        self.session = session

    async def get_by_id(self, customer_id: int) -> Optional[Customer]:
        stmt = select(Customer).where(Customer.id == customer_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_by_user_id(self, user_id: str) -> Optional[Customer]:
        """
        Найти клиента по ID пользователя из авторизации.

        Пример:
            customer = await repo.get_by_user_id("b1f0...")
        """
        stmt = select(Customer).where(Customer.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_by_phone(self, phone: str) -> Optional[Customer]:
        """
        Найти клиента по телефону (формат 05XXXXXXXX).
        """
        stmt = select(Customer).where(Customer.phone == phone)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def find(self, user_id: Optional[str], phone: Optional[str]) -> Optional[Customer]:
        """
        Единое правило поиска: сначала user_id, потом телефон.
        """
        if user_id:
            customer = await self.get_by_user_id(user_id)
            if customer:
                return customer
        if phone:
            return await self.get_by_phone(phone)
        return None

    async def create(self, **fields) -> Customer:
        """
        Добавить клиента и получить его id (flush, без commit).

        Если такой user_id / phone уже есть - БД кинет IntegrityError.
        """
        customer = Customer(**fields)
        self.session.add(customer)
        await self.session.flush()
        logger.info("customer_created", customer_id=customer.id, phone=customer.phone)
        return customer

    async def list_all(self, search: Optional[str] = None) -> List[Customer]:
        """
        Все клиенты по имени (экран админа).
        search - кусок имени, телефона или города.
        """
        stmt = select(Customer).order_by(Customer.name, Customer.id)
        if search:
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(or_(
                Customer.name.ilike(pattern),
                Customer.phone.ilike(pattern),
                Customer.city.ilike(pattern),
            ))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def order_stats(self) -> Dict[int, dict]:
        """
        По каждому клиенту одним запросом:
        {customer_id: {"total_orders", "active_orders", "open_balance"}}

        active = pending, open_balance = сумма pending + processing.
        """
        open_statuses = (OrderStatus.PENDING, OrderStatus.PROCESSING)
        stmt = select(
            Order.customer_id,
            func.count(Order.id),
            func.sum(case((Order.status == OrderStatus.PENDING, 1), else_=0)),
            func.sum(case((Order.status.in_(open_statuses), Order.total), else_=0)),
        ).group_by(Order.customer_id)

        result = await self.session.execute(stmt)
        return {
            customer_id: {
                "total_orders": int(total or 0),
                "active_orders": int(active or 0),
                "open_balance": Decimal(str(balance or 0)),
            }
            for customer_id, total, active, balance in result.all()
        }

    async def count_orders(self, customer_id: int) -> int:
        stmt = select(func.count(Order.id)).where(Order.customer_id == customer_id)
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def count_service_requests(self, customer_id: int) -> int:
        stmt = select(func.count(ServiceRequest.id)).where(ServiceRequest.customer_id == customer_id)
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def count_with_price_list(self, price_list_id: str) -> int:
        stmt = select(func.count(Customer.id)).where(Customer.price_list_id == price_list_id)
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def delete(self, customer: Customer):
        await self.session.delete(customer)
        await self.session.flush()
        logger.info("customer_deleted", customer_id=customer.id)


# ==========================================
# REPOSITORY: PriceList (прайс-листы)
# ==========================================

class PriceListRepository:
    """Прайс-листы и их особые цены."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_all(self) -> List[PriceList]:
        stmt = (
            select(PriceList)
            .options(selectinload(PriceList.items))
            .order_by(PriceList.name)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_id(self, price_list_id: str) -> Optional[PriceList]:
        stmt = (
            select(PriceList)
            .where(PriceList.id == price_list_id)
            .options(selectinload(PriceList.items))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def create(self, **fields) -> PriceList:
        price_list = PriceList(items=[], **fields)
        self.session.add(price_list)
        await self.session.flush()
        return price_list

    async def clear_default(self, keep_id: Optional[str] = None):
        """Только один прайс-лист может быть "по умолчанию"."""
        stmt = update(PriceList).where(PriceList.is_default.is_(True))
        if keep_id:
            stmt = stmt.where(PriceList.id != keep_id)
        await self.session.execute(stmt.values(is_default=False))

    async def replace_prices(self, price_list: PriceList, prices: Dict[str, Decimal]) -> List[PriceListItem]:
        """
        Привести строки прайс-листа к prices:
        есть в prices → обновить / добавить, нет → удалить.
        """
        existing = {item.product_id: item for item in price_list.items}

        for product_id, item in existing.items():
            if product_id not in prices:
                price_list.items.remove(item)

        for product_id, price in prices.items():
            item = existing.get(product_id)
            if item is not None:
                item.price = price
            else:
                price_list.items.append(PriceListItem(product_id=product_id, price=price))

        price_list.updated_at = utcnow()
        await self.session.flush()
        return list(price_list.items)

    async def delete(self, price_list: PriceList):
        await self.session.delete(price_list)
        await self.session.flush()


# ==========================================
# REPOSITORY: Product (каталог + прайс-листы)
# ==========================================

class ProductRepository:
    """Каталог товаров и особые цены из прайс-листов."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_all(self, only_available: bool = False) -> List[Product]:
        stmt = select(Product).order_by(Product.featured.desc(), Product.name)
        if only_available:
            stmt = stmt.where(Product.available.is_(True))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_id(self, product_id: str) -> Optional[Product]:
        stmt = select(Product).where(Product.id == product_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_many(self, product_ids: Iterable[str]) -> List[Product]:
        ids = list(product_ids)
        if not ids:
            return []
        stmt = select(Product).where(Product.id.in_(ids))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def custom_prices(self, price_list_id: Optional[str]) -> Dict[str, Decimal]:
        """
        Особые цены прайс-листа: {product_id: price}.

        Пустой словарь если прайс-листа нет.
        """
        if not price_list_id:
            return {}
        stmt = select(PriceListItem.product_id, PriceListItem.price).where(
            PriceListItem.price_list_id == price_list_id
        )
        result = await self.session.execute(stmt)
        return {product_id: price for product_id, price in result.all()}

    async def create(self, **fields) -> Product:
        product = Product(**fields)
        self.session.add(product)
        await self.session.flush()
        return product


# ==========================================
# REPOSITORY: Order (работа с заказами)
# ==========================================

class OrderRepository:
    """
    Репозиторий для работы с заказами.

    Используй методы с суффиксом _with_items()
    для загрузки заказа вместе со строками и товарами одним запросом.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        customer_id: int,
        total: Decimal,
        target_date: Optional[date] = None
    ) -> Order:
        """
        Создать шапку заказа (статус pending) и получить id.
        """
        order = Order(
            customer_id=customer_id,
            status=OrderStatus.PENDING,
            total=total,
            target_date=target_date,
        )
        self.session.add(order)
        await self.session.flush()
        return order

    async def add_items(self, order: Order, items: List[dict]) -> List[OrderItem]:
        """
        Добавить строки заказа.

        Каждый item: {product_id, quantity, price, day_of_week, delivery_date}
        """
        rows = [OrderItem(order_id=order.id, **item) for item in items]
        self.session.add_all(rows)
        await self.session.flush()
        return rows

    async def get_by_id_with_items(self, order_id: int) -> Optional[Order]:
        """
        Получить заказ со строками, товарами и клиентом одним запросом.
        """
        stmt = (
            select(Order)
            .where(Order.id == order_id)
            .options(
                selectinload(Order.items).selectinload(OrderItem.product),
                selectinload(Order.customer),
            )
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_with_items(
        self,
        customer_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        statuses: Optional[List[OrderStatus]] = None,
    ) -> List[Order]:
        """
        Заказы со строками.

        customer_id=None - все клиенты (экран админа).
        start / end - окно по дате создания.
        """
        stmt = select(Order).options(
            selectinload(Order.items).selectinload(OrderItem.product),
            selectinload(Order.customer),
        )

        if customer_id is not None:
            stmt = stmt.where(Order.customer_id == customer_id)
        if start is not None:
            stmt = stmt.where(Order.created_at >= start)
        if end is not None:
            stmt = stmt.where(Order.created_at <= end)
        if statuses:
            stmt = stmt.where(Order.status.in_(statuses))

        stmt = stmt.order_by(Order.created_at.desc()).execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def set_status(self, order: Order, status: OrderStatus) -> Order:
        order.status = status
        order.updated_at = utcnow()
        await self.session.flush()
        logger.info("order_status_updated", order_id=order.id, status=status.value)
        return order


# ==========================================
# REPOSITORY: SystemUpdate (объявления)
# ==========================================

class SystemUpdateRepository:
    """Объявления для главной страницы."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_all(self) -> List[SystemUpdate]:
        stmt = select(SystemUpdate).order_by(SystemUpdate.created_at.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_active(self, today: date) -> List[SystemUpdate]:
        """Активные и не просроченные (expiry_date пустая или >= сегодня)."""
        stmt = (
            select(SystemUpdate)
            .where(SystemUpdate.is_active.is_(True))
            .where(
                (SystemUpdate.expiry_date.is_(None))
                | (SystemUpdate.expiry_date >= today)
            )
            .order_by(SystemUpdate.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_id(self, update_id: str) -> Optional[SystemUpdate]:
        stmt = select(SystemUpdate).where(SystemUpdate.id == update_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def create(self, **fields) -> SystemUpdate:
        update = SystemUpdate(**fields)
        self.session.add(update)
        await self.session.flush()
        return update

    async def delete(self, update: SystemUpdate):
        await self.session.delete(update)
        await self.session.flush()


# ==========================================
# REPOSITORY: DeliveryDay (дни доставки)
# ==========================================

class DeliveryDayRepository:
    """Дни недели и города, которые обслуживаются в этот день."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_all(self) -> List[DeliveryDay]:
        stmt = select(DeliveryDay).order_by(DeliveryDay.day_of_week)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_day(self, day_of_week: int) -> Optional[DeliveryDay]:
        stmt = select(DeliveryDay).where(DeliveryDay.day_of_week == day_of_week)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def upsert(self, day_of_week: int, cities: List[str]) -> DeliveryDay:
        """
        Обновить день если есть, иначе создать.
        """
        row = await self.get_by_day(day_of_week)
        if row:
            row.cities = list(cities)
            row.updated_at = utcnow()
        else:
            row = DeliveryDay(day_of_week=day_of_week, cities=list(cities))
            self.session.add(row)
        await self.session.flush()
        return row

    async def delete(self, day_of_week: int) -> int:
        stmt = delete(DeliveryDay).where(DeliveryDay.day_of_week == day_of_week)
        result = await self.session.execute(stmt)
        return result.rowcount


# ==========================================
# REPOSITORY: ServiceRequest (вызовы техника)
# ==========================================

class ServiceRequestRepository:
    """Вызовы техника вместе с клиентом (имя / телефон для админки)."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **fields) -> ServiceRequest:
        request = ServiceRequest(**fields)
        self.session.add(request)
        await self.session.flush()
        return request

    async def get_by_id(self, request_id: str) -> Optional[ServiceRequest]:
        stmt = (
            select(ServiceRequest)
            .where(ServiceRequest.id == request_id)
            .options(selectinload(ServiceRequest.customer))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_filtered(
        self,
        customer_id: Optional[int] = None,
        status: Optional[ServiceRequestStatus] = None,
        priority: Optional[ServiceRequestPriority] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[ServiceRequest]:
        """Новые сверху. Пустой фильтр = без ограничения."""
        stmt = select(ServiceRequest).options(selectinload(ServiceRequest.customer))
        stmt = stmt.execution_options(populate_existing=True)

        if customer_id is not None:
            stmt = stmt.where(ServiceRequest.customer_id == customer_id)
        if status is not None:
            stmt = stmt.where(ServiceRequest.status == status)
        if priority is not None:
            stmt = stmt.where(ServiceRequest.priority == priority)
        if start is not None:
            stmt = stmt.where(ServiceRequest.created_at >= start)
        if end is not None:
            stmt = stmt.where(ServiceRequest.created_at <= end)

        stmt = stmt.order_by(ServiceRequest.created_at.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
