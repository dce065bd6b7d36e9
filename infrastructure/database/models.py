# infrastructure/database/models.py
"""
Здесь мы описываем структуру таблиц в базе данных.
SQLAlchemy автоматически создаст эти таблицы при первом запуске.

Каждый класс = одна таблица в БД
Каждое поле класса = один столбец в таблице
"""

from sqlalchemy import (
    Integer,       # Целые числа
    String,        # Текст фиксированной длины
    Text,          # Текст любой длины
    Date,          # Дата (без времени)
    DateTime,      # Дата и время
    ForeignKey,    # Связь с другой таблицей
    Enum,          # Перечисление (выбор из нескольких вариантов)
    Boolean,       # Логическое значение (true/false)
    Numeric,       # Числа с фиксированной точностью (для денег!)
    JSON,          # JSON данные (для массивов)
    Column,        # Определение столбца
    UniqueConstraint,
)

from sqlalchemy.orm import declarative_base, relationship

from datetime import datetime, timezone

from enum import Enum as PyEnum

import uuid


# Base - базовый класс для всех моделей
# Всем моделям нужно наследоваться от Base
Base = declarative_base()


def utcnow() -> datetime:
    """Текущее время в UTC (naive - так хранится в БД)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_uuid() -> str:
    return str(uuid.uuid4())


# ==========================================
# ENUMS (Перечисления)
# ==========================================

class CustomerRole(str, PyEnum):
    """Роль: обычный клиент или администратор"""
    CUSTOMER = "customer"
    ADMIN = "admin"


class OrderStatus(str, PyEnum):
    """
    Статусы заказа - ОДИН список для всех экранов.

    pending → processing → completed
        ↘          ↘
         cancelled   cancelled
    """
    PENDING = "pending"
    # Только что создан клиентом
    PROCESSING = "processing"
    # Взят в работу (готовим баллоны)
    COMPLETED = "completed"
    # Доставлено
    CANCELLED = "cancelled"
    # Отменено (заказ никогда не удаляется физически)

    @property
    def is_final(self) -> bool:
        return self in (OrderStatus.COMPLETED, OrderStatus.CANCELLED)


def _enum_values(enum_cls):
    # В БД храним value ("pending"), а не имя ("PENDING")
    return [member.value for member in enum_cls]


# ==========================================
# МОДЕЛЬ: PriceList (Таблица price_lists)
# ==========================================

class PriceList(Base):
    """
    Прайс-лист.
    У клиента может быть свой прайс-лист с особыми ценами.
    """
    __tablename__ = "price_lists"

    id = Column(String(36), primary_key=True, default=new_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    is_default = Column(Boolean, default=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    items = relationship(
        "PriceListItem",
        back_populates="price_list",
        cascade="all, delete-orphan"
    )


class PriceListItem(Base):
    """
    Особая цена товара внутри прайс-листа.
    Пара (price_list_id, product_id) уникальна.
    """
    __tablename__ = "price_list_items"
    __table_args__ = (
        UniqueConstraint("price_list_id", "product_id", name="uq_price_list_product"),
    )

    id = Column(String(36), primary_key=True, default=new_uuid)
    price_list_id = Column(
        String(36),
        ForeignKey("price_lists.id"),
        nullable=False,
        index=True
    )
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)

    price_list = relationship("PriceList", back_populates="items")


# ==========================================
# МОДЕЛЬ: Product (Таблица products)
# ==========================================

class Product(Base):
    """
    Товар каталога (баллон, редуктор, шланг...).
    Клиент его не меняет - только админ.
    """
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=new_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    # Базовая цена (если у клиента нет своего прайс-листа)
    image = Column(String(512), nullable=True)
    category = Column(String(128), nullable=True, index=True)
    sku = Column(String(64), nullable=True)
    available = Column(Boolean, default=True)
    featured = Column(Boolean, default=False)
    uom = Column(String(32), nullable=True)
    # Единица измерения
    package_amount = Column(Integer, nullable=True)
    # Сколько единиц в упаковке
    quantity_increment = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


# ==========================================
# МОДЕЛЬ: Customer (Таблица customers)
# ==========================================

class Customer(Base):
    """
    Клиент.

    user_id и phone УНИКАЛЬНЫ - это защищает от дублей,
    когда два запроса одновременно пытаются создать одного клиента.
    """
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, autoincrement=True)

    user_id = Column(String(64), nullable=True, unique=True, index=True)
    # ID пользователя во внешней авторизации (если есть)

    name = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=False, unique=True, index=True)
    address = Column(Text, nullable=True)
    city = Column(String(128), nullable=True)

    price_list_id = Column(String(36), ForeignKey("price_lists.id"), nullable=True)

    role = Column(
        Enum(CustomerRole, values_callable=_enum_values, native_enum=False),
        default=CustomerRole.CUSTOMER
    )

    # Дополнительные поля профиля (из формы регистрации)
    delivery_instructions = Column(Text, nullable=True)
    emergency_contact = Column(String(255), nullable=True)
    preferred_delivery_time = Column(String(64), nullable=True)
    gas_supplier_license = Column(String(64), nullable=True)
    notes = Column(Text, nullable=True)
    # Заметки админа (видны только в админке)

    # ==========================================
    # Подтверждение телефона
    # ==========================================
    phone_verified = Column(Boolean, default=False)
    verification_code = Column(String(6), nullable=True)
    verification_code_expires_at = Column(DateTime, nullable=True)
    login_attempts = Column(Integer, default=0)
    locked_until = Column(DateTime, nullable=True)
    last_login_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    orders = relationship("Order", back_populates="customer")
    price_list = relationship("PriceList")


# ==========================================
# МОДЕЛЬ: Order (Таблица orders)
# ==========================================

class Order(Base):
    """
    Заказ (шапка).

    total всегда считается на сервере = сумма quantity * price по строкам.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)

    customer_id = Column(
        Integer,
        ForeignKey("customers.id"),
        nullable=False,
        index=True
    )

    status = Column(
        Enum(OrderStatus, values_callable=_enum_values, native_enum=False),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True
    )

    total = Column(Numeric(10, 2), nullable=False, default=0)

    target_date = Column(Date, nullable=True, index=True)
    # Целевая дата доставки (если клиент выбрал)

    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    customer = relationship("Customer", back_populates="orders")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id"
    )

    @property
    def order_number(self) -> str:
        """Номер заказа для людей: GM-00042"""
        return format_order_number(self.id)


def format_order_number(order_id: int) -> str:
    return f"GM-{order_id:05d}"


# ==========================================
# МОДЕЛЬ: OrderItem (Таблица order_items)
# ==========================================

class OrderItem(Base):
    """
    Строка заказа.

    price - снимок цены на момент заказа (потом не пересчитывается).
    day_of_week - день доставки ("sunday"...), пусто = "как можно скорее".
    """
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=True)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    day_of_week = Column(String(16), nullable=True)
    delivery_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    order = relationship("Order", back_populates="items")
    product = relationship("Product")


# ==========================================
# МОДЕЛЬ: SystemUpdate (Таблица system_updates)
# ==========================================

class SystemUpdate(Base):
    """Объявления для клиентов на главной странице."""
    __tablename__ = "system_updates"

    id = Column(String(36), primary_key=True, default=new_uuid)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    is_active = Column(Boolean, default=True, index=True)
    expiry_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


# ==========================================
# МОДЕЛЬ: DeliveryDay (Таблица delivery_days)
# ==========================================

class DeliveryDay(Base):
    """
    В какие города едем в какой день недели.
    day_of_week: 0 = воскресенье ... 6 = суббота.
    """
    __tablename__ = "delivery_days"

    id = Column(String(36), primary_key=True, default=new_uuid)
    day_of_week = Column(Integer, nullable=False, unique=True)
    cities = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


# ==========================================
# МОДЕЛЬ: ServiceRequest (Таблица service_requests)
# ==========================================

class ServiceRequestStatus(str, PyEnum):
    """
    pending → in_progress → completed
        ↘          ↘
         cancelled   cancelled
    """
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ServiceRequestPriority(str, PyEnum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class ServiceType(str, PyEnum):
    INSTALLATION = "installation"
    # Установка газовой системы
    REPAIR = "repair"
    MAINTENANCE = "maintenance"
    # Периодическая проверка
    EMERGENCY = "emergency"
    # Утечка газа
    CONSULTATION = "consultation"
    OTHER = "other"


class TimeSlot(str, PyEnum):
    MORNING = "morning"
    # 8:00-12:00
    AFTERNOON = "afternoon"
    # 12:00-16:00
    EVENING = "evening"
    # 16:00-20:00


class ServiceRequest(Base):
    """
    Вызов техника (установка, ремонт, проверка, утечка газа...).
    Клиент открывает, админ ведет статус и пишет заметки техника.
    """
    __tablename__ = "service_requests"

    id = Column(String(36), primary_key=True, default=new_uuid)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)

    service_type = Column(
        Enum(ServiceType, values_callable=_enum_values, native_enum=False),
        nullable=False
    )
    title = Column(String(255), nullable=True)
    description = Column(Text, nullable=False)

    status = Column(
        Enum(ServiceRequestStatus, values_callable=_enum_values, native_enum=False),
        default=ServiceRequestStatus.PENDING,
        nullable=False,
        index=True
    )
    priority = Column(
        Enum(ServiceRequestPriority, values_callable=_enum_values, native_enum=False),
        default=ServiceRequestPriority.NORMAL,
        nullable=False,
        index=True
    )

    preferred_date = Column(Date, nullable=True)
    preferred_time_slot = Column(
        Enum(TimeSlot, values_callable=_enum_values, native_enum=False),
        nullable=True
    )
    city = Column(String(128), nullable=True)
    address = Column(Text, nullable=True)
    customer_phone = Column(String(20), nullable=True)
    technician_notes = Column(Text, nullable=True)

    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    customer = relationship("Customer")
