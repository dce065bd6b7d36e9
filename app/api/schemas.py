# app/api/schemas.py
"""
Pydantic модели запросов.

FastAPI автоматически проверит типы. Ошибка типа → 400
с телом {"error": "שגיאת קלט", "details": ...}.

Обязательные по смыслу поля сделаны Optional там, где сервис
сам отвечает понятным сообщением на иврите (как было раньше).
"""

from datetime import date
from decimal import Decimal
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from app.ordering import DeliveryPreference, OrderSelection
from infrastructure.database.models import (
    OrderStatus,
    ServiceRequestPriority,
    ServiceRequestStatus,
    ServiceType,
    TimeSlot,
)


# ==========================================
# КЛИЕНТЫ / ПОДТВЕРЖДЕНИЕ
# ==========================================

class CreateOrGetCustomerRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(default=None, alias="userId")
    name: Optional[str] = None
    phone: Optional[str] = None


class RegisterCustomerRequest(BaseModel):
    phone: Optional[str] = None
    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    delivery_instructions: Optional[str] = None
    emergency_contact: Optional[str] = None
    preferred_delivery_time: Optional[str] = None
    gas_supplier_license: Optional[str] = None


class SendCodeRequest(BaseModel):
    phone: Optional[str] = None
    method: str = "whatsapp"


class VerifyCodeRequest(BaseModel):
    phone: Optional[str] = None
    code: Optional[str] = None


class AdminLoginRequest(BaseModel):
    password: str


# ==========================================
# КОРЗИНА / ЗАКАЗЫ
# ==========================================

Quantities = Dict[str, Union[int, Dict[str, int]]]


class PreferenceIn(BaseModel):
    type: Literal["asap", "date"] = "asap"
    delivery_date: Optional[date] = None

    def to_preference(self) -> DeliveryPreference:
        if self.type == "date" and self.delivery_date:
            return DeliveryPreference.on(self.delivery_date)
        return DeliveryPreference.soonest()


class SelectionIn(BaseModel):
    quantities: Quantities = Field(default_factory=dict)
    preferences: Dict[str, PreferenceIn] = Field(default_factory=dict)

    def to_selection(self) -> OrderSelection:
        selection = OrderSelection.from_quantities(self.quantities)
        for product_id, pref in self.preferences.items():
            if product_id in selection.quantities:
                selection.preferences[product_id] = pref.to_preference()
        return selection


class SubmitOrderRequest(BaseModel):
    """quantities не передали → берем черновик корзины."""
    quantities: Optional[Quantities] = None
    preferences: Dict[str, PreferenceIn] = Field(default_factory=dict)
    target_date: Optional[date] = None


class ItemQuantityRequest(BaseModel):
    quantity: int


class StatusRequest(BaseModel):
    status: OrderStatus


# ==========================================
# ВЫЗОВЫ ТЕХНИКА
# ==========================================

class ServiceRequestIn(BaseModel):
    service_type: Optional[ServiceType] = None
    description: Optional[str] = None
    preferred_date: Optional[date] = None
    preferred_time_slot: Optional[TimeSlot] = None
    city: Optional[str] = None
    address: Optional[str] = None
    customer_phone: Optional[str] = None


# ==========================================
# АДМИН
# ==========================================

class DeliveryWeekRequest(BaseModel):
    days: Dict[int, List[str]]


class SystemUpdateIn(BaseModel):
    title: str
    content: str
    is_active: bool = True
    expiry_date: Optional[date] = None


class SystemUpdatePatch(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    is_active: Optional[bool] = None
    expiry_date: Optional[date] = None


class ProductIn(BaseModel):
    id: Optional[str] = None
    name: str
    price: Decimal = Field(ge=0)
    description: Optional[str] = None
    image: Optional[str] = None
    category: Optional[str] = None
    sku: Optional[str] = None
    available: bool = True
    featured: bool = False
    uom: Optional[str] = None
    package_amount: Optional[int] = None
    quantity_increment: Optional[int] = None


class ProductPatch(BaseModel):
    name: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0)
    description: Optional[str] = None
    image: Optional[str] = None
    category: Optional[str] = None
    sku: Optional[str] = None
    available: Optional[bool] = None
    featured: Optional[bool] = None
    uom: Optional[str] = None
    package_amount: Optional[int] = None
    quantity_increment: Optional[int] = None


class PriceListIn(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    is_default: bool = False


class PriceListPatch(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    is_default: Optional[bool] = None


class PriceListPricesRequest(BaseModel):
    """{product_id: цена}. Товаров, которых нет в словаре, особая цена снимается."""
    prices: Dict[str, Decimal] = Field(default_factory=dict)


class CustomerIn(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    notes: Optional[str] = None
    price_list_id: Optional[str] = None
    delivery_instructions: Optional[str] = None
    emergency_contact: Optional[str] = None
    preferred_delivery_time: Optional[str] = None
    gas_supplier_license: Optional[str] = None


class CustomerPatch(CustomerIn):
    pass


class PriceListAssignRequest(BaseModel):
    price_list_id: Optional[str] = None


class ServiceRequestPatch(BaseModel):
    status: Optional[ServiceRequestStatus] = None
    priority: Optional[ServiceRequestPriority] = None
    technician_notes: Optional[str] = None
    preferred_date: Optional[date] = None
    preferred_time_slot: Optional[TimeSlot] = None
