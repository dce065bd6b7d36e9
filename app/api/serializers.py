# app/api/serializers.py
"""ORM объекты → dict для JSON ответов."""

from app.services.customer_admin import CustomerOverview
from infrastructure.database.models import (
    Customer,
    DeliveryDay,
    PriceList,
    ServiceRequest,
    SystemUpdate,
)


def customer_to_dict(customer: Customer) -> dict:
    return {
        "id": customer.id,
        "user_id": customer.user_id,
        "name": customer.name,
        "phone": customer.phone,
        "address": customer.address,
        "city": customer.city,
        "role": customer.role.value if customer.role else None,
        "phone_verified": bool(customer.phone_verified),
        "delivery_instructions": customer.delivery_instructions,
        "emergency_contact": customer.emergency_contact,
        "preferred_delivery_time": customer.preferred_delivery_time,
        "gas_supplier_license": customer.gas_supplier_license,
    }


def system_update_to_dict(update: SystemUpdate) -> dict:
    return {
        "id": update.id,
        "title": update.title,
        "content": update.content,
        "is_active": bool(update.is_active),
        "expiry_date": update.expiry_date,
        "created_at": update.created_at,
        "updated_at": update.updated_at,
    }


def delivery_day_to_dict(row: DeliveryDay) -> dict:
    return {
        "day_of_week": row.day_of_week,
        "cities": list(row.cities or []),
        "updated_at": row.updated_at,
    }


def customer_admin_to_dict(customer: Customer) -> dict:
    """Для админки: плюс заметки и прайс-лист."""
    data = customer_to_dict(customer)
    data.update({
        "notes": customer.notes,
        "price_list_id": customer.price_list_id,
        "created_at": customer.created_at,
    })
    return data


def customer_overview_to_dict(overview: CustomerOverview) -> dict:
    data = customer_admin_to_dict(overview.customer)
    data.update({
        "total_orders": overview.total_orders,
        "active_orders": overview.active_orders,
        "open_balance": overview.open_balance,
    })
    return data


def price_list_to_dict(price_list: PriceList) -> dict:
    return {
        "id": price_list.id,
        "name": price_list.name,
        "description": price_list.description,
        "is_default": bool(price_list.is_default),
        "prices": {item.product_id: item.price for item in price_list.items},
        "created_at": price_list.created_at,
        "updated_at": price_list.updated_at,
    }


def service_request_to_dict(request: ServiceRequest) -> dict:
    customer = request.customer
    return {
        "id": request.id,
        "customer_id": request.customer_id,
        "customer_name": customer.name if customer is not None else None,
        "service_type": request.service_type.value,
        "title": request.title,
        "description": request.description,
        "status": request.status.value,
        "priority": request.priority.value,
        "preferred_date": request.preferred_date,
        "preferred_time_slot": request.preferred_time_slot.value if request.preferred_time_slot else None,
        "city": request.city,
        "address": request.address,
        "customer_phone": request.customer_phone,
        "technician_notes": request.technician_notes,
        "completed_at": request.completed_at,
        "created_at": request.created_at,
        "updated_at": request.updated_at,
    }
