# tests/test_customer_admin.py
from decimal import Decimal

import pytest

from app.errors import LookupFailure, ValidationError
from app.services.customer_admin import CustomerAdminService
from app.services.customers import CustomerIdentity
from app.services.orders import OrderService
from app.services.service_requests import ServiceRequestService
from infrastructure.database.models import OrderStatus, ServiceType


async def test_overview_counts_orders_and_balance(session, customer, vip_customer):
    orders = OrderService(session)
    identity = CustomerIdentity(user_id=customer.user_id, phone=customer.phone)
    first = await orders.submit_order(identity, {"p1": 2})
    await orders.submit_order(identity, {"p2": 1})
    await orders.change_status(first.order_id, OrderStatus.PROCESSING)

    rows = await CustomerAdminService(session).list_overview()

    by_id = {row.customer.id: row for row in rows}
    assert by_id[customer.id].total_orders == 2
    assert by_id[customer.id].active_orders == 1
    assert by_id[customer.id].open_balance == Decimal("45")
    assert by_id[vip_customer.id].total_orders == 0
    assert by_id[vip_customer.id].open_balance == Decimal("0")


async def test_overview_search(session, customer, vip_customer):
    service = CustomerAdminService(session)

    assert [r.customer.id for r in await service.list_overview("VIP")] == [vip_customer.id]
    assert [r.customer.id for r in await service.list_overview("עכו")] == [customer.id]
    assert [r.customer.id for r in await service.list_overview("0529")] == [vip_customer.id]


async def test_create_normalizes_phone(session):
    created = await CustomerAdminService(session).create({
        "name": "מסעדת הים",
        "phone": "+972 52-111-2233",
        "notes": "משלם בסוף חודש",
        "role": "admin",
    })

    assert created.phone == "0521112233"
    assert created.notes == "משלם בסוף חודש"
    assert created.role.value == "customer"


async def test_create_requires_name_and_phone(session):
    service = CustomerAdminService(session)

    with pytest.raises(ValidationError):
        await service.create({"phone": "0521112233"})
    with pytest.raises(ValidationError):
        await service.create({"name": "בלי טלפון"})
    with pytest.raises(ValidationError):
        await service.create({"name": "x", "phone": "12345"})


async def test_phone_of_other_customer_is_refused(session, customer, vip_customer):
    with pytest.raises(ValidationError) as exc:
        await CustomerAdminService(session).update(vip_customer.id, {"phone": customer.phone})

    assert exc.value.title == "מספר הטלפון כבר רשום"


async def test_update_keeps_own_phone(session, customer):
    updated = await CustomerAdminService(session).update(
        customer.id, {"phone": customer.phone, "notes": "לקוח ותיק", "city": "נהריה"}
    )

    assert updated.notes == "לקוח ותיק"
    assert updated.city == "נהריה"


async def test_assign_and_clear_price_list(session, customer, vip_customer):
    service = CustomerAdminService(session)

    assigned = await service.assign_price_list(customer.id, vip_customer.price_list_id)
    assert assigned.price_list_id == vip_customer.price_list_id

    cleared = await service.assign_price_list(customer.id, None)
    assert cleared.price_list_id is None


async def test_unknown_price_list_is_404(session, customer):
    with pytest.raises(LookupFailure):
        await CustomerAdminService(session).assign_price_list(customer.id, "ghost")


async def test_customer_with_history_is_not_deleted(session, customer, products):
    await OrderService(session).submit_order(
        CustomerIdentity(user_id=customer.user_id, phone=customer.phone), {"p1": 1}
    )

    with pytest.raises(ValidationError) as exc:
        await CustomerAdminService(session).delete(customer.id)

    assert exc.value.title == "לא ניתן למחוק לקוח עם היסטוריית הזמנות"


async def test_customer_with_service_request_is_not_deleted(session, customer):
    await ServiceRequestService(session).open_request(
        customer, ServiceType.REPAIR, "הכיריים לא נדלקות"
    )

    with pytest.raises(ValidationError):
        await CustomerAdminService(session).delete(customer.id)


async def test_delete_customer_without_history(session, customer):
    service = CustomerAdminService(session)

    await service.delete(customer.id)

    with pytest.raises(LookupFailure):
        await service.get(customer.id)
