# tests/test_orders.py
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from app.errors import LookupFailure, RemoteCallFailure, ValidationError
from app.ordering import DeliveryPreference, OrderSelection
from app.services.catalog import CatalogService
from app.services.customers import CustomerIdentity
from app.services.history import OrderHistoryReader
from app.services.orders import OrderService
from infrastructure.database.models import Customer, Order, OrderStatus
from infrastructure.database.repositories import OrderRepository


def identity_for(customer):
    return CustomerIdentity(user_id=customer.user_id, name=customer.name, phone=customer.phone)


async def count(session, model):
    return (await session.execute(select(func.count()).select_from(model))).scalar_one()


async def submit(session, customer, quantities, **kwargs):
    return await OrderService(session).submit_order(
        identity_for(customer), OrderSelection.from_quantities(quantities), **kwargs
    )


def items_by_product(group):
    return {item.product_id: item for item in group.items}


# ==========================================
# ОТПРАВКА
# ==========================================

async def test_submit_creates_pending_order_with_catalog_prices(session, products, customer):
    result = await submit(session, customer, {"p1": 2, "p2": 1})

    assert result.total == Decimal("45")
    assert result.order_number == f"GM-{result.order_id:05d}"
    assert result.customer_id == customer.id

    group = await OrderHistoryReader(session).get(result.order_id)
    assert group.status == OrderStatus.PENDING
    assert group.total == Decimal("45")
    assert {(i.product_id, i.quantity, i.price) for i in group.items} == {
        ("p1", 2, Decimal("10")),
        ("p2", 1, Decimal("25")),
    }


async def test_submit_uses_customer_price_list(session, vip_customer):
    result = await submit(session, vip_customer, {"p1": 3})

    assert result.total == Decimal("24")


async def test_empty_selection_is_rejected_before_touching_db():
    service = OrderService(None)
    identity = CustomerIdentity(user_id="u", name="n", phone="0501234567")

    with pytest.raises(ValidationError):
        await service.submit_order(identity, OrderSelection())


async def test_missing_identity_is_rejected_before_touching_db():
    with pytest.raises(ValidationError):
        await OrderService(None).submit_order(None, {"p1": 1})


async def test_unavailable_products_only_is_rejected(session, products, customer):
    with pytest.raises(ValidationError):
        await submit(session, customer, {"p3": 1, "ghost": 2})

    assert await count(session, Order) == 0


async def test_sequential_submissions_reuse_customer(session, products, customer):
    first = await submit(session, customer, {"p1": 1})
    second = await submit(session, customer, {"p2": 1})

    assert first.customer_id == second.customer_id == customer.id
    assert await count(session, Customer) == 1


async def test_new_identity_gets_one_customer_and_one_order(session, products):
    identity = CustomerIdentity(user_id="fresh", name="חדש", phone="0531234567")

    result = await OrderService(session).submit_order(identity, {"p1": 2, "p2": 1})

    assert await count(session, Customer) == 1
    assert await count(session, Order) == 1
    group = await OrderHistoryReader(session).get(result.order_id)
    assert group.status == OrderStatus.PENDING
    assert group.total == Decimal("45")
    assert sorted(item.price for item in group.items) == [Decimal("10"), Decimal("25")]


async def test_submit_creates_customer_inside_same_transaction(session, products):
    identity = CustomerIdentity(user_id="new-user", name="חדש", phone="+972 54-111-2233")

    result = await OrderService(session).submit_order(identity, {"p2": 2})

    customer = await session.get(Customer, result.customer_id)
    assert customer.phone == "0541112233"
    assert result.total == Decimal("50")


async def test_failed_submission_writes_nothing(session, products, monkeypatch):
    async def broken_add_items(self, order, items):
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(OrderRepository, "add_items", broken_add_items)
    identity = CustomerIdentity(user_id="u-2", name="לקוח", phone="0541112233")

    with pytest.raises(RemoteCallFailure):
        await OrderService(session).submit_order(identity, {"p1": 1})

    assert await count(session, Order) == 0
    assert await count(session, Customer) == 0


async def test_target_date_defaults_to_earliest_preference(session, products, customer):
    selection = OrderSelection()
    selection.set_quantity("p1", 1, preference=DeliveryPreference.on(date(2024, 11, 20)))
    selection.set_quantity("p2", 1, preference=DeliveryPreference.on(date(2024, 11, 18)))

    result = await OrderService(session).submit_order(identity_for(customer), selection)

    group = await OrderHistoryReader(session).get(result.order_id)
    assert group.target_date == date(2024, 11, 18)
    assert items_by_product(group)["p2"].day_of_week == "monday"


async def test_per_day_lines_are_stored_separately(session, products, customer):
    result = await submit(session, customer, {"p1": {"sunday": 1, "tuesday": 2}})

    group = await OrderHistoryReader(session).get(result.order_id)
    assert sorted((i.day_of_week, i.quantity) for i in group.items) == [
        ("sunday", 1),
        ("tuesday", 2),
    ]
    assert group.total == Decimal("30")


# ==========================================
# ИЗМЕНЕНИЕ / ОТМЕНА
# ==========================================

async def test_update_item_quantity_recomputes_total(session, products, customer):
    result = await submit(session, customer, {"p1": 2, "p2": 1})
    reader = OrderHistoryReader(session)
    items = items_by_product(await reader.get(result.order_id))
    service = OrderService(session)

    await service.update_item_quantity(result.order_id, items["p1"].item_id, 3, customer_id=customer.id)
    order = await OrderRepository(session).get_by_id_with_items(result.order_id)
    assert order.total == Decimal("55")

    await service.update_item_quantity(result.order_id, items["p2"].item_id, 0, customer_id=customer.id)
    order = await OrderRepository(session).get_by_id_with_items(result.order_id)
    assert order.total == Decimal("30")
    assert [i.product_id for i in order.items] == ["p1"]
    assert order.status == OrderStatus.PENDING


async def test_removing_last_item_cancels_order(session, products, customer):
    result = await submit(session, customer, {"p1": 1})
    item = (await OrderHistoryReader(session).get(result.order_id)).items[0]

    await OrderService(session).update_item_quantity(result.order_id, item.item_id, 0)

    order = await OrderRepository(session).get_by_id_with_items(result.order_id)
    assert order.status == OrderStatus.CANCELLED
    assert order.total == Decimal("0")


async def test_only_pending_orders_can_be_edited(session, products, customer):
    result = await submit(session, customer, {"p1": 1})
    item = (await OrderHistoryReader(session).get(result.order_id)).items[0]
    service = OrderService(session)
    await service.change_status(result.order_id, OrderStatus.PROCESSING)

    with pytest.raises(ValidationError):
        await service.update_item_quantity(result.order_id, item.item_id, 5)


async def test_unknown_item_is_lookup_failure(session, products, customer):
    result = await submit(session, customer, {"p1": 1})

    with pytest.raises(LookupFailure):
        await OrderService(session).update_item_quantity(result.order_id, 999, 1)


async def test_cancel_keeps_order_and_items(session, products, customer):
    result = await submit(session, customer, {"p1": 2})

    await OrderService(session).cancel_order(result.order_id, customer_id=customer.id)

    group = await OrderHistoryReader(session).get(result.order_id)
    assert group.status == OrderStatus.CANCELLED
    assert len(group.items) == 1


async def test_cancel_final_order_is_rejected(session, products, customer):
    result = await submit(session, customer, {"p1": 2})
    service = OrderService(session)
    await service.change_status(result.order_id, "completed")

    with pytest.raises(ValidationError):
        await service.cancel_order(result.order_id)


async def test_foreign_order_is_not_found(session, products, customer, vip_customer):
    result = await submit(session, customer, {"p1": 1})

    with pytest.raises(LookupFailure):
        await OrderService(session).cancel_order(result.order_id, customer_id=vip_customer.id)


# ==========================================
# СТАТУСЫ
# ==========================================

async def test_status_transitions(session, products, customer):
    result = await submit(session, customer, {"p1": 1})
    service = OrderService(session)

    order = await service.change_status(result.order_id, "processing")
    assert order.status == OrderStatus.PROCESSING

    with pytest.raises(ValidationError):
        await service.change_status(result.order_id, OrderStatus.PENDING)

    order = await service.change_status(result.order_id, OrderStatus.COMPLETED)
    assert order.status == OrderStatus.COMPLETED

    with pytest.raises(ValidationError):
        await service.change_status(result.order_id, OrderStatus.CANCELLED)


async def test_same_status_is_noop(session, products, customer):
    result = await submit(session, customer, {"p1": 1})

    order = await OrderService(session).change_status(result.order_id, "pending")

    assert order.status == OrderStatus.PENDING


async def test_unknown_status_is_rejected(session, products, customer):
    result = await submit(session, customer, {"p1": 1})

    with pytest.raises(ValidationError):
        await OrderService(session).change_status(result.order_id, "shipped")


# ==========================================
# ПОВТОРНЫЙ ЗАКАЗ
# ==========================================

async def test_reorder_uses_current_prices(session, products, customer):
    first = await submit(session, customer, {"p1": 2, "p2": {"monday": 1}})
    await CatalogService(session).update_product("p1", {"price": Decimal("12")})

    second = await OrderService(session).reorder(
        first.order_id, identity_for(customer), customer_id=customer.id
    )

    assert second.order_id != first.order_id
    assert second.total == Decimal("49")

    group = await OrderHistoryReader(session).get(second.order_id)
    assert group.status == OrderStatus.PENDING
    assert items_by_product(group)["p2"].day_of_week == "monday"
