# tests/test_reports.py
from decimal import Decimal

from app.services.customers import CustomerIdentity
from app.services.orders import OrderService
from app.services.reports import ReportService


async def test_summary_excludes_cancelled_revenue(session, products, customer, vip_customer):
    service = OrderService(session)
    mine = CustomerIdentity(user_id=customer.user_id, phone=customer.phone)

    await service.submit_order(mine, {"p1": 2, "p2": 1})
    cancelled = await service.submit_order(mine, {"p2": 4})
    await service.cancel_order(cancelled.order_id)
    await service.submit_order(CustomerIdentity(phone=vip_customer.phone), {"p1": 5})

    report = await ReportService(session).summary()

    assert report["order_count"] == 3
    assert report["customer_count"] == 2
    assert report["revenue"] == Decimal("85")
    assert report["average_order_value"] == Decimal("42.50")
    assert report["status_counts"]["cancelled"] == 1
    assert report["status_counts"]["pending"] == 2

    top = report["top_products"][0]
    assert top["product_id"] == "p1"
    assert top["quantity"] == 7

    assert len(report["daily_sales"]) == 1
    assert report["daily_sales"][0]["orders"] == 2


async def test_empty_summary(session):
    report = await ReportService(session).summary()

    assert report["order_count"] == 0
    assert report["revenue"] == Decimal("0")
    assert report["average_order_value"] == Decimal("0")
    assert report["top_products"] == []
