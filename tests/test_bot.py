# tests/test_bot.py
from datetime import date, datetime
from decimal import Decimal

from app.bot.keyboards.operator import (
    order_status_keyboard,
    parse_status_callback,
    status_callback_data,
)
from app.bot.notifications import notify_operator_new_order
from app.bot.texts import order_card_text, pending_orders_text
from app.services.customers import CustomerIdentity
from app.services.history import OrderGroup, OrderLine
from app.services.orders import OrderService
from config.settings import config
from infrastructure.database.models import OrderStatus


def make_group(status=OrderStatus.PENDING):
    return OrderGroup(
        order_id=42,
        status=status,
        created_at=datetime(2024, 11, 17, 9, 30),
        target_date=date(2024, 11, 18),
        customer_id=1,
        customer_name="ישראל <ישראלי>",
        customer_phone="0501234567",
        items=[
            OrderLine(item_id=1, product_id="p1", product_name="בלון 12", quantity=2,
                      price=Decimal("100"), day_of_week="monday"),
            OrderLine(item_id=2, product_id="p2", product_name="ווסת", quantity=1,
                      price=Decimal("35.50")),
        ],
    )


def test_callback_data_roundtrip():
    data = status_callback_data(42, OrderStatus.PROCESSING)

    assert data == "order_status:42:processing"
    assert parse_status_callback(data) == (42, OrderStatus.PROCESSING)


def test_bad_callback_data():
    assert parse_status_callback("order_status:x:processing") is None
    assert parse_status_callback("order_status:1:shipped") is None
    assert parse_status_callback("other:1:pending") is None
    assert parse_status_callback(None) is None


def test_keyboard_offers_only_allowed_transitions():
    pending = order_status_keyboard(42, OrderStatus.PENDING)
    processing = order_status_keyboard(42, OrderStatus.PROCESSING)

    assert [b.callback_data for b in pending.inline_keyboard[0]] == [
        "order_status:42:processing",
        "order_status:42:completed",
        "order_status:42:cancelled",
    ]
    assert [b.callback_data for b in processing.inline_keyboard[0]] == [
        "order_status:42:completed",
        "order_status:42:cancelled",
    ]
    assert order_status_keyboard(42, OrderStatus.COMPLETED) is None
    assert order_status_keyboard(42, OrderStatus.CANCELLED) is None


def test_order_card_text():
    text = order_card_text(make_group())

    assert "GM-00042" in text
    assert "ישראל &lt;ישראלי&gt;" in text
    assert "050-123-4567" in text
    assert "18.11.2024" in text
    assert "(שני)" in text
    assert "₪235.50" in text


def test_pending_orders_text():
    assert pending_orders_text([]) == "✅ אין הזמנות ממתינות"

    text = pending_orders_text([make_group()])
    assert "<code>GM-00042</code>" in text
    assert "17.11 09:30" in text


class FakeBot:
    def __init__(self):
        self.sent = []

    async def send_message(self, chat_id, text, reply_markup=None):
        self.sent.append((chat_id, text, reply_markup))


async def test_notification_disabled_without_bot(session_maker):
    assert await notify_operator_new_order(1, session_maker=session_maker) is False


async def test_notification_sends_order_card(session, session_maker, products, customer, monkeypatch):
    monkeypatch.setattr(config, "operator_telegram_id", 777)
    result = await OrderService(session).submit_order(
        CustomerIdentity(user_id=customer.user_id, phone=customer.phone), {"p1": 2}
    )
    bot = FakeBot()

    assert await notify_operator_new_order(result.order_id, session_maker=session_maker, bot=bot)

    chat_id, text, keyboard = bot.sent[0]
    assert chat_id == 777
    assert result.order_number in text
    assert keyboard is not None


async def test_notification_for_missing_order(session_maker, monkeypatch):
    monkeypatch.setattr(config, "operator_telegram_id", 777)
    bot = FakeBot()

    assert await notify_operator_new_order(404, session_maker=session_maker, bot=bot) is False
    assert bot.sent == []
