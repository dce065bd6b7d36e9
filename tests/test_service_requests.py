# tests/test_service_requests.py
from datetime import date

import pytest

from app.bot.notifications import notify_operator_service_request
from app.bot.texts import service_request_card_text
from app.errors import LookupFailure, ValidationError
from app.services.service_requests import ServiceRequestService
from config.settings import config
from infrastructure.database.models import (
    ServiceRequestPriority,
    ServiceRequestStatus,
    ServiceType,
    TimeSlot,
)

TODAY = date(2024, 11, 17)


async def test_open_request_uses_profile_defaults(session, customer):
    request = await ServiceRequestService(session).open_request(
        customer,
        ServiceType.MAINTENANCE,
        "  בדיקה שנתית  ",
        preferred_date=date(2024, 11, 20),
        preferred_time_slot=TimeSlot.MORNING,
        today=TODAY,
    )

    assert request.status == ServiceRequestStatus.PENDING
    assert request.priority == ServiceRequestPriority.NORMAL
    assert request.description == "בדיקה שנתית"
    assert request.title == "בדיקה תקופתית"
    assert request.city == "עכו"
    assert request.customer_phone == customer.phone
    assert request.customer.name == customer.name


async def test_emergency_is_urgent(session, customer):
    request = await ServiceRequestService(session).open_request(
        customer, "emergency", "ריח גז במטבח", customer_phone="052-111-2233"
    )

    assert request.priority == ServiceRequestPriority.URGENT
    assert request.customer_phone == "0521112233"


@pytest.mark.parametrize("kwargs", [
    {"service_type": None, "description": "x"},
    {"service_type": ServiceType.REPAIR, "description": "   "},
    {"service_type": ServiceType.REPAIR, "description": "x", "preferred_date": date(2024, 11, 1)},
    {"service_type": ServiceType.REPAIR, "description": "x", "customer_phone": "123"},
])
async def test_bad_request_is_rejected(session, customer, kwargs):
    service = ServiceRequestService(session)

    with pytest.raises(ValidationError):
        await service.open_request(customer, today=TODAY, **kwargs)

    assert await service.for_customer(customer.id) == []


async def test_status_flow(session, customer):
    service = ServiceRequestService(session)
    request = await service.open_request(customer, ServiceType.REPAIR, "הכיריים לא נדלקות")

    in_progress = await service.update(request.id, {"status": "in_progress", "technician_notes": "להביא ווסת"})
    assert in_progress.status == ServiceRequestStatus.IN_PROGRESS
    assert in_progress.completed_at is None
    assert in_progress.technician_notes == "להביא ווסת"

    done = await service.update(request.id, {"status": ServiceRequestStatus.COMPLETED})
    assert done.completed_at is not None

    with pytest.raises(ValidationError):
        await service.update(request.id, {"status": "pending"})


async def test_list_filters(session, customer, vip_customer):
    service = ServiceRequestService(session)
    leak = await service.open_request(vip_customer, ServiceType.EMERGENCY, "דליפה")
    await service.open_request(customer, ServiceType.CONSULTATION, "שאלה")

    urgent = await service.list_filtered(priority=ServiceRequestPriority.URGENT)
    assert [r.id for r in urgent] == [leak.id]

    mine = await service.for_customer(customer.id)
    assert [r.service_type for r in mine] == [ServiceType.CONSULTATION]

    assert await service.list_filtered(status=ServiceRequestStatus.COMPLETED) == []


async def test_foreign_request_is_not_found(session, customer, vip_customer):
    service = ServiceRequestService(session)
    request = await service.open_request(vip_customer, ServiceType.OTHER, "משהו")

    with pytest.raises(LookupFailure):
        await service.get(request.id, customer_id=customer.id)


async def test_card_text(session, customer):
    request = await ServiceRequestService(session).open_request(
        customer, ServiceType.EMERGENCY, "ריח <גז>", address="הרצל 1"
    )

    text = service_request_card_text(request)

    assert text.startswith("🚨")
    assert "חירום - דליפת גז" in text
    assert "050-123-4567" in text
    assert "עכו, הרצל 1" in text
    assert "ריח &lt;גז&gt;" in text


class FakeBot:
    def __init__(self):
        self.sent = []

    async def send_message(self, chat_id, text, reply_markup=None):
        self.sent.append((chat_id, text))


async def test_operator_is_notified(session, session_maker, customer, monkeypatch):
    monkeypatch.setattr(config, "operator_telegram_id", 777)
    request = await ServiceRequestService(session).open_request(
        customer, ServiceType.REPAIR, "תקלה"
    )
    bot = FakeBot()

    assert await notify_operator_service_request(request.id, session_maker=session_maker, bot=bot)
    assert bot.sent[0][0] == 777
    assert "תיקון תקלה" in bot.sent[0][1]


async def test_no_notification_without_bot(session_maker):
    assert await notify_operator_service_request("ghost", session_maker=session_maker) is False
