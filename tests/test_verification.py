# tests/test_verification.py
from datetime import timedelta

import pytest

from app.errors import AuthenticationError, LookupFailure, TooManyRequests, ValidationError
from app.services import messaging
from app.services.sessions import SessionStore
from app.services.throttling import SendThrottle
from app.services.verification import VerificationService, generate_code
from infrastructure.database.models import Customer, utcnow


@pytest.fixture
def sent(monkeypatch):
    messages = []

    async def fake_send(phone, message, method):
        messages.append((phone, message, method))
        return True

    monkeypatch.setattr(messaging, "send_message", fake_send)
    return messages


@pytest.fixture
def service(session, storage):
    return VerificationService(session, SessionStore(storage), SendThrottle(storage))


async def reload(session, customer_id) -> Customer:
    return await session.get(Customer, customer_id, populate_existing=True)


def test_generate_code_is_six_digits():
    code = generate_code()

    assert len(code) == 6
    assert code.isdigit()


def test_verification_message_texts():
    assert "קוד האימות שלך: 123456" in messaging.verification_message("123456", "whatsapp")
    assert messaging.verification_message("123456", "sms").startswith("קוד האימות שלך: 123456")


async def test_send_code_stores_code_and_sends(service, session, customer, sent):
    response = await service.send_code("050-123-4567", "whatsapp")

    stored = await reload(session, customer.id)
    assert response["success"] is True
    assert response["method"] == "whatsapp"
    assert response["code"] == stored.verification_code
    assert stored.verification_code_expires_at > utcnow() + timedelta(minutes=9)
    assert sent == [("0501234567", messaging.verification_message(stored.verification_code, "whatsapp"), "whatsapp")]


async def test_send_code_hides_code_in_production(service, customer, sent, monkeypatch):
    from config.settings import config
    monkeypatch.setattr(config, "environment", "production")

    response = await service.send_code("0501234567", "sms")

    assert "code" not in response


async def test_send_code_validation(service, customer, sent):
    with pytest.raises(ValidationError):
        await service.send_code("12345", "whatsapp")

    with pytest.raises(ValidationError):
        await service.send_code("0501234567", "email")

    with pytest.raises(LookupFailure):
        await service.send_code("0549999999", "sms")


async def test_send_code_is_throttled(service, customer, sent):
    for _ in range(3):
        await service.send_code("0501234567", "sms")

    with pytest.raises(TooManyRequests):
        await service.send_code("0501234567", "sms")

    assert len(sent) == 3


async def test_send_code_survives_webhook_failure(session, storage, customer, monkeypatch):
    async def failing_webhook(url, payload):
        raise TimeoutError()

    from config.settings import config
    monkeypatch.setattr(config, "sms_webhook_url", "http://automation.local/hook")
    monkeypatch.setattr(messaging, "post_webhook", failing_webhook)

    response = await VerificationService(session, SessionStore(storage)).send_code("0501234567", "sms")

    assert response["success"] is True


async def test_verify_code_success_opens_session(service, session, storage, customer, sent):
    response = await service.send_code("0501234567", "whatsapp")

    result = await service.verify_code("0501234567", response["code"])

    assert result.customer.id == customer.id
    stored = await reload(session, customer.id)
    assert stored.phone_verified is True
    assert stored.verification_code is None
    assert stored.last_login_at is not None

    loaded = await SessionStore(storage).load(result.session.token)
    assert loaded.customer_id == customer.id


async def test_verify_code_missing_input(service):
    with pytest.raises(ValidationError) as exc:
        await service.verify_code("0501234567", "")

    assert exc.value.title == "נתונים חסרים"


async def test_expired_code_is_rejected(service, session, customer, sent):
    response = await service.send_code("0501234567", "whatsapp")
    stored = await reload(session, customer.id)
    stored.verification_code_expires_at = utcnow() - timedelta(seconds=1)
    await session.commit()

    with pytest.raises(AuthenticationError):
        await service.verify_code("0501234567", response["code"])


async def test_too_many_wrong_codes_lock_account(service, session, customer, sent):
    response = await service.send_code("0501234567", "whatsapp")
    wrong = "000000" if response["code"] != "000000" else "111111"

    for _ in range(5):
        with pytest.raises(AuthenticationError):
            await service.verify_code("0501234567", wrong)

    stored = await reload(session, customer.id)
    assert stored.locked_until > utcnow()
    assert stored.login_attempts == 0

    with pytest.raises(AuthenticationError) as exc:
        await service.verify_code("0501234567", response["code"])
    assert "נעול" in exc.value.details
