# tests/test_storage_services.py
"""Сессии, черновики корзины и лимит кодов (поверх ExpiringMemoryStorage)."""

from datetime import timedelta

from app.ordering import DeliveryPreference, OrderSelection
from app.services.drafts import DraftStore
from app.services.sessions import AuthSession, SessionStore, check_admin_password
from app.services.throttling import SendThrottle
from infrastructure.database.models import CustomerRole, utcnow
from infrastructure.redis_storage import make_key, store_data


async def test_session_open_load_close(storage):
    store = SessionStore(storage)

    session = await store.open(customer_id=7, user_id="u-7")
    loaded = await store.load(session.token)

    assert loaded == session
    assert loaded.is_admin is False

    await store.close(session.token)
    assert await store.load(session.token) is None


async def test_unknown_or_empty_token(storage):
    store = SessionStore(storage)

    assert await store.load(None) is None
    assert await store.load("nope") is None


async def test_expired_session_is_dropped(storage):
    store = SessionStore(storage)
    expired = AuthSession(
        token="old",
        customer_id=1,
        user_id=None,
        role=CustomerRole.CUSTOMER,
        expires_at=utcnow() - timedelta(seconds=1),
    )
    await storage.set_data(make_key("session", "old"), expired.to_dict())

    assert await store.load("old") is None
    assert await storage.get_data(make_key("session", "old")) == {}


async def test_admin_session(storage):
    session = await SessionStore(storage).open_admin()

    assert session.is_admin
    assert session.customer_id is None


def test_admin_password_check(monkeypatch):
    from config.settings import config

    assert check_admin_password("secret-admin")
    assert not check_admin_password("wrong")
    assert not check_admin_password(None)

    monkeypatch.setattr(config, "admin_password", "")
    assert not check_admin_password("")


async def test_draft_roundtrip(storage):
    drafts = DraftStore(storage)
    selection = OrderSelection()
    selection.increment("p1", preference=DeliveryPreference.soonest())
    selection.set_quantity("p2", 2, day="monday")

    await drafts.save(5, selection)
    restored = await drafts.load(5)

    assert restored.nested_quantities() == {"p1": {"asap": 1}, "p2": {"monday": 2}}
    assert restored.preference_for("p1") == DeliveryPreference.soonest()


async def test_empty_draft_clears(storage):
    drafts = DraftStore(storage)
    selection = OrderSelection()
    selection.increment("p1")
    await drafts.save(5, selection)

    await drafts.save(5, OrderSelection())

    assert (await drafts.load(5)).is_empty


async def test_expired_draft(storage):
    drafts = DraftStore(storage, ttl_seconds=60)
    await storage.set_data(make_key("draft", 5), {
        "selection": {"quantities": {"p1": {"asap": 1}}},
        "saved_at": (utcnow() - timedelta(minutes=5)).isoformat(),
    })

    assert (await drafts.load(5)).is_empty


async def test_throttle_window(storage):
    throttle = SendThrottle(storage, max_requests=2, time_window=600)

    assert await throttle.hit("0501234567")
    assert await throttle.hit("0501234567")
    assert not await throttle.hit("0501234567")
    assert await throttle.hit("0529999999")


async def test_throttle_forgets_old_requests(storage):
    throttle = SendThrottle(storage, max_requests=1, time_window=60)
    old = (utcnow() - timedelta(minutes=5)).isoformat()
    await storage.set_data(make_key("throttle", "0501234567"), {"requests": [old]})

    assert await throttle.hit("0501234567")


# ==========================================
# СРОК ЖИЗНИ КЛЮЧЕЙ
# ==========================================

class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


async def test_memory_storage_forgets_expired_keys(storage):
    clock = FakeClock()
    storage.clock = clock
    key = make_key("session", "t")

    await store_data(storage, key, {"a": 1}, ttl=60)
    assert await storage.get_data(key) == {"a": 1}

    clock.now += 61
    assert await storage.get_data(key) == {}
    assert len(storage) == 0


async def test_empty_data_removes_key(storage):
    key = make_key("draft", 1)
    await storage.set_data(key, {"a": 1})

    await storage.set_data(key, {})
    await storage.get_data(make_key("draft", 2))

    assert len(storage) == 0


async def test_session_key_expires_with_session(storage):
    clock = FakeClock()
    storage.clock = clock
    store = SessionStore(storage, ttl_seconds=3600)

    session = await store.open(customer_id=7)

    clock.now += 3601
    # токен брошен, load не вызывался - ключ все равно исчез
    storage.purge_expired()
    assert len(storage) == 0
    assert await store.load(session.token) is None


async def test_closed_session_leaves_nothing(storage):
    store = SessionStore(storage)
    session = await store.open(customer_id=7)

    await store.close(session.token)

    assert len(storage) == 0


async def test_throttle_key_expires_after_window(storage):
    clock = FakeClock()
    storage.clock = clock
    throttle = SendThrottle(storage, max_requests=1, time_window=600)

    assert await throttle.hit("0501234567")
    assert not await throttle.hit("0501234567")

    clock.now += 601
    storage.purge_expired()
    assert len(storage) == 0


async def test_draft_ttl_applies_to_storage(storage):
    clock = FakeClock()
    storage.clock = clock
    selection = OrderSelection()
    selection.increment("p1")

    await DraftStore(storage, ttl_seconds=0).save(1, selection)
    await DraftStore(storage, ttl_seconds=60).save(2, selection)

    clock.now += 61
    storage.purge_expired()
    assert not (await DraftStore(storage, ttl_seconds=0).load(1)).is_empty
    assert len(storage) == 1


async def test_store_data_sets_redis_expiry():
    from aiogram.fsm.storage.redis import DefaultKeyBuilder, RedisStorage

    class FakeRedis:
        def __init__(self):
            self.calls = []

        async def set(self, name, value, **kwargs):
            self.calls.append(("set", name))

        async def delete(self, name):
            self.calls.append(("delete", name))

        async def expire(self, name, seconds):
            self.calls.append(("expire", name, seconds))

    redis = FakeRedis()
    storage = RedisStorage(redis=redis, key_builder=DefaultKeyBuilder(prefix="gasorder", with_destiny=True))

    await store_data(storage, make_key("throttle", "0501234567"), {"requests": []}, ttl=600)

    assert redis.calls[0][0] == "set"
    assert redis.calls[1] == ("expire", redis.calls[0][1], 600)
