# tests/test_price_lists.py
from decimal import Decimal

import pytest

from app.errors import LookupFailure, ValidationError
from app.services.catalog import CatalogService
from app.services.price_lists import PriceListService


async def test_create_and_set_prices(session, products):
    service = PriceListService(session)
    vip = await service.create("  מסעדות ", description="הנחה לחברות")

    saved = await service.set_prices(vip.id, {"p1": "8.50", "p2": 20})

    assert saved.name == "מסעדות"
    assert {i.product_id: i.price for i in saved.items} == {
        "p1": Decimal("8.50"),
        "p2": Decimal("20"),
    }


async def test_set_prices_replaces_whole_list(session, products):
    service = PriceListService(session)
    vip = await service.create("VIP")
    await service.set_prices(vip.id, {"p1": "8", "p2": "20"})

    saved = await service.set_prices(vip.id, {"p2": "19"})

    assert {i.product_id: i.price for i in saved.items} == {"p2": Decimal("19")}


@pytest.mark.parametrize("value", ["-1", "abc", "NaN"])
async def test_bad_price_changes_nothing(session, products, value):
    service = PriceListService(session)
    vip = await service.create("VIP")
    await service.set_prices(vip.id, {"p1": "8"})

    with pytest.raises(ValidationError) as exc:
        await service.set_prices(vip.id, {"p1": value})

    assert exc.value.title == "מחיר לא תקין"
    assert [i.price for i in (await service.get(vip.id)).items] == [Decimal("8")]


async def test_unknown_product_is_rejected(session, products):
    service = PriceListService(session)
    vip = await service.create("VIP")

    with pytest.raises(ValidationError) as exc:
        await service.set_prices(vip.id, {"ghost": "5"})

    assert exc.value.title == "המוצר לא נמצא"


async def test_name_is_required(session):
    with pytest.raises(ValidationError):
        await PriceListService(session).create("  ")


async def test_only_one_default(session):
    service = PriceListService(session)
    first = await service.create("A", is_default=True)
    second = await service.create("B", is_default=True)

    assert (await service.get(first.id)).is_default is False
    assert (await service.get(second.id)).is_default is True

    await service.update(first.id, {"is_default": True})
    assert (await service.get(second.id)).is_default is False


async def test_customer_price_list_changes_catalog_price(session, vip_customer):
    service = PriceListService(session)
    await service.set_prices(vip_customer.price_list_id, {"p1": "7.25"})

    product = await CatalogService(session).get_product("p1", vip_customer)

    assert product.price == Decimal("7.25")
    assert product.base_price == Decimal("10")


async def test_price_list_in_use_is_not_deleted(session, vip_customer):
    service = PriceListService(session)

    with pytest.raises(ValidationError) as exc:
        await service.delete(vip_customer.price_list_id)

    assert exc.value.title == "לא ניתן למחוק מחירון בשימוש"
    assert await service.get(vip_customer.price_list_id)


async def test_delete_unused_price_list(session, products):
    service = PriceListService(session)
    spare = await service.create("ישן")
    await service.set_prices(spare.id, {"p1": "9"})

    await service.delete(spare.id)

    with pytest.raises(LookupFailure):
        await service.get(spare.id)
