# app/api/routes/admin.py
"""
🔐 АДМИНКА

Вход по общему паролю → сессия с ролью admin.
Все остальные эндпоинты требуют эту сессию.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_session_store, require_admin
from app.api.schemas import (
    AdminLoginRequest,
    CustomerIn,
    CustomerPatch,
    DeliveryWeekRequest,
    PriceListAssignRequest,
    PriceListIn,
    PriceListPatch,
    PriceListPricesRequest,
    ProductIn,
    ProductPatch,
    ServiceRequestPatch,
    StatusRequest,
    SystemUpdateIn,
    SystemUpdatePatch,
)
from app.api.serializers import (
    customer_admin_to_dict,
    customer_overview_to_dict,
    delivery_day_to_dict,
    price_list_to_dict,
    service_request_to_dict,
    system_update_to_dict,
)
from app.errors import AuthenticationError, LookupFailure
from app.services.catalog import CatalogService
from app.services.cities import CityDirectory
from app.services.customer_admin import CustomerAdminService
from app.services.delivery_days import DeliveryDayService
from app.services.history import OrderHistoryReader
from app.services.orders import OrderService
from app.services.price_lists import PriceListService
from app.services.reports import ReportService
from app.services.service_requests import ServiceRequestService
from app.services.sessions import AuthSession, SessionStore, check_admin_password
from app.services.system_updates import SystemUpdateService
from infrastructure.database.base import get_db_session
from infrastructure.database.models import (
    OrderStatus,
    ServiceRequestPriority,
    ServiceRequestStatus,
)

import structlog

logger = structlog.get_logger()

router = APIRouter(prefix="/api/admin", tags=["admin"])


# ==========================================
# ВХОД
# ==========================================

@router.post("/login")
async def admin_login(
    payload: AdminLoginRequest,
    sessions: SessionStore = Depends(get_session_store)
):
    if not check_admin_password(payload.password):
        logger.warning("admin_login_failed")
        raise AuthenticationError("סיסמה שגויה", title="כניסה נכשלה")

    auth = await sessions.open_admin()
    logger.info("admin_login")
    return {"success": True, "token": auth.token, "expires_at": auth.expires_at}


# ==========================================
# ЗАКАЗЫ
# ==========================================

@router.get("/orders")
async def list_orders(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    statuses: Optional[List[OrderStatus]] = Query(default=None, alias="status"),
    customer_id: Optional[int] = None,
    _: AuthSession = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session)
):
    groups = await OrderHistoryReader(session).history(
        customer_id=customer_id,
        start=start,
        end=end,
        statuses=statuses,
    )
    return [group.to_dict() for group in groups]


@router.patch("/orders/{order_id}/status")
async def change_order_status(
    order_id: int,
    payload: StatusRequest,
    _: AuthSession = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session)
):
    await OrderService(session).change_status(order_id, payload.status)
    group = await OrderHistoryReader(session).get(order_id)
    return group.to_dict()


# ==========================================
# ДНИ ДОСТАВКИ
# ==========================================

@router.get("/delivery-days")
async def delivery_days(
    _: AuthSession = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session)
):
    service = DeliveryDayService(session)
    return {
        "week": await service.week_config(),
        "rows": [delivery_day_to_dict(row) for row in await service.list_all()],
    }


@router.put("/delivery-days")
async def save_delivery_days(
    payload: DeliveryWeekRequest,
    _: AuthSession = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session)
):
    """Каждый день сохраняется отдельно, ответ - сколько успешно / с ошибкой."""
    report = await DeliveryDayService(session).save_week(payload.days)
    return {
        "success": report.error_count == 0,
        "success_count": report.success_count,
        "error_count": report.error_count,
        "message": report.message,
    }


@router.delete("/delivery-days/{day_of_week}")
async def delete_delivery_day(
    day_of_week: int,
    _: AuthSession = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session)
):
    if not await DeliveryDayService(session).delete_day(day_of_week):
        raise LookupFailure(f"day_of_week={day_of_week}", title="יום האספקה לא נמצא")
    return {"success": True}


@router.get("/cities")
async def northern_cities(_: AuthSession = Depends(require_admin)):
    return {"cities": await CityDirectory().northern_cities()}


# ==========================================
# ОБЪЯВЛЕНИЯ
# ==========================================

@router.get("/system-updates")
async def all_system_updates(
    _: AuthSession = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session)
):
    updates = await SystemUpdateService(session).list_all()
    return [system_update_to_dict(u) for u in updates]


@router.post("/system-updates", status_code=status.HTTP_201_CREATED)
async def create_system_update(
    payload: SystemUpdateIn,
    _: AuthSession = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session)
):
    update = await SystemUpdateService(session).create(payload.model_dump())
    return system_update_to_dict(update)


@router.put("/system-updates/{update_id}")
async def save_system_update(
    update_id: str,
    payload: SystemUpdatePatch,
    _: AuthSession = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session)
):
    update = await SystemUpdateService(session).update(
        update_id, payload.model_dump(exclude_unset=True)
    )
    return system_update_to_dict(update)


@router.delete("/system-updates/{update_id}")
async def delete_system_update(
    update_id: str,
    _: AuthSession = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session)
):
    await SystemUpdateService(session).delete(update_id)
    return {"success": True}


# ==========================================
# ТОВАРЫ
# ==========================================

@router.post("/products", status_code=status.HTTP_201_CREATED)
async def create_product(
    payload: ProductIn,
    _: AuthSession = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session)
):
    product = await CatalogService(session).create_product(payload.model_dump(exclude_none=True))
    return product.to_dict()


@router.put("/products/{product_id}")
async def save_product(
    product_id: str,
    payload: ProductPatch,
    _: AuthSession = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session)
):
    product = await CatalogService(session).update_product(
        product_id, payload.model_dump(exclude_unset=True)
    )
    return product.to_dict()



# ==========================================
# ПРАЙС-ЛИСТЫ
# ==========================================

@router.get("/price-lists")
async def list_price_lists(
    _: AuthSession = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session)
):
    price_lists = await PriceListService(session).list_all()
    return [price_list_to_dict(p) for p in price_lists]


@router.post("/price-lists", status_code=status.HTTP_201_CREATED)
async def create_price_list(
    payload: PriceListIn,
    _: AuthSession = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session)
):
    price_list = await PriceListService(session).create(
        payload.name, description=payload.description, is_default=payload.is_default
    )
    return price_list_to_dict(price_list)


@router.get("/price-lists/{price_list_id}")
async def get_price_list(
    price_list_id: str,
    _: AuthSession = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session)
):
    return price_list_to_dict(await PriceListService(session).get(price_list_id))


@router.put("/price-lists/{price_list_id}")
async def save_price_list(
    price_list_id: str,
    payload: PriceListPatch,
    _: AuthSession = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session)
):
    price_list = await PriceListService(session).update(
        price_list_id, payload.model_dump(exclude_unset=True)
    )
    return price_list_to_dict(price_list)


@router.put("/price-lists/{price_list_id}/prices")
async def save_price_list_prices(
    price_list_id: str,
    payload: PriceListPricesRequest,
    _: AuthSession = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session)
):
    price_list = await PriceListService(session).set_prices(price_list_id, payload.prices)
    return price_list_to_dict(price_list)


@router.delete("/price-lists/{price_list_id}")
async def delete_price_list(
    price_list_id: str,
    _: AuthSession = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session)
):
    await PriceListService(session).delete(price_list_id)
    return {"success": True}


# ==========================================
# КЛИЕНТЫ
# ==========================================

@router.get("/customers")
async def list_customers(
    search: Optional[str] = None,
    _: AuthSession = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session)
):
    rows = await CustomerAdminService(session).list_overview(search)
    return [customer_overview_to_dict(row) for row in rows]


@router.post("/customers", status_code=status.HTTP_201_CREATED)
async def create_customer(
    payload: CustomerIn,
    _: AuthSession = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session)
):
    customer = await CustomerAdminService(session).create(payload.model_dump(exclude_none=True))
    return customer_admin_to_dict(customer)


@router.get("/customers/{customer_id}")
async def get_customer(
    customer_id: int,
    _: AuthSession = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session)
):
    return customer_admin_to_dict(await CustomerAdminService(session).get(customer_id))


@router.put("/customers/{customer_id}")
async def save_customer(
    customer_id: int,
    payload: CustomerPatch,
    _: AuthSession = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session)
):
    customer = await CustomerAdminService(session).update(
        customer_id, payload.model_dump(exclude_unset=True)
    )
    return customer_admin_to_dict(customer)


@router.put("/customers/{customer_id}/price-list")
async def assign_customer_price_list(
    customer_id: int,
    payload: PriceListAssignRequest,
    _: AuthSession = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session)
):
    """price_list_id: null → базовые цены."""
    customer = await CustomerAdminService(session).assign_price_list(
        customer_id, payload.price_list_id
    )
    return customer_admin_to_dict(customer)


@router.delete("/customers/{customer_id}")
async def delete_customer(
    customer_id: int,
    _: AuthSession = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session)
):
    await CustomerAdminService(session).delete(customer_id)
    return {"success": True}


# ==========================================
# ВЫЗОВЫ ТЕХНИКА
# ==========================================

@router.get("/service-requests")
async def list_service_requests(
    request_status: Optional[ServiceRequestStatus] = Query(default=None, alias="status"),
    priority: Optional[ServiceRequestPriority] = None,
    customer_id: Optional[int] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    _: AuthSession = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session)
):
    requests = await ServiceRequestService(session).list_filtered(
        status=request_status,
        priority=priority,
        customer_id=customer_id,
        start=start,
        end=end,
    )
    return [service_request_to_dict(r) for r in requests]


@router.patch("/service-requests/{request_id}")
async def update_service_request(
    request_id: str,
    payload: ServiceRequestPatch,
    _: AuthSession = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session)
):
    request = await ServiceRequestService(session).update(
        request_id, payload.model_dump(exclude_unset=True)
    )
    return service_request_to_dict(request)

# ==========================================
# ОТЧЕТЫ
# ==========================================

@router.get("/reports/summary")
async def report_summary(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    _: AuthSession = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session)
):
    return await ReportService(session).summary(start=start, end=end)
