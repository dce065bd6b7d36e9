# app/bot/texts.py
"""Тексты сообщений оператору (HTML)."""

from typing import List

from app.services.delivery_days import day_key_to_index, short_hebrew_day_name
from app.services.history import OrderGroup
from app.services.service_requests import SERVICE_TYPE_NAMES, STATUS_NAMES
from app.utils import escape_html, format_currency, format_phone, truncate
from infrastructure.database.models import OrderStatus, ServiceRequest, ServiceRequestPriority

STATUS_LABELS = {
    OrderStatus.PENDING: "⏳ ממתינה",
    OrderStatus.PROCESSING: "🔄 בטיפול",
    OrderStatus.COMPLETED: "✅ הושלמה",
    OrderStatus.CANCELLED: "❌ בוטלה",
}


def order_card_text(group: OrderGroup) -> str:
    """
    Карточка заказа:

        🛒 הזמנה GM-00042
        👤 ישראל ישראלי
        📞 050-123-4567
        • בלון 12 ק"ג × 2 = ₪200 (ראשון)
        💰 סה"כ: ₪200
    """
    lines = [
        f"🛒 <b>הזמנה {group.order_number}</b>",
        f"📊 {STATUS_LABELS.get(group.status, group.status.value)}",
    ]

    if group.customer_name:
        lines.append(f"👤 {escape_html(group.customer_name)}")
    if group.customer_phone:
        lines.append(f"📞 {format_phone(group.customer_phone)}")
    if group.target_date:
        lines.append(f"📅 {group.target_date.strftime('%d.%m.%Y')}")

    lines.append("")
    for item in group.items:
        day_index = day_key_to_index(item.day_of_week)
        day = f" ({short_hebrew_day_name(day_index)})" if day_index is not None else ""
        lines.append(
            f"• {escape_html(truncate(item.product_name, 40))} × {item.quantity}"
            f" = {format_currency(item.line_total)}{day}"
        )

    lines.append("")
    lines.append(f"💰 <b>סה\"כ: {format_currency(group.total)}</b>")
    return "\n".join(lines)


def pending_orders_text(groups: List[OrderGroup]) -> str:
    if not groups:
        return "✅ אין הזמנות ממתינות"

    lines = [f"⏳ <b>הזמנות ממתינות: {len(groups)}</b>", ""]
    for group in groups:
        name = escape_html(group.customer_name or format_phone(group.customer_phone or ""))
        lines.append(
            f"<code>{group.order_number}</code> {name}"
            f" - {format_currency(group.total)}"
            f" ({group.created_at.strftime('%d.%m %H:%M')})"
        )
    return "\n".join(lines)


def service_request_card_text(request: ServiceRequest) -> str:
    """
    Карточка вызова техника:

        🚨 חירום - דליפת גז
        👤 ישראל ישראלי
        📞 050-123-4567
        📍 עכו, הרצל 1
        ריח גז במטבח
    """
    icon = "🚨" if request.priority == ServiceRequestPriority.URGENT else "🔧"
    lines = [
        f"{icon} <b>{escape_html(SERVICE_TYPE_NAMES.get(request.service_type, request.title or ''))}</b>",
        f"📊 {STATUS_NAMES.get(request.status, request.status.value)}",
    ]

    if request.customer is not None and request.customer.name:
        lines.append(f"👤 {escape_html(request.customer.name)}")
    if request.customer_phone:
        lines.append(f"📞 {format_phone(request.customer_phone)}")

    place = ", ".join(part for part in (request.city, request.address) if part)
    if place:
        lines.append(f"📍 {escape_html(place)}")
    if request.preferred_date:
        lines.append(f"📅 {request.preferred_date.strftime('%d.%m.%Y')}")

    lines.append("")
    lines.append(escape_html(truncate(request.description, 300)))
    return "\n".join(lines)
