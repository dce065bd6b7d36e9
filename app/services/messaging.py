# app/services/messaging.py
"""
📲 WHATSAPP / SMS

Сами сообщения отправляет внешний сервис автоматизации.
Мы только делаем POST на его вебхук:
    {"phone": ..., "message": ..., "service": "gas_mineral", "method": "whatsapp"}

Ошибки вебхука логируются и НЕ пробрасываются:
код уже сохранен, клиент может запросить его еще раз.
"""

import aiohttp

from config.settings import config

import structlog

logger = structlog.get_logger()

SERVICE_NAME = "gas_mineral"

METHODS = ("whatsapp", "sms")


def verification_message(code: str, method: str) -> str:
    if method == "whatsapp":
        return (
            "שירותי גז מינרל\n\n"
            f"קוד האימות שלך: {code}\n\n"
            "הקוד תקף למשך 10 דקות.\n\n"
            "אם לא ביקשת קוד זה, אנא התעלם מהודעה זו."
        )
    return (
        f"קוד האימות שלך: {code}\n\n"
        "שירותי גז מינרל\n"
        "הקוד תקף למשך 10 דקות."
    )


def webhook_url(method: str) -> str:
    if method == "whatsapp":
        return config.whatsapp_webhook_url
    return config.sms_webhook_url


async def post_webhook(url: str, payload: dict) -> bool:
    """POST json. True если ответ 2xx."""
    timeout = aiohttp.ClientTimeout(total=config.messaging_timeout_seconds)
    async with aiohttp.ClientSession(timeout=timeout) as http:
        async with http.post(url, json=payload) as response:
            logger.info("webhook_response", status=response.status)
            return 200 <= response.status < 300


async def send_message(phone: str, message: str, method: str) -> bool:
    """
    Отправить сообщение через вебхук.

    Вебхук не настроен / упал → False (в лог), без исключения.
    """
    url = webhook_url(method)
    if not url:
        logger.warning("webhook_not_configured", method=method)
        return False

    payload = {
        "phone": phone,
        "message": message,
        "service": SERVICE_NAME,
        "method": method,
    }

    try:
        return await post_webhook(url, payload)
    except (aiohttp.ClientError, TimeoutError) as e:
        logger.error("webhook_send_error", method=method, error=str(e))
        return False
