# main.py
"""
🚀 ТОЧКА ВХОДА

Запускает в одном процессе:
- FastAPI (uvicorn) - API для сайта и админки
- бота оператора (polling), если задан BOT_TOKEN

Команда: python main.py
"""

import asyncio
from contextlib import suppress

import uvicorn
from aiogram import Bot

from app.api import create_app
from app.bot.dispatcher import build_dispatcher
from app.bot.notifications import get_bot
from config.settings import config
from infrastructure.database.base import init_db
from infrastructure.logger import setup_logging
from infrastructure.redis_storage import check_redis_connection, redis_storage

import structlog

logger = structlog.get_logger()


async def on_startup(bot: Bot):
    """Сообщаем оператору, что бот поднялся. Не получилось - только лог."""
    if not config.operator_telegram_id:
        logger.warning("operator_id_not_set")
        return

    try:
        await bot.send_message(
            chat_id=config.operator_telegram_id,
            text="✅ <b>הבוט הופעל</b>\n\nהזמנות חדשות יגיעו לכאן.\n/orders - הזמנות ממתינות"
        )
    except Exception as e:
        logger.error("operator_startup_notification_failed", error=str(e))


async def run_bot(bot: Bot):
    dp = build_dispatcher(redis_storage)
    await on_startup(bot)

    try:
        logger.info("polling_started")
        await dp.start_polling(bot, handle_signals=False)
    except asyncio.CancelledError:
        logger.info("polling_cancelled")
        raise


async def run_api():
    server = uvicorn.Server(
        uvicorn.Config(
            create_app(redis_storage),
            host=config.api_host,
            port=config.api_port,
            log_level="debug" if config.debug else "info",
        )
    )
    logger.info("api_starting", host=config.api_host, port=config.api_port)
    await server.serve()


async def main():
    setup_logging(debug=config.debug)
    logger.info("application_start", environment=config.environment)

    await init_db()

    if config.redis_url and not await check_redis_connection():
        logger.warning("redis_unavailable", redis_url=config.redis_url)

    bot = get_bot()
    if bot is None:
        logger.warning("bot_disabled", message="BOT_TOKEN не задан, уведомления выключены")
        await run_api()
        return

    # uvicorn ловит Ctrl+C сам, после его остановки гасим polling
    polling = asyncio.create_task(run_bot(bot))
    try:
        await run_api()
    finally:
        polling.cancel()
        with suppress(asyncio.CancelledError):
            await polling
        await redis_storage.close()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("app_interrupted")
