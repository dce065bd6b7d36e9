# infrastructure/logger.py
"""
📝 ЛОГИ

structlog поверх стандартного logging.
- development: цветной вывод для консоли
- production:  одна JSON строка на событие (иврит без \\u-escape)
"""

import logging
import sys

import structlog

# Слишком разговорчивые библиотеки
NOISY_LOGGERS = ("aiogram.event", "sqlalchemy.engine", "httpx")


def setup_logging(debug: bool = False, json_logs: bool = None):
    """Вызывается один раз из main.py."""
    level = logging.DEBUG if debug else logging.INFO
    if json_logs is None:
        json_logs = not debug

    renderer = (
        structlog.processors.JSONRenderer(ensure_ascii=False)
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


logger = structlog.get_logger()
