# infrastructure/database/base.py
"""
🗄️ ПОДКЛЮЧЕНИЕ К БАЗЕ ДАННЫХ

Здесь создается:
- engine (соединение с БД)
- async_session_maker (фабрика сессий)
- get_db_session (зависимость для FastAPI)
- init_db / close_db (жизненный цикл)

В продакшене это PostgreSQL (asyncpg), локально и в тестах - SQLite (aiosqlite).
"""

from typing import AsyncIterator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from config.settings import config
from infrastructure.database.models import Base


# ==========================================
# ENGINE
# ==========================================

def create_engine(url: str = None, **kwargs) -> AsyncEngine:
    """
    Создать async engine.

    Для SQLite нужен check_same_thread=False
    (запросы могут приходить из разных потоков).
    """
    url = url or config.async_database_url

    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})

    return create_async_engine(url, echo=False, **kwargs)


engine = create_engine()

# ==========================================
# ФАБРИКА СЕССИЙ
# ==========================================

# expire_on_commit=False - после commit объекты остаются доступными
# (иначе обращение к order.id после commit требует новый запрос)
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db_session() -> AsyncIterator[AsyncSession]:
    """
    Зависимость FastAPI: одна сессия на один HTTP запрос.

    Пример:
        @router.get("/orders")
        async def list_orders(session: AsyncSession = Depends(get_db_session)):
            ...
    """
    async with async_session_maker() as session:
        yield session


# ==========================================
# ЖИЗНЕННЫЙ ЦИКЛ
# ==========================================

async def init_db(bind: AsyncEngine = None):
    """Создать таблицы если их нет."""
    bind = bind or engine
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db(bind: AsyncEngine = None):
    """Закрыть все соединения пула."""
    bind = bind or engine
    await bind.dispose()
